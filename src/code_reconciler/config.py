"""Tunable thresholds and bounds for extraction and patch matching."""

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "RECONCILER_"

DEFAULT_FALLBACK_MODEL = "claude-sonnet-4-5-20250929"


class ReconcilerSettings(BaseModel):
    """Settings shared by the extractor, the matcher and the CLI.

    Defaults reproduce the behaviour every caller relies on; override them
    only to tune matching on a specific codebase.
    """

    model_config = ConfigDict(frozen=True)

    # Extraction
    max_envelope_depth: int = Field(default=5, ge=0)
    sample_chars: int = Field(default=500, ge=0, le=500)
    max_prose_prefix_chars: int = Field(default=500, ge=0)
    max_unescape_rounds: int = Field(default=3, ge=0)
    completion_summary_min_chars: int = Field(default=20, ge=0)
    completion_summary_max_chars: int = Field(default=500, ge=1)

    # Fuzzy whitespace matching
    min_first_line_chars: int = Field(default=10, ge=0)
    long_line_chars: int = Field(default=20, ge=0)
    line_similarity_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    min_line_coverage: float = Field(default=0.7, ge=0.0, le=1.0)

    # Anchored aggressive matching
    anchored_similarity_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    anchored_margin_lines: int = Field(default=5, ge=0)
    anchored_compare_chars: int = Field(default=500, ge=1)
    anchor_pair_min_chars: int = Field(default=15, ge=0)

    # Model fallback
    fallback_model: str = DEFAULT_FALLBACK_MODEL
    fallback_provider: str = "auto"
    fallback_timeout: float = Field(default=60.0, gt=0)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ReconcilerSettings":
        """Build settings from ``RECONCILER_*`` environment variables.

        ``RECONCILER_MAX_ENVELOPE_DEPTH=3`` overrides ``max_envelope_depth``.
        Unknown variables are ignored; malformed values raise a pydantic
        ``ValidationError``.
        """
        source = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = source.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw.strip():
                overrides[name] = raw.strip()
        return cls(**overrides)
