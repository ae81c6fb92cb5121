"""Outcome models for extraction and patch matching."""

from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from code_reconciler.models.edit_models import ReconciliationResult

MAX_SAMPLE_CHARS = 500


class FailureKind(str, Enum):
    MALFORMED_ENVELOPE = "malformed_envelope"
    EXTRACTION_FAILED = "extraction_failed"
    PATCH_NOT_FOUND = "patch_not_found"
    LOW_CONFIDENCE_REJECTED = "low_confidence_rejected"


class ExtractionFailure(BaseModel):
    """Typed failure returned when no extraction strategy succeeded."""

    model_config = ConfigDict(frozen=False)

    kind: FailureKind = FailureKind.EXTRACTION_FAILED
    attempted_strategies: list[str] = Field(default_factory=list)
    sample: str = Field(default="", max_length=MAX_SAMPLE_CHARS)
    message: str = ""


class MatchStrategy(str, Enum):
    EXACT = "exact"
    FUZZY_WHITESPACE = "fuzzy_whitespace"
    ANCHORED_AGGRESSIVE = "anchored_aggressive"


class MatchResult(BaseModel):
    """Location of a patch's search text inside a file.

    Line indexes are 0-based with ``matched_end`` exclusive. The character
    span ``[start_offset, end_offset)`` is exactly what gets replaced.
    """

    model_config = ConfigDict(frozen=True)

    matched_start: int = Field(ge=0)
    matched_end: int = Field(ge=0)
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)
    strategy: MatchStrategy
    similarity: float = Field(ge=0.0, le=1.0)


class MatchNotFound(BaseModel):
    """No strategy accepted a window for the patch."""

    model_config = ConfigDict(frozen=True)

    kind: FailureKind = FailureKind.PATCH_NOT_FOUND
    attempted_strategies: list[str] = Field(default_factory=list)
    best_score: float | None = None  # Set for LOW_CONFIDENCE_REJECTED
    reason: str = ""


ExtractionOutcome = Union[ReconciliationResult, ExtractionFailure]
MatchOutcome = Union[MatchResult, MatchNotFound]
