"""Structured extraction of file edits from free-form model output."""

from code_reconciler.extraction.envelope import (
    ENVELOPE_VARIANTS,
    Envelope,
    RawEnvelope,
    ResultEnvelope,
    decode_envelope,
)
from code_reconciler.extraction.exceptions import (
    ExtractionError,
    FallbackError,
    MalformedEnvelopeError,
)
from code_reconciler.extraction.extractor import (
    PAYLOAD_FIELDS,
    StructuredExtractor,
    extract,
    require_result,
)
from code_reconciler.extraction.fallback import (
    ModelReextractor,
    build_extraction_prompt,
    extract_with_fallback,
)
from code_reconciler.extraction.strategies import TEXT_STRATEGIES, TextStrategy

__all__ = [
    "ENVELOPE_VARIANTS",
    "Envelope",
    "ExtractionError",
    "FallbackError",
    "MalformedEnvelopeError",
    "ModelReextractor",
    "PAYLOAD_FIELDS",
    "RawEnvelope",
    "ResultEnvelope",
    "StructuredExtractor",
    "TEXT_STRATEGIES",
    "TextStrategy",
    "build_extraction_prompt",
    "decode_envelope",
    "extract",
    "extract_with_fallback",
    "require_result",
]
