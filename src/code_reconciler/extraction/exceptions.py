"""Exceptions for extraction operations.

``extract()`` itself never raises for malformed input; these exist for the
internal envelope bound, the model fallback, and callers that prefer
raising over inspecting an ``ExtractionFailure``.
"""

from code_reconciler.models import ExtractionFailure


class ExtractionError(Exception):
    """Base exception for all extraction operations."""

    def __init__(self, message: str, failure: ExtractionFailure | None = None) -> None:
        super().__init__(message)
        self.failure = failure


class MalformedEnvelopeError(ExtractionError):
    """Raised when envelope unwrapping exceeds the nesting bound."""


class FallbackError(ExtractionError):
    """Raised when the model fallback cannot be configured or called."""
