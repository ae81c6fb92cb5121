"""Exceptions for patch matching and applying.

``match()`` never raises for a miss; these are raised by the applying
layer so a missed patch can never be silently skipped.
"""

from code_reconciler.models import MatchNotFound


class MatchingError(Exception):
    """Base exception for all patch matching operations."""


class PatchApplicationError(MatchingError):
    """Raised when a file edit cannot be applied to the current file text."""


class PatchNotFoundError(PatchApplicationError):
    """Raised when no strategy located a patch's search text."""

    def __init__(self, message: str, outcome: MatchNotFound) -> None:
        super().__init__(message)
        self.outcome = outcome


class LowConfidenceRejectedError(PatchNotFoundError):
    """Raised when the best candidate window scored under the threshold."""
