"""Data models for the code reconciler."""

from code_reconciler.models.edit_models import (
    FileEdit,
    FileOperation,
    Patch,
    ReconciliationResult,
)
from code_reconciler.models.metrics_models import StrategyMetrics
from code_reconciler.models.outcome_models import (
    MAX_SAMPLE_CHARS,
    ExtractionFailure,
    ExtractionOutcome,
    FailureKind,
    MatchNotFound,
    MatchOutcome,
    MatchResult,
    MatchStrategy,
)

__all__ = [
    "ExtractionFailure",
    "ExtractionOutcome",
    "FailureKind",
    "FileEdit",
    "FileOperation",
    "MAX_SAMPLE_CHARS",
    "MatchNotFound",
    "MatchOutcome",
    "MatchResult",
    "MatchStrategy",
    "Patch",
    "ReconciliationResult",
    "StrategyMetrics",
]
