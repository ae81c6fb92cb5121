"""Patch matching and applying."""

from code_reconciler.matching.exceptions import (
    LowConfidenceRejectedError,
    MatchingError,
    PatchApplicationError,
    PatchNotFoundError,
)
from code_reconciler.matching.patch_applier import (
    apply_file_edit,
    apply_match,
    apply_patch,
    apply_patches,
)
from code_reconciler.matching.patch_matcher import PatchMatcher, match

__all__ = [
    "LowConfidenceRejectedError",
    "MatchingError",
    "PatchApplicationError",
    "PatchMatcher",
    "PatchNotFoundError",
    "apply_file_edit",
    "apply_match",
    "apply_patch",
    "apply_patches",
    "match",
]
