"""Utilities for the code reconciler."""

from code_reconciler.utils.json_scanner import (
    find_balanced_end,
    is_control_character_error,
    iter_key_objects,
    sanitize_control_characters,
    unescape_once,
)
from code_reconciler.utils.similarity import (
    calculate_similarity,
    find_best_matching_line,
    levenshtein_distance,
    normalize_whitespace,
)

__all__ = [
    "calculate_similarity",
    "find_balanced_end",
    "find_best_matching_line",
    "is_control_character_error",
    "iter_key_objects",
    "levenshtein_distance",
    "normalize_whitespace",
    "sanitize_control_characters",
    "unescape_once",
]
