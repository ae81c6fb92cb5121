"""Apply matched patches and whole file edits to in-memory text."""

import logging

from code_reconciler.matching.exceptions import (
    LowConfidenceRejectedError,
    PatchApplicationError,
    PatchNotFoundError,
)
from code_reconciler.matching.patch_matcher import PatchMatcher
from code_reconciler.models import (
    FailureKind,
    FileEdit,
    FileOperation,
    MatchNotFound,
    MatchResult,
    Patch,
)

logger = logging.getLogger(__name__)

MAX_SEARCH_PREVIEW = 60  # Max chars of search text quoted in error messages


def apply_match(text: str, match: MatchResult, replace: str) -> str:
    """Replace exactly the matched span; everything else stays byte-identical."""
    return text[: match.start_offset] + replace + text[match.end_offset:]


def _not_found_error(patch: Patch, outcome: MatchNotFound) -> PatchNotFoundError:
    preview = patch.search.strip().splitlines()[0] if patch.search.strip() else ""
    message = f"Patch search text not found: {preview[:MAX_SEARCH_PREVIEW]!r} ({outcome.reason})"
    if outcome.kind == FailureKind.LOW_CONFIDENCE_REJECTED:
        return LowConfidenceRejectedError(message, outcome)
    return PatchNotFoundError(message, outcome)


def apply_patch(
    text: str,
    patch: Patch,
    matcher: PatchMatcher | None = None,
) -> tuple[str, MatchResult]:
    """Locate and apply one patch.

    Returns:
        The new text and the match that was used.

    Raises:
        PatchNotFoundError: If the search text could not be located. The
            input text is left untouched.
    """
    matcher = matcher or PatchMatcher()
    outcome = matcher.match(text, patch)
    if isinstance(outcome, MatchNotFound):
        raise _not_found_error(patch, outcome)
    logger.debug(
        "Applied patch using %s match at lines %d-%d",
        outcome.strategy.value,
        outcome.matched_start + 1,
        outcome.matched_end,
    )
    return apply_match(text, outcome, patch.replace), outcome


def apply_patches(
    text: str,
    patches: list[Patch],
    matcher: PatchMatcher | None = None,
) -> tuple[str, list[MatchResult]]:
    """Apply patches in order, each against the result of the previous one.

    All-or-nothing: if any patch misses, ``PatchNotFoundError`` is raised and
    no partially patched text is returned.
    """
    matcher = matcher or PatchMatcher()
    matches: list[MatchResult] = []
    current = text
    for index, patch in enumerate(patches, 1):
        try:
            current, used = apply_patch(current, patch, matcher)
        except PatchNotFoundError as exc:
            logger.debug("Patch %d of %d failed: %s", index, len(patches), exc)
            raise
        matches.append(used)
    return current, matches


def apply_file_edit(
    current_text: str | None,
    edit: FileEdit,
    matcher: PatchMatcher | None = None,
) -> str | None:
    """Compute a file's new text from its current text and one edit.

    Args:
        current_text: Current file contents, or None if the file does not exist.
        edit: The edit to apply.
        matcher: Matcher to reuse for patch edits.

    Returns:
        The new contents, or None when the file should be deleted.

    Raises:
        PatchApplicationError: If a patch targets a missing file.
        PatchNotFoundError: If any patch of a patch edit misses.
    """
    if edit.operation in (FileOperation.CREATE, FileOperation.UPDATE):
        return edit.content
    if edit.operation == FileOperation.DELETE:
        return None
    if current_text is None:
        raise PatchApplicationError(f"Cannot patch missing file: {edit.path}")
    new_text, _ = apply_patches(current_text, edit.patches or [], matcher)
    return new_text
