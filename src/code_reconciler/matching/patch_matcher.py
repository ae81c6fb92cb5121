"""Locate a patch's search text in a file, tolerating whitespace and paraphrase drift."""

import logging
import re
from dataclasses import dataclass, field

from code_reconciler.config import ReconcilerSettings
from code_reconciler.models import (
    FailureKind,
    MatchNotFound,
    MatchOutcome,
    MatchResult,
    MatchStrategy,
    Patch,
)
from code_reconciler.utils.similarity import (
    calculate_similarity,
    find_best_matching_line,
    normalize_whitespace,
)

logger = logging.getLogger(__name__)

DECLARATION_PATTERN = re.compile(
    r"(?:function|class|const|public|private|protected)\s+([A-Za-z_][A-Za-z0-9_]*)"
)


@dataclass
class _Lines:
    """A file split on ``\\n`` with the character offset of every line start."""

    text: str
    lines: list[str] = field(init=False)
    starts: list[int] = field(init=False)

    def __post_init__(self) -> None:
        self.lines = self.text.split("\n")
        self.starts = []
        offset = 0
        for line in self.lines:
            self.starts.append(offset)
            offset += len(line) + 1

    def __len__(self) -> int:
        return len(self.lines)

    def span(self, start: int, end: int) -> tuple[int, int]:
        """Character span of lines ``[start, end)``, excluding the final line break."""
        last = self.lines[end - 1]
        stop = self.starts[end - 1] + len(last)
        if last.endswith("\r"):
            stop -= 1
        return self.starts[start], stop


def _search_lines(search: str) -> list[str]:
    lines = search.split("\n")
    if len(lines) > 1 and lines[-1].strip() == "":
        lines.pop()
    return lines


def _lines_match(file_line: str, search_line: str, settings: ReconcilerSettings) -> bool:
    if file_line in search_line or search_line in file_line:
        return True
    return (
        len(file_line) > settings.long_line_chars
        and len(search_line) > settings.long_line_chars
        and calculate_similarity(file_line, search_line) > settings.line_similarity_threshold
    )


class PatchMatcher:
    """Runs exact, fuzzy-whitespace and anchored-aggressive matching in order.

    Pure and stateless; a miss is returned as ``MatchNotFound`` and never
    guessed at.
    """

    def __init__(self, settings: ReconcilerSettings | None = None) -> None:
        self.settings = settings or ReconcilerSettings()

    def match(self, file_text: str, patch: Patch) -> MatchOutcome:
        search = patch.search
        if not search.strip():
            return MatchNotFound(reason="empty search text")

        attempted: list[str] = []

        attempted.append(MatchStrategy.EXACT.value)
        result = self._exact(file_text, search)
        if result is not None:
            return result

        lines = _Lines(file_text)

        attempted.append(MatchStrategy.FUZZY_WHITESPACE.value)
        result = self._fuzzy_whitespace(lines, search)
        if result is not None:
            logger.debug(
                "Fuzzy match at lines %d-%d (similarity %.2f)",
                result.matched_start,
                result.matched_end,
                result.similarity,
            )
            return result

        attempted.append(MatchStrategy.ANCHORED_AGGRESSIVE.value)
        result, best_score = self._anchored_aggressive(lines, search)
        if result is not None:
            logger.debug(
                "Anchored match at lines %d-%d (similarity %.2f)",
                result.matched_start,
                result.matched_end,
                result.similarity,
            )
            return result

        hint = self._nearest_line_hint(file_text, search)
        if best_score is not None:
            logger.info(
                "Rejected low-confidence match (best score %.3f): %s",
                best_score,
                hint,
            )
            return MatchNotFound(
                kind=FailureKind.LOW_CONFIDENCE_REJECTED,
                attempted_strategies=attempted,
                best_score=best_score,
                reason=f"best candidate scored {best_score:.3f} below threshold; {hint}",
            )
        return MatchNotFound(attempted_strategies=attempted, reason=hint)

    def _exact(self, file_text: str, search: str) -> MatchResult | None:
        # First (lowest-offset) occurrence wins
        offset = file_text.find(search)
        if offset < 0:
            return None
        end = offset + len(search)
        return MatchResult(
            matched_start=file_text.count("\n", 0, offset),
            matched_end=file_text.count("\n", 0, end - 1) + 1,
            start_offset=offset,
            end_offset=end,
            strategy=MatchStrategy.EXACT,
            similarity=1.0,
        )

    def _fuzzy_whitespace(self, lines: _Lines, search: str) -> MatchResult | None:
        settings = self.settings
        wanted = [normalize_whitespace(line) for line in search.split("\n")]
        wanted = [line for line in wanted if line]
        if not wanted or len(wanted[0]) < settings.min_first_line_chars:
            return None

        normalized = [normalize_whitespace(line) for line in lines.lines]
        first = wanted[0]
        required = max(1, settings.min_line_coverage * len(wanted))

        for start, line in enumerate(normalized):
            if not line or not (first in line or line in first):
                continue

            matched = 0
            search_index = 0
            file_index = start
            last_matched = start
            while search_index < len(wanted) and file_index < len(normalized):
                candidate = normalized[file_index]
                if not candidate:
                    file_index += 1
                    continue
                # The window never extends past a line that does not match
                if not _lines_match(candidate, wanted[search_index], settings):
                    break
                matched += 1
                last_matched = file_index
                search_index += 1
                file_index += 1

            if matched < required:
                continue

            end = last_matched + 1
            start_offset, end_offset = lines.span(start, end)
            window = " ".join(line for line in normalized[start:end] if line)
            limit = settings.anchored_compare_chars
            return MatchResult(
                matched_start=start,
                matched_end=end,
                start_offset=start_offset,
                end_offset=end_offset,
                strategy=MatchStrategy.FUZZY_WHITESPACE,
                similarity=calculate_similarity(window[:limit], " ".join(wanted)[:limit]),
            )
        return None

    def _anchored_aggressive(
        self,
        lines: _Lines,
        search: str,
    ) -> tuple[MatchResult | None, float | None]:
        """Return the accepted window, or None plus the best rejected score."""
        settings = self.settings
        search_lines = _search_lines(search)
        size = len(search_lines)
        best_score: float | None = None

        declaration = DECLARATION_PATTERN.search(search)
        if declaration:
            identifier = declaration.group(1)
            # Align the window on the search line that declares the identifier
            anchor_offset = next(
                (i for i, line in enumerate(search_lines) if identifier in line), 0
            )
            limit = settings.anchored_compare_chars
            wanted = normalize_whitespace(search)[:limit]
            margin = settings.anchored_margin_lines

            for index, line in enumerate(lines.lines):
                if identifier not in line:
                    continue
                context = "\n".join(
                    lines.lines[max(0, index - margin): min(len(lines), index + size + margin)]
                )
                score = calculate_similarity(normalize_whitespace(context)[:limit], wanted)
                if score > settings.anchored_similarity_threshold:
                    start = max(0, index - anchor_offset)
                    end = min(len(lines), start + size)
                    return self._window(lines, start, end, score), None
                if best_score is None or score > best_score:
                    best_score = score
            return None, best_score

        first = search_lines[0].strip()
        last = search_lines[-1].strip()
        minimum = settings.anchor_pair_min_chars
        if len(first) <= minimum or len(last) <= minimum:
            return None, None

        for start in range(len(lines) - size + 1):
            first_score = calculate_similarity(first, lines.lines[start].strip())
            last_score = calculate_similarity(last, lines.lines[start + size - 1].strip())
            score = min(first_score, last_score)
            if score > settings.line_similarity_threshold:
                return self._window(lines, start, start + size, score), None
            if first_score > settings.line_similarity_threshold and (
                best_score is None or score > best_score
            ):
                best_score = score
        return None, best_score

    def _window(self, lines: _Lines, start: int, end: int, score: float) -> MatchResult:
        start_offset, end_offset = lines.span(start, end)
        return MatchResult(
            matched_start=start,
            matched_end=end,
            start_offset=start_offset,
            end_offset=end_offset,
            strategy=MatchStrategy.ANCHORED_AGGRESSIVE,
            similarity=score,
        )

    def _nearest_line_hint(self, file_text: str, search: str) -> str:
        first = next((line for line in search.split("\n") if line.strip()), "")
        index = find_best_matching_line(file_text, first)
        if index < 0:
            return "no similar line found in file"
        return f"closest line to the first search line is line {index + 1}"


def match(
    file_text: str,
    patch: Patch,
    settings: ReconcilerSettings | None = None,
) -> MatchOutcome:
    """Module-level shortcut for ``PatchMatcher(settings).match(...)``."""
    return PatchMatcher(settings).match(file_text, patch)
