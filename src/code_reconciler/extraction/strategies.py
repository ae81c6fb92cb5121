"""Ordered text strategies for recovering a ``{files, summary}`` object.

Each strategy is a pure generator ``(text, settings) -> Iterator[dict]``. The
extractor folds over ``TEXT_STRATEGIES`` in order and stops at the first
candidate that validates, so a new strategy is added by inserting it into
the tuple rather than by branching in the extractor.
"""

import json
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from code_reconciler.config import ReconcilerSettings
from code_reconciler.utils.json_scanner import (
    is_control_character_error,
    iter_key_objects,
    sanitize_control_characters,
    unescape_once,
)

FENCED_BLOCK = re.compile(r"```[ \t]*(?:json)?[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE)
LEADING_FENCE = re.compile(r"^```[ \t]*(?:json)?[ \t]*\r?\n?", re.IGNORECASE)

LEAD_IN_PATTERNS = (
    re.compile(r"^\s*(?:sure|okay|ok|great|certainly|alright|done)\b[^\n]*\n", re.IGNORECASE),
    re.compile(r"^\s*here(?:'s|\s+is|\s+are)\b[^\n]*?(?::|\n)", re.IGNORECASE),
    re.compile(r"^\s*(?:i'll|i\s+will|i've|i\s+have|let\s+me)\b[^\n]*?(?::|\n)", re.IGNORECASE),
    re.compile(
        r"^\s*(?:below\s+is|the\s+following\s+is|returning|json\s+response)\b[^\n]*?(?::|\n)",
        re.IGNORECASE,
    ),
)

COMPLETION_PHRASES = re.compile(
    r"\b(?:"
    r"already\s+(?:been\s+)?implemented"
    r"|already\s+exists?"
    r"|already\s+complete(?:d)?"
    r"|no\s+changes\s+(?:are\s+)?(?:needed|required|necessary)"
    r"|nothing\s+to\s+change"
    r"|(?:phase|task)\s+is\s+(?:already\s+)?complete"
    r")\b",
    re.IGNORECASE,
)
FILES_KEY = re.compile(r"""\\*["']files\\*["']""")
SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+|\n+")

_decoder = json.JSONDecoder()


@dataclass(frozen=True)
class TextStrategy:
    name: str
    apply: Callable[[str, ReconcilerSettings], Iterator[dict[str, Any]]]


def _as_files_object(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict) and isinstance(value.get("files"), list):
        return value
    return None


def load_files_object(candidate: str) -> dict[str, Any] | None:
    """Parse ``candidate`` as JSON and keep it only if it has a ``files`` list."""
    try:
        return _as_files_object(json.loads(candidate))
    except (ValueError, RecursionError):
        return None


def load_sanitized_files_object(candidate: str) -> dict[str, Any] | None:
    """Like ``load_files_object`` but retries once after escaping raw control characters.

    The retry only happens when the first parse failed because of a control
    character inside a string.
    """
    try:
        return _as_files_object(json.loads(candidate))
    except json.JSONDecodeError as error:
        if not is_control_character_error(error):
            return None
    except RecursionError:
        return None
    return load_files_object(sanitize_control_characters(candidate))


def candidate_spans(text: str) -> Iterator[str]:
    """Yield substrings worth parsing: fenced bodies, ``files`` objects, the whole text."""
    for match in FENCED_BLOCK.finditer(text):
        body = match.group(1).strip()
        if '"files"' in body:
            yield body
    yield from iter_key_objects(text, "files")
    yield text.strip()


def fenced_block(text: str, settings: ReconcilerSettings) -> Iterator[dict[str, Any]]:
    for match in FENCED_BLOCK.finditer(text):
        body = match.group(1).strip()
        if '"files"' in body and '"summary"' in body:
            parsed = load_files_object(body)
            if parsed is not None:
                yield parsed


def prose_prefix(text: str, settings: ReconcilerSettings) -> Iterator[dict[str, Any]]:
    """Strip conversational lead-in lines, then parse what follows.

    Stripping stops once ``max_prose_prefix_chars`` would be exceeded.
    Trailing narration after the object is tolerated.
    """
    remainder = text
    stripped = 0
    changed = True
    while changed:
        changed = False
        for pattern in LEAD_IN_PATTERNS:
            match = pattern.match(remainder)
            if match and match.end() > 0 and stripped + match.end() <= settings.max_prose_prefix_chars:
                remainder = remainder[match.end():]
                stripped += match.end()
                changed = True
    if stripped == 0:
        return

    remainder = LEADING_FENCE.sub("", remainder.lstrip(), count=1)
    try:
        value, _ = _decoder.raw_decode(remainder)
    except (ValueError, RecursionError):
        return
    parsed = _as_files_object(value)
    if parsed is not None:
        yield parsed


def balanced_scan(text: str, settings: ReconcilerSettings) -> Iterator[dict[str, Any]]:
    for span in iter_key_objects(text, "files"):
        parsed = load_files_object(span)
        if parsed is not None:
            yield parsed


def control_char_sanitize(text: str, settings: ReconcilerSettings) -> Iterator[dict[str, Any]]:
    for candidate in candidate_spans(text):
        parsed = load_sanitized_files_object(candidate)
        if parsed is not None:
            yield parsed


def progressive_unescape(text: str, settings: ReconcilerSettings) -> Iterator[dict[str, Any]]:
    """Undo up to ``max_unescape_rounds`` levels of stringification.

    Candidates from round N are all yielded before round N+1 runs.
    """
    current = text
    for _ in range(settings.max_unescape_rounds):
        unescaped = unescape_once(current)
        if unescaped == current:
            return
        current = unescaped
        for candidate in candidate_spans(current):
            parsed = load_sanitized_files_object(candidate)
            if parsed is not None:
                yield parsed


def completion_summary(text: str, settings: ReconcilerSettings) -> str:
    """First sentence longer than the minimum, truncated; the whole text otherwise."""
    stripped = text.strip()
    for sentence in SENTENCE_BREAK.split(stripped):
        sentence = sentence.strip()
        if len(sentence) > settings.completion_summary_min_chars:
            return sentence[: settings.completion_summary_max_chars]
    return stripped[: settings.completion_summary_max_chars]


def already_complete(text: str, settings: ReconcilerSettings) -> Iterator[dict[str, Any]]:
    # A files payload that failed to parse is a failure, not a completion
    if FILES_KEY.search(text):
        return
    if not COMPLETION_PHRASES.search(text):
        return
    summary = completion_summary(text, settings)
    if summary:
        yield {"files": [], "summary": summary}


TEXT_STRATEGIES: tuple[TextStrategy, ...] = (
    TextStrategy("fenced-block", fenced_block),
    TextStrategy("prose-prefix", prose_prefix),
    TextStrategy("balanced-scan", balanced_scan),
    TextStrategy("control-char-sanitize", control_char_sanitize),
    TextStrategy("progressive-unescape", progressive_unescape),
    TextStrategy("already-complete", already_complete),
)
