"""String/escape-aware scanning over JSON-ish text.

Every function here walks text with the same two flags: ``in_string``
flips on an unescaped double quote and ``escape_next`` is a one-shot flag
set by a backslash. Braces only count while outside a string.
"""

import json
import re
from collections.abc import Iterator

_CONTROL_ESCAPES = {"\n": "\\n", "\t": "\\t", "\r": "\\r"}
_UNESCAPES = {"n": "\n", '"': '"', "\\": "\\"}
_ESCAPED_SEQUENCE = re.compile(r'\\(["\\n])')

# How many opening braces before a key occurrence are tried as object starts
MAX_START_CANDIDATES = 3


def find_balanced_end(text: str, start: int) -> int | None:
    """Return the index one past the brace that closes ``text[start]``.

    ``text[start]`` must be ``{``. Returns None when the object never closes.
    """
    if start < 0 or start >= len(text) or text[start] != "{":
        return None

    depth = 0
    in_string = False
    escape_next = False
    for index in range(start, len(text)):
        char = text[index]
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def iter_key_objects(text: str, key: str = "files") -> Iterator[str]:
    """Yield balanced ``{...}`` spans that enclose an occurrence of ``"key":``.

    Occurrences are visited in text order. For each one the nearest opening
    braces before it are tried as the object start, so prose braces or a
    brace inside an earlier string value do not hide the real object.
    """
    key_pattern = re.compile(r'"' + re.escape(key) + r'"\s*:')
    seen: set[tuple[int, int]] = set()
    for match in key_pattern.finditer(text):
        search_end = match.start()
        for _ in range(MAX_START_CANDIDATES):
            start = text.rfind("{", 0, search_end)
            if start == -1:
                break
            end = find_balanced_end(text, start)
            if end is not None and end >= match.end() and (start, end) not in seen:
                seen.add((start, end))
                yield text[start:end]
            search_end = start


def sanitize_control_characters(text: str) -> str:
    """Escape raw control characters that sit inside JSON string literals.

    Newline, tab and carriage return become ``\\n``, ``\\t`` and ``\\r``;
    any other C0 control character becomes a ``\\u00XX`` escape. Characters
    outside strings (structural whitespace) are left alone.
    """
    output: list[str] = []
    in_string = False
    escape_next = False
    for char in text:
        if in_string and ord(char) < 0x20:
            output.append(_CONTROL_ESCAPES.get(char, f"\\u{ord(char):04x}"))
            escape_next = False
            continue
        output.append(char)
        if escape_next:
            escape_next = False
        elif char == "\\":
            escape_next = True
        elif char == '"':
            in_string = not in_string
    return "".join(output)


def unescape_once(text: str) -> str:
    """Undo one level of stringification: ``\\n``, ``\\"`` and ``\\\\``.

    Runs as a single left-to-right pass so an escaped backslash is consumed
    before the character that follows it.
    """
    return _ESCAPED_SEQUENCE.sub(lambda match: _UNESCAPES[match.group(1)], text)


def is_control_character_error(error: json.JSONDecodeError) -> bool:
    return "control character" in error.msg.lower()
