"""Edit-distance similarity and whitespace helpers used by the patch matcher."""

import re

_WHITESPACE_RUN = re.compile(r"\s+")


def levenshtein_distance(first: str, second: str) -> int:
    """Classic dynamic-programming edit distance (insert, delete, substitute)."""
    if first == second:
        return 0
    if not first:
        return len(second)
    if not second:
        return len(first)

    # Keep only two rows; iterate over the shorter string in the inner loop
    if len(first) < len(second):
        first, second = second, first

    previous = list(range(len(second) + 1))
    for i, char_a in enumerate(first, 1):
        current = [i]
        for j, char_b in enumerate(second, 1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(
                    min(previous[j - 1], previous[j], current[j - 1]) + 1
                )
        previous = current
    return previous[-1]


def calculate_similarity(first: str, second: str) -> float:
    """Return ``(longest - distance) / longest``, with 1.0 for two empty strings.

    Symmetric and bounded to [0, 1].
    """
    longer_len = max(len(first), len(second))
    if longer_len == 0:
        return 1.0
    distance = levenshtein_distance(first, second)
    return (longer_len - distance) / longer_len


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space and trim."""
    return _WHITESPACE_RUN.sub(" ", text).strip()


def find_best_matching_line(content: str, search_line: str, threshold: float = 0.7) -> int:
    """Return the 0-based index of the line most similar to ``search_line``.

    Only lines scoring strictly above ``threshold`` qualify; -1 if none do.
    """
    normalized_search = normalize_whitespace(search_line)
    best_index = -1
    best_similarity = threshold
    for index, line in enumerate(content.split("\n")):
        similarity = calculate_similarity(normalized_search, normalize_whitespace(line))
        if similarity > best_similarity:
            best_similarity = similarity
            best_index = index
    return best_index
