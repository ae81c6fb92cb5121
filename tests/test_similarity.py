"""Tests for edit-distance similarity helpers."""

import pytest

from code_reconciler.utils.similarity import (
    calculate_similarity,
    find_best_matching_line,
    levenshtein_distance,
    normalize_whitespace,
)


@pytest.mark.parametrize(
    ("first", "second", "expected"),
    [
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("", "abc", 3),
        ("abc", "", 3),
        ("abc", "abc", 0),
        ("", "", 0),
    ],
)
def test_levenshtein_distance(first, second, expected):
    assert levenshtein_distance(first, second) == expected


@pytest.mark.parametrize(
    ("first", "second"),
    [
        ("kitten", "sitting"),
        ("", "abc"),
        ("return total;", "return  total"),
        ("function foo() {", "function bar() {"),
    ],
)
def test_similarity_is_symmetric(first, second):
    assert calculate_similarity(first, second) == calculate_similarity(second, first)


@pytest.mark.parametrize("text", ["", "a", "const x = 1;", "  \t "])
def test_similarity_of_identical_strings_is_one(text):
    assert calculate_similarity(text, text) == 1.0


def test_similarity_values():
    assert calculate_similarity("kitten", "sitting") == pytest.approx(4 / 7)
    assert calculate_similarity("abc", "") == 0.0
    assert 0.0 <= calculate_similarity("abc", "xyz") <= 1.0


def test_normalize_whitespace():
    assert normalize_whitespace("  a \t b\r\n  c ") == "a b c"
    assert normalize_whitespace("\n\n") == ""


def test_find_best_matching_line():
    content = "alpha\nbeta gamma\ndelta"
    assert find_best_matching_line(content, "beta   gamma") == 1


def test_find_best_matching_line_none_above_threshold():
    assert find_best_matching_line("alpha\nbeta", "zzzzzz") == -1
