"""Tests for applying matches, patches and file edits."""

import pytest

from code_reconciler.matching import (
    LowConfidenceRejectedError,
    PatchApplicationError,
    PatchNotFoundError,
    apply_file_edit,
    apply_match,
    apply_patch,
    apply_patches,
)
from code_reconciler.models import (
    FailureKind,
    FileEdit,
    MatchResult,
    MatchStrategy,
    Patch,
)


def test_apply_match_replaces_only_span():
    match = MatchResult(
        matched_start=0,
        matched_end=1,
        start_offset=4,
        end_offset=7,
        strategy=MatchStrategy.EXACT,
        similarity=1.0,
    )
    assert apply_match("abc old xyz", match, "new") == "abc new xyz"


def test_apply_patch_returns_match(matcher):
    new_text, used = apply_patch("x = 1\n", Patch(search="x = 1", replace="x = 2"), matcher)
    assert new_text == "x = 2\n"
    assert used.strategy == MatchStrategy.EXACT


def test_apply_patch_miss_raises_and_leaves_text(matcher):
    original = "print('hello')\n"
    with pytest.raises(PatchNotFoundError) as exc_info:
        apply_patch(original, Patch(search="completely absent text", replace="x"), matcher)
    assert exc_info.value.outcome.kind == FailureKind.PATCH_NOT_FOUND
    assert "completely absent text" in str(exc_info.value)
    assert original == "print('hello')\n"


def test_apply_patch_low_confidence_error(matcher):
    search = (
        "// totally different\n"
        "function loadUser(a, b, c, d) {\n"
        "  let x = compute(a) * compute(b) + compute(c) - compute(d);\n"
        "}"
    )
    with pytest.raises(LowConfidenceRejectedError) as exc_info:
        apply_patch("module.exports = { loadUser };\n", Patch(search=search, replace="x"), matcher)
    assert exc_info.value.outcome.best_score is not None


def test_apply_patches_in_order(matcher):
    text = "a = 1\nb = 2\n"
    patches = [
        Patch(search="a = 1", replace="a = 10"),
        Patch(search="a = 10\nb = 2", replace="c = 3"),
    ]
    new_text, matches = apply_patches(text, patches, matcher)
    assert new_text == "c = 3\n"
    assert [m.strategy for m in matches] == [MatchStrategy.EXACT, MatchStrategy.EXACT]


def test_apply_patches_is_all_or_nothing(matcher):
    patches = [
        Patch(search="a = 1", replace="a = 10"),
        Patch(search="not in the file at all", replace=""),
    ]
    with pytest.raises(PatchNotFoundError):
        apply_patches("a = 1\n", patches, matcher)


def test_apply_file_edit_create_update_delete():
    create = FileEdit(path="n.py", operation="create", content="new\n")
    update = FileEdit(path="n.py", operation="update", content="updated\n")
    delete = FileEdit(path="n.py", operation="delete")
    assert apply_file_edit(None, create) == "new\n"
    assert apply_file_edit("old\n", update) == "updated\n"
    assert apply_file_edit("old\n", delete) is None


def test_apply_file_edit_patch():
    edit = FileEdit(
        path="app.ts",
        operation="patch",
        patches=[{"search": "const x = 1;", "replace": "const x = 2;"}],
    )
    assert apply_file_edit("const x = 1;\nconst y = 1;\n", edit) == "const x = 2;\nconst y = 1;\n"


def test_apply_file_edit_patch_missing_file():
    edit = FileEdit(path="app.ts", operation="patch", patches=[{"search": "a", "replace": "b"}])
    with pytest.raises(PatchApplicationError, match="missing file"):
        apply_file_edit(None, edit)
