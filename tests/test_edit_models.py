"""Tests for edit and outcome models."""

import pytest
from pydantic import ValidationError

from code_reconciler.models import (
    MAX_SAMPLE_CHARS,
    ExtractionFailure,
    FailureKind,
    FileEdit,
    FileOperation,
    MatchNotFound,
    MatchResult,
    MatchStrategy,
    Patch,
    ReconciliationResult,
)


def test_file_edit_create():
    """FileEdit can be created for a create operation with content."""
    edit = FileEdit(path="a.ts", operation="create", content="x")
    assert edit.operation == FileOperation.CREATE
    assert edit.content == "x"
    assert edit.patches is None


@pytest.mark.parametrize("raw", ["Create", "CREATE", " create "])
def test_operation_is_case_insensitive(raw):
    edit = FileEdit(path="a.ts", operation=raw, content="")
    assert edit.operation == FileOperation.CREATE


def test_create_requires_content():
    with pytest.raises(ValidationError, match="requires 'content'"):
        FileEdit(path="a.ts", operation="update")


def test_empty_content_is_allowed_for_create():
    """An empty file is still content."""
    edit = FileEdit(path="empty.txt", operation="create", content="")
    assert edit.content == ""


def test_patch_requires_patches():
    with pytest.raises(ValidationError, match="non-empty 'patches'"):
        FileEdit(path="a.ts", operation="patch")
    with pytest.raises(ValidationError):
        FileEdit(path="a.ts", operation="patch", patches=[])


def test_delete_needs_nothing_else():
    edit = FileEdit(path="a.ts", operation="delete")
    assert edit.operation == FileOperation.DELETE


def test_empty_path_rejected():
    with pytest.raises(ValidationError, match="path cannot be empty"):
        FileEdit(path="   ", operation="delete")


def test_unknown_operation_rejected():
    with pytest.raises(ValidationError):
        FileEdit(path="a.ts", operation="rename")


def test_extra_keys_are_ignored():
    edit = FileEdit(path="a.ts", operation="delete", reason="cleanup")
    assert not hasattr(edit, "reason")


def test_patch_edit_keeps_patch_order():
    edit = FileEdit(
        path="a.ts",
        operation="patch",
        patches=[{"search": "a", "replace": "b"}, {"search": "c", "replace": "d"}],
    )
    assert [p.search for p in edit.patches] == ["a", "c"]
    assert isinstance(edit.patches[0], Patch)


def test_reconciliation_result_requires_summary():
    with pytest.raises(ValidationError):
        ReconciliationResult(files=[], summary="")


def test_reconciliation_result_noop_and_paths(sample_payload):
    result = ReconciliationResult.model_validate(sample_payload)
    assert result.is_noop is False
    assert result.paths() == ["src/new.ts", "src/old.ts", "src/app.ts"]
    assert ReconciliationResult(summary="already done").is_noop is True


def test_invalid_file_rejects_whole_result():
    with pytest.raises(ValidationError):
        ReconciliationResult.model_validate(
            {
                "files": [
                    {"path": "ok.ts", "operation": "delete"},
                    {"path": "bad.ts", "operation": "patch"},
                ],
                "summary": "s",
            }
        )


def test_extraction_failure_defaults():
    failure = ExtractionFailure()
    assert failure.kind == FailureKind.EXTRACTION_FAILED
    assert failure.attempted_strategies == []
    assert failure.sample == ""


def test_extraction_failure_sample_is_bounded():
    with pytest.raises(ValidationError):
        ExtractionFailure(sample="x" * (MAX_SAMPLE_CHARS + 1))


def test_match_result_is_frozen():
    result = MatchResult(
        matched_start=0,
        matched_end=1,
        start_offset=0,
        end_offset=3,
        strategy=MatchStrategy.EXACT,
        similarity=1.0,
    )
    with pytest.raises(ValidationError):
        result.similarity = 0.5


def test_match_result_similarity_bounds():
    with pytest.raises(ValidationError):
        MatchResult(
            matched_start=0,
            matched_end=1,
            start_offset=0,
            end_offset=1,
            strategy="exact",
            similarity=1.5,
        )


def test_match_not_found_defaults():
    miss = MatchNotFound(reason="nope")
    assert miss.kind == FailureKind.PATCH_NOT_FOUND
    assert miss.best_score is None
