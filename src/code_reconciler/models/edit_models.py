"""Models for file edits recovered from model output."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FileOperation(str, Enum):
    """Kind of change a FileEdit applies to its path."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    PATCH = "patch"


class Patch(BaseModel):
    """A search/replace pair describing a localized edit within a file."""

    model_config = ConfigDict(frozen=False, extra="ignore")

    search: str
    replace: str


class FileEdit(BaseModel):
    """One file-level change (create, update, delete, or patch)."""

    model_config = ConfigDict(frozen=False, extra="ignore")

    path: str  # Relative path from repo root
    operation: FileOperation
    content: str | None = None  # Full text for create/update
    patches: list[Patch] | None = None  # Ordered, for patch only

    @field_validator("operation", mode="before")
    @classmethod
    def _lowercase_operation(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _check_operation_payload(self) -> "FileEdit":
        if not self.path.strip():
            raise ValueError("path cannot be empty")
        if self.operation == FileOperation.PATCH and not self.patches:
            raise ValueError(f"{self.path}: operation 'patch' requires a non-empty 'patches' list")
        if self.operation in (FileOperation.CREATE, FileOperation.UPDATE) and self.content is None:
            raise ValueError(
                f"{self.path}: operation '{self.operation.value}' requires 'content'"
            )
        return self


class ReconciliationResult(BaseModel):
    """Accepted output of extraction: ordered file edits plus a summary.

    ``files == []`` with a non-empty summary means "no changes needed",
    which is a success and distinct from an extraction failure.
    """

    model_config = ConfigDict(frozen=False)

    files: list[FileEdit] = Field(default_factory=list)
    summary: str = Field(min_length=1)

    @property
    def is_noop(self) -> bool:
        return not self.files

    def paths(self) -> list[str]:
        return [edit.path for edit in self.files]
