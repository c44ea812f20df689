# src/fixer/model.py
from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class Fix(BaseModel):
    """
    One replacement inside one file. An empty `original_content` means
    `fixed_content` is appended to the file (stylesheet rules).
    """
    model_config = ConfigDict(frozen=True)

    file_path: str
    original_content: str
    fixed_content: str
    description: str
    rule_ids_fixed: List[str] = Field(default_factory=list)
    templated: bool = False

    @property
    def is_append(self) -> bool:
        return self.original_content == ""


class FixFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_path: str
    description: str
    reason: str
    rule_ids: List[str] = Field(default_factory=list)


class ChangesetSummary(BaseModel):
    files_touched: List[str] = Field(default_factory=list)
    descriptions: List[str] = Field(default_factory=list)
    templated_fixes: int = 0
    markup_fixes: int = 0
    failed_files: List[str] = Field(default_factory=list)


class Changeset(BaseModel):
    """The full set of file edits of one fix run, ready for a source host."""

    branch_name: str
    title: str
    body: str
    fixes: List[Fix] = Field(default_factory=list, description="Fixes that were applied.")
    files: Dict[str, str] = Field(default_factory=dict, description="Path to full new content.")
    failures: List[FixFailure] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.files

    def summary(self) -> ChangesetSummary:
        return ChangesetSummary(
            files_touched=list(self.files),
            descriptions=[fix.description for fix in self.fixes],
            templated_fixes=sum(1 for fix in self.fixes if fix.templated),
            markup_fixes=sum(1 for fix in self.fixes if not fix.templated),
            failed_files=sorted({failure.file_path for failure in self.failures}),
        )
