"""
Request and response bodies for the git API.

Responses are built from the frozen result types in app.services.git.results.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.services.git.results import (
    Failure,
    FileKind,
    MergeType,
    OperationResult,
    RepositoryStatus,
    Success,
    WorkingCopyState,
)


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------

class BranchCreate(BaseModel):
    name: str
    from_branch: Optional[str] = None


class MergeRequest(BaseModel):
    source_branch: str
    target_branch: str


class SaveFileRequest(BaseModel):
    path: str
    content: str


class DirectoryCreate(BaseModel):
    path: str


class RenameRequest(BaseModel):
    old_path: str
    new_path: str


class AddRequest(BaseModel):
    paths: list[str] = Field(..., min_length=1)


class CommitRequest(BaseModel):
    message: str


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------

class MessageResponse(BaseModel):
    message: str


class AddResponse(MessageResponse):
    staged: list[str]


class FileContentResponse(BaseModel):
    path: str
    content: str


class ChangeStatsRead(BaseModel):
    additions: int
    deletions: int
    files_touched: int

    class Config:
        from_attributes = True


class CommitRead(BaseModel):
    hash: str
    message: str
    author_name: str
    author_email: str
    date: datetime
    change_stats: ChangeStatsRead

    class Config:
        from_attributes = True


class BranchRead(BaseModel):
    name: str
    is_current: bool
    head_commit_hash: str
    commit_count: int

    class Config:
        from_attributes = True


class FileEntryRead(BaseModel):
    relative_path: str
    name: str
    kind: FileKind
    size_bytes: Optional[int] = None
    last_modified: datetime

    class Config:
        from_attributes = True


class StatusEntryRead(BaseModel):
    path: str
    index_state: str
    working_tree_state: str

    class Config:
        from_attributes = True


class RepositoryStatusRead(BaseModel):
    current_branch: str
    ahead_count: int
    behind_count: int
    tracking_ref: str
    state: WorkingCopyState
    staged: list[str]
    modified: list[str]
    untracked: list[str]
    entries: list[StatusEntryRead]

    @classmethod
    def from_status(cls, status: RepositoryStatus) -> "RepositoryStatusRead":
        return cls(
            current_branch=status.current_branch,
            ahead_count=status.ahead_count,
            behind_count=status.behind_count,
            tracking_ref=status.tracking_ref,
            state=status.state,
            staged=status.staged,
            modified=status.modified,
            untracked=status.untracked,
            entries=[StatusEntryRead.model_validate(e) for e in status.entries],
        )


class ContributorRead(BaseModel):
    name: str
    email: str
    commits: int

    class Config:
        from_attributes = True


class RepositoryStatsRead(BaseModel):
    total_commits: int
    total_branches: int
    active_branches: int
    latest_commit: Optional[CommitRead] = None
    contributors: list[ContributorRead]

    class Config:
        from_attributes = True


class MergeResultRead(BaseModel):
    success: bool
    message: str
    merge_type: Optional[MergeType] = None
    commit: Optional[str] = None
    conflicts: list[str]

    class Config:
        from_attributes = True


class OperationResultRead(BaseModel):
    """Wire form of Success | Failure."""
    success: bool
    message: str
    commit: Optional[str] = None
    pushed: Optional[bool] = None
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: OperationResult, *, pushed: bool = False) -> "OperationResultRead":
        if isinstance(result, Success):
            return cls(
                success=True,
                message=result.message,
                commit=result.ref,
                pushed=True if pushed else None,
            )
        if isinstance(result, Failure):
            return cls(
                success=False,
                message=result.message,
                pushed=False if pushed else None,
                error=result.error,
            )
        raise TypeError(f"Not an operation result: {result!r}")
