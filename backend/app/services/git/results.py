"""
Value types returned by git repository operations.

All of these are read-only projections, recomputed on every call.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class FileKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class WorkingCopyState(str, Enum):
    """Where a working copy sits in the edit -> stage -> commit -> push cycle."""
    CLEAN = "clean"
    MODIFIED = "modified"
    STAGED = "staged"
    COMMITTED = "committed"  # local commits not yet pushed
    SYNCED = "synced"


class MergeType(str, Enum):
    UP_TO_DATE = "up-to-date"
    FAST_FORWARD = "fast-forward"
    MERGE = "merge"


@dataclass(frozen=True)
class ChangeStats:
    additions: int = 0
    deletions: int = 0
    files_touched: int = 0


@dataclass(frozen=True)
class Commit:
    hash: str
    message: str
    author_name: str
    author_email: str
    date: datetime
    change_stats: ChangeStats = field(default_factory=ChangeStats)


@dataclass(frozen=True)
class Branch:
    name: str
    is_current: bool
    head_commit_hash: str
    commit_count: int = 0


@dataclass(frozen=True)
class FileEntry:
    relative_path: str
    name: str
    kind: FileKind
    last_modified: datetime
    size_bytes: Optional[int] = None


@dataclass(frozen=True)
class StatusEntry:
    """Two-letter porcelain status of one path: index column, working tree column."""
    path: str
    index_state: str
    working_tree_state: str

    @property
    def is_untracked(self) -> bool:
        return self.index_state == "?" and self.working_tree_state == "?"

    @property
    def is_staged(self) -> bool:
        return self.index_state not in (" ", "?")

    @property
    def is_modified(self) -> bool:
        return self.working_tree_state not in (" ", "?")


@dataclass(frozen=True)
class RepositoryStatus:
    current_branch: str
    ahead_count: int
    behind_count: int
    tracking_ref: str
    entries: tuple[StatusEntry, ...] = ()

    @property
    def staged(self) -> list[str]:
        return [e.path for e in self.entries if e.is_staged]

    @property
    def modified(self) -> list[str]:
        return [e.path for e in self.entries if e.is_modified]

    @property
    def untracked(self) -> list[str]:
        return [e.path for e in self.entries if e.is_untracked]

    @property
    def state(self) -> WorkingCopyState:
        if self.staged:
            return WorkingCopyState.STAGED
        if self.modified or self.untracked:
            return WorkingCopyState.MODIFIED
        if self.ahead_count > 0:
            return WorkingCopyState.COMMITTED
        if self.tracking_ref:
            return WorkingCopyState.SYNCED
        return WorkingCopyState.CLEAN


@dataclass(frozen=True)
class Contributor:
    name: str
    email: str
    commits: int


@dataclass(frozen=True)
class RepositoryStats:
    total_commits: int
    total_branches: int
    active_branches: int
    latest_commit: Optional[Commit]
    contributors: tuple[Contributor, ...] = ()


@dataclass(frozen=True)
class MergeResult:
    success: bool
    message: str
    merge_type: Optional[MergeType] = None
    commit: Optional[str] = None
    conflicts: tuple[str, ...] = ()


@dataclass(frozen=True)
class Success:
    message: str
    ref: Optional[str] = None


@dataclass(frozen=True)
class Failure:
    message: str
    error: Optional[str] = None


OperationResult = Union[Success, Failure]


@dataclass(frozen=True)
class UploadedFile:
    """A file received by the upload layer."""
    original_name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)
