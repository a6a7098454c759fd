"""
Git repository operations: a working copy per (user, repository), kept in
sync with its remote and changed one operation at a time.
"""
from app.services.git.errors import (
    AddFailed,
    BranchExists,
    BranchNotFound,
    CannotDeleteCurrent,
    CheckoutFailed,
    CloneFailed,
    GitServiceError,
    InvalidIdentifier,
    InvalidInput,
    InvalidName,
    NotAFile,
    NotFound,
    PathNotFound,
    PathOutsideWorkspace,
    RepositoryNotFound,
    SyncFailed,
    VcsError,
)
from app.services.git.locking import LockTimeoutError, WorkspaceLockManager, workspace_locks
from app.services.git.results import (
    Branch,
    ChangeStats,
    Commit,
    Contributor,
    Failure,
    FileEntry,
    FileKind,
    MergeResult,
    MergeType,
    OperationResult,
    RepositoryStats,
    RepositoryStatus,
    StatusEntry,
    Success,
    UploadedFile,
    WorkingCopyState,
)
from app.services.git.service import GitService, author_identity
from app.services.git.workspace import WorkspaceResolver, contain

__all__ = [
    "AddFailed",
    "Branch",
    "BranchExists",
    "BranchNotFound",
    "CannotDeleteCurrent",
    "ChangeStats",
    "CheckoutFailed",
    "CloneFailed",
    "Commit",
    "Contributor",
    "Failure",
    "FileEntry",
    "FileKind",
    "GitService",
    "GitServiceError",
    "InvalidIdentifier",
    "InvalidInput",
    "InvalidName",
    "LockTimeoutError",
    "MergeResult",
    "MergeType",
    "NotAFile",
    "NotFound",
    "OperationResult",
    "PathNotFound",
    "PathOutsideWorkspace",
    "RepositoryNotFound",
    "RepositoryStats",
    "RepositoryStatus",
    "StatusEntry",
    "Success",
    "SyncFailed",
    "UploadedFile",
    "VcsError",
    "WorkingCopyState",
    "WorkspaceLockManager",
    "WorkspaceResolver",
    "author_identity",
    "contain",
    "workspace_locks",
]
