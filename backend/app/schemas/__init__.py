from app.schemas.repository import RepositoryCreate, RepositoryRead, RepositoryUpdate
from app.schemas.git import (
    AddRequest,
    AddResponse,
    BranchCreate,
    BranchRead,
    CommitRead,
    CommitRequest,
    DirectoryCreate,
    FileContentResponse,
    FileEntryRead,
    MergeRequest,
    MergeResultRead,
    MessageResponse,
    OperationResultRead,
    RenameRequest,
    RepositoryStatsRead,
    RepositoryStatusRead,
    SaveFileRequest,
)

__all__ = [
    "RepositoryCreate",
    "RepositoryRead",
    "RepositoryUpdate",
    "AddRequest",
    "AddResponse",
    "BranchCreate",
    "BranchRead",
    "CommitRead",
    "CommitRequest",
    "DirectoryCreate",
    "FileContentResponse",
    "FileEntryRead",
    "MergeRequest",
    "MergeResultRead",
    "MessageResponse",
    "OperationResultRead",
    "RenameRequest",
    "RepositoryStatsRead",
    "RepositoryStatusRead",
    "SaveFileRequest",
]
