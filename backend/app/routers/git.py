"""
Git repository operations API.

Every endpoint is scoped to the authenticated user's repository and goes
through GitService, which serializes work on the same working copy.
"""
import logging
from contextlib import contextmanager

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import get_db
from app.schemas import (
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
from app.services.auth import Identity, get_current_user
from app.services.git import (
    CannotDeleteCurrent,
    GitService,
    InvalidInput,
    LockTimeoutError,
    NotAFile,
    NotFound,
    VcsError,
    author_identity,
)
from app.services.metadata_store import RepositoryStore
from app.services.uploads import UploadRejected, read_upload, read_uploads

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/git", tags=["git"])


@contextmanager
def git_errors():
    """Translate git service errors into HTTP responses."""
    try:
        yield
    except (InvalidInput, CannotDeleteCurrent, NotAFile, UploadRejected) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except LockTimeoutError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except VcsError as e:
        logger.error(f"Git operation failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


async def get_git_service(
    repository_id: str,
    user: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> GitService:
    with git_errors():
        return GitService(
            user.user_id,
            repository_id,
            RepositoryStore(db),
            author=author_identity(user.username, settings.commit_email_domain),
            settings=settings,
        )


# -----------------------------------------------------------------------------
# History and branches
# -----------------------------------------------------------------------------

@router.get("/repositories/{repository_id}/commits", response_model=list[CommitRead])
async def list_commits(
    branch: str | None = None,
    limit: int | None = Query(None, ge=1, le=1000),
    git: GitService = Depends(get_git_service),
):
    with git_errors():
        return await git.list_commits(branch=branch, limit=limit)


@router.get("/repositories/{repository_id}/branches", response_model=list[BranchRead])
async def list_branches(git: GitService = Depends(get_git_service)):
    with git_errors():
        return await git.list_branches()


@router.post("/repositories/{repository_id}/branches", response_model=BranchRead, status_code=201)
async def create_branch(body: BranchCreate, git: GitService = Depends(get_git_service)):
    with git_errors():
        return await git.create_branch(body.name, body.from_branch)


@router.delete("/repositories/{repository_id}/branches/{name:path}", response_model=MessageResponse)
async def delete_branch(name: str, git: GitService = Depends(get_git_service)):
    with git_errors():
        await git.delete_branch(name)
    return MessageResponse(message=f"Branch '{name}' deleted")


@router.post("/repositories/{repository_id}/merge", response_model=MergeResultRead)
async def merge_branch(body: MergeRequest, git: GitService = Depends(get_git_service)):
    """Conflicts are reported with success=false, not as an HTTP error."""
    with git_errors():
        return await git.merge_branch(body.source_branch, body.target_branch)


# -----------------------------------------------------------------------------
# Files
# -----------------------------------------------------------------------------

@router.get("/repositories/{repository_id}/files", response_model=list[FileEntryRead])
async def list_files(path: str = "", git: GitService = Depends(get_git_service)):
    with git_errors():
        return await git.list_files(path)


@router.get("/repositories/{repository_id}/files/content", response_model=FileContentResponse)
async def read_file_content(path: str, git: GitService = Depends(get_git_service)):
    with git_errors():
        content = await git.read_file_content(path)
    return FileContentResponse(path=path, content=content)


@router.post("/repositories/{repository_id}/files/upload", response_model=MessageResponse)
async def upload_file(
    file: UploadFile = File(...),
    path: str = Form(""),
    git: GitService = Depends(get_git_service),
    settings: Settings = Depends(get_settings),
):
    with git_errors():
        uploaded = await read_upload(file, settings)
        written = await git.upload_file(uploaded, path)
    return MessageResponse(message=f"Uploaded {written}")


@router.post("/repositories/{repository_id}/files/upload-multiple", response_model=MessageResponse)
async def upload_files(
    files: list[UploadFile] = File(...),
    path: str = Form(""),
    git: GitService = Depends(get_git_service),
    settings: Settings = Depends(get_settings),
):
    with git_errors():
        uploaded = await read_uploads(files, settings)
        written = await git.upload_files(uploaded, path)
    return MessageResponse(message=f"Uploaded {len(written)} files")


@router.put("/repositories/{repository_id}/files/save", response_model=MessageResponse)
async def save_file(body: SaveFileRequest, git: GitService = Depends(get_git_service)):
    with git_errors():
        written = await git.save_file(body.path, body.content)
    return MessageResponse(message=f"Saved {written}")


@router.post("/repositories/{repository_id}/directories", response_model=MessageResponse)
async def create_directory(body: DirectoryCreate, git: GitService = Depends(get_git_service)):
    with git_errors():
        created = await git.create_directory(body.path)
    return MessageResponse(message=f"Created directory {created}")


@router.delete("/repositories/{repository_id}/files/delete", response_model=MessageResponse)
async def delete_file(path: str, git: GitService = Depends(get_git_service)):
    with git_errors():
        deleted = await git.delete_file(path)
    if not deleted:
        return MessageResponse(message=f"Nothing to delete at {path}")
    return MessageResponse(message=f"Deleted {path}")


@router.put("/repositories/{repository_id}/files/rename", response_model=MessageResponse)
async def rename_file(body: RenameRequest, git: GitService = Depends(get_git_service)):
    with git_errors():
        renamed = await git.rename_file(body.old_path, body.new_path)
    return MessageResponse(message=f"Renamed {body.old_path} to {renamed}")


# -----------------------------------------------------------------------------
# Stage, commit, push
# -----------------------------------------------------------------------------

@router.post("/repositories/{repository_id}/add", response_model=AddResponse)
async def add_files(body: AddRequest, git: GitService = Depends(get_git_service)):
    with git_errors():
        staged = await git.add_files(body.paths)
    return AddResponse(message=f"Staged {len(staged)} files", staged=staged)


@router.post("/repositories/{repository_id}/commit", response_model=OperationResultRead)
async def commit_changes(body: CommitRequest, git: GitService = Depends(get_git_service)):
    with git_errors():
        result = await git.commit_changes(body.message)
    return OperationResultRead.from_result(result)


@router.post("/repositories/{repository_id}/push", response_model=OperationResultRead)
async def push_changes(git: GitService = Depends(get_git_service)):
    with git_errors():
        result = await git.push_changes()
    return OperationResultRead.from_result(result, pushed=True)


# -----------------------------------------------------------------------------
# Status and stats
# -----------------------------------------------------------------------------

@router.get("/repositories/{repository_id}/status", response_model=RepositoryStatusRead)
async def get_status(git: GitService = Depends(get_git_service)):
    with git_errors():
        status = await git.get_status()
    return RepositoryStatusRead.from_status(status)


@router.get("/repositories/{repository_id}/stats", response_model=RepositoryStatsRead)
async def get_stats(git: GitService = Depends(get_git_service)):
    with git_errors():
        return await git.get_stats()
