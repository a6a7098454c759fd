from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import get_db
from app.models import Repository
from app.schemas import RepositoryCreate, RepositoryRead, RepositoryUpdate
from app.services.auth import Identity, get_current_user
from app.services.git import WorkspaceResolver
from app.services.websocket import manager

router = APIRouter(prefix="/api/repositories", tags=["repositories"])


async def _get_owned(repository_id: str, user: Identity, db: AsyncSession) -> Repository:
    result = await db.execute(
        select(Repository).where(Repository.id == repository_id, Repository.user_id == user.user_id)
    )
    repository = result.scalar_one_or_none()
    if not repository:
        raise HTTPException(status_code=404, detail="Repository not found")
    return repository


@router.get("", response_model=list[RepositoryRead])
async def list_repositories(
    user: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Repository).where(Repository.user_id == user.user_id).order_by(Repository.created_at)
    )
    return result.scalars().all()


@router.post("", response_model=RepositoryRead, status_code=201)
async def create_repository(
    repository: RepositoryCreate,
    user: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    db_repository = Repository(**repository.model_dump(), user_id=user.user_id)
    db.add(db_repository)
    await db.flush()
    # Informational only; operations always recompute the path
    resolver = WorkspaceResolver(settings.workspace_root)
    db_repository.local_path = str(resolver.root / str(user.user_id) / db_repository.id)
    await db.commit()
    await db.refresh(db_repository)
    await manager.send_repository_created(
        RepositoryRead.model_validate(db_repository).model_dump(mode="json")
    )
    return db_repository


@router.get("/{repository_id}", response_model=RepositoryRead)
async def get_repository(
    repository_id: str,
    user: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _get_owned(repository_id, user, db)


@router.patch("/{repository_id}", response_model=RepositoryRead)
async def update_repository(
    repository_id: str,
    update: RepositoryUpdate,
    user: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    repository = await _get_owned(repository_id, user, db)

    update_data = update.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(repository, key, value)

    await db.commit()
    await db.refresh(repository)
    await manager.send_repository_updated(
        RepositoryRead.model_validate(repository).model_dump(mode="json")
    )
    return repository


@router.delete("/{repository_id}", status_code=204)
async def delete_repository(
    repository_id: str,
    user: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    repository = await _get_owned(repository_id, user, db)
    # The working copy on disk is left for an administrator to remove
    await db.delete(repository)
    await db.commit()
    await manager.send_repository_deleted(repository_id)
