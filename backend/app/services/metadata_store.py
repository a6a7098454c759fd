"""
Repository metadata access for the git services.

Owns the two queries the git layer needs: an owner-scoped lookup and the
counter write back.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Repository

logger = logging.getLogger(__name__)


class RepositoryStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_repository(self, repository_id: str, owner_user_id: int) -> Optional[Repository]:
        """Repository with this id owned by this user, or None."""
        result = await self.db.execute(
            select(Repository).where(
                Repository.id == str(repository_id),
                Repository.user_id == int(owner_user_id),
            )
        )
        return result.scalar_one_or_none()

    async def update_counters(
        self,
        repository_id: str,
        *,
        branch_count: Optional[int] = None,
        commit_count: Optional[int] = None,
        last_updated: Optional[datetime] = None,
    ) -> None:
        values = {"last_updated": last_updated or datetime.utcnow()}
        if branch_count is not None:
            values["branch_count"] = branch_count
        if commit_count is not None:
            values["commit_count"] = commit_count

        await self.db.execute(
            update(Repository).where(Repository.id == str(repository_id)).values(**values)
        )
        await self.db.commit()
        logger.info(f"Updated counters for repository {repository_id}: {values}")
