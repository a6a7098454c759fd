"""
Counter write back after successful writes.
"""
from datetime import datetime
from pathlib import Path

from app.services.git.plumbing import count_commits, head_sha, local_branches, open_repo
from app.services.metadata_store import RepositoryStore
from app.services.websocket import manager


def read_counters(path: Path) -> tuple[int, int]:
    """(branch_count, commit_count of the current branch)"""
    with open_repo(path) as repo:
        return len(local_branches(repo)), count_commits(repo, head_sha(repo))


class StatsAggregator:
    def __init__(self, store: RepositoryStore):
        self.store = store

    async def record_write(self, repository_id: str, branch_count: int, commit_count: int) -> None:
        """Persist fresh counters and tell dashboard clients."""
        now = datetime.utcnow()
        await self.store.update_counters(
            repository_id,
            branch_count=branch_count,
            commit_count=commit_count,
            last_updated=now,
        )
        await manager.send_repository_updated({
            "id": repository_id,
            "branch_count": branch_count,
            "commit_count": commit_count,
            "last_updated": now.isoformat(),
        })
