"""
Test doubles for collaborators of the git service.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class WebSocketClosed(Exception):
    """Raised when sending on a closed mock WebSocket."""
    pass


class MockWebSocket:
    """
    Mock WebSocket for ConnectionManager tests.

    Usage:
        ws = MockWebSocket()
        await manager.connect(ws)
        await manager.send_repository_updated({...})
        assert ws.events[0]["type"] == "repository_updated"
    """

    def __init__(self):
        self.accepted: bool = False
        self.sent_messages: list[str] = []
        self._closed: bool = False

    async def accept(self):
        self.accepted = True

    async def send_text(self, data: str):
        if self._closed:
            raise WebSocketClosed("WebSocket is closed")
        self.sent_messages.append(data)

    def close(self):
        self._closed = True

    @property
    def events(self) -> list[dict[str, Any]]:
        return [json.loads(m) for m in self.sent_messages]


@dataclass
class StoredRepository:
    """Stand-in for a Repository row."""
    id: str
    user_id: int
    url: str
    name: str = "demo"
    branch_count: int = 0
    commit_count: int = 0
    last_updated: datetime | None = None


@dataclass
class FakeRepositoryStore:
    """
    In-memory RepositoryStore.

    Records every counter write so tests can check when write back happens.
    """
    repositories: dict[str, StoredRepository] = field(default_factory=dict)
    counter_updates: list[dict[str, Any]] = field(default_factory=list)

    def add(self, repository_id: str, user_id: int, url: str) -> StoredRepository:
        record = StoredRepository(id=repository_id, user_id=user_id, url=url)
        self.repositories[repository_id] = record
        return record

    async def find_repository(self, repository_id: str, owner_user_id: int):
        record = self.repositories.get(str(repository_id))
        if record is None or record.user_id != int(owner_user_id):
            return None
        return record

    async def update_counters(self, repository_id: str, *, branch_count=None, commit_count=None, last_updated=None):
        record = self.repositories[repository_id]
        if branch_count is not None:
            record.branch_count = branch_count
        if commit_count is not None:
            record.commit_count = commit_count
        record.last_updated = last_updated
        self.counter_updates.append({
            "repository_id": repository_id,
            "branch_count": branch_count,
            "commit_count": commit_count,
        })
