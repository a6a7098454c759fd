# Cross-cutting test utilities shared across all test types

from .git_helpers import (
    branch_head,
    commit_to_branch,
    file_at,
    make_remote,
)

from .mocks import (
    FakeRepositoryStore,
    MockWebSocket,
    StoredRepository,
    WebSocketClosed,
)

__all__ = [
    # Git helpers
    "make_remote",
    "commit_to_branch",
    "branch_head",
    "file_at",
    # Mocks
    "FakeRepositoryStore",
    "StoredRepository",
    "MockWebSocket",
    "WebSocketClosed",
]
