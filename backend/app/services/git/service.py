"""
GitService - the entry point for every repository operation.

One instance serves one (user, repository) pair for one request. Every
call runs the same sequence:

1. Validate identifiers and compute the working copy path
2. Take the per-workspace lock
3. Clone or pull so the working copy is current
4. Run the operation in a worker thread
5. After a successful write, store fresh counters
6. Release the lock
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from app.config import Settings, get_settings
from app.services.git.errors import VcsError
from app.services.git.files import FileOperations
from app.services.git.initializer import RepositoryInitializer
from app.services.git.locking import WorkspaceLockManager, workspace_locks
from app.services.git.reads import ReadOperations
from app.services.git.results import (
    Branch,
    Commit,
    Failure,
    FileEntry,
    MergeResult,
    OperationResult,
    RepositoryStats,
    RepositoryStatus,
    Success,
    UploadedFile,
)
from app.services.git.stats import StatsAggregator, read_counters
from app.services.git.workspace import WorkspaceResolver
from app.services.git.writes import WriteOperations
from app.services.metadata_store import RepositoryStore

logger = logging.getLogger(__name__)


def author_identity(username: str, domain: str) -> str:
    """Commit identity for a user: "name <name@domain>"."""
    return f"{username} <{username}@{domain}>"


def _always(_result) -> bool:
    return True


class GitService:
    def __init__(
        self,
        owner_user_id,
        repository_id: str,
        store: RepositoryStore,
        *,
        author: str,
        settings: Optional[Settings] = None,
        locks: Optional[WorkspaceLockManager] = None,
    ):
        self.settings = settings or get_settings()
        self.resolver = WorkspaceResolver(self.settings.workspace_root)
        # Validates both identifiers before anything else happens
        self.workspace_key = self.resolver.key(owner_user_id, repository_id)
        self.owner_user_id = owner_user_id
        self.repository_id = repository_id
        self.author = author
        self.locks = locks or workspace_locks

        self.initializer = RepositoryInitializer(self.resolver, store)
        self.stats = StatsAggregator(store)
        self.reads = ReadOperations(compute_change_stats=self.settings.compute_change_stats)
        self.writes = WriteOperations(author)
        self.files = FileOperations()

    async def _run(
        self,
        reason: str,
        operation: Callable[..., Any],
        *args,
        record: Optional[Callable[[Any], bool]] = None,
        sync_failure: Optional[str] = None,
    ):
        """
        Run a blocking operation against the working copy under the lock.

        Args:
            reason: Shown to waiters and in logs
            operation: Called as operation(path, *args) in a worker thread
            record: Predicate on the result; when it holds, counters are
                written back before the lock is released
            sync_failure: When set, a failed clone or pull is returned as
                Failure(message=sync_failure) instead of raised
        """
        path: Path = self.resolver.resolve(self.owner_user_id, self.repository_id)
        async with self.locks.lock(self.workspace_key, timeout=self.settings.lock_timeout, reason=reason):
            try:
                await self.initializer.ensure_ready(self.owner_user_id, self.repository_id, self.author)
            except VcsError as e:
                if sync_failure is None:
                    raise
                logger.warning(f"{reason} on {self.workspace_key} skipped, working copy not ready: {e}")
                return Failure(message=sync_failure, error=str(e))
            result = await asyncio.to_thread(operation, path, *args)
            if record is not None and record(result):
                branch_count, commit_count = await asyncio.to_thread(read_counters, path)
                await self.stats.record_write(self.repository_id, branch_count, commit_count)
            return result

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_commits(self, branch: Optional[str] = None, limit: Optional[int] = None) -> list[Commit]:
        return await self._run("log", self.reads.list_commits, branch, limit)

    async def list_branches(self) -> list[Branch]:
        return await self._run("branches", self.reads.list_branches)

    async def list_files(self, relative_path: str = "") -> list[FileEntry]:
        return await self._run("list files", self.reads.list_files, relative_path)

    async def read_file_content(self, relative_path: str) -> str:
        return await self._run("read file", self.reads.read_file_content, relative_path)

    async def get_status(self) -> RepositoryStatus:
        return await self._run("status", self.reads.get_status)

    async def get_stats(self) -> RepositoryStats:
        return await self._run("stats", self.reads.get_stats)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create_branch(self, name: str, from_branch: Optional[str] = None) -> Branch:
        return await self._run("create branch", self.writes.create_branch, name, from_branch, record=_always)

    async def delete_branch(self, name: str) -> None:
        await self._run("delete branch", self.writes.delete_branch, name, record=_always)

    async def merge_branch(self, source: str, target: str) -> MergeResult:
        return await self._run(
            "merge", self.writes.merge_branch, source, target,
            record=lambda result: result.success,
        )

    async def add_files(self, paths: Iterable[str]) -> list[str]:
        return await self._run("add", self.writes.add_files, list(paths), record=_always)

    async def commit_changes(self, message: str) -> OperationResult:
        return await self._run(
            "commit", self.writes.commit_changes, message,
            record=lambda result: isinstance(result, Success),
            sync_failure="commit failed",
        )

    async def push_changes(self) -> OperationResult:
        """Push failures, including an unreachable remote, come back as Failure."""
        return await self._run(
            "push", self.writes.push_changes,
            record=lambda result: isinstance(result, Success),
            sync_failure="push failed",
        )

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    async def upload_file(self, file: UploadedFile, target_dir: str = "") -> str:
        return await self._run("upload", self.files.upload_file, file, target_dir)

    async def upload_files(self, files: Iterable[UploadedFile], target_dir: str = "") -> list[str]:
        return await self._run("upload", self.files.upload_files, list(files), target_dir)

    async def save_file(self, relative_path: str, content: str) -> str:
        return await self._run("save", self.files.save_file, relative_path, content)

    async def create_directory(self, relative_path: str) -> str:
        return await self._run("mkdir", self.files.create_directory, relative_path)

    async def delete_file(self, relative_path: str) -> bool:
        return await self._run("delete", self.files.delete_file, relative_path)

    async def rename_file(self, old_path: str, new_path: str) -> str:
        return await self._run("rename", self.files.rename_file, old_path, new_path)
