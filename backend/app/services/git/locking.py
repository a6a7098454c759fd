"""
Workspace Locking

Serializes every operation (read or write) on one working copy:
- one holder per workspace key at a time
- different workspaces never block each other
- lock timeout handling
- context manager for automatic release
"""
import asyncio
from datetime import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import uuid4
from contextlib import asynccontextmanager


class LockTimeoutError(Exception):
    """Raised when lock acquisition times out."""
    pass


@dataclass(eq=False)
class Lock:
    """Represents a held lock on a workspace."""
    id: str
    workspace_key: str
    acquired_at: datetime
    reason: str = ""

    @classmethod
    def create(cls, workspace_key: str, reason: str = "") -> "Lock":
        return cls(
            id=str(uuid4()),
            workspace_key=workspace_key,
            acquired_at=datetime.utcnow(),
            reason=reason,
        )

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if not isinstance(other, Lock):
            return False
        return self.id == other.id


class WorkspaceLockManager:
    """
    Manages exclusive locks keyed by workspace.

    Each key gets its own asyncio.Lock, created lazily and dropped again
    once nobody holds or waits for it, so the registry does not grow with
    every workspace ever touched.
    """

    def __init__(self):
        # workspace_key -> asyncio.Lock
        self._mutexes: Dict[str, asyncio.Lock] = {}
        # workspace_key -> number of holders plus waiters
        self._refcounts: Dict[str, int] = {}
        # workspace_key -> currently held Lock
        self._held: Dict[str, Lock] = {}

    def _checkout_mutex(self, workspace_key: str) -> asyncio.Lock:
        mutex = self._mutexes.get(workspace_key)
        if mutex is None:
            mutex = asyncio.Lock()
            self._mutexes[workspace_key] = mutex
        self._refcounts[workspace_key] = self._refcounts.get(workspace_key, 0) + 1
        return mutex

    def _return_mutex(self, workspace_key: str) -> None:
        remaining = self._refcounts.get(workspace_key, 1) - 1
        if remaining <= 0:
            self._refcounts.pop(workspace_key, None)
            self._mutexes.pop(workspace_key, None)
        else:
            self._refcounts[workspace_key] = remaining

    async def acquire(
        self,
        workspace_key: str,
        timeout: Optional[float] = None,
        reason: str = "",
    ) -> Optional[Lock]:
        """
        Acquire the lock on a workspace.

        Args:
            workspace_key: Key of the workspace to lock
            timeout: Seconds to wait (None = wait forever, 0 = fail if busy)
            reason: Optional reason for the lock

        Returns:
            Lock object if acquired, None if timeout
        """
        mutex = self._checkout_mutex(workspace_key)
        try:
            if timeout is not None and timeout <= 0:
                if mutex.locked():
                    self._return_mutex(workspace_key)
                    return None
                await mutex.acquire()
            elif timeout is None:
                await mutex.acquire()
            else:
                await asyncio.wait_for(mutex.acquire(), timeout=timeout)
        except asyncio.TimeoutError:
            # wait_for may time out after the inner acquire already won;
            # every other holder is recorded in _held before its next await
            if mutex.locked() and workspace_key not in self._held:
                mutex.release()
            self._return_mutex(workspace_key)
            return None
        except BaseException:
            self._return_mutex(workspace_key)
            raise

        lock = Lock.create(workspace_key, reason)
        self._held[workspace_key] = lock
        return lock

    async def release(self, lock: Lock) -> None:
        """
        Release a held lock.

        Args:
            lock: The lock to release
        """
        if self._held.get(lock.workspace_key) != lock:
            return
        del self._held[lock.workspace_key]
        mutex = self._mutexes.get(lock.workspace_key)
        if mutex is not None and mutex.locked():
            mutex.release()
        self._return_mutex(lock.workspace_key)

    def is_locked(self, workspace_key: str) -> bool:
        return workspace_key in self._held

    def get_active_lock(self, workspace_key: str) -> Optional[Lock]:
        """Get the lock currently held on a workspace, if any."""
        return self._held.get(workspace_key)

    def get_active_locks(self) -> List[Lock]:
        return list(self._held.values())

    @asynccontextmanager
    async def lock(
        self,
        workspace_key: str,
        timeout: Optional[float] = None,
        reason: str = "",
    ):
        """
        Context manager for automatic lock acquire/release.

        Raises:
            LockTimeoutError: If lock cannot be acquired within timeout

        Usage:
            async with manager.lock(key, timeout=5.0, reason="commit") as lock:
                # do work with workspace
        """
        lock = await self.acquire(workspace_key, timeout, reason)
        if lock is None:
            holder = self._held.get(workspace_key)
            busy = f" (held for {holder.reason})" if holder and holder.reason else ""
            raise LockTimeoutError(
                f"Failed to acquire lock on workspace {workspace_key} within {timeout}s{busy}"
            )

        try:
            yield lock
        finally:
            await self.release(lock)


workspace_locks = WorkspaceLockManager()
