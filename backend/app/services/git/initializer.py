"""
Repository initializer - makes a working copy ready before every operation.

First use clones the repository's remote; every later use pulls the
checked-out branch. Safe to call repeatedly: pulling an up to date
branch changes nothing.
"""
import asyncio
import logging
import shutil
from pathlib import Path

from dulwich import porcelain

from app.models import Repository
from app.services.git.errors import CheckoutFailed, CloneFailed, RepositoryNotFound, SyncFailed
from app.services.git.plumbing import (
    REMOTE,
    branch_ref,
    configured_remotes,
    current_branch,
    head_sha,
    is_ancestor,
    is_git_checkout,
    open_repo,
    remote_ref,
    three_way_merge,
    update_working_tree,
)
from app.services.git.workspace import WorkspaceResolver
from app.services.metadata_store import RepositoryStore

logger = logging.getLogger(__name__)


def clone_working_copy(path: Path, url: str) -> None:
    """
    Clone url into path.

    A directory left behind by an interrupted clone is cleared first, and
    a failed clone is cleaned up so the next call starts over.

    Raises:
        CloneFailed: On any network, auth or protocol error
    """
    if path.exists():
        logger.warning(f"Clearing non-git directory before clone: {path}")
        shutil.rmtree(path)

    logger.info(f"Cloning {url} into {path}")
    try:
        repo = porcelain.clone(url, str(path), checkout=True, errstream=porcelain.NoneStream())
        repo.close()
    except Exception as e:
        shutil.rmtree(path, ignore_errors=True)
        logger.warning(f"Clone of {url} failed: {e}")
        raise CloneFailed(f"Failed to clone {url}", str(e)) from e


def pull_working_copy(path: Path, author: str) -> str:
    """
    Fetch origin and bring the checked-out branch up to date.

    Returns:
        What happened: "up-to-date", "no-remote", "local-only", "fast-forward" or "merge"

    Raises:
        SyncFailed: Detached HEAD, fetch failure, merge conflicts, or local
            changes in paths the pull would rewrite
    """
    with open_repo(path) as repo:
        branch = current_branch(repo)
        if branch is None:
            raise SyncFailed("Cannot pull", "HEAD is detached")
        if REMOTE.encode("utf-8") not in configured_remotes(repo):
            # Nothing to fetch from; push reports the missing remote
            logger.info(f"No {REMOTE} remote configured for {path}, skipping pull")
            return "no-remote"

        try:
            result = porcelain.fetch(repo, remote_location=REMOTE, errstream=porcelain.NoneStream())
        except Exception as e:
            raise SyncFailed(f"Failed to fetch from {REMOTE}", str(e)) from e

        remote_sha = result.refs.get(branch_ref(branch))
        if remote_sha is None:
            return "local-only"
        repo.refs[remote_ref(branch)] = remote_sha

        local_sha = head_sha(repo)
        try:
            if local_sha is None:
                update_working_tree(repo, None, repo[remote_sha].tree)
                repo.refs[branch_ref(branch)] = remote_sha
                return "fast-forward"

            if is_ancestor(repo, remote_sha, local_sha):
                return "up-to-date"

            if is_ancestor(repo, local_sha, remote_sha):
                update_working_tree(repo, repo[local_sha].tree, repo[remote_sha].tree)
                repo.refs[branch_ref(branch)] = remote_sha
                logger.info(f"Fast-forwarded {branch} to {remote_sha.decode('ascii')[:8]}")
                return "fast-forward"

            merge_sha, conflicts = three_way_merge(
                repo,
                local_sha,
                remote_sha,
                f"Merge branch '{branch}' of {REMOTE}\n",
                author,
            )
            if conflicts:
                raise SyncFailed(f"Pull of {branch} has conflicts", ", ".join(conflicts))
            update_working_tree(repo, repo[local_sha].tree, repo[merge_sha].tree)
            repo.refs[branch_ref(branch)] = merge_sha
            logger.info(f"Merged {REMOTE}/{branch} into {branch} at {merge_sha.decode('ascii')[:8]}")
            return "merge"
        except CheckoutFailed as e:
            raise SyncFailed(f"Cannot pull {branch}", e.cause) from e


class RepositoryInitializer:
    """
    Ensures a working copy is a current local checkout.

    Called by GitService at the start of every operation, while the
    workspace lock is held.
    """

    def __init__(self, resolver: WorkspaceResolver, store: RepositoryStore):
        self.resolver = resolver
        self.store = store

    async def ensure_ready(self, owner_user_id, repository_id, author: str) -> Repository:
        """
        Resolve, authorize, then clone or pull.

        Returns:
            The repository record

        Raises:
            InvalidIdentifier: Bad identifiers
            RepositoryNotFound: Unknown repository or not owned by the caller
            CloneFailed / SyncFailed: The git toolchain failed
        """
        path = self.resolver.resolve(owner_user_id, repository_id)
        record = await self.store.find_repository(repository_id, owner_user_id)
        if record is None:
            raise RepositoryNotFound(f"Repository {repository_id} not found")

        if is_git_checkout(path):
            await asyncio.to_thread(pull_working_copy, path, author)
        else:
            await asyncio.to_thread(clone_working_copy, path, record.url)
        return record
