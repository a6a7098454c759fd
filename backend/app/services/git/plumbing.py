"""
Low level git helpers on top of dulwich.

Checkout and merge are done here against the object store directly:
the working tree and index are updated only for paths that differ
between the old and new tree, and local edits in those paths abort the
operation instead of being overwritten.
"""
import logging
import os
import stat
import time
from pathlib import Path
from typing import Iterable, Optional

from dulwich import porcelain
from dulwich.diff_tree import CHANGE_ADD, CHANGE_DELETE, tree_changes
from dulwich.errors import NotGitRepository
from dulwich.index import index_entry_from_stat
from dulwich.objects import Commit as DulwichCommit, Tree
from dulwich.repo import Repo

from app.services.git.errors import BranchNotFound, CheckoutFailed

logger = logging.getLogger(__name__)

HEADS_PREFIX = b"refs/heads/"
REMOTE = "origin"
_GITLINK_MODE = 0o160000


def decode(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def branch_ref(name: str) -> bytes:
    return HEADS_PREFIX + name.encode("utf-8")


def remote_ref(name: str) -> bytes:
    return f"refs/remotes/{REMOTE}/{name}".encode("utf-8")


def open_repo(path: Path) -> Repo:
    return Repo(str(path))


def configured_remotes(repo: Repo) -> list[bytes]:
    """Names of the [remote "..."] sections in the repository config."""
    config = repo.get_config()
    return [section[1] for section in config.keys() if len(section) == 2 and section[0] == b"remote"]


def is_git_checkout(path: Path) -> bool:
    """True if path is the top of a non-bare git working copy."""
    if not (path / ".git").exists():
        return False
    try:
        Repo(str(path)).close()
    except NotGitRepository:
        return False
    return True


def current_branch(repo: Repo) -> Optional[str]:
    """Name of the checked-out branch, None when HEAD is detached."""
    head_ref = repo.refs.read_ref(b"HEAD")
    if head_ref and head_ref.startswith(b"ref: " + HEADS_PREFIX):
        return head_ref[len(b"ref: " + HEADS_PREFIX):].strip().decode("utf-8")
    return None


def head_sha(repo: Repo) -> Optional[bytes]:
    """Commit HEAD points to, None for an unborn branch."""
    try:
        return repo.head()
    except KeyError:
        return None


def local_branches(repo: Repo) -> dict[str, bytes]:
    return {
        name.decode("utf-8"): sha
        for name, sha in repo.refs.as_dict(HEADS_PREFIX).items()
    }


def branch_sha(repo: Repo, name: str) -> bytes:
    try:
        return repo.refs[branch_ref(name)]
    except KeyError:
        raise BranchNotFound(f"Branch '{name}' not found")


def count_commits(repo: Repo, sha: Optional[bytes]) -> int:
    """Length of the history reachable from sha (rev-list --count)."""
    if sha is None:
        return 0
    return sum(1 for _ in repo.get_walker(include=[sha]))


def count_between(repo: Repo, include: bytes, exclude: bytes) -> int:
    """Commits reachable from include but not from exclude."""
    return sum(1 for _ in repo.get_walker(include=[include], exclude=[exclude]))


def is_ancestor(repo: Repo, ancestor: bytes, descendant: bytes) -> bool:
    """Check if ancestor is reachable from descendant."""
    if ancestor == descendant:
        return True
    for entry in repo.get_walker(include=[descendant]):
        if entry.commit.id == ancestor:
            return True
    return False


def find_merge_base(repo: Repo, sha1: bytes, sha2: bytes) -> Optional[bytes]:
    """Find the common ancestor (merge base) of two commits."""
    ancestors1 = {entry.commit.id for entry in repo.get_walker(include=[sha1])}
    for entry in repo.get_walker(include=[sha2]):
        if entry.commit.id in ancestors1:
            return entry.commit.id
    return None


def commit_tree(repo: Repo, sha: Optional[bytes]) -> Optional[bytes]:
    if sha is None:
        return None
    return repo[sha].tree


def parse_identity(raw: bytes) -> tuple[str, str]:
    """Split a "Name <email>" identity line."""
    text = decode(raw)
    if "<" in text and text.endswith(">"):
        name, email = text.rsplit("<", 1)
        return name.strip(), email.rstrip(">").strip()
    return text.strip(), ""


# -----------------------------------------------------------------------------
# Working tree state
# -----------------------------------------------------------------------------

def dirty_paths(repo: Repo) -> tuple[set[str], set[str]]:
    """
    Paths with local changes.

    Returns:
        (changed, untracked): staged or unstaged tracked paths, and
        untracked paths, all relative posix strings
    """
    status = porcelain.status(repo, untracked_files="all")
    changed: set[str] = set()
    for paths in status.staged.values():
        changed.update(decode(p) for p in paths)
    changed.update(decode(p) for p in status.unstaged)
    untracked = {decode(p) for p in status.untracked}
    return changed, untracked


def _write_entry(full_path: Path, mode: int, data: bytes) -> None:
    full_path.parent.mkdir(parents=True, exist_ok=True)
    if full_path.is_symlink() or (full_path.exists() and not full_path.is_dir()):
        full_path.unlink()
    if stat.S_ISLNK(mode):
        os.symlink(data.decode("utf-8"), full_path)
        return
    full_path.write_bytes(data)
    if mode & 0o100:
        full_path.chmod(full_path.stat().st_mode | 0o111)


def _remove_entry(root: Path, full_path: Path) -> None:
    if full_path.is_symlink() or full_path.exists():
        full_path.unlink()
    # Drop directories the tree no longer has
    parent = full_path.parent
    while parent != root and parent.exists() and not any(parent.iterdir()):
        parent.rmdir()
        parent = parent.parent


def changed_paths(repo: Repo, old_tree: Optional[bytes], new_tree: Optional[bytes]) -> list:
    return list(tree_changes(repo.object_store, old_tree, new_tree))


def update_working_tree(
    repo: Repo,
    old_tree: Optional[bytes],
    new_tree: Optional[bytes],
    *,
    check_dirty: bool = True,
) -> list[str]:
    """
    Move the working tree and index from old_tree to new_tree.

    Only paths that differ between the two trees are touched.

    Raises:
        CheckoutFailed: If a differing path has local changes, or an
            untracked file sits where the new tree adds one
    """
    root = Path(repo.path).resolve()
    changes = changed_paths(repo, old_tree, new_tree)
    if not changes:
        return []

    if check_dirty:
        changed, untracked = dirty_paths(repo)
        blocked = []
        for change in changes:
            for entry in (change.old, change.new):
                if entry is None or entry.path is None:
                    continue
                path = decode(entry.path)
                if path in changed:
                    blocked.append(path)
                elif change.type == CHANGE_ADD and path in untracked:
                    blocked.append(path)
        if blocked:
            raise CheckoutFailed(
                "Local changes would be overwritten",
                ", ".join(sorted(set(blocked))),
            )

    index = repo.open_index()
    touched = []
    for change in changes:
        if change.old is not None and change.old.path is not None:
            if change.type == CHANGE_DELETE or (
                change.new is not None and change.new.path != change.old.path
            ):
                _remove_entry(root, root / decode(change.old.path))
                try:
                    del index[change.old.path]
                except KeyError:
                    pass
                touched.append(decode(change.old.path))
        if change.type == CHANGE_DELETE or change.new is None or change.new.path is None:
            continue
        if change.new.mode == _GITLINK_MODE:
            continue
        full_path = root / decode(change.new.path)
        blob = repo.object_store[change.new.sha]
        _write_entry(full_path, change.new.mode, blob.data)
        index[change.new.path] = index_entry_from_stat(
            os.lstat(full_path), change.new.sha, mode=change.new.mode
        )
        touched.append(decode(change.new.path))
    index.write()
    return touched


def switch_branch(repo: Repo, name: str) -> None:
    """
    Check out an existing local branch.

    Raises:
        BranchNotFound: If the branch does not exist
        CheckoutFailed: If local changes would be overwritten
    """
    target_sha = branch_sha(repo, name)
    if current_branch(repo) == name:
        return
    update_working_tree(repo, commit_tree(repo, head_sha(repo)), repo[target_sha].tree)
    repo.refs.set_symbolic_ref(b"HEAD", branch_ref(name))
    logger.info(f"Checked out branch {name} at {target_sha.decode('ascii')[:8]}")


# -----------------------------------------------------------------------------
# Three-way merge
# -----------------------------------------------------------------------------

def merge_trees(repo: Repo, base_tree_sha, ours_tree_sha, theirs_tree_sha,
                path_prefix: str = "") -> tuple[bytes, list[str]]:
    """
    Perform a three-way merge of trees (recursively for subdirectories).

    Returns (merged_tree_sha, list_of_conflicts)
    - If entry unchanged in ours, take theirs
    - If entry unchanged in theirs, take ours
    - If both changed the same way, take either
    - If both changed a subdirectory, recursively merge
    - If both changed a file differently, conflict
    """
    base_entries = _tree_entries(repo, base_tree_sha)
    ours_entries = _tree_entries(repo, ours_tree_sha)
    theirs_entries = _tree_entries(repo, theirs_tree_sha)

    all_paths = set(base_entries) | set(ours_entries) | set(theirs_entries)

    merged_entries = {}
    conflicts = []

    for path in all_paths:
        base = base_entries.get(path)
        ours = ours_entries.get(path)
        theirs = theirs_entries.get(path)

        full_path = f"{path_prefix}{decode(path)}"

        if ours == theirs:
            if ours:
                merged_entries[path] = ours
        elif ours == base:
            if theirs:
                merged_entries[path] = theirs
        elif theirs == base:
            if ours:
                merged_entries[path] = ours
        else:
            ours_is_tree = bool(ours) and stat.S_ISDIR(ours[0])
            theirs_is_tree = bool(theirs) and stat.S_ISDIR(theirs[0])
            base_is_tree = bool(base) and stat.S_ISDIR(base[0])

            if ours_is_tree and theirs_is_tree:
                merged_subtree_sha, sub_conflicts = merge_trees(
                    repo,
                    base[1] if base_is_tree else None,
                    ours[1],
                    theirs[1],
                    path_prefix=f"{full_path}/",
                )
                merged_entries[path] = (ours[0], merged_subtree_sha)
                conflicts.extend(sub_conflicts)
            else:
                # File conflict (or type changed file<->dir)
                conflicts.append(full_path)
                if ours:
                    merged_entries[path] = ours

    merged_tree = Tree()
    for path, (mode, sha) in sorted(merged_entries.items()):
        merged_tree.add(path, mode, sha)

    repo.object_store.add_object(merged_tree)
    return merged_tree.id, sorted(conflicts)


def _tree_entries(repo: Repo, tree_sha) -> dict[bytes, tuple[int, bytes]]:
    if tree_sha is None:
        return {}
    tree = repo.object_store[tree_sha]
    return {e.path: (e.mode, e.sha) for e in tree.items()}


def create_commit(
    repo: Repo,
    tree_sha: bytes,
    parents: Iterable[bytes],
    message: str,
    author: str,
) -> bytes:
    """Write a commit object and return its id. Refs are not touched."""
    commit = DulwichCommit()
    commit.tree = tree_sha
    commit.parents = list(parents)
    commit.author = commit.committer = author.encode("utf-8")
    commit.commit_time = commit.author_time = int(time.time())
    commit.commit_timezone = commit.author_timezone = 0
    commit.encoding = b"UTF-8"
    commit.message = message.encode("utf-8")
    repo.object_store.add_object(commit)
    return commit.id


def three_way_merge(
    repo: Repo,
    ours_sha: bytes,
    theirs_sha: bytes,
    message: str,
    author: str,
) -> tuple[Optional[bytes], list[str]]:
    """
    Merge theirs into ours without touching refs or the working tree.

    Returns:
        (merge_commit_id, conflicts); the commit id is None on conflict
    """
    base_sha = find_merge_base(repo, ours_sha, theirs_sha)
    base_tree = commit_tree(repo, base_sha)
    merged_tree, conflicts = merge_trees(
        repo, base_tree, repo[ours_sha].tree, repo[theirs_sha].tree
    )
    if conflicts:
        return None, conflicts
    return create_commit(repo, merged_tree, [ours_sha, theirs_sha], message, author), []
