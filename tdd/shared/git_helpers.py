"""
Git fixtures built with dulwich.

Remotes are bare repositories on the local filesystem, so clone/fetch/push
run for real without a network or a git binary.
"""
import itertools
from pathlib import Path

from dulwich.index import commit_tree
from dulwich.object_store import iter_tree_contents
from dulwich.objects import Blob, Commit
from dulwich.repo import Repo

AUTHOR = b"Remote Author <remote@example.com>"

_clock = itertools.count(1_700_000_000, 60)


def _files_of(repo: Repo, tree_id: bytes) -> dict[bytes, tuple[bytes, int]]:
    return {
        entry.path: (entry.sha, entry.mode)
        for entry in iter_tree_contents(repo.object_store, tree_id)
    }


def commit_to_branch(
    repo_path: Path,
    files: dict[str, str | bytes | None],
    message: str = "Update",
    branch: str = "main",
    author: bytes = AUTHOR,
) -> bytes:
    """
    Commit on top of a branch of a (bare) repository.

    Args:
        files: path -> content; None deletes the path
    Returns:
        The new commit id
    """
    repo = Repo(str(repo_path))
    try:
        ref = f"refs/heads/{branch}".encode()
        parent = repo.refs[ref] if ref in repo.refs else None
        entries = _files_of(repo, repo[parent].tree) if parent else {}

        for path, content in files.items():
            key = path.encode("utf-8")
            if content is None:
                entries.pop(key, None)
                continue
            blob = Blob.from_string(content.encode("utf-8") if isinstance(content, str) else content)
            repo.object_store.add_object(blob)
            entries[key] = (blob.id, 0o100644)

        tree_id = commit_tree(
            repo.object_store,
            [(path, sha, mode) for path, (sha, mode) in sorted(entries.items())],
        )

        commit = Commit()
        commit.tree = tree_id
        commit.parents = [parent] if parent else []
        commit.author = commit.committer = author
        commit.commit_time = commit.author_time = next(_clock)
        commit.commit_timezone = commit.author_timezone = 0
        commit.encoding = b"UTF-8"
        commit.message = message.encode("utf-8")
        repo.object_store.add_object(commit)
        repo.refs[ref] = commit.id
        return commit.id
    finally:
        repo.close()


def make_remote(path: Path, files: dict[str, str] | None = None, branch: str = "main") -> Path:
    """Create a bare repository with one initial commit on `branch`."""
    path.mkdir(parents=True, exist_ok=True)
    repo = Repo.init_bare(str(path))
    repo.refs.set_symbolic_ref(b"HEAD", f"refs/heads/{branch}".encode())
    repo.close()
    commit_to_branch(
        path,
        files if files is not None else {"README.md": "# Demo\n", "src/app.py": "print('hello')\n"},
        message="Initial commit",
        branch=branch,
    )
    return path


def branch_head(repo_path: Path, branch: str = "main") -> bytes | None:
    repo = Repo(str(repo_path))
    try:
        ref = f"refs/heads/{branch}".encode()
        return repo.refs[ref] if ref in repo.refs else None
    finally:
        repo.close()


def file_at(repo_path: Path, path: str, branch: str = "main") -> bytes | None:
    """Content of `path` at the tip of `branch`, None if absent."""
    repo = Repo(str(repo_path))
    try:
        head = repo.refs[f"refs/heads/{branch}".encode()]
        entry = _files_of(repo, repo[head].tree).get(path.encode("utf-8"))
        return repo[entry[0]].data if entry else None
    finally:
        repo.close()
