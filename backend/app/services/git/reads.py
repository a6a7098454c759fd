"""
Read operations against a working copy: log, branches, files, status.

Nothing here mutates refs, the index or the working tree.
"""
from collections import Counter
from datetime import datetime, timedelta, timezone
from difflib import SequenceMatcher
from pathlib import Path
from typing import Optional

from dulwich import porcelain
from dulwich.patch import is_binary
from dulwich.repo import Repo

from app.services.git.errors import NotAFile, PathNotFound
from app.services.git.plumbing import (
    branch_sha,
    changed_paths,
    commit_tree,
    count_between,
    count_commits,
    current_branch,
    decode,
    head_sha,
    local_branches,
    open_repo,
    parse_identity,
    remote_ref,
)
from app.services.git.results import (
    Branch,
    ChangeStats,
    Commit,
    Contributor,
    FileEntry,
    FileKind,
    RepositoryStats,
    RepositoryStatus,
    StatusEntry,
)
from app.services.git.workspace import contain, relative_to_root

_STAGED_CODES = {"add": "A", "modify": "M", "delete": "D"}


def _line_stats(old: bytes, new: bytes) -> tuple[int, int]:
    matcher = SequenceMatcher(None, old.splitlines(), new.splitlines())
    additions = deletions = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("delete", "replace"):
            deletions += i2 - i1
        if tag in ("insert", "replace"):
            additions += j2 - j1
    return additions, deletions


def _commit_date(commit) -> datetime:
    # git stores the offset in seconds west of UTC
    tz = timezone(timedelta(seconds=-commit.author_timezone))
    return datetime.fromtimestamp(commit.author_time, tz=tz)


class ReadOperations:
    def __init__(self, compute_change_stats: bool = True):
        self.compute_change_stats = compute_change_stats

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def change_stats(self, repo: Repo, commit) -> ChangeStats:
        """Diff stats of a commit against its first parent."""
        parent_tree = commit_tree(repo, commit.parents[0]) if commit.parents else None
        additions = deletions = files = 0
        for change in changed_paths(repo, parent_tree, commit.tree):
            files += 1
            old = repo[change.old.sha].data if change.old is not None and change.old.sha else b""
            new = repo[change.new.sha].data if change.new is not None and change.new.sha else b""
            if is_binary(old) or is_binary(new):
                continue
            added, removed = _line_stats(old, new)
            additions += added
            deletions += removed
        return ChangeStats(additions=additions, deletions=deletions, files_touched=files)

    def to_commit(self, repo: Repo, commit, with_stats: Optional[bool] = None) -> Commit:
        name, email = parse_identity(commit.author)
        if with_stats is None:
            with_stats = self.compute_change_stats
        return Commit(
            hash=commit.id.decode("ascii"),
            message=decode(commit.message).strip(),
            author_name=name,
            author_email=email,
            date=_commit_date(commit),
            change_stats=self.change_stats(repo, commit) if with_stats else ChangeStats(),
        )

    def list_commits(self, path: Path, branch: Optional[str] = None, limit: Optional[int] = None) -> list[Commit]:
        """
        Commit log, newest first.

        Args:
            branch: Local branch to read; the checked-out branch when omitted
            limit: Maximum number of commits

        Raises:
            BranchNotFound: If branch does not exist
        """
        with open_repo(path) as repo:
            start = branch_sha(repo, branch) if branch else head_sha(repo)
            if start is None:
                return []
            walker = repo.get_walker(include=[start], max_entries=limit)
            return [self.to_commit(repo, entry.commit) for entry in walker]

    def list_branches(self, path: Path) -> list[Branch]:
        with open_repo(path) as repo:
            current = current_branch(repo)
            branches = [
                Branch(
                    name=name,
                    is_current=name == current,
                    head_commit_hash=sha.decode("ascii"),
                    commit_count=count_commits(repo, sha),
                )
                for name, sha in sorted(local_branches(repo).items())
            ]
            if current is not None and not any(b.is_current for b in branches):
                # Unborn branch: checked out but without commits yet
                branches.append(Branch(name=current, is_current=True, head_commit_hash="", commit_count=0))
            return branches

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def list_files(self, path: Path, relative_path: str = "") -> list[FileEntry]:
        """
        Immediate children of a directory, directories first.

        Raises:
            PathOutsideWorkspace: Traversal attempt
            PathNotFound: Missing, or not a directory
        """
        target = contain(path, relative_path)
        if not target.is_dir():
            raise PathNotFound(f"Directory not found: {relative_path}")

        entries = []
        for child in target.iterdir():
            if target == Path(path).resolve() and child.name == ".git":
                continue
            # A dangling symlink is still a tracked entry; describe the link itself
            stats = child.stat() if child.exists() else child.lstat()
            is_dir = child.is_dir()
            entries.append(FileEntry(
                relative_path=relative_to_root(path, child),
                name=child.name,
                kind=FileKind.DIRECTORY if is_dir else FileKind.FILE,
                size_bytes=None if is_dir else stats.st_size,
                last_modified=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
            ))
        entries.sort(key=lambda e: (e.kind != FileKind.DIRECTORY, e.name.lower()))
        return entries

    def read_file_content(self, path: Path, relative_path: str) -> str:
        target = contain(path, relative_path)
        if not target.exists():
            raise PathNotFound(f"File not found: {relative_path}")
        if target.is_dir():
            raise NotAFile(f"Not a file: {relative_path}")
        return target.read_bytes().decode("utf-8", errors="replace")

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def get_status(self, path: Path) -> RepositoryStatus:
        with open_repo(path) as repo:
            branch = current_branch(repo) or ""
            ahead = behind = 0
            tracking = ""
            local = head_sha(repo)
            if branch:
                try:
                    upstream = repo.refs[remote_ref(branch)]
                except KeyError:
                    upstream = None
                if upstream is not None:
                    tracking = remote_ref(branch).decode("utf-8")[len("refs/remotes/"):]
                    if local is not None:
                        ahead = count_between(repo, local, upstream)
                        behind = count_between(repo, upstream, local)

            raw = porcelain.status(repo, untracked_files="all")
            states: dict[str, list[str]] = {}
            for kind, code in _STAGED_CODES.items():
                for p in raw.staged.get(kind, []):
                    states.setdefault(decode(p), [" ", " "])[0] = code
            root = Path(repo.path)
            for p in raw.unstaged:
                rel = decode(p)
                code = "M" if (root / rel).exists() else "D"
                states.setdefault(rel, [" ", " "])[1] = code
            for p in raw.untracked:
                states[decode(p)] = ["?", "?"]

            entries = tuple(
                StatusEntry(path=p, index_state=idx, working_tree_state=wt)
                for p, (idx, wt) in sorted(states.items())
            )
            return RepositoryStatus(
                current_branch=branch,
                ahead_count=ahead,
                behind_count=behind,
                tracking_ref=tracking,
                entries=entries,
            )

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    def get_stats(self, path: Path) -> RepositoryStats:
        branches = self.list_branches(path)
        with open_repo(path) as repo:
            start = head_sha(repo)
            commits = []
            if start is not None:
                commits = [entry.commit for entry in repo.get_walker(include=[start])]

            authors = Counter(parse_identity(c.author) for c in commits)
            contributors = tuple(
                Contributor(name=name, email=email, commits=count)
                for (name, email), count in sorted(authors.items(), key=lambda kv: (-kv[1], kv[0]))
            )
            latest = self.to_commit(repo, commits[0]) if commits else None

        return RepositoryStats(
            total_commits=len(commits),
            total_branches=len(branches),
            active_branches=sum(1 for b in branches if b.is_current),
            latest_commit=latest,
            contributors=contributors,
        )
