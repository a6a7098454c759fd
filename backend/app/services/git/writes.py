"""
Write operations: branches, merge, stage, commit, push.

Expected outcomes (nothing staged, no remote, push rejected, merge
conflicts) come back as result values. Invalid input, unknown refs and
toolchain failures raise.
"""
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from dulwich import porcelain
from dulwich.refs import check_ref_format

from app.services.git.errors import (
    AddFailed,
    BranchExists,
    CannotDeleteCurrent,
    InvalidInput,
    InvalidName,
    PathOutsideWorkspace,
)
from app.services.git.plumbing import (
    REMOTE,
    branch_ref,
    branch_sha,
    configured_remotes,
    count_commits,
    current_branch,
    head_sha,
    is_ancestor,
    open_repo,
    remote_ref,
    switch_branch,
    three_way_merge,
    update_working_tree,
)
from app.services.git.results import (
    Branch,
    Failure,
    MergeResult,
    MergeType,
    OperationResult,
    Success,
)
from app.services.git.workspace import contain, relative_to_root

logger = logging.getLogger(__name__)

NOTHING_STAGED = "nothing staged"
NO_REMOTE = "no remote"


def validate_branch_name(name: Optional[str]) -> str:
    """
    Raises:
        InvalidName: Empty, or not a valid git ref name
    """
    if name is None or not name.strip():
        raise InvalidName("Branch name must not be empty")
    name = name.strip()
    if name.startswith("-") or name == "HEAD" or not check_ref_format(branch_ref(name)):
        raise InvalidName(f"Invalid branch name: {name!r}")
    return name


class WriteOperations:
    def __init__(self, author: str):
        # "Name <email>" used for commits and merge commits
        self.author = author

    # -------------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------------

    def create_branch(self, path: Path, name: str, from_branch: Optional[str] = None) -> Branch:
        """
        Create a branch and check it out.

        Raises:
            InvalidName: Bad branch name
            BranchExists: Branch already exists
            BranchNotFound: from_branch does not exist
            CheckoutFailed: Switching to from_branch would lose local changes
        """
        name = validate_branch_name(name)
        if from_branch:
            from_branch = validate_branch_name(from_branch)

        with open_repo(path) as repo:
            if branch_ref(name) in repo.refs:
                raise BranchExists(f"Branch '{name}' already exists")
            if from_branch:
                switch_branch(repo, from_branch)

            start = head_sha(repo)
            if start is not None:
                repo.refs[branch_ref(name)] = start
            # Same commit, so only HEAD moves; the working tree is untouched
            repo.refs.set_symbolic_ref(b"HEAD", branch_ref(name))
            logger.info(f"Created branch {name} from {from_branch or 'HEAD'}")
            return Branch(
                name=name,
                is_current=True,
                head_commit_hash=start.decode("ascii") if start else "",
                commit_count=count_commits(repo, start),
            )

    def delete_branch(self, path: Path, name: str) -> None:
        """
        Raises:
            InvalidName: Bad branch name
            CannotDeleteCurrent: name is the checked-out branch
            BranchNotFound: Branch does not exist
        """
        name = validate_branch_name(name)
        with open_repo(path) as repo:
            if current_branch(repo) == name:
                raise CannotDeleteCurrent(f"Cannot delete the current branch '{name}'")
            branch_sha(repo, name)
            del repo.refs[branch_ref(name)]
            logger.info(f"Deleted branch {name}")

    def merge_branch(self, path: Path, source: str, target: str) -> MergeResult:
        """
        Check out target and merge source into it.

        Conflicts are reported in the result and leave target untouched.

        Raises:
            InvalidName / BranchNotFound: Bad or unknown branches
            CheckoutFailed: Local changes block the checkout or update
        """
        source = validate_branch_name(source)
        target = validate_branch_name(target)
        if source == target:
            raise InvalidInput("Cannot merge a branch into itself")

        with open_repo(path) as repo:
            source_sha = branch_sha(repo, source)
            branch_sha(repo, target)
            switch_branch(repo, target)
            target_sha = head_sha(repo)

            if is_ancestor(repo, source_sha, target_sha):
                return MergeResult(
                    success=True,
                    message="Already up to date",
                    merge_type=MergeType.UP_TO_DATE,
                    commit=target_sha.decode("ascii"),
                )

            if is_ancestor(repo, target_sha, source_sha):
                update_working_tree(repo, repo[target_sha].tree, repo[source_sha].tree)
                repo.refs[branch_ref(target)] = source_sha
                logger.info(f"Fast-forward merge: {target} -> {source_sha.decode('ascii')[:8]}")
                return MergeResult(
                    success=True,
                    message=f"Fast-forward merge of {source} into {target}",
                    merge_type=MergeType.FAST_FORWARD,
                    commit=source_sha.decode("ascii"),
                )

            merge_sha, conflicts = three_way_merge(
                repo,
                target_sha,
                source_sha,
                f"Merge branch '{source}' into {target}\n",
                self.author,
            )
            if conflicts:
                logger.info(f"Merge of {source} into {target} has {len(conflicts)} conflicts")
                return MergeResult(
                    success=False,
                    message=f"Merge conflicts in: {', '.join(conflicts)}",
                    conflicts=tuple(conflicts),
                )

            update_working_tree(repo, repo[target_sha].tree, repo[merge_sha].tree)
            repo.refs[branch_ref(target)] = merge_sha
            logger.info(f"Merge commit created: {merge_sha.decode('ascii')[:8]}")
            return MergeResult(
                success=True,
                message=f"Merged {source} into {target}",
                merge_type=MergeType.MERGE,
                commit=merge_sha.decode("ascii"),
            )

    # -------------------------------------------------------------------------
    # Stage / commit / push
    # -------------------------------------------------------------------------

    def add_files(self, path: Path, paths: Iterable[str]) -> list[str]:
        """
        Stage paths. Directories expand to the files below them; a tracked
        file that no longer exists is staged as a deletion.

        Returns:
            Relative paths that were staged

        Raises:
            PathOutsideWorkspace: Traversal attempt
            AddFailed: A path matches nothing, or the toolchain failed
        """
        paths = list(paths)
        if not paths:
            raise InvalidInput("No paths given")
        root = Path(path).resolve()
        targets = [contain(root, p) for p in paths]

        with open_repo(root) as repo:
            index = repo.open_index()
            tracked = {p.decode("utf-8") for p in index}
            to_add: list[str] = []
            to_remove: list[bytes] = []

            for requested, target in zip(paths, targets):
                rel = relative_to_root(root, target) if target != root else ""
                if target.is_dir():
                    to_add.extend(self._expand_directory(root, target))
                    prefix = f"{rel}/" if rel else ""
                    to_remove.extend(
                        t.encode("utf-8") for t in tracked
                        if t.startswith(prefix) and not (root / t).exists()
                    )
                elif target.exists() or target.is_symlink():
                    to_add.append(str(target))
                elif rel in tracked:
                    to_remove.append(rel.encode("utf-8"))
                else:
                    raise AddFailed("Cannot stage", f"pathspec '{requested}' did not match any files")

            try:
                if to_add:
                    porcelain.add(repo, paths=to_add)
                if to_remove:
                    index = repo.open_index()
                    for key in to_remove:
                        try:
                            del index[key]
                        except KeyError:
                            pass
                    index.write()
            except (AddFailed, PathOutsideWorkspace):
                raise
            except Exception as e:
                raise AddFailed("Cannot stage", str(e)) from e

        staged = sorted(
            {relative_to_root(root, Path(p)) for p in to_add}
            | {p.decode("utf-8") for p in to_remove}
        )
        logger.info(f"Staged {len(staged)} paths in {root}")
        return staged

    @staticmethod
    def _expand_directory(root: Path, directory: Path) -> list[str]:
        files = []
        for dirpath, dirnames, filenames in os.walk(directory):
            if Path(dirpath) == root and ".git" in dirnames:
                dirnames.remove(".git")
            files.extend(str(Path(dirpath) / f) for f in filenames)
        return files

    def commit_changes(self, path: Path, message: str) -> OperationResult:
        """
        Commit the staged changes.

        An empty stage is reported as a Failure without creating a commit.
        """
        if message is None or not message.strip():
            raise InvalidInput("Commit message must not be empty")

        with open_repo(path) as repo:
            status = porcelain.status(repo, untracked_files="no")
            if not any(status.staged.get(kind) for kind in ("add", "modify", "delete")):
                return Failure(message=NOTHING_STAGED, error="No staged changes")

            sha = porcelain.commit(
                repo,
                message=message.encode("utf-8"),
                author=self.author.encode("utf-8"),
                committer=self.author.encode("utf-8"),
            )
            commit = sha.decode("ascii")
            logger.info(f"Committed {commit[:8]} on {current_branch(repo)}")
            return Success(message="Commit created", ref=commit)

    def push_changes(self, path: Path) -> OperationResult:
        """
        Push the current branch to origin.

        Every push failure (no remote, auth, network, rejected update) is
        returned as a Failure, never raised.
        """
        with open_repo(path) as repo:
            remotes = configured_remotes(repo)
            if not remotes:
                return Failure(message=NO_REMOTE, error="No remote repository configured")
            if REMOTE.encode("utf-8") not in remotes:
                return Failure(message=NO_REMOTE, error=f"Remote '{REMOTE}' is not configured")

            branch = current_branch(repo)
            local_sha = head_sha(repo)
            if branch is None or local_sha is None:
                return Failure(message="nothing to push", error="No commits on a checked-out branch")

            refspec = branch_ref(branch) + b":" + branch_ref(branch)
            try:
                porcelain.push(
                    repo,
                    remote_location=REMOTE,
                    refspecs=[refspec],
                    outstream=porcelain.NoneStream(),
                    errstream=porcelain.NoneStream(),
                )
            except Exception as e:
                logger.warning(f"Push of {branch} failed: {e}")
                return Failure(message="push failed", error=str(e) or e.__class__.__name__)

            repo.refs[remote_ref(branch)] = local_sha
            logger.info(f"Pushed {branch} at {local_sha.decode('ascii')[:8]} to {REMOTE}")
            return Success(message=f"Pushed {branch} to {REMOTE}", ref=local_sha.decode("ascii"))
