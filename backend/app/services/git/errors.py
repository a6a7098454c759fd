"""
Error taxonomy for git repository operations.

- InvalidInput: rejected before touching the filesystem or VCS
- NotFound: unknown repository, branch or path
- VcsError: the git toolchain failed; the cause text is kept for diagnostics

Routine precondition failures of commit/push are not exceptions at all,
they come back as a Failure result.
"""


class GitServiceError(Exception):
    """Base exception for git repository operations."""
    pass


class InvalidInput(GitServiceError):
    """Request input failed validation."""
    pass


class InvalidIdentifier(InvalidInput):
    """A user or repository identifier cannot name a workspace segment."""
    pass


class PathOutsideWorkspace(InvalidInput):
    """A relative path escapes the working copy or targets .git."""
    pass


class InvalidName(InvalidInput):
    """Empty or malformed branch name."""
    pass


class BranchExists(InvalidInput):
    """Branch to be created already exists."""
    pass


class NotFound(GitServiceError):
    pass


class RepositoryNotFound(NotFound):
    pass


class BranchNotFound(NotFound):
    pass


class PathNotFound(NotFound):
    pass


class NotAFile(GitServiceError):
    """Path names a directory where a file was expected."""
    pass


class CannotDeleteCurrent(GitServiceError):
    """The checked-out branch cannot be deleted."""
    pass


class VcsError(GitServiceError):
    """The git toolchain reported a failure.

    `cause` keeps the underlying error text. It is meant for humans and
    is not guaranteed to be machine parseable.
    """

    def __init__(self, message: str, cause: str | None = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        base = super().__str__()
        if self.cause:
            return f"{base}: {self.cause}"
        return base


class CloneFailed(VcsError):
    pass


class SyncFailed(VcsError):
    pass


class AddFailed(VcsError):
    pass


class CheckoutFailed(VcsError):
    pass
