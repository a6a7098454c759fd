"""
Workspace resolution and path containment.

A working copy always lives at <root>/<owner_user_id>/<repository_id>.
Identifiers are validated before they are joined into a path, and every
user supplied sub-path is re-checked against the working copy root.
"""
import os
from pathlib import Path, PurePosixPath, PureWindowsPath

from app.services.git.errors import InvalidIdentifier, PathOutsideWorkspace

_FORBIDDEN_CHARS = ("/", "\\", "\x00")


def _validate_identifier(kind: str, value: str) -> str:
    if value is None:
        raise InvalidIdentifier(f"{kind} is required")
    text = str(value).strip()
    if not text or text in (".", ".."):
        raise InvalidIdentifier(f"Invalid {kind}: {value!r}")
    if ".." in text or any(ch in text for ch in _FORBIDDEN_CHARS):
        raise InvalidIdentifier(f"Invalid {kind}: {value!r}")
    return text


class WorkspaceResolver:
    """Maps (owner_user_id, repository_id) to a working copy directory."""

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()

    def key(self, owner_user_id, repository_id) -> str:
        """Lock registry key for a workspace."""
        owner = _validate_identifier("user id", owner_user_id)
        repo = _validate_identifier("repository id", repository_id)
        return f"{owner}/{repo}"

    def resolve(self, owner_user_id, repository_id) -> Path:
        """
        Compute the working copy path and make sure its parent exists.

        Never touches the network or the VCS; the checkout itself is
        created by the repository initializer.

        Raises:
            InvalidIdentifier: If either identifier could escape its segment
        """
        owner = _validate_identifier("user id", owner_user_id)
        repo = _validate_identifier("repository id", repository_id)
        owner_dir = self.root / owner
        owner_dir.mkdir(parents=True, exist_ok=True)
        return owner_dir / repo


def contain(root: Path, relative_path: str | None) -> Path:
    """
    Resolve a user supplied path inside a working copy.

    An empty path names the working copy root. Absolute paths, parent
    directory escapes (also through symlinks) and anything inside .git
    are rejected.

    Raises:
        PathOutsideWorkspace: If the path does not stay inside root
    """
    rel = (relative_path or "").strip()
    if "\x00" in rel:
        raise PathOutsideWorkspace(f"Invalid path: {relative_path!r}")
    if rel.startswith(("/", "\\")) or PurePosixPath(rel).is_absolute() or PureWindowsPath(rel).drive:
        raise PathOutsideWorkspace(f"Absolute paths are not allowed: {relative_path!r}")

    root_resolved = Path(root).resolve()
    candidate = Path(os.path.normpath(root_resolved / rel)) if rel else root_resolved
    # resolve() follows symlinks that might point out of the workspace
    resolved = candidate.resolve()

    for path in (candidate, resolved):
        if path != root_resolved and root_resolved not in path.parents:
            raise PathOutsideWorkspace(f"Path escapes the repository: {relative_path!r}")

    parts = resolved.relative_to(root_resolved).parts
    if parts and parts[0] == ".git":
        raise PathOutsideWorkspace(f"Access to .git is not allowed: {relative_path!r}")
    return candidate


def relative_to_root(root: Path, path: Path) -> str:
    """Posix style path of `path` relative to the working copy root."""
    return Path(path).relative_to(Path(root).resolve()).as_posix()
