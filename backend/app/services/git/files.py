"""
Filesystem mutations inside a working copy.

Every path is user supplied and re-checked against the workspace root here,
even when the caller already validated it. Nothing is staged or committed.
"""
import logging
import shutil
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Iterable

from app.services.git.errors import InvalidInput, PathNotFound
from app.services.git.results import UploadedFile
from app.services.git.workspace import contain, relative_to_root

logger = logging.getLogger(__name__)


def _bare_name(name: str) -> str:
    if not name or name in (".", "..") or "\x00" in name:
        raise InvalidInput(f"Invalid file name: {name!r}")
    if PurePosixPath(name).name != name or PureWindowsPath(name).name != name:
        raise InvalidInput(f"File name must not contain a path: {name!r}")
    if name == ".git":
        raise InvalidInput("Invalid file name: '.git'")
    return name


class FileOperations:

    @staticmethod
    def _target(root: Path, relative_path: str) -> Path:
        """Contained path that is not the workspace root itself."""
        target = contain(root, relative_path)
        if target == Path(root).resolve():
            raise InvalidInput("The repository root is not a valid target")
        return target

    def upload_file(self, root: Path, file: UploadedFile, target_dir: str = "") -> str:
        """
        Write an uploaded file into target_dir, replacing any existing file.

        Returns:
            Relative path of the written file
        """
        name = _bare_name(file.original_name)
        directory = contain(root, target_dir or "")
        existing = directory
        while not existing.exists():
            existing = existing.parent
        if not existing.is_dir():
            raise InvalidInput(f"Upload target is not a directory: {target_dir}")
        destination = contain(root, relative_to_root(root, directory / name))
        if destination.is_dir():
            raise InvalidInput(f"A directory named {name} already exists")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(file.data)
        rel = relative_to_root(root, destination)
        logger.info(f"Uploaded {rel} ({file.size} bytes)")
        return rel

    def upload_files(self, root: Path, files: Iterable[UploadedFile], target_dir: str = "") -> list[str]:
        files = list(files)
        # Validate every name before writing anything
        for f in files:
            _bare_name(f.original_name)
        return [self.upload_file(root, f, target_dir) for f in files]

    def save_file(self, root: Path, relative_path: str, content: str) -> str:
        target = self._target(root, relative_path)
        if target.is_dir():
            raise InvalidInput(f"Cannot overwrite directory: {relative_path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        rel = relative_to_root(root, target)
        logger.info(f"Saved {rel}")
        return rel

    def create_directory(self, root: Path, relative_path: str) -> str:
        target = self._target(root, relative_path)
        if target.exists() and not target.is_dir():
            raise InvalidInput(f"A file named {relative_path} already exists")
        target.mkdir(parents=True, exist_ok=True)
        return relative_to_root(root, target)

    def delete_file(self, root: Path, relative_path: str) -> bool:
        """
        Remove a file, or a directory and everything below it.

        Returns:
            False if there was nothing to delete
        """
        target = self._target(root, relative_path)
        if target.is_symlink() or target.is_file():
            target.unlink()
        elif target.is_dir():
            shutil.rmtree(target)
        else:
            return False
        logger.info(f"Deleted {relative_to_root(root, target)}")
        return True

    def rename_file(self, root: Path, old_path: str, new_path: str) -> str:
        """
        Raises:
            PathNotFound: old_path does not exist
            InvalidInput: new_path already exists
        """
        source = self._target(root, old_path)
        destination = self._target(root, new_path)
        if not source.exists() and not source.is_symlink():
            raise PathNotFound(f"Path not found: {old_path}")
        if destination.exists():
            raise InvalidInput(f"Destination already exists: {new_path}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        source.rename(destination)
        rel = relative_to_root(root, destination)
        logger.info(f"Renamed {relative_to_root(root, source)} to {rel}")
        return rel
