"""
Fixtures for git layer unit tests: a bare remote and a fresh clone of it.
"""
from pathlib import Path

import pytest

from app.services.git.initializer import clone_working_copy
from shared.git_helpers import make_remote

AUTHOR = "Alice <alice@gitdesk.local>"


@pytest.fixture
def remote(tmp_path) -> Path:
    """Bare repository with README.md and src/app.py on main."""
    return make_remote(tmp_path / "remote.git")


@pytest.fixture
def working_copy(tmp_path, remote) -> Path:
    """Clone of `remote`, checked out on main."""
    path = tmp_path / "work" / "1" / "repo"
    path.parent.mkdir(parents=True)
    clone_working_copy(path, str(remote))
    return path.resolve()


@pytest.fixture
def author() -> str:
    return AUTHOR
