"""
Root conftest.py - Shared fixtures for all test types.

This file is automatically loaded by pytest and provides:
- Database session fixtures for integration tests
- FastAPI test client with an isolated workspace root
- Users, tokens and bare git remotes
"""
import sys
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add backend to path for imports
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))

from app.config import Settings, get_settings
from app.database import Base, get_db
from app.main import app
from app.services.auth import create_access_token


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def async_engine():
    """Create a test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for tests, rolled back afterwards."""
    async_session_factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_factory() as session:
        yield session
        await session.rollback()


# -----------------------------------------------------------------------------
# Settings and HTTP client
# -----------------------------------------------------------------------------

@pytest.fixture
def workspace_root(tmp_path) -> Path:
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture
def test_settings(workspace_root) -> Settings:
    """Settings with working copies under a temp dir and a short lock timeout."""
    return get_settings().model_copy(update={
        "workspace_root": str(workspace_root),
        "lock_timeout": 10.0,
    })


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, test_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for API testing.

    Uses the test database session and the temp workspace root.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# -----------------------------------------------------------------------------
# Marker-based fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _mark_test(request):
    """Automatically apply markers based on test location."""
    if "unit" in str(request.fspath):
        request.applymarker(pytest.mark.unit)
    elif "integration" in str(request.fspath):
        request.applymarker(pytest.mark.integration)


# -----------------------------------------------------------------------------
# Users and auth
# -----------------------------------------------------------------------------

@pytest_asyncio.fixture
async def user(db_session):
    from shared.factories import UserFactory

    return await UserFactory.persist(db_session, username="alice", email="alice@example.com")


@pytest_asyncio.fixture
async def other_user(db_session):
    from shared.factories import UserFactory

    return await UserFactory.persist(db_session, username="mallory", email="mallory@example.com")


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.username)}"}


@pytest.fixture
def other_auth_headers(other_user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(other_user.id, other_user.username)}"}


# -----------------------------------------------------------------------------
# Git remotes and repository records
# -----------------------------------------------------------------------------

@pytest.fixture
def remote_repo(tmp_path) -> Path:
    """Bare repository with README.md and src/app.py on main."""
    from shared.git_helpers import make_remote

    return make_remote(tmp_path / "remotes" / "demo.git")


@pytest_asyncio.fixture
async def repository(client, auth_headers, remote_repo) -> dict:
    """Repository record owned by `user`, pointing at `remote_repo`."""
    from shared.factories import repository_create_payload

    response = await client.post(
        "/api/repositories",
        json=repository_create_payload(name="demo", url=str(remote_repo)),
        headers=auth_headers,
    )
    assert response.status_code == 201, f"Failed to create repository: {response.text}"
    return response.json()


@pytest.fixture
def git_url(repository):
    """Base URL of the git API for `repository`."""
    return f"/api/git/repositories/{repository['id']}"
