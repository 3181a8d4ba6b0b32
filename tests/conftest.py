"""Test fixtures and configuration."""

import os

# Settings are cached on first use, so the test environment must be in place
# before anything from visitlog is imported.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("IDENTITY_BACKEND", "local")
os.environ.setdefault("BOOTSTRAP_ADMIN_USERNAME", "admin")
os.environ.setdefault("BOOTSTRAP_ADMIN_PASSWORD", "test-admin-pass")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("IDENTITY_SERVICE_URL", "https://identity.test")
os.environ.setdefault("IDENTITY_ANON_KEY", "anon-test-key")
os.environ.setdefault("IDENTITY_SERVICE_ROLE_KEY", "service-role-test-key")
os.environ.setdefault("SETUP_BOOTSTRAP_TOKEN", "setup-test-token")

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from visitlog.config import get_settings  # noqa: E402
from visitlog.dependencies import get_db  # noqa: E402
from visitlog.main import create_app  # noqa: E402
from visitlog.models import Base  # noqa: E402


@pytest_asyncio.fixture
async def db_engine():
    """Create an in-memory SQLite engine for tests."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session bound to the test engine."""
    factory = async_sessionmaker(
        bind=db_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with factory() as session:
        yield session


@pytest.fixture
def app(db_engine):
    """Application with the DB dependency bound to the test engine."""
    get_settings.cache_clear()
    factory = async_sessionmaker(
        bind=db_engine, class_=AsyncSession, expire_on_commit=False
    )

    async def override_get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application = create_app()
    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with overridden DB dependency."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_headers(client: AsyncClient) -> dict[str, str]:
    """Authorization header for the bootstrap administrator."""
    resp = await client.post(
        "/v1/auth/login",
        json={"username": "admin", "password": "test-admin-pass"},
    )
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest_asyncio.fixture
async def login_as(client: AsyncClient, admin_headers: dict[str, str]):
    """Factory: create a local account with the given role and sign in as it.

    Returns the Authorization header for the new account.
    """

    async def _login_as(role: str, username: str | None = None) -> dict[str, str]:
        username = username or f"{role}-account"
        resp = await client.post(
            "/v1/agents",
            json={"username": username, "password": "secret-pass", "role": role},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        resp = await client.post(
            "/v1/auth/login",
            json={"username": username, "password": "secret-pass"},
        )
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _login_as
