"""Shared test fixtures and configuration."""

import os

# Settings are read at import time; the app-level engine is never connected
# in tests, every test gets its own SQLite file through the fixtures below.
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///./auth-service-unused.db")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx  # noqa: E402
import pytest  # noqa: E402

from auth_service.api.deps import get_token_issuer  # noqa: E402
from auth_service.core.rotation import TokenRotator  # noqa: E402
from auth_service.crud.users import create_user  # noqa: E402
from auth_service.db.session import (  # noqa: E402
    build_engine,
    build_sessionmaker,
    get_db,
    initialize_database,
)
from auth_service.main import app  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}")
    await initialize_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def issuer():
    return get_token_issuer()


@pytest.fixture
def rotator(issuer) -> TokenRotator:
    return TokenRotator(issuer)


@pytest.fixture
async def user(session_factory):
    # Rotation tests only need a row to satisfy the foreign key.
    async with session_factory() as session:
        created = await create_user(session, "owner@example.com", "not-a-real-hash")
        await session.commit()
    return created


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()
