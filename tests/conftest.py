"""
Shared test fixtures.

Uses an in-memory SQLite database shared across connections through a
StaticPool, with foreign keys enforced.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient, Response
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from promptbank.app import create_app
from promptbank.common.logging import configure_logging
from promptbank.config import Settings, get_settings
from promptbank.db.session import Database, get_db_session
from promptbank.models import Category, User, UserRole

from tests.factories import TEST_PASSWORD, create_test_category, create_test_user

# Test Settings Override

TEST_HASH_ITERATIONS = 1_000


def get_test_settings() -> Settings:
    return Settings(
        env="test",
        database={"url": "sqlite+aiosqlite:///:memory:"},  # type: ignore[arg-type]
        auth={  # type: ignore[arg-type]
            "secret_key": "test-session-secret",
            "password_hash_iterations": TEST_HASH_ITERATIONS,
        },
        logging={"level": "DEBUG", "format": "console"},  # type: ignore[arg-type]
    )


@pytest.fixture(scope="session", autouse=True)
def _logging() -> None:
    configure_logging("DEBUG", "console")


@pytest.fixture
def settings() -> Settings:
    return get_test_settings()


# Database Fixtures


@pytest.fixture
async def database(settings: Settings) -> AsyncIterator[Database]:
    engine = create_async_engine(
        settings.database.url,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db = Database(settings.database, engine=engine)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def db_session(database: Database) -> AsyncIterator[AsyncSession]:
    async with database.session_factory() as session:
        yield session


@pytest.fixture
async def people(database: Database) -> dict[str, User]:
    """One committed user per role plus a spare editor."""
    users = {
        "admin": create_test_user("admin@example.com", UserRole.ADMIN),
        "editor": create_test_user("editor@example.com", UserRole.EDITOR),
        "other_editor": create_test_user("other@example.com", UserRole.EDITOR),
        "viewer": create_test_user("viewer@example.com", UserRole.VIEWER),
    }
    async with database.session() as session:
        session.add_all(users.values())
    return users


@pytest.fixture
async def category(database: Database) -> Category:
    cat = create_test_category("Engineering")
    async with database.session() as session:
        session.add(cat)
    return cat


# App + Client Fixtures


@pytest.fixture
async def app(database: Database, settings: Settings) -> FastAPI:
    application = create_app()

    async def override_db() -> AsyncIterator[AsyncSession]:
        async with database.session() as session:
            yield session

    application.dependency_overrides[get_db_session] = override_db
    application.dependency_overrides[get_settings] = lambda: settings
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    # App errors surface as the redirect a browser would get
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


LoginFn = Callable[..., Awaitable[Response]]


@pytest.fixture
def login(client: AsyncClient) -> LoginFn:
    """Sign the client in; the session cookie is kept by the client."""

    async def _login(email: str, password: str = TEST_PASSWORD, callback_url: str = "/") -> Response:
        client.cookies.clear()
        return await client.post(
            "/login",
            data={"email": email, "password": password, "callbackUrl": callback_url},
        )

    return _login
