"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

# Disable rate limiting in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.entities.user import UserRole
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser
from infrastructure.database.models import Base, UserModel


# Compile JSONB as JSON for SQLite (used in tests)
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_: Any, compiler: Any, **kw: Any) -> str:
    return "JSON"


# Test database URL (SQLite in memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed user IDs for consistency
TEST_USER_ID = 1
TEST_ADMIN_ID = 2


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(
    engine: AsyncEngine,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create session factory."""
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    yield factory


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_user() -> TokenUser:
    """An ordinary employee."""
    return TokenUser(
        id=TEST_USER_ID,
        email="test@example.com",
        username="tester",
        role=UserRole.EMPLOYEE,
    )


@pytest.fixture
def admin_user() -> TokenUser:
    """An administrator."""
    return TokenUser(
        id=TEST_ADMIN_ID,
        email="admin@example.com",
        username="admin",
        role=UserRole.ADMIN,
    )


@pytest.fixture
async def seeded_users(
    session_factory: async_sessionmaker[AsyncSession],
    test_user: TokenUser,
    admin_user: TokenUser,
) -> list[TokenUser]:
    """Insert the test users into the directory."""
    async with session_factory() as session:
        for user in (test_user, admin_user):
            session.add(
                UserModel(
                    id=user.id,
                    username=user.username,
                    email=user.email,
                    role=str(user.role),
                )
            )
        await session.commit()
    return [test_user, admin_user]


@pytest.fixture
def auth_provider() -> JWTAuthProvider:
    """Create auth provider for testing."""
    return JWTAuthProvider(
        secret_key="test-secret-key",
        algorithm="HS256",
        expire_minutes=30,
    )


@pytest.fixture
def auth_token(auth_provider: JWTAuthProvider, test_user: TokenUser) -> str:
    """Create auth token for test user."""
    return str(auth_provider.create_token(test_user))


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client (no auth)."""
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def _build_client_app(
    session_factory: async_sessionmaker[AsyncSession],
    user: TokenUser,
    auth_provider: JWTAuthProvider,
) -> Any:
    from api.dependencies.auth import get_auth_provider, get_current_user
    from api.v1.dependencies import get_notification_service, get_template_service
    from domain.services.notification_service import NotificationService
    from domain.services.template_service import TemplateService
    from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
    from main import create_app

    app = create_app()

    # Override auth to return the given user directly
    async def override_get_user() -> TokenUser:
        return user

    def override_get_auth_provider() -> JWTAuthProvider:
        return auth_provider

    # Create a UoW factory that uses test session
    def test_uow_factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    def override_get_notification_service() -> NotificationService:
        return NotificationService(test_uow_factory)

    def override_get_template_service() -> TemplateService:
        return TemplateService(test_uow_factory)

    app.dependency_overrides[get_current_user] = override_get_user
    app.dependency_overrides[get_auth_provider] = override_get_auth_provider
    app.dependency_overrides[get_notification_service] = override_get_notification_service
    app.dependency_overrides[get_template_service] = override_get_template_service
    return app


@pytest.fixture
async def authenticated_client(
    session_factory: async_sessionmaker[AsyncSession],
    seeded_users: list[TokenUser],
    test_user: TokenUser,
    auth_provider: JWTAuthProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create authenticated test client for an ordinary employee.

    This client:
    - Uses an in-memory SQLite database
    - Seeds the test users into the directory
    - Overrides auth dependency to return the test user
    - Overrides the services to use the test session factory
    """
    app = _build_client_app(session_factory, test_user, auth_provider)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
async def admin_client(
    session_factory: async_sessionmaker[AsyncSession],
    seeded_users: list[TokenUser],
    admin_user: TokenUser,
    auth_provider: JWTAuthProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """Create authenticated test client for an administrator."""
    app = _build_client_app(session_factory, admin_user, auth_provider)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
