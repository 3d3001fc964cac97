"""Shared test fixtures for async database, sessions, users and auth tokens."""

import uuid
from collections.abc import AsyncGenerator, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from gig_api.core.config import Settings
from gig_api.core.security import create_access_token, hash_password
from gig_api.models import User
from gig_api.models.base import Base

TEST_SECRET = "test-secret-key-not-for-production-use"


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key=TEST_SECRET,
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        jwt_refresh_token_expire_days=7,
        fraud_behavior_sample_rate=0.0,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory async SQLite engine; every session shares the one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Per-test async session."""
    async with session_factory() as session:
        yield session


async def _add_user(session: AsyncSession, username: str, role: str, *, id_verified: bool = False) -> User:
    user = User(
        id=uuid.uuid4(),
        username=username,
        email=f"{username}@example.com",
        hashed_password=hash_password("testpassword123"),
        role=role,
        id_verified=id_verified,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
async def freelancer(async_session: AsyncSession) -> User:
    """An unverified freelancer account."""
    return await _add_user(async_session, "freelancer", "freelancer")


@pytest.fixture
async def employer(async_session: AsyncSession) -> User:
    return await _add_user(async_session, "employer", "employer")


@pytest.fixture
async def verified_user(async_session: AsyncSession) -> User:
    """An identity-verified freelancer account."""
    return await _add_user(async_session, "verified", "freelancer", id_verified=True)


@pytest.fixture
async def admin(async_session: AsyncSession) -> User:
    return await _add_user(async_session, "moderator", "admin")


@pytest.fixture
def auth_headers(settings: Settings) -> Callable[[User], dict[str, str]]:
    """Build an Authorization header carrying an access token for a user."""

    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(
            subject=user.username,
            role=user.role,
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
