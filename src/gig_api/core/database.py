"""Process-wide async engine plus helpers for opening sessions.

Postgres (asyncpg) in deployment, aiosqlite under test.  Route handlers get
sessions through FastAPI dependencies; the fraud interceptor sits outside the
dependency graph and opens its own through :func:`session_scope`.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from gig_api.models.base import Base

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

_POSTGRES_POOL = {"pool_size": 10, "max_overflow": 5, "pool_pre_ping": True}


def get_engine() -> AsyncEngine:
    if _engine is None:
        msg = "Database engine not initialized; call init_engine() during startup"
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        msg = "Session factory not initialized; call init_engine() during startup"
        raise RuntimeError(msg)
    return _session_factory


def _with_search_path(options: dict[str, Any], schema: str) -> dict[str, Any]:
    connect_args = options.get("connect_args", {})
    if not isinstance(connect_args, dict):
        msg = f"connect_args must be a dict, got {type(connect_args).__name__}"
        raise TypeError(msg)
    return {**options, "connect_args": {**connect_args, "options": f"-c search_path={schema},public"}}


def init_engine(database_url: str, *, schema: str | None = None, **options: Any) -> AsyncEngine:
    """Create the global engine and its session factory.

    Args:
        database_url: Async driver URL.
        schema: Postgres schema to put ahead of ``public`` on the search path.
        **options: Passed through to :func:`create_async_engine`.  Pool sizing
            defaults apply to non-SQLite URLs unless overridden here.
    """
    global _engine, _session_factory  # noqa: PLW0603
    if schema is not None:
        options = _with_search_path(options, schema)
    if not database_url.startswith("sqlite"):
        options = {**_POSTGRES_POOL, **options}
    _engine = create_async_engine(database_url, **options)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


async def create_all_tables(engine: AsyncEngine | None = None) -> None:
    """Create every mapped table; for scratch databases, production uses Alembic."""
    import gig_api.models  # noqa: F401

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession]:
    """Open a session that rolls back when the block raises."""
    async with (factory or get_session_factory())() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    global _engine, _session_factory  # noqa: PLW0603
    engine, _engine, _session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()
