"""Alembic environment configuration for async SQLAlchemy migrations."""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool, text
from sqlalchemy.ext.asyncio import async_engine_from_config

# Importing the package registers every model with Base.metadata.
import gig_api.models  # noqa: F401
from gig_api.core.config import get_settings
from gig_api.models.base import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _settings_url_and_schema() -> tuple[str, str | None]:
    settings = get_settings()
    return settings.database_url, settings.database_schema


def _configure_kwargs(schema: str | None, **kwargs: object) -> dict[str, object]:
    configure_kwargs: dict[str, object] = {"target_metadata": target_metadata, "compare_type": True, **kwargs}
    if schema is not None:
        configure_kwargs["version_table_schema"] = schema
    return configure_kwargs


def run_migrations_offline() -> None:
    """Emit migration SQL without a live connection."""
    url, schema = _settings_url_and_schema()
    context.configure(
        **_configure_kwargs(schema, url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:  # type: ignore[no-untyped-def]
    """Run migrations synchronously within a connection."""
    _, schema = _settings_url_and_schema()
    if schema is not None:
        connection.execute(text(f'SET search_path TO "{schema}", public'))
    context.configure(**_configure_kwargs(schema, connection=connection))
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations over an async engine built from application settings."""
    url, schema = _settings_url_and_schema()
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = url

    connectable = async_engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        if schema is not None:
            await connection.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
            await connection.commit()
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
