"""Database migration CLI commands (Alembic, driven programmatically)."""

from typing import TYPE_CHECKING

import typer
from loguru import logger

if TYPE_CHECKING:
    from alembic.config import Config

db_app = typer.Typer()


def _alembic_config(ini_path: str) -> "Config":
    from alembic.config import Config

    return Config(ini_path)


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
    ini_path: str = typer.Option("alembic.ini", "--config", help="Path to alembic.ini"),
) -> None:
    """Apply migrations up to ``revision``."""
    from alembic import command

    logger.info(f"Migrating database up to {revision}")
    command.upgrade(_alembic_config(ini_path), revision)
    logger.info("Migration finished")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
    ini_path: str = typer.Option("alembic.ini", "--config", help="Path to alembic.ini"),
) -> None:
    """Roll migrations back to ``revision``."""
    from alembic import command

    logger.info(f"Rolling database back to {revision}")
    command.downgrade(_alembic_config(ini_path), revision)
    logger.info("Rollback finished")


@db_app.command()
def current(
    ini_path: str = typer.Option("alembic.ini", "--config", help="Path to alembic.ini"),
) -> None:
    """Print the revision the database is at."""
    from alembic import command

    command.current(_alembic_config(ini_path), verbose=True)
