"""Account administration from the shell."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import typer
from sqlalchemy.ext.asyncio import AsyncSession

user_app = typer.Typer()


@asynccontextmanager
async def _cli_session() -> AsyncGenerator[AsyncSession]:
    from gig_api.core.config import get_settings
    from gig_api.core.database import dispose_engine, get_session_factory, init_engine

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    try:
        async with get_session_factory()() as session:
            yield session
    finally:
        await dispose_engine()


@user_app.command("create")
def create_user(
    username: str = typer.Option(..., prompt=True),
    email: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
    role: str = typer.Option("freelancer", prompt=True, help="admin, employer or freelancer"),
    id_verified: bool = typer.Option(False, "--id-verified", help="Mark the account as identity-verified"),
    if_not_exists: bool = typer.Option(False, "--if-not-exists", help="Succeed quietly when the account exists"),
) -> None:
    """Create an account (audited as a system action)."""
    from pydantic import ValidationError

    from gig_api.schemas.auth import UserCreateRequest

    try:
        request = UserCreateRequest(
            username=username, email=email, password=password, role=role, id_verified=id_verified
        )
    except ValidationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    asyncio.run(_create_user(request, if_not_exists=if_not_exists))


async def _create_user(request, *, if_not_exists: bool) -> None:
    from gig_api.services.audit_service import AuditLogWriteError
    from gig_api.services.auth_service import create_user

    try:
        async with _cli_session() as session:
            user = await create_user(session, request)
    except ValueError as e:
        if if_not_exists and "already exists" in str(e):
            typer.echo(f"User '{request.username}' already exists, nothing to do")
            return
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    except AuditLogWriteError as e:
        typer.echo(f"Error: {e}; the account was not created", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(f"Created {user.role} '{user.username}' ({user.id})")


@user_app.command("list")
def list_users(
    page: int = typer.Option(1, "--page", min=1),
    page_size: int = typer.Option(50, "--page-size", min=1, max=500),
) -> None:
    """Print one page of accounts."""
    asyncio.run(_list_users(page, page_size))


async def _list_users(page: int, page_size: int) -> None:
    from gig_api.services.auth_service import list_users

    async with _cli_session() as session:
        users, total = await list_users(session, page, page_size)

    typer.echo(f"{'USERNAME':<20} {'EMAIL':<30} {'ROLE':<11} {'ACTIVE':<7} VERIFIED")
    for user in users:
        typer.echo(f"{user.username:<20} {user.email:<30} {user.role:<11} {user.is_active!s:<7} {user.id_verified!s}")
    typer.echo(f"{len(users)} shown, {total} total")
