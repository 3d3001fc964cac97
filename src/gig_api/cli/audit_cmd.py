"""Audit log integrity CLI commands."""

import asyncio

import typer

audit_app = typer.Typer()


@audit_app.command("verify-chain")
def verify_chain() -> None:
    """Re-chain the whole audit log from genesis. Exits 1 if any entry is broken."""
    valid = asyncio.run(_verify_chain())
    if not valid:
        raise typer.Exit(code=1)


async def _verify_chain() -> bool:
    from gig_api.core.config import get_settings
    from gig_api.core.database import dispose_engine, get_session_factory, init_engine
    from gig_api.services.audit_service import verify_chain as verify

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        async with get_session_factory()() as session:
            report = await verify(session)
    finally:
        await dispose_engine()

    if report.valid:
        typer.echo(f"Audit chain intact ({report.checked} entries)")
        return True
    typer.echo(f"Audit chain BROKEN: {len(report.broken_log_ids)} of {report.checked} entries invalid", err=True)
    typer.echo(f"First broken entry: {report.first_broken}", err=True)
    for log_id in report.broken_log_ids:
        typer.echo(f"  {log_id}", err=True)
    return False


@audit_app.command("verify")
def verify_entry(log_id: str = typer.Argument(..., help="Audit log identifier (LOG-...)")) -> None:
    """Re-hash a single entry and compare it with its stored signature."""
    valid = asyncio.run(_verify_entry(log_id))
    if not valid:
        raise typer.Exit(code=1)


async def _verify_entry(log_id: str) -> bool:
    from gig_api.core.config import get_settings
    from gig_api.core.database import dispose_engine, get_session_factory, init_engine
    from gig_api.services.audit_service import verify_integrity

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        async with get_session_factory()() as session:
            report = await verify_integrity(session, log_id)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        return False
    finally:
        await dispose_engine()

    if report.valid:
        typer.echo(f"{log_id}: valid")
        return True
    typer.echo(f"{log_id}: TAMPERED (stored {report.stored_hash}, expected {report.expected_hash})", err=True)
    return False
