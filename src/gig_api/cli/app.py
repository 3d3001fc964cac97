"""``gig-api`` command line: server, migrations, accounts, audit checks."""

import typer

from gig_api.cli.audit_cmd import audit_app
from gig_api.cli.db_cmd import db_app
from gig_api.cli.user_cmd import user_app
from gig_api.core.config import get_settings
from gig_api.core.logging import setup_logging

app = typer.Typer(name="gig-api", help="Gig marketplace API and fraud tooling", no_args_is_help=True)
app.add_typer(db_app, name="db", help="Apply or inspect Alembic migrations")
app.add_typer(user_app, name="user", help="Create and list accounts")
app.add_typer(audit_app, name="audit", help="Check the audit log hash chain")


@app.callback()
def _configure() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind"),  # noqa: S104
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes (development)"),
) -> None:
    """Run the API under uvicorn."""
    import uvicorn

    uvicorn.run("gig_api.main:create_app", factory=True, host=host, port=port, reload=reload)
