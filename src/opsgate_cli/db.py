"""opsgate db: database migration commands."""

from __future__ import annotations

import typer
from alembic import command

from opsgate_db.migrations_runner import alembic_config, run_migrations

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="opsgate database CLI (upgrade, history, current).",
)


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command(name="upgrade", help="Apply Alembic migrations (upgrade head).")
def upgrade(
    revision: str = typer.Argument("head", help="Alembic revision to upgrade to."),
) -> None:
    run_migrations(revision=revision)
    typer.echo(f"Database upgraded to {revision}.")


@app.command(name="history", help="Show migration history.")
def history(
    rev_range: str | None = typer.Argument(None, help="Revision range (optional)."),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output."),
) -> None:
    with alembic_config() as cfg:
        command.history(cfg, rev_range, verbose=verbose)


@app.command(name="current", help="Show current database revision.")
def current(
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output."),
) -> None:
    with alembic_config() as cfg:
        command.current(cfg, verbose=verbose)
