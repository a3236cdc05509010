"""opsgate root CLI: reconciler, operator permission checks and migrations."""

from __future__ import annotations

import signal
import threading
from typing import Any

import typer

from opsgate_authz.common.logging import setup_logging
from opsgate_authz.features.accounts.reconciler import SweepResult, run_forever, run_sweep
from opsgate_authz.features.authz.engine import AuthorizationEngine
from opsgate_authz.features.identity.schemas import CallerIdentity
from opsgate_authz.settings import Settings, get_settings
from opsgate_db.engine import build_engine, build_session_factory
from opsgate_db.models import ActionType, DashboardType

from .db import app as db_app

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="opsgate CLI (reconcile, check, db).",
)
app.add_typer(db_app, name="db")


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _load_settings() -> Settings:
    settings = get_settings()
    setup_logging(settings)
    return settings


def _echo_sweep(result: SweepResult) -> None:
    typer.echo(
        "reconciled: "
        f"suspensions scanned={result.suspensions.scanned} "
        f"reactivated={result.suspensions.reactivated} "
        f"skipped={result.suspensions.skipped}; "
        f"locks scanned={result.locks.scanned} "
        f"released={result.locks.reactivated} "
        f"skipped={result.locks.skipped}"
    )


def _parse_context(values: list[str]) -> dict[str, Any]:
    context: dict[str, Any] = {}
    for raw in values:
        key, sep, value = raw.partition("=")
        key = key.strip()
        if not sep or not key:
            typer.echo(f"error: context must be key=value (got {raw!r})", err=True)
            raise typer.Exit(code=2)
        context[key] = value.strip()
    return context


@app.command(name="reconcile", help="Reactivate expired suspensions and release lapsed locks.")
def reconcile(
    loop: bool = typer.Option(False, "--loop", help="Keep sweeping until interrupted."),
    interval: float | None = typer.Option(
        None,
        "--interval",
        min=0.1,
        help="Seconds between sweeps (defaults to OPSGATE_RECONCILE_INTERVAL_SECONDS).",
    ),
) -> None:
    settings = _load_settings()
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    try:
        if not loop:
            _echo_sweep(run_sweep(session_factory, batch_size=settings.reconcile_batch_size))
            return

        stop_event = threading.Event()

        def _stop(_signum: int, _frame: Any) -> None:
            stop_event.set()

        signal.signal(signal.SIGINT, _stop)
        signal.signal(signal.SIGTERM, _stop)
        run_forever(
            session_factory,
            interval=interval or settings.reconcile_interval_seconds,
            stop_event=stop_event,
            batch_size=settings.reconcile_batch_size,
            on_sweep=_echo_sweep,
        )
    finally:
        engine.dispose()


@app.command(name="check", help="Evaluate one permission for an account (exit 1 on deny).")
def check(
    email: str = typer.Argument(..., help="Account email."),
    dashboard: DashboardType = typer.Argument(..., help="Dashboard type.", case_sensitive=False),
    action: ActionType = typer.Argument(..., help="Action type.", case_sensitive=False),
    context: list[str] = typer.Option(
        [],
        "--context",
        "-c",
        help="Context constraint as key=value (repeatable).",
    ),
    resource_type: str | None = typer.Option(None, "--resource-type", help="Resource type."),
) -> None:
    settings = _load_settings()
    query_context = _parse_context(context)
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    try:
        with session_factory() as session:
            authz = AuthorizationEngine(session=session, settings=settings)
            decision = authz.decide(
                CallerIdentity(email=email),
                dashboard,
                action,
                resource_type,
                query_context or None,
            )
            # Just-in-time reconciliation may have written; keep it.
            session.commit()
    finally:
        engine.dispose()

    verdict = "allow" if decision.allowed else "deny"
    typer.echo(f"{verdict} reason={decision.reason.value}")
    if not decision.allowed:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
