"""Tests for the opsgate command-line interface."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import timedelta
from pathlib import Path

import pytest
from typer.testing import CliRunner

from opsgate_authz.settings import Settings, reload_settings
from opsgate_cli import main as cli_main
from opsgate_cli.main import app
from opsgate_db.base import utc_now
from opsgate_db.engine import build_engine, build_session_factory
from opsgate_db.models import AccessPointGroup, AccountStatus, ActionType, DashboardType
from opsgate_db.settings import reload_settings as reload_db_settings
from tests.utils import grant_access_point, grant_dashboard, make_account

runner = CliRunner()


@pytest.fixture()
def database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    url = f"sqlite:///{tmp_path / 'cli.sqlite'}"
    monkeypatch.setenv("OPSGATE_DATABASE_URL", url)
    monkeypatch.setattr(cli_main, "setup_logging", lambda settings: None)
    reload_settings()
    reload_db_settings()
    yield url
    monkeypatch.delenv("OPSGATE_DATABASE_URL")
    reload_db_settings()


@pytest.fixture()
def migrated(database_url: str) -> str:
    result = runner.invoke(app, ["db", "upgrade"])
    assert result.exit_code == 0, result.output
    assert "Database upgraded to head." in result.output
    return database_url


def _seed(database_url: str, seed) -> None:
    engine = build_engine(Settings(_env_file=None, database_url=database_url))
    try:
        with build_session_factory(engine)() as session:
            seed(session)
            session.commit()
    finally:
        engine.dispose()


def test_root_help_without_command() -> None:
    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert "reconcile" in result.output
    assert "check" in result.output


def test_check_reports_allow_and_deny(migrated: str) -> None:
    def _seed_agent(session) -> None:
        account = make_account(session, email="desk@example.test")
        grant_dashboard(session, account.id, DashboardType.ORDER)
        grant_access_point(
            session,
            account.id,
            DashboardType.ORDER,
            AccessPointGroup.ORDER_CANCEL_ASSIGN,
            [ActionType.CANCEL],
        )

    _seed(migrated, _seed_agent)

    allowed = runner.invoke(app, ["check", "desk@example.test", "ORDER", "CANCEL"])
    denied = runner.invoke(app, ["check", "desk@example.test", "order", "refund"])
    unknown = runner.invoke(app, ["check", "nobody@example.test", "ORDER", "VIEW"])

    assert allowed.exit_code == 0, allowed.output
    assert "allow reason=access_point_match" in allowed.output
    assert denied.exit_code == 1
    assert "deny reason=no_matching_access_point" in denied.output
    assert unknown.exit_code == 1
    assert "deny reason=account_not_found" in unknown.output


def test_check_passes_context(migrated: str) -> None:
    def _seed_ticket_agent(session) -> None:
        account = make_account(session, email="tickets@example.test")
        grant_dashboard(session, account.id, DashboardType.TICKET)
        grant_access_point(
            session,
            account.id,
            DashboardType.TICKET,
            AccessPointGroup.TICKET_RIDER,
            [ActionType.VIEW],
            context={"ticket_category": "RIDER"},
        )

    _seed(migrated, _seed_ticket_agent)

    base = ["check", "tickets@example.test", "TICKET", "VIEW"]
    rider = runner.invoke(app, [*base, "--context", "ticket_category=RIDER"])
    customer = runner.invoke(app, [*base, "-c", "ticket_category=CUSTOMER"])

    assert rider.exit_code == 0, rider.output
    assert customer.exit_code == 1


def test_check_rejects_malformed_context(migrated: str) -> None:
    result = runner.invoke(app, ["check", "a@example.test", "ORDER", "VIEW", "--context", "oops"])

    assert result.exit_code == 2
    assert "key=value" in result.output


def test_reconcile_once(migrated: str) -> None:
    def _seed_suspended(session) -> None:
        make_account(
            session,
            status=AccountStatus.SUSPENDED,
            status_reason="cool-off",
            suspension_expires_at=utc_now() - timedelta(minutes=1),
        )

    _seed(migrated, _seed_suspended)

    first = runner.invoke(app, ["reconcile"])
    second = runner.invoke(app, ["reconcile"])

    assert first.exit_code == 0, first.output
    assert "suspensions scanned=1 reactivated=1" in first.output
    assert "suspensions scanned=0 reactivated=0" in second.output


def test_db_help_without_subcommand() -> None:
    result = runner.invoke(app, ["db"])

    assert result.exit_code == 0
    assert "upgrade" in result.output
