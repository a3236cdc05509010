"""Tests for suspension and lock reconciliation."""

from __future__ import annotations

import threading
from datetime import timedelta
from pathlib import Path

from sqlalchemy.orm import Session

from opsgate_authz.core.errors import InfrastructureError
from opsgate_authz.features.accounts import reconciler as reconciler_module
from opsgate_authz.features.accounts.reconciler import (
    ReconcileResult,
    SuspensionReconciler,
    SweepResult,
    run_forever,
    run_sweep,
)
from opsgate_authz.features.accounts.repository import AccountsRepository
from opsgate_authz.settings import Settings
from opsgate_db import Base
from opsgate_db.engine import build_engine, build_session_factory
from opsgate_db.models import Account, AccountStatus
from tests.utils import make_account


def _expired_suspension(session: Session, clock, **fields) -> Account:
    return make_account(
        session,
        status=AccountStatus.SUSPENDED,
        status_reason="cool-off",
        suspension_expires_at=clock.now - timedelta(minutes=5),
        **fields,
    )


def test_reconcile_is_idempotent(session, clock) -> None:
    account = _expired_suspension(session, clock)
    reconciler = SuspensionReconciler(session=session, clock=clock)

    first = reconciler.reconcile_expired_suspensions()
    second = reconciler.reconcile_expired_suspensions()

    assert (first.scanned, first.reactivated, first.skipped) == (1, 1, 0)
    assert (second.scanned, second.reactivated, second.skipped) == (0, 0, 0)
    session.refresh(account)
    assert account.status == AccountStatus.ACTIVE
    assert account.status_reason is None
    assert account.suspension_expires_at is None


def test_reconcile_ignores_unexpired_and_permanent(session, clock) -> None:
    pending = make_account(
        session,
        status=AccountStatus.SUSPENDED,
        status_reason="x",
        suspension_expires_at=clock.now + timedelta(minutes=5),
    )
    permanent = make_account(session, status=AccountStatus.SUSPENDED, status_reason="y")
    disabled = make_account(
        session,
        status=AccountStatus.DISABLED,
        suspension_expires_at=clock.now - timedelta(minutes=5),
    )

    result = SuspensionReconciler(session=session, clock=clock).reconcile_expired_suspensions()

    assert result.scanned == 0
    for account in (pending, permanent):
        session.refresh(account)
        assert account.status == AccountStatus.SUSPENDED
    session.refresh(disabled)
    assert disabled.status == AccountStatus.DISABLED


def test_expiry_boundary_is_inclusive(session, clock) -> None:
    account = make_account(
        session,
        status=AccountStatus.SUSPENDED,
        status_reason="x",
        suspension_expires_at=clock.now,
    )

    assert SuspensionReconciler(session=session, clock=clock).reconcile_account(account.id)


def test_batch_size_limits_each_pass(session, clock) -> None:
    for _ in range(3):
        _expired_suspension(session, clock)
    reconciler = SuspensionReconciler(session=session, clock=clock, batch_size=2)

    assert reconciler.reconcile_expired_suspensions().reactivated == 2
    assert reconciler.reconcile_expired_suspensions().reactivated == 1


def test_release_expired_locks(session, clock) -> None:
    lapsed = make_account(
        session,
        status=AccountStatus.LOCKED,
        failed_login_attempts=5,
        account_locked_until=clock.now - timedelta(seconds=1),
    )
    current = make_account(
        session,
        status=AccountStatus.LOCKED,
        failed_login_attempts=5,
        account_locked_until=clock.now + timedelta(minutes=30),
    )

    result = SuspensionReconciler(session=session, clock=clock).release_expired_locks()

    assert result.reactivated == 1
    session.refresh(lapsed)
    session.refresh(current)
    assert lapsed.status == AccountStatus.ACTIVE
    assert lapsed.failed_login_attempts == 0
    assert lapsed.account_locked_until is None
    assert current.status == AccountStatus.LOCKED


def test_concurrent_sweeps_apply_one_transition(tmp_path: Path, clock) -> None:
    settings = Settings(_env_file=None, database_url=f"sqlite:///{tmp_path / 'race.sqlite'}")
    engine = build_engine(settings)
    Base.metadata.create_all(engine)
    factory = build_session_factory(engine)
    try:
        with factory() as setup:
            account_id = _expired_suspension(setup, clock).id
            setup.commit()

        with factory() as first, factory() as second:
            stale = SuspensionReconciler(session=second, clock=clock)
            candidates = AccountsRepository(second).list_expired_suspension_ids(
                now=clock.now, limit=10
            )
            second.commit()
            assert candidates == [account_id]

            assert SuspensionReconciler(session=first, clock=clock).reconcile_account(account_id)
            first.commit()

            assert stale.reconcile_account(account_id) is False
            second.commit()

        with factory() as check:
            account = check.get(Account, account_id)
            assert account is not None
            assert account.status == AccountStatus.ACTIVE
    finally:
        engine.dispose()


def test_run_sweep_commits(session_factory, clock) -> None:
    with session_factory() as session:
        account_id = _expired_suspension(session, clock).id
        session.commit()

    result = run_sweep(session_factory, clock=clock)

    assert isinstance(result, SweepResult)
    assert result.suspensions.reactivated == 1
    with session_factory() as session:
        assert session.get(Account, account_id).status == AccountStatus.ACTIVE


def test_run_forever_stops_on_event(session_factory, clock) -> None:
    stop_event = threading.Event()
    seen: list[SweepResult] = []

    def _on_sweep(result: SweepResult) -> None:
        seen.append(result)
        stop_event.set()

    completed = run_forever(
        session_factory,
        interval=0.01,
        stop_event=stop_event,
        clock=clock,
        on_sweep=_on_sweep,
    )

    assert completed == 1
    assert len(seen) == 1


def test_run_forever_survives_failed_sweep(session_factory, clock, monkeypatch) -> None:
    stop_event = threading.Event()
    calls = {"count": 0}

    def _flaky_sweep(*_args, **_kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            raise InfrastructureError("database unavailable")
        stop_event.set()
        return SweepResult(suspensions=ReconcileResult(), locks=ReconcileResult())

    monkeypatch.setattr(reconciler_module, "run_sweep", _flaky_sweep)

    completed = run_forever(session_factory, interval=0.01, stop_event=stop_event, clock=clock)

    assert calls["count"] == 2
    assert completed == 1
