"""Reactivation of expired temporary suspensions and lapsed login locks.

Every transition is a conditional UPDATE that re-checks the stale predicate at
write time, so concurrent sweeps (or a sweep racing the just-in-time path)
produce exactly one effective transition per account.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from opsgate_authz.common.logging import bind_correlation_id, clear_correlation_id, log_context
from opsgate_authz.common.time import Clock, utc_now
from opsgate_authz.core.errors import InfrastructureError, OpsgateError
from opsgate_db.models import Account, AccountStatus

from .repository import AccountsRepository

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


@dataclass(slots=True)
class ReconcileResult:
    scanned: int = 0
    reactivated: int = 0
    skipped: int = 0


@dataclass(slots=True)
class SweepResult:
    suspensions: ReconcileResult
    locks: ReconcileResult


class SuspensionReconciler:
    """Flip expired suspensions (and expired locks) back to ``ACTIVE``."""

    def __init__(
        self,
        *,
        session: Session,
        clock: Clock = utc_now,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._session = session
        self._clock = clock
        self._batch_size = batch_size
        self._repo = AccountsRepository(session)

    def reconcile_account(self, account_id: UUID) -> bool:
        """Reactivate one account if its temporary suspension has lapsed."""
        now = self._clock()
        try:
            changed = self._repo.conditional_update(
                account_id,
                Account.status == AccountStatus.SUSPENDED,
                Account.suspension_expires_at.is_not(None),
                Account.suspension_expires_at <= now,
                status=AccountStatus.ACTIVE,
                status_reason=None,
                suspension_expires_at=None,
            )
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to reconcile account suspension.") from exc
        if changed:
            logger.info(
                "reconciler.suspension.reactivated",
                extra=log_context(account_id=account_id, reconciled_at=now.isoformat()),
            )
        return changed

    def reconcile_expired_suspensions(self) -> ReconcileResult:
        """Sweep every account whose temporary suspension expired at or before now."""
        result = ReconcileResult()
        now = self._clock()
        try:
            candidates = self._repo.list_expired_suspension_ids(now=now, limit=self._batch_size)
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to scan expired suspensions.") from exc

        result.scanned = len(candidates)
        for account_id in candidates:
            if self.reconcile_account(account_id):
                result.reactivated += 1
            else:
                result.skipped += 1
                logger.debug(
                    "reconciler.suspension.skipped",
                    extra=log_context(account_id=account_id),
                )

        logger.info(
            "reconciler.suspension.sweep",
            extra=log_context(
                scanned=result.scanned,
                reactivated=result.reactivated,
                skipped=result.skipped,
            ),
        )
        return result

    def release_expired_locks(self) -> ReconcileResult:
        """Return ``LOCKED`` accounts whose lock has lapsed to ``ACTIVE``."""
        result = ReconcileResult()
        now = self._clock()
        try:
            candidates = self._repo.list_expired_lock_ids(now=now, limit=self._batch_size)
            result.scanned = len(candidates)
            for account_id in candidates:
                changed = self._repo.conditional_update(
                    account_id,
                    Account.status == AccountStatus.LOCKED,
                    Account.account_locked_until.is_not(None),
                    Account.account_locked_until <= now,
                    status=AccountStatus.ACTIVE,
                    account_locked_until=None,
                    failed_login_attempts=0,
                )
                if changed:
                    result.reactivated += 1
                    logger.info(
                        "reconciler.lock.released",
                        extra=log_context(account_id=account_id),
                    )
                else:
                    result.skipped += 1
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to release expired locks.") from exc
        return result

    def sweep(self) -> SweepResult:
        return SweepResult(
            suspensions=self.reconcile_expired_suspensions(),
            locks=self.release_expired_locks(),
        )


def run_sweep(
    session_factory: sessionmaker[Session],
    *,
    clock: Clock = utc_now,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> SweepResult:
    """Run one sweep in its own transaction and commit it."""
    bind_correlation_id(f"reconcile-{uuid4().hex[:12]}")
    try:
        with session_factory() as session:
            with session.begin():
                reconciler = SuspensionReconciler(
                    session=session,
                    clock=clock,
                    batch_size=batch_size,
                )
                return reconciler.sweep()
    finally:
        clear_correlation_id()


def run_forever(
    session_factory: sessionmaker[Session],
    *,
    interval: float,
    stop_event: threading.Event,
    clock: Clock = utc_now,
    batch_size: int = DEFAULT_BATCH_SIZE,
    on_sweep: Callable[[SweepResult], None] | None = None,
) -> int:
    """Sweep every ``interval`` seconds until ``stop_event`` is set.

    Returns the number of completed sweeps. Failed sweeps are logged and
    retried on the next tick.
    """
    completed = 0
    logger.info("reconciler.loop.start", extra=log_context(interval_seconds=interval))
    while not stop_event.is_set():
        try:
            result = run_sweep(session_factory, clock=clock, batch_size=batch_size)
        except OpsgateError as exc:
            logger.warning(
                "reconciler.loop.sweep_failed",
                extra=log_context(error_type=exc.error_type, retryable=exc.retryable),
                exc_info=True,
            )
        else:
            completed += 1
            if on_sweep is not None:
                on_sweep(result)
        stop_event.wait(interval)
    logger.info("reconciler.loop.stop", extra=log_context(sweeps=completed))
    return completed


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "ReconcileResult",
    "SuspensionReconciler",
    "SweepResult",
    "run_forever",
    "run_sweep",
]
