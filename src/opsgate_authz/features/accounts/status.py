"""Account lifecycle state machine and the failed-login counter."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, case, literal
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsgate_authz.common.logging import log_context
from opsgate_authz.common.time import Clock, ensure_utc, utc_now
from opsgate_authz.core.errors import (
    AccountNotFoundError,
    IllegalTransitionError,
    InfrastructureError,
    InvalidConstraintError,
)
from opsgate_authz.settings import Settings, get_settings
from opsgate_db.models import Account, AccountStatus
from opsgate_db.models.account import account_status_enum
from opsgate_db.types import UTCDateTime

from .reconciler import SuspensionReconciler
from .repository import AccountsRepository

logger = logging.getLogger(__name__)

# Statuses a change_status() call may move an account into, keyed by target.
_LEGAL_SOURCES: dict[AccountStatus, frozenset[AccountStatus]] = {
    AccountStatus.SUSPENDED: frozenset({AccountStatus.ACTIVE}),
    AccountStatus.DISABLED: frozenset({AccountStatus.ACTIVE}),
    AccountStatus.ACTIVE: frozenset(
        {AccountStatus.SUSPENDED, AccountStatus.DISABLED, AccountStatus.LOCKED}
    ),
}

# Crossing the failed-login threshold only flips these statuses to LOCKED.
_LOCKABLE = (AccountStatus.ACTIVE, AccountStatus.LOCKED)


def is_locked(account: Account, *, now: datetime) -> bool:
    """An unexpired ``account_locked_until`` means locked, whatever the status says."""
    locked_until = account.account_locked_until
    return locked_until is not None and ensure_utc(locked_until) > now


def evaluate_usability(account: Account, *, now: datetime) -> bool:
    """Pure usability check with no reconciliation side effects."""
    if account.deleted_at is not None:
        return False
    if is_locked(account, now=now):
        return False
    if account.status == AccountStatus.ACTIVE:
        return True
    # A LOCKED status whose lock has lapsed is not locked any more.
    return account.status == AccountStatus.LOCKED and account.account_locked_until is not None


def _clean_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    cleaned = reason.strip()
    return cleaned or None


class AccountStatusService:
    """Legal status transitions, usability and login counters for accounts.

    Every mutation reads the row with ``SELECT ... FOR UPDATE`` (or updates it
    in a single statement) and writes with a compare-and-set on the observed
    status. The caller owns the transaction; the service only flushes.
    """

    def __init__(
        self,
        *,
        session: Session,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._clock = clock
        self._repo = AccountsRepository(session)
        self._reconciler = SuspensionReconciler(session=session, clock=clock)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def is_usable(self, account: Account) -> bool:
        """Return whether ``account`` may act right now.

        Runs the just-in-time suspension reconciliation for the account first
        so a lapsed temporary suspension is never observed as current.
        """
        if account.status == AccountStatus.SUSPENDED:
            self._reconciler.reconcile_account(account.id)
        try:
            return evaluate_usability(account, now=self._clock())
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to load account state.") from exc

    def get_account(self, account_id: UUID) -> Account:
        try:
            account = self._repo.get_by_id(account_id)
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to load account.") from exc
        if account is None:
            raise AccountNotFoundError(account_id=account_id)
        return account

    # ------------------------------------------------------------------
    # Administrative transitions
    # ------------------------------------------------------------------

    def activate(self, account_id: UUID, approver_id: UUID | None) -> Account:
        """Move a pending account to ``ACTIVE`` and record who approved it."""
        now = self._clock()
        account = self._lock_row(account_id)
        if account.status != AccountStatus.PENDING_ACTIVATION:
            raise IllegalTransitionError(
                f"Only pending accounts can be activated (current status: {account.status.value})."
            )

        self._compare_and_set(
            account_id,
            expected=AccountStatus.PENDING_ACTIVATION,
            status=AccountStatus.ACTIVE,
            status_reason=None,
            suspension_expires_at=None,
            approved_by_id=approver_id,
            approved_at=now,
        )
        logger.info(
            "accounts.status.activate",
            extra=log_context(account_id=account_id, actor_id=approver_id),
        )
        return self._reload(account_id)

    def change_status(
        self,
        account_id: UUID,
        new_status: AccountStatus | str,
        reason: str | None = None,
        *,
        temporary: bool = False,
        expires_at: datetime | None = None,
    ) -> Account:
        """Apply an administrative status change.

        Legal moves are ``ACTIVE -> SUSPENDED``, ``ACTIVE -> DISABLED`` and
        reactivation into ``ACTIVE`` from ``SUSPENDED``, ``DISABLED`` or
        ``LOCKED``. A reason is mandatory when leaving ``ACTIVE``. A temporary
        suspension needs an ``expires_at`` strictly in the future.
        """
        try:
            target = AccountStatus(new_status)
        except ValueError as exc:
            raise IllegalTransitionError(f"Unknown account status: {new_status}") from exc
        now = self._clock()
        cleaned_reason = _clean_reason(reason)

        if target not in _LEGAL_SOURCES:
            raise IllegalTransitionError(
                f"{target.value} cannot be set through a status change."
            )
        expiry = self._validate_expiry(target, now=now, temporary=temporary, expires_at=expires_at)

        account = self._lock_row(account_id)
        current = account.status
        if account.deleted_at is not None:
            raise IllegalTransitionError("Deleted accounts cannot change status.")
        # A LOCKED row whose lock has lapsed is usable, so it is treated as ACTIVE
        # until the reconciler or a login clears it.
        lapsed_lock = (
            current == AccountStatus.LOCKED
            and account.account_locked_until is not None
            and not is_locked(account, now=now)
        )
        source = AccountStatus.ACTIVE if lapsed_lock and target != AccountStatus.ACTIVE else current
        if source not in _LEGAL_SOURCES[target]:
            raise IllegalTransitionError(
                f"Cannot change status from {current.value} to {target.value}."
            )
        if source == AccountStatus.ACTIVE and cleaned_reason is None:
            raise IllegalTransitionError("A reason is required when leaving ACTIVE.")

        values: dict[str, object] = {
            "status": target,
            "status_reason": cleaned_reason,
            "suspension_expires_at": expiry,
        }
        if target == AccountStatus.ACTIVE or lapsed_lock:
            values["account_locked_until"] = None
            values["failed_login_attempts"] = 0

        self._compare_and_set(account_id, expected=current, **values)
        logger.info(
            "accounts.status.change",
            extra=log_context(
                account_id=account_id,
                from_status=current,
                to_status=target,
                temporary=expiry is not None,
                expires_at=expiry.isoformat() if expiry else None,
            ),
        )
        return self._reload(account_id)

    # ------------------------------------------------------------------
    # Login counters
    # ------------------------------------------------------------------

    def record_failed_login(self, account_id: UUID) -> Account:
        """Increment the failure counter, locking the account at the threshold.

        The increment, the threshold test and the lock are one UPDATE, so
        concurrent failures cannot both observe the pre-threshold count.
        """
        now = self._clock()
        threshold = int(self._settings.failed_login_lock_threshold)
        lock_until = now + self._settings.failed_login_lock_duration

        next_count = Account.failed_login_attempts + 1
        crossing = next_count >= threshold
        try:
            changed = self._repo.conditional_update(
                account_id,
                failed_login_attempts=next_count,
                account_locked_until=case(
                    (crossing, literal(lock_until, UTCDateTime())),
                    else_=Account.account_locked_until,
                ),
                status=case(
                    (
                        and_(crossing, Account.status.in_(_LOCKABLE)),
                        literal(AccountStatus.LOCKED, account_status_enum),
                    ),
                    else_=Account.status,
                ),
            )
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to record failed login.") from exc
        if not changed:
            raise AccountNotFoundError(account_id=account_id)

        account = self._reload(account_id)
        if account.failed_login_attempts == threshold:
            logger.warning(
                "accounts.login.locked",
                extra=log_context(
                    account_id=account_id,
                    failed_login_attempts=account.failed_login_attempts,
                    locked_until=lock_until.isoformat(),
                ),
            )
        else:
            logger.info(
                "accounts.login.failed",
                extra=log_context(
                    account_id=account_id,
                    failed_login_attempts=account.failed_login_attempts,
                ),
            )
        return account

    def record_successful_login(self, account_id: UUID) -> Account:
        """Reset the failure counter, clear any lock and stamp ``last_login_at``."""
        now = self._clock()
        try:
            changed = self._repo.conditional_update(
                account_id,
                failed_login_attempts=0,
                account_locked_until=None,
                last_login_at=now,
                status=case(
                    (
                        Account.status == AccountStatus.LOCKED,
                        literal(AccountStatus.ACTIVE, account_status_enum),
                    ),
                    else_=Account.status,
                ),
            )
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to record successful login.") from exc
        if not changed:
            raise AccountNotFoundError(account_id=account_id)
        logger.debug("accounts.login.success", extra=log_context(account_id=account_id))
        return self._reload(account_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _validate_expiry(
        self,
        target: AccountStatus,
        *,
        now: datetime,
        temporary: bool,
        expires_at: datetime | None,
    ) -> datetime | None:
        if not temporary:
            if expires_at is not None:
                raise InvalidConstraintError("expires_at is only valid for temporary suspensions.")
            return None
        if target != AccountStatus.SUSPENDED:
            raise InvalidConstraintError("Only suspensions can be temporary.")
        if expires_at is None:
            raise InvalidConstraintError("Temporary suspensions require expires_at.")
        expiry = ensure_utc(expires_at)
        if expiry <= now:
            raise InvalidConstraintError("expires_at must be in the future.")
        return expiry

    def _lock_row(self, account_id: UUID) -> Account:
        try:
            account = self._repo.get_for_update(account_id)
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to lock account row.") from exc
        if account is None:
            raise AccountNotFoundError(account_id=account_id)
        return account

    def _compare_and_set(
        self,
        account_id: UUID,
        *,
        expected: AccountStatus,
        **values: object,
    ) -> None:
        try:
            changed = self._repo.conditional_update(
                account_id,
                Account.status == expected,
                **values,
            )
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to write account status.") from exc
        if not changed:
            raise IllegalTransitionError(
                "Account status changed concurrently; reload and retry."
            )

    def _reload(self, account_id: UUID) -> Account:
        try:
            account = self._repo.get_by_id(account_id)
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to reload account.") from exc
        if account is None:
            raise AccountNotFoundError(account_id=account_id)
        return account


__all__ = [
    "AccountStatusService",
    "evaluate_usability",
    "is_locked",
]
