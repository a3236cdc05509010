"""Dashboard login gate: pre-login validation and login outcome recording."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from opsgate_authz.common.logging import log_context
from opsgate_authz.common.time import Clock, utc_now
from opsgate_authz.core.errors import InfrastructureError
from opsgate_authz.features.identity.resolver import IdentityResolver
from opsgate_authz.settings import Settings, get_settings
from opsgate_db.models import Account, AccountStatus

from .schemas import LoginValidation
from .status import AccountStatusService, is_locked

logger = logging.getLogger(__name__)

MSG_INFRASTRUCTURE = (
    "Unable to verify your account due to a database connection issue. "
    "Please try again in a moment."
)
MSG_NOT_REGISTERED = (
    "Your account is not registered in the system. "
    "Please contact an administrator to create your account."
)
MSG_LOCKED = "Account is temporarily locked due to failed login attempts."


def _status_message(status: AccountStatus) -> str:
    return (
        f"Your account is {status.value.lower()}. "
        "Please contact an administrator to activate your account."
    )


class LoginGateService:
    """Decide whether an email may start a dashboard session."""

    def __init__(
        self,
        *,
        session: Session,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._clock = clock
        self._resolver = IdentityResolver(session=session)
        self._status = AccountStatusService(
            session=session,
            settings=settings or get_settings(),
            clock=clock,
        )

    def validate_for_login(self, email: str) -> LoginValidation:
        try:
            account = self._resolver.resolve(email=email)
        except InfrastructureError:
            logger.warning("accounts.login.validate.infrastructure_error", exc_info=True)
            return LoginValidation(is_valid=False, email=email, error=MSG_INFRASTRUCTURE)

        if account is None or account.deleted_at is not None:
            logger.info("accounts.login.validate.unknown")
            return LoginValidation(is_valid=False, email=email, error=MSG_NOT_REGISTERED)

        try:
            usable = self._status.is_usable(account)
        except InfrastructureError:
            logger.warning("accounts.login.validate.infrastructure_error", exc_info=True)
            return LoginValidation(is_valid=False, email=email, error=MSG_INFRASTRUCTURE)

        if usable:
            logger.debug(
                "accounts.login.validate.success",
                extra=log_context(account_id=account.id),
            )
            return LoginValidation(is_valid=True, email=account.email, account_id=account.id)

        if is_locked(account, now=self._clock()) or account.status == AccountStatus.LOCKED:
            error = MSG_LOCKED
        else:
            error = _status_message(account.status)
        logger.info(
            "accounts.login.validate.rejected",
            extra=log_context(account_id=account.id, status=account.status),
        )
        return LoginValidation(
            is_valid=False,
            email=account.email,
            account_id=account.id,
            error=error,
        )

    def record_failure(self, email: str) -> Account | None:
        """Count a failed credential check; unknown emails are ignored."""
        account = self._resolver.resolve(email=email)
        if account is None:
            return None
        return self._status.record_failed_login(account.id)

    def record_success(self, account: Account) -> Account:
        return self._status.record_successful_login(account.id)


__all__ = [
    "LoginGateService",
    "MSG_INFRASTRUCTURE",
    "MSG_LOCKED",
    "MSG_NOT_REGISTERED",
]
