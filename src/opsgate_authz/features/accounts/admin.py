"""Caller-facing account administration with actor checks and the self-service guard."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from opsgate_authz.common.logging import log_context
from opsgate_authz.common.time import Clock, utc_now
from opsgate_authz.core.errors import (
    InfrastructureError,
    InvalidConstraintError,
    PermissionDeniedError,
    SelfModificationError,
)
from opsgate_authz.settings import Settings, get_settings
from opsgate_db.models import Account, PrimaryRole

from .repository import AccountsRepository
from .schemas import AccountCreate, AccountOut, RoleChangeRequest, StatusChangeRequest
from .status import AccountStatusService

logger = logging.getLogger(__name__)


class AccountAdminService:
    """Administrative entry points for account lifecycle changes.

    Every mutation requires a usable ``SUPER_ADMIN`` actor, and status or role
    changes never target the actor's own account.
    """

    def __init__(
        self,
        *,
        session: Session,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._session = session
        self._repo = AccountsRepository(session)
        self._status = AccountStatusService(
            session=session,
            settings=settings or get_settings(),
            clock=clock,
        )

    def create_account(self, *, actor: Account, payload: AccountCreate) -> AccountOut:
        self._require_admin(actor)
        logger.debug(
            "accounts.create.start",
            extra=log_context(actor_id=actor.id, primary_role=payload.primary_role),
        )
        try:
            account = self._repo.create(
                email=payload.email,
                primary_role=PrimaryRole(payload.primary_role),
                full_name=payload.full_name,
                external_auth_id=payload.external_auth_id,
            )
        except IntegrityError as exc:
            raise InvalidConstraintError("An account with this email already exists.") from exc
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to create account.") from exc
        logger.info(
            "accounts.create.success",
            extra=log_context(account_id=account.id, actor_id=actor.id),
        )
        return AccountOut.model_validate(account)

    def activate(self, *, actor: Account, account_id: UUID) -> AccountOut:
        self._require_admin(actor)
        account = self._status.activate(account_id, actor.id)
        return AccountOut.model_validate(account)

    def change_status(
        self,
        *,
        actor: Account,
        account_id: UUID,
        payload: StatusChangeRequest,
    ) -> AccountOut:
        self._require_admin(actor)
        self._guard_self(actor, account_id, action="change the status of")
        account = self._status.change_status(
            account_id,
            payload.status,
            payload.reason,
            temporary=payload.temporary,
            expires_at=payload.expires_at,
        )
        logger.info(
            "accounts.admin.status_change",
            extra=log_context(account_id=account_id, actor_id=actor.id, to_status=payload.status),
        )
        return AccountOut.model_validate(account)

    def change_role(
        self,
        *,
        actor: Account,
        account_id: UUID,
        payload: RoleChangeRequest,
    ) -> AccountOut:
        self._require_admin(actor)
        self._guard_self(actor, account_id, action="change the role of")
        account = self._status.get_account(account_id)
        previous = account.primary_role
        account.primary_role = PrimaryRole(payload.primary_role)
        try:
            self._session.flush()
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to update account role.") from exc
        logger.info(
            "accounts.admin.role_change",
            extra=log_context(
                account_id=account_id,
                actor_id=actor.id,
                from_role=previous,
                to_role=account.primary_role,
            ),
        )
        return AccountOut.model_validate(account)

    def _require_admin(self, actor: Account) -> None:
        if actor.primary_role != PrimaryRole.SUPER_ADMIN or not self._status.is_usable(actor):
            logger.warning(
                "accounts.admin.denied",
                extra=log_context(actor_id=actor.id, primary_role=actor.primary_role),
            )
            raise PermissionDeniedError("Only an active super admin can administer accounts.")

    @staticmethod
    def _guard_self(actor: Account, account_id: UUID, *, action: str) -> None:
        if actor.id == account_id:
            raise SelfModificationError(f"Users cannot {action} their own account.")


__all__ = ["AccountAdminService"]
