"""Map a verified caller identity to an internal account."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsgate_authz.common.logging import log_context
from opsgate_authz.core.errors import AccountNotFoundError, InfrastructureError
from opsgate_authz.features.accounts.repository import AccountsRepository
from opsgate_db.models import Account

from .schemas import CallerIdentity

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Resolve an external reference and/or email to an ``Account``.

    Lookup order: the linked external reference, then the normalized email,
    then a broader case-insensitive comparison on the display email. Storage
    failures raise ``InfrastructureError`` so callers never confuse them with
    an absent account.
    """

    def __init__(self, *, session: Session) -> None:
        self._session = session
        self._repo = AccountsRepository(session)

    def resolve(
        self,
        external_ref: str | None = None,
        email: str | None = None,
    ) -> Account | None:
        external_ref = (external_ref or "").strip() or None
        email = (email or "").strip() or None
        if external_ref is None and email is None:
            return None

        try:
            if external_ref is not None:
                account = self._repo.get_by_external_id(external_ref)
                if account is not None:
                    return account
            if email is not None:
                account = self._repo.get_by_email(email)
                if account is None:
                    account = self._repo.get_by_email_loose(email)
                if account is not None:
                    return account
        except SQLAlchemyError as exc:
            logger.error(
                "identity.resolve.infrastructure_error",
                extra=log_context(has_external_ref=external_ref is not None),
                exc_info=True,
            )
            raise InfrastructureError("Identity lookup failed.") from exc

        logger.debug(
            "identity.resolve.not_found",
            extra=log_context(has_external_ref=external_ref is not None),
        )
        return None

    def resolve_identity(self, identity: CallerIdentity) -> Account | None:
        return self.resolve(external_ref=identity.external_ref, email=identity.email)

    def resolve_or_raise(
        self,
        external_ref: str | None = None,
        email: str | None = None,
    ) -> Account:
        account = self.resolve(external_ref=external_ref, email=email)
        if account is None:
            raise AccountNotFoundError("No account matches the caller identity.")
        return account

    def link_external_identity(self, account_id: UUID, external_ref: str) -> bool:
        """Store ``external_ref`` on the account when it has none yet.

        Returns ``True`` when the link was written. An account already linked
        to a different reference is left untouched.
        """
        external_ref = external_ref.strip()
        if not external_ref:
            raise ValueError("external_ref must not be blank")
        try:
            changed = self._repo.conditional_update(
                account_id,
                Account.external_auth_id.is_(None),
                external_auth_id=external_ref,
            )
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to link external identity.") from exc
        if changed:
            logger.info("identity.link.success", extra=log_context(account_id=account_id))
        return changed


__all__ = ["IdentityResolver"]
