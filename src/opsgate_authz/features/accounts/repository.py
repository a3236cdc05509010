"""Query helpers for working with ``Account`` records."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from opsgate_db.models import Account, AccountStatus, PrimaryRole, canonicalise_email


class AccountsRepository:
    """Persistence helpers for operator accounts."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def get_by_id(self, account_id: UUID) -> Account | None:
        return self._session.get(Account, account_id)

    def get_for_update(self, account_id: UUID) -> Account | None:
        """Load the row with ``SELECT ... FOR UPDATE`` and refresh any cached copy."""
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def get_by_external_id(self, external_auth_id: str) -> Account | None:
        stmt = select(Account).where(Account.external_auth_id == external_auth_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_by_email(self, email: str) -> Account | None:
        stmt = select(Account).where(Account.email_normalized == canonicalise_email(email))
        return self._session.execute(stmt).scalar_one_or_none()

    def get_by_email_loose(self, email: str) -> Account | None:
        """Case-insensitive match against the display column for rows written elsewhere."""
        stmt = (
            select(Account)
            .where(func.lower(func.trim(Account.email)) == canonicalise_email(email))
            .order_by(Account.created_at)
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def create(
        self,
        *,
        email: str,
        primary_role: PrimaryRole,
        full_name: str | None = None,
        external_auth_id: str | None = None,
        status: AccountStatus = AccountStatus.PENDING_ACTIVATION,
    ) -> Account:
        account = Account(
            email=email,
            full_name=full_name,
            primary_role=primary_role,
            external_auth_id=external_auth_id,
            status=status,
            failed_login_attempts=0,
        )
        self._session.add(account)
        self._session.flush()
        self._session.refresh(account)
        return account

    def conditional_update(self, account_id: UUID, *criteria: Any, **values: Any) -> bool:
        """Apply ``values`` only when the row still matches ``criteria``.

        Returns ``True`` when exactly one row changed. Cached ORM copies of the
        row are expired so the next attribute access reloads it.
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id, *criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        changed = result.rowcount == 1
        if changed:
            self.expire_cached(account_id)
        return changed

    def expire_cached(self, account_id: UUID) -> None:
        instance = self._session.identity_map.get(identity_key(Account, account_id))
        if instance is not None:
            self._session.expire(instance)

    def list_expired_suspension_ids(self, *, now: datetime, limit: int) -> list[UUID]:
        stmt = (
            select(Account.id)
            .where(Account.status == AccountStatus.SUSPENDED)
            .where(Account.suspension_expires_at.is_not(None))
            .where(Account.suspension_expires_at <= now)
            .order_by(Account.suspension_expires_at, Account.id)
            .limit(limit)
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_expired_lock_ids(self, *, now: datetime, limit: int) -> list[UUID]:
        stmt = (
            select(Account.id)
            .where(Account.status == AccountStatus.LOCKED)
            .where(Account.account_locked_until.is_not(None))
            .where(Account.account_locked_until <= now)
            .order_by(Account.account_locked_until, Account.id)
            .limit(limit)
        )
        return list(self._session.execute(stmt).scalars().all())


__all__ = ["AccountsRepository"]
