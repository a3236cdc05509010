"""Operator accounts and their lifecycle state."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, validates

from opsgate_db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from opsgate_db.types import GUID, UTCDateTime

from ._enums import string_enum


def normalise_email(value: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        msg = "Email must not be empty"
        raise ValueError(msg)
    return cleaned


def canonicalise_email(value: str) -> str:
    return normalise_email(value).lower()


def _clean_full_name(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if len(cleaned) > 255:
        return cleaned[:255]
    return cleaned


class AccountStatus(str, Enum):
    """Lifecycle states for operator accounts."""

    PENDING_ACTIVATION = "PENDING_ACTIVATION"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    DISABLED = "DISABLED"
    LOCKED = "LOCKED"


class PrimaryRole(str, Enum):
    """Role tag carried by every account. ``SUPER_ADMIN`` bypasses grants."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    AGENT = "AGENT"
    AREA_MANAGER_MERCHANT = "AREA_MANAGER_MERCHANT"
    AREA_MANAGER_RIDER = "AREA_MANAGER_RIDER"
    SALES_TEAM = "SALES_TEAM"
    ADVERTISEMENT_TEAM = "ADVERTISEMENT_TEAM"
    AUDIT_TEAM = "AUDIT_TEAM"
    COMPLIANCE_TEAM = "COMPLIANCE_TEAM"
    SUPPORT_L1 = "SUPPORT_L1"
    SUPPORT_L2 = "SUPPORT_L2"
    SUPPORT_L3 = "SUPPORT_L3"
    FINANCE_TEAM = "FINANCE_TEAM"
    OPERATIONS_TEAM = "OPERATIONS_TEAM"
    DEVELOPER = "DEVELOPER"
    READ_ONLY = "READ_ONLY"
    MANAGER = "MANAGER"
    SUPERVISOR = "SUPERVISOR"
    TEAM_LEAD = "TEAM_LEAD"
    COORDINATOR = "COORDINATOR"
    ANALYST = "ANALYST"
    SPECIALIST = "SPECIALIST"
    CONSULTANT = "CONSULTANT"
    INTERN = "INTERN"
    TRAINEE = "TRAINEE"
    QA_ENGINEER = "QA_ENGINEER"
    PRODUCT_MANAGER = "PRODUCT_MANAGER"
    PROJECT_MANAGER = "PROJECT_MANAGER"
    HR_TEAM = "HR_TEAM"
    MARKETING_TEAM = "MARKETING_TEAM"
    CUSTOMER_SUCCESS = "CUSTOMER_SUCCESS"
    DATA_ANALYST = "DATA_ANALYST"
    BUSINESS_ANALYST = "BUSINESS_ANALYST"


account_status_enum = string_enum(AccountStatus, name="account_status", length=32)
primary_role_enum = string_enum(PrimaryRole, name="primary_role", length=40)


class Account(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One record per human operator of the dashboard."""

    __tablename__ = "accounts"

    external_auth_id: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    email_normalized: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    primary_role: Mapped[PrimaryRole] = mapped_column(primary_role_enum, nullable=False)
    status: Mapped[AccountStatus] = mapped_column(
        account_status_enum,
        nullable=False,
        default=AccountStatus.PENDING_ACTIVATION,
        server_default=text("'PENDING_ACTIVATION'"),
    )
    status_reason: Mapped[str | None] = mapped_column(Text(), nullable=True)
    suspension_expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    failed_login_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    account_locked_until: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    approved_by_id: Mapped[UUID | None] = mapped_column(
        GUID(),
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        Index("ix_accounts_status_suspension_expires_at", "status", "suspension_expires_at"),
    )

    @validates("email")
    def _store_normalised_email(self, _key: str, value: str) -> str:
        cleaned = normalise_email(value)
        self.email_normalized = cleaned.lower()
        return cleaned

    @validates("full_name")
    def _trim_full_name(self, _key: str, value: str | None) -> str | None:
        return _clean_full_name(value)

    @property
    def label(self) -> str:
        return self.full_name or self.email

    @property
    def is_super_admin(self) -> bool:
        return self.primary_role == PrimaryRole.SUPER_ADMIN


__all__ = [
    "Account",
    "AccountStatus",
    "PrimaryRole",
    "account_status_enum",
    "canonicalise_email",
    "normalise_email",
    "primary_role_enum",
]
