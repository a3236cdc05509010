"""Pydantic schemas for account payloads."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from opsgate_authz.common.schema import BaseSchema
from opsgate_db.models import AccountStatus, PrimaryRole


class AccountOut(BaseSchema):
    """Account view for administrative listings."""

    id: UUID
    email: str
    full_name: str | None = None
    primary_role: PrimaryRole
    status: AccountStatus
    status_reason: str | None = None
    suspension_expires_at: datetime | None = None
    failed_login_attempts: int = 0
    account_locked_until: datetime | None = None
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AccountCreate(BaseSchema):
    """Fields administrators provide when creating an account."""

    email: str = Field(max_length=320)
    primary_role: PrimaryRole
    full_name: str | None = Field(default=None, max_length=255)
    external_auth_id: str | None = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def _require_email(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned or "@" not in cleaned:
            msg = "A valid email address is required."
            raise ValueError(msg)
        return cleaned

    @field_validator("full_name", "external_auth_id")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None


class StatusChangeRequest(BaseSchema):
    """Administrative status change.

    ``expires_at`` is only meaningful together with ``temporary``; the status
    service enforces the remaining lifecycle rules against the current time.
    """

    status: AccountStatus
    reason: str | None = Field(default=None, max_length=2000)
    temporary: bool = False
    expires_at: datetime | None = Field(default=None, alias="expiresAt")

    @field_validator("reason")
    @classmethod
    def _normalize_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @model_validator(mode="after")
    def _require_expiry_for_temporary(self) -> StatusChangeRequest:
        if self.temporary and self.expires_at is None:
            msg = "expiresAt is required for temporary suspensions."
            raise ValueError(msg)
        return self


class RoleChangeRequest(BaseSchema):
    primary_role: PrimaryRole = Field(alias="primaryRole")


class LoginValidation(BaseSchema):
    """Outcome of a dashboard login pre-check."""

    is_valid: bool
    email: str
    account_id: UUID | None = None
    error: str | None = None


__all__ = [
    "AccountCreate",
    "AccountOut",
    "LoginValidation",
    "RoleChangeRequest",
    "StatusChangeRequest",
]
