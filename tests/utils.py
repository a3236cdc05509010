"""Factories shared across tests."""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from opsgate_db.models import (
    AccessLevel,
    AccessPointGrant,
    AccessPointGroup,
    Account,
    AccountStatus,
    ActionType,
    DashboardAccessGrant,
    DashboardType,
    PrimaryRole,
)


def unique_email(prefix: str = "ops") -> str:
    return f"{prefix}-{uuid4().hex[:10]}@example.test"


def make_account(
    session: Session,
    *,
    email: str | None = None,
    role: PrimaryRole = PrimaryRole.AGENT,
    status: AccountStatus = AccountStatus.ACTIVE,
    **fields: Any,
) -> Account:
    account = Account(
        email=email or unique_email(),
        primary_role=role,
        status=status,
        failed_login_attempts=fields.pop("failed_login_attempts", 0),
        **fields,
    )
    session.add(account)
    session.flush()
    return account


def grant_dashboard(
    session: Session,
    account_id: UUID,
    dashboard_type: DashboardType,
    *,
    is_active: bool = True,
) -> DashboardAccessGrant:
    grant = DashboardAccessGrant(
        account_id=account_id,
        dashboard_type=dashboard_type,
        access_level=AccessLevel.FULL_ACCESS,
        is_active=is_active,
    )
    session.add(grant)
    session.flush()
    return grant


def grant_access_point(
    session: Session,
    account_id: UUID,
    dashboard_type: DashboardType,
    group: AccessPointGroup,
    actions: list[ActionType],
    *,
    context: dict[str, Any] | None = None,
    is_active: bool = True,
) -> AccessPointGrant:
    grant = AccessPointGrant(
        account_id=account_id,
        dashboard_type=dashboard_type,
        access_point_group=group,
        access_point_name=group.value,
        allowed_actions=[action.value for action in actions],
        context=context or {},
        is_active=is_active,
    )
    session.add(grant)
    session.flush()
    return grant


__all__ = ["grant_access_point", "grant_dashboard", "make_account", "unique_email"]
