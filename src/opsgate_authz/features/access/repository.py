"""Query helpers for dashboard and access-point grant rows."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from opsgate_db.models import (
    AccessPointGrant,
    AccessPointGroup,
    DashboardAccessGrant,
    DashboardType,
)


class AccessRepository:
    """Persistence helpers for grant tables."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_dashboard_grant(
        self,
        account_id: UUID,
        dashboard_type: DashboardType,
    ) -> DashboardAccessGrant | None:
        stmt = select(DashboardAccessGrant).where(
            DashboardAccessGrant.account_id == account_id,
            DashboardAccessGrant.dashboard_type == dashboard_type,
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def has_active_dashboard_grant(self, account_id: UUID, dashboard_type: DashboardType) -> bool:
        stmt = (
            select(DashboardAccessGrant.id)
            .where(DashboardAccessGrant.account_id == account_id)
            .where(DashboardAccessGrant.dashboard_type == dashboard_type)
            .where(DashboardAccessGrant.is_active.is_(True))
            .limit(1)
        )
        return self._session.execute(stmt).first() is not None

    def list_dashboard_grants(
        self,
        account_id: UUID,
        *,
        active_only: bool = True,
    ) -> list[DashboardAccessGrant]:
        stmt = select(DashboardAccessGrant).where(DashboardAccessGrant.account_id == account_id)
        if active_only:
            stmt = stmt.where(DashboardAccessGrant.is_active.is_(True))
        stmt = stmt.order_by(DashboardAccessGrant.dashboard_type)
        return list(self._session.execute(stmt).scalars().all())

    def get_access_point_grant(
        self,
        account_id: UUID,
        dashboard_type: DashboardType,
        group: AccessPointGroup,
    ) -> AccessPointGrant | None:
        stmt = select(AccessPointGrant).where(
            AccessPointGrant.account_id == account_id,
            AccessPointGrant.dashboard_type == dashboard_type,
            AccessPointGrant.access_point_group == group,
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def list_access_point_grants(
        self,
        account_id: UUID,
        dashboard_type: DashboardType | None = None,
        *,
        active_only: bool = True,
    ) -> list[AccessPointGrant]:
        stmt = select(AccessPointGrant).where(AccessPointGrant.account_id == account_id)
        if dashboard_type is not None:
            stmt = stmt.where(AccessPointGrant.dashboard_type == dashboard_type)
        if active_only:
            stmt = stmt.where(AccessPointGrant.is_active.is_(True))
        stmt = stmt.order_by(AccessPointGrant.dashboard_type, AccessPointGrant.access_point_group)
        return list(self._session.execute(stmt).scalars().all())

    def add(self, grant: DashboardAccessGrant | AccessPointGrant) -> None:
        self._session.add(grant)


__all__ = ["AccessRepository"]
