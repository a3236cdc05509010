"""Coarse dashboard grants: which top-level dashboards an account may see."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsgate_authz.core.errors import InfrastructureError
from opsgate_db.models import DashboardAccessGrant, DashboardType

from .repository import AccessRepository


class DashboardAccessIndex:
    """Read-only view over active ``dashboard_access`` rows."""

    def __init__(self, *, session: Session) -> None:
        self._repo = AccessRepository(session)

    def has_access(self, account_id: UUID, dashboard_type: DashboardType | str) -> bool:
        try:
            return self._repo.has_active_dashboard_grant(account_id, DashboardType(dashboard_type))
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to read dashboard access.") from exc

    def list_access(self, account_id: UUID) -> set[DashboardType]:
        return {grant.dashboard_type for grant in self.list_grants(account_id)}

    def list_grants(self, account_id: UUID) -> list[DashboardAccessGrant]:
        try:
            return self._repo.list_dashboard_grants(account_id)
        except SQLAlchemyError as exc:
            raise InfrastructureError("Failed to list dashboard access.") from exc


__all__ = ["DashboardAccessIndex"]
