"""Static catalog type definitions."""

from __future__ import annotations

from dataclasses import dataclass

from opsgate_db.models import AccessPointGroup, ActionType, DashboardType


@dataclass(frozen=True)
class AccessPointDef:
    """Static access-point definition within a dashboard."""

    group: AccessPointGroup
    label: str
    description: str
    allowed_actions: tuple[ActionType, ...]


@dataclass(frozen=True)
class DashboardDef:
    """Static dashboard definition."""

    dashboard_type: DashboardType
    label: str
    description: str
    access_points: tuple[AccessPointDef, ...] = ()
    super_admin_only: bool = False

    def access_point(self, group: AccessPointGroup | str) -> AccessPointDef | None:
        for definition in self.access_points:
            if definition.group == group:
                return definition
        return None


__all__ = ["AccessPointDef", "DashboardDef"]
