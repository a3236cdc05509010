"""Pydantic schemas for access grant payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from opsgate_authz.common.schema import BaseSchema
from opsgate_db.models import AccessLevel, AccessPointGroup, ActionType, DashboardType

ContextValue = str | int | bool


class DashboardGrantIn(BaseSchema):
    dashboard_type: DashboardType = Field(alias="dashboardType")
    access_level: AccessLevel = Field(default=AccessLevel.FULL_ACCESS, alias="accessLevel")


class AccessPointGrantIn(BaseSchema):
    """One access point to grant.

    ``allowed_actions`` defaults to the catalog's actions for the group when
    omitted; an explicit empty list stores an inert grant.
    """

    dashboard_type: DashboardType = Field(alias="dashboardType")
    access_point_group: AccessPointGroup = Field(alias="accessPointGroup")
    allowed_actions: list[ActionType] | None = Field(default=None, alias="allowedActions")
    context: dict[str, ContextValue] = Field(default_factory=dict)

    @field_validator("context")
    @classmethod
    def _strip_context_keys(cls, value: dict[str, ContextValue]) -> dict[str, ContextValue]:
        cleaned: dict[str, ContextValue] = {}
        for key, item in value.items():
            name = key.strip()
            if not name:
                msg = "Context keys must not be blank."
                raise ValueError(msg)
            cleaned[name] = item
        return cleaned


class AccessSyncRequest(BaseSchema):
    """Full desired access set for one account."""

    dashboards: list[DashboardGrantIn] = Field(default_factory=list)
    access_points: list[AccessPointGrantIn] = Field(default_factory=list, alias="accessPoints")

    @model_validator(mode="after")
    def _access_points_need_dashboards(self) -> AccessSyncRequest:
        granted = {item.dashboard_type for item in self.dashboards}
        missing = sorted(
            {
                item.dashboard_type
                for item in self.access_points
                if item.dashboard_type not in granted
            }
        )
        if missing:
            msg = f"Access points reference dashboards that are not granted: {', '.join(missing)}"
            raise ValueError(msg)
        return self


class DashboardAccessOut(BaseSchema):
    dashboard_type: DashboardType
    access_level: AccessLevel
    is_active: bool
    granted_by_id: UUID | None = None
    granted_at: datetime


class AccessPointOut(BaseSchema):
    dashboard_type: DashboardType
    access_point_group: AccessPointGroup
    access_point_name: str
    access_point_description: str | None = None
    allowed_actions: list[ActionType]
    context: dict[str, Any] = Field(default_factory=dict)
    is_active: bool


class AccessSummary(BaseSchema):
    """Navigation payload: the dashboards and access points an account holds."""

    account_id: UUID
    is_super_admin: bool = False
    dashboards: list[DashboardAccessOut] = Field(default_factory=list)
    access_points: list[AccessPointOut] = Field(default_factory=list)


__all__ = [
    "AccessPointGrantIn",
    "AccessPointOut",
    "AccessSummary",
    "AccessSyncRequest",
    "DashboardAccessOut",
    "DashboardGrantIn",
]
