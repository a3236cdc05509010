"""Authorization query and decision types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import Field

from opsgate_authz.common.schema import BaseSchema
from opsgate_db.models import AccessPointGroup, ActionType, DashboardType


class PermissionQuery(BaseSchema):
    """One ``(dashboard, action, context)`` question about a caller."""

    dashboard_type: DashboardType = Field(alias="dashboardType")
    action_type: ActionType = Field(alias="actionType")
    resource_type: str | None = Field(default=None, alias="resourceType")
    context: dict[str, Any] | None = None


class DecisionReason(str, Enum):
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCOUNT_UNUSABLE = "account_unusable"
    SUPER_ADMIN = "super_admin"
    NO_DASHBOARD_ACCESS = "no_dashboard_access"
    ACCESS_POINT_MATCH = "access_point_match"
    NO_MATCHING_ACCESS_POINT = "no_matching_access_point"
    ERROR = "error"


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of a permission check with a machine-readable reason."""

    allowed: bool
    reason: DecisionReason
    account_id: UUID | None = None
    access_point_group: AccessPointGroup | None = None

    def __bool__(self) -> bool:
        return self.allowed


__all__ = ["AuthorizationDecision", "DecisionReason", "PermissionQuery"]
