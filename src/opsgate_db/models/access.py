"""Dashboard and access-point grants."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from opsgate_db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utc_now
from opsgate_db.types import GUID, UTCDateTime

from ._enums import string_enum

JSONType = JSON().with_variant(JSONB(), "postgresql")


class DashboardType(str, Enum):
    """Functional areas an account may be granted coarse access to."""

    RIDER = "RIDER"
    MERCHANT = "MERCHANT"
    CUSTOMER = "CUSTOMER"
    ORDER = "ORDER"
    ORDER_FOOD = "ORDER_FOOD"
    ORDER_PERSON_RIDE = "ORDER_PERSON_RIDE"
    ORDER_PARCEL = "ORDER_PARCEL"
    TICKET = "TICKET"
    OFFER = "OFFER"
    AREA_MANAGER = "AREA_MANAGER"
    PAYMENT = "PAYMENT"
    SYSTEM = "SYSTEM"
    ANALYTICS = "ANALYTICS"


class AccessLevel(str, Enum):
    """Opaque level tag stored on dashboard grants."""

    VIEW_ONLY = "VIEW_ONLY"
    FULL_ACCESS = "FULL_ACCESS"
    RESTRICTED = "RESTRICTED"


class AccessPointGroup(str, Enum):
    """Dashboard-scoped bundles of fine-grained capabilities."""

    RIDER_VIEW = "RIDER_VIEW"
    RIDER_ACTIONS = "RIDER_ACTIONS"
    MERCHANT_VIEW = "MERCHANT_VIEW"
    MERCHANT_ONBOARDING = "MERCHANT_ONBOARDING"
    MERCHANT_OPERATIONS = "MERCHANT_OPERATIONS"
    MERCHANT_STORE_MANAGEMENT = "MERCHANT_STORE_MANAGEMENT"
    MERCHANT_WALLET = "MERCHANT_WALLET"
    CUSTOMER_VIEW = "CUSTOMER_VIEW"
    CUSTOMER_ACTIONS = "CUSTOMER_ACTIONS"
    ORDER_VIEW = "ORDER_VIEW"
    ORDER_CANCEL_ASSIGN = "ORDER_CANCEL_ASSIGN"
    ORDER_REFUND_DELIVER = "ORDER_REFUND_DELIVER"
    TICKET_VIEW = "TICKET_VIEW"
    TICKET_MERCHANT = "TICKET_MERCHANT"
    TICKET_CUSTOMER = "TICKET_CUSTOMER"
    TICKET_RIDER = "TICKET_RIDER"
    TICKET_OTHER = "TICKET_OTHER"
    TICKET_ACTIONS = "TICKET_ACTIONS"
    OFFER_RIDER = "OFFER_RIDER"
    OFFER_CUSTOMER = "OFFER_CUSTOMER"
    OFFER_MERCHANT = "OFFER_MERCHANT"
    AREA_MANAGER_MERCHANT = "AREA_MANAGER_MERCHANT"
    AREA_MANAGER_RIDER = "AREA_MANAGER_RIDER"
    PAYMENT_MANAGEMENT = "PAYMENT_MANAGEMENT"


class ActionType(str, Enum):
    """Operation verbs checked against access-point grants."""

    VIEW = "VIEW"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    ASSIGN = "ASSIGN"
    CANCEL = "CANCEL"
    REFUND = "REFUND"
    BLOCK = "BLOCK"
    UNBLOCK = "UNBLOCK"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"


dashboard_type_enum = string_enum(DashboardType, name="dashboard_type", length=40)
access_level_enum = string_enum(AccessLevel, name="access_level", length=20)
access_point_group_enum = string_enum(AccessPointGroup, name="access_point_group", length=60)


class _GrantProvenanceMixin:
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    granted_by_id: Mapped[UUID | None] = mapped_column(
        GUID(),
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
    )
    granted_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
    revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    revoked_by_id: Mapped[UUID | None] = mapped_column(
        GUID(),
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
    )
    revoke_reason: Mapped[str | None] = mapped_column(Text(), nullable=True)


class DashboardAccessGrant(_GrantProvenanceMixin, UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Coarse grant: the account may see a top-level dashboard."""

    __tablename__ = "dashboard_access"

    account_id: Mapped[UUID] = mapped_column(
        GUID(),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    dashboard_type: Mapped[DashboardType] = mapped_column(dashboard_type_enum, nullable=False)
    access_level: Mapped[AccessLevel] = mapped_column(
        access_level_enum,
        nullable=False,
        default=AccessLevel.VIEW_ONLY,
        server_default=text("'VIEW_ONLY'"),
    )

    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "dashboard_type",
            name="uq_dashboard_access_account_dashboard",
        ),
        Index("ix_dashboard_access_account_active", "account_id", "is_active"),
    )


class AccessPointGrant(_GrantProvenanceMixin, UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Fine-grained grant: allowed actions within a dashboard, optionally constrained."""

    __tablename__ = "dashboard_access_points"

    account_id: Mapped[UUID] = mapped_column(
        GUID(),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    dashboard_type: Mapped[DashboardType] = mapped_column(dashboard_type_enum, nullable=False)
    access_point_group: Mapped[AccessPointGroup] = mapped_column(
        access_point_group_enum, nullable=False
    )
    access_point_name: Mapped[str] = mapped_column(String(255), nullable=False)
    access_point_description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    allowed_actions: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    context: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "dashboard_type",
            "access_point_group",
            name="uq_dashboard_access_points_account_dashboard_group",
        ),
        Index(
            "ix_dashboard_access_points_account_dashboard",
            "account_id",
            "dashboard_type",
            "is_active",
        ),
    )

    @property
    def action_set(self) -> frozenset[ActionType]:
        return frozenset(ActionType(value) for value in self.allowed_actions or ())


__all__ = [
    "AccessLevel",
    "AccessPointGrant",
    "AccessPointGroup",
    "ActionType",
    "DashboardAccessGrant",
    "DashboardType",
    "access_level_enum",
    "access_point_group_enum",
    "dashboard_type_enum",
]
