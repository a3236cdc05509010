"""Canonical dashboard and access-point catalog.

Labels, descriptions and default allowed actions are used to populate grant
rows when an administrator assigns an access point without spelling out the
actions. The decision engine itself only reads the persisted grant rows.
"""

from __future__ import annotations

from collections.abc import Iterable

from opsgate_db.models import (
    AccessLevel,
    AccessPointGroup,
    AccountStatus,
    ActionType,
    DashboardType,
    PrimaryRole,
)

from .errors import AccessCatalogError
from .types import AccessPointDef, DashboardDef

A = ActionType


def _access_point(
    group: AccessPointGroup,
    label: str,
    description: str,
    *actions: ActionType,
) -> AccessPointDef:
    return AccessPointDef(
        group=group,
        label=label,
        description=description,
        allowed_actions=tuple(actions),
    )


_ORDER_ACCESS_POINTS: tuple[AccessPointDef, ...] = (
    _access_point(
        AccessPointGroup.ORDER_VIEW,
        "View Order Details",
        "View order information and details",
        A.VIEW,
    ),
    _access_point(
        AccessPointGroup.ORDER_CANCEL_ASSIGN,
        "Cancel Ride & Assign Rider",
        "Cancel ride, assign new rider, add remark",
        A.UPDATE,
        A.CANCEL,
        A.ASSIGN,
    ),
    _access_point(
        AccessPointGroup.ORDER_REFUND_DELIVER,
        "Refund & Deliver Actions",
        "Cancel order with refund, update deliver status",
        A.CANCEL,
        A.REFUND,
        A.UPDATE,
    ),
)

_TICKET_SERVICE_LINE_ACTIONS = (A.VIEW, A.ASSIGN, A.UPDATE)


DASHBOARDS: tuple[DashboardDef, ...] = (
    DashboardDef(
        dashboard_type=DashboardType.RIDER,
        label="Rider Dashboard",
        description="Manage riders, onboarding, penalties, wallet, and ride operations",
        access_points=(
            _access_point(
                AccessPointGroup.RIDER_VIEW,
                "View Rider Details",
                "View rider information and details",
                A.VIEW,
            ),
            _access_point(
                AccessPointGroup.RIDER_ACTIONS,
                "Rider Actions",
                "Onboarding status, penalty, blacklist, whitelist, wallet, cancel ride",
                A.UPDATE,
                A.CANCEL,
                A.BLOCK,
                A.UNBLOCK,
            ),
        ),
    ),
    DashboardDef(
        dashboard_type=DashboardType.MERCHANT,
        label="Merchant Dashboard",
        description="Manage merchants, stores, onboarding, operations, and wallet",
        access_points=(
            _access_point(
                AccessPointGroup.MERCHANT_VIEW,
                "View Merchant Details",
                "View merchant information and details",
                A.VIEW,
            ),
            _access_point(
                AccessPointGroup.MERCHANT_ONBOARDING,
                "Merchant Onboarding",
                "Parent/child onboarding status updates",
                A.UPDATE,
                A.APPROVE,
                A.REJECT,
            ),
            _access_point(
                AccessPointGroup.MERCHANT_OPERATIONS,
                "Merchant Operations",
                "Operational status, store status updates",
                A.UPDATE,
            ),
            _access_point(
                AccessPointGroup.MERCHANT_STORE_MANAGEMENT,
                "Store Management",
                "Menu, items, banner, timing, location, documents",
                A.CREATE,
                A.UPDATE,
                A.DELETE,
            ),
            _access_point(
                AccessPointGroup.MERCHANT_WALLET,
                "Merchant Wallet",
                "Wallet amount edit access",
                A.UPDATE,
            ),
        ),
    ),
    DashboardDef(
        dashboard_type=DashboardType.CUSTOMER,
        label="Customer Dashboard",
        description="Manage customers, view details, and take actions",
        access_points=(
            _access_point(
                AccessPointGroup.CUSTOMER_VIEW,
                "View Customer Details",
                "View customer information and details",
                A.VIEW,
            ),
            _access_point(
                AccessPointGroup.CUSTOMER_ACTIONS,
                "Customer Actions",
                "Block, suspend, active actions",
                A.BLOCK,
                A.UNBLOCK,
                A.UPDATE,
            ),
        ),
    ),
    DashboardDef(
        dashboard_type=DashboardType.ORDER,
        label="Order Dashboard",
        description="Manage orders, cancel rides, assign riders, refunds",
        access_points=_ORDER_ACCESS_POINTS,
    ),
    DashboardDef(
        dashboard_type=DashboardType.ORDER_FOOD,
        label="Food Orders",
        description="Food delivery orders",
        access_points=_ORDER_ACCESS_POINTS,
    ),
    DashboardDef(
        dashboard_type=DashboardType.ORDER_PERSON_RIDE,
        label="Person Ride Orders",
        description="Person ride orders",
        access_points=_ORDER_ACCESS_POINTS,
    ),
    DashboardDef(
        dashboard_type=DashboardType.ORDER_PARCEL,
        label="Parcel Orders",
        description="Parcel delivery orders",
        access_points=_ORDER_ACCESS_POINTS,
    ),
    DashboardDef(
        dashboard_type=DashboardType.TICKET,
        label="Ticket Dashboard",
        description="Manage tickets by category and type",
        access_points=(
            _access_point(
                AccessPointGroup.TICKET_VIEW,
                "View Tickets",
                "View all tickets",
                A.VIEW,
            ),
            _access_point(
                AccessPointGroup.TICKET_MERCHANT,
                "Merchant Tickets",
                "Merchant tickets, order-related and not",
                *_TICKET_SERVICE_LINE_ACTIONS,
            ),
            _access_point(
                AccessPointGroup.TICKET_CUSTOMER,
                "Customer Tickets",
                "Customer tickets, order-related and not",
                *_TICKET_SERVICE_LINE_ACTIONS,
            ),
            _access_point(
                AccessPointGroup.TICKET_RIDER,
                "Rider Tickets",
                "Rider tickets, order-related and not",
                *_TICKET_SERVICE_LINE_ACTIONS,
            ),
            _access_point(
                AccessPointGroup.TICKET_OTHER,
                "Other Tickets",
                "Tickets in other categories",
                *_TICKET_SERVICE_LINE_ACTIONS,
            ),
            _access_point(
                AccessPointGroup.TICKET_ACTIONS,
                "Ticket Actions",
                "Assignment, resolve, close, reply",
                A.ASSIGN,
                A.UPDATE,
                A.APPROVE,
                A.REJECT,
            ),
        ),
    ),
    DashboardDef(
        dashboard_type=DashboardType.OFFER,
        label="Offer Dashboard",
        description="Manage offers for rider, customer, and merchant apps",
        access_points=(
            _access_point(
                AccessPointGroup.OFFER_RIDER,
                "Rider App Offers",
                "Incentive, city-wise, condition-wise, surge, bonus and banner offers",
                A.CREATE,
                A.UPDATE,
                A.DELETE,
            ),
            _access_point(
                AccessPointGroup.OFFER_CUSTOMER,
                "Customer App Offers",
                "Customer app offers with banners",
                A.CREATE,
                A.UPDATE,
                A.DELETE,
            ),
            _access_point(
                AccessPointGroup.OFFER_MERCHANT,
                "Merchant App Offers",
                "Merchant app offers with banners",
                A.CREATE,
                A.UPDATE,
                A.DELETE,
            ),
        ),
    ),
    DashboardDef(
        dashboard_type=DashboardType.AREA_MANAGER,
        label="Area Manager Dashboard",
        description="Manage area managers for merchants and riders",
        access_points=(
            _access_point(
                AccessPointGroup.AREA_MANAGER_MERCHANT,
                "Merchant Area Manager",
                "Create and onboard stores, approve, take actions for merchants",
                A.CREATE,
                A.UPDATE,
                A.APPROVE,
                A.VIEW,
            ),
            _access_point(
                AccessPointGroup.AREA_MANAGER_RIDER,
                "Rider Area Manager",
                "Create and onboard riders, approve, take actions for riders",
                A.CREATE,
                A.UPDATE,
                A.APPROVE,
                A.VIEW,
            ),
        ),
    ),
    DashboardDef(
        dashboard_type=DashboardType.PAYMENT,
        label="Payment Dashboard",
        description="Manage withdrawal requests",
        access_points=(
            _access_point(
                AccessPointGroup.PAYMENT_MANAGEMENT,
                "Payment Management",
                "Approve, update, edit, cancel withdrawal requests (bulk or single)",
                A.VIEW,
                A.UPDATE,
                A.APPROVE,
                A.REJECT,
                A.CANCEL,
            ),
        ),
        super_admin_only=True,
    ),
    DashboardDef(
        dashboard_type=DashboardType.SYSTEM,
        label="System Dashboard",
        description="System configuration and settings",
    ),
    DashboardDef(
        dashboard_type=DashboardType.ANALYTICS,
        label="Analytics Dashboard",
        description="View analytics and reports",
    ),
)

DASHBOARD_BY_TYPE: dict[DashboardType, DashboardDef] = {
    definition.dashboard_type: definition for definition in DASHBOARDS
}


def get_dashboard(dashboard_type: DashboardType | str) -> DashboardDef:
    try:
        return DASHBOARD_BY_TYPE[DashboardType(dashboard_type)]
    except ValueError as exc:
        raise AccessCatalogError(f"Unknown dashboard type: {dashboard_type}") from exc


def resolve_access_point(
    dashboard_type: DashboardType | str,
    group: AccessPointGroup | str,
) -> AccessPointDef:
    """Return the catalog entry for ``group`` or raise if it is not scoped to the dashboard."""
    dashboard = get_dashboard(dashboard_type)
    try:
        normalized = AccessPointGroup(group)
    except ValueError as exc:
        raise AccessCatalogError(f"Unknown access point group: {group}") from exc
    definition = dashboard.access_point(normalized)
    if definition is None:
        raise AccessCatalogError(
            f"Access point group {normalized.value} does not belong to "
            f"dashboard {dashboard.dashboard_type.value}."
        )
    return definition


def parse_actions(values: Iterable[ActionType | str]) -> tuple[ActionType, ...]:
    """Normalize action names, dropping duplicates while keeping order."""
    seen: dict[ActionType, None] = {}
    for value in values:
        try:
            action = ActionType(str(getattr(value, "value", value)).strip().upper())
        except ValueError as exc:
            raise AccessCatalogError(f"Unknown action type: {value}") from exc
        seen.setdefault(action, None)
    return tuple(seen)


__all__ = [
    "DASHBOARDS",
    "DASHBOARD_BY_TYPE",
    "AccessLevel",
    "AccessPointDef",
    "AccessPointGroup",
    "AccountStatus",
    "ActionType",
    "DashboardDef",
    "DashboardType",
    "PrimaryRole",
    "get_dashboard",
    "parse_actions",
    "resolve_access_point",
]
