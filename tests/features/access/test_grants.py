"""Tests for grant administration and access sync."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from opsgate_authz.core.errors import AccessCatalogError
from opsgate_authz.features.access.dashboards import DashboardAccessIndex
from opsgate_authz.features.access.grants import SYNC_REVOKE_REASON, AccessGrantService
from opsgate_authz.features.access.repository import AccessRepository
from opsgate_authz.features.access.schemas import AccessSyncRequest
from opsgate_db.models import AccessLevel, AccessPointGroup, ActionType, DashboardType, PrimaryRole
from tests.utils import make_account


@pytest.fixture()
def grants(session, clock) -> AccessGrantService:
    return AccessGrantService(session=session, clock=clock)


def test_grant_dashboard_is_upsert(session, grants, clock) -> None:
    admin = make_account(session, role=PrimaryRole.SUPER_ADMIN)
    account = make_account(session)

    first = grants.grant_dashboard(account.id, DashboardType.RIDER, granted_by_id=admin.id)
    second = grants.grant_dashboard(
        account.id, "RIDER", access_level=AccessLevel.VIEW_ONLY, granted_by_id=admin.id
    )

    assert first.id == second.id
    assert second.access_level == AccessLevel.VIEW_ONLY
    assert second.granted_at == clock.now
    index = DashboardAccessIndex(session=session)
    assert index.list_access(account.id) == {DashboardType.RIDER}


def test_revoke_dashboard_cascades_to_access_points(session, grants, clock) -> None:
    account = make_account(session)
    grants.grant_dashboard(account.id, DashboardType.ORDER)
    point = grants.grant_access_point(account.id, DashboardType.ORDER, AccessPointGroup.ORDER_VIEW)

    assert grants.revoke_dashboard(account.id, DashboardType.ORDER, reason="rotation") is True
    assert grants.revoke_dashboard(account.id, DashboardType.ORDER) is False

    index = DashboardAccessIndex(session=session)
    assert index.has_access(account.id, DashboardType.ORDER) is False
    assert point.is_active is False
    assert point.revoke_reason == "rotation"
    assert point.revoked_at == clock.now


def test_regrant_after_revoke_reactivates_row(session, grants) -> None:
    account = make_account(session)
    original = grants.grant_dashboard(account.id, DashboardType.CUSTOMER)
    grants.revoke_dashboard(account.id, DashboardType.CUSTOMER)

    again = grants.grant_dashboard(account.id, DashboardType.CUSTOMER)

    assert again.id == original.id
    assert again.is_active is True
    assert again.revoked_at is None
    assert again.revoke_reason is None


def test_access_point_defaults_come_from_catalog(session, grants) -> None:
    account = make_account(session)

    grant = grants.grant_access_point(
        account.id, DashboardType.PAYMENT, AccessPointGroup.PAYMENT_MANAGEMENT
    )

    assert grant.access_point_name == "Payment Management"
    assert grant.allowed_actions == ["VIEW", "UPDATE", "APPROVE", "REJECT", "CANCEL"]
    assert grant.context == {}


def test_access_point_explicit_actions_and_context(session, grants) -> None:
    account = make_account(session)

    grant = grants.grant_access_point(
        account.id,
        DashboardType.TICKET,
        AccessPointGroup.TICKET_ACTIONS,
        allowed_actions=["update", ActionType.ASSIGN, "UPDATE"],
        context={"ticket_category": "RIDER"},
    )

    assert grant.allowed_actions == ["UPDATE", "ASSIGN"]
    assert grant.context == {"ticket_category": "RIDER"}
    assert grant.action_set == frozenset({ActionType.UPDATE, ActionType.ASSIGN})


def test_order_variants_share_order_groups(session, grants) -> None:
    account = make_account(session)

    grant = grants.grant_access_point(
        account.id, DashboardType.ORDER_PARCEL, AccessPointGroup.ORDER_REFUND_DELIVER
    )

    assert grant.dashboard_type == DashboardType.ORDER_PARCEL


@pytest.mark.parametrize(
    ("dashboard", "group"),
    [
        (DashboardType.RIDER, AccessPointGroup.MERCHANT_VIEW),
        (DashboardType.SYSTEM, AccessPointGroup.RIDER_VIEW),
        (DashboardType.RIDER, "NOT_A_GROUP"),
    ],
)
def test_access_point_must_belong_to_dashboard(session, grants, dashboard, group) -> None:
    account = make_account(session)

    with pytest.raises(AccessCatalogError):
        grants.grant_access_point(account.id, dashboard, group)


def test_unknown_action_is_rejected(session, grants) -> None:
    account = make_account(session)

    with pytest.raises(AccessCatalogError):
        grants.grant_access_point(
            account.id,
            DashboardType.RIDER,
            AccessPointGroup.RIDER_VIEW,
            allowed_actions=["LAUNCH"],
        )


def test_revoke_access_point(session, grants) -> None:
    account = make_account(session)
    grants.grant_access_point(account.id, DashboardType.RIDER, AccessPointGroup.RIDER_ACTIONS)

    assert grants.revoke_access_point(account.id, "RIDER", "RIDER_ACTIONS") is True
    assert grants.revoke_access_point(account.id, "RIDER", "RIDER_ACTIONS") is False


def test_sync_replaces_active_set(session, grants) -> None:
    admin = make_account(session, role=PrimaryRole.SUPER_ADMIN)
    account = make_account(session)
    grants.grant_dashboard(account.id, DashboardType.MERCHANT)
    grants.grant_access_point(
        account.id,
        DashboardType.MERCHANT,
        AccessPointGroup.MERCHANT_WALLET,
        context={"zone": "north"},
    )
    grants.grant_dashboard(account.id, DashboardType.RIDER)
    grants.grant_access_point(account.id, DashboardType.RIDER, AccessPointGroup.RIDER_VIEW)

    payload = AccessSyncRequest.model_validate(
        {
            "dashboards": [
                {"dashboardType": "MERCHANT", "accessLevel": "FULL_ACCESS"},
                {"dashboardType": "TICKET"},
            ],
            "accessPoints": [
                {"dashboardType": "MERCHANT", "accessPointGroup": "MERCHANT_WALLET"},
                {
                    "dashboardType": "TICKET",
                    "accessPointGroup": "TICKET_RIDER",
                    "allowedActions": ["VIEW"],
                    "context": {"ticket_category": "RIDER"},
                },
            ],
        }
    )

    grants.sync_access(account.id, payload, actor_id=admin.id)

    repo = AccessRepository(session)
    assert {g.dashboard_type for g in repo.list_dashboard_grants(account.id)} == {
        DashboardType.MERCHANT,
        DashboardType.TICKET,
    }
    points = {
        (p.dashboard_type, p.access_point_group): p
        for p in repo.list_access_point_grants(account.id)
    }
    assert set(points) == {
        (DashboardType.MERCHANT, AccessPointGroup.MERCHANT_WALLET),
        (DashboardType.TICKET, AccessPointGroup.TICKET_RIDER),
    }
    assert points[(DashboardType.MERCHANT, AccessPointGroup.MERCHANT_WALLET)].context == {
        "zone": "north"
    }

    revoked = repo.get_dashboard_grant(account.id, DashboardType.RIDER)
    assert revoked is not None
    assert revoked.is_active is False
    assert revoked.revoke_reason == SYNC_REVOKE_REASON
    assert revoked.revoked_by_id == admin.id


def test_sync_validates_before_writing(session, grants) -> None:
    account = make_account(session)
    grants.grant_dashboard(account.id, DashboardType.RIDER)
    payload = AccessSyncRequest.model_validate(
        {
            "dashboards": [{"dashboardType": "ORDER"}],
            "accessPoints": [{"dashboardType": "ORDER", "accessPointGroup": "RIDER_VIEW"}],
        }
    )

    with pytest.raises(AccessCatalogError):
        grants.sync_access(account.id, payload)

    assert DashboardAccessIndex(session=session).has_access(account.id, DashboardType.RIDER)


def test_sync_request_requires_granted_dashboard() -> None:
    with pytest.raises(ValidationError):
        AccessSyncRequest.model_validate(
            {"accessPoints": [{"dashboardType": "ORDER", "accessPointGroup": "ORDER_VIEW"}]}
        )
