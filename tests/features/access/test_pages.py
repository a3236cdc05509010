"""Tests for page path mapping and dashboard visibility."""

from __future__ import annotations

import pytest

from opsgate_authz.features.access.pages import PageAccessService, dashboard_for_path
from opsgate_authz.features.identity.schemas import CallerIdentity
from opsgate_db.models import AccountStatus, DashboardType, PrimaryRole
from tests.utils import grant_dashboard, make_account


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/dashboard/riders", DashboardType.RIDER),
        ("/dashboard/riders/", DashboardType.RIDER),
        ("/dashboard/riders/42?tab=wallet", DashboardType.RIDER),
        ("/dashboard/orders", DashboardType.ORDER_FOOD),
        ("/dashboard/orders/9001", DashboardType.ORDER_FOOD),
        ("/dashboard/orders/parcel", DashboardType.ORDER_PARCEL),
        ("/dashboard/orders/parcel/77", DashboardType.ORDER_PARCEL),
        ("/dashboard/orders/person-ride/5", DashboardType.ORDER_PERSON_RIDE),
        ("/dashboard/payments#pending", DashboardType.PAYMENT),
        ("/dashboard/super-admin/users", DashboardType.SYSTEM),
        ("/dashboard/ridersx", None),
        ("/dashboard", None),
        ("/settings", None),
    ],
)
def test_dashboard_for_path(path, expected) -> None:
    assert dashboard_for_path(path) == expected


@pytest.fixture()
def pages(session, settings, clock) -> PageAccessService:
    return PageAccessService(session=session, settings=settings, clock=clock)


def test_super_admin_sees_every_page(session, pages) -> None:
    admin = make_account(session, role=PrimaryRole.SUPER_ADMIN)

    assert pages.can_view_path(admin, "/dashboard/payments")
    assert pages.can_view_path(admin, "/dashboard/system")
    assert pages.can_view_path(admin, "/dashboard")


def test_payment_is_super_admin_only(session, pages) -> None:
    finance = make_account(session, role=PrimaryRole.FINANCE_TEAM)
    grant_dashboard(session, finance.id, DashboardType.PAYMENT)

    assert pages.can_view_dashboard(finance, DashboardType.PAYMENT) is False
    assert pages.can_view_path(finance, "/dashboard/payments/withdrawals") is False


def test_granted_dashboard_page_is_visible(session, pages) -> None:
    agent = make_account(session, email="rider.desk@example.test")
    grant_dashboard(session, agent.id, DashboardType.RIDER)

    identity = CallerIdentity(email="rider.desk@example.test")
    assert pages.can_view_path(identity, "/dashboard/riders/12") is True
    assert pages.can_view_path(identity, "/dashboard/merchants") is False
    assert pages.can_view_path(identity, "/dashboard") is True
    assert pages.can_view_path(identity, "/unknown") is False


def test_landing_page_needs_some_dashboard(session, pages) -> None:
    agent = make_account(session)

    assert pages.can_view_path(agent, "/dashboard") is False


def test_unusable_account_sees_nothing(session, pages) -> None:
    agent = make_account(session, status=AccountStatus.DISABLED)
    grant_dashboard(session, agent.id, DashboardType.RIDER)

    assert pages.can_view_path(agent, "/dashboard/riders") is False
    assert pages.can_view_path(agent, "/dashboard") is False


def test_super_admin_only_list_is_configurable(session, settings, clock) -> None:
    settings.super_admin_only_dashboards = []
    pages = PageAccessService(session=session, settings=settings, clock=clock)
    finance = make_account(session, role=PrimaryRole.FINANCE_TEAM)
    grant_dashboard(session, finance.id, DashboardType.PAYMENT)

    assert pages.can_view_dashboard(finance, DashboardType.PAYMENT) is True
