"""Dashboard and access-point grants.

Page visibility lives in ``.pages``; it depends on the decision engine and is
imported from there directly.
"""

from .access_points import AccessPointIndex, context_matches, grant_allows
from .dashboards import DashboardAccessIndex
from .grants import AccessGrantService
from .repository import AccessRepository

__all__ = [
    "AccessGrantService",
    "AccessPointIndex",
    "AccessRepository",
    "DashboardAccessIndex",
    "context_matches",
    "grant_allows",
]
