"""
app/repositories package marker.
"""

from app.repositories.dashboard_store import (
    DashboardDataNotFoundError,
    DashboardStore,
    InMemoryDashboardStore,
    InsightNotFoundError,
    SavedDashboardData,
    SavedInsight,
    SQLAlchemyDashboardStore,
    build_dashboard_store,
)

__all__ = [
    "DashboardDataNotFoundError",
    "DashboardStore",
    "InMemoryDashboardStore",
    "InsightNotFoundError",
    "SavedDashboardData",
    "SavedInsight",
    "SQLAlchemyDashboardStore",
    "build_dashboard_store",
]
