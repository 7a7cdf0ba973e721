"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.ai_insight import AIInsight
from db.models.dashboard_data import DashboardData

__all__ = [
    "AIInsight",
    "DashboardData",
]
