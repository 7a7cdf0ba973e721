"""
app/api/routers package marker.
"""

from app.api.routers.dashboard import router as dashboard_router
from app.api.routers.dashboard_data import router as dashboard_data_router
from app.api.routers.datasets import router as datasets_router
from app.api.routers.export import router as export_router
from app.api.routers.insights import router as insights_router
from app.api.routers.table import router as table_router

__all__ = [
    "dashboard_data_router",
    "dashboard_router",
    "datasets_router",
    "export_router",
    "insights_router",
    "table_router",
]
