"""
app/schemas package marker.
"""

from app.schemas.dashboard import DashboardSummaryResponse, RowsRequest
from app.schemas.dashboard_data import DashboardDataCreateRequest, DashboardDataResponse
from app.schemas.datasets import DatasetResponse, FirestoreSourceRequest, SkippedRowResponse
from app.schemas.insights import (
    AIInsightsResponse,
    InsightsSaveRequest,
    InsightUpdateRequest,
    SavedInsightListResponse,
    SavedInsightResponse,
)
from app.schemas.table import TablePageResponse, TableQueryRequest

__all__ = [
    "AIInsightsResponse",
    "DashboardDataCreateRequest",
    "DashboardDataResponse",
    "DashboardSummaryResponse",
    "DatasetResponse",
    "FirestoreSourceRequest",
    "InsightsSaveRequest",
    "InsightUpdateRequest",
    "RowsRequest",
    "SavedInsightListResponse",
    "SavedInsightResponse",
    "SkippedRowResponse",
    "TablePageResponse",
    "TableQueryRequest",
]
