"""
app/api/routers/dashboard.py

Derived dashboard projections: classification, KPIs, charts, overview text.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import require_records
from app.schemas.dashboard import DashboardSummaryResponse, RowsRequest
from app.services.metrics_service import MetricsService, get_metrics_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.post("/summary", response_model=DashboardSummaryResponse)
def dashboard_summary(
    payload: RowsRequest,
    service: MetricsService = Depends(get_metrics_service),
) -> DashboardSummaryResponse:
    records = require_records(payload.data)
    return DashboardSummaryResponse.model_validate(service.summarize(records))
