"""
app/api/routers/dashboard_data.py

Saved dashboard datasets and their insights.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_dashboard_store, require_records
from app.repositories.dashboard_store import (
    DashboardDataNotFoundError,
    DashboardStore,
    InsightNotFoundError,
    SavedDashboardData,
)
from app.schemas.dashboard_data import DashboardDataCreateRequest, DashboardDataResponse
from app.schemas.insights import (
    InsightsSaveRequest,
    InsightUpdateRequest,
    SavedInsightListResponse,
    SavedInsightResponse,
)

router = APIRouter(prefix="/dashboard-data", tags=["dashboard-data"])


def _data_response(saved: SavedDashboardData) -> DashboardDataResponse:
    return DashboardDataResponse(
        id=saved.id,
        data_source=saved.data_source,
        data_config=saved.data_config,
        data=[record.to_plain() for record in saved.records],
        is_active=saved.is_active,
        created_at=saved.created_at,
        updated_at=saved.updated_at,
    )


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.post("", response_model=DashboardDataResponse, status_code=status.HTTP_201_CREATED)
def save_dashboard_data(
    payload: DashboardDataCreateRequest,
    store: DashboardStore = Depends(get_dashboard_store),
) -> DashboardDataResponse:
    records = require_records(payload.data)
    saved = store.save_dashboard_data(
        data_source=payload.data_source,
        data_config=payload.data_config,
        records=records,
    )
    return _data_response(saved)


@router.get("/{dashboard_data_id}", response_model=DashboardDataResponse)
def get_dashboard_data(
    dashboard_data_id: str,
    store: DashboardStore = Depends(get_dashboard_store),
) -> DashboardDataResponse:
    try:
        saved = store.get_dashboard_data(dashboard_data_id)
    except DashboardDataNotFoundError as exc:
        raise _not_found(exc) from exc
    return _data_response(saved)


@router.post(
    "/{dashboard_data_id}/insights",
    response_model=SavedInsightListResponse,
    status_code=status.HTTP_201_CREATED,
)
def save_insights(
    dashboard_data_id: str,
    payload: InsightsSaveRequest,
    store: DashboardStore = Depends(get_dashboard_store),
) -> SavedInsightListResponse:
    try:
        saved = store.save_insights(dashboard_data_id, payload.insights)
    except DashboardDataNotFoundError as exc:
        raise _not_found(exc) from exc
    return SavedInsightListResponse(
        insights=[SavedInsightResponse.model_validate(insight) for insight in saved]
    )


@router.get("/{dashboard_data_id}/insights", response_model=SavedInsightListResponse)
def list_insights(
    dashboard_data_id: str,
    store: DashboardStore = Depends(get_dashboard_store),
) -> SavedInsightListResponse:
    try:
        saved = store.get_insights(dashboard_data_id)
    except DashboardDataNotFoundError as exc:
        raise _not_found(exc) from exc
    return SavedInsightListResponse(
        insights=[SavedInsightResponse.model_validate(insight) for insight in saved]
    )


@router.patch(
    "/{dashboard_data_id}/insights/{insight_id}",
    response_model=SavedInsightResponse,
)
def update_insight(
    dashboard_data_id: str,
    insight_id: str,
    payload: InsightUpdateRequest,
    store: DashboardStore = Depends(get_dashboard_store),
) -> SavedInsightResponse:
    try:
        updated = store.update_insight(
            dashboard_data_id,
            insight_id,
            title=payload.title,
            description=payload.description,
        )
    except (DashboardDataNotFoundError, InsightNotFoundError) as exc:
        raise _not_found(exc) from exc
    return SavedInsightResponse.model_validate(updated)
