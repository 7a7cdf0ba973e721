"""
app/schemas/dashboard.py

Schemas for dashboard derivation endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RowsRequest(BaseModel):
    """
    Request body carrying the current dataset rows.

    Emptiness is checked by the endpoints so the 400 message matches the
    dashboard client's expectations.
    """

    data: list[dict[str, Any]] = Field(default_factory=list)


class ColumnClassificationResponse(BaseModel):
    model_config = {"from_attributes": True}

    numeric: list[str] = Field(default_factory=list)
    textual: list[str] = Field(default_factory=list)


class KPIMetricResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    label: str
    value: str
    trend: float
    trend_direction: str
    icon: str
    color: str
    source_column: str | None = None


class ChartPointResponse(BaseModel):
    model_config = {"from_attributes": True}

    label: str
    value: float


class ChartDataResponse(BaseModel):
    model_config = {"from_attributes": True}

    trend: list[ChartPointResponse] = Field(default_factory=list)
    distribution: list[ChartPointResponse] = Field(default_factory=list)
    performance: list[ChartPointResponse] = Field(default_factory=list)


class OverviewInsightResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    kind: str
    title: str
    description: str


class DashboardSummaryResponse(BaseModel):
    """
    Every projection the dashboard renders for one dataset.
    """

    model_config = {"from_attributes": True}

    row_count: int = Field(..., ge=0)
    classification: ColumnClassificationResponse
    kpis: list[KPIMetricResponse] = Field(default_factory=list)
    charts: ChartDataResponse
    overview_insights: list[OverviewInsightResponse] = Field(default_factory=list)
