"""
Schemas for saved dashboard dataset endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.tabular import DataSourceType


class DashboardDataCreateRequest(BaseModel):
    data_source: str = Field(default=DataSourceType.CSV, min_length=1, max_length=32)
    data_config: dict[str, Any] | None = None
    data: list[dict[str, Any]] = Field(default_factory=list)


class DashboardDataResponse(BaseModel):
    id: str
    data_source: str
    data_config: dict[str, Any] | None = None
    data: list[dict[str, Any]] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
