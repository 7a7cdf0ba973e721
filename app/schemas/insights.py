"""
app/schemas/insights.py

Schemas for insight generation and saved-insight endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from llm_synthesis.schema import InsightRecord


class AIInsightsResponse(BaseModel):
    """
    Generated insights plus where they came from.
    """

    insights: list[InsightRecord] = Field(default_factory=list)
    source: Literal["model", "fallback"]


class InsightsSaveRequest(BaseModel):
    insights: list[InsightRecord] = Field(..., min_length=1)


class InsightUpdateRequest(BaseModel):
    """
    In-place edit of an insight's text. At least one field is required.
    """

    title: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _require_one_field(self) -> "InsightUpdateRequest":
        if self.title is None and self.description is None:
            raise ValueError("Provide a title or a description to update.")
        return self


class SavedInsightResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    dashboard_data_id: str
    type: str
    title: str
    description: str
    confidence: float
    source_key: str | None = None
    created_at: datetime
    updated_at: datetime


class SavedInsightListResponse(BaseModel):
    insights: list[SavedInsightResponse] = Field(default_factory=list)
