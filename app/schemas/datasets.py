"""
app/schemas/datasets.py

Request and response schemas for dataset loading endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class FirestoreSourceRequest(BaseModel):
    """
    Remote collection to load.
    """

    project_id: str = Field(..., min_length=1, max_length=128)
    collection_name: str = Field(..., min_length=1, max_length=512)


class SkippedRowResponse(BaseModel):
    """
    API response model for one dropped CSV line.
    """

    model_config = {"from_attributes": True}

    line_number: int = Field(..., ge=1)
    expected_fields: int = Field(..., ge=0)
    actual_fields: int = Field(..., ge=0)
    message: str


class DatasetResponse(BaseModel):
    """
    API response model for a loaded dataset.
    """

    source_type: str
    columns: list[str] = Field(default_factory=list)
    row_count: int = Field(..., ge=0)
    rows_skipped: int = Field(default=0, ge=0)
    skipped_rows: list[SkippedRowResponse] = Field(default_factory=list)
    data: list[dict[str, Any]] = Field(default_factory=list)
    loaded_at: datetime
