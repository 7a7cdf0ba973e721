"""
app/schemas/table.py

Schemas for the data table query endpoint.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from app.schemas.dashboard import RowsRequest


class TableQueryRequest(RowsRequest):
    search: str = ""
    column: str | None = None
    page: int = Field(default=1, ge=1)
    page_size: int | None = Field(default=None, ge=1, le=500)


class RowStatusResponse(BaseModel):
    model_config = {"from_attributes": True}

    label: str
    color: str


class TableRowResponse(BaseModel):
    """
    One table row: raw values plus display text for the shown columns.
    """

    values: dict[str, Any] = Field(default_factory=dict)
    display: dict[str, str] = Field(default_factory=dict)
    status: RowStatusResponse


class TablePageResponse(BaseModel):
    columns: list[str] = Field(default_factory=list)
    display_columns: list[str] = Field(default_factory=list)
    rows: list[TableRowResponse] = Field(default_factory=list)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_rows: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
