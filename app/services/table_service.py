"""
app/services/table_service.py

Search, column filter and pagination for the dashboard data table.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import lru_cache

from app.config import get_presentation_settings
from app.domain.tabular import NumberValue, ScalarValue, TabularRecord, column_order
from app.services.metrics_service import format_grouped

DISPLAY_COLUMN_LIMIT = 6
STATUS_COLUMN_KEYWORDS: tuple[str, ...] = ("status", "state", "active")


@dataclass(frozen=True)
class RowStatus:
    label: str
    color: str


UNKNOWN_STATUS = RowStatus(label="Unknown", color="gray")


@dataclass(frozen=True)
class TablePage:
    """
    One page of filtered rows.

    ``page`` is 1-based and already clamped into range; ``total_pages`` is 0
    when nothing matches.
    """

    columns: tuple[str, ...]
    display_columns: tuple[str, ...]
    records: list[TabularRecord] = field(default_factory=list)
    statuses: list[RowStatus] = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total_rows: int = 0
    total_pages: int = 0


def format_cell(cell: ScalarValue | None) -> str:
    """Display text for one cell; numbers get thousands separators."""
    if cell is None:
        return ""
    if isinstance(cell, NumberValue):
        return format_grouped(cell.value)
    return cell.display()


def find_status_column(columns: Sequence[str]) -> str | None:
    for column in columns:
        lowered = column.lower()
        if any(keyword in lowered for keyword in STATUS_COLUMN_KEYWORDS):
            return column
    return None


def row_status(record: TabularRecord, status_column: str | None) -> RowStatus:
    """
    Map a status-like cell to Active / Limited / Inactive.
    """
    if status_column is None:
        return UNKNOWN_STATUS
    cell = record.get(status_column)
    status = cell.display().lower() if cell is not None else ""
    if "inactive" in status:
        return RowStatus(label="Inactive", color="red")
    if "active" in status or "true" in status or status == "1":
        return RowStatus(label="Active", color="green")
    if "pending" in status or "limited" in status:
        return RowStatus(label="Limited", color="yellow")
    return RowStatus(label="Inactive", color="red")


class TableService:
    """
    Stateless table query over an in-memory record sequence.
    """

    def __init__(self, *, page_size: int = 10) -> None:
        self._page_size = max(1, page_size)

    def filter_records(
        self,
        records: Sequence[TabularRecord],
        *,
        search: str = "",
        column: str | None = None,
    ) -> list[TabularRecord]:
        """
        Case-insensitive substring match.

        With a column, only that column is searched; otherwise any cell may
        match. An empty search keeps every row.
        """
        term = (search or "").strip().lower()
        if not term:
            return list(records)

        def _text(cell: ScalarValue | None) -> str:
            return cell.display().lower() if cell is not None else ""

        if column:
            return [record for record in records if term in _text(record.get(column))]
        return [
            record
            for record in records
            if any(term in _text(cell) for cell in record.values())
        ]

    def query(
        self,
        records: Sequence[TabularRecord],
        *,
        search: str = "",
        column: str | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> TablePage:
        columns = column_order(list(records))
        size = max(1, page_size or self._page_size)
        filtered = self.filter_records(records, search=search, column=column)
        total_pages = math.ceil(len(filtered) / size)
        current = min(max(1, page), max(1, total_pages))
        start = (current - 1) * size
        page_records = filtered[start : start + size]
        status_column = find_status_column(columns)

        return TablePage(
            columns=columns,
            display_columns=columns[:DISPLAY_COLUMN_LIMIT],
            records=page_records,
            statuses=[row_status(record, status_column) for record in page_records],
            page=current,
            page_size=size,
            total_rows=len(filtered),
            total_pages=total_pages,
        )


@lru_cache(maxsize=1)
def get_table_service() -> TableService:
    return TableService(page_size=get_presentation_settings().table_page_size)
