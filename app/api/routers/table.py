"""
app/api/routers/table.py

Filtered, paginated view of the current dataset.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import require_records
from app.schemas.table import RowStatusResponse, TablePageResponse, TableQueryRequest, TableRowResponse
from app.services.table_service import TableService, format_cell, get_table_service

router = APIRouter(prefix="/table", tags=["table"])


@router.post("/query", response_model=TablePageResponse)
def query_table(
    payload: TableQueryRequest,
    service: TableService = Depends(get_table_service),
) -> TablePageResponse:
    records = require_records(payload.data)
    page = service.query(
        records,
        search=payload.search,
        column=payload.column,
        page=payload.page,
        page_size=payload.page_size,
    )

    rows = [
        TableRowResponse(
            values=record.to_plain(),
            display={column: format_cell(record.get(column)) for column in page.display_columns},
            status=RowStatusResponse.model_validate(row_status),
        )
        for record, row_status in zip(page.records, page.statuses)
    ]
    return TablePageResponse(
        columns=list(page.columns),
        display_columns=list(page.display_columns),
        rows=rows,
        page=page.page,
        page_size=page.page_size,
        total_rows=page.total_rows,
        total_pages=page.total_pages,
    )
