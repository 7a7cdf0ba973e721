"""
app/api/routers/export.py

Dataset download endpoint.

POST /export?format=csv|pdf

CSV  → text/csv attachment, written so it re-ingests to the same rows
PDF  → application/pdf attachment with summary, KPIs and the first rows
"""

from __future__ import annotations

import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from app.api.dependencies import require_records
from app.schemas.dashboard import RowsRequest
from app.services.export_service import ExportError, ExportService, get_export_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["export"])

_VALID_FORMATS = frozenset({"csv", "pdf"})
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@router.post("/export", summary="Download the current dataset")
def export_dataset(
    payload: RowsRequest,
    output_format: str = Query(
        default="csv",
        alias="format",
        description='Output format: "csv" or "pdf".',
    ),
    filename: str = Query(default="dashboard-data", max_length=100),
    service: ExportService = Depends(get_export_service),
) -> Response:
    if output_format not in _VALID_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid format {output_format!r}. Must be one of: {sorted(_VALID_FORMATS)}.",
        )
    records = require_records(payload.data)
    safe_name = _UNSAFE_FILENAME_CHARS.sub("-", filename).strip("-.") or "dashboard-data"

    try:
        result = service.export(records, output_format=output_format, filename=safe_name)
    except ExportError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc

    logger.info("Export format=%r rows=%d bytes=%d", output_format, result.row_count, len(result.content))
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Row-Count": str(result.row_count),
        },
    )
