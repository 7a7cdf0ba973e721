"""
app/api/routers/insights.py

Insight generation endpoint.

The model path failing is never an HTTP error: the service substitutes
heuristic insights and reports ``source="fallback"``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import require_records
from app.schemas.dashboard import RowsRequest
from app.schemas.insights import AIInsightsResponse
from app.services.insight_service import InsightService, get_insight_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["insights"])


@router.post("/ai-insights", response_model=AIInsightsResponse)
def generate_ai_insights(
    payload: RowsRequest,
    service: InsightService = Depends(get_insight_service),
) -> AIInsightsResponse:
    records = require_records(payload.data)
    try:
        batch = service.generate_with_fallback(records)
    except Exception as exc:  # noqa: BLE001
        logger.exception("AI insights generation error rows=%d", len(records))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate AI insights",
        ) from exc

    return AIInsightsResponse(insights=batch.insights, source=batch.source)
