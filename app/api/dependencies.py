"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and shared state.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import File, HTTPException, Request, UploadFile, status

from app.connectors.firestore_connector import FirestoreConnector, build_firestore_connector
from app.domain.tabular import TabularRecord
from app.repositories.dashboard_store import DashboardStore

EMPTY_DATA_DETAIL = "Valid data array is required"

FirestoreConnectorFactory = Callable[..., FirestoreConnector]


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file has a ``.csv`` extension.

    Browsers report inconsistent MIME types for CSV, so only the name counts.
    """

    filename = (file.filename or "").strip().lower()
    if not filename.endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


def get_dashboard_store(request: Request) -> DashboardStore:
    """
    Return the store built at application startup.
    """

    store = getattr(request.app.state, "dashboard_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard store is not initialised.",
        )
    return store


def get_firestore_connector_factory() -> FirestoreConnectorFactory:
    return build_firestore_connector


def require_records(rows: list[dict[str, Any]] | None) -> list[TabularRecord]:
    """
    Convert request rows to tabular records, rejecting empty input with 400.
    """

    if not rows:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=EMPTY_DATA_DETAIL)
    return [TabularRecord.from_plain(row) for row in rows]
