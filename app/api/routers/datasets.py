"""
app/api/routers/datasets.py

Dataset loading endpoints: CSV upload and Firestore collection fetch.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status

from app.api.dependencies import (
    FirestoreConnectorFactory,
    get_csv_upload,
    get_firestore_connector_factory,
)
from app.connectors.base import DataSourceConnectionError
from app.domain.tabular import DataSourceType, Dataset, column_order
from app.schemas.datasets import DatasetResponse, FirestoreSourceRequest, SkippedRowResponse
from app.services.csv_ingestion_service import (
    CSVFormatError,
    CSVIngestionService,
    get_csv_ingestion_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/datasets", tags=["datasets"])


def _dataset_response(
    dataset: Dataset,
    *,
    rows_skipped: int = 0,
    skipped_rows: list[SkippedRowResponse] | None = None,
) -> DatasetResponse:
    return DatasetResponse(
        source_type=dataset.source_type,
        columns=list(dataset.columns),
        row_count=dataset.row_count,
        rows_skipped=rows_skipped,
        skipped_rows=skipped_rows or [],
        data=dataset.to_plain_rows(),
        loaded_at=dataset.loaded_at,
    )


@router.post("/upload-csv", response_model=DatasetResponse)
def upload_csv(
    file: UploadFile = Depends(get_csv_upload),
    ingestion_service: CSVIngestionService = Depends(get_csv_ingestion_service),
) -> DatasetResponse:
    """
    Parse one CSV file into typed rows.
    """

    try:
        parsed = ingestion_service.parse_upload(file)
    except CSVFormatError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    finally:
        file.file.close()

    return _dataset_response(
        parsed.to_dataset(),
        rows_skipped=parsed.rows_skipped,
        skipped_rows=[SkippedRowResponse.model_validate(row) for row in parsed.skipped_rows],
    )


@router.post("/firestore", response_model=DatasetResponse)
def load_firestore_collection(
    payload: FirestoreSourceRequest,
    connector_factory: FirestoreConnectorFactory = Depends(get_firestore_connector_factory),
) -> DatasetResponse:
    """
    Fetch every document of a Firestore collection as rows.
    """

    try:
        connector = connector_factory(
            project_id=payload.project_id,
            collection_name=payload.collection_name,
        )
        result = connector.fetch_records()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except DataSourceConnectionError as exc:
        logger.warning(
            "Firestore load failed project=%s collection=%s error=%s",
            payload.project_id,
            payload.collection_name,
            exc,
        )
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    records = tuple(result.records)
    dataset = Dataset(
        source_type=DataSourceType.FIRESTORE,
        records=records,
        columns=column_order(records),
    )
    return _dataset_response(dataset, rows_skipped=result.failed_records)
