"""
app/services package marker.
"""

from app.services.csv_ingestion_service import (
    CSVFormatError,
    CSVIngestionService,
    get_csv_ingestion_service,
)
from app.services.export_service import ExportError, ExportService, get_export_service
from app.services.insight_service import (
    InsightGenerationError,
    InsightService,
    get_insight_service,
)
from app.services.metrics_service import MetricsService, get_metrics_service
from app.services.table_service import TableService, get_table_service

__all__ = [
    "CSVFormatError",
    "CSVIngestionService",
    "get_csv_ingestion_service",
    "ExportError",
    "ExportService",
    "get_export_service",
    "InsightGenerationError",
    "InsightService",
    "get_insight_service",
    "MetricsService",
    "get_metrics_service",
    "TableService",
    "get_table_service",
]
