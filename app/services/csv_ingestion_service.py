"""
app/services/csv_ingestion_service.py

Service layer for CSV ingestion.

The parser is a deliberately naive comma splitter: every line is one record,
fields are trimmed and stripped of surrounding double quotes, and quoted
fields with embedded commas or newlines are not supported. Rows whose field
count differs from the header are skipped and logged, never padded or
truncated.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import UploadFile

from app.config import get_csv_ingestion_settings
from app.domain.ingestion import ParsedCSV, SkippedRow
from app.domain.tabular import TabularRecord, scalar_from_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CSVFormatError(ValueError):
    """
    Raised when CSV content is malformed or has no usable rows.
    """


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def split_fields(line: str) -> list[str]:
    """
    Split one line on commas, trimming and unquoting each field.
    """

    return [field.strip().strip('"').strip() for field in line.split(",")]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class CSVIngestionService:
    """
    Turns raw delimited text into typed tabular records.
    """

    def __init__(
        self,
        *,
        log_skipped_rows: bool = True,
        max_skipped_rows: int = 500,
    ) -> None:
        self._log_skipped_rows = log_skipped_rows
        self._max_skipped_rows = max(1, max_skipped_rows)

    def parse_text(self, text: str) -> ParsedCSV:
        """
        Parse CSV text into an ordered sequence of records.

        Raises
        ------
        CSVFormatError
            When fewer than two non-blank lines exist, or when no data line
            matches the header's field count.
        """
        lines = [line for line in text.split("\n") if line.strip()]
        if len(lines) < 2:
            raise CSVFormatError("CSV file must contain at least a header and one data row")

        headers = split_fields(lines[0])
        records: list[TabularRecord] = []
        skipped: list[SkippedRow] = []
        rows_skipped = 0

        for line_number, line in enumerate(lines[1:], start=2):
            values = split_fields(line)
            if len(values) != len(headers):
                rows_skipped += 1
                self._record_skip(
                    skipped,
                    SkippedRow(
                        line_number=line_number,
                        expected_fields=len(headers),
                        actual_fields=len(values),
                    ),
                )
                continue

            records.append(
                TabularRecord(
                    {header: scalar_from_text(value) for header, value in zip(headers, values)}
                )
            )

        if not records:
            raise CSVFormatError("No valid data rows found in CSV file")

        logger.info(
            "CSV parsed columns=%d rows=%d rows_skipped=%d",
            len(headers),
            len(records),
            rows_skipped,
        )
        return ParsedCSV(
            columns=tuple(headers),
            records=tuple(records),
            skipped_rows=skipped,
            rows_skipped=rows_skipped,
        )

    def parse_upload(self, upload_file: UploadFile) -> ParsedCSV:
        """
        Read an uploaded file and parse it.

        The file is decoded as UTF-8 with an optional byte-order mark.
        """
        raw_file = upload_file.file
        raw_file.seek(0)
        try:
            text = raw_file.read().decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise CSVFormatError("CSV must be UTF-8 encoded.") from exc
        return self.parse_text(text)

    def _record_skip(self, skipped: list[SkippedRow], row: SkippedRow) -> None:
        if self._log_skipped_rows:
            logger.warning("CSV row skipped: %s", row.message)
        if len(skipped) < self._max_skipped_rows:
            skipped.append(row)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_csv_ingestion_service() -> CSVIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """
    settings = get_csv_ingestion_settings()
    return CSVIngestionService(
        log_skipped_rows=settings.log_skipped_rows,
        max_skipped_rows=settings.max_skipped_rows,
    )
