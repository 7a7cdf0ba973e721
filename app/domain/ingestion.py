"""
app/domain/ingestion.py

Domain models produced by the CSV ingestion flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from app.domain.tabular import DataSourceType, Dataset, TabularRecord


@dataclass(frozen=True)
class SkippedRow:
    """
    One data line dropped because its field count did not match the header.
    """

    line_number: int
    expected_fields: int
    actual_fields: int

    @property
    def message(self) -> str:
        return f"Row {self.line_number} has {self.actual_fields} columns, expected {self.expected_fields}"


@dataclass(frozen=True)
class ParsedCSV:
    """
    End-of-run CSV parse result.
    """

    columns: tuple[str, ...]
    records: tuple[TabularRecord, ...]
    skipped_rows: list[SkippedRow] = field(default_factory=list)
    rows_skipped: int = 0

    def to_dataset(self) -> Dataset:
        return Dataset(
            source_type=DataSourceType.CSV,
            records=self.records,
            columns=self.columns,
        )
