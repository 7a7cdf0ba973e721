"""
tests/test_csv_ingestion_service.py

Pytest unit tests for CSVIngestionService.

All tests are pure Python, no database, no network.

Coverage
--------
- Well-formed input: one record per data line
- Field-count mismatch rows skipped (never padded or truncated) and logged
- Per-field coercion: numeral, boolean, text, empty text
- Quote stripping and blank-line handling
- FormatError: header only, empty input, no valid rows
- Upload decoding (BOM, non UTF-8)
"""

from __future__ import annotations

import io
import logging

import pytest
from fastapi import UploadFile

from app.domain.tabular import BooleanValue, NumberValue, TextValue
from app.services.csv_ingestion_service import CSVFormatError, CSVIngestionService, split_fields


@pytest.fixture()
def svc() -> CSVIngestionService:
    return CSVIngestionService()


# ---------------------------------------------------------------------------
# Well-formed input
# ---------------------------------------------------------------------------


class TestWellFormed:
    def test_record_count_matches_data_lines(self, svc: CSVIngestionService) -> None:
        parsed = svc.parse_text("name,age\nAda,36\nAlan,41\nGrace,85")
        assert len(parsed.records) == 3
        assert parsed.columns == ("name", "age")
        assert parsed.rows_skipped == 0

    def test_every_record_has_header_columns(self, svc: CSVIngestionService) -> None:
        parsed = svc.parse_text("a,b,c\n1,2,3\n4,5,6")
        assert all(list(record.keys()) == ["a", "b", "c"] for record in parsed.records)

    def test_blank_lines_are_ignored(self, svc: CSVIngestionService) -> None:
        parsed = svc.parse_text("\n\na,b\n\n1,2\n   \n3,4\n")
        assert len(parsed.records) == 2

    def test_windows_line_endings(self, svc: CSVIngestionService) -> None:
        parsed = svc.parse_text("a,b\r\n1,x\r\n")
        assert parsed.records[0]["b"] == TextValue("x")

    def test_to_dataset(self, svc: CSVIngestionService) -> None:
        dataset = svc.parse_text("a\n1").to_dataset()
        assert dataset.source_type == "csv"
        assert dataset.row_count == 1


# ---------------------------------------------------------------------------
# Mismatched rows
# ---------------------------------------------------------------------------


class TestMismatchedRows:
    def test_short_and_long_rows_are_skipped(self, svc: CSVIngestionService) -> None:
        parsed = svc.parse_text("a,b,c\n1,2,3\n1,2\n1,2,3,4\n7,8,9")
        assert [record["a"] for record in parsed.records] == [NumberValue(1), NumberValue(7)]
        assert parsed.rows_skipped == 2

    def test_skipped_rows_are_reported(self, svc: CSVIngestionService) -> None:
        parsed = svc.parse_text("a,b\n1,2\n3")
        (skipped,) = parsed.skipped_rows
        assert skipped.line_number == 3
        assert skipped.expected_fields == 2
        assert skipped.actual_fields == 1
        assert skipped.message == "Row 3 has 1 columns, expected 2"

    def test_skip_is_logged_as_warning(self, svc: CSVIngestionService, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="app.services.csv_ingestion_service"):
            svc.parse_text("a,b\n1,2\n3")
        assert "CSV row skipped" in caplog.text

    def test_skip_list_is_capped(self) -> None:
        svc = CSVIngestionService(log_skipped_rows=False, max_skipped_rows=2)
        parsed = svc.parse_text("a,b\n1,2\n1\n1\n1\n1")
        assert parsed.rows_skipped == 4
        assert len(parsed.skipped_rows) == 2


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


class TestCoercion:
    def test_values_are_tagged(self, svc: CSVIngestionService) -> None:
        parsed = svc.parse_text("num,flag,name,empty,price\n100,TRUE,Widget,,2.50")
        record = parsed.records[0]
        assert record["num"] == NumberValue(100)
        assert record["flag"] == BooleanValue(True)
        assert record["name"] == TextValue("Widget")
        assert record["empty"] == TextValue("")
        assert record["price"] == NumberValue(2.5)

    def test_surrounding_quotes_are_stripped(self, svc: CSVIngestionService) -> None:
        parsed = svc.parse_text('"id","label"\n"7"," Blue "')
        assert parsed.columns == ("id", "label")
        assert parsed.records[0]["id"] == NumberValue(7)
        assert parsed.records[0]["label"] == TextValue("Blue")

    def test_oversized_integer_field_stays_text(self, svc: CSVIngestionService) -> None:
        digits = "1" * 5000
        parsed = svc.parse_text(f"amount\n{digits}")
        assert parsed.records[0]["amount"] == TextValue(digits)

    def test_split_fields_is_naive(self) -> None:
        assert split_fields('"Smith, John",5') == ["Smith", "John", "5"]


# ---------------------------------------------------------------------------
# Format errors
# ---------------------------------------------------------------------------


class TestFormatErrors:
    def test_header_only(self, svc: CSVIngestionService) -> None:
        with pytest.raises(CSVFormatError, match="at least a header and one data row"):
            svc.parse_text("a,b,c\n")

    def test_empty_input(self, svc: CSVIngestionService) -> None:
        with pytest.raises(CSVFormatError):
            svc.parse_text("")

    def test_no_valid_rows(self, svc: CSVIngestionService) -> None:
        with pytest.raises(CSVFormatError, match="No valid data rows"):
            svc.parse_text("a,b\n1\n2,3,4")

    def test_format_error_is_value_error(self) -> None:
        assert issubclass(CSVFormatError, ValueError)


# ---------------------------------------------------------------------------
# Upload decoding
# ---------------------------------------------------------------------------


class TestParseUpload:
    def test_byte_order_mark_is_dropped(self, svc: CSVIngestionService) -> None:
        upload = UploadFile(filename="data.csv", file=io.BytesIO("\ufeffa,b\n1,2".encode("utf-8")))
        parsed = svc.parse_upload(upload)
        assert parsed.columns == ("a", "b")

    def test_non_utf8_is_format_error(self, svc: CSVIngestionService) -> None:
        upload = UploadFile(filename="data.csv", file=io.BytesIO(b"a,b\n\xff\xfe,1"))
        with pytest.raises(CSVFormatError, match="UTF-8"):
            svc.parse_upload(upload)
