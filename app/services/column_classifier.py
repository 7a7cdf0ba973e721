"""
app/services/column_classifier.py

Numeric / textual column classification.

Candidate column names come from the first record only; every record is then
scanned per candidate. A column missing from the first record is never
classified, and a column can land in both lists when some rows hold numerals
and others hold free text. Both behaviours are relied on by the metrics layer
and are kept as-is.

Blank text counts toward neither list.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from app.domain.tabular import NumberValue, ScalarValue, TabularRecord, TextValue


@dataclass(frozen=True)
class ColumnClassification:
    """
    Column names grouped by the kind of values they hold, in header order.
    """

    numeric: tuple[str, ...] = ()
    textual: tuple[str, ...] = ()

    @property
    def first_numeric(self) -> str | None:
        """Primary metric column: the first numeric column by header order."""
        return self.numeric[0] if self.numeric else None

    @property
    def first_textual(self) -> str | None:
        """Primary grouping column: the first textual column by header order."""
        return self.textual[0] if self.textual else None


def is_numeric_cell(cell: ScalarValue | None) -> bool:
    if isinstance(cell, NumberValue):
        return True
    if isinstance(cell, TextValue):
        return cell.as_number() is not None
    return False


def is_textual_cell(cell: ScalarValue | None) -> bool:
    if isinstance(cell, TextValue):
        return bool(cell.value.strip()) and cell.as_number() is None
    return False


def classify_columns(records: Sequence[TabularRecord]) -> ColumnClassification:
    """
    Classify the first record's columns against all records.

    Returns an empty classification for an empty sequence.
    """
    if not records:
        return ColumnClassification()

    candidates = list(records[0].keys())
    numeric = tuple(
        name for name in candidates if any(is_numeric_cell(record.get(name)) for record in records)
    )
    textual = tuple(
        name for name in candidates if any(is_textual_cell(record.get(name)) for record in records)
    )
    return ColumnClassification(numeric=numeric, textual=textual)
