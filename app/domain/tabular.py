"""
app/domain/tabular.py

Tabular record model shared by ingestion, classification, metrics and export.

Every cell is a tagged scalar: :class:`NumberValue`, :class:`BooleanValue` or
:class:`TextValue`. Consumers branch on the concrete type instead of relying on
implicit coercion.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Union

_NUMERAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INTEGER_RE = re.compile(r"[+-]?\d+")


def parse_number(text: str) -> int | float | None:
    """
    Parse *text* as a finite decimal numeral.

    Surrounding whitespace is ignored. Blank text, infinities, NaN and
    anything that is not a complete numeral return ``None``.
    """

    candidate = text.strip()
    if not candidate or not _NUMERAL_RE.fullmatch(candidate):
        return None
    if _INTEGER_RE.fullmatch(candidate):
        try:
            return int(candidate)
        except ValueError:
            # Over the int-string digit limit.
            pass
    value = float(candidate)
    if not math.isfinite(value):
        return None
    return value


def format_plain_number(value: int | float) -> str:
    """Render a number the way it was most likely written in the source file."""
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


@dataclass(frozen=True)
class NumberValue:
    value: int | float

    def display(self) -> str:
        return format_plain_number(self.value)

    def to_plain(self) -> int | float:
        return self.value


@dataclass(frozen=True)
class BooleanValue:
    value: bool

    def display(self) -> str:
        return "true" if self.value else "false"

    def to_plain(self) -> bool:
        return self.value


@dataclass(frozen=True)
class TextValue:
    value: str

    def display(self) -> str:
        return self.value

    def to_plain(self) -> str:
        return self.value

    def as_number(self) -> int | float | None:
        """Return the numeral this text spells, if any."""
        return parse_number(self.value)


ScalarValue = Union[NumberValue, BooleanValue, TextValue]


def scalar_from_text(raw: str) -> ScalarValue:
    """
    Coerce one trimmed CSV field.

    Priority: numeral, then case-insensitive ``true``/``false``, then text.
    """

    text = raw.strip()
    number = parse_number(text)
    if number is not None:
        return NumberValue(number)
    lowered = text.lower()
    if lowered == "true":
        return BooleanValue(True)
    if lowered == "false":
        return BooleanValue(False)
    return TextValue(text)


def scalar_from_plain(value: Any) -> ScalarValue:
    """
    Tag a JSON-decoded value.

    ``bool`` is checked before ``int`` because it subclasses it. ``None``
    becomes empty text; nested containers are kept as their JSON text.
    """

    if isinstance(value, bool):
        return BooleanValue(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return TextValue(str(value))
        return NumberValue(value)
    if value is None:
        return TextValue("")
    if isinstance(value, str):
        return TextValue(value)
    if isinstance(value, (dict, list)):
        return TextValue(json.dumps(value, default=str, sort_keys=True))
    return TextValue(str(value))


class TabularRecord(Mapping[str, ScalarValue]):
    """
    One immutable row: column name to tagged scalar, in header order.
    """

    __slots__ = ("_cells",)

    def __init__(self, cells: Mapping[str, ScalarValue]) -> None:
        self._cells = MappingProxyType(dict(cells))

    @classmethod
    def from_plain(cls, row: Mapping[str, Any]) -> "TabularRecord":
        return cls({str(key): scalar_from_plain(value) for key, value in row.items()})

    def __getitem__(self, key: str) -> ScalarValue:
        return self._cells[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TabularRecord):
            return dict(self._cells) == dict(other._cells)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._cells.items()))

    def __repr__(self) -> str:
        return f"TabularRecord({dict(self._cells)!r})"

    def to_plain(self) -> dict[str, Any]:
        return {key: cell.to_plain() for key, cell in self._cells.items()}


class DataSourceType:
    """Where a dataset was loaded from."""

    CSV = "csv"
    FIRESTORE = "firestore"
    API = "api"


@dataclass(frozen=True)
class Dataset:
    """
    One loaded dataset. Replaced wholesale when a new source is loaded.
    """

    source_type: str
    records: tuple[TabularRecord, ...]
    columns: tuple[str, ...] = ()
    loaded_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @classmethod
    def from_plain_rows(
        cls,
        rows: list[Mapping[str, Any]],
        *,
        source_type: str = DataSourceType.API,
    ) -> "Dataset":
        records = tuple(TabularRecord.from_plain(row) for row in rows)
        return cls(source_type=source_type, records=records, columns=column_order(records))

    @property
    def row_count(self) -> int:
        return len(self.records)

    def to_plain_rows(self) -> list[dict[str, Any]]:
        return [record.to_plain() for record in self.records]


def column_order(records: tuple[TabularRecord, ...] | list[TabularRecord]) -> tuple[str, ...]:
    """Column names of the first record, in header order."""
    if not records:
        return ()
    return tuple(records[0].keys())
