"""
app/domain package marker.
"""

from app.domain.ingestion import ParsedCSV, SkippedRow
from app.domain.tabular import (
    BooleanValue,
    DataSourceType,
    Dataset,
    NumberValue,
    ScalarValue,
    TabularRecord,
    TextValue,
)

__all__ = [
    "BooleanValue",
    "DataSourceType",
    "Dataset",
    "NumberValue",
    "ParsedCSV",
    "ScalarValue",
    "SkippedRow",
    "TabularRecord",
    "TextValue",
]
