"""
app/services/export_service.py

Dataset export to CSV text and PDF reports.

CSV output mirrors the ingestion parser rather than RFC 4180: the header is
the first record's columns and text containing a comma is wrapped in double
quotes. A row that would render as a blank line is written as ``""``. Any
dataset whose text cells contain no commas or newlines therefore re-ingests
to equal records.

PDF output is a one-shot report: title, generation date, dataset summary,
KPI table, overview insights and the first rows of the data table.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.config import get_presentation_settings
from app.domain.tabular import ScalarValue, TabularRecord, TextValue, column_order
from app.services.metrics_service import DashboardSummary, MetricsService
from app.services.table_service import DISPLAY_COLUMN_LIMIT, format_cell

logger = logging.getLogger(__name__)

_VALID_FORMATS: frozenset[str] = frozenset({"csv", "pdf"})
_MAX_CELL_CHARS = 40


class ExportError(RuntimeError):
    """
    Raised when a report cannot be rendered.
    """


@dataclass(frozen=True)
class ExportResult:
    """
    Rendered export ready for download.
    """

    content: bytes
    media_type: str
    filename: str
    row_count: int


# ---------------------------------------------------------------------------
# CSV helpers
# ---------------------------------------------------------------------------


def _csv_field(cell: ScalarValue | None) -> str:
    if cell is None:
        return ""
    if isinstance(cell, TextValue) and "," in cell.value:
        return f'"{cell.value}"'
    return cell.display()


def render_csv(records: Sequence[TabularRecord]) -> str:
    """Serialise records to CSV text; empty input yields an empty string."""
    if not records:
        return ""
    headers = column_order(list(records))
    lines = [",".join(headers)]
    for record in records:
        line = ",".join(_csv_field(record.get(header)) for header in headers)
        # A blank line would be dropped on ingest; "" reads back as empty text.
        lines.append(line or '""')
    return "\n".join(lines)


def _truncate(text: str) -> str:
    return text if len(text) <= _MAX_CELL_CHARS else text[: _MAX_CELL_CHARS - 1] + "…"


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ExportService:
    """
    Render the current dataset as a downloadable file.

    Every method is local and synchronous; nothing is persisted.
    """

    def __init__(
        self,
        *,
        pdf_max_rows: int = 50,
        metrics: MetricsService | None = None,
    ) -> None:
        self._pdf_max_rows = max(1, pdf_max_rows)
        self._metrics = metrics or MetricsService()

    def export(
        self,
        records: Sequence[TabularRecord],
        *,
        output_format: str = "csv",
        filename: str = "dashboard-data",
    ) -> ExportResult:
        """
        Render *records* as ``csv`` or ``pdf``.

        Raises
        ------
        ValueError: When *output_format* is not supported.
        """
        if output_format not in _VALID_FORMATS:
            raise ValueError(
                f"Unknown format {output_format!r}. Valid: {sorted(_VALID_FORMATS)}"
            )
        if output_format == "csv":
            return ExportResult(
                content=render_csv(records).encode("utf-8"),
                media_type="text/csv; charset=utf-8",
                filename=f"{filename}.csv",
                row_count=len(records),
            )
        return ExportResult(
            content=self.render_pdf(records, title="Dashboard Report"),
            media_type="application/pdf",
            filename=f"{filename}.pdf",
            row_count=len(records),
        )

    def render_pdf(
        self,
        records: Sequence[TabularRecord],
        *,
        title: str = "Dashboard Report",
        summary: DashboardSummary | None = None,
    ) -> bytes:
        """
        Build the PDF report and return its bytes.
        """
        summary = summary or self._metrics.summarize(records)
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(A4),
            rightMargin=15 * mm,
            leftMargin=15 * mm,
            topMargin=15 * mm,
            bottomMargin=15 * mm,
            title=title,
        )
        styles = getSampleStyleSheet()
        normal = styles["Normal"]
        heading = styles["Heading1"]
        subheading = styles["Heading2"]

        generated = datetime.now(tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        columns = column_order(list(records))
        story: list = [
            Paragraph(escape(title), heading),
            Paragraph(f"Generated on {generated}", normal),
            Spacer(1, 6 * mm),
            Paragraph("Summary", subheading),
            Paragraph(
                f"{len(records):,} records across {len(columns)} fields. "
                f"Numeric columns: {len(summary.classification.numeric)}, "
                f"categorical columns: {len(summary.classification.textual)}.",
                normal,
            ),
            Spacer(1, 4 * mm),
        ]

        if summary.kpis:
            story.append(Paragraph("Key Metrics", subheading))
            kpi_rows = [["Metric", "Value"]] + [
                [_truncate(kpi.label), kpi.value] for kpi in summary.kpis
            ]
            story.append(self._table(kpi_rows))
            story.append(Spacer(1, 4 * mm))

        if summary.overview_insights:
            story.append(Paragraph("Overview Insights", subheading))
            for insight in summary.overview_insights:
                story.append(
                    Paragraph(
                        f"<b>{escape(insight.title)}</b>: {escape(insight.description)}",
                        normal,
                    )
                )
            story.append(Spacer(1, 4 * mm))

        if records:
            display_columns = list(columns[:DISPLAY_COLUMN_LIMIT])
            shown = list(records)[: self._pdf_max_rows]
            story.append(Paragraph("Data", subheading))
            data_rows = [[_truncate(column) for column in display_columns]] + [
                [_truncate(format_cell(record.get(column))) for column in display_columns]
                for record in shown
            ]
            story.append(self._table(data_rows))
            if len(records) > len(shown):
                story.append(
                    Paragraph(f"Showing {len(shown):,} of {len(records):,} records.", normal)
                )

        try:
            doc.build(story)
        except Exception as exc:  # noqa: BLE001
            logger.exception("PDF export failed rows=%d", len(records))
            raise ExportError("There was an error generating the PDF report.") from exc

        logger.info("PDF export rendered rows=%d bytes=%d", len(records), buffer.tell())
        return buffer.getvalue()

    @staticmethod
    def _table(rows: list[list[str]]) -> Table:
        table = Table(rows, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2dd4bf")),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 8),
                    ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f3f4f6")]),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        return table


@lru_cache(maxsize=1)
def get_export_service() -> ExportService:
    """
    Build and cache the export service with env-driven settings.
    """
    return ExportService(pdf_max_rows=get_presentation_settings().pdf_max_rows)
