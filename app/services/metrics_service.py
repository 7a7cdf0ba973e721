"""
app/services/metrics_service.py

Deterministic dashboard metrics derivation.

Everything here is a pure projection of the loaded records and their column
classification: KPI cards, chart aggregates and the overview narrative. No
I/O is performed and nothing is cached between calls.

Column selection policy
-----------------------
Metrics that need "the" numeric or "the" grouping column use the first
column, by header order, that the classifier put in the numeric or textual
list. The revenue KPI uses the first numeric column whose name contains one
of :data:`REVENUE_KEYWORDS`.

Trend figures
-------------
The ``trend`` / ``trend_direction`` carried by each KPI are fixed
presentation placeholders. They are not computed from historical data and
must not be read as real period-over-period changes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from app.domain.tabular import NumberValue, ScalarValue, TabularRecord, TextValue
from app.services.column_classifier import ColumnClassification, classify_columns

logger = logging.getLogger(__name__)

REVENUE_KEYWORDS: tuple[str, ...] = ("revenue", "sales", "amount", "total")
TREND_WINDOW = 7
DISTRIBUTION_LIMIT = 5
PERFORMANCE_LIMIT = 6
MAX_OVERVIEW_INSIGHTS = 5
UNKNOWN_CATEGORY = "Unknown"


# ---------------------------------------------------------------------------
# Output dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KPIMetric:
    """
    One KPI card.

    ``trend`` and ``trend_direction`` are illustrative placeholders, not
    computed values.
    """

    id: str
    label: str
    value: str
    trend: float
    trend_direction: str
    icon: str
    color: str
    source_column: str | None = None


@dataclass(frozen=True)
class ChartPoint:
    label: str
    value: float


@dataclass(frozen=True)
class ChartData:
    """
    Chart-ready aggregates.

    trend: last rows of the primary metric, labeled ``Day 1..Day n``
    distribution: row count per category of the grouping column
    performance: primary metric sum per category of the grouping column
    """

    trend: list[ChartPoint] = field(default_factory=list)
    distribution: list[ChartPoint] = field(default_factory=list)
    performance: list[ChartPoint] = field(default_factory=list)


@dataclass(frozen=True)
class OverviewInsight:
    id: str
    kind: str
    title: str
    description: str


@dataclass(frozen=True)
class ColumnStatistics:
    min: float
    max: float
    avg: float
    total: float


@dataclass(frozen=True)
class DashboardSummary:
    classification: ColumnClassification
    kpis: list[KPIMetric]
    charts: ChartData
    overview_insights: list[OverviewInsight]
    row_count: int = 0


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def coerce_number(cell: ScalarValue | None) -> float:
    """
    Numeric view of a cell: numbers as-is, numeral text parsed, anything else 0.
    """
    if isinstance(cell, NumberValue):
        return cell.value
    if isinstance(cell, TextValue):
        parsed = cell.as_number()
        return parsed if parsed is not None else 0
    return 0


def category_label(cell: ScalarValue | None) -> str:
    """Bucket label for a grouping cell; missing or blank cells fall into ``Unknown``."""
    if cell is None:
        return UNKNOWN_CATEGORY
    if isinstance(cell, TextValue) and not cell.value.strip():
        return UNKNOWN_CATEGORY
    return cell.display()


def format_grouped(value: float, max_fraction_digits: int = 3) -> str:
    """
    Format with thousands separators and at most *max_fraction_digits*
    decimals, dropping trailing zeros (``1234.5`` → ``1,234.5``).
    """
    rounded = round(float(value), max_fraction_digits)
    if rounded.is_integer():
        return f"{int(rounded):,}"
    return f"{rounded:,.{max_fraction_digits}f}".rstrip("0").rstrip(".")


def format_currency(value: float) -> str:
    return f"${format_grouped(value)}"


def _group_in_order(
    records: Sequence[TabularRecord],
    category_column: str,
    value_of,
) -> dict[str, float]:
    buckets: dict[str, float] = {}
    for record in records:
        key = category_label(record.get(category_column))
        buckets[key] = buckets.get(key, 0) + value_of(record)
    return buckets


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class MetricsService:
    """
    Stateless derivation of KPIs, chart aggregates and overview text.

    Every method accepts the record sequence and, optionally, a
    pre-computed classification. An empty record sequence yields empty
    results rather than an error.

    Usage::

        service = MetricsService()
        summary = service.summarize(records)
        print([kpi.value for kpi in summary.kpis])
    """

    def summarize(
        self,
        records: Sequence[TabularRecord],
        classification: ColumnClassification | None = None,
    ) -> DashboardSummary:
        """Classify once and derive every dashboard projection from it."""
        resolved = classification or classify_columns(records)
        summary = DashboardSummary(
            classification=resolved,
            kpis=self.compute_kpis(records, resolved),
            charts=self.compute_charts(records, resolved),
            overview_insights=self.overview_insights(records, resolved),
            row_count=len(records),
        )
        logger.debug(
            "Dashboard summary rows=%d numeric=%d textual=%d kpis=%d",
            len(records),
            len(resolved.numeric),
            len(resolved.textual),
            len(summary.kpis),
        )
        return summary

    # ------------------------------------------------------------------
    # KPIs
    # ------------------------------------------------------------------

    def compute_kpis(
        self,
        records: Sequence[TabularRecord],
        classification: ColumnClassification | None = None,
    ) -> list[KPIMetric]:
        """
        Compute the KPI cards.

        * ``revenue``: sum of the first revenue-like numeric column, as currency
        * ``users``: row count
        * ``average``: mean of the primary metric, two decimals
        * ``categories``: distinct values of the grouping column

        Cards whose source column does not exist are omitted.
        """
        if not records:
            return []
        classification = classification or classify_columns(records)
        kpis: list[KPIMetric] = []

        revenue_column = self.find_revenue_column(classification)
        if revenue_column is not None:
            total = sum(coerce_number(record.get(revenue_column)) for record in records)
            kpis.append(
                KPIMetric(
                    id="revenue",
                    label="Total Revenue",
                    value=format_currency(total),
                    trend=12.5,
                    trend_direction="up",
                    icon="dollar",
                    color="turquoise",
                    source_column=revenue_column,
                )
            )

        kpis.append(
            KPIMetric(
                id="users",
                label="Total Records",
                value=f"{len(records):,}",
                trend=18.2,
                trend_direction="up",
                icon="users",
                color="blue",
            )
        )

        metric_column = classification.first_numeric
        if metric_column is not None:
            average = self._average(records, metric_column)
            kpis.append(
                KPIMetric(
                    id="average",
                    label=f"Avg {metric_column}",
                    value=f"{average:.2f}",
                    trend=-2.1,
                    trend_direction="down",
                    icon="trending",
                    color="green",
                    source_column=metric_column,
                )
            )

        category_column = classification.first_textual
        if category_column is not None:
            kpis.append(
                KPIMetric(
                    id="categories",
                    label=f"Unique {category_column}",
                    value=str(self.unique_count(records, category_column)),
                    trend=5.4,
                    trend_direction="up",
                    icon="cart",
                    color="purple",
                    source_column=category_column,
                )
            )

        return kpis

    @staticmethod
    def find_revenue_column(classification: ColumnClassification) -> str | None:
        for column in classification.numeric:
            lowered = column.lower()
            if any(keyword in lowered for keyword in REVENUE_KEYWORDS):
                return column
        return None

    @staticmethod
    def unique_count(records: Sequence[TabularRecord], column: str) -> int:
        return len({record.get(column) for record in records})

    @staticmethod
    def _average(records: Sequence[TabularRecord], column: str) -> float:
        return sum(coerce_number(record.get(column)) for record in records) / len(records)

    # ------------------------------------------------------------------
    # Charts
    # ------------------------------------------------------------------

    def compute_charts(
        self,
        records: Sequence[TabularRecord],
        classification: ColumnClassification | None = None,
    ) -> ChartData:
        """
        Compute the three chart series.

        Category buckets keep first-seen order; the distribution keeps the
        first :data:`DISTRIBUTION_LIMIT` buckets and the performance series
        the first :data:`PERFORMANCE_LIMIT`.
        """
        if not records:
            return ChartData()
        classification = classification or classify_columns(records)
        metric_column = classification.first_numeric
        category_column = classification.first_textual

        trend: list[ChartPoint] = []
        if metric_column is not None:
            window = list(records)[-TREND_WINDOW:]
            trend = [
                ChartPoint(label=f"Day {index}", value=coerce_number(record.get(metric_column)))
                for index, record in enumerate(window, start=1)
            ]

        distribution: list[ChartPoint] = []
        performance: list[ChartPoint] = []
        if category_column is not None:
            counts = _group_in_order(records, category_column, lambda _record: 1)
            distribution = [
                ChartPoint(label=label, value=value)
                for label, value in list(counts.items())[:DISTRIBUTION_LIMIT]
            ]
            if metric_column is not None:
                sums = _group_in_order(
                    records,
                    category_column,
                    lambda record: coerce_number(record.get(metric_column)),
                )
                performance = [
                    ChartPoint(label=label, value=value)
                    for label, value in list(sums.items())[:PERFORMANCE_LIMIT]
                ]

        return ChartData(trend=trend, distribution=distribution, performance=performance)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def column_statistics(
        self,
        records: Sequence[TabularRecord],
        classification: ColumnClassification | None = None,
    ) -> dict[str, ColumnStatistics]:
        """Min / max / mean / total of every numeric column's coerced values."""
        if not records:
            return {}
        classification = classification or classify_columns(records)
        stats: dict[str, ColumnStatistics] = {}
        for column in classification.numeric:
            values = [coerce_number(record.get(column)) for record in records]
            total = sum(values)
            stats[column] = ColumnStatistics(
                min=min(values),
                max=max(values),
                avg=total / len(values),
                total=total,
            )
        return stats

    # ------------------------------------------------------------------
    # Overview narrative
    # ------------------------------------------------------------------

    def overview_insights(
        self,
        records: Sequence[TabularRecord],
        classification: ColumnClassification | None = None,
    ) -> list[OverviewInsight]:
        """
        Fill the fixed overview templates.

        Always: dataset overview, distribution, opportunities. Then a
        performance range when a numeric column exists ("significant" when
        max > 3 x min) and a complexity warning when the grouping column has
        more than five distinct values. At most five entries.
        """
        if not records:
            return []
        classification = classification or classify_columns(records)
        metric_column = classification.first_numeric
        category_column = classification.first_textual

        total_rows = len(records)
        field_count = len(records[0])
        unique_categories = (
            self.unique_count(records, category_column) if category_column is not None else 0
        )

        if metric_column is not None:
            average = self._average(records, metric_column)
            overview_tail = f"Average value in primary metric: {average:.2f}"
        else:
            overview_tail = "Dataset contains primarily categorical data"

        insights = [
            OverviewInsight(
                id="1",
                kind="summary",
                title="Dataset Overview",
                description=(
                    f"Analysis covers {total_rows} records across {field_count} data fields. "
                    f"{overview_tail}."
                ),
            ),
            OverviewInsight(
                id="2",
                kind="trend",
                title="Data Distribution",
                description=(
                    f"Found {unique_categories} unique categories in primary grouping field. "
                    "Distribution analysis shows varied representation across segments."
                    if category_column is not None
                    else "Numeric data shows consistent patterns with identifiable trends across the dataset."
                ),
            ),
            OverviewInsight(
                id="3",
                kind="opportunity",
                title="Growth Opportunities",
                description=(
                    "Multiple numeric metrics available for correlation analysis. Cross-field "
                    "analysis could reveal performance drivers and optimization opportunities."
                    if len(classification.numeric) > 1
                    else "Dataset structure supports detailed categorical analysis and segmentation strategies."
                ),
            ),
        ]

        if metric_column is not None:
            values = [coerce_number(record.get(metric_column)) for record in records]
            low, high = min(values), max(values)
            variance = "significant" if high > low * 3 else "moderate"
            insights.append(
                OverviewInsight(
                    id="4",
                    kind="growth",
                    title="Performance Range",
                    description=(
                        f"Values range from {low:.2f} to {high:.2f}, indicating {variance} "
                        "variance in performance metrics."
                    ),
                )
            )

        if category_column is not None and unique_categories > 5:
            insights.append(
                OverviewInsight(
                    id="5",
                    kind="warning",
                    title="Category Complexity",
                    description=(
                        f"High category diversity ({unique_categories} unique values) suggests "
                        "opportunity for grouping or segmentation to improve analysis clarity."
                    ),
                )
            )

        return insights[:MAX_OVERVIEW_INSIGHTS]


def get_metrics_service() -> MetricsService:
    return MetricsService()
