"""
tests/test_metrics_service.py

Pytest unit tests for MetricsService.

All tests are pure Python, mock inputs only. Every assertion is
deterministic: the same records always produce the same projections.

Coverage
--------
- Revenue KPI: keyword match, currency formatting with separators
- Record count, average and unique-category KPIs
- Omission of numeric KPIs when no numeric column exists
- Chart series: trailing window, insertion-ordered buckets, limits, Unknown
- Column statistics
- Overview templates: variance wording, complexity warning, cap of five
- Empty input returns empty results
"""

from __future__ import annotations

import pytest

from app.domain.tabular import BooleanValue, NumberValue, TabularRecord, TextValue
from app.services.csv_ingestion_service import CSVIngestionService
from app.services.metrics_service import (
    UNKNOWN_CATEGORY,
    MetricsService,
    coerce_number,
    format_currency,
    format_grouped,
)


def _csv(text: str) -> list[TabularRecord]:
    return list(CSVIngestionService(log_skipped_rows=False).parse_text(text).records)


@pytest.fixture()
def svc() -> MetricsService:
    return MetricsService()


@pytest.fixture()
def region_records() -> list[TabularRecord]:
    return _csv("region,value\nA,10\nB,20\nA,5")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_coerce_number(self) -> None:
        assert coerce_number(NumberValue(4)) == 4
        assert coerce_number(TextValue("2.5")) == 2.5
        assert coerce_number(TextValue("n/a")) == 0
        assert coerce_number(BooleanValue(True)) == 0
        assert coerce_number(None) == 0

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(600, "600"), (1234567, "1,234,567"), (1234.5, "1,234.5"), (0.12345, "0.123"), (-1500, "-1,500")],
    )
    def test_format_grouped(self, value: float, expected: str) -> None:
        assert format_grouped(value) == expected

    def test_format_currency(self) -> None:
        assert format_currency(600) == "$600"
        assert format_currency(1250000.25) == "$1,250,000.25"


# ---------------------------------------------------------------------------
# KPIs
# ---------------------------------------------------------------------------


class TestKPIs:
    def test_total_sales_revenue(self, svc: MetricsService) -> None:
        kpis = {kpi.id: kpi for kpi in svc.compute_kpis(_csv("Total_Sales\n100\n200\n300"))}
        assert kpis["revenue"].label == "Total Revenue"
        assert kpis["revenue"].value == "$600"
        assert kpis["revenue"].source_column == "Total_Sales"

    def test_revenue_keyword_is_case_insensitive(self, svc: MetricsService) -> None:
        records = _csv("id,Order AMOUNT\n1,10\n2,15")
        assert svc.find_revenue_column(svc.summarize(records).classification) == "Order AMOUNT"

    def test_no_revenue_column(self, svc: MetricsService, region_records: list[TabularRecord]) -> None:
        ids = [kpi.id for kpi in svc.compute_kpis(region_records)]
        assert ids == ["users", "average", "categories"]

    def test_region_example(self, svc: MetricsService, region_records: list[TabularRecord]) -> None:
        kpis = {kpi.id: kpi for kpi in svc.compute_kpis(region_records)}
        assert kpis["users"].label == "Total Records"
        assert kpis["users"].value == "3"
        assert kpis["average"].label == "Avg value"
        assert kpis["average"].value == "11.67"
        assert kpis["categories"].label == "Unique region"
        assert kpis["categories"].value == "2"

    def test_record_count_uses_separators(self, svc: MetricsService) -> None:
        records = [TabularRecord.from_plain({"n": index}) for index in range(1200)]
        users = next(kpi for kpi in svc.compute_kpis(records) if kpi.id == "users")
        assert users.value == "1,200"

    def test_non_numeric_cells_count_as_zero(self, svc: MetricsService) -> None:
        records = [TabularRecord.from_plain(row) for row in ({"sales": 10}, {"sales": "n/a"}, {"sales": 20})]
        revenue = next(kpi for kpi in svc.compute_kpis(records) if kpi.id == "revenue")
        assert revenue.value == "$30"

    def test_text_only_dataset_has_no_numeric_kpis(self, svc: MetricsService) -> None:
        ids = [kpi.id for kpi in svc.compute_kpis(_csv("name\nx\ny"))]
        assert ids == ["users", "categories"]

    def test_trends_are_fixed_placeholders(self, svc: MetricsService) -> None:
        kpis = {kpi.id: kpi for kpi in svc.compute_kpis(_csv("sales,city\n1,a"))}
        assert (kpis["revenue"].trend, kpis["revenue"].trend_direction) == (12.5, "up")
        assert (kpis["average"].trend, kpis["average"].trend_direction) == (-2.1, "down")


# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------


class TestCharts:
    def test_region_category_sums(self, svc: MetricsService, region_records: list[TabularRecord]) -> None:
        charts = svc.compute_charts(region_records)
        assert {point.label: point.value for point in charts.performance} == {"A": 15, "B": 20}
        assert [(point.label, point.value) for point in charts.distribution] == [("A", 2), ("B", 1)]

    def test_trend_uses_last_seven_rows(self, svc: MetricsService) -> None:
        records = [TabularRecord.from_plain({"v": index}) for index in range(1, 11)]
        trend = svc.compute_charts(records).trend
        assert [point.label for point in trend] == [f"Day {n}" for n in range(1, 8)]
        assert [point.value for point in trend] == [4, 5, 6, 7, 8, 9, 10]

    def test_bucket_limits_keep_insertion_order(self, svc: MetricsService) -> None:
        labels = ["g", "f", "e", "d", "c", "b", "a"]
        records = [TabularRecord.from_plain({"cat": label, "v": 1}) for label in labels]
        charts = svc.compute_charts(records)
        assert [point.label for point in charts.distribution] == labels[:5]
        assert [point.label for point in charts.performance] == labels[:6]

    def test_missing_category_is_unknown(self, svc: MetricsService) -> None:
        charts = svc.compute_charts(_csv("region,value\n,10\nA,5"))
        assert charts.distribution[0].label == UNKNOWN_CATEGORY

    def test_no_grouping_column(self, svc: MetricsService) -> None:
        charts = svc.compute_charts(_csv("v\n1\n2"))
        assert len(charts.trend) == 2
        assert charts.distribution == []
        assert charts.performance == []


# ---------------------------------------------------------------------------
# Statistics and overview
# ---------------------------------------------------------------------------


class TestStatistics:
    def test_column_statistics(self, svc: MetricsService, region_records: list[TabularRecord]) -> None:
        stats = svc.column_statistics(region_records)
        assert set(stats) == {"value"}
        assert (stats["value"].min, stats["value"].max, stats["value"].total) == (5, 20, 35)
        assert stats["value"].avg == pytest.approx(35 / 3)


class TestOverviewInsights:
    def test_region_overview(self, svc: MetricsService, region_records: list[TabularRecord]) -> None:
        insights = svc.overview_insights(region_records)
        assert [insight.kind for insight in insights] == ["summary", "trend", "opportunity", "growth"]
        assert insights[0].description == (
            "Analysis covers 3 records across 2 data fields. Average value in primary metric: 11.67."
        )
        assert insights[1].description.startswith("Found 2 unique categories")
        assert "significant variance" in insights[3].description

    def test_moderate_variance(self, svc: MetricsService) -> None:
        insights = svc.overview_insights(_csv("v\n10\n20"))
        assert "moderate variance" in insights[-1].description

    def test_categorical_only_overview(self, svc: MetricsService) -> None:
        insights = svc.overview_insights(_csv("name\nx\ny"))
        assert len(insights) == 3
        assert "primarily categorical" in insights[0].description

    def test_complexity_warning_and_cap(self, svc: MetricsService) -> None:
        records = [TabularRecord.from_plain({"cat": f"c{index}", "v": index + 1}) for index in range(7)]
        insights = svc.overview_insights(records)
        assert len(insights) == 5
        assert insights[-1].kind == "warning"
        assert "7 unique values" in insights[-1].description


# ---------------------------------------------------------------------------
# Empty input
# ---------------------------------------------------------------------------


class TestEmptyInput:
    def test_every_projection_is_empty(self, svc: MetricsService) -> None:
        summary = svc.summarize([])
        assert summary.kpis == []
        assert summary.charts.trend == []
        assert summary.charts.distribution == []
        assert summary.charts.performance == []
        assert summary.overview_insights == []
        assert svc.column_statistics([]) == {}
        assert summary.row_count == 0
