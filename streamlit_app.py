"""Streamlit dashboard for CSV and Firestore datasets."""

from __future__ import annotations

import hashlib
import io
from datetime import datetime, timezone
from typing import Any

import pandas as pd
import plotly.express as px
import streamlit as st
from fastapi import UploadFile

from app.connectors.base import DataSourceConnectionError
from app.domain.tabular import Dataset, DataSourceType, TabularRecord, column_order
from app.services.csv_ingestion_service import CSVFormatError
from app.services.export_service import render_csv
from app.services.metrics_service import ChartPoint, DashboardSummary
from app.services.table_service import format_cell
from llm_synthesis.schema import InsightRecord

st.set_page_config(page_title="DataView", page_icon="DV", layout="wide")

_KPI_COLORS = {"up": "normal", "down": "inverse"}
_INSIGHT_BADGES = {"trend": "Trend", "anomaly": "Anomaly", "recommendation": "Recommendation"}


@st.cache_resource(show_spinner=False)
def _load_backend_handles():
    """Load backend services lazily to keep startup lightweight."""
    from app.connectors.firestore_connector import build_firestore_connector  # noqa: PLC0415
    from app.services.csv_ingestion_service import get_csv_ingestion_service  # noqa: PLC0415
    from app.services.export_service import get_export_service  # noqa: PLC0415
    from app.services.insight_service import get_insight_service  # noqa: PLC0415
    from app.services.metrics_service import get_metrics_service  # noqa: PLC0415
    from app.services.table_service import get_table_service  # noqa: PLC0415

    return {
        "csv_service": get_csv_ingestion_service(),
        "firestore_factory": build_firestore_connector,
        "metrics": get_metrics_service(),
        "insights": get_insight_service(),
        "table": get_table_service(),
        "export": get_export_service(),
    }


def load_csv(data: bytes, filename: str) -> tuple[Dataset, int]:
    """Parse uploaded bytes; returns the dataset and the skipped-row count."""
    handles = _load_backend_handles()
    upload = UploadFile(filename=filename, file=io.BytesIO(data))
    try:
        parsed = handles["csv_service"].parse_upload(upload)
    finally:
        upload.file.close()
    return parsed.to_dataset(), parsed.rows_skipped


def load_firestore(project_id: str, collection_name: str) -> Dataset:
    handles = _load_backend_handles()
    connector = handles["firestore_factory"](project_id=project_id, collection_name=collection_name)
    result = connector.fetch_records()
    records = tuple(result.records)
    return Dataset(
        source_type=DataSourceType.FIRESTORE,
        records=records,
        columns=column_order(records),
    )


def _replace_dataset(dataset: Dataset, note: str | None = None) -> None:
    """A new load supersedes everything derived from the previous one."""
    st.session_state.dataset = dataset
    st.session_state.dataset_note = note
    st.session_state.insights = None
    st.session_state.insight_source = None
    st.session_state.load_error = None
    st.session_state.insight_batch += 1
    st.session_state.table_page = 1


def _chart_frame(points: list[ChartPoint]) -> pd.DataFrame:
    return pd.DataFrame([{"label": point.label, "value": point.value} for point in points])


def _table_frame(records: list[TabularRecord], columns: tuple[str, ...], statuses: list[Any]) -> pd.DataFrame:
    rows = []
    for record, row_status in zip(records, statuses):
        row = {column: format_cell(record.get(column)) for column in columns}
        row["Status"] = row_status.label
        rows.append(row)
    return pd.DataFrame(rows, columns=[*columns, "Status"])


def _render_kpis(summary: DashboardSummary) -> None:
    if not summary.kpis:
        st.info("No metrics available for this dataset.")
        return
    columns = st.columns(len(summary.kpis))
    for column, kpi in zip(columns, summary.kpis):
        with column:
            sign = "+" if kpi.trend_direction == "up" else "-"
            st.metric(
                label=kpi.label,
                value=kpi.value,
                delta=f"{sign}{abs(kpi.trend)}%",
                delta_color=_KPI_COLORS.get(kpi.trend_direction, "off"),
            )


def _render_charts(summary: DashboardSummary) -> None:
    trend_col, dist_col = st.columns(2)
    charts = summary.charts
    with trend_col:
        st.markdown("**Trend**")
        if charts.trend:
            st.plotly_chart(px.line(_chart_frame(charts.trend), x="label", y="value", markers=True), use_container_width=True)
        else:
            st.caption("No numeric column to plot.")
    with dist_col:
        st.markdown("**Distribution**")
        if charts.distribution:
            st.plotly_chart(px.pie(_chart_frame(charts.distribution), names="label", values="value", hole=0.4), use_container_width=True)
        else:
            st.caption("No category column to group by.")

    st.markdown("**Performance by category**")
    if charts.performance:
        st.plotly_chart(px.bar(_chart_frame(charts.performance), x="label", y="value"), use_container_width=True)
    else:
        st.caption("Needs one numeric and one category column.")


def _render_insight_editor(batch: int, index: int, insight: InsightRecord) -> None:
    # Keys carry the batch number so a regenerated list starts from fresh widgets.
    suffix = f"{batch}-{index}"
    badge = _INSIGHT_BADGES.get(insight.type, insight.type)
    st.markdown(f"**{insight.title}**  \n{insight.description}")
    st.caption(f"{badge} · confidence {insight.confidence:.0%}")
    with st.expander("Edit", expanded=False):
        title = st.text_input("Title", value=insight.title, key=f"insight-title-{suffix}")
        description = st.text_area("Description", value=insight.description, key=f"insight-desc-{suffix}")
        if st.button("Save", key=f"insight-save-{suffix}"):
            st.session_state.insights[index] = insight.edited(
                title=title.strip() or insight.title,
                description=description.strip() or insight.description,
            )
            st.rerun()


for key, default in (
    ("dataset", None),
    ("dataset_note", None),
    ("load_error", None),
    ("insights", None),
    ("insight_source", None),
    ("insight_batch", 0),
    ("upload_hash", None),
    ("table_page", 1),
):
    if key not in st.session_state:
        st.session_state[key] = default


with st.sidebar:
    st.header("Data Source")
    source = st.radio("Source", options=["CSV Upload", "Firestore"], horizontal=True)

    if source == "CSV Upload":
        uploaded_file = st.file_uploader("Upload CSV", type=["csv"])
        if uploaded_file is not None:
            uploaded_bytes = uploaded_file.getvalue()
            upload_hash = hashlib.sha256(uploaded_bytes).hexdigest()
            if upload_hash != st.session_state.upload_hash:
                st.session_state.upload_hash = upload_hash
                try:
                    dataset, skipped = load_csv(uploaded_bytes, uploaded_file.name)
                    note = f"{skipped} malformed row(s) skipped." if skipped else None
                    _replace_dataset(dataset, note)
                except CSVFormatError as exc:
                    st.session_state.load_error = str(exc)
    else:
        project_id = st.text_input("Project ID")
        collection_name = st.text_input("Collection")
        if st.button("Connect", type="primary", use_container_width=True):
            if not project_id.strip() or not collection_name.strip():
                st.session_state.load_error = "Project ID and collection are required."
            else:
                with st.spinner("Fetching collection..."):
                    try:
                        _replace_dataset(load_firestore(project_id.strip(), collection_name.strip()))
                    except (DataSourceConnectionError, ValueError) as exc:
                        st.session_state.load_error = f"Failed to fetch data: {exc}"

    if st.session_state.dataset is not None and st.button("Clear", use_container_width=True):
        st.session_state.dataset = None
        st.session_state.insights = None
        st.session_state.upload_hash = None
        st.rerun()


st.title("DataView")

if st.session_state.load_error:
    st.error(st.session_state.load_error)

dataset: Dataset | None = st.session_state.dataset
if dataset is None or not dataset.records:
    st.info("Upload a CSV file or connect a Firestore collection to get started.")
    st.stop()

handles = _load_backend_handles()
records = list(dataset.records)
summary: DashboardSummary = handles["metrics"].summarize(records)

st.caption(
    f"{dataset.row_count:,} records · {len(dataset.columns)} fields · "
    f"source: {dataset.source_type} · loaded {dataset.loaded_at:%Y-%m-%d %H:%M} UTC"
)
if st.session_state.dataset_note:
    st.warning(st.session_state.dataset_note)

_render_kpis(summary)
_render_charts(summary)

overview_col, ai_col = st.columns(2)
with overview_col:
    st.subheader("Overview Insights")
    if not summary.overview_insights:
        st.caption("No insights for this dataset.")
    for overview in summary.overview_insights:
        st.markdown(f"**{overview.title}**  \n{overview.description}")

with ai_col:
    st.subheader("AI Insights")
    if st.button("Generate Insights", use_container_width=True):
        with st.spinner("Generating insights..."):
            batch = handles["insights"].generate_with_fallback(records)
        st.session_state.insights = list(batch.insights)
        st.session_state.insight_source = batch.source
        st.session_state.insight_batch += 1
    if st.session_state.insights is None:
        st.caption("Generate insights to see model observations about this dataset.")
    else:
        if st.session_state.insight_source == "fallback":
            st.caption("Model unavailable; showing statistical insights.")
        for index, insight in enumerate(st.session_state.insights):
            _render_insight_editor(st.session_state.insight_batch, index, insight)


st.subheader("Data")
columns = column_order(records)
search_col, filter_col, page_col = st.columns([3, 2, 1])
with search_col:
    search = st.text_input("Search", placeholder="Search all values")
with filter_col:
    column_choice = st.selectbox("Column", options=["All columns", *columns])
selected_column = None if column_choice == "All columns" else column_choice
table_page = handles["table"].query(
    records,
    search=search,
    column=selected_column,
    page=st.session_state.table_page,
)
with page_col:
    page_number = st.number_input(
        "Page",
        min_value=1,
        max_value=max(1, table_page.total_pages),
        value=table_page.page,
        step=1,
    )
if page_number != table_page.page:
    st.session_state.table_page = int(page_number)
    st.rerun()

st.dataframe(
    _table_frame(table_page.records, table_page.display_columns, table_page.statuses),
    use_container_width=True,
    hide_index=True,
)
st.caption(f"Page {table_page.page} of {max(1, table_page.total_pages)} · {table_page.total_rows:,} matching rows")


st.subheader("Export")
stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
csv_col, pdf_col = st.columns(2)
with csv_col:
    st.download_button(
        label="Download CSV",
        data=render_csv(records).encode("utf-8"),
        file_name=f"dashboard-data-{stamp}.csv",
        mime="text/csv",
        use_container_width=True,
    )
with pdf_col:
    st.download_button(
        label="Download PDF",
        data=handles["export"].render_pdf(records, summary=summary),
        file_name=f"dashboard-report-{stamp}.pdf",
        mime="application/pdf",
        use_container_width=True,
    )
