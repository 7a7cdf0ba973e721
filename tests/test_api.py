"""
tests/test_api.py

HTTP-level tests for every router, run against an in-memory store.

The insight service is overridden with the deterministic mock adapter and
the Firestore connector factory with a stub, so no test leaves the process.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import EMPTY_DATA_DETAIL, get_firestore_connector_factory
from app.connectors.base import ConnectorFetchResult, DataSourceConnectionError
from app.domain.tabular import TabularRecord
from app.main import create_app
from app.repositories.dashboard_store import InMemoryDashboardStore
from app.services.insight_service import InsightService, get_insight_service
from llm_synthesis.adapter import BaseLLMAdapter, MockLLMAdapter

ROWS: list[dict[str, Any]] = [
    {"region": "A", "value": 10},
    {"region": "B", "value": 20},
    {"region": "A", "value": 5},
]


class _StubConnector:
    def __init__(self, result: ConnectorFetchResult | None = None, error: Exception | None = None) -> None:
        self._result = result
        self._error = error

    def fetch_records(self) -> ConnectorFetchResult:
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result


class _BrokenAdapter(BaseLLMAdapter):
    def generate(self, system_prompt: str, user_prompt: str) -> str:
        raise ConnectionError("model offline")


@pytest.fixture()
def app():
    application = create_app(store=InMemoryDashboardStore())
    application.dependency_overrides[get_insight_service] = lambda: InsightService(adapter=MockLLMAdapter())
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "store": "InMemoryDashboardStore"}


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------


class TestUploadCSV:
    def test_upload(self, client: TestClient) -> None:
        body = b"region,value,active\nA,10,true\nB,oops\nC,2.5,false"
        response = client.post("/api/datasets/upload-csv", files={"file": ("sales.csv", body, "text/csv")})

        assert response.status_code == 200
        payload = response.json()
        assert payload["source_type"] == "csv"
        assert payload["columns"] == ["region", "value", "active"]
        assert payload["row_count"] == 2
        assert payload["rows_skipped"] == 1
        assert payload["skipped_rows"][0]["line_number"] == 3
        assert payload["data"][0] == {"region": "A", "value": 10, "active": True}

    def test_non_csv_extension(self, client: TestClient) -> None:
        response = client.post(
            "/api/datasets/upload-csv",
            files={"file": ("sales.xlsx", b"a,b\n1,2", "application/octet-stream")},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Only CSV files are allowed."

    def test_mime_type_is_ignored(self, client: TestClient) -> None:
        response = client.post(
            "/api/datasets/upload-csv",
            files={"file": ("SALES.CSV", b"a,b\n1,2", "application/vnd.ms-excel")},
        )
        assert response.status_code == 200

    def test_header_only_file(self, client: TestClient) -> None:
        response = client.post("/api/datasets/upload-csv", files={"file": ("x.csv", b"a,b\n", "text/csv")})
        assert response.status_code == 400
        assert "header and one data row" in response.json()["detail"]


class TestFirestore:
    def _override(self, app, connector: _StubConnector) -> None:
        app.dependency_overrides[get_firestore_connector_factory] = lambda: (lambda **_: connector)

    def test_load_collection(self, app, client: TestClient) -> None:
        records = [
            TabularRecord.from_plain({"id": "d1", "total": 3}),
            TabularRecord.from_plain({"id": "d2", "total": 4, "note": "late"}),
        ]
        self._override(app, _StubConnector(ConnectorFetchResult(source="firestore", records=records)))

        response = client.post("/api/datasets/firestore", json={"project_id": "demo", "collection_name": "orders"})
        assert response.status_code == 200
        payload = response.json()
        assert payload["source_type"] == "firestore"
        assert payload["columns"] == ["id", "total"]
        assert payload["row_count"] == 2

    def test_unreachable_source(self, app, client: TestClient) -> None:
        error = DataSourceConnectionError("No data found in the specified collection")
        self._override(app, _StubConnector(error=error))

        response = client.post("/api/datasets/firestore", json={"project_id": "demo", "collection_name": "orders"})
        assert response.status_code == 502
        assert response.json()["detail"] == "No data found in the specified collection"

    def test_invalid_project_id(self, client: TestClient) -> None:
        response = client.post("/api/datasets/firestore", json={"project_id": "Bad Id", "collection_name": "orders"})
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Empty data is rejected everywhere
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "path",
    ["/api/dashboard/summary", "/api/ai-insights", "/api/table/query", "/api/export", "/api/dashboard-data"],
)
def test_empty_data_is_rejected(client: TestClient, path: str) -> None:
    response = client.post(path, json={"data": []})
    assert response.status_code == 400
    assert response.json()["detail"] == EMPTY_DATA_DETAIL


def test_missing_data_is_rejected(client: TestClient) -> None:
    response = client.post("/api/ai-insights", json={})
    assert response.status_code == 400
    assert response.json()["detail"] == EMPTY_DATA_DETAIL


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------


def test_dashboard_summary(client: TestClient) -> None:
    response = client.post("/api/dashboard/summary", json={"data": ROWS})
    assert response.status_code == 200
    payload = response.json()

    assert payload["row_count"] == 3
    assert payload["classification"] == {"numeric": ["value"], "textual": ["region"]}
    kpis = {kpi["id"]: kpi for kpi in payload["kpis"]}
    assert kpis["categories"]["value"] == "2"
    assert kpis["average"]["value"] == "11.67"
    performance = {point["label"]: point["value"] for point in payload["charts"]["performance"]}
    assert performance == {"A": 15, "B": 20}


class TestAIInsights:
    def test_model_insights(self, client: TestClient) -> None:
        response = client.post("/api/ai-insights", json={"data": ROWS})
        assert response.status_code == 200
        payload = response.json()
        assert payload["source"] == "model"
        assert [insight["id"] for insight in payload["insights"]] == ["ai-insight-1", "ai-insight-2", "ai-insight-3"]

    def test_fallback_when_model_fails(self, app, client: TestClient) -> None:
        app.dependency_overrides[get_insight_service] = lambda: InsightService(adapter=_BrokenAdapter())
        response = client.post("/api/ai-insights", json={"data": ROWS})
        assert response.status_code == 200
        payload = response.json()
        assert payload["source"] == "fallback"
        assert payload["insights"][0]["id"] == "fallback-trend-1"


def test_table_query(client: TestClient) -> None:
    rows = [{"name": f"user{index}", "status": "active" if index % 2 else "inactive", "spend": 1000 * index}
            for index in range(12)]
    response = client.post("/api/table/query", json={"data": rows, "search": "user1", "page_size": 2, "page": 2})

    assert response.status_code == 200
    payload = response.json()
    assert payload["total_rows"] == 3
    assert payload["total_pages"] == 2
    assert payload["page"] == 2
    (row,) = payload["rows"]
    assert row["values"]["name"] == "user11"
    assert row["display"]["spend"] == "11,000"
    assert row["status"] == {"label": "Active", "color": "green"}


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class TestExport:
    def test_csv_download(self, client: TestClient) -> None:
        response = client.post("/api/export?format=csv&filename=q3 report", json={"data": ROWS})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == 'attachment; filename="q3-report.csv"'
        assert response.headers["x-row-count"] == "3"
        assert response.text == "region,value\nA,10\nB,20\nA,5"

    def test_pdf_download(self, client: TestClient) -> None:
        response = client.post("/api/export?format=pdf", json={"data": ROWS})
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_invalid_format(self, client: TestClient) -> None:
        response = client.post("/api/export?format=xlsx", json={"data": ROWS})
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Saved dashboard data
# ---------------------------------------------------------------------------


class TestDashboardData:
    def _save(self, client: TestClient) -> dict[str, Any]:
        response = client.post(
            "/api/dashboard-data",
            json={"data_source": "csv", "data_config": {"file_name": "sales.csv"}, "data": ROWS},
        )
        assert response.status_code == 201
        return response.json()

    def test_save_and_get(self, client: TestClient) -> None:
        saved = self._save(client)
        response = client.get(f"/api/dashboard-data/{saved['id']}")
        assert response.status_code == 200
        payload = response.json()
        assert payload["data"] == ROWS
        assert payload["data_config"] == {"file_name": "sales.csv"}
        assert payload["is_active"] is True

    def test_unknown_dataset(self, client: TestClient) -> None:
        assert client.get("/api/dashboard-data/missing").status_code == 404
        assert client.get("/api/dashboard-data/missing/insights").status_code == 404

    def test_insight_lifecycle(self, client: TestClient) -> None:
        saved = self._save(client)
        generated = client.post("/api/ai-insights", json={"data": ROWS}).json()["insights"]

        response = client.post(f"/api/dashboard-data/{saved['id']}/insights", json={"insights": generated})
        assert response.status_code == 201
        stored = response.json()["insights"]
        assert [insight["source_key"] for insight in stored] == ["ai-insight-1", "ai-insight-2", "ai-insight-3"]

        insight_id = stored[0]["id"]
        response = client.patch(
            f"/api/dashboard-data/{saved['id']}/insights/{insight_id}",
            json={"title": "Edited title"},
        )
        assert response.status_code == 200
        assert response.json()["title"] == "Edited title"
        assert response.json()["description"] == stored[0]["description"]

        listed = client.get(f"/api/dashboard-data/{saved['id']}/insights").json()["insights"]
        assert listed[0]["title"] == "Edited title"
        assert len(listed) == 3

    def test_patch_requires_a_field(self, client: TestClient) -> None:
        saved = self._save(client)
        response = client.patch(f"/api/dashboard-data/{saved['id']}/insights/any", json={})
        assert response.status_code == 422

    def test_patch_unknown_insight(self, client: TestClient) -> None:
        saved = self._save(client)
        response = client.patch(f"/api/dashboard-data/{saved['id']}/insights/missing", json={"title": "x"})
        assert response.status_code == 404

    def test_save_requires_insights(self, client: TestClient) -> None:
        saved = self._save(client)
        response = client.post(f"/api/dashboard-data/{saved['id']}/insights", json={"insights": []})
        assert response.status_code == 422

    def test_save_rejects_oversized_insight_id(self, client: TestClient) -> None:
        saved = self._save(client)
        insight = {"id": "x" * 65, "type": "trend", "title": "t", "description": "d", "confidence": 0.5}
        response = client.post(f"/api/dashboard-data/{saved['id']}/insights", json={"insights": [insight]})
        assert response.status_code == 422
