from __future__ import annotations

import pytest
from streamlit.testing.v1 import AppTest

from app.config import get_llm_settings
from app.domain.tabular import Dataset, DataSourceType
from app.services.insight_service import get_insight_service

ROWS = [
    {"region": "North", "sales": 1200},
    {"region": "South", "sales": 800},
    {"region": "North", "sales": 950},
]


@pytest.fixture()
def app(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LLM_ADAPTER", "mock")
    get_llm_settings.cache_clear()
    get_insight_service.cache_clear()
    at = AppTest.from_file("../streamlit_app.py", default_timeout=30)
    at.session_state["dataset"] = Dataset.from_plain_rows(ROWS, source_type=DataSourceType.CSV)
    yield at.run()
    get_llm_settings.cache_clear()
    get_insight_service.cache_clear()


def _generate(at: AppTest) -> AppTest:
    next(button for button in at.button if button.label == "Generate Insights").click()
    return at.run()


def _title_keys(at: AppTest) -> list[str]:
    return [widget.key for widget in at.text_input if (widget.key or "").startswith("insight-title-")]


def test_regenerated_insights_get_fresh_editors(app: AppTest) -> None:
    _generate(app)
    assert _title_keys(app) == ["insight-title-1-0", "insight-title-1-1", "insight-title-1-2"]
    app.text_input(key="insight-title-1-0").set_value("Stale title")

    _generate(app)
    assert _title_keys(app) == ["insight-title-2-0", "insight-title-2-1", "insight-title-2-2"]
    assert app.text_input(key="insight-title-2-0").value == "Mock trend"
