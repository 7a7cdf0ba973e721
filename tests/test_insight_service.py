"""
tests/test_insight_service.py

Tests for insight generation: heuristic fallback, model path via adapters,
output validation and retry behaviour.

No network access: the model path uses MockLLMAdapter or local stubs.
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from app.config import get_llm_settings
from app.domain.tabular import TabularRecord
from app.services.insight_service import (
    InsightGenerationError,
    InsightService,
    InsightSource,
    build_llm_adapter,
    fallback_insights,
)
from llm_synthesis.adapter import BaseLLMAdapter, MockLLMAdapter
from llm_synthesis.prompt_builder import InsightPromptBuilder
from llm_synthesis.retry import LLMRetryExhaustedError, generate_with_retry
from llm_synthesis.schema import InsightRecord
from llm_synthesis.validator import LLMOutputValidationError, validate_llm_output


def _records(*rows: dict) -> list[TabularRecord]:
    return [TabularRecord.from_plain(row) for row in rows]


class _ScriptedAdapter(BaseLLMAdapter):
    """Returns queued responses in order and counts calls."""

    def __init__(self, *responses: str) -> None:
        self._responses = list(responses)
        self.calls = 0

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.calls += 1
        return self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]


class _FailingAdapter(BaseLLMAdapter):
    def generate(self, system_prompt: str, user_prompt: str) -> str:
        raise RuntimeError("upstream unavailable")


_VALID_BATCH = json.dumps(
    {
        "insights": [
            {"type": "trend", "title": "Sales up", "description": "Sales grew.", "confidence": 0.9},
            {"type": "recommendation", "title": "Add dates", "description": "Track time."},
        ]
    }
)


# ---------------------------------------------------------------------------
# Fallback insights
# ---------------------------------------------------------------------------


class TestFallbackInsights:
    def test_full_fallback_batch(self) -> None:
        records = _records(*({"region": "A" if n % 3 else "B", "sales": n} for n in range(1, 11)))
        insights = fallback_insights(records)

        assert [insight.id for insight in insights] == [
            "fallback-trend-1",
            "fallback-anomaly-1",
            "fallback-recommendation-1",
        ]
        assert [insight.confidence for insight in insights] == [0.75, 0.80, 0.85]
        assert insights[0].description == "Recent sales values show positive trend of 45.5% vs overall average."
        assert insights[1].description == (
            "A dominates with 70.0% of records. Consider investigating this concentration."
        )
        assert insights[2].description == (
            "Dataset has 10 records with 2 fields. Consider adding timestamp data for temporal analysis."
        )

    def test_negative_trend(self) -> None:
        records = _records(*({"v": value} for value in (10, 10, 10, 10, 10, 1, 1, 1, 1, 1)))
        trend = fallback_insights(records)[0]
        assert "negative trend of 81.8%" in trend.description

    def test_zero_average_reports_no_change(self) -> None:
        records = _records({"v": 0}, {"v": 0})
        assert "trend of 0.0%" in fallback_insights(records)[0].description

    def test_text_only_dataset(self) -> None:
        insights = fallback_insights(_records({"name": "x"}, {"name": "x"}))
        assert [insight.type for insight in insights] == ["anomaly", "recommendation"]
        assert insights[0].description.startswith("x dominates with 100.0%")

    def test_empty_input(self) -> None:
        assert fallback_insights([]) == []


# ---------------------------------------------------------------------------
# InsightService
# ---------------------------------------------------------------------------


class TestInsightService:
    def test_model_path_with_mock_adapter(self) -> None:
        service = InsightService(adapter=MockLLMAdapter())
        batch = service.generate_with_fallback(_records({"sales": 1}, {"sales": 2}))
        assert batch.source == InsightSource.MODEL
        assert [insight.id for insight in batch.insights] == ["ai-insight-1", "ai-insight-2", "ai-insight-3"]
        assert [insight.type for insight in batch.insights] == ["trend", "anomaly", "recommendation"]

    def test_no_adapter_raises_generation_error(self) -> None:
        service = InsightService(adapter=None)
        assert not service.model_configured
        with pytest.raises(InsightGenerationError):
            service.generate(_records({"v": 1}))

    def test_transport_failure_is_wrapped(self) -> None:
        service = InsightService(adapter=_FailingAdapter())
        with pytest.raises(InsightGenerationError, match="upstream unavailable"):
            service.generate(_records({"v": 1}))

    def test_invalid_output_exhausts_retries(self) -> None:
        adapter = _ScriptedAdapter("not json")
        service = InsightService(adapter=adapter, max_retries=2)
        with pytest.raises(InsightGenerationError):
            service.generate(_records({"v": 1}))
        assert adapter.calls == 3

    def test_failure_falls_back(self) -> None:
        service = InsightService(adapter=_FailingAdapter())
        batch = service.generate_with_fallback(_records({"v": 1}, {"v": 3}))
        assert batch.source == InsightSource.FALLBACK
        assert batch.insights[0].id == "fallback-trend-1"

    def test_empty_input_generates_nothing(self) -> None:
        assert InsightService(adapter=_FailingAdapter()).generate([]) == []

    def test_prompt_carries_dataset_summary(self) -> None:
        adapter = _ScriptedAdapter(_VALID_BATCH)
        captured: dict[str, str] = {}
        original = adapter.generate

        def _capture(system_prompt: str, user_prompt: str) -> str:
            captured["user"] = user_prompt
            return original(system_prompt, user_prompt)

        adapter.generate = _capture  # type: ignore[method-assign]
        InsightService(adapter=adapter).generate(_records(*({"sales": n} for n in range(8))))

        payload = json.loads(captured["user"].split("\n", 1)[1])
        assert payload["totalRecords"] == 8
        assert payload["columns"] == ["sales"]
        assert len(payload["sampleData"]) == 5
        assert payload["statistics"]["sales"]["total"] == 28


# ---------------------------------------------------------------------------
# Adapter factory
# ---------------------------------------------------------------------------


class TestBuildLLMAdapter:
    @pytest.fixture(autouse=True)
    def _clear_settings_cache(self):
        get_llm_settings.cache_clear()
        yield
        get_llm_settings.cache_clear()

    def test_mock_adapter(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLM_ADAPTER", "mock")
        assert isinstance(build_llm_adapter(), MockLLMAdapter)

    def test_openai_without_key_is_unconfigured(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLM_ADAPTER", "openai")
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert build_llm_adapter() is None


# ---------------------------------------------------------------------------
# Output validation and retry
# ---------------------------------------------------------------------------


class TestValidateLLMOutput:
    def test_assigns_ids_and_default_confidence(self) -> None:
        insights = validate_llm_output(_VALID_BATCH)
        assert [insight.id for insight in insights] == ["ai-insight-1", "ai-insight-2"]
        assert insights[1].confidence == 0.5

    def test_strips_markdown_fences(self) -> None:
        assert len(validate_llm_output(f"```json\n{_VALID_BATCH}\n```")) == 2

    def test_clamps_confidence(self) -> None:
        raw = json.dumps({"insights": [{"type": "anomaly", "title": "t", "description": "d", "confidence": 1.7}]})
        assert validate_llm_output(raw)[0].confidence == 1.0

    def test_unknown_category_is_rejected(self) -> None:
        raw = json.dumps({"insights": [{"type": "forecast", "title": "t", "description": "d"}]})
        with pytest.raises(LLMOutputValidationError) as exc_info:
            validate_llm_output(raw)
        assert exc_info.value.stage == "schema"

    def test_top_level_must_be_object(self) -> None:
        with pytest.raises(LLMOutputValidationError) as exc_info:
            validate_llm_output("[]")
        assert exc_info.value.stage == "schema"

    def test_malformed_json(self) -> None:
        with pytest.raises(LLMOutputValidationError) as exc_info:
            validate_llm_output("{insights: ")
        assert exc_info.value.stage == "json_parse"

    def test_object_inside_prose_is_recovered(self) -> None:
        assert len(validate_llm_output(f"Here are the insights:\n{_VALID_BATCH}\nThanks!")) == 2


class TestGenerateWithRetry:
    def test_recovers_after_bad_attempt(self) -> None:
        adapter = _ScriptedAdapter("oops", _VALID_BATCH)
        insights = generate_with_retry(adapter, "system", "user", max_retries=2)
        assert len(insights) == 2
        assert adapter.calls == 2

    def test_retry_prompt_carries_previous_errors(self) -> None:
        prompts: list[str] = []

        class _Recording(_ScriptedAdapter):
            def generate(self, system_prompt: str, user_prompt: str) -> str:
                prompts.append(user_prompt)
                return super().generate(system_prompt, user_prompt)

        generate_with_retry(_Recording("oops", _VALID_BATCH), "system", "user", max_retries=1)
        assert prompts[0] == "user"
        assert prompts[1].startswith("user\n\nYour previous reply was rejected:")

    def test_exhaustion_keeps_history(self) -> None:
        adapter = _ScriptedAdapter("oops")
        with pytest.raises(LLMRetryExhaustedError) as exc_info:
            generate_with_retry(adapter, "system", "user", max_retries=1)
        assert exc_info.value.attempts == 2
        assert len(exc_info.value.history) == 2


# ---------------------------------------------------------------------------
# Schema contract
# ---------------------------------------------------------------------------


class TestInsightRecordContract:
    def test_rejects_extra_fields(self) -> None:
        with pytest.raises(ValidationError):
            InsightRecord(id="1", type="trend", title="t", description="d", confidence=0.5, extra="x")

    def test_rejects_out_of_range_confidence(self) -> None:
        with pytest.raises(ValidationError):
            InsightRecord(id="1", type="trend", title="t", description="d", confidence=1.5)

    def test_edit_returns_copy_without_revalidation(self) -> None:
        record = InsightRecord(id="1", type="trend", title="t", description="d", confidence=0.5)
        edited = record.edited(title="")
        assert edited.title == ""
        assert record.title == "t"
        assert edited.description == "d"

    def test_prompt_builder_summary_on_empty_rows(self) -> None:
        summary = InsightPromptBuilder().build_summary([], {})
        assert summary == {"totalRecords": 0, "columns": [], "sampleData": [], "statistics": {}}

    def test_rejects_id_longer_than_stored_key(self) -> None:
        with pytest.raises(ValidationError):
            InsightRecord(id="x" * 65, type="trend", title="t", description="d", confidence=0.5)
