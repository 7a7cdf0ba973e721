"""
app/services/insight_service.py

Insight generation with a local statistical fallback.

The model path summarises the dataset, asks the configured LLM adapter for a
JSON batch of insights and validates it (retrying formatting failures). Any
failure on that path surfaces as :class:`InsightGenerationError`;
:meth:`InsightService.generate_with_fallback` masks it with heuristic
insights so the feature degrades instead of disappearing.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from functools import lru_cache

from app.config import get_llm_settings
from app.domain.tabular import TabularRecord
from app.services.column_classifier import ColumnClassification, classify_columns
from app.services.metrics_service import MetricsService, category_label, coerce_number
from llm_synthesis.adapter import BaseLLMAdapter, MockLLMAdapter, OpenAILLMAdapter
from llm_synthesis.prompt_builder import InsightPromptBuilder
from llm_synthesis.retry import LLMRetryExhaustedError, generate_with_retry
from llm_synthesis.schema import InsightRecord
from llm_synthesis.validator import LLMOutputValidationError

logger = logging.getLogger(__name__)

_RECENT_WINDOW = 5


class InsightGenerationError(RuntimeError):
    """
    Raised when the insight model cannot produce a valid batch.
    """


class InsightSource:
    MODEL = "model"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class InsightBatch:
    insights: list[InsightRecord]
    source: str


# ---------------------------------------------------------------------------
# Local fallback
# ---------------------------------------------------------------------------


def fallback_insights(
    records: Sequence[TabularRecord],
    classification: ColumnClassification | None = None,
) -> list[InsightRecord]:
    """
    Statistical insights computed without a model.

    trend: recent average of the primary metric vs the overall average
    anomaly: share of the most frequent grouping category
    recommendation: dataset shape
    """
    if not records:
        return []
    classification = classification or classify_columns(records)
    insights: list[InsightRecord] = []

    metric_column = classification.first_numeric
    if metric_column is not None:
        values = [coerce_number(record.get(metric_column)) for record in records]
        recent = values[-_RECENT_WINDOW:]
        recent_avg = sum(recent) / len(recent)
        overall_avg = sum(values) / len(values)
        change = (recent_avg - overall_avg) / overall_avg * 100 if overall_avg else 0.0
        direction = "positive" if change > 0 else "negative"
        insights.append(
            InsightRecord(
                id="fallback-trend-1",
                type="trend",
                title="Data Trend Analysis",
                description=(
                    f"Recent {metric_column} values show {direction} trend of "
                    f"{abs(change):.1f}% vs overall average."
                ),
                confidence=0.75,
            )
        )

    category_column = classification.first_textual
    if category_column is not None:
        counts: dict[str, int] = {}
        for record in records:
            label = category_label(record.get(category_column))
            counts[label] = counts.get(label, 0) + 1
        top_label, top_count = sorted(counts.items(), key=lambda item: item[1], reverse=True)[0]
        share = top_count / len(records) * 100
        insights.append(
            InsightRecord(
                id="fallback-anomaly-1",
                type="anomaly",
                title="Distribution Pattern",
                description=(
                    f"{top_label} dominates with {share:.1f}% of records. "
                    "Consider investigating this concentration."
                ),
                confidence=0.80,
            )
        )

    insights.append(
        InsightRecord(
            id="fallback-recommendation-1",
            type="recommendation",
            title="Data Enhancement",
            description=(
                f"Dataset has {len(records)} records with {len(records[0])} fields. "
                "Consider adding timestamp data for temporal analysis."
            ),
            confidence=0.85,
        )
    )
    return insights


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class InsightService:
    """
    Generates insight records for a dataset.

    ``adapter`` may be ``None`` when no model is configured; the model path
    then fails immediately and callers fall back.
    """

    def __init__(
        self,
        *,
        adapter: BaseLLMAdapter | None,
        max_retries: int = 2,
        prompt_builder: InsightPromptBuilder | None = None,
        metrics: MetricsService | None = None,
    ) -> None:
        self._adapter = adapter
        self._max_retries = max(0, max_retries)
        self._prompt_builder = prompt_builder or InsightPromptBuilder()
        self._metrics = metrics or MetricsService()

    @property
    def model_configured(self) -> bool:
        return self._adapter is not None

    def generate(self, records: Sequence[TabularRecord]) -> list[InsightRecord]:
        """
        Ask the model for insights.

        Raises
        ------
        InsightGenerationError
            When no adapter is configured, the adapter call fails, or the
            output never validates.
        """
        if not records:
            return []
        if self._adapter is None:
            raise InsightGenerationError("Insight model is not configured.")

        classification = classify_columns(records)
        statistics = {
            column: asdict(stats)
            for column, stats in self._metrics.column_statistics(records, classification).items()
        }
        rows = [record.to_plain() for record in records]
        system_prompt, user_prompt = self._prompt_builder.build_prompt(rows, statistics)

        try:
            insights = generate_with_retry(
                self._adapter,
                system_prompt,
                user_prompt,
                max_retries=self._max_retries,
            )
        except (LLMOutputValidationError, LLMRetryExhaustedError) as exc:
            raise InsightGenerationError(f"Insight model returned invalid output: {exc}") from exc
        except Exception as exc:  # noqa: BLE001
            raise InsightGenerationError(f"Insight model request failed: {exc}") from exc

        logger.info("Model insights generated rows=%d insights=%d", len(records), len(insights))
        return insights

    def generate_with_fallback(self, records: Sequence[TabularRecord]) -> InsightBatch:
        """
        Model insights, or heuristic insights when the model path fails.
        """
        try:
            return InsightBatch(insights=self.generate(records), source=InsightSource.MODEL)
        except InsightGenerationError as exc:
            logger.warning("Insight generation failed, using local fallback: %s", exc)
            return InsightBatch(insights=fallback_insights(records), source=InsightSource.FALLBACK)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_llm_adapter() -> BaseLLMAdapter | None:
    """
    Build the adapter named by LLM_ADAPTER, or ``None`` when the OpenAI
    adapter has no API key.
    """
    settings = get_llm_settings()
    if settings.adapter == "mock":
        return MockLLMAdapter()
    if not settings.api_key:
        logger.warning("No LLM API key configured; insights will use the local fallback")
        return None
    return OpenAILLMAdapter(
        model=settings.model,
        max_tokens=settings.max_tokens,
        api_key=settings.api_key,
        base_url=settings.base_url,
    )


@lru_cache(maxsize=1)
def get_insight_service() -> InsightService:
    """
    Build and cache the insight service with env-driven settings.
    """
    return InsightService(
        adapter=build_llm_adapter(),
        max_retries=get_llm_settings().max_retries,
    )
