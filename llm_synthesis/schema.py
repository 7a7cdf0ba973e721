"""Structured output schema for generated insights."""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

InsightCategory = Literal["trend", "anomaly", "recommendation"]


class InsightRecord(BaseModel):
    """One short observation about a dataset, model-generated or heuristic."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    id: str = Field(min_length=1, max_length=64)
    type: InsightCategory
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)

    def edited(self, *, title: str | None = None, description: str | None = None) -> "InsightRecord":
        """Return a copy with user edits applied. Edits are not re-validated."""
        update = {}
        if title is not None:
            update["title"] = title
        if description is not None:
            update["description"] = description
        return self.model_copy(update=update)


class GeneratedInsight(BaseModel):
    """Shape of one insight as returned by the model, before ids are assigned."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    type: InsightCategory
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    confidence: float | None = None


class GeneratedInsightBatch(BaseModel):
    """Top-level object the model is instructed to return."""

    model_config = ConfigDict(extra="ignore")

    insights: List[GeneratedInsight] = Field(default_factory=list)
