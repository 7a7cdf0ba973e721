"""Structured prompt builder for dataset insight generation."""

import json
from typing import Any, Dict, List, Tuple

_SAMPLE_ROWS = 5

_SYSTEM_INSTRUCTIONS = """\
You are an expert data analyst. Analyze the provided dataset and generate actionable insights.
Focus on identifying trends, anomalies, and recommendations.

STRICT RULES:
- Use ONLY the data provided. Do not infer beyond what is given.
- "type" must be one of: "trend", "anomaly", "recommendation".
- "description" must be at most 150 characters.
- "confidence" is a number between 0 and 1.
- Return strictly valid JSON. Do NOT include any text outside the JSON object.

Respond with JSON in this exact format:
{
  "insights": [
    {
      "type": "trend|anomaly|recommendation",
      "title": "Short descriptive title",
      "description": "Detailed insight description (max 150 chars)",
      "confidence": 0.85
    }
  ]
}
"""


class InsightPromptBuilder:
    """Builds the system/user prompt pair sent to the insight model.

    The user prompt carries a compact dataset summary rather than the full
    row sequence: record count, column names, the first rows as a sample
    and per-column statistics for numeric columns.
    """

    def build_summary(
        self,
        rows: List[Dict[str, Any]],
        statistics: Dict[str, Dict[str, float]],
    ) -> Dict[str, Any]:
        """Assemble the dataset summary dictionary.

        Args:
            rows: Plain JSON-safe rows.
            statistics: ``{column: {"min", "max", "avg", "total"}}``.

        Returns:
            Summary dictionary ready for JSON serialisation.
        """
        return {
            "totalRecords": len(rows),
            "columns": list(rows[0].keys()) if rows else [],
            "sampleData": rows[:_SAMPLE_ROWS],
            "statistics": statistics,
        }

    def build_prompt(
        self,
        rows: List[Dict[str, Any]],
        statistics: Dict[str, Dict[str, float]],
    ) -> Tuple[str, str]:
        """Build the full prompt pair.

        Returns:
            ``(system_prompt, user_prompt)``.
        """
        summary = self.build_summary(rows, statistics)
        user_prompt = (
            "Analyze this dataset and provide 3-5 key insights:\n"
            f"{json.dumps(summary, indent=2, default=str)}"
        )
        return _SYSTEM_INSTRUCTIONS, user_prompt
