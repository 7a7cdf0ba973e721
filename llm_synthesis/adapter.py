"""Model adapters used by the insight generator.

An adapter takes a system/user prompt pair and returns the model's raw
reply. Validation happens elsewhere; adapters only move text.
"""

import json
import os
from abc import ABC, abstractmethod
from typing import Optional

from openai import OpenAI


class BaseLLMAdapter(ABC):
    """Interface every insight model adapter implements."""

    @abstractmethod
    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Return the model's raw reply to one prompt pair.

        Args:
            system_prompt: Role and required JSON shape.
            user_prompt: Dataset summary to analyse.
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Chat-completions adapter for OpenAI and compatible endpoints.

    JSON mode is requested so replies arrive as a bare object. Sampling is
    kept at a low temperature; insights should vary little between calls
    on the same dataset.
    """

    def __init__(
        self,
        model: str = "gpt-4o",
        max_tokens: int = 1000,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.2,
        timeout_seconds: float = 60.0,
    ) -> None:
        """
        Args:
            model: Model name passed to the API.
            max_tokens: Completion token cap.
            api_key: Key for the endpoint; ``OPENAI_API_KEY`` when omitted.
            base_url: Alternate OpenAI-compatible endpoint.
            temperature: Sampling temperature.
            timeout_seconds: Per-request timeout.
        """
        self._client = OpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY", ""),
            base_url=base_url or None,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        completion = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        if not completion.choices:
            return ""
        return (completion.choices[0].message.content or "").strip()


_MOCK_INSIGHTS = [
    ("trend", "Mock trend", "Primary metric trends upward in the test data.", 0.9),
    ("anomaly", "Mock anomaly", "One category dominates the test data.", 0.8),
    ("recommendation", "Mock recommendation", "Verify integration with the dashboard client.", 0.7),
]


class MockLLMAdapter(BaseLLMAdapter):
    """Offline adapter with a fixed, valid three-insight reply.

    Selected with ``LLM_ADAPTER=mock`` for local runs and CI.
    """

    def __init__(self) -> None:
        self._reply = json.dumps(
            {
                "insights": [
                    {"type": kind, "title": title, "description": description, "confidence": confidence}
                    for kind, title, description, confidence in _MOCK_INSIGHTS
                ]
            }
        )

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        return self._reply
