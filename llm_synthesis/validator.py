"""Turns raw model text into validated insight records.

The model is asked for ``{"insights": [...]}``. Replies are accepted when
wrapped in markdown fences or surrounded by stray prose, as long as a
single JSON object can be recovered from them.
"""

import json
import re
from typing import Any, Dict, List

from pydantic import ValidationError

from llm_synthesis.schema import GeneratedInsightBatch, InsightRecord

DEFAULT_CONFIDENCE = 0.5
ID_PREFIX = "ai-insight-"

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


class LLMOutputValidationError(Exception):
    """Model output that could not be turned into insight records.

    Attributes:
        stage: ``"json_parse"`` when no JSON object could be read,
            ``"schema"`` when the object has the wrong shape.
        errors: Human-readable problems, one per entry.
        raw_response: The reply exactly as the adapter returned it.
    """

    def __init__(self, stage: str, errors: List[str], raw_response: str) -> None:
        self.stage = stage
        self.errors = errors
        self.raw_response = raw_response
        super().__init__(f"Insight output rejected ({stage}): " + "; ".join(errors))


def extract_json_text(raw_response: str) -> str:
    """Return the part of a reply most likely to hold the JSON object."""
    text = (raw_response or "").strip()
    fenced = _FENCE_RE.match(text)
    if fenced:
        return fenced.group(1)
    if text.startswith("{") or text.startswith("["):
        return text
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def parse_insight_payload(raw_response: str) -> Dict[str, Any]:
    """Decode a reply into its top-level JSON object.

    Raises:
        LLMOutputValidationError: ``json_parse`` for undecodable text,
            ``schema`` when the top level is not an object.
    """
    try:
        data = json.loads(extract_json_text(raw_response))
    except (json.JSONDecodeError, TypeError) as exc:
        raise LLMOutputValidationError("json_parse", [str(exc)], raw_response) from exc
    if not isinstance(data, dict):
        raise LLMOutputValidationError(
            "schema", ["top-level JSON must be an object"], raw_response
        )
    return data


def _format_errors(exc: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors()
    ]


def validate_llm_output(raw_response: str) -> List[InsightRecord]:
    """Validate one model reply.

    Records are numbered ``ai-insight-1``, ``ai-insight-2``... in reply
    order. A missing confidence becomes 0.5; out-of-range values are
    clamped into [0, 1] rather than rejected.

    Raises:
        LLMOutputValidationError: On any parse or shape problem.
    """
    data = parse_insight_payload(raw_response)
    try:
        batch = GeneratedInsightBatch.model_validate(data)
    except ValidationError as exc:
        raise LLMOutputValidationError("schema", _format_errors(exc), raw_response) from exc

    records: List[InsightRecord] = []
    for position, item in enumerate(batch.insights, start=1):
        confidence = DEFAULT_CONFIDENCE if item.confidence is None else item.confidence
        records.append(
            InsightRecord(
                id=f"{ID_PREFIX}{position}",
                type=item.type,
                title=item.title,
                description=item.description,
                confidence=min(max(confidence, 0.0), 1.0),
            )
        )
    return records
