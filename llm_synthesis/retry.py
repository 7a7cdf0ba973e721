"""Re-asks the model when its reply does not validate.

Only formatting problems are retried. Each retry repeats the dataset
prompt with the previous validation errors appended, so the model can
correct itself. Transport errors from the adapter propagate untouched.
"""

import logging
from typing import List

from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.schema import InsightRecord
from llm_synthesis.validator import LLMOutputValidationError, validate_llm_output

logger = logging.getLogger(__name__)

_CORRECTION_TEMPLATE = (
    "\n\nYour previous reply was rejected: {errors}\n"
    "Reply again with only the JSON object described above."
)


class LLMRetryExhaustedError(Exception):
    """Every attempt produced output that failed validation.

    Attributes:
        attempts: Number of adapter calls made.
        last_error: Validation error of the final attempt.
        history: Validation errors in attempt order.
    """

    def __init__(
        self,
        attempts: int,
        last_error: LLMOutputValidationError,
        history: List[LLMOutputValidationError],
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.history = history
        super().__init__(f"No valid insight output after {attempts} attempt(s): {last_error}")


def correction_prompt(user_prompt: str, error: LLMOutputValidationError) -> str:
    """Original user prompt plus a short note on what was wrong."""
    return user_prompt + _CORRECTION_TEMPLATE.format(errors="; ".join(error.errors[:5]))


def generate_with_retry(
    adapter: BaseLLMAdapter,
    system_prompt: str,
    user_prompt: str,
    max_retries: int = 2,
) -> List[InsightRecord]:
    """Call the adapter until its reply validates.

    Args:
        adapter: Model adapter.
        system_prompt: Output-format instructions.
        user_prompt: Dataset summary.
        max_retries: Extra attempts after the first; ``1 + max_retries``
            calls at most.

    Raises:
        LLMRetryExhaustedError: When no attempt validates.
    """
    history: List[LLMOutputValidationError] = []
    prompt = user_prompt
    attempts = 1 + max(0, max_retries)

    for attempt in range(1, attempts + 1):
        raw = adapter.generate(system_prompt, prompt)
        try:
            records = validate_llm_output(raw)
        except LLMOutputValidationError as exc:
            history.append(exc)
            logger.warning(
                "Insight output rejected attempt=%d/%d stage=%s errors=%s",
                attempt,
                attempts,
                exc.stage,
                "; ".join(exc.errors),
            )
            prompt = correction_prompt(user_prompt, exc)
            continue

        if history:
            logger.info("Insight output accepted after %d rejected attempt(s)", len(history))
        return records

    raise LLMRetryExhaustedError(attempts=attempts, last_error=history[-1], history=history)
