"""Retry logic for LLM formatting errors.

Retries only on JSON parse or schema validation failures.
Does NOT retry on adapter transport errors; those propagate to the caller,
which decides on its own fallback.
"""

import logging
from typing import Callable, List, Optional, TypeVar

from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.validator import LLMOutputValidationError

logger = logging.getLogger(__name__)

_RETRYABLE_STAGES = frozenset({"json_parse", "schema"})

T = TypeVar("T")


class LLMRetryExhaustedError(Exception):
    """Raised when all retry attempts fail validation.

    Attributes:
        attempts: Total number of attempts made (initial + retries).
        last_error: The validation error from the final attempt.
        history: Validation errors from every failed attempt.
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
        super().__init__(
            f"LLM output validation failed after {attempts} attempt(s). "
            f"Last error: {last_error}"
        )


def generate_with_retry(
    adapter: BaseLLMAdapter,
    prompt: str,
    validate: Callable[[str], T],
    max_retries: int = 1,
    max_tokens: Optional[int] = None,
) -> T:
    """Generate LLM output with retry on formatting errors.

    Args:
        adapter: An LLM adapter implementing ``generate(prompt) -> str``.
        prompt: The fully formatted prompt string.
        validate: Parses the raw reply, raising ``LLMOutputValidationError``
            when it is unusable.
        max_retries: Maximum number of *additional* attempts after the
            first failure. Total attempts = 1 + max_retries.
        max_tokens: Optional completion budget passed to the adapter.

    Returns:
        Whatever ``validate`` returns for the first usable reply.

    Raises:
        LLMOutputValidationError: If a non-retryable validation error occurs.
        LLMRetryExhaustedError: If all attempts fail with retryable errors.
    """
    errors: List[LLMOutputValidationError] = []
    total_attempts = 1 + max(0, max_retries)

    for attempt in range(1, total_attempts + 1):
        raw = adapter.generate(prompt, max_tokens=max_tokens)

        try:
            result = validate(raw)
            if attempt > 1:
                logger.info(
                    "LLM output validated on attempt %d/%d",
                    attempt,
                    total_attempts,
                )
            return result

        except LLMOutputValidationError as exc:
            if exc.stage not in _RETRYABLE_STAGES:
                raise

            errors.append(exc)
            logger.warning(
                "Attempt %d/%d failed at stage '%s': %s",
                attempt,
                total_attempts,
                exc.stage,
                "; ".join(exc.errors),
            )

    raise LLMRetryExhaustedError(
        attempts=total_attempts,
        last_error=errors[-1],
        history=errors,
    )
