"""Bounded exponential-backoff retry for generative service calls."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

import openai

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient_error(exc: BaseException) -> bool:
    """Rate limits, 5xx responses and dropped connections are worth retrying."""
    if isinstance(exc, openai.RateLimitError):
        return True
    if isinstance(exc, openai.APIStatusError):
        return exc.status_code == 429 or 500 <= exc.status_code <= 599
    # APITimeoutError subclasses APIConnectionError.
    return isinstance(exc, openai.APIConnectionError)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_s: float = 1.0
    is_retryable: Callable[[BaseException], bool] = is_transient_error
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def delay_for(self, attempt: int) -> float:
        """Delay after the given zero-based attempt: base, 2x base, 4x base..."""
        return self.base_delay_s * (2 ** attempt)

    def run(self, fn: Callable[[], T], *, operation: str = "llm.call") -> T:
        """Call ``fn`` until it succeeds, fails permanently, or attempts run out.

        The last error is re-raised unchanged so callers can decide how to recover.
        """
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        for attempt in range(self.max_attempts):
            try:
                return fn()
            except Exception as exc:
                if not self.is_retryable(exc):
                    raise
                if attempt + 1 >= self.max_attempts:
                    logger.warning(
                        "%s failed with a transient error after %s attempts; giving up.",
                        operation,
                        self.max_attempts,
                    )
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s transient error (%s). Retrying in %.2fs (attempt %s/%s).",
                    operation,
                    exc.__class__.__name__,
                    delay,
                    attempt + 1,
                    self.max_attempts,
                )
                self.sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover
