"""
Name: Rate-limit Retry Helper (tenacity)

Responsibilities:
  - Retry remote store calls answered with 429 Too Many Requests
  - Wait a fixed pause before the retry (or Retry-After, if longer)
  - Log retry attempts with the operation context

Collaborators:
  - tenacity: AsyncRetrying with stop/wait/retry strategies
  - config.Settings: rate_limit_retry_attempts, rate_limit_retry_delay_seconds
  - logger: structured logging

Constraints:
  - Only 429 is retried. Transport errors and other statuses fail fast:
    a mutation must never be silently replayed after an ambiguous failure.
"""

from __future__ import annotations

from typing import Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from ..crosscutting.config import get_settings
from ..crosscutting.exceptions import RateLimited
from ..crosscutting.logger import logger


def is_rate_limited(exception: BaseException) -> bool:
    """R: Retry predicate: only RateLimited (HTTP 429)."""
    return isinstance(exception, RateLimited)


def _wait_for_rate_limit(base_delay: float):
    """R: Fixed wait, stretched to Retry-After when the server asks for more."""
    fixed = wait_fixed(base_delay)

    def _wait(retry_state: RetryCallState) -> float:
        delay = fixed(retry_state)
        exc: Optional[BaseException] = None
        if retry_state.outcome is not None:
            exc = retry_state.outcome.exception()
        retry_after = getattr(exc, "retry_after", 0.0) or 0.0
        return max(delay, float(retry_after))

    return _wait


def _log_retry(retry_state: RetryCallState) -> None:
    """R: before_sleep hook (attempt number, wait and previous error)."""
    wait_time = (
        retry_state.next_action.sleep
        if getattr(retry_state, "next_action", None) is not None
        else 0
    )
    exc: Optional[BaseException] = None
    if retry_state.outcome is not None:
        exc = retry_state.outcome.exception()

    logger.warning(
        "Rate limited by remote store, retrying",
        extra={
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(float(wait_time), 2),
            "error": str(exc) if exc else None,
        },
    )


def create_rate_limit_retrying(
    max_retries: int | None = None,
    delay_seconds: float | None = None,
) -> AsyncRetrying:
    """
    R: Builds an AsyncRetrying controller.

    Config:
      - stop: `stop_after_attempt(max_retries + 1)` (first call + retries)
      - wait: fixed `delay_seconds` (or Retry-After if longer)
      - retry: only `is_rate_limited`
      - reraise: True (the last RateLimited propagates)
    """
    settings = get_settings()
    _max_retries = (
        settings.rate_limit_retry_attempts if max_retries is None else max_retries
    )
    _delay = (
        settings.rate_limit_retry_delay_seconds
        if delay_seconds is None
        else float(delay_seconds)
    )

    if _max_retries < 0:
        raise ValueError("max_retries must be >= 0")
    if _delay < 0:
        raise ValueError("delay_seconds must be >= 0")

    return AsyncRetrying(
        stop=stop_after_attempt(_max_retries + 1),
        wait=_wait_for_rate_limit(_delay),
        retry=retry_if_exception(is_rate_limited),
        before_sleep=_log_retry,
        reraise=True,
    )
