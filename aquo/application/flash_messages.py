"""
Name: Flash Messages (UI feedback with TTL)

Responsibilities:
  - Keep the one message currently shown to the operator
  - Success messages expire after a fixed interval (auto-clear)
  - Error messages stay until replaced or dismissed

Collaborators:
  - application/usecases/*: publish(outcome) after every operation
  - crosscutting/config.py: flash_message_ttl_seconds

Notes:
  - Expiry is evaluated lazily on read (monotonic clock, injectable for tests)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .results import OperationOutcome


class FlashLevel(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class FlashMessage:
    level: FlashLevel
    text: str
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class FlashMessages:
    """Current feedback message of one UI session."""

    def __init__(
        self,
        ttl_seconds: float = 3.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._ttl = ttl_seconds
        self._clock = clock
        self._current: FlashMessage | None = None

    @property
    def current(self) -> FlashMessage | None:
        if self._current is not None and self._current.is_expired(self._clock()):
            self._current = None
        return self._current

    def success(self, text: str) -> FlashMessage:
        return self._set(FlashLevel.SUCCESS, text, self._clock() + self._ttl)

    def warning(self, text: str) -> FlashMessage:
        return self._set(FlashLevel.WARNING, text, None)

    def error(self, text: str) -> FlashMessage:
        return self._set(FlashLevel.ERROR, text, None)

    def dismiss(self) -> None:
        self._current = None

    def publish(self, outcome: OperationOutcome) -> FlashMessage | None:
        """
        Shows the message of an outcome.

        A stale-cache warning wins over the success text: the operator must
        know the list may be out of date.
        """
        if outcome.error is not None:
            return self.error(outcome.error.message)
        if outcome.warning is not None:
            return self.warning(outcome.warning.message)
        if outcome.message:
            return self.success(outcome.message)
        return None

    def _set(
        self, level: FlashLevel, text: str, expires_at: float | None
    ) -> FlashMessage:
        self._current = FlashMessage(level=level, text=text, expires_at=expires_at)
        return self._current
