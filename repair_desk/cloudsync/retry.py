"""Bounded exponential backoff for failed reconciliation passes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..const import (
    CONF_RETRY_BACKOFF,
    CONF_RETRY_DELAY,
    CONF_RETRY_MAX_ATTEMPTS,
    CONF_RETRY_MAX_DELAY,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_RETRY_DELAY,
    DEFAULT_RETRY_MAX_ATTEMPTS,
    DEFAULT_RETRY_MAX_DELAY,
)


class RetryExhaustedError(RuntimeError):
    """Raised when no further retry attempt is allowed."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"gave up after {attempts} retry attempts")
        self.attempts = attempts


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Delay schedule ``base_delay * factor ** (attempt - 1)`` capped at ``max_delay``.

    ``attempt`` counts retries starting at 1; ``max_attempts`` of 0 disables
    retrying altogether.
    """

    base_delay: float = DEFAULT_RETRY_DELAY
    factor: float = DEFAULT_RETRY_BACKOFF
    max_delay: float = DEFAULT_RETRY_MAX_DELAY
    max_attempts: int = DEFAULT_RETRY_MAX_ATTEMPTS

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> RetryPolicy:
        def _number(key: str, default: float, minimum: float) -> float:
            try:
                return max(minimum, float(options.get(key, default)))
            except (TypeError, ValueError):
                return default

        try:
            attempts = max(0, int(options.get(CONF_RETRY_MAX_ATTEMPTS, DEFAULT_RETRY_MAX_ATTEMPTS)))
        except (TypeError, ValueError):
            attempts = DEFAULT_RETRY_MAX_ATTEMPTS
        base = _number(CONF_RETRY_DELAY, DEFAULT_RETRY_DELAY, 0.0)
        return cls(
            base_delay=base,
            factor=_number(CONF_RETRY_BACKOFF, DEFAULT_RETRY_BACKOFF, 1.0),
            max_delay=max(base, _number(CONF_RETRY_MAX_DELAY, DEFAULT_RETRY_MAX_DELAY, 0.0)),
            max_attempts=attempts,
        )

    def allows(self, attempt: int) -> bool:
        return 1 <= attempt <= self.max_attempts

    def next_delay(self, attempt: int) -> float:
        if not self.allows(attempt):
            raise RetryExhaustedError(min(max(attempt - 1, 0), self.max_attempts))
        return min(self.max_delay, self.base_delay * self.factor ** (attempt - 1))


__all__ = ["RetryExhaustedError", "RetryPolicy"]
