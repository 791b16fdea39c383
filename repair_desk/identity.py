"""Order identifier generation.

Identifiers are ``<base36 millis>_<base36 random>``: sortable by creation
time, restricted to ``[A-Za-z0-9_]`` and short enough for document-store
keys. Uniqueness is not checked against existing records.
"""

from __future__ import annotations

import re
import secrets
import threading
import time
from collections.abc import Callable

from .const import MAX_ID_LENGTH

ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_]{0,%d}$" % (MAX_ID_LENGTH - 1))

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_RANDOM_CHARS = 8


def _base36(value: int) -> str:
    if value <= 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def is_valid_order_id(value: str) -> bool:
    return bool(ID_PATTERN.match(value))


class OrderIdGenerator:
    """Produce time-ordered identifiers; the time part never goes backwards."""

    def __init__(
        self,
        *,
        clock: Callable[[], int] | None = None,
        token: Callable[[int], str] | None = None,
    ) -> None:
        self._clock = clock or (lambda: time.time_ns() // 1_000_000)
        self._token = token or (lambda n: "".join(secrets.choice(_ALPHABET) for _ in range(n)))
        self._last_ms = 0
        self._lock = threading.Lock()

    def _next_millis(self) -> int:
        with self._lock:
            now = self._clock()
            if now <= self._last_ms:
                now = self._last_ms + 1
            self._last_ms = now
            return now

    def generate(self) -> str:
        raw = f"{_base36(self._next_millis())}_{self._token(_RANDOM_CHARS)}"
        cleaned = re.sub(r"[^A-Za-z0-9_]", "_", raw)[:MAX_ID_LENGTH].lstrip("_")
        if not cleaned:
            raise RuntimeError("identifier source produced no usable characters")
        return cleaned


_DEFAULT = OrderIdGenerator()


def generate_order_id() -> str:
    return _DEFAULT.generate()


__all__ = ["ID_PATTERN", "OrderIdGenerator", "generate_order_id", "is_valid_order_id"]
