"""Exponential backoff gate for object-storage listings."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BackoffState:
    available: bool
    failures: int
    delay_seconds: float
    last_attempt: Optional[float]


class StorageBackoff:
    """Track storage availability and suppress attempts while backing off.

    After ``n`` consecutive failures the retry delay is
    ``min(2**n * base, maximum)``. A success resets the gate.
    """

    def __init__(self, *, base_seconds: float = 1.0, max_seconds: float = 240.0) -> None:
        self._base = base_seconds
        self._max = max_seconds
        self._lock = threading.Lock()
        self._available = True
        self._failures = 0
        self._delay = base_seconds
        self._last_attempt: Optional[float] = None

    def can_attempt(self, now: float) -> bool:
        with self._lock:
            if self._available or self._last_attempt is None:
                return True
            return now - self._last_attempt > self._delay

    def record_failure(self, now: float) -> float:
        """Register a failed attempt and return the new delay."""
        with self._lock:
            self._failures += 1
            self._available = False
            self._last_attempt = now
            self._delay = min((2 ** self._failures) * self._base, self._max)
            return self._delay

    def record_success(self, now: float) -> None:
        with self._lock:
            self._available = True
            self._failures = 0
            self._delay = self._base
            self._last_attempt = now

    def seconds_until_retry(self, now: float) -> float:
        with self._lock:
            if self._available or self._last_attempt is None:
                return 0.0
            return max(0.0, self._last_attempt + self._delay - now)

    def state(self) -> BackoffState:
        with self._lock:
            return BackoffState(
                available=self._available,
                failures=self._failures,
                delay_seconds=self._delay,
                last_attempt=self._last_attempt,
            )


__all__ = ["BackoffState", "StorageBackoff"]
