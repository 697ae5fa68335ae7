"""Background watchers that wait for a pipeline stage to finish."""

from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional

from .. import logging_manager

logger = logging_manager.get_logger().getChild("services.completion_watcher")


class CompletionWatcher:
    """Poll ``check`` on a daemon thread until it returns ``True``.

    The first check happens after ``initial_delay`` seconds, then every
    ``interval`` seconds until ``timeout`` elapses. ``on_finish`` always runs
    once when the watcher stops, whatever the outcome.
    """

    def __init__(
        self,
        check: Callable[[], bool],
        *,
        on_complete: Optional[Callable[[], None]] = None,
        on_finish: Optional[Callable[[str], None]] = None,
        initial_delay: float = 6.0,
        interval: float = 5.0,
        timeout: float = 600.0,
        name: str = "completion-watcher",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._check = check
        self._on_complete = on_complete
        self._on_finish = on_finish
        self._initial_delay = max(0.0, initial_delay)
        self._interval = max(0.0, interval)
        self._timeout = timeout
        self._clock = clock
        self._stop = threading.Event()
        self._done = threading.Event()
        self._outcome: Optional[str] = None
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def outcome(self) -> Optional[str]:
        """``complete``, ``timeout``, ``error`` or ``cancelled`` once finished."""
        return self._outcome

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def start(self) -> "CompletionWatcher":
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._stop.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def _run(self) -> None:
        outcome = "cancelled"
        deadline = self._clock() + self._timeout
        try:
            if self._stop.wait(self._initial_delay):
                return
            while True:
                try:
                    finished = self._check()
                except Exception:
                    logger.warning(
                        "Completion check failed",
                        extra={"event": "pipeline.watch.error"},
                        exc_info=True,
                    )
                    outcome = "error"
                    return
                if finished:
                    outcome = "complete"
                    if self._on_complete is not None:
                        self._on_complete()
                    return
                if self._clock() >= deadline:
                    outcome = "timeout"
                    logger.warning(
                        "Stopped waiting for pipeline completion",
                        extra={"event": "pipeline.watch.timeout"},
                    )
                    return
                if self._stop.wait(self._interval):
                    return
        finally:
            self._outcome = outcome
            if self._on_finish is not None:
                try:
                    self._on_finish(outcome)
                except Exception:  # pragma: no cover
                    logger.exception(
                        "Completion watcher cleanup failed",
                        extra={"event": "pipeline.watch.cleanup_error"},
                    )
            self._done.set()


class CompletionWatcherPool:
    """Create watchers with shared timing and cancel them on shutdown."""

    def __init__(
        self,
        *,
        initial_delay: float = 6.0,
        interval: float = 5.0,
        timeout: float = 600.0,
    ) -> None:
        self._initial_delay = initial_delay
        self._interval = interval
        self._timeout = timeout
        self._lock = threading.Lock()
        self._watchers: List[CompletionWatcher] = []

    def watch(
        self,
        check: Callable[[], bool],
        *,
        on_complete: Optional[Callable[[], None]] = None,
        on_finish: Optional[Callable[[str], None]] = None,
        name: str = "completion-watcher",
    ) -> CompletionWatcher:
        watcher = CompletionWatcher(
            check,
            on_complete=on_complete,
            on_finish=on_finish,
            initial_delay=self._initial_delay,
            interval=self._interval,
            timeout=self._timeout,
            name=name,
        )
        with self._lock:
            self._watchers = [w for w in self._watchers if not w.done]
            self._watchers.append(watcher)
        return watcher.start()

    def active_count(self) -> int:
        with self._lock:
            return sum(1 for w in self._watchers if not w.done)

    def cancel_all(self) -> None:
        with self._lock:
            watchers = list(self._watchers)
            self._watchers = []
        for watcher in watchers:
            watcher.cancel()


__all__ = ["CompletionWatcher", "CompletionWatcherPool"]
