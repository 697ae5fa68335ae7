"""Watch the remote command server and alert the admin when it goes down."""

from __future__ import annotations

import threading
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from .. import logging_manager
from ..errors import StudioError
from ..integrations.command_client import CommandServerClient
from .notification_service import NotificationService

logger = logging_manager.get_logger().getChild("services.health")


class BackendHealthMonitor:
    """Count consecutive health-check failures of the command server."""

    def __init__(
        self,
        client: CommandServerClient,
        notifications: NotificationService,
        *,
        max_failures: int = 3,
        interval: float = 60.0,
    ) -> None:
        self._client = client
        self._notifications = notifications
        self._max_failures = max(1, max_failures)
        self._interval = interval
        self._lock = threading.Lock()
        self._failures = 0
        self._healthy = True
        self._notified = False
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def healthy(self) -> bool:
        return self._healthy

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    def check_health(self) -> bool:
        try:
            self._client.health()
        except StudioError as exc:
            self._record_failure(exc)
        else:
            self._record_success()
        return self._healthy

    def _record_success(self) -> None:
        with self._lock:
            recovered = not self._healthy
            self._failures = 0
            self._healthy = True
            self._notified = False
        if recovered:
            logger.info("Backend server recovered", extra={"event": "health.recovered"})

    def _record_failure(self, exc: Exception) -> None:
        with self._lock:
            self._failures += 1
            failures = self._failures
            should_notify = failures >= self._max_failures and not self._notified
            if failures >= self._max_failures:
                self._healthy = False
            if should_notify:
                self._notified = True
        logger.warning(
            "Backend health check failed",
            extra={
                "event": "health.check.failed",
                "attributes": {"consecutive_failures": failures, "error": str(exc)},
            },
        )
        if should_notify:
            try:
                self._notifications.notify_admin(
                    "Backend server unreachable",
                    details=f"Health check failed {failures} consecutive times: {exc}",
                )
            except SQLAlchemyError:
                logger.error(
                    "Unable to record backend outage notification",
                    extra={"event": "health.notify.failed"},
                    exc_info=True,
                )

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="backend-health", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        self.check_health()
        while not self._stop.wait(self._interval):
            self.check_health()


__all__ = ["BackendHealthMonitor"]
