"""Poll the status document of open projects and refresh their storyboard."""

from __future__ import annotations

import threading
import time
from dataclasses import asdict
from typing import Any, Callable, Dict, Optional, Tuple

from .. import logging_manager
from ..errors import NotFoundError, StorageError, StudioError
from ..pipeline.status import STORYBOARD_COMPLETE, ProjectStatus, changed_fields
from ..storage import keys
from ..storage.backoff import StorageBackoff
from ..storage.object_store import ObjectStore, StoredObject
from ..storyboard.busy import AUDIO, IMAGE, IMAGE_SET, BusySet
from ..storyboard.grouping import StoryboardSnapshot, group_storyboard_files
from .status_service import StatusService

logger = logging_manager.get_logger().getChild("services.monitor")

LIST_ATTEMPTS = 3


class ProjectMonitor:
    """Track one project's status and storyboard artifacts."""

    def __init__(
        self,
        user_id: str,
        project_id: str,
        *,
        store: ObjectStore,
        status_service: StatusService,
        busy: BusySet,
        backoff: Optional[StorageBackoff] = None,
        cover_key: Optional[str] = None,
        settle_delay: float = 3.0,
        poll_interval: float = 5.0,
        load_text: bool = True,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.user_id = user_id
        self.project_id = project_id
        self._store = store
        self._status_service = status_service
        self._busy = busy
        self._backoff = backoff or StorageBackoff()
        self._cover_key = cover_key
        self._settle_delay = settle_delay
        self._poll_interval = poll_interval
        self._load_text = load_text
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.RLock()
        self._status: Optional[ProjectStatus] = None
        self._snapshot = StoryboardSnapshot()
        self._refresh_count = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def status(self) -> Optional[ProjectStatus]:
        return self._status

    @property
    def refresh_count(self) -> int:
        return self._refresh_count

    @property
    def storyboard(self) -> StoryboardSnapshot:
        return self._snapshot

    @property
    def backoff(self) -> StorageBackoff:
        return self._backoff

    def prime(self) -> Optional[ProjectStatus]:
        """Load the current status without treating it as a change."""
        current = self._status_service.read(self.user_id, self.project_id)
        with self._lock:
            self._status = current
        return current

    def poll_once(self, now: Optional[float] = None) -> bool:
        """Read the status document; refresh once when a watched field changed."""

        try:
            current = self._status_service.read(self.user_id, self.project_id)
        except StudioError:
            logger.warning(
                "Unable to read project status",
                extra={"event": "monitor.status.error", "project_id": self.project_id},
                exc_info=True,
            )
            return False
        if current is None:
            return False

        with self._lock:
            previous = self._status
            changed = changed_fields(previous, current)
            if not changed:
                return False
            self._status = current

        logger.info(
            "Project status changed",
            extra={
                "event": "monitor.status.changed",
                "project_id": self.project_id,
                "status": current.current_status,
                "attributes": {"fields": list(changed)},
            },
        )
        self._busy.clear(self.project_id, IMAGE_SET)
        if (
            previous is not None
            and current.storyboard_status == STORYBOARD_COMPLETE
            and previous.storyboard_status != STORYBOARD_COMPLETE
        ):
            # Give the pipeline time to finish uploading the last files.
            self._sleep(self._settle_delay)
        self.refresh(now)
        return True

    def refresh(self, now: Optional[float] = None) -> bool:
        """Re-list storyboard artifacts unless storage is backing off."""

        now = self._clock() if now is None else now
        if not self._backoff.can_attempt(now):
            logger.debug(
                "Skipping storyboard refresh while storage is backing off",
                extra={
                    "event": "monitor.refresh.skipped",
                    "project_id": self.project_id,
                    "attributes": {"retry_in": self._backoff.seconds_until_retry(now)},
                },
            )
            return False

        try:
            objects = self._list_objects()
        except StorageError:
            delay = self._backoff.record_failure(now)
            logger.warning(
                "Storyboard listing failed; backing off",
                extra={
                    "event": "monitor.refresh.failed",
                    "project_id": self.project_id,
                    "attributes": {"delay_seconds": delay},
                },
            )
            return False

        self._backoff.record_success(now)
        snapshot = group_storyboard_files(
            objects,
            output_prefix=keys.output_prefix(self.user_id, self.project_id),
            cover_key=self._cover_key,
        )
        if self._load_text:
            for item in snapshot.items:
                if item.text_key:
                    try:
                        item.text = self._store.read_text(item.text_key)
                    except (NotFoundError, StorageError):
                        item.text = None
        with self._lock:
            self._snapshot = snapshot
            self._refresh_count += 1
        return True

    def _list_objects(self) -> list[StoredObject]:
        prefix = keys.project_prefix(self.user_id, self.project_id)
        attempt = 1
        while True:
            try:
                return self._store.list(prefix)
            except StorageError:
                if attempt >= LIST_ATTEMPTS:
                    raise
                attempt += 1

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"monitor-{self.project_id}", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        self.poll_once()
        while not self._stop.wait(self._poll_interval):
            self.poll_once()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            status = self._status.to_document() if self._status else None
            storyboard = self._snapshot
            refreshes = self._refresh_count
        state = self._backoff.state()
        return {
            "project_id": self.project_id,
            "status": status,
            "items": [asdict(item) for item in storyboard.items],
            "videos": list(storyboard.videos),
            "cover_key": storyboard.cover_key,
            "refresh_count": refreshes,
            "busy_images": sorted(
                self._busy.busy_items(self.project_id, IMAGE)
                | self._busy.busy_items(self.project_id, IMAGE_SET)
            ),
            "busy_audio": sorted(self._busy.busy_items(self.project_id, AUDIO)),
            "storage": {
                "available": state.available,
                "failures": state.failures,
                "delay_seconds": state.delay_seconds,
            },
        }


class ProjectMonitorRegistry:
    """One polling monitor per open ``(user_id, project_id)``."""

    def __init__(
        self,
        *,
        store: ObjectStore,
        status_service: StatusService,
        busy: BusySet,
        poll_interval: float = 5.0,
        settle_delay: float = 3.0,
        backoff_base: float = 1.0,
        backoff_max: float = 240.0,
    ) -> None:
        self._store = store
        self._status_service = status_service
        self._busy = busy
        self._poll_interval = poll_interval
        self._settle_delay = settle_delay
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._lock = threading.Lock()
        self._monitors: Dict[Tuple[str, str], ProjectMonitor] = {}

    def _build(self, user_id: str, project_id: str, cover_key: Optional[str]) -> ProjectMonitor:
        return ProjectMonitor(
            user_id,
            project_id,
            store=self._store,
            status_service=self._status_service,
            busy=self._busy,
            backoff=StorageBackoff(base_seconds=self._backoff_base, max_seconds=self._backoff_max),
            cover_key=cover_key,
            settle_delay=self._settle_delay,
            poll_interval=self._poll_interval,
        )

    def open(
        self,
        user_id: str,
        project_id: str,
        *,
        cover_key: Optional[str] = None,
        start: bool = True,
    ) -> ProjectMonitor:
        with self._lock:
            monitor = self._monitors.get((user_id, project_id))
            if monitor is None:
                monitor = self._build(user_id, project_id, cover_key)
                self._monitors[(user_id, project_id)] = monitor
        if start:
            monitor.start()
        return monitor

    def detached(
        self, user_id: str, project_id: str, *, cover_key: Optional[str] = None
    ) -> ProjectMonitor:
        """Return a monitor for a one-off read; it is not registered or started."""
        return self._build(user_id, project_id, cover_key)

    def get(self, user_id: str, project_id: str) -> Optional[ProjectMonitor]:
        with self._lock:
            return self._monitors.get((user_id, project_id))

    def close(self, user_id: str, project_id: str) -> bool:
        with self._lock:
            monitor = self._monitors.pop((user_id, project_id), None)
        if monitor is None:
            return False
        monitor.stop(timeout=self._poll_interval)
        self._busy.clear(project_id, IMAGE_SET)
        return True

    def close_all(self) -> None:
        with self._lock:
            monitors = list(self._monitors.values())
            self._monitors.clear()
        for monitor in monitors:
            monitor.stop(timeout=self._poll_interval)


__all__ = ["ProjectMonitor", "ProjectMonitorRegistry"]
