"""Per-item busy flags guarding concurrent storyboard actions."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Set, Tuple

from ..errors import ItemBusyError

BusyKey = Tuple[str, str, int]

# Image swaps (restore, promote) and audio swaps hold their flag for the duration
# of the call. A replaced image set stays flagged until the pipeline reports a
# status change.
IMAGE = "image"
IMAGE_SET = "image_set"
AUDIO = "audio"


class BusySet:
    """Thread-safe set of ``(project_id, kind, item_number)`` keys."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys: Set[BusyKey] = set()

    def try_acquire(self, project_id: str, kind: str, item: int) -> bool:
        key = (project_id, kind, item)
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def acquire(self, project_id: str, kind: str, item: int) -> None:
        if not self.try_acquire(project_id, kind, item):
            raise ItemBusyError(f"{kind.capitalize()} {item} is already being processed.")

    def release(self, project_id: str, kind: str, item: int) -> None:
        with self._lock:
            self._keys.discard((project_id, kind, item))

    def is_busy(self, project_id: str, kind: str, item: int) -> bool:
        with self._lock:
            return (project_id, kind, item) in self._keys

    def clear(self, project_id: str, kind: str | None = None) -> None:
        """Drop every flag of ``project_id`` (optionally only one ``kind``)."""
        with self._lock:
            self._keys = {
                key
                for key in self._keys
                if key[0] != project_id or (kind is not None and key[1] != kind)
            }

    def busy_items(self, project_id: str, kind: str) -> Set[int]:
        with self._lock:
            return {key[2] for key in self._keys if key[0] == project_id and key[1] == kind}

    @contextmanager
    def hold(self, project_id: str, kind: str, item: int) -> Iterator[None]:
        self.acquire(project_id, kind, item)
        try:
            yield
        finally:
            self.release(project_id, kind, item)


__all__ = ["AUDIO", "IMAGE", "IMAGE_SET", "BusySet"]
