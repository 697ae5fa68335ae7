"""Read and write the per-project status document."""

from __future__ import annotations

import json
from typing import Optional

from .. import logging_manager
from ..errors import NotFoundError, StorageError
from ..pipeline.status import ProjectStatus
from ..storage import keys
from ..storage.object_store import ObjectStore

logger = logging_manager.get_logger().getChild("services.status")


class StatusService:
    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    def read(self, user_id: str, project_id: str) -> Optional[ProjectStatus]:
        """Return the current status or ``None`` when none was written yet."""
        key = keys.status_key(user_id, project_id)
        try:
            raw = self._store.read_text(key)
        except NotFoundError:
            return None
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise StorageError(f"Status document {key} is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise StorageError(f"Status document {key} must be a JSON object")
        return ProjectStatus.from_mapping(payload)

    def write(self, user_id: str, project_id: str, status: ProjectStatus) -> None:
        key = keys.status_key(user_id, project_id)
        self._store.write_text(
            key,
            json.dumps(status.to_document(), indent=2),
            content_type="application/json",
        )
        logger.info(
            "Project status updated",
            extra={
                "event": "status.write",
                "project_id": project_id,
                "status": status.current_status,
            },
        )


__all__ = ["StatusService"]
