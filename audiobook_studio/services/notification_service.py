"""Admin notifications stored in ``system_notifications``."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from .. import logging_manager
from ..database.engine import get_db_session
from ..database.models import SystemNotificationModel

logger = logging_manager.get_logger().getChild("services.notifications")


@dataclass(frozen=True)
class NotificationEntry:
    id: int
    issue: str
    details: Any
    project_id: Optional[str]
    user_id: Optional[str]
    user_email: Optional[str]
    admin_email: Optional[str]
    status: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "issue": self.issue,
            "details": self.details,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "admin_email": self.admin_email,
            "status": self.status,
            "created_at": self.created_at,
        }


class NotificationService:
    def __init__(self, admin_email: str) -> None:
        self._admin_email = admin_email

    def notify_admin(
        self,
        issue: str,
        *,
        details: Any = None,
        project_id: Optional[str] = None,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> NotificationEntry:
        """Record an issue for the administrator and log the alert."""

        message = (
            f"Issue: {issue}\nDetails: {details}\nUser: {user_email or user_id}\n"
            f"Project: {project_id}\nTime: {timestamp or datetime.now(timezone.utc).isoformat()}"
        )
        with get_db_session() as session:
            model = SystemNotificationModel(
                issue=issue,
                details=details,
                project_id=project_id,
                user_id=user_id,
                user_email=user_email,
                admin_email=self._admin_email,
                status="new",
                message=message,
            )
            session.add(model)
            session.flush()
            entry = self._model_to_entry(model)

        logger.warning(
            "Admin notification recorded: %s",
            issue,
            extra={
                "event": "notifications.admin",
                "project_id": project_id,
                "user_id": user_id,
                "attributes": {"notification_id": entry.id, "admin_email": self._admin_email},
            },
        )
        return entry

    def list_notifications(self, *, limit: int = 50) -> List[NotificationEntry]:
        with get_db_session() as session:
            models = (
                session.execute(
                    select(SystemNotificationModel)
                    .order_by(SystemNotificationModel.id.desc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [self._model_to_entry(m) for m in models]

    @staticmethod
    def _model_to_entry(model: SystemNotificationModel) -> NotificationEntry:
        return NotificationEntry(
            id=model.id,
            issue=model.issue,
            details=model.details,
            project_id=model.project_id,
            user_id=model.user_id,
            user_email=model.user_email,
            admin_email=model.admin_email,
            status=model.status,
            created_at=model.created_at,
        )


__all__ = ["NotificationEntry", "NotificationService"]
