"""User profile storage."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from .. import logging_manager
from ..database.engine import get_db_session
from ..database.models import UserProfileModel
from ..errors import InvalidRequest

logger = logging_manager.get_logger().getChild("services.users")

PROFILE_FIELDS = ("email", "first_name", "last_name", "phone_number", "date_of_birth")


class UserService:
    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            model = session.get(UserProfileModel, user_id)
            return self._model_to_dict(model) if model is not None else None

    def upsert_profile(self, user_id: str, **fields: Any) -> Dict[str, Any]:
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise InvalidRequest(f"Unsupported profile fields: {', '.join(sorted(unknown))}")
        if "date_of_birth" in fields:
            fields["date_of_birth"] = self._coerce_date(fields["date_of_birth"])
        with get_db_session() as session:
            model = session.get(UserProfileModel, user_id)
            if model is None:
                model = UserProfileModel(id=user_id)
                session.add(model)
            for name, value in fields.items():
                setattr(model, name, value)
            session.flush()
            profile = self._model_to_dict(model)
        logger.info("User profile saved", extra={"event": "users.profile.save", "user_id": user_id})
        return profile

    def notify_address(self, user_id: str, fallback: Optional[str] = None) -> str:
        profile = self.get_profile(user_id)
        if profile and profile.get("email"):
            return str(profile["email"])
        return fallback or ""

    @staticmethod
    def _coerce_date(value: Any) -> Optional[date]:
        if value in (None, ""):
            return None
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value))
        except ValueError as exc:
            raise InvalidRequest("Date of birth must use the YYYY-MM-DD format.") from exc

    @staticmethod
    def _model_to_dict(model: UserProfileModel) -> Dict[str, Any]:
        return {
            "id": model.id,
            "email": model.email,
            "first_name": model.first_name,
            "last_name": model.last_name,
            "phone_number": model.phone_number,
            "date_of_birth": model.date_of_birth.isoformat() if model.date_of_birth else None,
        }


__all__ = ["UserService"]
