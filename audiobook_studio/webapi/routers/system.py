"""Routes for admin notifications and user profiles."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...errors import NotFoundError
from ...services.notification_service import NotificationService
from ...services.user_service import UserService
from ..dependencies import (
    RequestUserContext,
    get_notification_service,
    get_user_service,
    require_user,
)
from ..schemas.system import NotifyAdminPayload, UserProfilePayload, UserProfileResponse

router = APIRouter(prefix="/api", tags=["system"])


@router.post("/notify-admin")
def notify_admin(
    payload: NotifyAdminPayload,
    user: RequestUserContext = Depends(require_user),
    notifications: NotificationService = Depends(get_notification_service),
) -> dict:
    entry = notifications.notify_admin(
        payload.issue,
        details=payload.details,
        project_id=payload.project_id,
        user_id=user.user_id,
        user_email=user.email,
        timestamp=payload.timestamp,
    )
    return {"success": True, "id": entry.id}


@router.get("/users/profile", response_model=UserProfileResponse)
def get_profile(
    user: RequestUserContext = Depends(require_user),
    users: UserService = Depends(get_user_service),
) -> UserProfileResponse:
    profile = users.get_profile(user.user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return UserProfileResponse(**profile)


@router.put("/users/profile", response_model=UserProfileResponse)
def save_profile(
    payload: UserProfilePayload,
    user: RequestUserContext = Depends(require_user),
    users: UserService = Depends(get_user_service),
) -> UserProfileResponse:
    profile = users.upsert_profile(user.user_id, **payload.model_dump(exclude_unset=True))
    return UserProfileResponse(**profile)
