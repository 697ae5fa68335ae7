"""Routes handing out temporary links to stored artifacts."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query

from ...errors import AccessDenied
from ..dependencies import RequestUserContext, StudioServices, get_services, require_user
from ..schemas.system import SignedUrlResponse

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/signed-url", response_model=SignedUrlResponse)
def signed_url(
    path: str = Query(min_length=1),
    expires_in: int | None = Query(default=None, alias="expiresIn", ge=1, le=7 * 24 * 3600),
    user: RequestUserContext = Depends(require_user),
    services: StudioServices = Depends(get_services),
) -> SignedUrlResponse:
    """Return a time-limited URL for an object owned by the caller."""

    key = path.lstrip("/")
    expires_in = expires_in or services.settings.signed_url_ttl_seconds
    if not key.startswith(f"{user.user_id}/"):
        raise AccessDenied("You do not have permission to access this file.")
    url = services.store.signed_url(key, expires_in=expires_in)
    return SignedUrlResponse(
        signed_url=url,
        path=key,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    )
