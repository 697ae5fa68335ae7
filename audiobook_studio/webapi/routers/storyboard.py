"""Routes for swapping storyboard images and narration tracks."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.project_service import ProjectService
from ...services.user_service import UserService
from ...storyboard.versions import ArtifactVersionService
from ..dependencies import (
    RequestUserContext,
    get_project_service,
    get_user_service,
    get_version_service,
    require_user,
)
from ..schemas.projects import StageRunResponse
from ..schemas.storyboard import (
    ArtifactKeyResponse,
    AudioTrackPayload,
    AudioTrackResponse,
    ImageActionResponse,
    PromoteImagePayload,
    VersionEntryResponse,
    VersionHistoryResponse,
)

router = APIRouter(prefix="/api/projects/{project_id}/storyboard", tags=["storyboard"])


@router.get("/items/{item}/image-action", response_model=ImageActionResponse)
def image_action(
    project_id: str,
    item: int,
    user: RequestUserContext = Depends(require_user),
    versions: ArtifactVersionService = Depends(get_version_service),
) -> ImageActionResponse:
    return ImageActionResponse(item=item, action=versions.image_action(user.user_id, project_id, item))


@router.post(
    "/items/{item}/image/replace",
    response_model=StageRunResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def replace_image(
    project_id: str,
    item: int,
    user: RequestUserContext = Depends(require_user),
    versions: ArtifactVersionService = Depends(get_version_service),
    users: UserService = Depends(get_user_service),
) -> StageRunResponse:
    """Archive the current images of ``item`` and regenerate them."""

    run = versions.replace_image(
        user.user_id,
        project_id,
        item,
        notify=users.notify_address(user.user_id, fallback=user.email),
    )
    return StageRunResponse(**run.to_dict())


@router.post("/items/{item}/image/restore", response_model=ArtifactKeyResponse)
def restore_image(
    project_id: str,
    item: int,
    user: RequestUserContext = Depends(require_user),
    versions: ArtifactVersionService = Depends(get_version_service),
) -> ArtifactKeyResponse:
    return ArtifactKeyResponse(item=item, key=versions.restore_image(user.user_id, project_id, item))


@router.post("/items/{item}/image/promote", response_model=ArtifactKeyResponse)
def promote_image(
    project_id: str,
    item: int,
    payload: PromoteImagePayload,
    user: RequestUserContext = Depends(require_user),
    versions: ArtifactVersionService = Depends(get_version_service),
) -> ArtifactKeyResponse:
    key = versions.promote_saved_image(user.user_id, project_id, item, payload.version)
    return ArtifactKeyResponse(item=item, key=key)


@router.post(
    "/items/{item}/audio/regenerate",
    response_model=StageRunResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def regenerate_audio(
    project_id: str,
    item: int,
    user: RequestUserContext = Depends(require_user),
    versions: ArtifactVersionService = Depends(get_version_service),
    users: UserService = Depends(get_user_service),
) -> StageRunResponse:
    run = versions.regenerate_audio(
        user.user_id,
        project_id,
        item,
        notify=users.notify_address(user.user_id, fallback=user.email),
    )
    return StageRunResponse(**run.to_dict())


@router.get("/items/{item}/audio/track", response_model=AudioTrackResponse)
def get_audio_track(
    project_id: str,
    item: int,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
    versions: ArtifactVersionService = Depends(get_version_service),
) -> AudioTrackResponse:
    projects.get_project(user.user_id, project_id)
    return AudioTrackResponse(item=item, active_track=versions.active_track(project_id, item))


@router.put("/items/{item}/audio/track", response_model=AudioTrackResponse)
def select_audio_track(
    project_id: str,
    item: int,
    payload: AudioTrackPayload,
    user: RequestUserContext = Depends(require_user),
    versions: ArtifactVersionService = Depends(get_version_service),
) -> AudioTrackResponse:
    track = versions.select_audio_track(user.user_id, project_id, item, payload.track)
    return AudioTrackResponse(item=item, active_track=track)


@router.get("/history", response_model=VersionHistoryResponse)
def version_history(
    project_id: str,
    item: int | None = None,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
    versions: ArtifactVersionService = Depends(get_version_service),
) -> VersionHistoryResponse:
    projects.get_project(user.user_id, project_id)
    entries = [VersionEntryResponse(**e.to_dict()) for e in versions.history(project_id, item)]
    return VersionHistoryResponse(project_id=project_id, entries=entries)
