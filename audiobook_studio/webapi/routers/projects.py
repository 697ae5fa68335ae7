"""Routes for project lifecycle, pipeline stages and status monitoring."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ...errors import NotFoundError
from ...pipeline.status import PipelineStage
from ...services.pipeline_service import PipelineService
from ...services.project_monitor import ProjectMonitorRegistry
from ...services.project_service import ProjectService
from ...services.pronunciation_service import PronunciationService
from ...services.user_service import UserService
from ..dependencies import (
    RequestUserContext,
    get_monitor_registry,
    get_pipeline_service,
    get_project_service,
    get_pronunciation_service,
    get_user_service,
    require_user,
)
from ..schemas.projects import (
    MonitorSnapshotResponse,
    ProjectDeleteResponse,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdatePayload,
    StageRunResponse,
    VoiceSelectionPayload,
)

router = APIRouter(prefix="/api/projects", tags=["projects"])


def _notify_address(user: RequestUserContext, users: UserService) -> str:
    return users.notify_address(user.user_id or "", fallback=user.email)


@router.get("", response_model=ProjectListResponse)
def list_projects(
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
) -> ProjectListResponse:
    records = projects.list_projects(user.user_id)
    return ProjectListResponse(projects=[ProjectResponse(**r.to_dict()) for r in records])


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_name: str = Form(...),
    book_title: str = Form(...),
    author_name: str | None = Form(default=None),
    description: str | None = Form(default=None),
    epub_file: UploadFile = File(...),
    cover_file: UploadFile | None = File(default=None),
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
    users: UserService = Depends(get_user_service),
) -> ProjectResponse:
    """Upload an EPUB (and optional cover) and register a new project."""

    epub_data = await epub_file.read()
    cover_data = await cover_file.read() if cover_file is not None else None
    record = projects.create_project(
        user.user_id,
        project_name=project_name,
        book_title=book_title,
        author_name=author_name,
        description=description,
        epub_filename=epub_file.filename or "",
        epub_data=epub_data,
        cover_filename=cover_file.filename if cover_file is not None else None,
        cover_data=cover_data,
        notify=_notify_address(user, users),
    )
    return ProjectResponse(**record.to_dict())


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: str,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    return ProjectResponse(**projects.get_project(user.user_id, project_id).to_dict())


@router.patch("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: str,
    payload: ProjectUpdatePayload,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    changes = payload.model_dump(exclude_unset=True)
    record = projects.update_project(user.user_id, project_id, **changes)
    return ProjectResponse(**record.to_dict())


@router.delete("/{project_id}", response_model=ProjectDeleteResponse)
def delete_project(
    project_id: str,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
    pronunciation: PronunciationService = Depends(get_pronunciation_service),
    monitors: ProjectMonitorRegistry = Depends(get_monitor_registry),
) -> ProjectDeleteResponse:
    projects.get_project(user.user_id, project_id)
    monitors.close(user.user_id, project_id)
    removed = projects.delete_project(
        user.user_id, project_id, remove_rules=pronunciation.remove_project_rules
    )
    return ProjectDeleteResponse(deleted=True, project_id=project_id, objects_removed=removed)


@router.put("/{project_id}/voice", response_model=ProjectResponse)
def select_voice(
    project_id: str,
    payload: VoiceSelectionPayload,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    record = projects.select_voice(
        user.user_id, project_id, voice_id=payload.voice_id, voice_name=payload.voice_name
    )
    return ProjectResponse(**record.to_dict())


@router.get("/{project_id}/status")
def get_status(
    project_id: str,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
    pipeline: PipelineService = Depends(get_pipeline_service),
) -> dict:
    projects.get_project(user.user_id, project_id)
    current = pipeline.status_service.read(user.user_id, project_id)
    if current is None:
        raise NotFoundError(f"Status for project {project_id} not found")
    return current.to_document()


@router.post(
    "/{project_id}/stages/{stage}",
    response_model=StageRunResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def run_stage(
    project_id: str,
    stage: PipelineStage,
    user: RequestUserContext = Depends(require_user),
    pipeline: PipelineService = Depends(get_pipeline_service),
    users: UserService = Depends(get_user_service),
) -> StageRunResponse:
    """Start one pipeline stage and watch it in the background."""

    run = pipeline.run_stage(
        user.user_id, project_id, stage, notify=_notify_address(user, users)
    )
    return StageRunResponse(**run.to_dict())


@router.post(
    "/{project_id}/production",
    response_model=StageRunResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def activate_production(
    project_id: str,
    user: RequestUserContext = Depends(require_user),
    pipeline: PipelineService = Depends(get_pipeline_service),
    users: UserService = Depends(get_user_service),
) -> StageRunResponse:
    run = pipeline.activate_production(
        user.user_id, project_id, notify=_notify_address(user, users)
    )
    return StageRunResponse(**run.to_dict())


@router.post("/{project_id}/monitor", response_model=MonitorSnapshotResponse)
def open_monitor(
    project_id: str,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
    monitors: ProjectMonitorRegistry = Depends(get_monitor_registry),
) -> MonitorSnapshotResponse:
    """Start polling the project's status for as long as it is open."""

    project = projects.get_project(user.user_id, project_id)
    monitor = monitors.open(user.user_id, project_id, cover_key=project.cover_file_path)
    return MonitorSnapshotResponse(**monitor.snapshot())


@router.delete("/{project_id}/monitor", status_code=status.HTTP_204_NO_CONTENT)
def close_monitor(
    project_id: str,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
    monitors: ProjectMonitorRegistry = Depends(get_monitor_registry),
) -> None:
    projects.get_project(user.user_id, project_id)
    monitors.close(user.user_id, project_id)


@router.get("/{project_id}/storyboard", response_model=MonitorSnapshotResponse)
def get_storyboard(
    project_id: str,
    refresh: bool = False,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
    monitors: ProjectMonitorRegistry = Depends(get_monitor_registry),
) -> MonitorSnapshotResponse:
    """Return the grouped storyboard; ``refresh`` forces a new listing."""

    project = projects.get_project(user.user_id, project_id)
    monitor = monitors.get(user.user_id, project_id)
    if monitor is None:
        monitor = monitors.detached(user.user_id, project_id, cover_key=project.cover_file_path)
        monitor.prime()
    if refresh or monitor.refresh_count == 0:
        monitor.refresh()
    snapshot = monitor.snapshot()
    for item in snapshot["items"]:
        item["image"]["action"] = "restore" if item["image"].get("oldset_key") else "replace"
    return MonitorSnapshotResponse(**snapshot)
