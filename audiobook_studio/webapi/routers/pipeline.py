"""Routes proxying the remote command server."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ... import logging_manager
from ...errors import CommandServerTimeout, CommandServerUnavailable, PipelineCommandError
from ...services.pipeline_service import PipelineService
from ..dependencies import (
    RequestUserContext,
    StudioServices,
    get_pipeline_service,
    get_services,
    require_user,
)
from ..schemas.pipeline import RunCommandPayload, RunCommandResponse

router = APIRouter(prefix="/api", tags=["pipeline"])

logger = logging_manager.get_logger().getChild("webapi.pipeline")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/run-command", response_model=RunCommandResponse)
def run_command(
    payload: RunCommandPayload,
    user: RequestUserContext = Depends(require_user),
    pipeline: PipelineService = Depends(get_pipeline_service),
) -> RunCommandResponse:
    result = pipeline.run_command(
        payload.command, user_id=user.user_id, project_id=payload.project_id
    )
    return RunCommandResponse(
        output=result.output,
        error=result.error,
        returncode=result.returncode,
        task_id=result.task_id,
        status=result.status,
    )


@router.get("/task-status/{task_id}")
def task_status(
    task_id: str,
    user: RequestUserContext = Depends(require_user),
    pipeline: PipelineService = Depends(get_pipeline_service),
) -> dict:
    return pipeline.task_status(task_id)


@router.post("/cancel-task/{task_id}")
def cancel_task(
    task_id: str,
    user: RequestUserContext = Depends(require_user),
    pipeline: PipelineService = Depends(get_pipeline_service),
) -> dict:
    return pipeline.cancel_task(task_id)


def _unhealthy(status_code: int, remote_status: str, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "unhealthy",
            "application_status": "healthy",
            "remote_status": remote_status,
            "error": error,
            "timestamp": _timestamp(),
        },
    )


@router.get("/health")
def backend_health(services: StudioServices = Depends(get_services)):
    """Report the remote command server's health alongside this service's."""

    try:
        payload = services.command_client.health()
    except CommandServerTimeout:
        return _unhealthy(503, "timeout", "Remote server timeout")
    except CommandServerUnavailable:
        return _unhealthy(503, "unreachable", "Cannot connect to remote server")
    except PipelineCommandError as exc:
        logger.error(
            "Remote health check failed",
            extra={"event": "webapi.health.error", "attributes": {"error": str(exc)}},
        )
        return _unhealthy(500, "error", str(exc))
    return {**payload, "application_status": "healthy", "timestamp": _timestamp()}
