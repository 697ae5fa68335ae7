"""Trigger remote pipeline stages and follow them to completion."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from .. import logging_manager
from ..config import StudioSettings
from ..database.engine import get_db_session
from ..database.models import CommandLogModel
from ..errors import ModeChangeNotAllowed, PipelineCommandError
from ..integrations.command_client import CommandResult, CommandServerClient
from ..pipeline.commands import build_pipeline_command
from ..pipeline.status import AUDIOBOOK_COMPLETE, PipelineStage, ProjectStatus
from .completion_watcher import CompletionWatcher, CompletionWatcherPool
from .project_service import ProjectRecord, ProjectService
from .status_service import StatusService

logger = logging_manager.get_logger().getChild("services.pipeline")


@dataclass
class StageRun:
    stage: PipelineStage
    command: str
    result: CommandResult
    watcher: Optional[CompletionWatcher] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "command": self.command,
            "output": self.result.output,
            "error": self.result.error,
            "returncode": self.result.returncode,
            "task_id": self.result.task_id,
            "status": self.result.status,
        }


class PipelineService:
    """Build stage commands, submit them and watch for completion."""

    def __init__(
        self,
        client: CommandServerClient,
        projects: ProjectService,
        status_service: StatusService,
        watchers: CompletionWatcherPool,
        settings: StudioSettings,
    ) -> None:
        self._client = client
        self._projects = projects
        self._status = status_service
        self._watchers = watchers
        self._settings = settings

    @property
    def status_service(self) -> StatusService:
        return self._status

    def build_command(self, project: ProjectRecord, stage: PipelineStage) -> str:
        return build_pipeline_command(
            stage,
            epub_filename=project.epub_filename,
            user_id=project.user_id,
            project_id=project.id,
            author=project.author_name or "",
            title=project.book_title,
            voice_name=project.voice_name or "",
            mode=project.current_mode,
            dictionary_name=project.pls_dict_name,
            limit=self._settings.limit_for_mode(project.current_mode),
            script=self._settings.pipeline_script,
        )

    def run_stage(
        self,
        user_id: str,
        project_id: str,
        stage: PipelineStage,
        *,
        notify: str = "",
        on_complete: Optional[Callable[[], None]] = None,
        on_finish: Optional[Callable[[str], None]] = None,
    ) -> StageRun:
        """Mark ``stage`` as processing, submit it and start a watcher.

        ``on_finish`` runs when the watcher stops, or right away when the
        command could not be submitted.
        """

        stage = PipelineStage(stage)
        try:
            project = self._projects.get_project(user_id, project_id)
            current = self._status.read(user_id, project_id) or ProjectStatus.initial(
                project=project.project_name,
                book=project.book_title,
                notify=notify,
                user_id=user_id,
                project_id=project_id,
            )
            if notify and not current.notify:
                current = current.model_copy(update={"notify": notify})
            self._status.write(user_id, project_id, current.for_stage(stage))

            command = self.build_command(project, stage)
            result = self.run_command(command, user_id=user_id, project_id=project_id)
            if result.returncode not in (None, 0):
                raise PipelineCommandError(result.error or "Remote command failed")
        except Exception:
            if on_finish is not None:
                on_finish("error")
            raise

        watcher = self._watchers.watch(
            lambda: self.is_stage_complete(user_id, project_id, stage),
            on_complete=on_complete,
            on_finish=on_finish,
            name=f"watch-{project_id}-{stage.value}",
        )
        logger.info(
            "Pipeline stage started",
            extra={
                "event": "pipeline.stage.start",
                "project_id": project_id,
                "user_id": user_id,
                "stage": stage.value,
            },
        )
        return StageRun(stage=stage, command=command, result=result, watcher=watcher)

    def run_command(
        self,
        command: str,
        *,
        user_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> CommandResult:
        result = self._client.run_command(command)
        self._log_command(command, result, user_id=user_id, project_id=project_id)
        return result

    def activate_production(self, user_id: str, project_id: str, *, notify: str = "") -> StageRun:
        """Switch to production mode and rerun the storyboard for the full book."""

        status = self._status.read(user_id, project_id)
        if status is None or status.audiobook_status != AUDIOBOOK_COMPLETE:
            raise ModeChangeNotAllowed(
                "Production mode is available once the validation audiobook is complete."
            )
        self._projects.set_mode(user_id, project_id, "production")
        logger.info(
            "Production mode activated",
            extra={"event": "pipeline.mode.production", "project_id": project_id},
        )
        return self.run_stage(user_id, project_id, PipelineStage.STORYBOARD, notify=notify)

    def is_stage_complete(self, user_id: str, project_id: str, stage: PipelineStage) -> bool:
        status = self._status.read(user_id, project_id)
        return bool(status and status.is_complete(stage))

    def task_status(self, task_id: str) -> Dict[str, Any]:
        return self._client.task_status(task_id)

    def cancel_task(self, task_id: str) -> Dict[str, Any]:
        return self._client.cancel_task(task_id)

    def _log_command(
        self,
        command: str,
        result: CommandResult,
        *,
        user_id: Optional[str],
        project_id: Optional[str],
    ) -> None:
        """Record the command in ``command_logs``; failures are only logged."""

        finished = result.returncode is not None
        try:
            with get_db_session() as session:
                session.add(
                    CommandLogModel(
                        user_id=user_id,
                        project_id=project_id,
                        command=command,
                        task_id=result.task_id,
                        status=(
                            ("completed" if result.returncode == 0 else "failed")
                            if finished
                            else (result.status or "submitted")
                        ),
                        returncode=result.returncode,
                        ended_at=datetime.now(timezone.utc) if finished else None,
                    )
                )
        except SQLAlchemyError:
            logger.warning(
                "Unable to record command log",
                extra={"event": "pipeline.command_log.failed", "project_id": project_id},
                exc_info=True,
            )


__all__ = ["PipelineService", "StageRun"]
