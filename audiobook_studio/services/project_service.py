"""Project lifecycle: upload, metadata edits, voice and mode, deletion."""

from __future__ import annotations

import posixpath
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import and_, delete, select

from .. import logging_manager
from ..database.engine import get_db_session
from ..database.models import (
    ArtifactVersionModel,
    CommandLogModel,
    MasterDictionaryEntryModel,
    ProjectModel,
)
from ..errors import InvalidRequest, NotFoundError, StudioError, validation_message
from ..pipeline.commands import VALID_MODES
from ..pipeline.status import ProjectStatus
from ..storage import keys
from ..storage.object_store import ObjectStore
from .status_service import StatusService

logger = logging_manager.get_logger().getChild("services.projects")

EDITABLE_FIELDS = ("project_name", "book_title", "author_name", "description")


@dataclass(frozen=True)
class ProjectRecord:
    id: str
    user_id: str
    project_name: str
    book_title: str
    author_name: Optional[str]
    description: Optional[str]
    epub_file_path: Optional[str]
    cover_file_path: Optional[str]
    status: str
    current_mode: str
    voice_id: Optional[str]
    voice_name: Optional[str]
    pls_dict_name: Optional[str]
    pls_dict_file: Optional[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def epub_filename(self) -> str:
        return posixpath.basename(self.epub_file_path or "")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ProjectService:
    """Manage projects stored in the ``projects`` table and their files."""

    def __init__(self, store: ObjectStore, status_service: StatusService) -> None:
        self._store = store
        self._status = status_service

    def create_project(
        self,
        user_id: str,
        *,
        project_name: str,
        book_title: str,
        epub_filename: str,
        epub_data: bytes,
        author_name: Optional[str] = None,
        description: Optional[str] = None,
        cover_filename: Optional[str] = None,
        cover_data: Optional[bytes] = None,
        notify: str = "",
    ) -> ProjectRecord:
        """Register a project, write its initial status and upload its files."""

        project_name = (project_name or "").strip()
        book_title = (book_title or "").strip()
        if not project_name:
            raise InvalidRequest(validation_message("project_name"))
        if not book_title:
            raise InvalidRequest(validation_message("book_title"))
        epub_name = self._safe_filename(epub_filename)
        if not epub_name.lower().endswith(".epub") or not epub_data:
            raise InvalidRequest(validation_message("epub_file"))

        project_id = uuid.uuid4().hex
        with get_db_session() as session:
            session.add(
                ProjectModel(
                    id=project_id,
                    user_id=user_id,
                    project_name=project_name,
                    book_title=book_title,
                    author_name=self._coerce_string(author_name),
                    description=self._coerce_string(description),
                    status="pending",
                    current_mode="validation",
                )
            )

        try:
            self._status.write(
                user_id,
                project_id,
                ProjectStatus.initial(
                    project=project_name,
                    book=book_title,
                    notify=notify,
                    user_id=user_id,
                    project_id=project_id,
                ),
            )
            epub_key = keys.project_key(user_id, project_id, epub_name)
            self._store.write_bytes(epub_key, epub_data, content_type="application/epub+zip")
            cover_key = None
            if cover_filename and cover_data:
                cover_key = keys.project_key(user_id, project_id, self._safe_filename(cover_filename))
                self._store.write_bytes(cover_key, cover_data)
        except StudioError:
            logger.error(
                "Project upload failed; rolling back",
                extra={"event": "projects.create.failed", "project_id": project_id, "user_id": user_id},
                exc_info=True,
            )
            self._store.delete_prefix(keys.project_prefix(user_id, project_id))
            with get_db_session() as session:
                session.execute(delete(ProjectModel).where(ProjectModel.id == project_id))
            raise

        with get_db_session() as session:
            model = session.get(ProjectModel, project_id)
            model.epub_file_path = epub_key
            model.cover_file_path = cover_key
            model.status = "ready"
            session.flush()
            record = self._model_to_record(model)

        logger.info(
            "Project created",
            extra={"event": "projects.create", "project_id": project_id, "user_id": user_id},
        )
        return record

    def list_projects(self, user_id: str) -> List[ProjectRecord]:
        with get_db_session() as session:
            models = (
                session.execute(
                    select(ProjectModel)
                    .where(ProjectModel.user_id == user_id)
                    .order_by(ProjectModel.created_at.desc())
                )
                .scalars()
                .all()
            )
            return [self._model_to_record(m) for m in models]

    def get_project(self, user_id: str, project_id: str) -> ProjectRecord:
        with get_db_session() as session:
            return self._model_to_record(self._load(session, user_id, project_id))

    def update_project(self, user_id: str, project_id: str, **changes: Any) -> ProjectRecord:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidRequest(f"Unsupported project fields: {', '.join(sorted(unknown))}")
        for required in ("project_name", "book_title"):
            if required in changes and not self._coerce_string(changes[required]):
                raise InvalidRequest(validation_message(required))
        return self._mutate(
            user_id,
            project_id,
            {name: self._coerce_string(value) for name, value in changes.items()},
        )

    def select_voice(
        self, user_id: str, project_id: str, *, voice_id: str, voice_name: str
    ) -> ProjectRecord:
        if not voice_id or not voice_name:
            raise InvalidRequest("A voice must be selected.")
        return self._mutate(user_id, project_id, {"voice_id": voice_id, "voice_name": voice_name})

    def set_mode(self, user_id: str, project_id: str, mode: str) -> ProjectRecord:
        if mode not in VALID_MODES:
            raise InvalidRequest(f"Unknown mode: {mode}")
        return self._mutate(user_id, project_id, {"current_mode": mode})

    def set_dictionary(
        self, user_id: str, project_id: str, *, name: str, file_key: str
    ) -> ProjectRecord:
        return self._mutate(user_id, project_id, {"pls_dict_name": name, "pls_dict_file": file_key})

    def delete_project(
        self,
        user_id: str,
        project_id: str,
        *,
        remove_rules: Optional[Callable[[str, str], Any]] = None,
    ) -> int:
        """Delete a project with its storage keys and related rows.

        Returns the number of storage objects removed.
        """

        self.get_project(user_id, project_id)
        if remove_rules is not None:
            try:
                remove_rules(user_id, project_id)
            except StudioError:
                logger.warning(
                    "Unable to remove pronunciation rules for project",
                    extra={"event": "projects.delete.rules_failed", "project_id": project_id},
                    exc_info=True,
                )

        removed = self._store.delete_prefix(keys.project_prefix(user_id, project_id))

        with get_db_session() as session:
            session.execute(
                delete(ArtifactVersionModel).where(ArtifactVersionModel.project_id == project_id)
            )
            session.execute(
                delete(MasterDictionaryEntryModel).where(
                    and_(
                        MasterDictionaryEntryModel.user_id == user_id,
                        MasterDictionaryEntryModel.project_id == project_id,
                    )
                )
            )
            session.execute(
                delete(CommandLogModel).where(
                    and_(
                        CommandLogModel.user_id == user_id,
                        CommandLogModel.project_id == project_id,
                    )
                )
            )
            session.execute(
                delete(ProjectModel).where(
                    and_(ProjectModel.id == project_id, ProjectModel.user_id == user_id)
                )
            )

        logger.info(
            "Project deleted",
            extra={
                "event": "projects.delete",
                "project_id": project_id,
                "user_id": user_id,
                "attributes": {"objects_removed": removed},
            },
        )
        return removed

    def _mutate(self, user_id: str, project_id: str, values: Dict[str, Any]) -> ProjectRecord:
        with get_db_session() as session:
            model = self._load(session, user_id, project_id)
            for name, value in values.items():
                setattr(model, name, value)
            session.flush()
            return self._model_to_record(model)

    @staticmethod
    def _load(session, user_id: str, project_id: str) -> ProjectModel:
        model = session.execute(
            select(ProjectModel).where(
                and_(ProjectModel.id == project_id, ProjectModel.user_id == user_id)
            )
        ).scalar_one_or_none()
        if model is None:
            raise NotFoundError(f"Project {project_id} not found")
        return model

    @staticmethod
    def _model_to_record(model: ProjectModel) -> ProjectRecord:
        return ProjectRecord(
            id=model.id,
            user_id=model.user_id,
            project_name=model.project_name,
            book_title=model.book_title,
            author_name=model.author_name,
            description=model.description,
            epub_file_path=model.epub_file_path,
            cover_file_path=model.cover_file_path,
            status=model.status,
            current_mode=model.current_mode,
            voice_id=model.voice_id,
            voice_name=model.voice_name,
            pls_dict_name=model.pls_dict_name,
            pls_dict_file=model.pls_dict_file,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _safe_filename(value: Optional[str]) -> str:
        name = posixpath.basename((value or "").replace("\\", "/")).strip()
        return name

    @staticmethod
    def _coerce_string(value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        trimmed = value.strip()
        return trimmed or None


__all__ = ["ProjectRecord", "ProjectService"]
