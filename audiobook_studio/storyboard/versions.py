"""Swap, archive and restore storyboard artifacts with recorded history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import and_, select

from .. import logging_manager
from ..database.engine import get_db_session
from ..database.models import ArtifactVersionModel
from ..errors import InvalidRequest, NotFoundError
from ..pipeline.status import PipelineStage
from ..storage import keys
from ..storage.object_store import ObjectStore
from .busy import AUDIO, IMAGE, IMAGE_SET, BusySet
from .grouping import StoryboardItem, group_storyboard_files

if TYPE_CHECKING:
    from ..services.pipeline_service import PipelineService, StageRun

logger = logging_manager.get_logger().getChild("storyboard.versions")


@dataclass(frozen=True)
class VersionEntry:
    id: int
    project_id: str
    item_number: int
    kind: str
    action: str
    source_key: Optional[str]
    archived_key: Optional[str]
    active_track: Optional[int]
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "item_number": self.item_number,
            "kind": self.kind,
            "action": self.action,
            "source_key": self.source_key,
            "archived_key": self.archived_key,
            "active_track": self.active_track,
            "created_at": self.created_at,
        }


class ArtifactVersionService:
    """Image and narration version operations for one storyboard item."""

    def __init__(
        self,
        store: ObjectStore,
        busy: BusySet,
        pipeline: "PipelineService",
    ) -> None:
        self._store = store
        self._busy = busy
        self._pipeline = pipeline

    # Lookup -----------------------------------------------------------------

    def load_item(self, user_id: str, project_id: str, number: int) -> StoryboardItem:
        snapshot = group_storyboard_files(self._store.list(keys.temp_prefix(user_id, project_id)))
        item = snapshot.item(number)
        if item is None:
            raise NotFoundError(f"Storyboard item {number} not found")
        return item

    def image_action(self, user_id: str, project_id: str, number: int) -> str:
        return self.load_item(user_id, project_id, number).image.action

    def active_track(self, project_id: str, number: int) -> int:
        with get_db_session() as session:
            track = session.execute(
                select(ArtifactVersionModel.active_track)
                .where(
                    and_(
                        ArtifactVersionModel.project_id == project_id,
                        ArtifactVersionModel.kind == AUDIO,
                        ArtifactVersionModel.item_number == number,
                        ArtifactVersionModel.active_track.is_not(None),
                    )
                )
                .order_by(ArtifactVersionModel.id.desc())
                .limit(1)
            ).scalar_one_or_none()
        return int(track) if track else 1

    def history(self, project_id: str, number: Optional[int] = None) -> List[VersionEntry]:
        query = select(ArtifactVersionModel).where(ArtifactVersionModel.project_id == project_id)
        if number is not None:
            query = query.where(ArtifactVersionModel.item_number == number)
        with get_db_session() as session:
            models = session.execute(query.order_by(ArtifactVersionModel.id.asc())).scalars().all()
            return [self._model_to_entry(m) for m in models]

    # Images -----------------------------------------------------------------

    def replace_image(
        self, user_id: str, project_id: str, number: int, *, notify: str = ""
    ) -> "StageRun":
        """Archive the current image set and ask the pipeline for new images."""

        self._busy.acquire(project_id, IMAGE_SET, number)
        released = False

        def _release(_outcome: str) -> None:
            self._busy.release(project_id, IMAGE_SET, number)

        try:
            item = self.load_item(user_id, project_id, number)
            if not item.image.key:
                raise NotFoundError(f"Image {number} not found")
            if item.image.oldset_key:
                raise InvalidRequest(f"Image {number} already has an archived set; restore it first.")
            archived = keys.archived_image_key(item.image.key)
            with self._busy.hold(project_id, IMAGE, number):
                self._store.copy(item.image.key, archived)
                self._store.delete(item.image.key)
            self._record(project_id, number, IMAGE, "replace", item.image.key, archived)
            released = True
            return self._pipeline.run_stage(
                user_id, project_id, PipelineStage.STORYBOARD, notify=notify, on_finish=_release
            )
        except Exception:
            if not released:
                self._busy.release(project_id, IMAGE_SET, number)
            raise

    def restore_image(self, user_id: str, project_id: str, number: int) -> str:
        with self._busy.hold(project_id, IMAGE, number):
            item = self.load_item(user_id, project_id, number)
            archived = item.image.oldset_key
            if not archived:
                raise NotFoundError(f"No archived image set for item {number}")
            target = item.image.key or archived[: -len(keys.OLDSET_SUFFIX)]
            self._store.copy(archived, target)
            self._store.delete(archived)
            self._record(project_id, number, IMAGE, "restore", archived, target)
            return target

    def promote_saved_image(self, user_id: str, project_id: str, number: int, version: int) -> str:
        """Swap the main image with its ``_sbsave{version}`` variant."""

        with self._busy.hold(project_id, IMAGE, number):
            item = self.load_item(user_id, project_id, number)
            if not item.image.key:
                raise NotFoundError(f"Image {number} not found")
            saved = keys.saved_image_key(item.image.key, version)
            if saved not in item.image.saved_versions:
                raise NotFoundError(f"Saved version {version} of image {number} not found")
            self._swap(item.image.key, saved)
            self._record(project_id, number, IMAGE, "promote", saved, item.image.key)
            return item.image.key

    # Narration --------------------------------------------------------------

    def regenerate_audio(
        self, user_id: str, project_id: str, number: int, *, notify: str = ""
    ) -> "StageRun":
        """Keep the current narration as track 1 and request a new track 2."""

        self._busy.acquire(project_id, AUDIO, number)
        released = False

        def _release(_outcome: str) -> None:
            self._busy.release(project_id, AUDIO, number)

        def _activate() -> None:
            self._record(project_id, number, AUDIO, "regenerated", active_track=2)

        try:
            item = self.load_item(user_id, project_id, number)
            if not item.audio.key:
                raise NotFoundError(f"Audio {number} not found")
            saved = keys.alternate_audio_key(item.audio.key)
            self._store.copy(item.audio.key, saved)
            self._record(project_id, number, AUDIO, "regenerate", item.audio.key, saved, active_track=1)
            released = True
            return self._pipeline.run_stage(
                user_id,
                project_id,
                PipelineStage.STORYBOARD,
                notify=notify,
                on_complete=_activate,
                on_finish=_release,
            )
        except Exception:
            if not released:
                self._busy.release(project_id, AUDIO, number)
            raise

    def select_audio_track(self, user_id: str, project_id: str, number: int, track: int) -> int:
        if track not in (1, 2):
            raise InvalidRequest("Track must be 1 or 2.")
        with self._busy.hold(project_id, AUDIO, number):
            item = self.load_item(user_id, project_id, number)
            if not item.audio.key or not item.audio.saved_key:
                raise NotFoundError(f"No alternate narration for item {number}")
            if self.active_track(project_id, number) == track:
                return track
            self._swap(item.audio.key, item.audio.saved_key)
            self._record(
                project_id,
                number,
                AUDIO,
                "select",
                item.audio.saved_key,
                item.audio.key,
                active_track=track,
            )
            return track

    # Helpers ----------------------------------------------------------------

    def _swap(self, first: str, second: str) -> None:
        first_data = self._store.read_bytes(first)
        second_data = self._store.read_bytes(second)
        self._store.write_bytes(first, second_data)
        self._store.write_bytes(second, first_data)

    def _record(
        self,
        project_id: str,
        number: int,
        kind: str,
        action: str,
        source_key: Optional[str] = None,
        archived_key: Optional[str] = None,
        *,
        active_track: Optional[int] = None,
    ) -> None:
        with get_db_session() as session:
            session.add(
                ArtifactVersionModel(
                    project_id=project_id,
                    item_number=number,
                    kind=kind,
                    action=action,
                    source_key=source_key,
                    archived_key=archived_key,
                    active_track=active_track,
                )
            )
        logger.info(
            "Storyboard artifact %s %s",
            kind,
            action,
            extra={
                "event": f"storyboard.{kind}.{action}",
                "project_id": project_id,
                "attributes": {"item": number, "active_track": active_track},
            },
        )

    @staticmethod
    def _model_to_entry(model: ArtifactVersionModel) -> VersionEntry:
        return VersionEntry(
            id=model.id,
            project_id=model.project_id,
            item_number=model.item_number,
            kind=model.kind,
            action=model.action,
            source_key=model.source_key,
            archived_key=model.archived_key,
            active_track=model.active_track,
            created_at=model.created_at,
        )


__all__ = ["ArtifactVersionService", "VersionEntry"]
