"""Project status document written by the pipeline and by this service."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class PipelineStage(str, Enum):
    EBOOK_PREP = "ebook_prep"
    STORYBOARD = "storyboard"
    PROOFS = "proofs"
    AUDIOBOOK = "audiobook"


EBOOK_COMPLETE = "Ebook Processing Complete"
STORYBOARD_COMPLETE = "Storyboard Complete"
PROOFS_COMPLETE = "Proofs Complete"
AUDIOBOOK_COMPLETE = "Audiobook Complete"

WAITING_FOR_EBOOK = "Waiting for Ebook Processing Completion"
WAITING_FOR_STORYBOARD = "Waiting for Storyboard Completion"
NOT_STARTED = "Not Started"

COMPLETE_STATUS: Dict[PipelineStage, str] = {
    PipelineStage.EBOOK_PREP: EBOOK_COMPLETE,
    PipelineStage.STORYBOARD: STORYBOARD_COMPLETE,
    PipelineStage.PROOFS: PROOFS_COMPLETE,
    PipelineStage.AUDIOBOOK: AUDIOBOOK_COMPLETE,
}

# Field the pipeline updates when a stage finishes.
STAGE_FIELD: Dict[PipelineStage, str] = {
    PipelineStage.EBOOK_PREP: "ebook_prep_status",
    PipelineStage.STORYBOARD: "storyboard_status",
    PipelineStage.PROOFS: "proof_status",
    PipelineStage.AUDIOBOOK: "audiobook_status",
}

_PROCESSING: Dict[PipelineStage, Dict[str, str]] = {
    PipelineStage.EBOOK_PREP: {
        "current_status": "Ebook is Processing",
        "ebook_prep_status": "Processing Ebook File, Please Wait",
        "storyboard_status": WAITING_FOR_EBOOK,
        "proof_status": WAITING_FOR_STORYBOARD,
        "audiobook_status": NOT_STARTED,
    },
    PipelineStage.STORYBOARD: {
        "current_status": "Storyboard is Processing",
        "ebook_prep_status": EBOOK_COMPLETE,
        "storyboard_status": "Processing Storyboard, Please Wait",
        "proof_status": WAITING_FOR_STORYBOARD,
        "audiobook_status": NOT_STARTED,
    },
    PipelineStage.PROOFS: {
        "current_status": "Proofs are Processing",
        "ebook_prep_status": EBOOK_COMPLETE,
        "storyboard_status": STORYBOARD_COMPLETE,
        "proof_status": "Audiobook Processing, Please Wait",
        "audiobook_status": "Processing Audiobook, Please Wait",
    },
    PipelineStage.AUDIOBOOK: {
        "current_status": "Audiobook is Processing",
        "ebook_prep_status": EBOOK_COMPLETE,
        "storyboard_status": STORYBOARD_COMPLETE,
        "proof_status": PROOFS_COMPLETE,
        "audiobook_status": "Processing Audiobook, Please Wait",
    },
}

# Fields compared by the status monitor to detect a change.
WATCHED_FIELDS: Tuple[str, ...] = (
    "current_status",
    "ebook_prep_status",
    "storyboard_status",
    "proof_status",
    "audiobook_status",
)


class ProjectStatus(BaseModel):
    """Typed view over ``project_status.json``; unknown keys round-trip."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    project: str = Field(default="", alias="Project")
    book: str = Field(default="", alias="Book")
    notify: str = ""
    userid: str = ""
    projectid: str = ""
    current_status: str = Field(default="", alias="Current_Status")
    ebook_prep_status: str = Field(default="", alias="Ebook_Prep_Status")
    storyboard_status: str = Field(default="", alias="Storyboard_Status")
    proof_status: str = Field(default="", alias="Proof_Status")
    audiobook_status: str = Field(default="", alias="Audiobook_Status")
    publish_status: str = Field(default=NOT_STARTED, alias="Publish_Status")

    @classmethod
    def initial(
        cls,
        *,
        project: str,
        book: str,
        notify: str,
        user_id: str,
        project_id: str,
    ) -> "ProjectStatus":
        """Document written right after a project is uploaded."""
        return cls(
            project=project,
            book=book,
            notify=notify,
            userid=user_id,
            projectid=project_id,
            current_status="Ready to Process Ebook",
            ebook_prep_status="Ready to process ebook",
            storyboard_status=WAITING_FOR_EBOOK,
            proof_status=WAITING_FOR_STORYBOARD,
            audiobook_status=WAITING_FOR_STORYBOARD,
            publish_status=NOT_STARTED,
        )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ProjectStatus":
        return cls.model_validate(dict(payload))

    def for_stage(self, stage: PipelineStage) -> "ProjectStatus":
        """Return a copy describing ``stage`` as processing."""
        return self.model_copy(update=_PROCESSING[stage])

    def fingerprint(self) -> Tuple[str, ...]:
        return tuple(getattr(self, name) for name in WATCHED_FIELDS)

    def is_complete(self, stage: PipelineStage) -> bool:
        return getattr(self, STAGE_FIELD[stage]) == COMPLETE_STATUS[stage]

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def changed_fields(previous: Optional[ProjectStatus], current: ProjectStatus) -> Tuple[str, ...]:
    if previous is None:
        return WATCHED_FIELDS
    return tuple(
        name for name in WATCHED_FIELDS if getattr(previous, name) != getattr(current, name)
    )


__all__ = [
    "AUDIOBOOK_COMPLETE",
    "COMPLETE_STATUS",
    "EBOOK_COMPLETE",
    "PROOFS_COMPLETE",
    "PipelineStage",
    "ProjectStatus",
    "STORYBOARD_COMPLETE",
    "WATCHED_FIELDS",
    "changed_fields",
]
