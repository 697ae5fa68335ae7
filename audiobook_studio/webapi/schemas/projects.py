"""Schemas for project routes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from ...pipeline.status import PipelineStage

ProjectMode = Literal["validation", "production"]


class ProjectResponse(BaseModel):
    id: str
    user_id: str
    project_name: str
    book_title: str
    author_name: str | None = None
    description: str | None = None
    epub_file_path: str | None = None
    cover_file_path: str | None = None
    status: str
    current_mode: ProjectMode
    voice_id: str | None = None
    voice_name: str | None = None
    pls_dict_name: str | None = None
    pls_dict_file: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse] = Field(default_factory=list)


class ProjectUpdatePayload(BaseModel):
    project_name: str | None = None
    book_title: str | None = None
    author_name: str | None = None
    description: str | None = None


class VoiceSelectionPayload(BaseModel):
    voice_id: str
    voice_name: str


class ProjectDeleteResponse(BaseModel):
    deleted: bool
    project_id: str
    objects_removed: int = 0


class StageRunResponse(BaseModel):
    stage: PipelineStage
    command: str
    output: str = ""
    error: str = ""
    returncode: int | None = None
    task_id: str | None = None
    status: str | None = None


class MonitorSnapshotResponse(BaseModel):
    project_id: str
    status: dict[str, Any] | None = None
    items: list[dict[str, Any]] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)
    cover_key: str | None = None
    refresh_count: int = 0
    busy_images: list[int] = Field(default_factory=list)
    busy_audio: list[int] = Field(default_factory=list)
    storage: dict[str, Any] = Field(default_factory=dict)
