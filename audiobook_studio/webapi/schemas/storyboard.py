"""Schemas for storyboard version routes."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ImageActionResponse(BaseModel):
    item: int
    action: Literal["restore", "replace"]


class PromoteImagePayload(BaseModel):
    version: int = Field(ge=1)


class AudioTrackPayload(BaseModel):
    track: int = Field(ge=1, le=2)


class AudioTrackResponse(BaseModel):
    item: int
    active_track: int


class ArtifactKeyResponse(BaseModel):
    item: int
    key: str


class VersionEntryResponse(BaseModel):
    id: int
    project_id: str
    item_number: int
    kind: str
    action: str
    source_key: str | None = None
    archived_key: str | None = None
    active_track: int | None = None
    created_at: datetime


class VersionHistoryResponse(BaseModel):
    project_id: str
    entries: list[VersionEntryResponse] = Field(default_factory=list)
