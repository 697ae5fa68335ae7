"""Schemas for remote command routes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RunCommandPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    command: str = Field(min_length=1)
    project_id: str | None = Field(default=None, alias="projectId")


class RunCommandResponse(BaseModel):
    output: str = ""
    error: str = ""
    returncode: int | None = None
    task_id: str | None = None
    status: str | None = None
