"""Schemas for storage, notification and profile routes."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SignedUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    signed_url: str = Field(alias="signedUrl")
    path: str
    expires_at: datetime = Field(alias="expiresAt")


class NotifyAdminPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    issue: str = Field(min_length=1)
    details: Any = None
    project_id: str | None = Field(default=None, alias="projectId")
    timestamp: str | None = None


class UserProfilePayload(BaseModel):
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    date_of_birth: str | None = None


class UserProfileResponse(BaseModel):
    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    date_of_birth: str | None = None
