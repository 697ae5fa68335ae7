"""Schemas for pronunciation dictionary routes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CorrectionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_name: str = Field(alias="originalName", min_length=1)
    corrected_pronunciation: str = Field(default="", alias="correctedPronunciation")
    ipa_pronunciation: str = Field(default="", alias="ipaPronunciation")

    def as_mapping(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class CorrectionListPayload(BaseModel):
    corrections: list[CorrectionPayload] = Field(default_factory=list)


class CorrectionListResponse(BaseModel):
    project_id: str
    corrections: list[dict[str, str]] = Field(default_factory=list)


class MasterDictionaryPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    project_name: str = Field(alias="projectName")
    book_name: str = Field(alias="bookName")
    pronunciation_corrections: list[CorrectionPayload] = Field(alias="pronunciationCorrections")


class MasterDictionaryRule(BaseModel):
    grapheme: str
    phoneme: str
    dict_id: str | None = None
    version_id: str | None = None


class MasterDictionaryRulesResponse(BaseModel):
    project_id: str
    rules: list[MasterDictionaryRule] = Field(default_factory=list)
