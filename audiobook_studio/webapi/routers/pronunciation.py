"""Routes for pronunciation corrections, the master dictionary and voices."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ...services.project_service import ProjectService
from ...services.pronunciation_service import PronunciationService
from ..dependencies import (
    RequestUserContext,
    get_project_service,
    get_pronunciation_service,
    require_user,
)
from ..schemas.pronunciation import (
    CorrectionListPayload,
    CorrectionListResponse,
    MasterDictionaryPayload,
    MasterDictionaryRule,
    MasterDictionaryRulesResponse,
)

router = APIRouter(prefix="/api", tags=["pronunciation"])


@router.get("/projects/{project_id}/pronunciation", response_model=CorrectionListResponse)
def get_corrections(
    project_id: str,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
    pronunciation: PronunciationService = Depends(get_pronunciation_service),
) -> CorrectionListResponse:
    projects.get_project(user.user_id, project_id)
    entries = pronunciation.load_corrections(user.user_id, project_id)
    return CorrectionListResponse(project_id=project_id, corrections=[e.to_dict() for e in entries])


@router.put("/projects/{project_id}/pronunciation", response_model=CorrectionListResponse)
def save_corrections(
    project_id: str,
    payload: CorrectionListPayload,
    user: RequestUserContext = Depends(require_user),
    pronunciation: PronunciationService = Depends(get_pronunciation_service),
) -> CorrectionListResponse:
    entries = pronunciation.save_corrections(
        user.user_id, project_id, [c.as_mapping() for c in payload.corrections]
    )
    return CorrectionListResponse(project_id=project_id, corrections=[e.to_dict() for e in entries])


@router.post("/projects/{project_id}/pronunciation/sync")
def sync_dictionary(
    project_id: str,
    payload: CorrectionListPayload | None = None,
    user: RequestUserContext = Depends(require_user),
    pronunciation: PronunciationService = Depends(get_pronunciation_service),
) -> dict:
    """Publish the project's corrections to the master dictionary."""

    corrections = [c.as_mapping() for c in payload.corrections] if payload is not None else None
    return pronunciation.sync_master_dictionary(user.user_id, project_id, corrections).to_dict()


@router.get("/master-dictionary", response_model=MasterDictionaryRulesResponse)
def list_rules(
    project_id: str = Query(alias="projectId"),
    user: RequestUserContext = Depends(require_user),
    pronunciation: PronunciationService = Depends(get_pronunciation_service),
) -> MasterDictionaryRulesResponse:
    rules = pronunciation.project_rules(user.user_id, project_id)
    return MasterDictionaryRulesResponse(
        project_id=project_id, rules=[MasterDictionaryRule(**rule) for rule in rules]
    )


@router.get("/master-dictionary/remote")
def remote_dictionary(
    user: RequestUserContext = Depends(require_user),
    pronunciation: PronunciationService = Depends(get_pronunciation_service),
) -> dict:
    """Report the master dictionary and its rules as held by the remote API."""

    return pronunciation.remote_dictionary()


@router.post("/master-dictionary")
def add_entries(
    payload: MasterDictionaryPayload,
    user: RequestUserContext = Depends(require_user),
    projects: ProjectService = Depends(get_project_service),
    pronunciation: PronunciationService = Depends(get_pronunciation_service),
) -> dict:
    projects.get_project(user.user_id, payload.project_id)
    info = pronunciation.resolve_master_dictionary()
    count = pronunciation.upsert_entries(
        user.user_id,
        payload.project_id,
        project_name=payload.project_name,
        book_name=payload.book_name,
        corrections=[c.as_mapping() for c in payload.pronunciation_corrections],
        dict_id=info.id,
    )
    return {"success": True, "count": count}


@router.delete("/master-dictionary")
def remove_entries(
    project_id: str = Query(alias="projectId"),
    grapheme: str | None = Query(default=None),
    user: RequestUserContext = Depends(require_user),
    pronunciation: PronunciationService = Depends(get_pronunciation_service),
) -> dict:
    if grapheme:
        removed = pronunciation.remove_rule(user.user_id, project_id, grapheme)
    else:
        removed = pronunciation.remove_project_rules(user.user_id, project_id)
    return {"success": True, "removed": removed}


@router.get("/voices")
def list_voices(
    user: RequestUserContext = Depends(require_user),
    pronunciation: PronunciationService = Depends(get_pronunciation_service),
) -> dict:
    return {"voices": pronunciation.list_voices()}
