from __future__ import annotations

from audiobook_studio.pipeline.status import (
    STORYBOARD_COMPLETE,
    WATCHED_FIELDS,
    PipelineStage,
    ProjectStatus,
    changed_fields,
)


def _initial() -> ProjectStatus:
    return ProjectStatus.initial(
        project="Whale", book="Moby Dick", notify="a@b.test", user_id="u1", project_id="p1"
    )


def test_initial_document_uses_pipeline_field_names():
    document = _initial().to_document()

    assert document["Project"] == "Whale"
    assert document["Book"] == "Moby Dick"
    assert document["userid"] == "u1"
    assert document["projectid"] == "p1"
    assert document["Current_Status"] == "Ready to Process Ebook"
    assert document["Storyboard_Status"] == "Waiting for Ebook Processing Completion"
    assert document["Publish_Status"] == "Not Started"


def test_unknown_keys_round_trip():
    payload = _initial().to_document()
    payload["Chapter_Count"] = 12

    restored = ProjectStatus.from_mapping(payload)

    assert restored.to_document()["Chapter_Count"] == 12
    assert restored.book == "Moby Dick"


def test_for_stage_marks_processing_and_completion():
    processing = _initial().for_stage(PipelineStage.STORYBOARD)

    assert processing.current_status == "Storyboard is Processing"
    assert processing.ebook_prep_status == "Ebook Processing Complete"
    assert not processing.is_complete(PipelineStage.STORYBOARD)

    finished = processing.model_copy(update={"storyboard_status": STORYBOARD_COMPLETE})
    assert finished.is_complete(PipelineStage.STORYBOARD)


def test_changed_fields_reports_only_watched_differences():
    first = _initial()
    assert changed_fields(None, first) == WATCHED_FIELDS
    assert changed_fields(first, first.model_copy()) == ()

    second = first.model_copy(update={"publish_status": "Published"})
    assert changed_fields(first, second) == ()

    third = first.for_stage(PipelineStage.EBOOK_PREP)
    assert "current_status" in changed_fields(first, third)
