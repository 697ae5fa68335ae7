from __future__ import annotations

import pytest

from audiobook_studio.errors import InvalidRequest, ItemBusyError, NotFoundError, PipelineCommandError
from audiobook_studio.pipeline.status import STORYBOARD_COMPLETE, PipelineStage

TEMP = "temp/"


@pytest.fixture
def project(services):
    record = services.projects.create_project(
        "u1",
        project_name="Whale",
        book_title="Moby Dick",
        author_name="Herman Melville",
        epub_filename="moby.epub",
        epub_data=b"epub",
    )
    prefix = f"u1/{record.id}/{TEMP}"
    services.store.write_bytes(prefix + "chapter1_1_image1.jpg", b"image-v1")
    services.store.write_bytes(prefix + "chapter1_1_image1_sbsave1.jpg", b"image-saved")
    services.store.write_bytes(prefix + "chapter1_1_audio1.mp3", b"narration-1")
    return record


def _key(project, name):
    return f"u1/{project.id}/{TEMP}{name}"


def _complete_storyboard(services, project):
    current = services.status.read("u1", project.id)
    services.status.write(
        "u1", project.id, current.model_copy(update={"storyboard_status": STORYBOARD_COMPLETE})
    )


def test_replace_image_archives_and_holds_busy_until_completion(services, project, command_session):
    run = services.versions.replace_image("u1", project.id, 1)

    store = services.store
    assert not store.exists(_key(project, "chapter1_1_image1.jpg"))
    assert store.read_bytes(_key(project, "chapter1_1_image1.jpgoldset")) == b"image-v1"
    assert run.stage is PipelineStage.STORYBOARD
    assert command_session.calls_to("/run-command")[0]["json"]["command"].endswith("-ss -m validation")
    assert services.busy.is_busy(project.id, "image_set", 1)
    with pytest.raises(ItemBusyError):
        services.versions.replace_image("u1", project.id, 1)

    _complete_storyboard(services, project)
    assert run.watcher.wait(5)

    assert run.watcher.outcome == "complete"
    assert not services.busy.is_busy(project.id, "image_set", 1)
    assert services.versions.image_action("u1", project.id, 1) == "restore"
    assert [e.action for e in services.versions.history(project.id, 1)] == ["replace"]


def test_replace_is_refused_while_an_archive_exists(services, project):
    services.store.write_bytes(_key(project, "chapter1_1_image1.jpgoldset"), b"old")

    with pytest.raises(InvalidRequest):
        services.versions.replace_image("u1", project.id, 1)

    assert not services.busy.is_busy(project.id, "image_set", 1)


def test_failed_command_releases_the_item(services, project, command_session, fake_response):
    command_session.queue(fake_response(200, {"output": "", "error": "script missing", "returncode": 2}))

    with pytest.raises(PipelineCommandError):
        services.versions.replace_image("u1", project.id, 1)

    assert not services.busy.is_busy(project.id, "image_set", 1)


def test_restore_image_moves_archive_back(services, project):
    services.store.delete(_key(project, "chapter1_1_image1.jpg"))
    services.store.write_bytes(_key(project, "chapter1_1_image1.jpgoldset"), b"original")

    target = services.versions.restore_image("u1", project.id, 1)

    assert target == _key(project, "chapter1_1_image1.jpg")
    assert services.store.read_bytes(target) == b"original"
    assert not services.store.exists(_key(project, "chapter1_1_image1.jpgoldset"))
    assert services.versions.image_action("u1", project.id, 1) == "replace"

    with pytest.raises(NotFoundError):
        services.versions.restore_image("u1", project.id, 1)


def test_promote_saved_image_swaps_contents(services, project):
    services.versions.promote_saved_image("u1", project.id, 1, 1)

    assert services.store.read_bytes(_key(project, "chapter1_1_image1.jpg")) == b"image-saved"
    assert services.store.read_bytes(_key(project, "chapter1_1_image1_sbsave1.jpg")) == b"image-v1"
    with pytest.raises(NotFoundError):
        services.versions.promote_saved_image("u1", project.id, 1, 7)


def test_regenerate_and_select_audio_track(services, project):
    versions = services.versions
    assert versions.active_track(project.id, 1) == 1

    run = versions.regenerate_audio("u1", project.id, 1)
    saved = _key(project, "chapter1_1_audio1_sbsave.mp3")
    assert services.store.read_bytes(saved) == b"narration-1"
    assert versions.active_track(project.id, 1) == 1

    services.store.write_bytes(_key(project, "chapter1_1_audio1.mp3"), b"narration-2")
    _complete_storyboard(services, project)
    assert run.watcher.wait(5)
    assert versions.active_track(project.id, 1) == 2
    assert not services.busy.is_busy(project.id, "audio", 1)

    assert versions.select_audio_track("u1", project.id, 1, 1) == 1
    assert services.store.read_bytes(_key(project, "chapter1_1_audio1.mp3")) == b"narration-1"
    assert services.store.read_bytes(saved) == b"narration-2"
    assert versions.active_track(project.id, 1) == 1

    assert versions.select_audio_track("u1", project.id, 1, 1) == 1
    assert services.store.read_bytes(_key(project, "chapter1_1_audio1.mp3")) == b"narration-1"

    with pytest.raises(InvalidRequest):
        versions.select_audio_track("u1", project.id, 1, 3)

    actions = [e.action for e in versions.history(project.id, 1)]
    assert actions == ["regenerate", "regenerated", "select"]


def test_unknown_item_is_not_found(services, project):
    with pytest.raises(NotFoundError):
        services.versions.image_action("u1", project.id, 9)
