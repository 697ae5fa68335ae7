from __future__ import annotations

import pytest
import requests
from sqlalchemy import select

from audiobook_studio.database.engine import get_db_session
from audiobook_studio.database.models import CommandLogModel
from audiobook_studio.errors import CommandServerUnavailable, ModeChangeNotAllowed
from audiobook_studio.pipeline.status import (
    AUDIOBOOK_COMPLETE,
    EBOOK_COMPLETE,
    PipelineStage,
)
from audiobook_studio.services.completion_watcher import CompletionWatcher


@pytest.fixture
def project(services):
    record = services.projects.create_project(
        "u1",
        project_name="Whale",
        book_title="Moby Dick",
        author_name="Herman Melville",
        epub_filename="moby.epub",
        epub_data=b"epub",
        notify="reader@studio.test",
    )
    return services.projects.select_voice("u1", record.id, voice_id="v1", voice_name="Rachel")


def _command_logs():
    with get_db_session() as session:
        return session.execute(select(CommandLogModel).order_by(CommandLogModel.id)).scalars().all()


def test_run_stage_marks_processing_submits_and_completes(services, project, command_session):
    finished = []
    completed = []

    run = services.pipeline.run_stage(
        "u1",
        project.id,
        PipelineStage.EBOOK_PREP,
        on_complete=lambda: completed.append(True),
        on_finish=finished.append,
    )

    status = services.status.read("u1", project.id)
    assert status.current_status == "Ebook is Processing"
    assert run.command == (
        f'python3 b2vp* -f "moby.epub" -uid u1 -pid {project.id} -a "Herman Melville" '
        '-ti "Moby Dick" -vn "Rachel" -si -m validation'
    )
    request = command_session.calls_to("/run-command")[0]
    assert request["method"] == "POST"
    assert request["headers"]["X-API-Key"] == "remote-secret"

    services.status.write(
        "u1", project.id, status.model_copy(update={"ebook_prep_status": EBOOK_COMPLETE})
    )
    assert run.watcher.wait(5)
    assert completed == [True]
    assert finished == ["complete"]

    logs = _command_logs()
    assert len(logs) == 1
    assert logs[0].project_id == project.id
    assert logs[0].status == "completed"
    assert logs[0].returncode == 0


def test_deleting_a_project_drops_its_command_logs(services, project):
    run = services.pipeline.run_stage("u1", project.id, PipelineStage.EBOOK_PREP)
    status = services.status.read("u1", project.id)
    services.status.write(
        "u1", project.id, status.model_copy(update={"ebook_prep_status": EBOOK_COMPLETE})
    )
    assert run.watcher.wait(5)
    assert len(_command_logs()) == 1

    services.projects.delete_project("u1", project.id)

    assert _command_logs() == []


def test_unreachable_server_reports_error_to_callback(services, project, command_session):
    command_session.queue(requests.ConnectionError("refused"))
    finished = []

    with pytest.raises(CommandServerUnavailable):
        services.pipeline.run_stage(
            "u1", project.id, PipelineStage.STORYBOARD, on_finish=finished.append
        )

    assert finished == ["error"]
    assert services.watchers.active_count() == 0


def test_asynchronous_submission_keeps_remote_task_status(services, project, command_session, fake_response):
    command_session.queue(fake_response(200, {"task_id": "t-9", "status": "running"}))

    run = services.pipeline.run_stage("u1", project.id, PipelineStage.STORYBOARD)
    run.watcher.cancel()

    assert run.to_dict()["task_id"] == "t-9"
    log = _command_logs()[0]
    assert (log.task_id, log.status, log.ended_at) == ("t-9", "running", None)


def test_production_requires_a_finished_validation_audiobook(services, project, command_session):
    with pytest.raises(ModeChangeNotAllowed):
        services.pipeline.activate_production("u1", project.id)
    assert services.projects.get_project("u1", project.id).current_mode == "validation"

    status = services.status.read("u1", project.id)
    services.status.write(
        "u1", project.id, status.model_copy(update={"audiobook_status": AUDIOBOOK_COMPLETE})
    )

    run = services.pipeline.activate_production("u1", project.id)
    run.watcher.cancel()

    assert services.projects.get_project("u1", project.id).current_mode == "production"
    assert run.command.endswith("-l 5 -ss -m production")


def test_task_status_and_cancel_are_forwarded(services, command_session, fake_response):
    command_session.queue(
        fake_response(200, {"status": "running"}),
        fake_response(200, {"cancelled": True}),
    )

    assert services.pipeline.task_status("t-1") == {"status": "running"}
    assert services.pipeline.cancel_task("t-1") == {"cancelled": True}
    assert [c["url"] for c in command_session.calls] == [
        "http://pipeline.test/task-status/t-1",
        "http://pipeline.test/cancel-task/t-1",
    ]


def test_watcher_times_out():
    clock = iter([0.0, 0.5, 2.0, 3.0])
    outcomes = []

    watcher = CompletionWatcher(
        lambda: False,
        on_finish=outcomes.append,
        initial_delay=0,
        interval=0,
        timeout=1.0,
        clock=lambda: next(clock),
    ).start()

    assert watcher.wait(5)
    assert outcomes == ["timeout"]


def test_watcher_reports_check_errors_and_cancellation():
    def _boom():
        raise RuntimeError("status unreadable")

    failing = CompletionWatcher(_boom, initial_delay=0, interval=0).start()
    assert failing.wait(5)
    assert failing.outcome == "error"

    slow = CompletionWatcher(lambda: False, initial_delay=30).start()
    slow.cancel()
    assert slow.wait(5)
    assert slow.outcome == "cancelled"
