"""Tests for the remote command server HTTP client."""

from __future__ import annotations

import pytest
import requests

from audiobook_studio.errors import (
    CommandServerTimeout,
    CommandServerUnavailable,
    PipelineCommandError,
)
from audiobook_studio.integrations.command_client import CommandResult, CommandServerClient


def _client(session, **kwargs):
    return CommandServerClient("http://pipeline.test/", api_key="k", session=session, **kwargs)


def test_run_command_posts_json_with_api_key(fake_session_factory, fake_response):
    session = fake_session_factory(
        fake_response(200, {"output": "done", "error": "", "returncode": 0})
    )

    result = _client(session, timeout=12).run_command("python3 b2vp* -si")

    assert result.succeeded
    assert result.output == "done"
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://pipeline.test/run-command"
    assert call["json"] == {"command": "python3 b2vp* -si"}
    assert call["headers"] == {"content-type": "application/json", "X-API-Key": "k"}
    assert call["timeout"] == 12


def test_api_key_header_is_omitted_when_not_configured(fake_session_factory):
    session = fake_session_factory()

    CommandServerClient("http://pipeline.test", session=session).task_status("t1")

    assert "X-API-Key" not in session.calls[0]["headers"]


@pytest.mark.parametrize(
    "failure, expected",
    [
        (requests.Timeout("slow"), CommandServerTimeout),
        (requests.ConnectionError("refused"), CommandServerUnavailable),
    ],
)
def test_transport_failures_are_classified(fake_session_factory, failure, expected):
    with pytest.raises(expected) as excinfo:
        _client(fake_session_factory(failure)).health()

    assert excinfo.value.status_code == 503


def test_error_status_is_logged_and_raised(fake_session_factory, fake_response, capture_studio_logs, record_finder):
    session = fake_session_factory(fake_response(500, {}, text="Traceback"))

    with pytest.raises(PipelineCommandError) as excinfo:
        _client(session).run_command("ls")

    assert not isinstance(excinfo.value, CommandServerUnavailable)
    assert excinfo.value.status_code == 502
    record = record_finder(
        capture_studio_logs.records, "integrations.command_server.run.error_response"
    )
    assert record is not None
    assert record.attributes["status_code"] == 500
    assert record.attributes["body"] == "Traceback"


def test_invalid_json_is_rejected(fake_session_factory, fake_response):
    session = fake_session_factory(fake_response(200, ValueError("not json")))

    with pytest.raises(PipelineCommandError):
        _client(session).cancel_task("t1")


def test_asynchronous_result_payload():
    result = CommandResult.from_payload({"task_id": 42, "status": "queued"})

    assert result.task_id == "42"
    assert result.returncode is None
    assert result.succeeded
    assert not CommandResult.from_payload({"returncode": 1}).succeeded
    assert not CommandResult.from_payload({"status": "failed"}).succeeded


def test_base_url_is_required():
    with pytest.raises(ValueError):
        CommandServerClient("")
