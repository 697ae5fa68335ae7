"""Shared fixtures: in-memory database, local object store and fake HTTP sessions."""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Any, Deque, Dict, Iterator, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from audiobook_studio.config import StudioSettings
from audiobook_studio.database import Base, configure_engine, dispose_engine
from audiobook_studio.database import models  # noqa: F401
from audiobook_studio.integrations.command_client import CommandServerClient
from audiobook_studio.integrations.elevenlabs_client import ElevenLabsClient
from audiobook_studio.logging_manager import LOGGER_NAME
from audiobook_studio.storage.object_store import LocalObjectStore
from audiobook_studio.webapi.dependencies import StudioServices, build_services


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Replays queued responses and records every request."""

    def __init__(self, *responses: Any, default: Any = None) -> None:
        self._responses: Deque[Any] = deque(responses)
        self._default = default
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self._responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self._responses.popleft() if self._responses else self._default
        if response is None:
            response = FakeResponse(200, {})
        if isinstance(response, Exception):
            raise response
        return response

    def calls_to(self, suffix: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["url"].endswith(suffix)]


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_session_factory():
    return FakeSession


@pytest.fixture
def db_engine() -> Iterator[Any]:
    """Fresh in-memory SQLite database installed as the global engine."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_engine(engine)
    Base.metadata.create_all(engine)
    yield engine
    dispose_engine()


@pytest.fixture
def object_store(tmp_path: Path) -> LocalObjectStore:
    return LocalObjectStore(tmp_path / "objects")


@pytest.fixture
def studio_settings(tmp_path: Path) -> StudioSettings:
    return StudioSettings(
        remote_server_url="http://pipeline.test",
        remote_api_key="remote-secret",
        storage_root=str(tmp_path / "objects"),
        elevenlabs_api_key="eleven-secret",
        elevenlabs_base_url="https://tts.test/v1",
        status_poll_interval_seconds=0.01,
        storyboard_settle_seconds=0,
        completion_initial_delay_seconds=0,
        completion_check_interval_seconds=0.01,
        completion_timeout_seconds=2,
        admin_email="admin@studio.test",
    )


@pytest.fixture
def command_session() -> FakeSession:
    return FakeSession(default=FakeResponse(200, {"output": "", "error": "", "returncode": 0}))


@pytest.fixture
def dictionary_session() -> FakeSession:
    return FakeSession(default=FakeResponse(200, {}))


@pytest.fixture
def services(
    db_engine,
    object_store: LocalObjectStore,
    studio_settings: StudioSettings,
    command_session: FakeSession,
    dictionary_session: FakeSession,
) -> Iterator[StudioServices]:
    """Service graph wired to the in-memory database and fake remote servers."""

    container = build_services(
        studio_settings,
        store=object_store,
        command_client=CommandServerClient(
            studio_settings.remote_server_url,
            api_key=studio_settings.secret("remote_api_key"),
            session=command_session,
        ),
        dictionary_client=ElevenLabsClient(
            studio_settings.secret("elevenlabs_api_key"),
            base_url=studio_settings.elevenlabs_base_url,
            session=dictionary_session,
        ),
    )
    yield container
    container.shutdown()


@pytest.fixture
def capture_studio_logs(caplog):
    """Let caplog see records from the non-propagating application logger."""

    studio_logger = logging.getLogger(LOGGER_NAME)
    original = studio_logger.propagate
    studio_logger.propagate = True
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    try:
        yield caplog
    finally:
        studio_logger.propagate = original


def find_record(records, event: str) -> Optional[logging.LogRecord]:
    return next((r for r in records if getattr(r, "event", "") == event), None)


@pytest.fixture
def record_finder():
    return find_record
