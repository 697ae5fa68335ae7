from __future__ import annotations

import pytest

from audiobook_studio.errors import StorageError
from audiobook_studio.pipeline.status import STORYBOARD_COMPLETE, PipelineStage, ProjectStatus
from audiobook_studio.services.project_monitor import (
    LIST_ATTEMPTS,
    ProjectMonitor,
    ProjectMonitorRegistry,
)
from audiobook_studio.services.status_service import StatusService
from audiobook_studio.storage.backoff import StorageBackoff
from audiobook_studio.storage.object_store import LocalObjectStore
from audiobook_studio.storyboard.busy import BusySet


class _CountingStore(LocalObjectStore):
    def __init__(self, root, *, fail_lists: int = 0):
        super().__init__(root)
        self.list_calls = 0
        self.fail_lists = fail_lists

    def list(self, prefix):
        self.list_calls += 1
        if self.fail_lists:
            self.fail_lists -= 1
            raise StorageError("listing failed")
        return super().list(prefix)


@pytest.fixture
def store(tmp_path):
    return _CountingStore(tmp_path / "objects")


def _status(**updates) -> ProjectStatus:
    base = ProjectStatus.initial(
        project="Whale", book="Moby Dick", notify="", user_id="u1", project_id="p1"
    )
    return base.model_copy(update=updates)


def _monitor(store, busy=None, sleeps=None, backoff=None):
    sleeps = sleeps if sleeps is not None else []
    return ProjectMonitor(
        "u1",
        "p1",
        store=store,
        status_service=StatusService(store),
        busy=busy or BusySet(),
        backoff=backoff,
        cover_key="u1/p1/cover.jpg",
        settle_delay=3.0,
        sleep=sleeps.append,
        clock=lambda: 1000.0,
    )


def test_first_poll_refreshes_and_unchanged_polls_do_not(store):
    StatusService(store).write("u1", "p1", _status())
    store.write_bytes("u1/p1/temp/chapter1_1_image1.jpg", b"img")
    store.write_text("u1/p1/temp/chapter1_1_chunk1.txt", "Call me Ishmael.")
    monitor = _monitor(store)

    assert monitor.poll_once() is True
    assert monitor.refresh_count == 1
    assert monitor.storyboard.item(1).text == "Call me Ishmael."

    for _ in range(3):
        assert monitor.poll_once() is False
    assert monitor.refresh_count == 1
    assert store.list_calls == 1


def test_status_change_refreshes_exactly_once(store):
    status_service = StatusService(store)
    status_service.write("u1", "p1", _status())
    monitor = _monitor(store)
    monitor.poll_once()

    status_service.write("u1", "p1", _status().for_stage(PipelineStage.EBOOK_PREP))

    assert monitor.poll_once() is True
    assert monitor.poll_once() is False
    assert monitor.refresh_count == 2
    assert monitor.status.current_status == "Ebook is Processing"


def test_missing_status_document_does_nothing(store):
    monitor = _monitor(store)

    assert monitor.poll_once() is False
    assert monitor.refresh_count == 0
    assert store.list_calls == 0


def test_storyboard_completion_waits_before_refreshing_and_clears_replaced_image_sets(store):
    status_service = StatusService(store)
    status_service.write("u1", "p1", _status().for_stage(PipelineStage.STORYBOARD))
    busy = BusySet()
    sleeps = []
    monitor = _monitor(store, busy=busy, sleeps=sleeps)
    monitor.poll_once()
    assert sleeps == []

    busy.acquire("p1", "image_set", 2)
    busy.acquire("p1", "audio", 2)
    status_service.write(
        "u1",
        "p1",
        _status().for_stage(PipelineStage.STORYBOARD).model_copy(
            update={"storyboard_status": STORYBOARD_COMPLETE, "current_status": STORYBOARD_COMPLETE}
        ),
    )

    assert monitor.poll_once() is True
    assert sleeps == [3.0]
    assert busy.busy_items("p1", "image_set") == set()
    assert busy.busy_items("p1", "audio") == {2}


def test_listing_retries_before_backing_off(tmp_path):
    store = _CountingStore(tmp_path / "objects", fail_lists=2)
    monitor = _monitor(store)

    assert monitor.refresh(now=0.0) is True
    assert store.list_calls == 3
    assert monitor.backoff.state().failures == 0


def test_backoff_suppresses_refresh_until_delay_elapses(tmp_path):
    store = _CountingStore(tmp_path / "objects", fail_lists=3)
    backoff = StorageBackoff(base_seconds=1, max_seconds=240)
    monitor = _monitor(store, backoff=backoff)

    assert monitor.refresh(now=10.0) is False
    assert backoff.state().failures == 1
    calls = store.list_calls

    assert monitor.refresh(now=11.0) is False
    assert store.list_calls == calls

    assert monitor.refresh(now=12.5) is True
    assert backoff.state().available is True
    snapshot = monitor.snapshot()
    assert snapshot["storage"] == {"available": True, "failures": 0, "delay_seconds": 1}


def test_image_swap_stays_busy_across_a_status_change(store):
    status_service = StatusService(store)
    status_service.write("u1", "p1", _status())
    busy = BusySet()
    monitor = _monitor(store, busy=busy)
    monitor.poll_once()

    with busy.hold("p1", "image", 1):
        status_service.write("u1", "p1", _status().for_stage(PipelineStage.STORYBOARD))
        assert monitor.poll_once() is True
        assert busy.try_acquire("p1", "image", 1) is False
        assert monitor.snapshot()["busy_images"] == [1]

    assert busy.try_acquire("p1", "image", 1) is True


def test_listing_gives_up_after_the_last_attempt(tmp_path):
    store = _CountingStore(tmp_path / "objects", fail_lists=LIST_ATTEMPTS + 1)
    monitor = _monitor(store)

    assert monitor.refresh(now=0.0) is False
    assert store.list_calls == LIST_ATTEMPTS
    assert monitor.backoff.state().failures == 1


def test_registry_keys_monitors_by_user_and_project(store):
    busy = BusySet()
    registry = ProjectMonitorRegistry(
        store=store, status_service=StatusService(store), busy=busy, poll_interval=0.01
    )

    first = registry.open("u1", "p1", start=False)
    assert registry.open("u1", "p1", start=False) is first
    assert registry.get("u1", "p1") is first
    assert registry.get("u2", "p1") is None
    assert registry.close("u2", "p1") is False
    assert registry.get("u1", "p1") is first

    busy.acquire("p1", "image_set", 1)
    busy.acquire("p1", "audio", 1)
    assert registry.close("u1", "p1") is True
    assert registry.get("u1", "p1") is None
    assert busy.busy_items("p1", "image_set") == set()
    assert busy.busy_items("p1", "audio") == {1}
    assert registry.close("u1", "p1") is False


def test_detached_monitor_is_not_registered_and_priming_keeps_busy_flags(store):
    StatusService(store).write("u1", "p1", _status())
    busy = BusySet()
    registry = ProjectMonitorRegistry(
        store=store, status_service=StatusService(store), busy=busy, poll_interval=0.01
    )
    busy.acquire("p1", "image_set", 4)

    monitor = registry.detached("u1", "p1")
    assert monitor.prime().current_status == _status().current_status

    assert registry.get("u1", "p1") is None
    assert not monitor.running
    assert busy.busy_items("p1", "image_set") == {4}


def test_background_monitor_polls_until_stopped(store):
    StatusService(store).write("u1", "p1", _status())
    registry = ProjectMonitorRegistry(
        store=store, status_service=StatusService(store), busy=BusySet(), poll_interval=0.01
    )

    monitor = registry.open("u1", "p1")
    try:
        assert monitor.running
    finally:
        registry.close_all()

    assert not monitor.running
    assert monitor.refresh_count == 1
