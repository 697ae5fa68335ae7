from __future__ import annotations

from audiobook_studio.storage.backoff import StorageBackoff


def test_delay_doubles_and_is_capped():
    backoff = StorageBackoff(base_seconds=1, max_seconds=240)

    delays = [backoff.record_failure(now=float(i)) for i in range(1, 10)]

    assert delays == [2, 4, 8, 16, 32, 64, 128, 240, 240]
    assert backoff.state().failures == 9
    assert backoff.state().available is False


def test_attempts_are_suppressed_until_the_delay_elapses():
    backoff = StorageBackoff(base_seconds=1, max_seconds=240)
    assert backoff.can_attempt(0.0)

    backoff.record_failure(now=100.0)

    assert not backoff.can_attempt(101.0)
    assert not backoff.can_attempt(102.0)
    assert backoff.can_attempt(102.5)
    assert backoff.seconds_until_retry(101.0) == 1.0


def test_success_resets_the_gate():
    backoff = StorageBackoff(base_seconds=1, max_seconds=240)
    backoff.record_failure(now=0.0)
    backoff.record_failure(now=5.0)

    backoff.record_success(now=20.0)

    state = backoff.state()
    assert state.available is True
    assert state.failures == 0
    assert state.delay_seconds == 1
    assert backoff.can_attempt(20.0)
    assert backoff.record_failure(now=21.0) == 2
