"""
Tests for the debounced persister.
"""
import threading
import time

from pkg.taskpilot.persister import DebouncedPersister


class RecordingSave:
    """save_fn stand-in that records every batch it receives."""

    def __init__(self, fail_times=0, delay=0.0):
        self.calls = []
        self.fail_times = fail_times
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def __call__(self, partial):
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.fail_times:
                self.fail_times -= 1
                raise OSError("disk full")
            self.calls.append(dict(partial))
        finally:
            with self._lock:
                self.in_flight -= 1


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Coalescing
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_burst_of_five_gives_one_save_with_latest_state():
    save = RecordingSave()
    persister = DebouncedPersister(save, delay_ms=100)

    for i in range(1, 6):
        persister.schedule({"scratchpad": f"edit {i}"})

    assert _wait_for(lambda: save.calls)
    time.sleep(0.2)
    assert save.calls == [{"scratchpad": "edit 5"}]


def test_batch_merges_keys_from_different_changes():
    save = RecordingSave()
    persister = DebouncedPersister(save, delay_ms=50)
    persister.schedule({"projects": ["p1"]})
    persister.schedule({"tasks": ["t1"]})
    persister.schedule({"projects": ["p1", "p2"]})

    assert _wait_for(lambda: save.calls)
    assert save.calls == [{"projects": ["p1", "p2"], "tasks": ["t1"]}]


def test_nothing_saved_before_quiet_period():
    save = RecordingSave()
    persister = DebouncedPersister(save, delay_ms=500)
    persister.schedule({"scratchpad": "x"})
    time.sleep(0.05)
    assert save.calls == []
    assert persister.pending == {"scratchpad": "x"}
    persister.cancel()


def test_flush_saves_immediately():
    save = RecordingSave()
    persister = DebouncedPersister(save, delay_ms=10_000)
    persister.schedule({"scratchpad": "x"})
    assert persister.flush() is True
    assert save.calls == [{"scratchpad": "x"}]
    assert persister.pending == {}


def test_flush_with_nothing_pending():
    save = RecordingSave()
    assert DebouncedPersister(save).flush() is True
    assert save.calls == []


def test_cancel_drops_pending():
    save = RecordingSave()
    persister = DebouncedPersister(save, delay_ms=50)
    persister.schedule({"scratchpad": "x"})
    persister.cancel()
    time.sleep(0.15)
    assert save.calls == []
    assert persister.pending == {}


def test_one_write_in_flight_at_a_time():
    save = RecordingSave(delay=0.1)
    persister = DebouncedPersister(save, delay_ms=10)

    persister.schedule({"scratchpad": "first"})
    # Let the first write start, then queue another while it is running
    assert _wait_for(lambda: save.in_flight == 1)
    persister.schedule({"scratchpad": "second"})

    assert _wait_for(lambda: len(save.calls) == 2)
    assert save.max_in_flight == 1
    assert save.calls[-1] == {"scratchpad": "second"}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Failures
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_failure_reported_and_not_raised():
    errors = []
    save = RecordingSave(fail_times=1)
    persister = DebouncedPersister(save, delay_ms=10_000, on_error=errors.append)

    persister.schedule({"scratchpad": "x"})
    assert persister.flush() is False
    assert len(errors) == 1
    assert isinstance(errors[0], OSError)


def test_failed_keys_retried_with_next_save():
    save = RecordingSave(fail_times=1)
    persister = DebouncedPersister(save, delay_ms=10_000)

    persister.schedule({"scratchpad": "x", "tasks": ["old"]})
    persister.flush()
    # Failed batch is pending again
    assert persister.pending == {"scratchpad": "x", "tasks": ["old"]}

    persister.schedule({"tasks": ["new"]})
    assert persister.flush() is True
    assert save.calls == [{"scratchpad": "x", "tasks": ["new"]}]


def test_broken_error_callback_does_not_propagate():
    def explode(exc):
        raise RuntimeError("toast failed")

    persister = DebouncedPersister(RecordingSave(fail_times=1), delay_ms=10_000, on_error=explode)
    persister.schedule({"scratchpad": "x"})
    assert persister.flush() is False


def test_timer_failure_does_not_stop_later_saves():
    errors = []
    save = RecordingSave(fail_times=1)
    persister = DebouncedPersister(save, delay_ms=20, on_error=errors.append)

    persister.schedule({"scratchpad": "a"})
    assert _wait_for(lambda: errors)
    persister.schedule({"scratchpad": "b"})
    assert _wait_for(lambda: save.calls)
    assert save.calls == [{"scratchpad": "b"}]
