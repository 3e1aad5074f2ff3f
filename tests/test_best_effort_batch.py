import logging
import threading

import pytest

from referral_api.core.config import settings
from referral_api.services import background
from referral_api.services.background import BestEffortBatch, submit_background


class LogCaptureHandler(logging.Handler):
    """Capture log records for testing."""

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)

    def get_event_records(self, event_name: str) -> list:
        return [r for r in self.records if f"event={event_name}" in r.getMessage()]


@pytest.fixture
def log_capture():
    handler = LogCaptureHandler()
    logger = logging.getLogger("referral_api.services.background")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    yield handler
    logger.removeHandler(handler)


@pytest.fixture
def threaded(monkeypatch):
    """Run batches on the real thread pool instead of inline."""
    monkeypatch.setattr(settings, "BACKGROUND_TASKS_EAGER", False)
    yield
    background.shutdown_background_pool()


def test_failing_task_is_isolated_and_logged_once(log_capture):
    ran = []

    def _fails():
        raise RuntimeError("smtp down")

    batch = BestEffortBatch("provision:prog_1")
    batch.add("first", ran.append, "first")
    batch.add("broken", _fails)
    batch.add("last", ran.append, "last")

    futures = batch.dispatch()

    assert {name: f.result() for name, f in futures.items()} == {"first": True, "broken": False, "last": True}
    assert ran == ["first", "last"]
    failed = log_capture.get_event_records("best_effort.task_failed")
    assert len(failed) == 1
    assert "task=broken" in failed[0].getMessage()
    assert failed[0].exc_info is not None


def test_batch_cannot_be_dispatched_twice():
    batch = BestEffortBatch("once")
    batch.add("noop", lambda: None)
    batch.dispatch()

    with pytest.raises(RuntimeError):
        batch.dispatch()
    with pytest.raises(RuntimeError):
        batch.add("late", lambda: None)


def test_task_names_are_unique_within_a_batch():
    batch = BestEffortBatch("names").add("invite-partner:jane@example.com", lambda: None)

    with pytest.raises(ValueError):
        batch.add("invite-partner:jane@example.com", lambda: None)

    assert len(batch) == 1
    assert list(batch.dispatch()) == ["invite-partner:jane@example.com"]


def test_kwargs_are_forwarded():
    seen = {}
    batch = BestEffortBatch("kw").add("store", lambda **kw: seen.update(kw), program_id="prog_1", action="import")

    batch.dispatch()["store"].result()

    assert seen == {"program_id": "prog_1", "action": "import"}
    assert batch.task_names == ["store"]
    assert len(batch) == 1


def test_dispatch_does_not_wait_for_slow_tasks(threaded):
    release = threading.Event()
    started = threading.Event()

    def _slow():
        started.set()
        release.wait(timeout=5)

    futures = BestEffortBatch("slow").add("slow", _slow).dispatch()

    assert started.wait(timeout=5)
    assert not futures["slow"].done()
    release.set()
    assert futures["slow"].result(timeout=5) is True


def test_submit_background_swallows_errors(log_capture):
    def _boom():
        raise ValueError("nope")

    future = submit_background("email", _boom)

    assert future.result() is False
    assert log_capture.get_event_records("best_effort.task_failed")
