"""Smoke test for the tasks client.

Importer and webhook jobs go through tasks_client.enqueue_http_task(); these
checks pin the log events each dispatch mode emits.
"""
import logging
import os
from unittest.mock import patch

import pytest

from infrastructure.tasks_client import enqueue_http_task, should_use_cloud_tasks

IMPORT_PATH = "/api/tasks/import/rewardful"


class LogCaptureHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)

    def has_event(self, event_name: str) -> bool:
        return any(f"event={event_name}" in r.getMessage() for r in self.records)

    def get_event_records(self, event_name: str) -> list:
        return [r for r in self.records if f"event={event_name}" in r.getMessage()]


@pytest.fixture
def log_capture():
    """Capture logs from tasks.client logger."""
    handler = LogCaptureHandler()
    logger = logging.getLogger("tasks.client")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    yield handler
    logger.removeHandler(handler)


def test_enqueue_http_task_dry_run(log_capture):
    with patch.dict(os.environ, {"TASKS_DRY_RUN": "true", "APP_ENV": "test"}):
        result = enqueue_http_task(IMPORT_PATH, {"program_id": "prog_1"})

    assert result["name"].startswith("dry-run-")
    records = log_capture.get_event_records("tasks.dry_run")
    assert records
    assert f"path={IMPORT_PATH}" in records[0].getMessage()


def test_enqueue_http_task_uses_local_dispatch_outside_production(log_capture):
    with patch.dict(
        os.environ,
        {"TASKS_DRY_RUN": "false", "APP_ENV": "test", "TASKS_FORCE_HTTP_LOOPBACK": "false"},
    ):
        result = enqueue_http_task(IMPORT_PATH, {"program_id": "prog_1"})

    assert result["name"].startswith("local-")
    assert log_capture.has_event("tasks.enqueue_http_task.start")
    assert log_capture.has_event("tasks.enqueue_http_task.using_local_dispatch")
    assert log_capture.has_event("tasks.local.logged")


def test_loopback_posts_to_running_api(log_capture, requests_mocker):
    import threading

    done = threading.Event()
    requests_mocker.post(
        "http://api.internal:8080/api/tasks/import/rewardful",
        status_code=202,
        additional_matcher=lambda req: done.set() or True,
    )
    with patch.dict(
        os.environ,
        {
            "TASKS_DRY_RUN": "false",
            "APP_ENV": "test",
            "TASKS_FORCE_HTTP_LOOPBACK": "true",
            "TASKS_URL_BASE": "http://api.internal:8080",
        },
    ):
        enqueue_http_task(IMPORT_PATH, {"program_id": "prog_1"})

    assert done.wait(timeout=5)
    assert requests_mocker.last_request.json() == {"program_id": "prog_1"}
    assert log_capture.has_event("tasks.local.dispatched")


def test_missing_cloud_config_is_tolerated_in_staging():
    with patch.dict(
        os.environ,
        {"APP_ENV": "staging", "GOOGLE_CLOUD_PROJECT": "", "TASKS_LOCATION": "", "TASKS_QUEUE": ""},
    ):
        assert should_use_cloud_tasks() is False


def test_enqueue_http_task_fails_with_clear_error():
    """Production with missing Cloud Tasks config raises instead of falling back."""
    with patch.dict(
        os.environ,
        {
            "TASKS_DRY_RUN": "false",
            "APP_ENV": "production",
            "GOOGLE_CLOUD_PROJECT": "",
            "TASKS_LOCATION": "",
            "TASKS_QUEUE": "",
        },
    ):
        with pytest.raises(ValueError) as exc_info:
            enqueue_http_task(IMPORT_PATH, {"program_id": "prog_1"})

    assert "Missing" in str(exc_info.value)
