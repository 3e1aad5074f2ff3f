"""HTTP task dispatch through Google Cloud Tasks.

Every asynchronous job (external campaign imports, partner webhooks) goes
through :func:`enqueue_http_task`. Outside production the task is either
dropped (``TASKS_DRY_RUN``) or dispatched locally: logged, and POSTed back to
``TASKS_URL_BASE`` on a daemon thread when ``TASKS_FORCE_HTTP_LOOPBACK`` is set.
"""

import json
import logging
import os
import threading
from datetime import datetime, timezone

import requests
from google.cloud import tasks_v2

log = logging.getLogger("tasks.client")

_TRUTHY = {"true", "1", "yes", "on"}


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in _TRUTHY


def _app_env() -> str:
    return (os.getenv("APP_ENV") or os.getenv("ENV") or os.getenv("PYTHON_ENV") or "").strip().lower()


def should_use_cloud_tasks() -> bool:
    """Return ``True`` when Cloud Tasks HTTP dispatch should be used."""
    env_value = _app_env()
    is_dev_env = env_value in {"", "dev", "development", "local"}
    is_test_env = env_value in {"test", "testing"}
    is_prod_env = env_value in {"prod", "production"}

    if is_dev_env or is_test_env:
        log.info("event=tasks.cloud.disabled reason=dev_env is_dev=%s is_test=%s", is_dev_env, is_test_env)
        return False

    if _env_flag("TASKS_FORCE_HTTP_LOOPBACK"):
        log.info("event=tasks.cloud.disabled reason=force_loopback")
        return False

    required = {
        "GOOGLE_CLOUD_PROJECT": os.getenv("GOOGLE_CLOUD_PROJECT"),
        "TASKS_LOCATION": os.getenv("TASKS_LOCATION"),
        "TASKS_QUEUE": os.getenv("TASKS_QUEUE"),
        "TASKS_URL_BASE": os.getenv("TASKS_URL_BASE"),
    }
    missing = [name for name, value in required.items() if not (value and value.strip())]
    if missing:
        log.warning("event=tasks.cloud.disabled reason=missing_config missing=%s", missing)
        if is_prod_env:
            raise ValueError(f"Missing required Cloud Tasks configuration: {', '.join(missing)}")
        return False

    log.info("event=tasks.cloud.enabled all_checks_passed")
    return True


def _task_headers() -> dict:
    return {"Content-Type": "application/json", "X-Tasks-Auth": os.getenv("TASKS_AUTH", "")}


def _dispatch_local_task(path: str, body: dict) -> dict:
    """Handle a task in-process for dev/test runs.

    With ``TASKS_FORCE_HTTP_LOOPBACK`` and ``TASKS_URL_BASE`` set, the task is
    POSTed to the running API on a daemon thread so the caller never waits on
    its own server. Otherwise the payload is only logged.
    """
    task_id = f"local-{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S%f')}"
    base_url = (os.getenv("TASKS_URL_BASE") or "").rstrip("/")

    if not (_env_flag("TASKS_FORCE_HTTP_LOOPBACK") and base_url):
        log.info("event=tasks.local.logged path=%s task_id=%s body=%s", path, task_id, json.dumps(body, default=str))
        return {"name": task_id}

    url = f"{base_url}{path}"

    def _runner() -> None:
        try:
            resp = requests.post(url, json=body, headers=_task_headers(), timeout=30)
            log.info("event=tasks.local.loopback path=%s status=%s", path, resp.status_code)
        except requests.RequestException as exc:
            log.warning("event=tasks.local.loopback_failed path=%s error=%s", path, exc)

    threading.Thread(target=_runner, name=f"task-loopback-{task_id}", daemon=True).start()
    log.info("event=tasks.local.dispatched path=%s url=%s task_id=%s", path, url, task_id)
    return {"name": task_id}


def enqueue_http_task(path: str, body: dict) -> dict:
    """Enqueue an HTTP task.

    Args:
        path: Task endpoint path (e.g., "/api/tasks/import/rewardful")
        body: Task payload as a dictionary

    Returns:
        Dictionary with "name" key containing task identifier

    Raises:
        ValueError: If required configuration is missing
        RuntimeError: If the task could not be created
    """
    log.info("event=tasks.enqueue_http_task.start path=%s", path)

    if _env_flag("TASKS_DRY_RUN"):
        task_id = f"dry-run-{datetime.now(timezone.utc).isoformat()}"
        log.info("event=tasks.dry_run path=%s task_id=%s", path, task_id)
        return {"name": task_id}

    if not should_use_cloud_tasks():
        log.info("event=tasks.enqueue_http_task.using_local_dispatch path=%s", path)
        return _dispatch_local_task(path, body)

    project = os.getenv("GOOGLE_CLOUD_PROJECT")
    location = os.getenv("TASKS_LOCATION")
    queue = os.getenv("TASKS_QUEUE")
    url = f"{os.getenv('TASKS_URL_BASE', '').rstrip('/')}{path}"

    if not os.getenv("TASKS_AUTH"):
        log.warning("event=tasks.enqueue_http_task.tasks_auth_missing path=%s", path)

    try:
        client = tasks_v2.CloudTasksClient()
        parent = client.queue_path(project, location, queue)
        task = tasks_v2.Task(
            http_request=tasks_v2.HttpRequest(
                http_method=tasks_v2.HttpMethod.POST,
                url=url,
                headers=_task_headers(),
                body=json.dumps(body, default=str).encode(),
            )
        )
        created = client.create_task(request={"parent": parent, "task": task})
    except Exception as e:
        log.error("event=tasks.enqueue_http_task.create_task_failed path=%s url=%s error=%s", path, url, str(e))
        raise RuntimeError(f"Failed to create Cloud Task: {e}") from e

    log.info("event=tasks.cloud.enqueued path=%s url=%s task_name=%s", path, url, created.name)
    return {"name": created.name}
