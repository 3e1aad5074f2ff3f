"""Best-effort background work dispatched after a request's transaction commits.

A :class:`BestEffortBatch` is a set of independent tasks. Each task runs
inside its own failure boundary: an exception is logged once with
``event=best_effort.task_failed`` and swallowed, so one failing task never
affects its siblings or the caller. There are no retries, no ordering
guarantees and no timeouts.

With ``BACKGROUND_TASKS_EAGER`` set the tasks run inline, which keeps tests
deterministic.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..core.config import settings

log = logging.getLogger(__name__)

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=settings.BACKGROUND_MAX_WORKERS,
                thread_name_prefix="best-effort",
            )
        return _executor


def shutdown_background_pool(wait: bool = True) -> None:
    global _executor
    with _executor_lock:
        if _executor is not None:
            _executor.shutdown(wait=wait)
            _executor = None


def _run_guarded(batch: str, name: str, fn: Callable[..., Any], args: tuple, kwargs: dict) -> bool:
    try:
        fn(*args, **kwargs)
    except Exception:
        log.exception("event=best_effort.task_failed batch=%s task=%s", batch, name)
        return False
    log.info("event=best_effort.task_ok batch=%s task=%s", batch, name)
    return True


def _submit(batch: str, name: str, fn: Callable[..., Any], args: tuple, kwargs: dict) -> "Future[bool]":
    if settings.BACKGROUND_TASKS_EAGER:
        future: Future[bool] = Future()
        future.set_result(_run_guarded(batch, name, fn, args, kwargs))
        return future
    return _get_executor().submit(_run_guarded, batch, name, fn, args, kwargs)


@dataclass
class _Task:
    name: str
    fn: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)


class BestEffortBatch:
    """Independent tasks dispatched together, each failing on its own.

    Futures returned by :meth:`dispatch` resolve to ``True`` when the task
    completed and ``False`` when it raised; they never raise themselves.
    """

    def __init__(self, label: str) -> None:
        self.label = label
        self._tasks: list[_Task] = []
        self._dispatched = False

    def add(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> "BestEffortBatch":
        if self._dispatched:
            raise RuntimeError(f"Batch {self.label} already dispatched")
        if any(task.name == name for task in self._tasks):
            raise ValueError(f"Batch {self.label} already has a task named {name}")
        self._tasks.append(_Task(name=name, fn=fn, args=args, kwargs=kwargs))
        return self

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def task_names(self) -> list[str]:
        return [task.name for task in self._tasks]

    def dispatch(self) -> dict[str, "Future[bool]"]:
        if self._dispatched:
            raise RuntimeError(f"Batch {self.label} already dispatched")
        self._dispatched = True
        log.info("event=best_effort.dispatch batch=%s tasks=%s", self.label, len(self._tasks))
        return {task.name: _submit(self.label, task.name, task.fn, task.args, task.kwargs) for task in self._tasks}


def submit_background(name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> "Future[bool]":
    """Fire-and-forget a single task with the same failure boundary as a batch."""
    return _submit("single", name, fn, args, kwargs)
