"""Credential storage and job queueing for the Rewardful campaign importer.

Credentials live in ``ImporterCredential`` rows; the import itself runs in a
separate worker that consumes the queued task.
"""
from __future__ import annotations

import json
import logging
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Callable, Optional

from sqlmodel import Session, select

from infrastructure.tasks_client import enqueue_http_task

from ...core.database import session_scope
from ...models.importer import ImporterCredential

log = logging.getLogger(__name__)


class ImporterError(Exception):
    pass


class RewardfulImporter:
    provider = "rewardful"
    task_path = "/api/tasks/import/rewardful"

    def __init__(self, session_factory: Callable[[], AbstractContextManager[Session]] = session_scope) -> None:
        self._session_factory = session_factory

    def _row(self, session: Session, workspace_id: str) -> Optional[ImporterCredential]:
        return session.exec(
            select(ImporterCredential).where(
                ImporterCredential.workspace_id == workspace_id,
                ImporterCredential.provider == self.provider,
            )
        ).first()

    def get_credentials(self, workspace_id: str) -> dict[str, Any]:
        with self._session_factory() as session:
            row = self._row(session, workspace_id)
            if row is None:
                raise ImporterError("Rewardful credentials not found")
            return json.loads(row.data_json or "{}")

    def set_credentials(self, workspace_id: str, credentials: dict[str, Any]) -> None:
        with self._session_factory() as session:
            row = self._row(session, workspace_id)
            if row is None:
                row = ImporterCredential(workspace_id=workspace_id, provider=self.provider)
            row.data_json = json.dumps(credentials)
            row.updated_at = datetime.utcnow()
            session.add(row)
            session.commit()
        log.info("event=importer.credentials_saved provider=%s workspace_id=%s", self.provider, workspace_id)

    def queue(self, program_id: str, action: str, **extra: Any) -> dict:
        body = {"program_id": program_id, "action": action, **extra}
        result = enqueue_http_task(self.task_path, body)
        log.info(
            "event=importer.queued provider=%s program_id=%s action=%s task=%s",
            self.provider, program_id, action, result.get("name"),
        )
        return result


rewardful_importer = RewardfulImporter()
