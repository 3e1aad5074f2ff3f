from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from sqlmodel import Field, SQLModel

from ..core.ids import create_id


class ProgramOnboarding(SQLModel, table=True):
    """Onboarding answers staged for a workspace before its program exists.

    Created on the first wizard step, merged on every later step, and
    deleted inside the provisioning transaction. A workspace has at most one.
    """

    id: str = Field(default_factory=lambda: create_id("pob_"), primary_key=True)
    workspace_id: str = Field(foreign_key="workspace.id", unique=True, index=True)
    payload_json: str = Field(default="{}")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def payload(self) -> dict[str, Any]:
        try:
            data = json.loads(self.payload_json or "{}")
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
