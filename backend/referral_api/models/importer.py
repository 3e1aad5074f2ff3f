from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class ImporterCredential(SQLModel, table=True):
    """Credentials for an external referral system, keyed by workspace and provider."""
    __table_args__ = (UniqueConstraint("workspace_id", "provider", name="uq_importer_workspace_provider"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    workspace_id: str = Field(foreign_key="workspace.id", index=True)
    provider: str = Field(max_length=32)
    data_json: str = Field(default="{}")
    updated_at: datetime = Field(default_factory=datetime.utcnow)
