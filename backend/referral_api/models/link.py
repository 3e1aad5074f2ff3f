from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..core.ids import create_id


class Link(SQLModel, table=True):
    """A trackable short URL bound to ``domain/key``."""
    __table_args__ = (UniqueConstraint("domain", "key", name="uq_link_domain_key"),)

    id: str = Field(default_factory=lambda: create_id("link_"), primary_key=True)
    workspace_id: str = Field(foreign_key="workspace.id", index=True)
    domain: str = Field(max_length=190)
    key: str = Field(max_length=190)
    url: str
    short_link: str
    program_id: Optional[str] = Field(default=None, foreign_key="program.id", index=True)
    partner_id: Optional[str] = Field(default=None, foreign_key="partner.id", index=True)
    folder_id: Optional[str] = Field(default=None, foreign_key="folder.id")
    track_conversion: bool = Field(default=False)
    user_id: Optional[UUID] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
