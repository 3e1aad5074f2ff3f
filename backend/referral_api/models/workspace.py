from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..core.ids import create_id
from .enums import FolderAccessLevel, FolderUserRole, WorkspaceRole


class Workspace(SQLModel, table=True):
    """Tenant that owns programs, folders, domains and links."""
    id: str = Field(default_factory=lambda: create_id("ws_"), primary_key=True)
    slug: str = Field(unique=True, index=True, max_length=64)
    name: str = Field(max_length=190)
    plan: str = Field(default="free", max_length=32)
    # Generic key/value blob for unrelated features; onboarding is staged in ProgramOnboarding
    store_json: str = Field(default="{}")
    webhook_enabled: bool = Field(default=False)
    invoice_prefix: Optional[str] = Field(default=None, max_length=16)
    default_program_id: Optional[str] = Field(default=None, index=True)
    folders_usage: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class WorkspaceUser(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("workspace_id", "user_id", name="uq_workspace_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    workspace_id: str = Field(foreign_key="workspace.id", index=True)
    user_id: UUID = Field(foreign_key="user.id", index=True)
    role: WorkspaceRole = Field(default=WorkspaceRole.member)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Domain(SQLModel, table=True):
    """A short-link domain registered to (and claimed by) a workspace."""
    slug: str = Field(primary_key=True, max_length=190)
    workspace_id: str = Field(foreign_key="workspace.id", index=True)
    verified: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Folder(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("name", "workspace_id", name="uq_folder_name_workspace"),)

    id: str = Field(default_factory=lambda: create_id("fold_"), primary_key=True)
    name: str = Field(max_length=190)
    workspace_id: str = Field(foreign_key="workspace.id", index=True)
    access_level: Optional[FolderAccessLevel] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class FolderUser(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("folder_id", "user_id", name="uq_folder_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    folder_id: str = Field(foreign_key="folder.id", index=True)
    user_id: UUID = Field(foreign_key="user.id", index=True)
    role: FolderUserRole = Field(default=FolderUserRole.viewer)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class FolderPublic(SQLModel):
    id: str
    name: str
    access_level: Optional[FolderAccessLevel] = None
