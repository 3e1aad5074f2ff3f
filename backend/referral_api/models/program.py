from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Index, text
from sqlalchemy import Boolean
from sqlmodel import Field, SQLModel

from ..core.ids import create_id
from .enums import LinkStructure, RewardEvent, RewardType

COOKIE_LENGTH_OPTIONS: tuple[int, ...] = (7, 14, 30, 60, 90, 180)
DEFAULT_COOKIE_LENGTH = 90


class Program(SQLModel, table=True):
    """An affiliate/referral campaign owned by exactly one workspace."""
    id: str = Field(default_factory=lambda: create_id("prog_"), primary_key=True)
    workspace_id: str = Field(foreign_key="workspace.id", index=True)
    name: str = Field(max_length=190)
    slug: str = Field(unique=True, index=True, max_length=64)
    domain: Optional[str] = Field(default=None, max_length=190)
    url: Optional[str] = Field(default=None)
    cookie_length: int = Field(default=DEFAULT_COOKIE_LENGTH, description="Days a referral cookie stays active")
    default_folder_id: Optional[str] = Field(default=None, foreign_key="folder.id")
    link_structure: LinkStructure = Field(default=LinkStructure.short)
    support_email: Optional[str] = Field(default=None)
    help_url: Optional[str] = Field(default=None)
    terms_url: Optional[str] = Field(default=None)
    logo: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Reward(SQLModel, table=True):
    # One default reward per program
    __table_args__ = (
        Index(
            "uq_reward_default_per_program",
            "program_id",
            unique=True,
            sqlite_where=text('"default" = 1'),
            postgresql_where=text('"default" IS TRUE'),
        ),
    )

    id: str = Field(default_factory=lambda: create_id("rw_"), primary_key=True)
    program_id: str = Field(foreign_key="program.id", index=True)
    event: RewardEvent = Field(default=RewardEvent.sale)
    type: RewardType = Field(default=RewardType.percentage)
    amount: int = Field(ge=0)
    max_duration: Optional[int] = Field(default=None, description="Months the reward keeps paying; None means lifetime")
    default: bool = Field(default=False, sa_column=Column("default", Boolean, nullable=False, server_default=text("false")))
    created_at: datetime = Field(default_factory=datetime.utcnow)


class RewardPublic(SQLModel):
    id: str
    event: RewardEvent
    type: RewardType
    amount: int
    max_duration: Optional[int] = None
    default: bool


class ProgramPublic(SQLModel):
    id: str
    workspace_id: str
    name: str
    slug: str
    domain: Optional[str] = None
    url: Optional[str] = None
    cookie_length: int
    default_folder_id: Optional[str] = None
    link_structure: LinkStructure
    support_email: Optional[str] = None
    help_url: Optional[str] = None
    terms_url: Optional[str] = None
    logo: Optional[str] = None
    created_at: datetime
    updated_at: datetime
