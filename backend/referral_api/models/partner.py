from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..core.ids import create_id
from .enums import EnrollmentStatus


class Partner(SQLModel, table=True):
    """External collaborator; one row per email across all programs."""
    id: str = Field(default_factory=lambda: create_id("pn_"), primary_key=True)
    name: str = Field(max_length=190)
    email: str = Field(unique=True, index=True, max_length=190)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ProgramEnrollment(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("program_id", "partner_id", name="uq_enrollment_program_partner"),)

    id: str = Field(default_factory=lambda: create_id("pe_"), primary_key=True)
    program_id: str = Field(foreign_key="program.id", index=True)
    partner_id: str = Field(foreign_key="partner.id", index=True)
    link_id: Optional[str] = Field(default=None, foreign_key="link.id")
    reward_id: Optional[str] = Field(default=None, foreign_key="reward.id")
    status: EnrollmentStatus = Field(default=EnrollmentStatus.pending)
    created_at: datetime = Field(default_factory=datetime.utcnow)
