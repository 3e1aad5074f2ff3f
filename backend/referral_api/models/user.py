from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import EmailStr
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """An operator who can act on one or more workspaces."""
    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    email: EmailStr = Field(unique=True, index=True)
    name: Optional[str] = Field(default=None, max_length=120)
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
