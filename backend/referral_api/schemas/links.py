from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class LinkPayload(BaseModel):
    """Unvalidated link request handed to ``process_link``."""
    domain: str
    key: str
    url: str
    program_id: Optional[str] = None
    folder_id: Optional[str] = None
    track_conversion: bool = False


class PartnerInput(BaseModel):
    name: str = Field(min_length=1, max_length=190)
    email: EmailStr
