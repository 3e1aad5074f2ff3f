from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from ..models.enums import LinkStructure
from ..models.program import COOKIE_LENGTH_OPTIONS


class UpdateProgramLinkSettings(BaseModel):
    """Body of the link-settings update action."""
    model_config = ConfigDict(populate_by_name=True)

    workspace_id: str = Field(alias="workspaceId")
    domain: str = Field(min_length=1, max_length=190)
    url: HttpUrl
    cookie_length: int = Field(alias="cookieLength")
    default_folder_id: Optional[str] = Field(default=None, alias="defaultFolderId")
    link_structure: LinkStructure = Field(alias="linkStructure")

    @field_validator("domain")
    @classmethod
    def _normalize_domain(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("cookie_length")
    @classmethod
    def _check_cookie_length(cls, value: int) -> int:
        if value not in COOKIE_LENGTH_OPTIONS:
            allowed = ", ".join(str(v) for v in COOKIE_LENGTH_OPTIONS)
            raise ValueError(f"Cookie length must be one of {allowed} days")
        return value

    @field_validator("default_folder_id", mode="before")
    @classmethod
    def _blank_folder_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class RewardfulCredentialsIn(BaseModel):
    api_token: str = Field(min_length=8, alias="apiToken")

    model_config = ConfigDict(populate_by_name=True)
