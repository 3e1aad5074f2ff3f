"""Schema of the onboarding answers staged before a program is provisioned."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator

from ..models.enums import LinkStructure, RewardEvent, RewardType

MAX_ONBOARDING_PARTNERS = 10


class OnboardingPartner(BaseModel):
    email: EmailStr
    key: str = Field(min_length=1, max_length=190)
    name: Optional[str] = Field(default=None, max_length=190)


class RewardfulCampaign(BaseModel):
    """External campaign picked during onboarding; extra fields are kept as-is."""
    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)


class ProgramOnboardingData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1, max_length=190)
    domain: str = Field(min_length=1, max_length=190)
    url: HttpUrl
    link_structure: LinkStructure = Field(default=LinkStructure.short, alias="linkStructure")
    support_email: Optional[EmailStr] = Field(default=None, alias="supportEmail")
    help_url: Optional[HttpUrl] = Field(default=None, alias="helpUrl")
    terms_url: Optional[HttpUrl] = Field(default=None, alias="termsUrl")
    logo: Optional[str] = None

    default_reward_type: RewardEvent = Field(default=RewardEvent.lead, alias="defaultRewardType")
    type: Optional[RewardType] = None
    amount: Optional[int] = Field(default=None, ge=0)
    max_duration: Optional[int] = Field(default=None, ge=0, alias="maxDuration")

    partners: Optional[list[OnboardingPartner]] = Field(default=None, max_length=MAX_ONBOARDING_PARTNERS)
    rewardful: Optional[RewardfulCampaign] = None
    program_type: Literal["new", "import"] = Field(default="new", alias="programType")

    @field_validator("domain")
    @classmethod
    def _normalize_domain(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("partners")
    @classmethod
    def _unique_partners(cls, value: Optional[list[OnboardingPartner]]) -> Optional[list[OnboardingPartner]]:
        if not value:
            return value
        emails = [str(p.email).lower() for p in value]
        if len(set(emails)) != len(emails):
            raise ValueError("Each partner email can only be invited once")
        keys = [p.key.strip().strip("/") for p in value]
        if len(set(keys)) != len(keys):
            raise ValueError("Each partner link key must be unique")
        return value

    @field_validator("default_reward_type")
    @classmethod
    def _reward_event_is_lead_or_sale(cls, value: RewardEvent) -> RewardEvent:
        if value not in (RewardEvent.lead, RewardEvent.sale):
            raise ValueError("Default reward must trigger on a lead or a sale")
        return value

    @property
    def has_default_reward(self) -> bool:
        # A zero amount means "no reward configured yet"
        return bool(self.type and self.amount)


class ProgramOnboardingUpdate(BaseModel):
    """Partial onboarding answers from one wizard step; merged into the staged payload."""
    model_config = ConfigDict(extra="allow")
