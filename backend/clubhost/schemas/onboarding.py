"""Host onboarding schemas."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Model exchanged with the onboarding frontend in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClubDraftUpdate(_CamelModel):
    """Club draft fields saved while the candidate host fills in the onboarding form."""

    name: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=1000)
    auto_generate_name: bool = False
    step: Optional[str] = Field(None, max_length=64)


class OnboardingState(_CamelModel):
    """The user's onboarding document after a write."""

    onboarding: Dict[str, Any]


class HostClub(_CamelModel):
    """Club created or reused for a candidate host."""

    club_id: str
    slug: str
    created: bool = False


class SelectPlanResponse(_CamelModel):
    """Checkout session started for a host plan."""

    session_id: str
    checkout_url: Optional[str]
    club_id: str
    slug: str
