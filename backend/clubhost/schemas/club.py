"""Club schemas."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ClubBase(BaseModel):
    """Base schema for Club."""

    name: str = Field(..., max_length=120)
    description: Optional[str] = Field(None, max_length=1000)


class ClubCreate(ClubBase):
    """Schema for creating a Club object."""

    host_id: str
    slug: str
    plan_type: str
    billing_tier: str
    billing: Dict[str, Any] = Field(default_factory=dict)
    members_count: int = 0
    max_members: Optional[int] = None
    member_cost: float = 0


class Club(ClubBase):
    """Schema for a Club as stored."""

    model_config = {"from_attributes": True}

    id: str
    host_id: Optional[str]
    slug: str
    plan_type: str
    billing_tier: str
    billing: Dict[str, Any]
    members_count: int
    max_members: Optional[int]
    member_cost: float
    created_at: datetime
    modified_at: datetime
