"""User schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class UserBase(BaseModel):
    """Base schema for User."""

    email: Optional[str] = None
    display_name: Optional[str] = None


class UserCreate(UserBase):
    """Schema for creating a User object.

    The id is the uid issued by the identity provider.
    """

    id: str
    roles: Dict[str, bool] = Field(default_factory=lambda: {"user": True})
    host_status: Dict[str, Any] = Field(default_factory=dict)
    onboarding: Dict[str, Any] = Field(default_factory=dict)
    clubs_hosted: List[str] = Field(default_factory=list)
    clubs_joined: List[str] = Field(default_factory=list)


class User(UserBase):
    """Schema for a User as stored."""

    model_config = {"from_attributes": True}

    id: str
    roles: Dict[str, bool]
    host_status: Dict[str, Any]
    onboarding: Dict[str, Any]
    clubs_hosted: List[str]
    clubs_joined: List[str]
    created_at: datetime
    modified_at: datetime
