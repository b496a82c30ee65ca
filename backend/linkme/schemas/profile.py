"""
LinkMe Backend - Profile Schemas
==================================

What:  Request/response models for /api/profiles.
Who:   ProfileService builds the responses; routes declare them as
       response_model.

Two read shapes exist on purpose:
    - ProfileResponse: the owner's view (counters, activity flag, owner id)
    - PublicProfileResponse: what a visitor scanning the card sees
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

ProfileType = Literal["personal", "business"]


class ProfileCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    profile_type: ProfileType = Field(default="personal")
    title: Optional[str] = Field(default=None, max_length=160)
    bio: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)
    design_mode: Optional[str] = Field(default=None, max_length=20)
    template: Optional[str] = Field(default=None, max_length=50)
    avatar_url: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class ProfileUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    profile_type: Optional[ProfileType] = None
    title: Optional[str] = Field(default=None, max_length=160)
    bio: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)
    design_mode: Optional[str] = Field(default=None, max_length=20)
    template: Optional[str] = Field(default=None, max_length=50)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class ProfileResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    slug: str
    profile_type: str
    name: str
    title: Optional[str] = None
    bio: Optional[str] = None
    color: Optional[str] = None
    design_mode: Optional[str] = None
    template: Optional[str] = None
    avatar_url: Optional[str] = None
    view_count: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProfileListResponse(BaseModel):
    profiles: List[ProfileResponse]
    total: int


class PublicSocialLink(BaseModel):
    id: uuid.UUID
    platform: str
    url: str
    label: Optional[str] = None
    display_order: int

    model_config = {"from_attributes": True}


class PublicProfileResponse(BaseModel):
    """The card as rendered for anonymous visitors. No owner id, no counters."""
    id: uuid.UUID
    slug: str
    profile_type: str
    name: str
    title: Optional[str] = None
    bio: Optional[str] = None
    color: Optional[str] = None
    design_mode: Optional[str] = None
    template: Optional[str] = None
    avatar_url: Optional[str] = None
    social_links: List[PublicSocialLink] = Field(default_factory=list)


QRFormat = Literal["svg", "png"]


class QRCodeResponse(BaseModel):
    """A scannable code for the public card, as a data URI ready for <img src>."""
    profile_id: uuid.UUID
    slug: str
    url: str = Field(description="Encoded target: the public card with source=qr")
    format: QRFormat
    data_uri: str
