"""
LinkMe Backend - Social Link Schemas
======================================

What:  Request/response models for /api/social-links.
Who:   SocialLinkService builds the responses; the URL scheme rule lives in
       the service (ValidationError → 400), not here.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SocialLinkFields(BaseModel):
    platform: str = Field(min_length=1, max_length=50)
    url: str = Field(min_length=1, max_length=500)
    label: Optional[str] = Field(default=None, max_length=120)
    is_visible: bool = True


class SocialLinkCreate(SocialLinkFields):
    profile_id: uuid.UUID


class SocialLinkBulkCreate(BaseModel):
    profile_id: uuid.UUID
    links: List[SocialLinkFields] = Field(min_length=1, max_length=50)


class SocialLinkUpdate(BaseModel):
    platform: Optional[str] = Field(default=None, min_length=1, max_length=50)
    url: Optional[str] = Field(default=None, min_length=1, max_length=500)
    label: Optional[str] = Field(default=None, max_length=120)
    is_visible: Optional[bool] = None
    display_order: Optional[int] = Field(default=None, ge=0)


class SocialLinkResponse(BaseModel):
    id: uuid.UUID
    profile_id: uuid.UUID
    platform: str
    url: str
    label: Optional[str] = None
    is_visible: bool
    display_order: int
    click_count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SocialLinkListResponse(BaseModel):
    links: List[SocialLinkResponse]
    total: int


class LinkOrder(BaseModel):
    id: uuid.UUID
    order: int = Field(ge=0)


class ReorderRequest(BaseModel):
    links: List[LinkOrder]


class BulkDeleteRequest(BaseModel):
    link_ids: List[uuid.UUID] = Field(min_length=1)


class BulkDeleteResponse(BaseModel):
    message: str
    deleted_count: int


class LinkClickStat(BaseModel):
    id: uuid.UUID
    platform: str
    label: Optional[str] = None
    click_count: int
    is_visible: bool


class LinkStatisticsResponse(BaseModel):
    total_links: int
    visible_links: int
    total_clicks: int
    links: List[LinkClickStat] = Field(description="Sorted by click_count, highest first")


class ClickResponse(BaseModel):
    message: str = "Click tracked"
    click_count: int
