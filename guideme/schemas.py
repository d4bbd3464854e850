"""
Pydantic schemas for the Guide Me ABC API.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CategoryOut(BaseModel):
    id: str
    name: str


class CategoriesResponse(BaseModel):
    data: list[CategoryOut]


class ListingWrite(BaseModel):
    """Owner-editable listing columns; anything else is rejected."""

    model_config = ConfigDict(extra="forbid")

    # Ignored; the owner always comes from the signed-in user.
    user_id: Any = None

    business_name: Optional[str] = None
    category_id: Optional[str] = None
    island: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    whatsapp: Optional[str] = None
    route_url: Optional[str] = None
    logo_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    opening_hours: Optional[str] = None
    highlight_1: Optional[str] = None
    highlight_2: Optional[str] = None
    highlight_3: Optional[str] = None
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    tiktok: Optional[str] = None


class ContactRequest(BaseModel):
    lang: Optional[str] = None
    name: str = Field(..., min_length=2)
    email: EmailStr
    subject: str = Field(..., min_length=2)
    message: str = Field(..., min_length=10)


class TrackClickRequest(BaseModel):
    businessId: Optional[str] = None
    eventType: Optional[str] = None
    path: Optional[str] = None
    lang: Optional[str] = None
    island: Optional[str] = None


class AskRequest(BaseModel):
    question: str = ""
    island: Optional[str] = None
    lang: str = "en"


class AskResponse(BaseModel):
    answer: str
    plan: Optional[str] = None


class SearchHit(BaseModel):
    id: str
    business_name: str
    island: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None


class SearchResponse(BaseModel):
    data: list[SearchHit]


class MediaUploadResponse(BaseModel):
    url: str
    public_url: str
    content_type: str


class ClickStatsResponse(BaseModel):
    days: int
    stats: dict[str, int]


class SubscriptionOverrideRequest(BaseModel):
    businessId: Optional[str] = None
    plan: Optional[str] = None
    status: Optional[str] = None


class ListingStatusRequest(BaseModel):
    ref: str
    status: str


class ListingVerifiedRequest(BaseModel):
    ref: str
    verified: bool


class ListingPlanRequest(BaseModel):
    ref: str
    plan: str


class ListingRefRequest(BaseModel):
    ref: str


class ToggleRoleRequest(BaseModel):
    userId: Optional[str] = None
    role: Optional[str] = None


class ToggleBlockedRequest(BaseModel):
    userId: Optional[str] = None


class MagicLinkRequest(BaseModel):
    email: EmailStr
    lang: str = "en"
    redirectTo: Optional[str] = None


class MfaTokenRequest(BaseModel):
    token: str = Field(..., min_length=6, max_length=10)


class MfaSetupResponse(BaseModel):
    otpauth_uri: str
    qr_code: str


class CheckoutRequest(BaseModel):
    plan: str
    businessId: str
    lang: str = "en"


class CheckoutResponse(BaseModel):
    url: str


class CreateBusinessRequest(BaseModel):
    name: str = ""
    island: str = ""
    category_id: str = ""
