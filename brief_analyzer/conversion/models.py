from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class DealOverrides(BaseModel):
    """Creator edits applied on top of the extracted values."""

    brand_name: Optional[str] = None
    campaign_name: Optional[str] = None
    platform: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    gst_applicable: Optional[bool] = None
    tds_applicable: Optional[bool] = None
    response_deadline: Optional[datetime] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class BrandProfile(BaseModel):
    name: str
    contact_person: str = ""
    email: str = ""
    phone: str = ""


class DealValue(BaseModel):
    amount: float = Field(ge=0)
    currency: str = "INR"
    gst_applicable: bool = True
    tds_applicable: bool = False


class DealDeliverable(BaseModel):
    type: str
    description: str = ""
    quantity: int = Field(ge=1)
    platform: str = ""
    status: str = "pending"
    requirements: list[str] = Field(default_factory=list)


class DealTimeline(BaseModel):
    pitched_date: datetime
    response_deadline: datetime
    content_deadline: Optional[date] = None
    live_date: Optional[date] = None


class BriefReference(BaseModel):
    brief_id: str
    extraction_date: Optional[datetime] = None


class DraftDeal(BaseModel):
    """Deal-creation payload produced from a ready brief."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    creator_id: str
    brand_profile: BrandProfile
    campaign_name: str
    platform: str
    deal_value: DealValue
    deliverables: list[DealDeliverable]
    timeline: DealTimeline
    stage: str = "pitched"
    priority: str = "medium"
    brief_reference: BriefReference
    subscription_tier: str = "starter"
