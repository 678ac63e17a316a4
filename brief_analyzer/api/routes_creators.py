from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from brief_analyzer.api.dependencies import get_service
from brief_analyzer.briefs.models import Creator, SubscriptionTier
from brief_analyzer.briefs.service import BriefService

router = APIRouter(prefix="/creators", tags=["creators"])


class CreatorRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=100)
    subscription_tier: SubscriptionTier = SubscriptionTier.STARTER


@router.post("", response_model=Creator, status_code=201)
async def register_creator(
    request: CreatorRequest,
    service: BriefService = Depends(get_service),
) -> Creator:
    """Register a creator and their plan so briefs can be attributed to them."""
    return service.register_creator(
        Creator(full_name=request.full_name, subscription_tier=request.subscription_tier)
    )
