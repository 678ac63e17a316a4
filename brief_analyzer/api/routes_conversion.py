from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends

from brief_analyzer.api.dependencies import get_creator_id, get_service
from brief_analyzer.briefs.service import BriefService
from brief_analyzer.conversion.models import DealOverrides, DraftDeal

router = APIRouter(prefix="/briefs", tags=["conversion"])


@router.post("/{brief_id}/convert", response_model=DraftDeal, status_code=201)
async def convert_to_deal(
    brief_id: str,
    overrides: Optional[DealOverrides] = Body(default=None),
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> DraftDeal:
    """Turn an analyzed brief into a draft deal. Each brief converts at most once."""
    return service.convert_to_deal(brief_id, creator_id, overrides)


@router.get("/{brief_id}/deal-preview", response_model=DraftDeal)
async def deal_preview(
    brief_id: str,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> DraftDeal:
    """The draft deal a one-click conversion would create. Nothing is stored."""
    return service.deal_preview(brief_id, creator_id)
