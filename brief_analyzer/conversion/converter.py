from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Optional

from brief_analyzer.briefs.models import (
    Brief,
    BriefStatus,
    ConversionMethod,
    DealConversion,
    Deliverable,
    utcnow,
)
from brief_analyzer.conversion.models import (
    BrandProfile,
    BriefReference,
    DealDeliverable,
    DealOverrides,
    DealTimeline,
    DealValue,
    DraftDeal,
)
from brief_analyzer.errors import AlreadyConverted, NotReady
from brief_analyzer.scoring.completion import estimated_value, is_ready_for_deal

logger = logging.getLogger(__name__)

# Also the tie-break order when two platforms have the same count.
PLATFORM_PRIORITY = ["instagram", "youtube", "linkedin", "twitter"]
DEFAULT_PLATFORM = "instagram"
DEFAULT_BRAND_NAME = "Brand Name Required"
DEFAULT_CAMPAIGN_NAME = "Campaign from Brief"

DealSink = Callable[[DraftDeal, Brief], str]


def platform_of(deliverable_type: str) -> str:
    for platform in PLATFORM_PRIORITY:
        if deliverable_type.startswith(platform):
            return platform
    return DEFAULT_PLATFORM


def primary_platform(deliverables: list[Deliverable]) -> str:
    """Most frequent platform across deliverables; instagram when empty."""
    if not deliverables:
        return DEFAULT_PLATFORM
    counts = Counter(platform_of(d.type) for d in deliverables)
    return max(PLATFORM_PRIORITY, key=lambda p: (counts[p], -PLATFORM_PRIORITY.index(p)))


def build_draft_deal(
    brief: Brief,
    overrides: DealOverrides,
    now: datetime,
    response_deadline_days: int = 7,
    currency: str = "INR",
) -> DraftDeal:
    ai = brief.ai_extraction

    amount = overrides.amount if overrides.amount is not None else estimated_value(brief)
    response_deadline = overrides.response_deadline or now + timedelta(days=response_deadline_days)

    return DraftDeal(
        creator_id=brief.creator_id,
        brand_profile=BrandProfile(
            name=overrides.brand_name or ai.brand_info.name or DEFAULT_BRAND_NAME,
            contact_person=ai.brand_info.contact_person,
            email=ai.brand_info.email,
            phone=ai.brand_info.phone,
        ),
        campaign_name=overrides.campaign_name or ai.campaign_info.name or DEFAULT_CAMPAIGN_NAME,
        platform=overrides.platform or primary_platform(ai.deliverables),
        deal_value=DealValue(
            amount=amount,
            currency=currency,
            gst_applicable=True if overrides.gst_applicable is None else overrides.gst_applicable,
            tds_applicable=False if overrides.tds_applicable is None else overrides.tds_applicable,
        ),
        deliverables=[
            DealDeliverable(
                type=d.type,
                description=d.description,
                quantity=d.quantity,
                platform=d.platform,
                requirements=list(d.requirements),
            )
            for d in ai.deliverables
        ],
        timeline=DealTimeline(
            pitched_date=now,
            response_deadline=response_deadline,
            content_deadline=ai.timeline.content_deadline,
            live_date=ai.timeline.posting_start_date,
        ),
        stage="pitched",
        priority="high" if ai.timeline.is_urgent else "medium",
        brief_reference=BriefReference(brief_id=brief.id, extraction_date=brief.last_processed_at),
        subscription_tier=brief.subscription_tier.value,
    )


class DealConverter:
    """Turns a ready brief into a draft deal and marks the brief converted.

    ``deal_sink`` receives the draft together with the converted brief and
    must persist both atomically, returning the deal id.
    """

    def __init__(
        self,
        deal_sink: DealSink,
        response_deadline_days: int = 7,
        currency: str = "INR",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._deal_sink = deal_sink
        self._response_deadline_days = response_deadline_days
        self._currency = currency
        self._clock = clock

    def _check_convertible(self, brief: Brief) -> None:
        if brief.deal_conversion.is_converted:
            raise AlreadyConverted("Brief has already been converted to a deal")
        if not is_ready_for_deal(brief):
            raise NotReady("Brief has critical missing information. Please complete clarifications first.")

    def preview(self, brief: Brief, overrides: Optional[DealOverrides] = None) -> DraftDeal:
        """The deal ``convert`` would create, without persisting anything."""
        self._check_convertible(brief)
        return build_draft_deal(
            brief,
            overrides or DealOverrides(),
            self._clock(),
            self._response_deadline_days,
            self._currency,
        )

    def convert(self, brief: Brief, overrides: Optional[DealOverrides] = None) -> DraftDeal:
        overrides = overrides or DealOverrides()
        self._check_convertible(brief)

        now = self._clock()
        draft = build_draft_deal(brief, overrides, now, self._response_deadline_days, self._currency)

        converted = brief.model_copy(deep=True)
        converted.deal_conversion = DealConversion(
            is_converted=True,
            deal_id=draft.id,
            converted_at=now,
            conversion_method=ConversionMethod.ONE_CLICK if overrides.is_empty() else ConversionMethod.MANUAL_EDIT,
        )
        converted.status = BriefStatus.CONVERTED

        deal_id = self._deal_sink(draft, converted)
        logger.info(
            "Brief %s converted to deal %s (value %.2f)",
            brief.id,
            deal_id,
            draft.deal_value.amount,
        )
        return draft
