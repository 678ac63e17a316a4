"""Unit tests for converting ready briefs into draft deals."""

from datetime import date, datetime, timedelta, timezone

import pytest

from brief_analyzer.briefs.models import (
    AIExtraction,
    Brief,
    BriefStatus,
    ConversionMethod,
    Deliverable,
    ExtractionStatus,
    Importance,
    InputType,
    MissingInfoCategory,
    MissingInfoItem,
)
from brief_analyzer.conversion.converter import (
    DEFAULT_BRAND_NAME,
    DEFAULT_CAMPAIGN_NAME,
    DealConverter,
    build_draft_deal,
    platform_of,
    primary_platform,
)
from brief_analyzer.conversion.models import DealOverrides
from brief_analyzer.errors import AlreadyConverted, NotReady

NOW = datetime(2025, 5, 1, 9, tzinfo=timezone.utc)


def _ready_brief(**extraction) -> Brief:
    fields = {
        "status": ExtractionStatus.COMPLETED,
        "brand_info": {"name": "Acme", "email": "deals@acme.in"},
        "campaign_info": {"name": "Summer Drop"},
        "deliverables": [
            Deliverable(type="instagram_reel", quantity=2, estimated_value=20000),
            Deliverable(type="youtube_video", estimated_value=10000),
        ],
        "timeline": {"content_deadline": date(2025, 5, 20), "posting_start_date": date(2025, 5, 25)},
        **extraction,
    }
    return Brief(
        creator_id="c1",
        input_type=InputType.TEXT_PASTE,
        ai_extraction=AIExtraction(**fields),
        status=BriefStatus.READY_FOR_DEAL,
    )


class RecordingSink:
    def __init__(self):
        self.calls = []

    def __call__(self, deal, brief):
        self.calls.append((deal, brief))
        return deal.id


# ---------------------------------------------------------------------------
# Platform selection
# ---------------------------------------------------------------------------


class TestPlatform:
    def test_prefix_classification(self):
        assert platform_of("instagram_reel") == "instagram"
        assert platform_of("youtube_short") == "youtube"
        assert platform_of("linkedin_article") == "linkedin"
        assert platform_of("twitter_thread") == "twitter"

    def test_other_platforms_count_as_instagram(self):
        assert platform_of("facebook_reel") == "instagram"
        assert platform_of("blog_post") == "instagram"

    def test_empty_defaults_to_instagram(self):
        assert primary_platform([]) == "instagram"

    def test_most_frequent_wins(self):
        deliverables = [
            Deliverable(type="youtube_video"),
            Deliverable(type="youtube_short"),
            Deliverable(type="instagram_post"),
        ]
        assert primary_platform(deliverables) == "youtube"

    def test_tie_broken_by_priority(self):
        deliverables = [Deliverable(type="linkedin_post"), Deliverable(type="youtube_video")]
        assert primary_platform(deliverables) == "youtube"


# ---------------------------------------------------------------------------
# build_draft_deal
# ---------------------------------------------------------------------------


class TestBuildDraftDeal:
    def test_values_from_extraction(self):
        deal = build_draft_deal(_ready_brief(), DealOverrides(), NOW)
        assert deal.creator_id == "c1"
        assert deal.brand_profile.name == "Acme"
        assert deal.brand_profile.email == "deals@acme.in"
        assert deal.campaign_name == "Summer Drop"
        assert deal.platform == "instagram"
        assert deal.deal_value.amount == 30000
        assert deal.deal_value.currency == "INR"
        assert deal.deal_value.gst_applicable is True
        assert deal.deal_value.tds_applicable is False
        assert deal.stage == "pitched"
        assert deal.priority == "medium"

    def test_deliverables_copied_as_pending(self):
        deal = build_draft_deal(_ready_brief(), DealOverrides(), NOW)
        assert [(d.type, d.quantity, d.status) for d in deal.deliverables] == [
            ("instagram_reel", 2, "pending"),
            ("youtube_video", 1, "pending"),
        ]

    def test_timeline(self):
        deal = build_draft_deal(_ready_brief(), DealOverrides(), NOW)
        assert deal.timeline.pitched_date == NOW
        assert deal.timeline.response_deadline == NOW + timedelta(days=7)
        assert deal.timeline.content_deadline == date(2025, 5, 20)
        assert deal.timeline.live_date == date(2025, 5, 25)

    def test_placeholders_when_names_missing(self):
        brief = _ready_brief(brand_info={}, campaign_info={})
        deal = build_draft_deal(brief, DealOverrides(), NOW)
        assert deal.brand_profile.name == DEFAULT_BRAND_NAME
        assert deal.campaign_name == DEFAULT_CAMPAIGN_NAME

    def test_urgent_is_high_priority(self):
        brief = _ready_brief(timeline={"is_urgent": True})
        assert build_draft_deal(brief, DealOverrides(), NOW).priority == "high"

    def test_overrides_win(self):
        overrides = DealOverrides(
            brand_name="Acme India",
            campaign_name="Monsoon",
            platform="youtube",
            amount=45000,
            gst_applicable=False,
            tds_applicable=True,
        )
        deal = build_draft_deal(_ready_brief(), overrides, NOW)
        assert deal.brand_profile.name == "Acme India"
        assert deal.campaign_name == "Monsoon"
        assert deal.platform == "youtube"
        assert deal.deal_value.amount == 45000
        assert deal.deal_value.gst_applicable is False
        assert deal.deal_value.tds_applicable is True

    def test_zero_amount_override_applies(self):
        deal = build_draft_deal(_ready_brief(), DealOverrides(amount=0), NOW)
        assert deal.deal_value.amount == 0

    def test_references_brief(self):
        brief = _ready_brief()
        deal = build_draft_deal(brief, DealOverrides(), NOW)
        assert deal.brief_reference.brief_id == brief.id


# ---------------------------------------------------------------------------
# DealConverter
# ---------------------------------------------------------------------------


class TestDealConverter:
    def test_converts_and_hands_to_sink(self):
        sink = RecordingSink()
        converter = DealConverter(sink, clock=lambda: NOW)
        brief = _ready_brief()

        deal = converter.convert(brief)

        assert len(sink.calls) == 1
        sent_deal, converted = sink.calls[0]
        assert sent_deal is deal
        assert converted.status == BriefStatus.CONVERTED
        assert converted.deal_conversion.is_converted is True
        assert converted.deal_conversion.deal_id == deal.id
        assert converted.deal_conversion.converted_at == NOW
        assert converted.deal_conversion.conversion_method == ConversionMethod.ONE_CLICK

    def test_input_brief_untouched(self):
        brief = _ready_brief()
        DealConverter(RecordingSink(), clock=lambda: NOW).convert(brief)
        assert brief.deal_conversion.is_converted is False
        assert brief.status == BriefStatus.READY_FOR_DEAL

    def test_overrides_mark_manual_edit(self):
        sink = RecordingSink()
        DealConverter(sink, clock=lambda: NOW).convert(_ready_brief(), DealOverrides(amount=1000))
        assert sink.calls[0][1].deal_conversion.conversion_method == ConversionMethod.MANUAL_EDIT

    def test_already_converted_rejected(self):
        brief = _ready_brief()
        brief.deal_conversion.is_converted = True
        sink = RecordingSink()
        with pytest.raises(AlreadyConverted):
            DealConverter(sink).convert(brief)
        assert sink.calls == []

    def test_already_converted_checked_before_readiness(self):
        brief = _ready_brief(deliverables=[])
        brief.deal_conversion.is_converted = True
        with pytest.raises(AlreadyConverted):
            DealConverter(RecordingSink()).convert(brief)

    def test_not_ready_rejected(self):
        brief = _ready_brief(
            missing_info=[MissingInfoItem(category=MissingInfoCategory.BUDGET, importance=Importance.CRITICAL)]
        )
        sink = RecordingSink()
        with pytest.raises(NotReady):
            DealConverter(sink).convert(brief)
        assert sink.calls == []

    def test_no_deliverables_not_ready(self):
        with pytest.raises(NotReady):
            DealConverter(RecordingSink()).convert(_ready_brief(deliverables=[]))

    def test_sink_failure_propagates(self):
        def failing_sink(deal, brief):
            raise RuntimeError("deal store down")

        with pytest.raises(RuntimeError):
            DealConverter(failing_sink).convert(_ready_brief())


class TestPreview:
    def test_preview_is_the_one_click_draft(self):
        sink = RecordingSink()
        converter = DealConverter(sink, clock=lambda: NOW)
        brief = _ready_brief()

        preview = converter.preview(brief)

        assert sink.calls == []
        assert preview.timeline.pitched_date == NOW
        assert preview.deal_value.amount == converter.convert(brief).deal_value.amount

    def test_preview_checks_readiness(self):
        with pytest.raises(NotReady):
            DealConverter(RecordingSink()).preview(_ready_brief(deliverables=[]))
