"""Tests for the brief lifecycle service."""

import threading
from concurrent.futures import Future
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from brief_analyzer.briefs.models import (
    AIExtraction,
    BriefStatus,
    Creator,
    Deliverable,
    ExtractionStatus,
    Importance,
    InputType,
    MissingInfoCategory,
    MissingInfoItem,
    SubscriptionTier,
)
from brief_analyzer.briefs.service import BriefFilters, BriefService, BriefUpdate
from brief_analyzer.clarification.engine import build_questions
from brief_analyzer.config import BriefsConfig
from brief_analyzer.conversion.models import DealOverrides
from brief_analyzer.db import database
from brief_analyzer.db.database import count_deals, get_brief, get_deal, init_db, mutate_brief
from brief_analyzer.errors import (
    AlreadyConverted,
    BriefNotFound,
    CannotDeleteConverted,
    CreatorNotFound,
    EmptyContent,
    FileTooLarge,
    InvalidBriefInput,
    InvalidStatusTransition,
    NotReady,
    RecordNotFound,
    SubscriptionLimitExceeded,
    UnsupportedFormat,
)
from brief_analyzer.extraction.client import MockExtractionClient
from brief_analyzer.extraction.orchestrator import ExtractionOrchestrator

NOW = datetime(2025, 5, 15, 10, tzinfo=timezone.utc)


class StubRunner:
    """Records submissions instead of running extraction."""

    def __init__(self):
        self.submitted = []

    def submit(self, brief_id):
        self.submitted.append(brief_id)
        future = Future()
        future.set_result(None)
        return future

    def outcome(self, brief_id):
        return None


@pytest.fixture()
def db_path(tmp_path):
    p = tmp_path / "test.db"
    init_db(p)
    return p


@pytest.fixture()
def runner():
    return StubRunner()


@pytest.fixture()
def service(db_path, runner):
    svc = BriefService(BriefsConfig(), task_runner=runner, db_path=db_path, clock=lambda: NOW)
    svc.register_creator(Creator(id="pro", full_name="Priya Rao", subscription_tier=SubscriptionTier.PRO))
    svc.register_creator(Creator(id="starter", full_name="Arjun Mehta"))
    return svc


def _analyze(service, brief, missing_info=None, status=BriefStatus.READY_FOR_DEAL):
    """Store a completed extraction on a brief, as the orchestrator would."""
    missing_info = missing_info or []

    def complete(stored):
        stored.ai_extraction = AIExtraction(
            status=ExtractionStatus.COMPLETED,
            brand_info={"name": "Acme"},
            deliverables=[Deliverable(type="instagram_reel", estimated_value=25000)],
            missing_info=missing_info,
        )
        stored.clarifications.suggested_questions = build_questions(missing_info)
        stored.status = status

    return mutate_brief(brief.id, complete, db_path=service.db_path)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class TestCreateTextBrief:
    def test_creates_draft_pending(self, service):
        brief = service.create_text_brief("pro", "  Acme wants two reels  ", notes="warm lead", tags=["beauty"])
        assert brief.status == BriefStatus.DRAFT
        assert brief.ai_extraction.status == ExtractionStatus.PENDING
        assert brief.input_type == InputType.TEXT_PASTE
        assert brief.original_content.raw_text == "Acme wants two reels"
        assert brief.creator_notes == "warm lead"
        assert brief.tags == ["beauty"]
        assert brief.subscription_tier == SubscriptionTier.PRO

    def test_human_readable_id(self, service):
        first = service.create_text_brief("pro", "one")
        second = service.create_text_brief("pro", "two")
        assert first.brief_id == "PRI2505B001"
        assert second.brief_id == "PRI2505B002"

    def test_sequence_counts_deleted_briefs(self, service):
        first = service.create_text_brief("pro", "one")
        service.delete_brief(first.id, "pro")
        assert service.create_text_brief("pro", "two").brief_id == "PRI2505B002"

    def test_submits_extraction_for_ai_tier(self, service, runner):
        brief = service.create_text_brief("pro", "Acme wants reels")
        assert runner.submitted == [brief.id]

    def test_no_extraction_for_starter(self, service, runner):
        service.create_text_brief("starter", "Acme wants reels")
        assert runner.submitted == []

    def test_blank_text_rejected(self, service):
        with pytest.raises(EmptyContent):
            service.create_text_brief("pro", "   ")

    def test_overlong_text_rejected(self, service):
        with pytest.raises(InvalidBriefInput):
            service.create_text_brief("pro", "x" * 50_001)

    def test_unknown_creator(self, service):
        with pytest.raises(CreatorNotFound):
            service.create_text_brief("ghost", "Acme wants reels")

    def test_monthly_limit(self, service):
        for i in range(10):
            service.create_text_brief("starter", f"brief {i}")
        with pytest.raises(SubscriptionLimitExceeded):
            service.create_text_brief("starter", "one too many")

    def test_deleted_briefs_free_up_allowance(self, service):
        briefs = [service.create_text_brief("starter", f"brief {i}") for i in range(10)]
        service.delete_brief(briefs[0].id, "starter")
        assert service.create_text_brief("starter", "replacement").brief_id == "ARJ2505B011"


class TestCreateFileBrief:
    def test_plain_text_upload(self, service, runner):
        brief = service.create_file_brief("pro", "brief.txt", b"Acme wants reels\n", "text/plain")
        assert brief.input_type == InputType.FILE_UPLOAD
        assert brief.original_content.raw_text == "Acme wants reels"
        assert brief.original_content.uploaded_file.filename == "brief.txt"
        assert brief.original_content.uploaded_file.file_size == 17
        assert runner.submitted == [brief.id]

    def test_file_too_large(self, service):
        content = b"x" * (5 * 1024 * 1024 + 1)
        with pytest.raises(FileTooLarge):
            service.create_file_brief("starter", "big.txt", content, "text/plain")

    def test_unsupported_type(self, service):
        with pytest.raises(UnsupportedFormat):
            service.create_file_brief("pro", "brief.png", b"\x89PNG", "image/png")

    def test_empty_file(self, service):
        with pytest.raises(EmptyContent):
            service.create_file_brief("pro", "brief.txt", b"   \n", "text/plain")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_get_increments_view_count(self, service):
        brief = service.create_text_brief("pro", "Acme")
        assert service.get_brief(brief.id, "pro").view_count == 1
        assert service.get_brief(brief.id, "pro").view_count == 2

    def test_get_other_creators_brief(self, service):
        brief = service.create_text_brief("pro", "Acme")
        with pytest.raises(BriefNotFound):
            service.get_brief(brief.id, "starter")

    def test_list_enriched_and_paginated(self, service):
        for i in range(3):
            service.create_text_brief("pro", f"brief {i}")
        page = service.list_briefs("pro", BriefFilters(limit=2))
        assert len(page.briefs) == 2
        assert page.pagination.total_items == 3
        assert page.pagination.total_pages == 2
        assert page.pagination.has_next_page is True
        assert page.pagination.has_prev_page is False
        assert page.briefs[0].completion_status == "incomplete"
        assert page.briefs[0].days_old == 0

    def test_list_status_filter(self, service):
        ready = _analyze(service, service.create_text_brief("pro", "one"))
        service.create_text_brief("pro", "two")
        page = service.list_briefs("pro", BriefFilters(status=BriefStatus.READY_FOR_DEAL))
        assert [s.brief.id for s in page.briefs] == [ready.id]
        assert page.briefs[0].estimated_value == 25000

    def test_dashboard_stats(self, service):
        ready = _analyze(service, service.create_text_brief("pro", "one"))
        _analyze(
            service,
            service.create_text_brief("pro", "two"),
            missing_info=[MissingInfoItem(category=MissingInfoCategory.BUDGET, importance=Importance.CRITICAL)],
            status=BriefStatus.NEEDS_CLARIFICATION,
        )
        service.create_text_brief("pro", "three")
        service.create_text_brief("pro", "four")
        service.convert_to_deal(ready.id, "pro")

        stats = service.dashboard_stats("pro")
        assert stats.total_briefs == 4
        assert stats.analyzed_briefs == 2
        assert stats.ready_for_deal == 0
        assert stats.converted_briefs == 1
        assert stats.this_month_briefs == 4
        assert stats.total_estimated_value == 50000
        assert stats.analysis_rate == 50
        assert stats.conversion_rate == 50

    def test_dashboard_empty(self, service):
        stats = service.dashboard_stats("pro")
        assert stats.total_briefs == 0
        assert stats.analysis_rate == 0
        assert stats.conversion_rate == 0


# ---------------------------------------------------------------------------
# Edits and deletion
# ---------------------------------------------------------------------------


class TestUpdateAndDelete:
    def test_update_notes_and_tags(self, service):
        brief = service.create_text_brief("pro", "Acme")
        updated = service.update_brief(brief.id, "pro", BriefUpdate(creator_notes="call Friday", tags=["hot"]))
        assert updated.creator_notes == "call Friday"
        assert updated.tags == ["hot"]

    def test_archive(self, service):
        brief = service.create_text_brief("pro", "Acme")
        updated = service.update_brief(brief.id, "pro", BriefUpdate(status=BriefStatus.ARCHIVED))
        assert updated.status == BriefStatus.ARCHIVED

    def test_derived_status_cannot_be_set(self, service):
        brief = service.create_text_brief("pro", "Acme")
        with pytest.raises(InvalidStatusTransition):
            service.update_brief(brief.id, "pro", BriefUpdate(status=BriefStatus.READY_FOR_DEAL))

    def test_converted_status_locked(self, service):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        service.convert_to_deal(brief.id, "pro")
        with pytest.raises(InvalidStatusTransition):
            service.update_brief(brief.id, "pro", BriefUpdate(status=BriefStatus.ARCHIVED))

    def test_soft_delete(self, service, db_path):
        brief = service.create_text_brief("pro", "Acme")
        service.delete_brief(brief.id, "pro")
        with pytest.raises(BriefNotFound):
            service.get_brief(brief.id, "pro")
        stored = get_brief(brief.id, include_deleted=True, db_path=db_path)
        assert stored.is_deleted is True
        assert stored.deleted_at == NOW

    def test_converted_cannot_be_deleted(self, service):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        service.convert_to_deal(brief.id, "pro")
        with pytest.raises(CannotDeleteConverted):
            service.delete_brief(brief.id, "pro")

    def test_rejected_edit_writes_nothing(self, service, db_path):
        brief = service.create_text_brief("pro", "Acme")
        with pytest.raises(InvalidStatusTransition):
            service.update_brief(
                brief.id, "pro", BriefUpdate(creator_notes="lost", status=BriefStatus.READY_FOR_DEAL)
            )
        assert get_brief(brief.id, db_path=db_path).creator_notes == ""


class TestEditsDuringExtraction:
    def test_extraction_finishing_mid_edit_is_kept(self, service, db_path):
        brief = service.create_text_brief("pro", "Acme")
        orchestrator = ExtractionOrchestrator(MockExtractionClient(), db_path=db_path, sleep=lambda s: None)
        worker = threading.Thread(target=orchestrator.run_extraction, args=(brief.id,))
        real_mutate = database.mutate_brief

        def mutate_while_extracting(brief_id, mutate, *args, **kwargs):
            def apply(stored):
                mutate(stored)
                worker.start()
                worker.join(timeout=0.3)

            return real_mutate(brief_id, apply, *args, **kwargs)

        with patch.object(database, "mutate_brief", mutate_while_extracting):
            service.update_brief(brief.id, "pro", BriefUpdate(creator_notes="hello"))
        worker.join(timeout=10)

        stored = get_brief(brief.id, db_path=db_path)
        assert stored.creator_notes == "hello"
        assert stored.ai_extraction.status == ExtractionStatus.COMPLETED
        assert stored.status == BriefStatus.READY_FOR_DEAL

    def test_conversion_keeps_later_edits(self, service, db_path):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        stale = get_brief(brief.id, db_path=db_path)
        service.update_brief(brief.id, "pro", BriefUpdate(tags=["priority"]))

        with patch.object(BriefService, "_require", return_value=stale):
            service.convert_to_deal(brief.id, "pro")

        stored = get_brief(brief.id, db_path=db_path)
        assert stored.tags == ["priority"]
        assert stored.status == BriefStatus.CONVERTED


class TestBulkUpdate:
    def test_partial_failure_reported(self, service, db_path):
        first = service.create_text_brief("pro", "Acme")
        second = service.create_text_brief("pro", "Zen")
        converted = _analyze(service, service.create_text_brief("pro", "Orbit"))
        service.convert_to_deal(converted.id, "pro")

        result = service.bulk_update(
            "pro", [first.id, "missing", converted.id, second.id], BriefUpdate(status=BriefStatus.ARCHIVED)
        )

        assert (result.total, result.successful, result.failed) == (4, 2, 2)
        assert [r.updated for r in result.results] == [True, False, False, True]
        assert result.results[2].error == "Converted briefs cannot change status"
        assert get_brief(second.id, db_path=db_path).status == BriefStatus.ARCHIVED

    def test_other_creators_briefs_untouched(self, service, db_path):
        brief = service.create_text_brief("starter", "Acme")
        result = service.bulk_update("pro", [brief.id], BriefUpdate(tags=["x"]))
        assert result.failed == 1
        assert get_brief(brief.id, db_path=db_path).tags == []


# ---------------------------------------------------------------------------
# Reprocessing
# ---------------------------------------------------------------------------


class TestReprocess:
    def test_queues_run(self, service, runner):
        brief = service.create_text_brief("pro", "Acme")
        service.reprocess_brief(brief.id, "pro")
        assert runner.submitted == [brief.id, brief.id]

    def test_starter_has_no_ai(self, service):
        brief = service.create_text_brief("starter", "Acme")
        with pytest.raises(SubscriptionLimitExceeded):
            service.reprocess_brief(brief.id, "starter")


# ---------------------------------------------------------------------------
# Clarifications
# ---------------------------------------------------------------------------


class TestClarifications:
    def test_email_generated_and_stored(self, service, db_path):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        email = service.generate_clarification_email(brief.id, "pro")
        assert email.subject == "Collaboration Clarifications - Acme"
        assert email.body.endswith("Priya Rao")
        stored = get_brief(brief.id, db_path=db_path)
        assert stored.clarifications.clarification_email == email

    def test_no_questions_no_email(self, service):
        brief = service.create_text_brief("pro", "Acme")
        assert service.generate_clarification_email(brief.id, "pro") is None

    def test_answer_question(self, service):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        question = brief.clarifications.suggested_questions[0]
        updated = service.answer_question(brief.id, "pro", question.id, "Two rounds")
        answered = updated.clarifications.suggested_questions[0]
        assert answered.is_answered is True
        assert answered.answer == "Two rounds"
        assert answered.answered_at == NOW

    def test_answered_questions_leave_email(self, service):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        for question in brief.clarifications.suggested_questions:
            service.answer_question(brief.id, "pro", question.id, "done")
        assert service.generate_clarification_email(brief.id, "pro") is None

    def test_unknown_question(self, service):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        with pytest.raises(RecordNotFound):
            service.answer_question(brief.id, "pro", "nope", "x")

    def test_custom_questions(self, service):
        brief = service.create_text_brief("pro", "Acme")
        custom = service.add_custom_question(brief.id, "pro", "Can we shoot outdoors?")
        stored = service.get_brief(brief.id, "pro")
        assert [q.id for q in stored.clarifications.custom_questions] == [custom.id]

        updated = service.remove_custom_question(brief.id, "pro", custom.id)
        assert updated.clarifications.custom_questions == []

    def test_remove_unknown_custom_question(self, service):
        brief = service.create_text_brief("pro", "Acme")
        with pytest.raises(RecordNotFound):
            service.remove_custom_question(brief.id, "pro", "nope")


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


class TestConvert:
    def test_converts_ready_brief(self, service, db_path):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        deal = service.convert_to_deal(brief.id, "pro")

        assert deal.deal_value.amount == 25000
        assert get_deal(deal.id, db_path).brand_profile.name == "Acme"
        stored = get_brief(brief.id, db_path=db_path)
        assert stored.status == BriefStatus.CONVERTED
        assert stored.deal_conversion.deal_id == deal.id
        assert stored.deal_conversion.converted_at == NOW

    def test_overrides(self, service):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        deal = service.convert_to_deal(brief.id, "pro", DealOverrides(amount=40000, platform="youtube"))
        assert deal.deal_value.amount == 40000
        assert deal.platform == "youtube"

    def test_second_conversion_rejected(self, service, db_path):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        service.convert_to_deal(brief.id, "pro")
        with pytest.raises(AlreadyConverted):
            service.convert_to_deal(brief.id, "pro")
        assert count_deals(db_path) == 1

    def test_not_ready(self, service, db_path):
        brief = service.create_text_brief("pro", "Acme")
        with pytest.raises(NotReady):
            service.convert_to_deal(brief.id, "pro")
        assert count_deals(db_path) == 0


class TestDealPreview:
    def test_preview_matches_conversion_without_storing(self, service, db_path):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        preview = service.deal_preview(brief.id, "pro")

        assert preview.brand_profile.name == "Acme"
        assert preview.deal_value.amount == 25000
        assert count_deals(db_path) == 0
        assert get_brief(brief.id, db_path=db_path).deal_conversion.is_converted is False

    def test_preview_requires_ready_brief(self, service):
        brief = _analyze(
            service,
            service.create_text_brief("pro", "Acme"),
            missing_info=[MissingInfoItem(category=MissingInfoCategory.BUDGET, importance=Importance.CRITICAL)],
            status=BriefStatus.NEEDS_CLARIFICATION,
        )
        with pytest.raises(NotReady):
            service.deal_preview(brief.id, "pro")

    def test_converted_brief_has_no_preview(self, service):
        brief = _analyze(service, service.create_text_brief("pro", "Acme"))
        service.convert_to_deal(brief.id, "pro")
        with pytest.raises(AlreadyConverted):
            service.deal_preview(brief.id, "pro")
