from __future__ import annotations

import logging
import math
from concurrent.futures import Future
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, Field

from brief_analyzer.briefs.models import (
    Brief,
    BriefStatus,
    ClarificationEmail,
    Creator,
    CustomQuestion,
    ExtractionStatus,
    InputType,
    OriginalContent,
    UploadedFile,
    utcnow,
)
from brief_analyzer.briefs.records import append_record, find_record, remove_record, replace_record
from brief_analyzer.clarification.engine import render_clarification_email
from brief_analyzer.config import BriefsConfig, TierLimits
from brief_analyzer.conversion.converter import DealConverter
from brief_analyzer.conversion.models import DealOverrides, DraftDeal
from brief_analyzer.db import database as db
from brief_analyzer.errors import (
    BriefAnalyzerError,
    BriefNotFound,
    CannotDeleteConverted,
    CreatorNotFound,
    EmptyContent,
    FileTooLarge,
    InvalidBriefInput,
    InvalidStatusTransition,
    RecordNotFound,
    SubscriptionLimitExceeded,
)
from brief_analyzer.extraction.tasks import ExtractionOutcome, ExtractionTaskRunner
from brief_analyzer.extraction.text_extractor import TextExtractor
from brief_analyzer.scoring.completion import (
    completion_percentage,
    completion_status,
    days_old,
    estimated_value,
)

logger = logging.getLogger(__name__)

CREATOR_SETTABLE_STATUSES = {BriefStatus.ARCHIVED}


# ---------------------------------------------------------------------------
# Service I/O models
# ---------------------------------------------------------------------------


class BriefUpdate(BaseModel):
    creator_notes: Optional[str] = Field(default=None, max_length=2000)
    tags: Optional[list[str]] = None
    status: Optional[BriefStatus] = None


class BulkItemResult(BaseModel):
    brief_id: str
    updated: bool
    error: Optional[str] = None


class BulkUpdateResult(BaseModel):
    total: int
    successful: int
    failed: int
    results: list[BulkItemResult]


class BriefFilters(BaseModel):
    status: Optional[BriefStatus] = None
    input_type: Optional[InputType] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_by: str = "created_at"
    sort_order: str = "desc"


class BriefSummary(BaseModel):
    brief: Brief
    completion_percentage: int
    completion_status: str
    estimated_value: float
    days_old: int


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class BriefPage(BaseModel):
    briefs: list[BriefSummary]
    pagination: Pagination


class DashboardStats(BaseModel):
    total_briefs: int
    analyzed_briefs: int
    ready_for_deal: int
    converted_briefs: int
    this_month_briefs: int
    total_estimated_value: float
    analysis_rate: int
    conversion_rate: int


def _start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class BriefService:
    """Brief lifecycle: ingestion, queries, edits, clarifications, conversion."""

    def __init__(
        self,
        config: BriefsConfig,
        task_runner: Optional[ExtractionTaskRunner] = None,
        text_extractor: Optional[TextExtractor] = None,
        db_path: Path | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config
        self.task_runner = task_runner
        self.text_extractor = text_extractor or TextExtractor()
        self.db_path = db_path
        self._clock = clock

    # -- creators ----------------------------------------------------------

    def register_creator(self, creator: Creator) -> Creator:
        db.insert_creator(creator, self.db_path)
        logger.info("Creator %s registered on %s tier", creator.id, creator.subscription_tier)
        return creator

    def _creator(self, creator_id: str) -> Creator:
        creator = db.get_creator(creator_id, self.db_path)
        if creator is None:
            raise CreatorNotFound(f"Creator {creator_id} not found")
        return creator

    def _limits(self, creator: Creator) -> TierLimits:
        return self.config.limits_for(creator.subscription_tier.value)

    def _check_monthly_limit(self, creator: Creator) -> None:
        limits = self._limits(creator)
        if limits.max_briefs_per_month == -1:
            return
        this_month = db.count_briefs_since(
            creator.id, _start_of_month(self._clock()), db_path=self.db_path
        )
        if this_month >= limits.max_briefs_per_month:
            raise SubscriptionLimitExceeded("Monthly brief limit exceeded. Upgrade to create more briefs.")

    def _next_brief_id(self, creator: Creator) -> str:
        now = self._clock()
        sequence = db.count_briefs_since(
            creator.id, _start_of_month(now), include_deleted=True, db_path=self.db_path
        ) + 1
        prefix = "".join(c for c in creator.full_name if c.isalnum())[:3].upper() or "BRF"
        return f"{prefix}{now:%y%m}B{sequence:03d}"

    # -- ingestion ---------------------------------------------------------

    def _ingest(self, creator: Creator, brief: Brief) -> Brief:
        brief.brief_id = self._next_brief_id(creator)
        brief.subscription_tier = creator.subscription_tier
        brief.created_at = brief.updated_at = self._clock()
        db.insert_brief(brief, self.db_path)
        logger.info("Brief %s (%s) created for creator %s", brief.id, brief.brief_id, creator.id)

        if self._limits(creator).ai_features and self.task_runner is not None:
            self.task_runner.submit(brief.id)
        return brief

    def create_text_brief(
        self,
        creator_id: str,
        raw_text: str,
        notes: str = "",
        tags: Optional[list[str]] = None,
    ) -> Brief:
        text = raw_text.strip()
        if not text:
            raise EmptyContent("Brief text must not be empty")
        if len(text) > self.config.max_raw_text_chars:
            raise InvalidBriefInput(
                f"Brief text exceeds {self.config.max_raw_text_chars} characters"
            )

        creator = self._creator(creator_id)
        self._check_monthly_limit(creator)
        logger.info("Creating text brief for creator %s (%d chars)", creator_id, len(text))

        return self._ingest(
            creator,
            Brief(
                creator_id=creator_id,
                input_type=InputType.TEXT_PASTE,
                original_content=OriginalContent(raw_text=text),
                creator_notes=notes,
                tags=tags or [],
            ),
        )

    def create_file_brief(
        self,
        creator_id: str,
        filename: str,
        content: bytes,
        mime_type: str,
    ) -> Brief:
        creator = self._creator(creator_id)
        self._check_monthly_limit(creator)

        limits = self._limits(creator)
        if len(content) > limits.max_file_size_bytes:
            max_mb = round(limits.max_file_size_bytes / (1024 * 1024))
            raise FileTooLarge(
                f"File size exceeds limit of {max_mb}MB for {creator.subscription_tier} plan"
            )

        text = self.text_extractor.extract(content, mime_type)
        if len(text) > self.config.max_raw_text_chars:
            raise InvalidBriefInput(
                f"Extracted text exceeds {self.config.max_raw_text_chars} characters"
            )
        logger.info("Creating file brief for creator %s from %s", creator_id, filename)

        return self._ingest(
            creator,
            Brief(
                creator_id=creator_id,
                input_type=InputType.FILE_UPLOAD,
                original_content=OriginalContent(
                    raw_text=text,
                    uploaded_file=UploadedFile(
                        filename=filename,
                        original_name=filename,
                        file_size=len(content),
                        mime_type=mime_type,
                    ),
                ),
            ),
        )

    # -- queries -----------------------------------------------------------

    def _require(self, brief_id: str, creator_id: str) -> Brief:
        brief = db.get_brief(brief_id, creator_id, db_path=self.db_path)
        if brief is None:
            raise BriefNotFound(f"Brief {brief_id} not found")
        return brief

    def get_brief(self, brief_id: str, creator_id: str) -> Brief:
        brief = self._require(brief_id, creator_id)
        db.increment_view_count(brief_id, self.db_path)
        brief.view_count += 1
        return brief

    def summarize(self, brief: Brief) -> BriefSummary:
        pct = completion_percentage(brief)
        return BriefSummary(
            brief=brief,
            completion_percentage=pct,
            completion_status=completion_status(pct),
            estimated_value=estimated_value(brief),
            days_old=days_old(brief, self._clock()),
        )

    def list_briefs(self, creator_id: str, filters: Optional[BriefFilters] = None) -> BriefPage:
        filters = filters or BriefFilters()
        briefs, total = db.list_briefs(
            creator_id,
            status=filters.status.value if filters.status else None,
            input_type=filters.input_type.value if filters.input_type else None,
            search=filters.search,
            sort_by=filters.sort_by,
            sort_order=filters.sort_order,
            limit=filters.limit,
            offset=(filters.page - 1) * filters.limit,
            db_path=self.db_path,
        )
        total_pages = math.ceil(total / filters.limit)
        return BriefPage(
            briefs=[self.summarize(b) for b in briefs],
            pagination=Pagination(
                current_page=filters.page,
                total_pages=total_pages,
                total_items=total,
                items_per_page=filters.limit,
                has_next_page=filters.page < total_pages,
                has_prev_page=filters.page > 1,
            ),
        )

    def dashboard_stats(self, creator_id: str) -> DashboardStats:
        briefs = db.get_all_briefs(creator_id, self.db_path)
        month_start = _start_of_month(self._clock())

        analyzed = [b for b in briefs if b.ai_extraction.status == ExtractionStatus.COMPLETED]
        ready = sum(1 for b in briefs if b.status == BriefStatus.READY_FOR_DEAL)
        converted = sum(1 for b in briefs if b.deal_conversion.is_converted)
        this_month = sum(1 for b in briefs if b.created_at >= month_start)

        total = len(briefs)
        return DashboardStats(
            total_briefs=total,
            analyzed_briefs=len(analyzed),
            ready_for_deal=ready,
            converted_briefs=converted,
            this_month_briefs=this_month,
            total_estimated_value=sum(estimated_value(b) for b in analyzed),
            analysis_rate=round(100 * len(analyzed) / total) if total else 0,
            conversion_rate=round(100 * converted / len(analyzed)) if analyzed else 0,
        )

    # -- edits -------------------------------------------------------------

    def _mutate(self, brief_id: str, creator_id: str, mutate: Callable[[Brief], None]) -> Brief:
        """Apply ``mutate`` to the stored brief inside one write transaction."""
        brief = db.mutate_brief(brief_id, mutate, creator_id, db_path=self.db_path)
        if brief is None:
            raise BriefNotFound(f"Brief {brief_id} not found")
        return brief

    def update_brief(self, brief_id: str, creator_id: str, update: BriefUpdate) -> Brief:
        def apply(brief: Brief) -> None:
            if update.status is not None and update.status != brief.status:
                if brief.deal_conversion.is_converted:
                    raise InvalidStatusTransition("Converted briefs cannot change status")
                if update.status not in CREATOR_SETTABLE_STATUSES:
                    raise InvalidStatusTransition(f"Status {update.status} is derived and cannot be set")
                brief.status = update.status
            if update.creator_notes is not None:
                brief.creator_notes = update.creator_notes
            if update.tags is not None:
                brief.tags = update.tags

        brief = self._mutate(brief_id, creator_id, apply)
        logger.info(
            "Brief %s updated (%s)",
            brief_id,
            ", ".join(sorted(update.model_dump(exclude_none=True))),
        )
        return brief

    def bulk_update(self, creator_id: str, brief_ids: list[str], update: BriefUpdate) -> BulkUpdateResult:
        """Apply one update to many briefs; each brief succeeds or fails on its own."""
        results = []
        for brief_id in brief_ids:
            try:
                self.update_brief(brief_id, creator_id, update)
            except BriefAnalyzerError as exc:
                results.append(BulkItemResult(brief_id=brief_id, updated=False, error=exc.detail))
            else:
                results.append(BulkItemResult(brief_id=brief_id, updated=True))

        successful = sum(1 for r in results if r.updated)
        logger.info(
            "Bulk update for creator %s: %d/%d briefs updated",
            creator_id,
            successful,
            len(brief_ids),
        )
        return BulkUpdateResult(
            total=len(brief_ids),
            successful=successful,
            failed=len(brief_ids) - successful,
            results=results,
        )

    def delete_brief(self, brief_id: str, creator_id: str) -> None:
        def apply(brief: Brief) -> None:
            if brief.deal_conversion.is_converted:
                raise CannotDeleteConverted("Cannot delete brief that has been converted to a deal")
            brief.is_deleted = True
            brief.deleted_at = self._clock()

        self._mutate(brief_id, creator_id, apply)
        logger.info("Brief %s deleted by creator %s", brief_id, creator_id)

    # -- extraction --------------------------------------------------------

    def reprocess_brief(self, brief_id: str, creator_id: str) -> Future[ExtractionOutcome]:
        """Queue another extraction run; the claim guard decides if it runs."""
        brief = self._require(brief_id, creator_id)
        if not self.config.limits_for(brief.subscription_tier.value).ai_features:
            raise SubscriptionLimitExceeded("AI analysis is not available on this plan")
        if self.task_runner is None:
            raise RuntimeError("No extraction task runner configured")
        return self.task_runner.submit(brief_id)

    def get_extraction(
        self, brief_id: str, creator_id: str
    ) -> tuple[Brief, Optional[ExtractionOutcome]]:
        brief = self._require(brief_id, creator_id)
        outcome = self.task_runner.outcome(brief_id) if self.task_runner else None
        return brief, outcome

    # -- clarifications ----------------------------------------------------

    def generate_clarification_email(self, brief_id: str, creator_id: str) -> Optional[ClarificationEmail]:
        creator = db.get_creator(creator_id, self.db_path)
        sender = creator.full_name if creator else "Creator"
        rendered: list[ClarificationEmail] = []

        def attach(brief: Brief) -> None:
            email = render_clarification_email(brief, sender)
            if email is not None:
                brief.clarifications.clarification_email = email
                rendered.append(email)

        brief = self._mutate(brief_id, creator_id, attach)
        if not rendered:
            return None
        logger.info(
            "Clarification email generated for brief %s (%d questions)",
            brief_id,
            sum(1 for q in brief.clarifications.suggested_questions if not q.is_answered),
        )
        return rendered[0]

    def answer_question(self, brief_id: str, creator_id: str, question_id: str, answer: str) -> Brief:
        def apply(brief: Brief) -> None:
            questions = brief.clarifications.suggested_questions
            try:
                question = find_record(questions, question_id)
            except KeyError:
                raise RecordNotFound(f"Question {question_id} not found") from None
            answered = question.model_copy(
                update={"is_answered": True, "answer": answer, "answered_at": self._clock()}
            )
            brief.clarifications.suggested_questions = replace_record(questions, question_id, answered)

        return self._mutate(brief_id, creator_id, apply)

    def add_custom_question(self, brief_id: str, creator_id: str, question: str) -> CustomQuestion:
        custom = CustomQuestion(question=question, added_at=self._clock())

        def apply(brief: Brief) -> None:
            brief.clarifications.custom_questions = append_record(brief.clarifications.custom_questions, custom)

        self._mutate(brief_id, creator_id, apply)
        return custom

    def remove_custom_question(self, brief_id: str, creator_id: str, question_id: str) -> Brief:
        def apply(brief: Brief) -> None:
            try:
                brief.clarifications.custom_questions = remove_record(
                    brief.clarifications.custom_questions, question_id
                )
            except KeyError:
                raise RecordNotFound(f"Question {question_id} not found") from None

        return self._mutate(brief_id, creator_id, apply)

    # -- conversion --------------------------------------------------------

    def _converter(self) -> DealConverter:
        return DealConverter(
            partial(db.record_conversion, db_path=self.db_path),
            response_deadline_days=self.config.response_deadline_days,
            currency=self.config.default_currency,
            clock=self._clock,
        )

    def deal_preview(self, brief_id: str, creator_id: str) -> DraftDeal:
        return self._converter().preview(self._require(brief_id, creator_id))

    def convert_to_deal(
        self,
        brief_id: str,
        creator_id: str,
        overrides: Optional[DealOverrides] = None,
    ) -> DraftDeal:
        brief = self._require(brief_id, creator_id)
        return self._converter().convert(brief, overrides)
