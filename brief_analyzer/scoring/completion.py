from __future__ import annotations

from datetime import datetime
from typing import Optional

from brief_analyzer.briefs.models import (
    Brief,
    BriefStatus,
    ExtractionStatus,
    Importance,
    MissingInfoItem,
    utcnow,
)

CHECKPOINTS = 10


def _critical(missing_info: list[MissingInfoItem]) -> list[MissingInfoItem]:
    return [m for m in missing_info if m.importance == Importance.CRITICAL]


def completion_percentage(brief: Brief) -> int:
    """Share of the 10 completeness checkpoints a brief satisfies, 0-100."""
    ai = brief.ai_extraction
    checks = [
        ai.status == ExtractionStatus.COMPLETED,
        bool(ai.brand_info.name),
        len(ai.deliverables) > 0,
        ai.timeline.content_deadline is not None,
        ai.budget.mentioned,
        len(ai.brand_guidelines.hashtags) > 0,
        bool(ai.usage_rights.duration),
        not _critical(ai.missing_info),
        bool(ai.risk_assessment.overall_risk),
        bool(brief.creator_notes),
    ]
    return round(100 * sum(checks) / CHECKPOINTS)


def completion_status(percentage: int) -> str:
    if percentage >= 90:
        return "complete"
    if percentage >= 70:
        return "mostly_complete"
    if percentage >= 40:
        return "in_progress"
    return "incomplete"


def estimated_value(brief: Brief) -> float:
    return sum(d.estimated_value for d in brief.ai_extraction.deliverables)


def derive_status(missing_info: list[MissingInfoItem]) -> BriefStatus:
    """Brief status right after a completed extraction."""
    if _critical(missing_info):
        return BriefStatus.NEEDS_CLARIFICATION
    return BriefStatus.READY_FOR_DEAL


def is_analysis_complete(brief: Brief) -> bool:
    ai = brief.ai_extraction
    return ai.status == ExtractionStatus.COMPLETED and len(ai.deliverables) > 0


def is_ready_for_deal(brief: Brief) -> bool:
    """Gate for deal conversion."""
    return (
        is_analysis_complete(brief)
        and not _critical(brief.ai_extraction.missing_info)
        and brief.status == BriefStatus.READY_FOR_DEAL
    )


def days_old(brief: Brief, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    return max(0, (now - brief.created_at).days)
