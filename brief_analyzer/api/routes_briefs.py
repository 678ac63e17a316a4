from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from pydantic import BaseModel, Field, field_validator

from brief_analyzer.api.dependencies import get_creator_id, get_service
from brief_analyzer.briefs.models import AIExtraction, Brief, BriefStatus, InputType
from brief_analyzer.briefs.service import (
    BriefFilters,
    BriefPage,
    BriefService,
    BriefSummary,
    BriefUpdate,
    BulkUpdateResult,
    DashboardStats,
)
from brief_analyzer.extraction.tasks import ExtractionOutcome

router = APIRouter(prefix="/briefs", tags=["briefs"])


class TextBriefRequest(BaseModel):
    raw_text: str = Field(min_length=1, max_length=50_000)
    notes: str = Field(default="", max_length=2000)
    tags: list[str] = Field(default_factory=list)


class ExtractionView(BaseModel):
    brief_id: str
    status: BriefStatus
    ai_extraction: AIExtraction
    last_outcome: Optional[ExtractionOutcome] = None


class BulkUpdateRequest(BaseModel):
    brief_ids: list[str] = Field(min_length=1, max_length=50)
    update: BriefUpdate

    @field_validator("brief_ids")
    @classmethod
    def brief_ids_unique(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("brief_ids must be unique")
        return v


class QueuedResponse(BaseModel):
    brief_id: str
    message: str


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


@router.post("/text", response_model=Brief, status_code=201)
async def create_text_brief(
    request: TextBriefRequest,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> Brief:
    """Store a pasted brief; AI analysis runs in the background."""
    return service.create_text_brief(creator_id, request.raw_text, request.notes, request.tags)


@router.post("/file", response_model=Brief, status_code=201)
async def create_file_brief(
    file: UploadFile = File(...),
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> Brief:
    """Store an uploaded PDF, DOCX or TXT brief."""
    content = await file.read()
    return service.create_file_brief(
        creator_id,
        file.filename or "upload",
        content,
        file.content_type or "",
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get("", response_model=BriefPage)
async def list_briefs(
    status: Optional[BriefStatus] = None,
    input_type: Optional[InputType] = None,
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: Literal["created_at", "updated_at", "status"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> BriefPage:
    filters = BriefFilters(
        status=status,
        input_type=input_type,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return service.list_briefs(creator_id, filters)


@router.get("/dashboard/stats", response_model=DashboardStats)
async def dashboard_stats(
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> DashboardStats:
    return service.dashboard_stats(creator_id)


@router.get("/{brief_id}", response_model=BriefSummary)
async def get_brief(
    brief_id: str,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> BriefSummary:
    return service.summarize(service.get_brief(brief_id, creator_id))


@router.get("/{brief_id}/extraction", response_model=ExtractionView)
async def get_extraction(
    brief_id: str,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> ExtractionView:
    """Current extraction record plus the last background run outcome, if any."""
    brief, outcome = service.get_extraction(brief_id, creator_id)
    return ExtractionView(
        brief_id=brief.id,
        status=brief.status,
        ai_extraction=brief.ai_extraction,
        last_outcome=outcome,
    )


# ---------------------------------------------------------------------------
# Edits
# ---------------------------------------------------------------------------


@router.patch("/bulk-update", response_model=BulkUpdateResult)
async def bulk_update(
    request: BulkUpdateRequest,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> BulkUpdateResult:
    """Apply one update to several briefs. Per-brief failures are reported, not raised."""
    return service.bulk_update(creator_id, request.brief_ids, request.update)


@router.patch("/{brief_id}", response_model=Brief)
async def update_brief(
    brief_id: str,
    update: BriefUpdate,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> Brief:
    return service.update_brief(brief_id, creator_id, update)


@router.delete("/{brief_id}", status_code=204)
async def delete_brief(
    brief_id: str,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> None:
    service.delete_brief(brief_id, creator_id)


@router.post("/{brief_id}/reprocess", response_model=QueuedResponse, status_code=202)
async def reprocess_brief(
    brief_id: str,
    creator_id: str = Depends(get_creator_id),
    service: BriefService = Depends(get_service),
) -> QueuedResponse:
    """Queue another AI run. Runs already in progress or completed are skipped."""
    service.reprocess_brief(brief_id, creator_id)
    return QueuedResponse(brief_id=brief_id, message="AI extraction queued")
