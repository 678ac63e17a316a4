from __future__ import annotations

from fastapi import Header, Request

from brief_analyzer.briefs.service import BriefService


def get_service(request: Request) -> BriefService:
    return request.app.state.service


def get_creator_id(x_creator_id: str = Header(..., min_length=1)) -> str:
    """Creator identity is passed by the upstream auth layer."""
    return x_creator_id
