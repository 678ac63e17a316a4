from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from brief_analyzer.errors import BriefAnalyzerError

logger = logging.getLogger(__name__)


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details response."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: str | None = None
    errors: list[dict] | None = None


def _problem_response(
    request: Request,
    status: int,
    kind: str,
    title: str,
    detail: str,
    errors: list[dict] | None = None,
) -> JSONResponse:
    problem = ProblemDetail(
        type=f"urn:briefs:error:{kind}",
        title=title,
        status=status,
        detail=detail,
        instance=str(request.url),
        errors=errors,
    )
    return JSONResponse(status_code=status, content=problem.model_dump(exclude_none=True))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "field": " -> ".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    detail = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
    return _problem_response(request, 422, "validation", "Validation Error", detail, errors)


async def brief_error_handler(request: Request, exc: BriefAnalyzerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.detail)
    return _problem_response(request, exc.status_code, exc.kind, exc.title, exc.detail)
