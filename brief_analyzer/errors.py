from __future__ import annotations


class BriefAnalyzerError(Exception):
    """Base class for domain errors surfaced to callers."""

    status_code: int = 400
    title: str = "Brief Analyzer Error"
    kind: str = "brief"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InvalidBriefInput(BriefAnalyzerError):
    status_code = 422
    title = "Invalid Brief Input"
    kind = "validation"


class UnsupportedFormat(InvalidBriefInput):
    status_code = 415
    title = "Unsupported File Format"
    kind = "unsupported-format"


class EmptyContent(InvalidBriefInput):
    title = "Empty Content"
    kind = "empty-content"


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class BriefNotFound(BriefAnalyzerError):
    status_code = 404
    title = "Brief Not Found"
    kind = "not-found"


class CreatorNotFound(BriefAnalyzerError):
    status_code = 404
    title = "Creator Not Found"
    kind = "creator-not-found"


class RecordNotFound(BriefAnalyzerError):
    status_code = 404
    title = "Record Not Found"
    kind = "record-not-found"


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class TransientExtractionError(BriefAnalyzerError):
    """AI call failed, timed out, or returned a string that is not JSON."""

    status_code = 502
    title = "AI Extraction Failed"
    kind = "extraction"


# ---------------------------------------------------------------------------
# Lifecycle / conversion
# ---------------------------------------------------------------------------


class AlreadyConverted(BriefAnalyzerError):
    status_code = 409
    title = "Brief Already Converted"
    kind = "already-converted"


class NotReady(BriefAnalyzerError):
    status_code = 409
    title = "Brief Not Ready For Deal"
    kind = "not-ready"


class CannotDeleteConverted(BriefAnalyzerError):
    status_code = 409
    title = "Brief Converted"
    kind = "converted"


class InvalidStatusTransition(BriefAnalyzerError):
    status_code = 409
    title = "Invalid Status Transition"
    kind = "status"


# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------


class SubscriptionLimitExceeded(BriefAnalyzerError):
    status_code = 403
    title = "Subscription Limit Exceeded"
    kind = "subscription-limit"


class FileTooLarge(SubscriptionLimitExceeded):
    status_code = 413
    title = "File Too Large"
    kind = "file-too-large"
