"""Repair loosely-typed AI output into a ``NormalizedExtraction``.

``normalize`` is total: every field gets an explicit default when it is
missing or has the wrong type, and anything that still blows up yields the
fixed failure placeholder instead of an exception. A successful AI call whose
payload turns out to be unusable is therefore never retried.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Any, Optional

from pydantic import ValidationError

from brief_analyzer.briefs.models import (
    Budget,
    BrandGuidelines,
    BrandInfo,
    CampaignInfo,
    ContentRequirements,
    Deliverable,
    DeliverableType,
    Exclusivity,
    Importance,
    MissingInfoCategory,
    MissingInfoItem,
    NormalizedExtraction,
    RiskAssessment,
    RiskFactor,
    RiskLevel,
    TechnicalSpecs,
    Timeline,
    UsageRights,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 85.0
FAILURE_DESCRIPTION = "AI processing failed - manual review required"


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _field(section: Any, name: str) -> Any:
    """Look up ``name`` in a raw section, accepting camelCase spellings too."""
    if not isinstance(section, dict):
        return None
    if name in section:
        return section[name]
    return section.get(_camel(name))


def _section(raw: Any, name: str) -> dict[str, Any]:
    value = _field(raw, name)
    return value if isinstance(value, dict) else {}


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _bool(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    try:
        number = float(value)
    except OverflowError:
        return default
    return number if math.isfinite(number) else default


def _int(value: Any, default: int = 0) -> int:
    return int(_number(value, default))


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _dict_list(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _record_id(item: dict[str, Any]) -> dict[str, str]:
    record_id = item.get("id")
    return {"id": record_id} if isinstance(record_id, str) and record_id else {}


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO-ish date; anything unparseable becomes None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

_IMPORTANCE_VALUES = {i.value for i in Importance}
_SEVERITY_VALUES = {r.value for r in RiskLevel}


def match_category(raw: Any) -> Optional[MissingInfoCategory]:
    """Map a free-form category onto one of the canonical tokens.

    Exact (case-insensitive) match wins; otherwise the first canonical token
    found as a substring, either as ``usage_rights`` or ``usage rights``.
    Returns None when nothing matches; such entries are dropped by
    ``normalize``.
    """
    if not isinstance(raw, str):
        return None
    lowered = raw.strip().lower()
    if not lowered:
        return None
    for category in MissingInfoCategory:
        if lowered == category.value:
            return category
    for category in MissingInfoCategory:
        token = category.value
        if token in lowered or token.replace("_", " ") in lowered:
            return category
    return None


def compute_overall_risk(risk_factors: list[RiskFactor]) -> RiskLevel:
    """High if any high factor; medium if >1 medium or >3 factors; else low."""
    if any(f.severity == RiskLevel.HIGH for f in risk_factors):
        return RiskLevel.HIGH
    medium_count = sum(1 for f in risk_factors if f.severity == RiskLevel.MEDIUM)
    if medium_count > 1 or len(risk_factors) > 3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def _deliverable(item: dict[str, Any]) -> Deliverable:
    raw_type = _str(item.get("type")).strip()
    return Deliverable(
        **_record_id(item),
        type=raw_type or DeliverableType.OTHER.value,
        quantity=max(1, _int(item.get("quantity"), 1)),
        description=_str(item.get("description")),
        duration=_str(item.get("duration")),
        requirements=_str_list(item.get("requirements")),
        platform=_str(item.get("platform")),
        estimated_value=max(0.0, _number(_field(item, "estimated_value"))),
    )


def _missing_info(items: list[dict[str, Any]]) -> list[MissingInfoItem]:
    result: list[MissingInfoItem] = []
    for item in items:
        category = match_category(item.get("category"))
        if category is None:
            logger.debug("Dropping missing-info entry with category %r", item.get("category"))
            continue
        importance = item.get("importance")
        result.append(
            MissingInfoItem(
                **_record_id(item),
                category=category,
                description=_str(item.get("description")),
                importance=importance if _str(importance) in _IMPORTANCE_VALUES else Importance.IMPORTANT,
            )
        )
    return result


def _risk_assessment(section: dict[str, Any]) -> RiskAssessment:
    factors = []
    for item in _dict_list(_field(section, "risk_factors")):
        severity = item.get("severity")
        factors.append(
            RiskFactor(
                type=_str(item.get("type")),
                description=_str(item.get("description")),
                severity=severity if _str(severity) in _SEVERITY_VALUES else RiskLevel.LOW,
            )
        )
    # overall_risk is recomputed from the factors, never read from the AI
    return RiskAssessment(overall_risk=compute_overall_risk(factors), risk_factors=factors)


def _timeline(section: dict[str, Any]) -> Timeline:
    return Timeline(
        brief_date=parse_date(_field(section, "brief_date")),
        content_deadline=parse_date(_field(section, "content_deadline")),
        posting_start_date=parse_date(_field(section, "posting_start_date")),
        posting_end_date=parse_date(_field(section, "posting_end_date")),
        campaign_duration=_str(_field(section, "campaign_duration")),
        is_urgent=_bool(_field(section, "is_urgent")),
    )


def _budget(section: dict[str, Any]) -> Budget:
    return Budget(
        mentioned=_bool(section.get("mentioned")),
        amount=_number(section.get("amount")),
        currency=_str(section.get("currency")) or "INR",
        is_range=_bool(_field(section, "is_range")),
        min_amount=_number(_field(section, "min_amount")),
        max_amount=_number(_field(section, "max_amount")),
        payment_terms=_str(_field(section, "payment_terms")),
        advance_percentage=_number(_field(section, "advance_percentage")),
    )


def _usage_rights(section: dict[str, Any]) -> UsageRights:
    exclusivity = _section(section, "exclusivity")
    return UsageRights(
        duration=_str(section.get("duration")),
        scope=_str_list(section.get("scope")),
        territory=_str(section.get("territory")),
        is_perpetual=_bool(_field(section, "is_perpetual")),
        exclusivity=Exclusivity(
            required=_bool(exclusivity.get("required")),
            duration=_str(exclusivity.get("duration")),
            scope=_str(exclusivity.get("scope")),
        ),
    )


def _content_requirements(section: dict[str, Any]) -> ContentRequirements:
    specs = _section(section, "technical_specs")
    return ContentRequirements(
        revision_rounds=max(0, _int(_field(section, "revision_rounds"))),
        approval_process=_str(_field(section, "approval_process")),
        content_format=_str_list(_field(section, "content_format")),
        quality_guidelines=_str_list(_field(section, "quality_guidelines")),
        technical_specs=TechnicalSpecs(
            resolution=_str(specs.get("resolution")),
            aspect_ratio=_str(_field(specs, "aspect_ratio")),
            file_format=_str_list(_field(specs, "file_format")),
        ),
    )


def _normalize(raw: Any, default_confidence: float) -> NormalizedExtraction:
    if not isinstance(raw, dict):
        raise TypeError(f"Expected a JSON object, got {type(raw).__name__}")

    brand = _section(raw, "brand_info")
    campaign = _section(raw, "campaign_info")
    guidelines = _section(raw, "brand_guidelines")

    confidence = _number(_field(raw, "confidence_score"), default_confidence)

    return NormalizedExtraction(
        brand_info=BrandInfo(
            name=_str(brand.get("name")),
            contact_person=_str(_field(brand, "contact_person")),
            email=_str(brand.get("email")),
            phone=_str(brand.get("phone")),
            company=_str(brand.get("company")),
        ),
        campaign_info=CampaignInfo(
            name=_str(campaign.get("name")),
            type=_str(campaign.get("type")),
            description=_str(campaign.get("description")),
        ),
        deliverables=[_deliverable(d) for d in _dict_list(raw.get("deliverables"))],
        timeline=_timeline(_section(raw, "timeline")),
        budget=_budget(_section(raw, "budget")),
        brand_guidelines=BrandGuidelines(
            hashtags=_str_list(guidelines.get("hashtags")),
            mentions=_str_list(guidelines.get("mentions")),
            brand_colors=_str_list(_field(guidelines, "brand_colors")),
            brand_tone=_str(_field(guidelines, "brand_tone")),
            key_messages=_str_list(_field(guidelines, "key_messages")),
            restrictions=_str_list(guidelines.get("restrictions")),
            styling=_str(guidelines.get("styling")),
        ),
        usage_rights=_usage_rights(_section(raw, "usage_rights")),
        content_requirements=_content_requirements(_section(raw, "content_requirements")),
        missing_info=_missing_info(_dict_list(_field(raw, "missing_info"))),
        risk_assessment=_risk_assessment(_section(raw, "risk_assessment")),
        confidence_score=min(100.0, max(0.0, confidence)),
    )


def failure_placeholder() -> NormalizedExtraction:
    """Result used when the AI responded but the payload could not be repaired."""
    return NormalizedExtraction(
        missing_info=[
            MissingInfoItem(
                category=MissingInfoCategory.DELIVERABLES,
                description=FAILURE_DESCRIPTION,
                importance=Importance.CRITICAL,
            )
        ],
        risk_assessment=RiskAssessment(
            overall_risk=RiskLevel.HIGH,
            risk_factors=[
                RiskFactor(
                    type="Processing Error",
                    description="AI extraction failed",
                    severity=RiskLevel.HIGH,
                )
            ],
        ),
        confidence_score=0,
    )


def normalize(raw: Any, default_confidence: float = DEFAULT_CONFIDENCE) -> NormalizedExtraction:
    """Normalize raw AI JSON. Never raises."""
    try:
        return _normalize(raw, default_confidence)
    except (TypeError, ValueError, ArithmeticError, AttributeError, ValidationError) as exc:
        logger.error("Error post-processing AI results: %s: %s", type(exc).__name__, exc)
        return failure_placeholder()
