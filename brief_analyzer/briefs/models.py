from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class InputType(StrEnum):
    TEXT_PASTE = "text_paste"
    FILE_UPLOAD = "file_upload"


class BriefStatus(StrEnum):
    DRAFT = "draft"
    ANALYZED = "analyzed"
    NEEDS_CLARIFICATION = "needs_clarification"
    READY_FOR_DEAL = "ready_for_deal"
    CONVERTED = "converted"
    ARCHIVED = "archived"


class ExtractionStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class DeliverableType(StrEnum):
    INSTAGRAM_POST = "instagram_post"
    INSTAGRAM_REEL = "instagram_reel"
    INSTAGRAM_STORY = "instagram_story"
    INSTAGRAM_IGTV = "instagram_igtv"
    YOUTUBE_VIDEO = "youtube_video"
    YOUTUBE_SHORT = "youtube_short"
    YOUTUBE_COMMUNITY_POST = "youtube_community_post"
    LINKEDIN_POST = "linkedin_post"
    LINKEDIN_ARTICLE = "linkedin_article"
    LINKEDIN_VIDEO = "linkedin_video"
    TWITTER_POST = "twitter_post"
    TWITTER_THREAD = "twitter_thread"
    TWITTER_SPACE = "twitter_space"
    FACEBOOK_POST = "facebook_post"
    FACEBOOK_REEL = "facebook_reel"
    FACEBOOK_STORY = "facebook_story"
    BLOG_POST = "blog_post"
    PODCAST_MENTION = "podcast_mention"
    NEWSLETTER_MENTION = "newsletter_mention"
    WEBSITE_REVIEW = "website_review"
    APP_REVIEW = "app_review"
    PRODUCT_UNBOXING = "product_unboxing"
    BRAND_COLLABORATION = "brand_collaboration"
    EVENT_COVERAGE = "event_coverage"
    OTHER = "other"


class MissingInfoCategory(StrEnum):
    BUDGET = "budget"
    TIMELINE = "timeline"
    USAGE_RIGHTS = "usage_rights"
    EXCLUSIVITY = "exclusivity"
    PAYMENT_TERMS = "payment_terms"
    CONTENT_SPECS = "content_specs"
    BRAND_GUIDELINES = "brand_guidelines"
    CONTACT_INFO = "contact_info"
    DELIVERABLES = "deliverables"
    APPROVAL_PROCESS = "approval_process"


class Importance(StrEnum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    NICE_TO_HAVE = "nice_to_have"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QuestionPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConversionMethod(StrEnum):
    ONE_CLICK = "one_click"
    MANUAL_EDIT = "manual_edit"


class SubscriptionTier(StrEnum):
    STARTER = "starter"
    PRO = "pro"
    ELITE = "elite"
    AGENCY_STARTER = "agency_starter"
    AGENCY_PRO = "agency_pro"


# ---------------------------------------------------------------------------
# Extraction sections
# ---------------------------------------------------------------------------


class BrandInfo(BaseModel):
    name: str = ""
    contact_person: str = ""
    email: str = ""
    phone: str = ""
    company: str = ""


class CampaignInfo(BaseModel):
    name: str = ""
    type: str = ""
    description: str = ""


class Deliverable(BaseModel):
    """A single piece of content the brand asks for.

    ``type`` is a plain string: values outside ``DeliverableType`` are kept as
    the AI returned them and left to downstream validation.
    """

    id: str = Field(default_factory=_new_id)
    type: str = DeliverableType.OTHER.value
    quantity: int = Field(default=1, ge=1)
    description: str = ""
    duration: str = ""
    requirements: list[str] = Field(default_factory=list)
    platform: str = ""
    estimated_value: float = Field(default=0, ge=0)


class Timeline(BaseModel):
    brief_date: Optional[date] = None
    content_deadline: Optional[date] = None
    posting_start_date: Optional[date] = None
    posting_end_date: Optional[date] = None
    campaign_duration: str = ""
    is_urgent: bool = False


class Budget(BaseModel):
    mentioned: bool = False
    amount: float = 0
    currency: str = "INR"
    is_range: bool = False
    min_amount: float = 0
    max_amount: float = 0
    payment_terms: str = ""
    advance_percentage: float = 0


class BrandGuidelines(BaseModel):
    hashtags: list[str] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)
    brand_colors: list[str] = Field(default_factory=list)
    brand_tone: str = ""
    key_messages: list[str] = Field(default_factory=list)
    restrictions: list[str] = Field(default_factory=list)
    styling: str = ""


class Exclusivity(BaseModel):
    required: bool = False
    duration: str = ""
    scope: str = ""


class UsageRights(BaseModel):
    duration: str = ""
    scope: list[str] = Field(default_factory=list)
    territory: str = ""
    is_perpetual: bool = False
    exclusivity: Exclusivity = Field(default_factory=Exclusivity)


class TechnicalSpecs(BaseModel):
    resolution: str = ""
    aspect_ratio: str = ""
    file_format: list[str] = Field(default_factory=list)


class ContentRequirements(BaseModel):
    revision_rounds: int = 0
    approval_process: str = ""
    content_format: list[str] = Field(default_factory=list)
    quality_guidelines: list[str] = Field(default_factory=list)
    technical_specs: TechnicalSpecs = Field(default_factory=TechnicalSpecs)


class MissingInfoItem(BaseModel):
    id: str = Field(default_factory=_new_id)
    category: MissingInfoCategory
    description: str = ""
    importance: Importance = Importance.IMPORTANT


class RiskFactor(BaseModel):
    type: str = ""
    description: str = ""
    severity: RiskLevel = RiskLevel.LOW


class RiskAssessment(BaseModel):
    overall_risk: RiskLevel = RiskLevel.LOW
    risk_factors: list[RiskFactor] = Field(default_factory=list)


class ProcessingMetadata(BaseModel):
    model_used: str = ""
    tokens_used: int = 0
    processing_time: int = 0  # milliseconds
    confidence_score: float = Field(default=0, ge=0, le=100)
    extraction_version: str = ""
    retry_count: int = 0
    last_error: Optional[str] = None

    model_config = ConfigDict(protected_namespaces=())


class NormalizedExtraction(BaseModel):
    """Canonical content of an extraction, as produced by the normalizer."""

    brand_info: BrandInfo = Field(default_factory=BrandInfo)
    campaign_info: CampaignInfo = Field(default_factory=CampaignInfo)
    deliverables: list[Deliverable] = Field(default_factory=list)
    timeline: Timeline = Field(default_factory=Timeline)
    budget: Budget = Field(default_factory=Budget)
    brand_guidelines: BrandGuidelines = Field(default_factory=BrandGuidelines)
    usage_rights: UsageRights = Field(default_factory=UsageRights)
    content_requirements: ContentRequirements = Field(default_factory=ContentRequirements)
    missing_info: list[MissingInfoItem] = Field(default_factory=list)
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)
    confidence_score: float = Field(default=85, ge=0, le=100)


class AIExtraction(BaseModel):
    """Extraction record persisted on a brief."""

    status: ExtractionStatus = ExtractionStatus.PENDING
    brand_info: BrandInfo = Field(default_factory=BrandInfo)
    campaign_info: CampaignInfo = Field(default_factory=CampaignInfo)
    deliverables: list[Deliverable] = Field(default_factory=list)
    timeline: Timeline = Field(default_factory=Timeline)
    budget: Budget = Field(default_factory=Budget)
    brand_guidelines: BrandGuidelines = Field(default_factory=BrandGuidelines)
    usage_rights: UsageRights = Field(default_factory=UsageRights)
    content_requirements: ContentRequirements = Field(default_factory=ContentRequirements)
    missing_info: list[MissingInfoItem] = Field(default_factory=list)
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)
    processing_metadata: ProcessingMetadata = Field(default_factory=ProcessingMetadata)


# ---------------------------------------------------------------------------
# Clarifications
# ---------------------------------------------------------------------------


class SuggestedQuestion(BaseModel):
    id: str = Field(default_factory=_new_id)
    question: str
    category: str = ""
    priority: QuestionPriority = QuestionPriority.MEDIUM
    is_answered: bool = False
    answer: Optional[str] = None
    answered_at: Optional[datetime] = None


class CustomQuestion(BaseModel):
    id: str = Field(default_factory=_new_id)
    question: str = Field(min_length=1, max_length=300)
    added_at: datetime = Field(default_factory=utcnow)
    is_answered: bool = False
    answer: Optional[str] = None
    answered_at: Optional[datetime] = None


class ClarificationEmail(BaseModel):
    generated: bool = False
    subject: str = ""
    body: str = ""
    sent_at: Optional[datetime] = None
    response_received: bool = False


class Clarifications(BaseModel):
    suggested_questions: list[SuggestedQuestion] = Field(default_factory=list)
    custom_questions: list[CustomQuestion] = Field(default_factory=list)
    clarification_email: Optional[ClarificationEmail] = None


# ---------------------------------------------------------------------------
# Brief
# ---------------------------------------------------------------------------


class UploadedFile(BaseModel):
    filename: str
    original_name: str = ""
    file_size: int = 0
    mime_type: str = ""
    uploaded_at: datetime = Field(default_factory=utcnow)


class OriginalContent(BaseModel):
    raw_text: str = Field(default="", max_length=50_000)
    uploaded_file: Optional[UploadedFile] = None


class DealConversion(BaseModel):
    is_converted: bool = False
    deal_id: Optional[str] = None
    converted_at: Optional[datetime] = None
    conversion_method: Optional[ConversionMethod] = None


class Brief(BaseModel):
    """Creator-submitted collaboration brief and everything derived from it."""

    id: str = Field(default_factory=_new_id)
    brief_id: str = ""
    creator_id: str
    input_type: InputType
    original_content: OriginalContent = Field(default_factory=OriginalContent)
    ai_extraction: AIExtraction = Field(default_factory=AIExtraction)
    clarifications: Clarifications = Field(default_factory=Clarifications)
    deal_conversion: DealConversion = Field(default_factory=DealConversion)
    status: BriefStatus = BriefStatus.DRAFT
    tags: list[str] = Field(default_factory=list)
    creator_notes: str = ""
    subscription_tier: SubscriptionTier = SubscriptionTier.STARTER
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    view_count: int = Field(default=0, ge=0)
    last_processed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Creator(BaseModel):
    """Minimal view of the account owning briefs."""

    id: str = Field(default_factory=_new_id)
    full_name: str = Field(min_length=1)
    subscription_tier: SubscriptionTier = SubscriptionTier.STARTER
