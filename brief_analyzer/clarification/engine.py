from __future__ import annotations

from typing import Optional

from brief_analyzer.briefs.models import (
    Brief,
    ClarificationEmail,
    Importance,
    MissingInfoCategory,
    MissingInfoItem,
    QuestionPriority,
    SuggestedQuestion,
)

QUESTION_TEMPLATES: dict[str, str] = {
    MissingInfoCategory.BUDGET: "Could you please share the budget allocated for this collaboration?",
    MissingInfoCategory.TIMELINE: "What are the specific deadlines for content creation and posting?",
    MissingInfoCategory.USAGE_RIGHTS: "What is the duration and scope of usage rights for the created content?",
    MissingInfoCategory.EXCLUSIVITY: "Are there any exclusivity requirements or restrictions?",
    MissingInfoCategory.PAYMENT_TERMS: "What are the payment terms (advance percentage, payment timeline)?",
    MissingInfoCategory.CONTENT_SPECS: "Could you provide specific content requirements (resolution, format, duration)?",
    MissingInfoCategory.BRAND_GUIDELINES: "Are there specific brand guidelines or style requirements to follow?",
    MissingInfoCategory.CONTACT_INFO: "Could you provide the primary point of contact for this campaign?",
    MissingInfoCategory.DELIVERABLES: "Could you clarify the exact deliverables and quantities required?",
    MissingInfoCategory.APPROVAL_PROCESS: "What is the content approval process and expected turnaround time?",
}

STANDARD_QUESTIONS: list[tuple[str, MissingInfoCategory, QuestionPriority]] = [
    (
        "What is the expected number of revision rounds included?",
        MissingInfoCategory.APPROVAL_PROCESS,
        QuestionPriority.MEDIUM,
    ),
    (
        "Are there any competitor exclusivity requirements?",
        MissingInfoCategory.EXCLUSIVITY,
        QuestionPriority.HIGH,
    ),
]


def question_for(category: str, description: str) -> str:
    template = QUESTION_TEMPLATES.get(category)
    if template:
        return template
    return f"Could you provide more details about: {description}"


def build_questions(missing_info: list[MissingInfoItem]) -> list[SuggestedQuestion]:
    """One question per missing-info entry, in order, then the standard two."""
    questions = [
        SuggestedQuestion(
            question=question_for(info.category, info.description),
            category=info.category.value,
            priority=QuestionPriority.HIGH if info.importance == Importance.CRITICAL else QuestionPriority.MEDIUM,
        )
        for info in missing_info
    ]
    questions.extend(
        SuggestedQuestion(question=text, category=category.value, priority=priority)
        for text, category, priority in STANDARD_QUESTIONS
    )
    return questions


EMAIL_BODY = """\
Hi Team,

Thank you for considering me for this collaboration opportunity! I'm excited about working with {brand_name}.

To ensure I deliver exactly what you're looking for, I have a few clarifications:

{questions}

These details will help me provide you with an accurate timeline and create content that perfectly aligns with your campaign objectives.

Looking forward to your response!

Best regards,
{creator_name}"""


def render_clarification_email(brief: Brief, creator_name: str) -> Optional[ClarificationEmail]:
    """Render the clarification email, or None when nothing is left to ask."""
    unanswered = [q for q in brief.clarifications.suggested_questions if not q.is_answered]
    if not unanswered:
        return None

    brand_name = brief.ai_extraction.brand_info.name or "Brand"
    numbered = "\n".join(f"{i}. {q.question}" for i, q in enumerate(unanswered, start=1))
    return ClarificationEmail(
        generated=True,
        subject=f"Collaboration Clarifications - {brand_name}",
        body=EMAIL_BODY.format(
            brand_name=brand_name,
            questions=numbered,
            creator_name=creator_name or "Creator",
        ),
    )
