from __future__ import annotations

from brief_analyzer.briefs.models import DeliverableType, Importance, MissingInfoCategory, RiskLevel

SYSTEM_PROMPT = (
    "You are an expert at analyzing brand collaboration briefs for Indian content creators. "
    "Extract information accurately and flag missing critical details."
)


def _choices(values) -> str:
    return "\n".join(f' - "{v.value}"' for v in values)


EXTRACTION_TEMPLATE = """\
Analyze this brand collaboration brief and extract information.

CRITICAL INSTRUCTIONS:
- Return ONLY valid JSON with no markdown formatting
- Do NOT wrap JSON in code blocks or backticks
- Do NOT include explanatory text before or after JSON
- Your entire response must be parseable as JSON

BRIEF TEXT:
\"\"\"
{brief_text}
\"\"\"

Return this EXACT JSON structure with actual values:

{{
  "brand_info": {{"name": "", "contact_person": "", "email": "", "phone": "", "company": ""}},
  "campaign_info": {{"name": "", "type": "", "description": ""}},
  "deliverables": [
    {{
      "type": "instagram_post",
      "quantity": 1,
      "description": "Description of deliverable",
      "duration": "For video content only",
      "requirements": ["Specific requirement"],
      "platform": "instagram",
      "estimated_value": 10000
    }}
  ],
  "timeline": {{
    "brief_date": "2024-12-01",
    "content_deadline": "2024-12-15",
    "posting_start_date": "2024-12-20",
    "posting_end_date": "2024-12-25",
    "campaign_duration": "5 days",
    "is_urgent": false
  }},
  "budget": {{
    "mentioned": true,
    "amount": 50000,
    "currency": "INR",
    "is_range": false,
    "min_amount": 0,
    "max_amount": 0,
    "payment_terms": "",
    "advance_percentage": 50
  }},
  "brand_guidelines": {{
    "hashtags": [], "mentions": [], "brand_colors": [], "brand_tone": "",
    "key_messages": [], "restrictions": [], "styling": ""
  }},
  "usage_rights": {{
    "duration": "6 months",
    "scope": ["organic", "paid"],
    "territory": "India",
    "is_perpetual": false,
    "exclusivity": {{"required": false, "duration": "", "scope": ""}}
  }},
  "content_requirements": {{
    "revision_rounds": 2,
    "approval_process": "",
    "content_format": [],
    "quality_guidelines": [],
    "technical_specs": {{"resolution": "", "aspect_ratio": "", "file_format": []}}
  }},
  "missing_info": [
    {{"category": "budget", "description": "Budget amount not specified", "importance": "critical"}}
  ],
  "risk_assessment": {{
    "risk_factors": [
      {{"type": "Timeline Risk", "description": "Tight deadline", "severity": "medium"}}
    ]
  }},
  "confidence_score": 85
}}

IMPORTANT RULES:

1. For "category" in missing_info, use ONLY ONE of these values:
{categories}

2. For deliverable "type", use ONLY ONE of these values:
{deliverable_types}

3. For "importance", use ONLY ONE of these values:
{importances}

4. For "severity", use ONLY:
{severities}

5. Use null for missing dates, empty strings for missing text, empty arrays for missing lists, 0 for missing numbers

6. Estimate values conservatively for the Indian market (INR):
 - Instagram Post: 5,000-50,000
 - Instagram Reel: 10,000-100,000
 - Instagram Story: 2,000-20,000
 - YouTube Video: 25,000-500,000
 - YouTube Short: 5,000-50,000

7. Mark the timeline as urgent if phrases like "ASAP", "urgent" or "next week" appear

8. Flag perpetual usage rights and long exclusivity periods as risk factors

9. Return ONLY the JSON object - no additional text
"""


def build_extraction_prompt(brief_text: str) -> str:
    """Render the user prompt for a brief. Deterministic for a given text."""
    return EXTRACTION_TEMPLATE.format(
        brief_text=brief_text,
        categories=_choices(MissingInfoCategory),
        deliverable_types=_choices(DeliverableType),
        importances=_choices(Importance),
        severities=_choices(RiskLevel),
    )
