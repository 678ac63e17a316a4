from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional, Protocol

import anthropic
from pydantic import BaseModel

from brief_analyzer.config import ExtractionConfig
from brief_analyzer.errors import TransientExtractionError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


def _get_model() -> str:
    return os.environ.get("CLAUDE_MODEL", DEFAULT_MODEL)


def _get_mode() -> str:
    return os.environ.get("EXTRACTION_MODE", "mock")


class Completion(BaseModel):
    """Raw text returned by the text-generation service."""

    text: str
    model: str = ""
    tokens_used: int = 0


class AIExtractionClient(Protocol):
    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> Completion: ...


# ---------------------------------------------------------------------------
# Mock implementation
# ---------------------------------------------------------------------------

MOCK_RESPONSE: dict[str, Any] = {
    "brand_info": {"name": "Glow Naturals", "contact_person": "Priya Sharma", "email": "priya@glownaturals.in"},
    "campaign_info": {"name": "Monsoon Glow", "type": "product launch", "description": "Launch of a new face serum."},
    "deliverables": [
        {"type": "instagram_reel", "quantity": 1, "description": "60s product reel", "estimated_value": 25000},
        {"type": "instagram_story", "quantity": 3, "description": "Story set with swipe-up", "estimated_value": 9000},
    ],
    "timeline": {"content_deadline": "2025-07-15", "posting_start_date": "2025-07-20", "is_urgent": False},
    "budget": {"mentioned": True, "amount": 34000, "currency": "INR"},
    "brand_guidelines": {"hashtags": ["#MonsoonGlow"], "mentions": ["@glownaturals"]},
    "usage_rights": {"duration": "3 months", "scope": ["organic"]},
    "missing_info": [
        {"category": "payment_terms", "description": "Payment timeline not specified", "importance": "important"}
    ],
    "risk_assessment": {"risk_factors": []},
    "confidence_score": 88,
}


class MockExtractionClient:
    """Deterministic client used when EXTRACTION_MODE is not ``live``."""

    model = "mock"

    def __init__(self, response: Optional[dict[str, Any]] = None) -> None:
        self.response = response if response is not None else MOCK_RESPONSE

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> Completion:
        return Completion(text=json.dumps(self.response), model=self.model)


# ---------------------------------------------------------------------------
# Live implementation
# ---------------------------------------------------------------------------


class AnthropicExtractionClient:
    """Calls Claude. Every failure surfaces as TransientExtractionError."""

    def __init__(self, api_key: str, model: str, timeout_seconds: float) -> None:
        self.model = model
        self._client = anthropic.Anthropic(api_key=api_key, timeout=timeout_seconds, max_retries=0)

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> Completion:
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.APITimeoutError as exc:
            raise TransientExtractionError(f"AI request timed out: {exc}") from exc
        except anthropic.APIError as exc:
            raise TransientExtractionError(f"AI request failed: {type(exc).__name__}: {exc}") from exc

        if not response.content:
            raise TransientExtractionError("AI response contained no content")

        usage = getattr(response, "usage", None)
        tokens = 0
        if usage is not None:
            tokens = (usage.input_tokens or 0) + (usage.output_tokens or 0)
        return Completion(text=response.content[0].text, model=self.model, tokens_used=tokens)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_extraction_client(config: ExtractionConfig) -> AIExtractionClient:
    """Build the client for EXTRACTION_MODE (``mock`` by default)."""
    if _get_mode() != "live":
        return MockExtractionClient()

    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError("ANTHROPIC_API_KEY environment variable is required for live mode")
    logger.info("Using live extraction client with model %s", _get_model())
    return AnthropicExtractionClient(api_key, _get_model(), config.request_timeout_seconds)
