from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "briefs.json"

MB = 1024 * 1024


class ExtractionConfig(BaseModel):
    """Knobs for the AI extraction retry loop and request shape."""

    max_retries: int = Field(default=2, ge=0)  # 1 initial + 2 retries
    backoff_base_seconds: float = Field(default=2.0, ge=0)
    temperature: float = Field(default=0.3, ge=0, le=1)
    max_tokens: int = Field(default=2000, gt=0)
    request_timeout_seconds: float = Field(default=60.0, gt=0)
    extraction_version: str = "1.0"
    default_confidence: float = Field(default=85, ge=0, le=100)
    worker_threads: int = Field(default=4, ge=1)


class TierLimits(BaseModel):
    """Per-tier brief allowance. -1 means unlimited."""

    max_briefs_per_month: int = 10
    max_file_size_bytes: int = 5 * MB
    ai_features: bool = False


def _default_tier_limits() -> dict[str, TierLimits]:
    return {
        "starter": TierLimits(max_briefs_per_month=10, max_file_size_bytes=5 * MB, ai_features=False),
        "pro": TierLimits(max_briefs_per_month=25, max_file_size_bytes=10 * MB, ai_features=True),
        "elite": TierLimits(max_briefs_per_month=-1, max_file_size_bytes=25 * MB, ai_features=True),
        "agency_starter": TierLimits(max_briefs_per_month=-1, max_file_size_bytes=25 * MB, ai_features=True),
        "agency_pro": TierLimits(max_briefs_per_month=-1, max_file_size_bytes=50 * MB, ai_features=True),
    }


class BriefsConfig(BaseModel):
    """Top-level config loaded from briefs.json."""

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    subscription_limits: dict[str, TierLimits] = Field(default_factory=_default_tier_limits)
    response_deadline_days: int = Field(default=7, ge=0)
    default_currency: str = "INR"
    max_raw_text_chars: int = Field(default=50_000, gt=0)

    def limits_for(self, tier: str) -> TierLimits:
        """Return limits for a tier; unknown tiers get the starter allowance."""
        if tier in self.subscription_limits:
            return self.subscription_limits[tier]
        return self.subscription_limits.get("starter", TierLimits())


def load_config(path: Optional[str | Path] = None) -> BriefsConfig:
    """Load briefs config from a JSON file. Falls back to built-in defaults."""
    if path is None:
        env = os.environ.get("BRIEFS_CONFIG_PATH")
        path = Path(env) if env else DEFAULT_CONFIG_PATH
    else:
        path = Path(path)

    if not path.exists():
        return BriefsConfig()

    with open(path) as f:
        raw = json.load(f)
    return BriefsConfig(**raw)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging from LOG_LEVEL (default INFO)."""
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
