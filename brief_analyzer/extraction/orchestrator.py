from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Callable, Optional

from brief_analyzer.briefs.models import (
    AIExtraction,
    Brief,
    BriefStatus,
    ExtractionStatus,
    ProcessingMetadata,
    utcnow,
)
from brief_analyzer.clarification.engine import build_questions
from brief_analyzer.config import ExtractionConfig
from brief_analyzer.db.database import claim_for_extraction, get_brief, mutate_brief
from brief_analyzer.errors import BriefNotFound, TransientExtractionError
from brief_analyzer.extraction.client import AIExtractionClient, Completion
from brief_analyzer.extraction.normalizer import normalize
from brief_analyzer.extraction.prompts import SYSTEM_PROMPT, build_extraction_prompt
from brief_analyzer.scoring.completion import derive_status

logger = logging.getLogger(__name__)


class ExtractionOrchestrator:
    """Drives one extraction run for a brief: claim, call with retries, store."""

    def __init__(
        self,
        client: AIExtractionClient,
        config: Optional[ExtractionConfig] = None,
        db_path: Path | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.config = config or ExtractionConfig()
        self.db_path = db_path
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.config.max_retries + 1

    def _attempt(self, brief_text: str):
        try:
            completion = self.client.complete(
                SYSTEM_PROMPT,
                build_extraction_prompt(brief_text),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except TransientExtractionError:
            raise
        except Exception as exc:
            raise TransientExtractionError(f"AI extraction failed: {type(exc).__name__}: {exc}") from exc

        try:
            payload = json.loads(completion.text)
        except (json.JSONDecodeError, TypeError) as exc:
            raise TransientExtractionError(f"AI response was not valid JSON: {exc}") from exc
        return completion, payload

    def run_extraction(self, brief_id: str) -> Optional[AIExtraction]:
        """Run extraction for a brief.

        Returns the stored extraction, or None when the brief could not be
        claimed because another run holds it or it already completed.
        Re-raises the last TransientExtractionError once retries run out.
        Any other error after the claim marks the extraction failed and is
        re-raised, so the brief can always be claimed again.
        """
        brief = claim_for_extraction(brief_id, self.db_path)
        if brief is None:
            if get_brief(brief_id, db_path=self.db_path) is None:
                raise BriefNotFound(f"Brief {brief_id} not found")
            logger.info("Extraction for brief %s already claimed or completed; skipping", brief_id)
            return None

        logger.info("Starting AI extraction for brief %s", brief_id)
        started = time.monotonic()
        retry_count = 0

        while True:
            try:
                completion, payload = self._attempt(brief.original_content.raw_text)
                return self._store(brief_id, completion, payload, retry_count, started)
            except TransientExtractionError as exc:
                if retry_count >= self.config.max_retries:
                    self._record_failure(brief_id, retry_count, str(exc))
                    raise
                retry_count += 1
                logger.warning(
                    "AI extraction attempt %d/%d failed for brief %s: %s",
                    retry_count,
                    self.max_attempts,
                    brief_id,
                    exc,
                )
                self._sleep(self.config.backoff_base_seconds ** retry_count)
            except Exception as exc:
                self._record_failure(brief_id, retry_count, f"{type(exc).__name__}: {exc}")
                raise

    def _store(
        self,
        brief_id: str,
        completion: Completion,
        payload: Any,
        retry_count: int,
        started: float,
    ) -> AIExtraction:
        elapsed_ms = int((time.monotonic() - started) * 1000)
        normalized = normalize(payload, self.config.default_confidence)

        def apply(brief: Brief) -> None:
            brief.ai_extraction = AIExtraction(
                status=ExtractionStatus.COMPLETED,
                **normalized.model_dump(exclude={"confidence_score"}),
                processing_metadata=ProcessingMetadata(
                    model_used=completion.model or getattr(self.client, "model", ""),
                    tokens_used=completion.tokens_used,
                    processing_time=elapsed_ms,
                    confidence_score=normalized.confidence_score,
                    extraction_version=self.config.extraction_version,
                    retry_count=retry_count,
                ),
            )
            if brief.status != BriefStatus.ARCHIVED:
                brief.status = derive_status(normalized.missing_info)
            brief.clarifications.suggested_questions = build_questions(normalized.missing_info)
            brief.last_processed_at = utcnow()

        try:
            saved = mutate_brief(brief_id, apply, include_deleted=True, db_path=self.db_path)
        except sqlite3.OperationalError as exc:
            raise TransientExtractionError(f"Could not store extraction: {exc}") from exc
        if saved is None:
            raise BriefNotFound(f"Brief {brief_id} not found")

        logger.info(
            "AI extraction completed for brief %s in %d ms (%d deliverables, %d retries)",
            brief_id,
            elapsed_ms,
            len(normalized.deliverables),
            retry_count,
        )
        return saved.ai_extraction

    def _record_failure(self, brief_id: str, retry_count: int, error: str) -> None:
        logger.error(
            "AI extraction failed for brief %s (retries=%d): %s",
            brief_id,
            retry_count,
            error,
        )

        def apply(brief: Brief) -> None:
            brief.ai_extraction.status = ExtractionStatus.FAILED
            brief.ai_extraction.processing_metadata.retry_count = retry_count
            brief.ai_extraction.processing_metadata.last_error = error

        mutate_brief(brief_id, apply, include_deleted=True, db_path=self.db_path)
