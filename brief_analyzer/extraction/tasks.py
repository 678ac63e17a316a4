"""Background execution of extraction runs with observable outcomes.

Creating a brief must not wait for the AI, so runs are submitted to a thread
pool. Every run ends in an ``ExtractionOutcome`` that callers can look up or
subscribe to; failures are logged here and never propagate to the code that
submitted the run.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from enum import StrEnum
from typing import Callable, Optional

from pydantic import BaseModel, Field

from brief_analyzer.briefs.models import utcnow
from brief_analyzer.extraction.orchestrator import ExtractionOrchestrator

logger = logging.getLogger(__name__)


class OutcomeState(StrEnum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExtractionOutcome(BaseModel):
    brief_id: str
    state: OutcomeState
    error: Optional[str] = None
    finished_at: datetime = Field(default_factory=utcnow)


OutcomeListener = Callable[[ExtractionOutcome], None]

MAX_OUTCOMES = 1000


class ExtractionTaskRunner:
    def __init__(
        self,
        orchestrator: ExtractionOrchestrator,
        max_workers: int = 4,
        max_outcomes: int = MAX_OUTCOMES,
    ) -> None:
        self.orchestrator = orchestrator
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="extraction")
        # most recent last; oldest evicted past max_outcomes
        self._outcomes: OrderedDict[str, ExtractionOutcome] = OrderedDict()
        self._max_outcomes = max_outcomes
        self._listeners: list[OutcomeListener] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: OutcomeListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def submit(self, brief_id: str) -> Future[ExtractionOutcome]:
        logger.info("Queued AI extraction for brief %s", brief_id)
        return self._executor.submit(self._run, brief_id)

    def outcome(self, brief_id: str) -> Optional[ExtractionOutcome]:
        with self._lock:
            return self._outcomes.get(brief_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _run(self, brief_id: str) -> ExtractionOutcome:
        try:
            result = self.orchestrator.run_extraction(brief_id)
        except Exception as exc:
            logger.error("AI processing failed for brief %s: %s", brief_id, exc)
            outcome = ExtractionOutcome(brief_id=brief_id, state=OutcomeState.FAILED, error=str(exc))
        else:
            state = OutcomeState.SKIPPED if result is None else OutcomeState.COMPLETED
            outcome = ExtractionOutcome(brief_id=brief_id, state=state)

        with self._lock:
            self._outcomes[brief_id] = outcome
            self._outcomes.move_to_end(brief_id)
            while len(self._outcomes) > self._max_outcomes:
                self._outcomes.popitem(last=False)
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(outcome)
            except Exception:
                logger.exception("Extraction outcome listener failed for brief %s", brief_id)
        return outcome
