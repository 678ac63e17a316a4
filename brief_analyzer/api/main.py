from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from brief_analyzer.api.errors import brief_error_handler, validation_exception_handler
from brief_analyzer.api.routes_briefs import router as briefs_router
from brief_analyzer.api.routes_clarifications import router as clarifications_router
from brief_analyzer.api.routes_conversion import router as conversion_router
from brief_analyzer.api.routes_creators import router as creators_router
from brief_analyzer.briefs.service import BriefService
from brief_analyzer.config import BriefsConfig, configure_logging, load_config
from brief_analyzer.db.database import init_db
from brief_analyzer.errors import BriefAnalyzerError
from brief_analyzer.extraction.client import AIExtractionClient, get_extraction_client
from brief_analyzer.extraction.orchestrator import ExtractionOrchestrator
from brief_analyzer.extraction.tasks import ExtractionTaskRunner


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    app.state.task_runner.shutdown(wait=False)


def create_app(
    config: Optional[BriefsConfig] = None,
    db_path: Path | None = None,
    client: Optional[AIExtractionClient] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    """Wire config, storage, the extraction runner and the routers together."""
    config = config or load_config()
    init_db(db_path)

    orchestrator = ExtractionOrchestrator(
        client or get_extraction_client(config.extraction),
        config.extraction,
        db_path=db_path,
        sleep=sleep,
    )
    runner = ExtractionTaskRunner(orchestrator, max_workers=config.extraction.worker_threads)

    app = FastAPI(
        title="Brief Analyzer",
        version="0.1.0",
        description="AI analysis of brand collaboration briefs into draft deals",
        lifespan=_lifespan,
    )
    app.state.service = BriefService(config, task_runner=runner, db_path=db_path)
    app.state.task_runner = runner

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(BriefAnalyzerError, brief_error_handler)
    app.include_router(creators_router)
    app.include_router(briefs_router)
    app.include_router(clarifications_router)
    app.include_router(conversion_router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app


def main() -> None:
    """Serve the API with logging configured from LOG_LEVEL."""
    configure_logging()
    uvicorn.run(
        create_app(),
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
