"""FastAPI app for scrollcap: web page and REST API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scrollcap.api.routes import router
from scrollcap.api.web import web_router
from scrollcap.jobs.orchestrator import JobOrchestrator
from scrollcap.settings import get_settings

try:
    from importlib.metadata import version

    VERSION = version("scrollcap")
except Exception:
    VERSION = "0.0.0"

logger = logging.getLogger(__name__)


def create_app(orchestrator: JobOrchestrator | None = None) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        orchestrator: Job orchestrator to serve; built from settings when omitted.
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        if getattr(application.state, "orchestrator", None) is None:
            application.state.orchestrator = JobOrchestrator.from_settings(settings)
        Path(application.state.orchestrator.output_dir).mkdir(parents=True, exist_ok=True)
        logger.info("Recording to %s", application.state.orchestrator.output_dir)
        yield

    application = FastAPI(
        title="scrollcap",
        description="Record scrolling videos of web pages with consent overlays suppressed.",
        version=VERSION,
        lifespan=lifespan,
    )
    application.state.orchestrator = orchestrator

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    application.include_router(web_router)
    return application


app = create_app()
