"""API routes for submitting recording jobs and polling their status."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from scrollcap.exceptions import ValidationError
from scrollcap.jobs.orchestrator import JobOrchestrator

router = APIRouter()


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class RecordRequest(BaseModel):
    """Parameters for a ``POST /api/record`` request."""

    model_config = ConfigDict(populate_by_name=True)

    urls: str | None = Field(None, description="Newline-separated list of URLs to record.")
    scroll_speed: Any = Field(
        None,
        alias="scrollSpeed",
        description="Scroll speed in pixels/second (floor 10, default 60).",
    )


class RecordResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., alias="jobId")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_orchestrator(request: Request) -> JobOrchestrator:
    """Return the orchestrator created in the app lifespan."""
    return request.app.state.orchestrator


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/api/record", response_model=RecordResponse, response_model_by_alias=True)
async def submit_recording(
    req: RecordRequest | None = None,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> RecordResponse:
    """Queue a recording job. Returns immediately with a job ID."""
    if req is None:
        req = RecordRequest()
    try:
        job = orchestrator.submit(req.urls, req.scroll_speed)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RecordResponse(job_id=job.id)


@router.get("/api/status/{job_id}")
async def get_job_status(
    job_id: str,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Return the full job record: status, logs, results and timestamps."""
    job = orchestrator.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found.")
    return job.model_dump(mode="json", by_alias=True)
