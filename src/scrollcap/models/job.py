"""Domain models for recording jobs and captures."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    """Job lifecycle states."""

    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def log_timestamp(now: datetime | None = None) -> str:
    """Render *now* as ``YYYY-MM-DD HH:MM:SS.mmm`` (UTC) for job log lines."""
    now = now or utc_now()
    return now.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.") + f"{now.microsecond // 1000:03d}"


class CaptureRequest(BaseModel):
    """Everything needed to record one URL. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    url: str
    output_root: Path
    video_width: int = 1920
    video_height: int = 1080
    device_scale_factor: float = 1.0
    pixels_per_second: float = 60


class CaptureResult(BaseModel):
    """A finished recording for one URL."""

    url: str
    file: str


class ScrollTelemetry(BaseModel):
    """What the in-page scroll driver reports when it finishes."""

    model_config = ConfigDict(populate_by_name=True)

    scroller: str = "unknown"
    total_pixels: float = Field(0.0, alias="totalPixels")
    moved_pixels: float = Field(0.0, alias="movedPixels")
    duration_ms: float = Field(0.0, alias="durationMs")
    avg_pps: float = Field(0.0, alias="avgPps")
    cancelled: bool = False

    def summary(self) -> str:
        """One-line human-readable movement summary for job logs."""
        return (
            f"Moved: {round(self.moved_pixels)}px of {round(self.total_pixels)}px "
            f"in {round(self.duration_ms)}ms (avg {round(self.avg_pps)} px/s)"
        )


class Job(BaseModel):
    """One batch request to record one or more URLs at one scroll speed.

    Serialised with camelCase timestamps (``startedAt``/``finishedAt``) so the
    status endpoint keeps the wire shape polled by the web page.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    status: JobStatus = JobStatus.QUEUED
    logs: list[str] = Field(default_factory=list)
    results: list[CaptureResult] = Field(default_factory=list)
    started_at: str | None = Field(None, alias="startedAt")
    finished_at: str | None = Field(None, alias="finishedAt")
    url_count: int = Field(0, alias="urlCount")
    scroll_speed: float = Field(0, alias="scrollSpeed")

    def log(self, message: str) -> str:
        """Append a timestamped line and return it."""
        line = f"[{log_timestamp()}] {message}"
        self.logs.append(line)
        return line

    def mark_running(self) -> None:
        self.status = JobStatus.RUNNING
        self.started_at = utc_now().isoformat()

    def mark_finished(self, status: JobStatus) -> None:
        self.status = status
        self.finished_at = utc_now().isoformat()
