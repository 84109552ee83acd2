"""Run batches of URL captures in the background and track their progress.

``submit`` validates the request, registers a ``queued`` job, schedules it on
the running event loop and returns at once. The job then records each URL in
submission order; the first failure stops the batch and marks the job
``error``, keeping the results recorded up to that point.

Jobs submitted together interleave on the event loop. ``max_concurrent_jobs``
caps how many of them record at once (``0`` = no cap); jobs over the cap stay
``queued`` until a slot frees up.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from functools import partial
from pathlib import Path
from typing import Any

from scrollcap.browser.scroller import DEFAULT_SPEED, MIN_SPEED
from scrollcap.browser.session import record_url
from scrollcap.exceptions import JobFailure, ValidationError
from scrollcap.models.job import CaptureRequest, CaptureResult, Job, JobStatus
from scrollcap.settings.config import Settings
from scrollcap.store.job_store import InMemoryJobStore, JobStore

logger = logging.getLogger(__name__)

CaptureFn = Callable[..., Awaitable[Path]]


def parse_urls(text: str | None) -> list[str]:
    """Split newline-delimited *text* into trimmed, non-blank URLs."""
    if not text:
        return []
    return [line.strip() for line in str(text).splitlines() if line.strip()]


def clamp_speed(value: Any, *, default: float = DEFAULT_SPEED, minimum: float = MIN_SPEED) -> float:
    """Coerce a submitted scroll speed to pixels/second.

    Missing, non-numeric or zero values fall back to *default*; everything
    else is floored at *minimum*.
    """
    try:
        speed = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(speed) or speed == 0:
        return default
    return max(minimum, speed)


class JobOrchestrator:
    """Owns the job store and every background recording task.

    Args:
        store: Job registry; a fresh in-memory store by default.
        output_dir: Root directory for recordings.
        capture: Coroutine ``(request, *, log) -> Path`` recording one URL.
        max_concurrent_jobs: Admission cap on jobs recording at once (0 = none).
        video_width: Recording width in pixels.
        video_height: Recording height in pixels.
        device_scale_factor: Device pixel ratio of the recording context.
        default_speed: Speed used when a submission has none.
        min_speed: Floor applied to submitted speeds.
    """

    def __init__(
        self,
        store: JobStore | None = None,
        *,
        output_dir: Path,
        capture: CaptureFn = record_url,
        max_concurrent_jobs: int = 0,
        video_width: int = 1920,
        video_height: int = 1080,
        device_scale_factor: float = 1.0,
        default_speed: float = DEFAULT_SPEED,
        min_speed: float = MIN_SPEED,
    ) -> None:
        self.store = store if store is not None else InMemoryJobStore()
        self.output_dir = Path(output_dir)
        self._capture = capture
        self._slots = asyncio.Semaphore(max_concurrent_jobs) if max_concurrent_jobs > 0 else None
        self._video_width = video_width
        self._video_height = video_height
        self._device_scale_factor = device_scale_factor
        self._default_speed = default_speed
        self._min_speed = min_speed
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @classmethod
    def from_settings(cls, settings: Settings, store: JobStore | None = None) -> "JobOrchestrator":
        """Build an orchestrator wired to real Playwright captures."""
        capture = partial(
            record_url,
            browser_settings=settings.browser,
            scroll_settings=settings.scroll,
        )
        return cls(
            store,
            output_dir=Path(settings.output.output_dir),
            capture=capture,
            max_concurrent_jobs=settings.api.max_concurrent_jobs,
            video_width=settings.browser.video_width,
            video_height=settings.browser.video_height,
            device_scale_factor=settings.browser.device_scale_factor,
            default_speed=settings.scroll.default_speed,
            min_speed=settings.scroll.min_speed,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, urls: str | None, scroll_speed: Any = None) -> Job:
        """Register a job for *urls* and start it in the background.

        Must be called from inside a running event loop.

        Raises:
            ValidationError: No URL remains after dropping blank lines.
        """
        url_list = parse_urls(urls)
        if not url_list:
            raise ValidationError("No URLs provided.")

        speed = clamp_speed(scroll_speed, default=self._default_speed, minimum=self._min_speed)
        job = Job(url_count=len(url_list), scroll_speed=speed)
        self.store.put(job)

        task = asyncio.create_task(self._run_in_background(job, url_list), name=f"scrollcap-job-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda _t, job_id=job.id: self._tasks.pop(job_id, None))
        logger.info("Queued job %s with %d URL(s) at %g px/s", job.id, len(url_list), speed)
        return job

    def get(self, job_id: str) -> Job | None:
        return self.store.get(job_id)

    async def wait(self, job_id: str) -> Job | None:
        """Block until the background task for *job_id* finishes."""
        task = self._tasks.get(job_id)
        if task is not None:
            await task
        return self.store.get(job_id)

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    async def run_job(self, job: Job, urls: list[str]) -> Job:
        """Record *urls* for *job* in order, honouring the admission cap.

        Raises:
            JobFailure: A capture failed; the job is already marked ``error``.
        """
        if self._slots is None:
            return await self._execute(job, urls)
        if self._slots.locked():
            self._log(job, "Waiting for a free recording slot")
        async with self._slots:
            return await self._execute(job, urls)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _log(self, job: Job, message: str) -> None:
        job.log(message)
        logger.info("[job %s] %s", job.id[:8], message)

    async def _run_in_background(self, job: Job, urls: list[str]) -> None:
        try:
            await self.run_job(job, urls)
        except JobFailure as exc:
            logger.warning("Job %s ended in error: %s", exc.job_id, exc)

    async def _execute(self, job: Job, urls: list[str]) -> Job:
        job.mark_running()
        self._log(job, f"Received {len(urls)} URL(s). Using speed: {job.scroll_speed:g} px/s")
        log = partial(self._log, job)
        try:
            for url in urls:
                request = CaptureRequest(
                    url=url,
                    output_root=self.output_dir,
                    video_width=self._video_width,
                    video_height=self._video_height,
                    device_scale_factor=self._device_scale_factor,
                    pixels_per_second=job.scroll_speed,
                )
                file = await self._capture(request, log=log)
                job.results.append(CaptureResult(url=url, file=str(file)))
        except Exception as exc:
            job.mark_finished(JobStatus.ERROR)
            self._log(job, f"Job failed: {exc}")
            raise JobFailure(job.id, str(exc)) from exc

        job.mark_finished(JobStatus.DONE)
        self._log(job, "All recordings completed.")
        return job
