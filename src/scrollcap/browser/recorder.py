"""Start/stop handshake around a recording-enabled Playwright page.

Playwright records video for every page of a context created with
``record_video_dir``; the file is only finalized once the page closes. This
wraps that in an explicit state machine::

    IDLE --start()--> CAPTURING --stop()--> FINALIZING --> IDLE

``start`` returns once the page exists (capture is active). ``stop`` closes
the page and returns only when the finalized artifact path is known.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path

from playwright.async_api import BrowserContext, Page, Video
from playwright.async_api import Error as PlaywrightError

from scrollcap.exceptions import RecorderStateError

logger = logging.getLogger(__name__)


class RecorderState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    FINALIZING = "finalizing"


class PageRecorder:
    """Owns one recorded page of a context configured with ``record_video_dir``."""

    def __init__(self) -> None:
        self.state = RecorderState.IDLE
        self._page: Page | None = None
        self._video: Video | None = None
        self._artifact: Path | None = None

    @property
    def page(self) -> Page:
        if self._page is None or self.state is not RecorderState.CAPTURING:
            raise RecorderStateError(f"No page while recorder is {self.state.value}")
        return self._page

    async def start(self, context: BrowserContext) -> Page:
        """Open the recorded page; recording is active when this returns."""
        if self.state is not RecorderState.IDLE:
            raise RecorderStateError(f"Cannot start recorder while {self.state.value}")
        self._page = await context.new_page()
        if self._page.video is None:
            await self._page.close()
            self._page = None
            raise RecorderStateError("Context is not configured to record video")
        self._video = self._page.video
        self.state = RecorderState.CAPTURING
        return self._page

    async def stop(self) -> Path:
        """Close the page and wait for the finalized video file.

        Returns:
            Path of the raw artifact Playwright wrote.
        """
        if self.state is not RecorderState.CAPTURING or self._page is None:
            raise RecorderStateError(f"Cannot stop recorder while {self.state.value}")
        self.state = RecorderState.FINALIZING
        page, self._page = self._page, None
        try:
            await page.close()
            self._artifact = Path(await self._video.path())
        finally:
            self.state = RecorderState.IDLE
        return self._artifact

    def release(self) -> None:
        """Hand the artifact over to the caller; :meth:`discard` no longer touches it."""
        self._video = None
        self._artifact = None

    async def abort(self) -> None:
        """Close the page without collecting the artifact, ignoring errors."""
        page, self._page = self._page, None
        self.state = RecorderState.IDLE
        if page is None:
            return
        try:
            await page.close()
        except PlaywrightError as exc:
            logger.debug("Page close during abort failed: %s", exc)

    async def discard(self) -> None:
        """Delete the video of a failed capture, ignoring errors.

        Covers both a capture aborted mid-recording and one whose finalized
        file was never handed over with :meth:`release`. Call after the owning
        context is closed so the file is complete.
        """
        video, self._video = self._video, None
        artifact, self._artifact = self._artifact, None
        if video is not None:
            try:
                await video.delete()
            except PlaywrightError as exc:
                logger.debug("Discarding partial video failed: %s", exc)
        if artifact is not None:
            try:
                await asyncio.to_thread(artifact.unlink, missing_ok=True)
            except OSError as exc:
                logger.warning("Removing unrenamed video %s failed: %s", artifact, exc)
