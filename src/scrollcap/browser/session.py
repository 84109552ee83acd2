"""One URL in, one finalized scrolling video out.

A :class:`CaptureSession` walks a fixed sequence of states::

    created -> browser_launched -> context_configured -> page_opened
            -> navigated -> scrolling -> page_closed -> artifact_renamed -> done

Any failing step moves the session to ``failed``, closes the page, and
re-raises (wrapped in :class:`~scrollcap.exceptions.CaptureError` unless it is
already a scrollcap error). The context and browser are closed on every exit
path; errors while closing them are logged and never mask the original one.

A fresh Chromium is launched per session so no consent cookies or storage
leak from one URL into the next.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from scrollcap.browser.consent import dismiss_consent, install_consent_blockers
from scrollcap.browser.naming import artifact_path, recording_dir
from scrollcap.browser.recorder import PageRecorder
from scrollcap.browser.scroller import auto_scroll, effective_speed
from scrollcap.exceptions import CaptureError, NavigationTimeoutError, ScrollcapError
from scrollcap.models.job import CaptureRequest, ScrollTelemetry, utc_now
from scrollcap.settings.config import BrowserSettings, ScrollSettings

logger = logging.getLogger(__name__)

LogFn = Callable[[str], Any]


class SessionState(str, Enum):
    """Capture session lifecycle."""

    CREATED = "created"
    BROWSER_LAUNCHED = "browser_launched"
    CONTEXT_CONFIGURED = "context_configured"
    PAGE_OPENED = "page_opened"
    NAVIGATED = "navigated"
    SCROLLING = "scrolling"
    PAGE_CLOSED = "page_closed"
    ARTIFACT_RENAMED = "artifact_renamed"
    DONE = "done"
    FAILED = "failed"


class CaptureSession:
    """Record one :class:`CaptureRequest` with a dedicated browser.

    Args:
        request: What to record and where.
        log: Sink for user-visible progress lines (e.g. ``Job.log``).
        browser_settings: Launch and navigation settings.
        scroll_settings: Scroll timing and consent polling settings.
        clock: Returns the time used to name the artifact.
    """

    def __init__(
        self,
        request: CaptureRequest,
        *,
        log: LogFn | None = None,
        browser_settings: BrowserSettings | None = None,
        scroll_settings: ScrollSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.request = request
        self.state = SessionState.CREATED
        self.telemetry: ScrollTelemetry | None = None
        self._log_fn = log
        self._browser_settings = browser_settings or BrowserSettings()
        self._scroll_settings = scroll_settings or ScrollSettings()
        self._clock = clock

    def _log(self, message: str) -> None:
        if self._log_fn is not None:
            self._log_fn(message)
        else:
            logger.info("%s", message)

    def _advance(self, state: SessionState) -> None:
        logger.debug("%s: %s -> %s", self.request.url, self.state.value, state.value)
        self.state = state

    async def run(self, playwright: Playwright) -> Path:
        """Execute the capture and return the final artifact path.

        Raises:
            NavigationTimeoutError: The page did not reach DOM-ready in time.
            CaptureError: Any other failure while capturing or finalizing.
        """
        req = self.request
        browser: Browser | None = None
        context: BrowserContext | None = None
        recorder = PageRecorder()
        try:
            out_dir = recording_dir(req.output_root, req.url)
            await asyncio.to_thread(out_dir.mkdir, parents=True, exist_ok=True)

            browser = await playwright.chromium.launch(
                headless=self._browser_settings.headless,
                chromium_sandbox=self._browser_settings.sandbox,
            )
            self._advance(SessionState.BROWSER_LAUNCHED)

            size = {"width": req.video_width, "height": req.video_height}
            context = await browser.new_context(
                viewport=size,
                device_scale_factor=req.device_scale_factor,
                record_video_dir=str(out_dir),
                record_video_size=size,
            )
            await install_consent_blockers(context)
            self._advance(SessionState.CONTEXT_CONFIGURED)

            page = await recorder.start(context)
            self._advance(SessionState.PAGE_OPENED)

            self._log(f"Opening {req.url}")
            await self._navigate(page)
            self._advance(SessionState.NAVIGATED)
            await dismiss_consent(page, timeout_ms=self._scroll_settings.consent_timeout_ms)

            scroll = self._scroll_settings
            speed = effective_speed(req.pixels_per_second, minimum=scroll.min_speed, default=scroll.default_speed)
            self._log(f"Target speed: {speed:g} px/s")
            self._advance(SessionState.SCROLLING)
            self.telemetry = await auto_scroll(
                page,
                req.pixels_per_second,
                pre_roll_ms=scroll.pre_roll_ms,
                post_roll_ms=scroll.post_roll_ms,
                network_idle_wait_ms=scroll.network_idle_wait_ms,
                consent_poll_ms=scroll.consent_poll_ms,
                min_speed=scroll.min_speed,
            )
            self._log(f"Scroller: {self.telemetry.scroller}")
            self._log(self.telemetry.summary())

            raw = await recorder.stop()
            self._advance(SessionState.PAGE_CLOSED)

            final = artifact_path(req.output_root, req.url, self._clock())
            await asyncio.to_thread(shutil.move, raw, final)
            recorder.release()
            self._advance(SessionState.ARTIFACT_RENAMED)
            self._log(f"Saved: {final}")

            self._advance(SessionState.DONE)
            return final
        except Exception as exc:
            failed_in = self.state
            self.state = SessionState.FAILED
            logger.error("Capture of %s failed in state %s: %s", req.url, failed_in.value, exc)
            self._log(f"Error on {req.url}: {exc}")
            await recorder.abort()
            if isinstance(exc, ScrollcapError):
                raise
            raise CaptureError(req.url, str(exc)) from exc
        finally:
            await self._close(context, "context")
            if self.state is SessionState.FAILED:
                await recorder.discard()
            await self._close(browser, "browser")

    async def _navigate(self, page: Page) -> None:
        timeout_ms = self._browser_settings.navigation_timeout_ms
        try:
            await page.goto(self.request.url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeout as exc:
            raise NavigationTimeoutError(self.request.url, timeout_ms) from exc

    async def _close(self, resource: Browser | BrowserContext | None, what: str) -> None:
        if resource is None:
            return
        try:
            await resource.close()
        except PlaywrightError as exc:
            logger.warning("Closing %s for %s failed: %s", what, self.request.url, exc)


async def record_url(
    request: CaptureRequest,
    *,
    log: LogFn | None = None,
    browser_settings: BrowserSettings | None = None,
    scroll_settings: ScrollSettings | None = None,
) -> Path:
    """Start Playwright, record *request*, and return the final video path."""
    async with async_playwright() as pw:
        session = CaptureSession(
            request,
            log=log,
            browser_settings=browser_settings,
            scroll_settings=scroll_settings,
        )
        return await session.run(pw)
