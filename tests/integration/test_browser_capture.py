"""Browser integration tests against local fixture pages.

Drives a real headless Chromium. Skipped when Playwright's browser is not
installed (``playwright install chromium``).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright

from scrollcap.browser.consent import dismiss_consent
from scrollcap.browser.scroller import detect_scroller, drive_scroll
from scrollcap.browser.session import record_url
from scrollcap.models.job import CaptureRequest
from scrollcap.settings.config import BrowserSettings, ScrollSettings

pytestmark = pytest.mark.integration

PAGES_DIR = Path(__file__).resolve().parent.parent / "fixtures" / "pages"


def _page_url(name: str) -> str:
    return (PAGES_DIR / name).as_uri()


@asynccontextmanager
async def _open(name: str) -> AsyncIterator[Page]:
    async with async_playwright() as pw:
        try:
            browser = await pw.chromium.launch(headless=True)
        except PlaywrightError as exc:
            pytest.skip(f"Chromium unavailable: {exc}")
        try:
            page = await browser.new_page(viewport={"width": 800, "height": 600})
            await page.goto(_page_url(name))
            yield page
        finally:
            await browser.close()


class TestScrollerDetection:
    @pytest.mark.anyio
    async def test_nested_container_beats_root(self) -> None:
        async with _open("nested_scroller.html") as page:
            label, range_px = await detect_scroller(page)
        assert label == "div#feed"
        assert range_px == 500

    @pytest.mark.anyio
    async def test_near_tie_keeps_root(self) -> None:
        async with _open("near_tie.html") as page:
            label, range_px = await detect_scroller(page)
        assert label == "html"
        assert range_px == 100


class TestDriveScroll:
    @pytest.mark.anyio
    async def test_scrolls_container_to_the_end(self) -> None:
        async with _open("nested_scroller.html") as page:
            telemetry = await drive_scroll(page, 1000)
            offset = await page.evaluate("document.getElementById('feed').scrollTop")

        assert telemetry.scroller == "div#feed"
        assert telemetry.total_pixels == 500
        assert offset >= 499
        assert telemetry.moved_pixels >= 499
        assert telemetry.cancelled is False

    @pytest.mark.anyio
    async def test_non_scrollable_page_completes_immediately(self) -> None:
        async with _open("static.html") as page:
            telemetry = await drive_scroll(page, 60)

        assert telemetry.total_pixels == 0
        assert telemetry.moved_pixels == 0
        assert telemetry.duration_ms < 1000

    @pytest.mark.anyio
    async def test_second_drive_cancels_first(self) -> None:
        async with _open("nested_scroller.html") as page:
            slow_drive = asyncio.create_task(drive_scroll(page, 10))
            await asyncio.sleep(0.3)
            fast = await drive_scroll(page, 2000)
            cancelled = await slow_drive

        assert cancelled.cancelled is True
        assert fast.cancelled is False


class TestConsentDismissal:
    @pytest.mark.anyio
    async def test_banner_dismissed_once(self) -> None:
        async with _open("consent_banner.html") as page:
            first = await dismiss_consent(page, timeout_ms=500)
            second = await dismiss_consent(page, timeout_ms=200)
            remaining = await page.locator("#banner").count()

        assert first is True
        assert second is False
        assert remaining == 0

    @pytest.mark.anyio
    async def test_no_banner_is_noop(self) -> None:
        async with _open("static.html") as page:
            assert await dismiss_consent(page, timeout_ms=200) is False


@pytest.mark.slow
class TestRecordUrl:
    @pytest.mark.anyio
    async def test_produces_named_webm(self, tmp_path: Path) -> None:
        request = CaptureRequest(
            url=_page_url("nested_scroller.html"),
            output_root=tmp_path,
            video_width=640,
            video_height=480,
            pixels_per_second=2000,
        )
        logs: list[str] = []
        try:
            final = await record_url(
                request,
                log=logs.append,
                browser_settings=BrowserSettings(navigation_timeout_ms=10_000, sandbox=False),
                scroll_settings=ScrollSettings(pre_roll_ms=0, post_roll_ms=0, network_idle_wait_ms=0),
            )
        except Exception as exc:
            if "Executable doesn't exist" in str(exc):
                pytest.skip(f"Chromium unavailable: {exc}")
            raise

        assert final.is_file()
        assert final.suffix == ".webm"
        assert final.stat().st_size > 0
        assert list(tmp_path.rglob("*.webm")) == [final]
        assert logs[-1] == f"Saved: {final}"
