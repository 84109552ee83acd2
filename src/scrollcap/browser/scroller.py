"""Scrollable-container detection and frame-accurate auto-scroll.

The page's real scroller is not always the document root: app shells often
scroll an inner ``overflow: auto`` element. Detection runs inside the page and
picks the element with the largest scrollable range (``scrollHeight -
clientHeight``), switching away from the current best only when a candidate
beats it by more than 5px so near-equal ranges do not flap.

Driving uses a ``requestAnimationFrame`` loop that advances the scroller by
``pixels_per_second * dt / 1000`` each frame, where ``dt`` is the time since
the previous frame. The loop ends once the offset is within 1px of the
maximum. A zero range completes on the first frame.

Each drive call hands the page a context object ``{pixelsPerSecond, token}``.
Starting a new drive aborts the ``AbortController`` of any drive still running
in that window, which then resolves early with ``cancelled: true``.
"""

from __future__ import annotations

import asyncio
import logging
from uuid import uuid4

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

from scrollcap.browser.consent import ConsentWatcher
from scrollcap.models.job import ScrollTelemetry

logger = logging.getLogger(__name__)

MIN_SPEED = 10
DEFAULT_SPEED = 60
# A candidate must exceed the current best range by more than this.
DETECTION_MARGIN_PX = 5

_DETECT_SCROLLER_FN = r"""
function detectScroller() {
    let best = document.scrollingElement || document.documentElement;
    let bestRange = (best.scrollHeight - best.clientHeight) || 0;

    for (const el of document.querySelectorAll('*')) {
        try {
            const overflowY = getComputedStyle(el).overflowY;
            if (!/(auto|scroll|overlay)/i.test(overflowY)) continue;
            const range = el.scrollHeight - el.clientHeight;
            if (range > bestRange + __MARGIN__) {
                best = el;
                bestRange = range;
            }
        } catch (e) {}
    }

    const tag = best.tagName ? best.tagName.toLowerCase() : 'unknown';
    const id = best.id ? `#${best.id}` : '';
    const cls = best.className && typeof best.className === 'string' && best.className.trim()
        ? '.' + best.className.trim().split(/\s+/).slice(0, 2).join('.')
        : '';
    return { el: best, label: `${tag}${id}${cls}`, range: Math.max(0, bestRange) };
}
""".replace("__MARGIN__", str(DETECTION_MARGIN_PX))

DETECT_SCROLLER_SCRIPT: str = (
    "() => {\n"
    + _DETECT_SCROLLER_FN
    + "\n    const pick = detectScroller();\n    return { label: pick.label, range: pick.range };\n}"
)

SCROLL_DRIVER_SCRIPT: str = (
    "async (ctx) => {\n"
    + _DETECT_SCROLLER_FN
    + r"""
    const KEY = Symbol.for('scrollcap.activeScroll');
    const previous = window[KEY];
    if (previous) previous.controller.abort();
    const controller = new AbortController();
    window[KEY] = { token: ctx.token, controller };

    const pick = detectScroller();
    const scroller = pick.el;
    const total = Math.max(0, scroller.scrollHeight - scroller.clientHeight);
    const startY = scroller.scrollTop;
    const pps = ctx.pixelsPerSecond;

    const t0 = performance.now();
    let last = t0;

    await new Promise((resolve) => {
        function step(now) {
            if (controller.signal.aborted) { resolve(); return; }
            const dt = now - last;
            last = now;
            const next = Math.min(scroller.scrollTop + (pps * dt) / 1000, total);
            scroller.scrollTop = next;
            if (next >= total - 1) resolve();
            else requestAnimationFrame(step);
        }
        requestAnimationFrame(step);
    });

    if (window[KEY] && window[KEY].token === ctx.token) delete window[KEY];

    const durationMs = performance.now() - t0;
    const moved = scroller.scrollTop - startY;
    return {
        scroller: pick.label,
        totalPixels: total,
        movedPixels: moved,
        durationMs,
        avgPps: moved > 0 ? moved / (durationMs / 1000) : 0,
        cancelled: controller.signal.aborted,
    };
}"""
)

# Applied right before scrolling, on top of the init-script style.
_NO_SMOOTH_SCROLL_CSS = """
* { scroll-behavior: auto !important; }
html, body { overscroll-behavior: none !important; }
"""


def effective_speed(
    pixels_per_second: float | None, *, minimum: float = MIN_SPEED, default: float = DEFAULT_SPEED
) -> float:
    """Clamp *pixels_per_second* to *minimum*, using *default* when unset."""
    return max(minimum, pixels_per_second or default)


async def detect_scroller(page: Page) -> tuple[str, float]:
    """Return ``(label, range)`` of the element auto-scroll would drive."""
    pick = await page.evaluate(DETECT_SCROLLER_SCRIPT)
    return pick["label"], float(pick["range"])


async def drive_scroll(page: Page, pixels_per_second: float, *, min_speed: float = MIN_SPEED) -> ScrollTelemetry:
    """Scroll the detected container from its current offset to the end."""
    speed = effective_speed(pixels_per_second, minimum=min_speed)
    context = {"pixelsPerSecond": speed, "token": uuid4().hex}
    raw = await page.evaluate(SCROLL_DRIVER_SCRIPT, context)
    return ScrollTelemetry.model_validate(raw)


async def prepare_page(page: Page, *, network_idle_wait_ms: int = 1500) -> None:
    """Disable smooth scrolling and motion, then wait for the page to settle.

    The network-idle wait is bounded and its timeout is ignored: many pages
    never go idle.
    """
    await page.add_style_tag(content=_NO_SMOOTH_SCROLL_CSS)
    await page.emulate_media(reduced_motion="reduce")
    await page.wait_for_load_state("domcontentloaded")
    if network_idle_wait_ms > 0:
        try:
            await page.wait_for_load_state("networkidle", timeout=network_idle_wait_ms)
        except PlaywrightTimeout:
            logger.debug("Network did not go idle within %dms; continuing", network_idle_wait_ms)


async def auto_scroll(
    page: Page,
    pixels_per_second: float,
    *,
    pre_roll_ms: int = 500,
    post_roll_ms: int = 500,
    network_idle_wait_ms: int = 1500,
    consent_poll_ms: int = 1000,
    consent_timeout_ms: int = 500,
    min_speed: float = MIN_SPEED,
) -> ScrollTelemetry:
    """Scroll *page* end to end at *pixels_per_second* and report telemetry.

    Holds still for *pre_roll_ms* before and *post_roll_ms* after the motion
    so the recording opens and closes on settled content. Late consent
    banners are dismissed by a :class:`ConsentWatcher` while the page moves.

    Args:
        page: Loaded Playwright page.
        pixels_per_second: Target speed (floored at *min_speed*).
        pre_roll_ms: Static delay before scrolling.
        post_roll_ms: Static delay after scrolling.
        network_idle_wait_ms: Upper bound on the network-idle wait.
        consent_poll_ms: Interval between consent closer scans.
        consent_timeout_ms: Per-step timeout for each scan.
        min_speed: Lowest speed the driver will run at.

    Returns:
        The driver's :class:`ScrollTelemetry`.
    """
    await prepare_page(page, network_idle_wait_ms=network_idle_wait_ms)
    if pre_roll_ms > 0:
        await asyncio.sleep(pre_roll_ms / 1000)

    async with ConsentWatcher(page, interval_ms=consent_poll_ms, timeout_ms=consent_timeout_ms):
        telemetry = await drive_scroll(page, pixels_per_second, min_speed=min_speed)

    if post_roll_ms > 0:
        await asyncio.sleep(post_roll_ms / 1000)

    logger.debug("Scroll telemetry: %s", telemetry.model_dump())
    return telemetry
