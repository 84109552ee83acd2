"""Cookie / consent overlay suppression for recorded pages.

Two layers keep consent UIs out of the video:

- **Setup** (:func:`install_consent_blockers`), applied to a browser context
  before any page exists: aborts requests to known consent-management
  vendors and injects a document-start script that hides known roots,
  removes large fixed consent overlays as they are inserted, and pre-seeds
  "already consented" flags in cookies and ``localStorage``.
- **Defensive closer** (:func:`dismiss_consent`), run after navigation and
  periodically while scrolling (:class:`ConsentWatcher`): walks an ordered
  attempt list of accept-button strategies over the page and all its frames.

Every click and visibility check is best-effort. A Playwright error inside one
attempt is logged at DEBUG and the pass moves on to the next strategy.

Usage::

    await install_consent_blockers(context)
    page = await context.new_page()
    await page.goto(url)
    await dismiss_consent(page)
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from playwright.async_api import BrowserContext, Frame, Locator, Page, Route
from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

# Requests to these consent-management vendors are aborted for the lifetime
# of the context.
CONSENT_URL_PATTERN = re.compile(
    r"lanyard|consent|cmp|cookiebot|onetrust|didomi|quantcast|trustarc|osano",
    re.IGNORECASE,
)

# Runs at document start in every frame, before any page script.
CONSENT_INIT_SCRIPT: str = r"""
(() => {
    try {
        const style = document.createElement('style');
        style.textContent = `
            #lanyard_root { display:none!important; visibility:hidden!important; opacity:0!important; }
            #lanyard_root * { display:none!important; }
            html, body, * { scroll-behavior: auto !important; }
        `;
        document.documentElement.appendChild(style);
    } catch (e) {}

    const CONSENT_TEXT = /cookie|consent|privacy|cmp|lanyard/i;
    const removeOverlay = (node) => {
        try {
            if (!node || node.nodeType !== 1) return;
            if (node.id === 'lanyard_root') { node.remove(); return; }
            const s = getComputedStyle(node);
            const area = node.clientWidth * node.clientHeight;
            if ((s.position === 'fixed' || s.position === 'sticky') &&
                area > innerWidth * innerHeight * 0.25 &&
                CONSENT_TEXT.test(node.innerText || '')) {
                node.remove();
            }
        } catch (e) {}
    };
    try {
        new MutationObserver((mutations) => {
            for (const m of mutations) m.addedNodes.forEach(removeOverlay);
        }).observe(document.documentElement, { childList: true, subtree: true });
    } catch (e) {}

    try {
        const expires = new Date(Date.now() + 31536000000).toUTCString();
        document.cookie = `cookie_consent=accepted; path=/; expires=${expires}; SameSite=Lax`;
    } catch (e) {}
    for (const [key, value] of [
        ['cookie_consent', 'accepted'],
        ['consentAccepted', 'true'],
        ['cookiesAccepted', 'true'],
    ]) {
        try { localStorage.setItem(key, value); } catch (e) {}
    }
})();
"""

# Known accept buttons, highest priority first. Playwright CSS pierces open
# shadow roots, so vendor widgets rendered in shadow trees are matched too.
ACCEPT_SELECTORS: tuple[str, ...] = (
    "#onetrust-accept-btn-handler",
    "button#onetrust-accept-btn-handler",
    'button:has-text("Accept all")',
    'button:has-text("Accept All")',
    'button:has-text("Accept")',
    'button:has-text("I Accept")',
    'button:has-text("Agree")',
    'button:has-text("Allow all")',
    'button:has-text("Accept cookies")',
    'button:has-text("Accept & close")',
    "#didomi-notice-agree-button",
    "#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll",
    ".truste-button1",
    '.qc-cmp2-summary-buttons button[mode="primary"]',
    ".osano-cm-accept",
    '#lanyard_root :is(button, [role="button"])',
)

# Accessible-name patterns for the secondary pass: en, pt, fr, de, es.
ACCEPT_BUTTON_NAMES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"accept all",
        r"accept cookies?",
        r"accept & close",
        r"allow all",
        r"agree",
        r"got it",
        r"aceitar",
        r"concordo",
        r"aceitar todos",
        r"accepter",
        r"tout accepter",
        r"akzeptieren",
        r"alle akzeptieren",
        r"aceptar",
        r"aceptar todo",
    )
)

_SETTLE_SECONDS = 0.12

Target = Page | Frame


class DismissOutcome(str, Enum):
    """Result of one dismissal attempt."""

    DISMISSED = "dismissed"
    NOT_FOUND = "not_found"
    STILL_VISIBLE = "still_visible"


async def _best_effort(action: Awaitable[Any], what: str) -> None:
    """Await *action*, logging and discarding any Playwright error."""
    try:
        await action
    except PlaywrightError as exc:
        logger.debug("Consent %s failed: %s", what, exc)


@dataclass(frozen=True)
class DismissStrategy:
    """One (locate, click, verify-dismissed) step of the attempt list."""

    name: str
    locate: Callable[[Target], Locator]
    wait_visible: bool = True
    trial_click: bool = True

    async def attempt(self, target: Target, timeout_ms: int) -> DismissOutcome:
        try:
            button = self.locate(target).first
            if not await button.count():
                return DismissOutcome.NOT_FOUND
        except PlaywrightError as exc:
            logger.debug("Consent locate %s failed: %s", self.name, exc)
            return DismissOutcome.NOT_FOUND

        if self.wait_visible:
            await _best_effort(button.wait_for(state="visible", timeout=timeout_ms), f"wait {self.name}")
        if self.trial_click:
            await _best_effort(button.click(timeout=timeout_ms, trial=True), f"trial click {self.name}")
        await _best_effort(button.click(timeout=timeout_ms, force=True), f"click {self.name}")
        await asyncio.sleep(_SETTLE_SECONDS)

        try:
            still_visible = await button.is_visible()
        except PlaywrightError:
            still_visible = False
        return DismissOutcome.STILL_VISIBLE if still_visible else DismissOutcome.DISMISSED


def _selector_strategy(selector: str) -> DismissStrategy:
    return DismissStrategy(name=selector, locate=lambda target: target.locator(selector))


def _role_strategy(pattern: re.Pattern[str]) -> DismissStrategy:
    return DismissStrategy(
        name=f"button[name~/{pattern.pattern}/]",
        locate=lambda target: target.get_by_role("button", name=pattern),
        wait_visible=False,
        trial_click=False,
    )


DEFAULT_STRATEGIES: tuple[DismissStrategy, ...] = (
    *(_selector_strategy(s) for s in ACCEPT_SELECTORS),
    *(_role_strategy(p) for p in ACCEPT_BUTTON_NAMES),
)


async def _dismiss_in(
    target: Target,
    strategies: tuple[DismissStrategy, ...],
    timeout_ms: int,
) -> bool:
    for strategy in strategies:
        outcome = await strategy.attempt(target, timeout_ms)
        if outcome is DismissOutcome.DISMISSED:
            logger.info("Dismissed consent UI via %s", strategy.name)
            return True
        if outcome is DismissOutcome.STILL_VISIBLE:
            logger.debug("Consent button %s clicked but still visible", strategy.name)
    return False


async def dismiss_consent(
    page: Page,
    *,
    timeout_ms: int = 800,
    strategies: tuple[DismissStrategy, ...] = DEFAULT_STRATEGIES,
) -> bool:
    """Try to close any consent dialog on *page* or inside any of its frames.

    The main page is tried first, then every child frame (cross-origin
    iframes included). Stops at the first strategy that makes its button
    disappear.

    Args:
        page: Live Playwright page.
        timeout_ms: Per-step visibility / click timeout.
        strategies: Ordered attempt list.

    Returns:
        ``True`` if a dialog was dismissed, ``False`` otherwise. Never raises
        for a missing or unclickable button.
    """
    if await _dismiss_in(page, strategies, timeout_ms):
        return True

    try:
        frames = [f for f in page.frames if f is not page.main_frame]
    except PlaywrightError as exc:
        logger.debug("Could not enumerate frames: %s", exc)
        return False

    for frame in frames:
        if await _dismiss_in(frame, strategies, timeout_ms):
            return True
    return False


async def _abort_route(route: Route) -> None:
    await _best_effort(route.abort(), "route abort")


async def install_consent_blockers(context: BrowserContext) -> None:
    """Block consent vendors and pre-inject suppression into *context*.

    Must be called before the first page is created so the init script runs
    in every document from the start.
    """
    await context.route(CONSENT_URL_PATTERN, _abort_route)
    await context.add_init_script(CONSENT_INIT_SCRIPT)
    logger.debug("Consent blockers installed")


class ConsentWatcher:
    """Periodically re-run :func:`dismiss_consent` while a page scrolls.

    Each interval tick launches a scan unless one is still running; a busy
    flag keeps scans from overlapping. Use as an async context manager::

        async with ConsentWatcher(page, interval_ms=1000):
            await drive_scroll(...)

    Args:
        page: Page to watch.
        interval_ms: Time between ticks.
        timeout_ms: Per-step timeout handed to the closer.
        dismiss: Closer coroutine (injectable for tests).
    """

    def __init__(
        self,
        page: Page,
        *,
        interval_ms: int = 1000,
        timeout_ms: int = 500,
        dismiss: Callable[..., Awaitable[bool]] = dismiss_consent,
    ) -> None:
        self._page = page
        self._interval = interval_ms / 1000
        self._timeout_ms = timeout_ms
        self._dismiss = dismiss
        self._busy = False
        self._timer: asyncio.Task[None] | None = None
        self._scans: set[asyncio.Task[bool]] = set()
        self.dismissals = 0
        self.skipped = 0

    @property
    def busy(self) -> bool:
        return self._busy

    async def scan(self) -> bool:
        """Run one closer pass, or skip it if another is still running."""
        if self._busy:
            self.skipped += 1
            return False
        self._busy = True
        try:
            dismissed = await self._dismiss(self._page, timeout_ms=self._timeout_ms)
        finally:
            self._busy = False
        if dismissed:
            self.dismissals += 1
        return dismissed

    async def _scan_quietly(self) -> bool:
        try:
            return await self.scan()
        except PlaywrightError as exc:
            logger.debug("Consent watcher scan failed: %s", exc)
            return False

    async def _tick_forever(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            task = asyncio.create_task(self._scan_quietly())
            self._scans.add(task)
            task.add_done_callback(self._scans.discard)

    def start(self) -> None:
        if self._timer is None:
            self._timer = asyncio.create_task(self._tick_forever())

    async def stop(self) -> None:
        pending = [t for t in (self._timer, *self._scans) if t is not None]
        for task in pending:
            task.cancel()
        # Scans may finish with a Playwright error once the page goes away.
        await asyncio.gather(*pending, return_exceptions=True)
        self._timer = None
        if self.dismissals:
            logger.info("Consent watcher dismissed %d late banner(s)", self.dismissals)

    async def __aenter__(self) -> "ConsentWatcher":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
