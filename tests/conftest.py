"""scrollcap test configuration: shared fixtures for unit and integration tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

# ---------------------------------------------------------------------------
# Settings / async backend
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from scrollcap.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def anyio_backend() -> str:
    """Run ``@pytest.mark.anyio`` tests on asyncio only (Playwright needs it)."""
    return "asyncio"


# ---------------------------------------------------------------------------
# Mock Playwright objects
# ---------------------------------------------------------------------------


def make_button(*, count: int = 0, visible_after_click: bool = False) -> MagicMock:
    """A mock ``Locator.first`` with async count/wait/click/visibility."""
    button = MagicMock(name="button")
    button.count = AsyncMock(return_value=count)
    button.wait_for = AsyncMock()
    button.click = AsyncMock()
    button.is_visible = AsyncMock(return_value=visible_after_click)
    return button


def make_target(
    selectors: dict[str, MagicMock] | None = None,
    roles: dict[str, MagicMock] | None = None,
) -> MagicMock:
    """A mock page or frame whose locators resolve through lookup tables.

    *selectors* maps CSS selectors and *roles* maps accessible-name regex
    patterns to buttons; anything else resolves to a zero-count button.
    """
    selectors = selectors or {}
    roles = roles or {}
    target = MagicMock(name="target")

    def locator(selector: str) -> MagicMock:
        loc = MagicMock(name=f"locator({selector})")
        loc.first = selectors.get(selector) or make_button()
        return loc

    def get_by_role(role: str, *, name) -> MagicMock:
        loc = MagicMock(name=f"get_by_role({role})")
        loc.first = roles.get(name.pattern) or make_button()
        return loc

    target.locator.side_effect = locator
    target.get_by_role.side_effect = get_by_role
    return target


def make_page(
    selectors: dict[str, MagicMock] | None = None,
    roles: dict[str, MagicMock] | None = None,
    frames: list[MagicMock] | None = None,
) -> MagicMock:
    """A mock ``Page`` whose ``frames`` lists its main frame then *frames*."""
    page = make_target(selectors, roles)
    page.main_frame = MagicMock(name="main_frame")
    page.frames = [page.main_frame, *(frames or [])]
    return page


@pytest.fixture()
def button_factory():
    """Factory for mock consent buttons (see :func:`make_button`)."""
    return make_button


@pytest.fixture()
def frame_factory():
    """Factory for mock frames (see :func:`make_target`)."""
    return make_target


@pytest.fixture()
def page_factory():
    """Factory for mock pages (see :func:`make_page`)."""
    return make_page


@pytest.fixture()
def no_settle(monkeypatch: pytest.MonkeyPatch) -> None:
    """Skip the post-click settle delay in consent dismissal."""
    import scrollcap.browser.consent as consent

    monkeypatch.setattr(consent, "_SETTLE_SECONDS", 0)


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that drive a real Chromium browser")
    config.addinivalue_line("markers", "slow: marks tests that take more than a few seconds")
