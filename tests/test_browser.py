# tests/test_browser.py

"""Tests for BrowserSession setup and teardown with a mocked Playwright driver."""

import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from playwright.async_api import Error as PlaywrightError

from config.settings import ScraperConfig
from vinted_sync.extractors.browser import BrowserSession


def _driver() -> tuple[MagicMock, MagicMock, MagicMock, MagicMock]:
    """Build mocks for the Playwright driver, browser, context and page."""
    page = MagicMock()

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()
    return playwright, browser, context, page


def _async_playwright(playwright: MagicMock) -> MagicMock:
    """Stand-in for ``async_playwright`` whose ``start()`` returns ``playwright``."""
    starter = MagicMock()
    starter.start = AsyncMock(return_value=playwright)
    return MagicMock(return_value=starter)


class TestBrowserSession(unittest.IsolatedAsyncioTestCase):
    """Tests for context configuration, stealth pages and release on every path."""

    def setUp(self) -> None:
        self.config = ScraperConfig(headless=True)
        self.playwright, self.browser, self.context, self.page = _driver()
        self.stealth = AsyncMock()

        patches = [
            patch(
                "vinted_sync.extractors.browser.async_playwright",
                _async_playwright(self.playwright),
            ),
            patch("vinted_sync.extractors.browser.stealth_async", self.stealth),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

    async def test_context_gets_identity_and_timeouts(self) -> None:
        """The context carries viewport, user agent, locale and timeouts."""
        async with BrowserSession(self.config):
            pass

        self.playwright.chromium.launch.assert_awaited_once_with(
            headless=True, args=["--no-sandbox", "--disable-setuid-sandbox"]
        )
        self.browser.new_context.assert_awaited_once_with(
            viewport={"width": 1366, "height": 900},
            user_agent=self.config.user_agent,
            locale="cs-CZ",
            timezone_id="Europe/Prague",
        )
        self.context.set_default_timeout.assert_called_once_with(15000)
        self.context.set_default_navigation_timeout.assert_called_once_with(60000)

    async def test_new_page_applies_stealth(self) -> None:
        """Every page handed out has the stealth patches applied."""
        async with BrowserSession(self.config) as session:
            page = await session.new_page()

        self.assertIs(page, self.page)
        self.stealth.assert_awaited_once_with(self.page)

    async def test_new_page_requires_started_session(self) -> None:
        """Pages cannot be opened before the session starts."""
        with self.assertRaises(RuntimeError):
            await BrowserSession(self.config).new_page()

    async def test_exit_closes_everything_in_order(self) -> None:
        """Leaving the block closes context, browser and driver."""
        order: list[str] = []
        self.context.close.side_effect = lambda: order.append("context")
        self.browser.close.side_effect = lambda: order.append("browser")
        self.playwright.stop.side_effect = lambda: order.append("driver")

        async with BrowserSession(self.config) as session:
            pass

        self.assertEqual(order, ["context", "browser", "driver"])
        self.assertIsNone(session.context)
        self.assertIsNone(session.browser)
        self.assertIsNone(session.playwright)

    async def test_error_inside_block_still_releases_browser(self) -> None:
        """An exception in the body propagates after cleanup."""
        with self.assertRaises(ValueError):
            async with BrowserSession(self.config):
                raise ValueError("extraction failed")

        self.context.close.assert_awaited_once()
        self.browser.close.assert_awaited_once()
        self.playwright.stop.assert_awaited_once()

    async def test_failed_launch_stops_driver(self) -> None:
        """A launch failure still stops the Playwright driver."""
        self.playwright.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")

        with self.assertRaises(PlaywrightError):
            async with BrowserSession(self.config):
                self.fail("body must not run when the launch fails")

        self.playwright.stop.assert_awaited_once()
        self.browser.close.assert_not_awaited()

    async def test_failed_context_close_still_closes_browser(self) -> None:
        """A failing context close does not leak the browser or driver."""
        self.context.close.side_effect = PlaywrightError("Target closed")
        session = BrowserSession(self.config)
        await session.start()

        with self.assertRaises(PlaywrightError):
            await session.close()

        self.browser.close.assert_awaited_once()
        self.playwright.stop.assert_awaited_once()
        self.assertIsNone(session.playwright)

    async def test_non_chromium_engine_gets_no_chromium_switches(self) -> None:
        """Chromium-only launch arguments are not passed to Firefox."""
        self.config.browser_type = "firefox"
        self.playwright.firefox.launch = AsyncMock(return_value=self.browser)

        async with BrowserSession(self.config):
            pass

        self.playwright.firefox.launch.assert_awaited_once_with(headless=True, args=[])
        self.playwright.chromium.launch.assert_not_awaited()
