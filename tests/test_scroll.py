# tests/test_scroll.py

"""Tests for the scroll-until-stable loop."""

import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from playwright.async_api import Error as PlaywrightError

from vinted_sync.extractors.scroll import (
    HEIGHT_SCRIPT,
    SCROLL_SCRIPT,
    scroll_until_stable,
)


def _page(heights: list[int]) -> MagicMock:
    """Page whose height readings come from ``heights`` in order."""
    readings = iter(heights)

    async def evaluate(script: str) -> int | None:
        if script == HEIGHT_SCRIPT:
            return next(readings)
        return None

    page = MagicMock()
    page.evaluate = AsyncMock(side_effect=evaluate)
    return page


def _scroll_calls(page: MagicMock) -> int:
    return sum(1 for c in page.evaluate.call_args_list if c.args[0] == SCROLL_SCRIPT)


class TestScrollUntilStable(unittest.IsolatedAsyncioTestCase):
    """Tests for growth detection and the scroll cap."""

    async def test_static_page_scrolls_once(self) -> None:
        """An unchanged height on the second reading ends the loop."""
        page = _page([1000, 1000])
        with patch("vinted_sync.extractors.scroll.asyncio.sleep", new=AsyncMock()) as sleep:
            scrolls = await scroll_until_stable(page)

        self.assertEqual(scrolls, 1)
        self.assertEqual(_scroll_calls(page), 1)
        sleep.assert_awaited_once_with(1.5)

    async def test_growth_stops_when_height_settles(self) -> None:
        """Scrolling continues while lazy content keeps arriving."""
        page = _page([1000, 2000, 3000, 3000])
        with patch("vinted_sync.extractors.scroll.asyncio.sleep", new=AsyncMock()):
            scrolls = await scroll_until_stable(page)

        self.assertEqual(scrolls, 3)

    async def test_endless_growth_is_capped(self) -> None:
        """A page that always grows gets at most max_scrolls scrolls."""
        page = _page([1000 * n for n in range(1, 100)])
        with patch("vinted_sync.extractors.scroll.asyncio.sleep", new=AsyncMock()) as sleep:
            scrolls = await scroll_until_stable(page, max_scrolls=10)

        self.assertEqual(scrolls, 10)
        self.assertEqual(_scroll_calls(page), 10)
        self.assertEqual(sleep.await_count, 10)

    async def test_height_error_ends_loop(self) -> None:
        """A failing height read stops scrolling without raising."""
        page = MagicMock()
        page.evaluate = AsyncMock(side_effect=PlaywrightError("Target closed"))
        with patch("vinted_sync.extractors.scroll.asyncio.sleep", new=AsyncMock()):
            scrolls = await scroll_until_stable(page)

        self.assertEqual(scrolls, 0)


if __name__ == "__main__":
    unittest.main()
