"""
Scroll driver for lazily-loaded listing grids.
"""

import asyncio

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from rich.console import Console

console = Console()

HEIGHT_SCRIPT = "() => document.body.scrollHeight"
SCROLL_SCRIPT = "() => window.scrollTo(0, document.body.scrollHeight)"


async def scroll_until_stable(
    page: Page, max_scrolls: int = 10, settle_seconds: float = 1.5
) -> int:
    """
    Scroll to the bottom until the page stops growing.

    Reads the content height before each scroll and stops as soon as it is
    unchanged from the previous reading. At most ``max_scrolls`` scrolls are
    issued even if the page keeps growing. Errors while reading or scrolling
    end the loop early; whatever has loaded so far is kept.

    Args:
        page: Playwright page showing the listing grid
        max_scrolls: Hard cap on scroll commands
        settle_seconds: Wait after each scroll for lazy content to render

    Returns:
        Number of scroll commands issued
    """
    last_height = 0
    scrolls = 0

    while scrolls < max_scrolls:
        try:
            height = await page.evaluate(HEIGHT_SCRIPT)
        except PlaywrightError as e:
            console.print(f"[yellow]Could not read page height: {e}[/yellow]")
            break

        if height == last_height:
            break
        last_height = height

        try:
            await page.evaluate(SCROLL_SCRIPT)
        except PlaywrightError as e:
            console.print(f"[yellow]Scroll failed: {e}[/yellow]")
            break
        scrolls += 1
        await asyncio.sleep(settle_seconds)

    if scrolls >= max_scrolls:
        console.print(f"[dim]  ... scroll cap of {max_scrolls} reached[/dim]")
    else:
        console.print(f"[dim]  ... page settled after {scrolls} scroll(s)[/dim]")
    return scrolls
