"""
Browser session with stealth settings.

Owns the Playwright driver, the browser process and one context. Always use
it as an async context manager so the browser is released on every exit path.
"""

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright_stealth import stealth_async
from rich.console import Console

from config.settings import ScraperConfig, get_config

console = Console()


class BrowserSession:
    """A stealth-configured browser context with a realistic identity."""

    def __init__(self, scraper_config: Optional[ScraperConfig] = None):
        self.config = scraper_config or get_config().scraper
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None

    async def __aenter__(self):
        """Async context manager entry."""
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self) -> None:
        """Start the browser and open a context."""
        console.log(f"[bold blue]Starting {self.config.browser_type} browser...[/bold blue]")

        self.playwright = await async_playwright().start()

        browser_launchers = {
            "chromium": self.playwright.chromium,
            "firefox": self.playwright.firefox,
            "webkit": self.playwright.webkit,
        }
        launcher = browser_launchers.get(self.config.browser_type, self.playwright.chromium)

        # Chromium-only switches are meaningless to the other engines
        args = self.config.launch_args if launcher is self.playwright.chromium else []
        self.browser = await launcher.launch(headless=self.config.headless, args=args)

        self.context = await self.browser.new_context(
            viewport={
                "width": self.config.viewport_width,
                "height": self.config.viewport_height,
            },
            user_agent=self.config.user_agent,
            locale=self.config.locale,
            timezone_id=self.config.timezone_id,
        )
        self.context.set_default_timeout(self.config.selector_timeout_ms)
        self.context.set_default_navigation_timeout(self.config.navigation_timeout_ms)

        console.log("[bold green]Browser started successfully[/bold green]")

    async def close(self) -> None:
        """Close the context, the browser and the driver, in that order."""
        try:
            if self.context:
                await self.context.close()
        finally:
            self.context = None
            try:
                if self.browser:
                    await self.browser.close()
            finally:
                self.browser = None
                if self.playwright:
                    await self.playwright.stop()
                    self.playwright = None
                    console.log("[bold blue]Browser closed[/bold blue]")

    async def new_page(self) -> Page:
        """Create a new page with stealth settings."""
        if self.context is None:
            raise RuntimeError("browser session is not started")
        page = await self.context.new_page()
        await stealth_async(page)
        return page
