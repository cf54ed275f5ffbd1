"""
Vinted listing extractor.

Two modes are available:

- listing-page mode (default, supported): one pass over the rendered profile
  grid, reading candidate values around every item anchor.
- detail-page mode (legacy): collect the item links from the profile grid,
  then open each item page in its own tab and read its heading, price and
  metadata image. Slower, kept for profiles whose grid markup breaks the
  listing-page heuristics.

Both modes only gather raw candidates in the browser; field selection lives
in ``ListingTransformer``.
"""

from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from rich.console import Console

from config.settings import ScraperConfig, get_config
from vinted_sync.extractors.browser import BrowserSession
from vinted_sync.transformers.listing_transformer import ListingRecord, ListingTransformer

console = Console()

LISTING_CANDIDATES_SCRIPT = """
(fragment) => {
    const text = (root, selector) => {
        const el = root ? root.querySelector(selector) : null;
        return el ? (el.innerText || el.textContent || '').trim() : '';
    };
    const image = (root, selector) => {
        const el = root ? root.querySelector(selector) : null;
        if (!el) return '';
        return el.currentSrc || el.src || el.getAttribute('data-src') || '';
    };

    return Array.from(document.querySelectorAll(`a[href*="${fragment}"]`)).map((a) => {
        const box = a.closest('[class*="new-item-box"], [data-testid*="grid-item"], [class*="feed-grid__item"]')
            || a.parentElement;
        const outer = box ? box.parentElement : null;
        return {
            link: a.href,
            titleAttr: a.getAttribute('title') || '',
            headingText: text(box, 'h1, h2, h3, h4'),
            titleClassText: text(box, '[class*="title"]'),
            priceClassText: text(box, '[class*="price"]'),
            containerImage: image(box, 'img'),
            siblingImage: image(outer, 'img.web_ui__Image__content, img[src*="vinted.net"], img'),
        };
    });
}
"""

ITEM_LINKS_SCRIPT = """
(fragment) => Array.from(document.querySelectorAll(`a[href*="${fragment}"]`)).map((a) => a.href)
"""

DETAIL_CANDIDATES_SCRIPT = """
(host) => {
    const meta = (name) => {
        const el = document.querySelector(`meta[property="${name}"], meta[name="${name}"]`);
        return el ? (el.getAttribute('content') || '') : '';
    };
    const heading = document.querySelector('h1');
    const priceTexts = Array.from(document.querySelectorAll('[data-testid*="price"], [class*="price"], span, p, div'))
        .filter((el) => el.children.length === 0)
        .map((el) => (el.innerText || el.textContent || '').trim())
        .filter((t) => t && t.length < 60 && /\\d/.test(t))
        .slice(0, 200);
    const hostImage = Array.from(document.images)
        .find((img) => (img.currentSrc || img.src || '').includes(host));
    return {
        heading: heading ? (heading.innerText || heading.textContent || '').trim() : '',
        metaTitle: meta('og:title'),
        priceTexts: priceTexts,
        metaImage: meta('og:image'),
        hostImage: hostImage ? (hostImage.currentSrc || hostImage.src) : '',
    };
}
"""


class VintedExtractor:
    """Extracts listing records from a rendered Vinted profile."""

    def __init__(
        self,
        scraper_config: Optional[ScraperConfig] = None,
        transformer: Optional[ListingTransformer] = None,
    ):
        self.config = scraper_config or get_config().scraper
        self.transformer = transformer or ListingTransformer(self.config.profile_url)

    @property
    def item_selector(self) -> str:
        return f'a[href*="{self.config.item_path_fragment}"]'

    async def wait_for_listings(self, page: Page) -> bool:
        """
        Wait for the first item anchor to render.

        A timeout is not an error: the page may legitimately hold no listings,
        and the caller decides what an empty extraction means.
        """
        try:
            await page.wait_for_selector(
                self.item_selector, timeout=self.config.selector_timeout_ms
            )
            return True
        except PlaywrightError as e:
            console.print(f"[yellow]No listing anchors appeared: {e}[/yellow]")
            return False

    async def extract_listing_page(self, page: Page) -> list[ListingRecord]:
        """Read every item anchor on the current page and build records."""
        raw_items = await page.evaluate(
            LISTING_CANDIDATES_SCRIPT, self.config.item_path_fragment
        )
        records = self.transformer.transform_batch(raw_items or [])
        console.print(
            f"[green]Found {len(records)} listings ({len(raw_items or [])} anchors)[/green]"
        )
        return records

    async def collect_item_links(self, page: Page) -> list[str]:
        """Unique canonical item links on the current page, in page order."""
        hrefs = await page.evaluate(ITEM_LINKS_SCRIPT, self.config.item_path_fragment)
        links = self.transformer.unique_links(hrefs or [])
        console.print(f"[cyan]Collected {len(links)} unique item links[/cyan]")
        return links

    async def extract_item(self, session: BrowserSession, link: str) -> ListingRecord:
        """
        Extract one item from its own page.

        Any failure yields a placeholder record carrying only the link, so a
        single broken item never aborts the batch.
        """
        page = None
        try:
            page = await session.new_page()
            await page.goto(
                link,
                wait_until=self.config.wait_until,
                timeout=self.config.navigation_timeout_ms,
            )
            raw = await page.evaluate(
                DETAIL_CANDIDATES_SCRIPT, self.config.image_host_fragment
            )
            record = self.transformer.transform_detail(link, raw or {})
            console.print(f"[green]✓ Extracted: {record.title or link}[/green]")
            return record
        except Exception as e:
            console.print(f"[yellow]⚠ Could not extract {link}: {e}[/yellow]")
            return ListingRecord(link=link)
        finally:
            if page is not None:
                try:
                    await page.close()
                except PlaywrightError as e:
                    console.print(f"[dim]  Could not close tab for {link}: {e}[/dim]")

    async def extract_detail_pages(
        self, session: BrowserSession, page: Page
    ) -> list[ListingRecord]:
        """Visit every item linked from the profile page, one at a time."""
        links = await self.collect_item_links(page)
        records = []
        for index, link in enumerate(links, start=1):
            console.print(f"[dim]  Item {index}/{len(links)}[/dim]")
            records.append(await self.extract_item(session, link))
        return records
