"""
Sync pipeline: one end-to-end run from the live profile page to the stored catalog.
"""

from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import PipelineConfig, ScraperConfig, get_config
from vinted_sync.extractors.browser import BrowserSession
from vinted_sync.extractors.scroll import scroll_until_stable
from vinted_sync.extractors.vinted_extractor import VintedExtractor
from vinted_sync.loaders.catalog_store import CatalogStore, CommitResult
from vinted_sync.loaders.image_loader import ImageLoader
from vinted_sync.transformers.listing_transformer import Catalog, ListingRecord

console = Console()


class SyncState(str, Enum):
    IDLE = "idle"
    SESSION_OPEN = "session_open"
    SCROLLED = "scrolled"
    EXTRACTED = "extracted"
    IMAGES_RESOLVED = "images_resolved"
    DONE = "done"
    ABORTED = "aborted"


class SyncPipeline:
    """
    Sync pipeline for a single Vinted profile.

    Orchestrates:
    - Session: launch a stealth browser and open the profile page
    - Extract: scroll the grid and read listings (or visit each item page)
    - Images: copy each listing photo into the content area, sequentially
    - Commit: hand the catalog to the store, then drop images it no longer uses
    """

    def __init__(
        self,
        pipeline_config: Optional[PipelineConfig] = None,
        store: Optional[CatalogStore] = None,
        image_loader: Optional[ImageLoader] = None,
        extractor: Optional[VintedExtractor] = None,
        session_factory: Callable[[ScraperConfig], BrowserSession] = BrowserSession,
    ):
        self.config = pipeline_config or get_config()
        self.store = store or CatalogStore(self.config.storage)
        self.image_loader = image_loader or ImageLoader(self.config.storage)
        self.extractor = extractor or VintedExtractor(self.config.scraper)
        self.session_factory = session_factory

        self.state = SyncState.IDLE
        self.last_commit: Optional[CommitResult] = None

    async def run(self) -> list[ListingRecord]:
        """
        Run the pipeline once.

        Returns:
            The listings of this run (empty if the page yielded none)

        Raises:
            Any navigation or browser error; the browser is closed first.
        """
        start_time = datetime.now()
        self.state = SyncState.IDLE
        self.last_commit = None
        scraper = self.config.scraper

        console.log(f"[bold]Starting scrape of {scraper.profile_url}[/bold]")

        try:
            async with self.session_factory(scraper) as session:
                self.state = SyncState.SESSION_OPEN
                page = await session.new_page()
                await page.goto(
                    scraper.profile_url,
                    wait_until=scraper.wait_until,
                    timeout=scraper.navigation_timeout_ms,
                )
                await self.extractor.wait_for_listings(page)

                if scraper.extraction_mode == "detail":
                    records = await self.extractor.extract_detail_pages(session, page)
                else:
                    console.log("Scrolling page...")
                    await scroll_until_stable(
                        page,
                        max_scrolls=scraper.max_scrolls,
                        settle_seconds=scraper.scroll_settle_seconds,
                    )
                    self.state = SyncState.SCROLLED
                    console.log("Extracting item data...")
                    records = await self.extractor.extract_listing_page(page)
                self.state = SyncState.EXTRACTED

            await self.image_loader.resolve_images(records)
            self.state = SyncState.IMAGES_RESOLVED

            self.last_commit = self.store.commit(Catalog(items=records))
            if not self.last_commit.preserved:
                self.image_loader.prune_unreferenced(records)
            self.state = SyncState.DONE

        except Exception as e:
            self.state = SyncState.ABORTED
            console.log(f"[bold red]Sync aborted: {e}[/bold red]")
            raise

        elapsed = (datetime.now() - start_time).total_seconds()
        self._print_summary(records, elapsed)
        return records

    def _print_summary(self, records: list[ListingRecord], elapsed: float) -> None:
        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Listings found", str(len(records)))
        table.add_row(
            "Images stored",
            str(sum(1 for r in records if r.local_image_path and r.local_image_path != r.remote_image_url)),
        )
        if self.last_commit is not None:
            table.add_row("Catalog", self.last_commit.outcome.value)
        table.add_row("Time elapsed", f"{elapsed:.1f}s")
        console.print(Panel(table, title="[bold green]Sync Complete[/bold green]", border_style="green"))
