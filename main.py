#!/usr/bin/env python3
"""
Vinted Profile Sync - Main Entry Point

Scrapes every listing of a public Vinted seller profile, copies the listing
photos locally and saves the catalog to data/products.json.

Usage:
    python main.py                    # One supervised sync with default settings
    python main.py --no-images        # Dry run: keep remote image URLs
    python main.py --show             # Print the stored catalog and exit
"""
import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from config.settings import (
    EXTRACTION_MODES,
    PipelineConfig,
    RetryConfig,
    ScraperConfig,
    StorageConfig,
)
from vinted_sync.loaders.catalog_store import CatalogReadError, CatalogStore
from vinted_sync.pipeline import SyncPipeline
from vinted_sync.supervisor import RetrySupervisor

console = Console()


class CustomHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """Custom formatter that preserves formatting and adds width."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=40, width=100)


def parse_args(argv=None):
    """Parse command line arguments."""
    epilog = """
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
EXAMPLES
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    python main.py                              Sync the profile from $VINTED_URL
    python main.py --url https://www.vinted.cz/member/123-shop
    python main.py --no-images                  Skip image downloads (faster)
    python main.py --headless false             Watch the browser scrape
    python main.py --mode detail                Legacy: open every item page
    python main.py --retries 1                  Fail fast, no retry
    python main.py --show                       Print the stored catalog

━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
DATA OUTPUT
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    ./data/products.json          Catalog (lastUpdated, itemCount, items)
    ./data/public/images/         Downloaded listing photos

    An empty scrape never overwrites an existing products.json.
"""

    parser = argparse.ArgumentParser(
        prog="python main.py",
        description="Sync a Vinted seller profile into a local catalog.",
        epilog=epilog,
        formatter_class=CustomHelpFormatter,
    )

    scrape_group = parser.add_argument_group("Scraping Options", "What and how to scrape")
    scrape_group.add_argument(
        "--url",
        type=str,
        default=None,
        metavar="URL",
        help="Profile URL (default: $VINTED_URL)",
    )
    scrape_group.add_argument(
        "--mode",
        type=str,
        default=None,
        choices=EXTRACTION_MODES,
        help="Extraction mode (default: $EXTRACTION_MODE or listing)",
    )
    scrape_group.add_argument(
        "--no-images",
        action="store_true",
        help="Skip image downloads (local image mirrors the remote URL)",
    )
    scrape_group.add_argument(
        "--retries",
        type=int,
        default=None,
        metavar="NUM",
        help="Maximum sync attempts (default: $SYNC_MAX_ATTEMPTS or 3)",
    )

    browser_group = parser.add_argument_group("Browser Options", "Control the browser behavior")
    browser_group.add_argument(
        "--headless",
        type=str,
        default=None,
        choices=["true", "false"],
        metavar="BOOL",
        help="Run browser invisibly (default: true). Set 'false' to watch.",
    )

    storage_group = parser.add_argument_group("Storage Options", "Control where data is saved")
    storage_group.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        metavar="DIR",
        help="Data directory (default: $DATA_DIR or ./data)",
    )
    storage_group.add_argument(
        "--show",
        action="store_true",
        help="Print the stored catalog and exit",
    )

    return parser.parse_args(argv)


def create_config(args) -> PipelineConfig:
    """Create pipeline configuration from arguments, on top of the environment."""
    scraper_config = ScraperConfig()
    if args.url:
        scraper_config.profile_url = args.url
    if args.mode:
        scraper_config.extraction_mode = args.mode
    if args.headless is not None:
        scraper_config.headless = args.headless.lower() == "true"

    storage_config = StorageConfig()
    if args.no_images:
        storage_config.download_images = False
    if args.output:
        storage_config.base_dir = Path(args.output)

    retry_config = RetryConfig()
    if args.retries is not None:
        retry_config = RetryConfig(max_attempts=args.retries)

    return PipelineConfig(
        scraper=scraper_config,
        storage=storage_config,
        retry=retry_config,
    )


def show_catalog(config: PipelineConfig) -> int:
    """Print the stored catalog as a table."""
    try:
        catalog = CatalogStore(config.storage).read()
    except CatalogReadError as e:
        console.print(f"[bold red]{e}[/bold red]")
        return 1

    if catalog.is_empty:
        console.print("[yellow]No catalog stored yet. Run a sync first.[/yellow]")
        return 0

    table = Table(title=f"Catalog ({catalog.item_count} items, updated {catalog.last_updated})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="cyan", max_width=50)
    table.add_column("Price", style="green")
    table.add_column("Image", style="dim", max_width=40)
    for index, item in enumerate(catalog.items):
        table.add_row(str(index), item.title or "-", item.price or "-", item.local_image_path or "-")
    console.print(table)
    return 0


async def run_sync(config: PipelineConfig) -> int:
    """Run one supervised sync and return the number of listings."""
    supervisor = RetrySupervisor(SyncPipeline(config), config.retry)
    records = await supervisor.run()
    return len(records)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = create_config(args)
    except ValueError as e:
        console.print(f"[bold red]Invalid configuration: {e}[/bold red]")
        return 2

    if args.show:
        return show_catalog(config)

    console.print("\n[bold cyan]═══════════════════════════════════════════[/bold cyan]")
    console.print("[bold cyan]          VINTED PROFILE SYNC              [/bold cyan]")
    console.print("[bold cyan]═══════════════════════════════════════════[/bold cyan]\n")

    console.print(f"[dim]Profile:[/dim] {config.scraper.profile_url}")
    console.print(f"[dim]Mode:[/dim] {config.scraper.extraction_mode}")
    console.print(f"[dim]Headless mode:[/dim] {config.scraper.headless}")
    console.print(f"[dim]Download images:[/dim] {config.storage.download_images}")
    console.print(f"[dim]Max attempts:[/dim] {config.retry.max_attempts}")

    try:
        count = asyncio.run(run_sync(config))
    except KeyboardInterrupt:
        console.print("\n[yellow]Sync cancelled by user[/yellow]")
        return 130
    except Exception as e:
        console.print(f"\n[bold red]Scraper failed: {e}[/bold red]")
        return 1

    console.print(f"\n[bold green]Scraper finished! {count} items synced.[/bold green]")
    console.print(f"[green]Catalog: {config.storage.products_file}[/green]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
