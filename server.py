#!/usr/bin/env python3
"""
HTTP API for the synced Vinted catalog.

Serves the stored catalog, the acquired images and a manual sync trigger,
and runs the sync on a fixed interval in the background.

Usage:
    python server.py                  # Serve on $PORT (default 3000) with the schedule
    python server.py --no-schedule    # Serve only; sync via POST /sync

Then open http://localhost:3000/api/products in your browser.
"""
import argparse
import sys
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from flask import Flask, jsonify, send_from_directory
from rich.console import Console

from config.settings import PipelineConfig, load_config
from vinted_sync.loaders.catalog_store import CatalogReadError, CatalogStore
from vinted_sync.supervisor import SyncInProgressError, SyncRunner

console = Console()


def create_app(
    pipeline_config: Optional[PipelineConfig] = None,
    runner: Optional[SyncRunner] = None,
    store: Optional[CatalogStore] = None,
) -> Flask:
    """Build the Flask app around one runner and one catalog store."""
    pipeline_config = pipeline_config or load_config()
    runner = runner or SyncRunner(pipeline_config)
    store = store or CatalogStore(pipeline_config.storage)

    app = Flask(__name__)
    app.config["SYNC_RUNNER"] = runner
    app.config["CATALOG_STORE"] = store

    @app.route("/api/products")
    def api_products():
        """Return the stored catalog verbatim, or [] before the first sync."""
        try:
            return jsonify(store.read_record())
        except CatalogReadError as e:
            console.log(f"[bold red]Error reading products file: {e}[/bold red]")
            return jsonify({"error": "Failed to read products"}), 500

    @app.route("/sync", methods=["POST"])
    def trigger_sync():
        """Run a sync now and report how many listings it produced."""
        try:
            records = runner.run_sync()
        except SyncInProgressError as e:
            return jsonify({"ok": False, "error": str(e)}), 409
        except Exception as e:
            console.log(f"[bold red]Sync failed: {e}[/bold red]")
            return jsonify({"ok": False, "error": str(e)}), 500
        return jsonify({"ok": True, "synced": len(records)})

    @app.route("/api/status")
    def sync_status():
        """Outcome of the most recent sync."""
        return jsonify({**runner.status, "running": runner.running})

    @app.route(f"{pipeline_config.storage.images_url_prefix.rstrip('/')}/<path:filename>")
    def serve_image(filename):
        """Serve acquired listing images from the content area."""
        return send_from_directory(pipeline_config.storage.images_dir, filename)

    return app


def scheduled_sync(runner: SyncRunner) -> None:
    """Periodic job: failures are logged, never raised into the scheduler."""
    console.log("[cron] running sync")
    try:
        records = runner.run_sync()
    except SyncInProgressError:
        console.log("[yellow][cron] previous sync still running, skipping[/yellow]")
        return
    except Exception as e:
        console.log(f"[bold red][cron] sync error: {e}[/bold red]")
        return
    console.log(f"[green][cron] sync done ({len(records)} items)[/green]")


def start_scheduler(runner: SyncRunner, interval_minutes: int) -> BackgroundScheduler:
    """Run ``scheduled_sync`` every ``interval_minutes`` in a background thread."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        scheduled_sync,
        "interval",
        minutes=interval_minutes,
        args=[runner],
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    console.log(f"Scheduler started with interval={interval_minutes} minutes")
    return scheduler


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Vinted catalog API - serve synced listings")
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to run the server on (default: $PORT or 3000)",
    )
    parser.add_argument(
        "--no-schedule",
        action="store_true",
        help="Disable the periodic sync; only POST /sync triggers a run",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        pipeline_config = load_config()
    except ValueError as e:
        console.print(f"[bold red]Invalid configuration: {e}[/bold red]")
        return 2
    port = args.port or pipeline_config.server.port

    runner = SyncRunner(pipeline_config)
    app = create_app(pipeline_config, runner=runner)

    scheduler = None
    if pipeline_config.server.schedule_enabled and not args.no_schedule:
        scheduler = start_scheduler(runner, pipeline_config.server.sync_interval_minutes)

    console.print(f"\n[bold]Profile:[/bold]  {pipeline_config.scraper.profile_url}")
    console.print(f"[bold]Catalog:[/bold]  {pipeline_config.storage.products_file}")
    console.print(f"[bold green]Server running on http://localhost:{port}[/bold green]\n")

    try:
        app.run(host=pipeline_config.server.host, port=port)
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
