"""
Retry supervision and single-flight execution for sync runs.
"""

import asyncio
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional

from rich.console import Console

from config.settings import PipelineConfig, RetryConfig, get_config
from vinted_sync.pipeline import SyncPipeline
from vinted_sync.transformers.listing_transformer import ListingRecord

console = Console()


class SyncInProgressError(RuntimeError):
    """Raised when a sync is requested while another one is running."""


class RetrySupervisor:
    """Runs the pipeline with a bounded number of attempts and a fixed delay."""

    def __init__(self, pipeline: SyncPipeline, retry_config: Optional[RetryConfig] = None):
        self.pipeline = pipeline
        self.config = retry_config or get_config().retry
        self.attempts = 0

    async def run(self, max_attempts: Optional[int] = None) -> list[ListingRecord]:
        """
        Run the pipeline until it succeeds or attempts run out.

        The last attempt's exception propagates unchanged.

        Raises:
            ValueError: if ``max_attempts`` is below 1
        """
        if max_attempts is None:
            max_attempts = self.config.max_attempts
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.attempts = 0

        attempt = 0
        while True:
            attempt += 1
            self.attempts = attempt
            try:
                return await self.pipeline.run()
            except Exception as e:
                console.log(f"[red]❌ Attempt {attempt}/{max_attempts} failed: {e}[/red]")
                if attempt >= max_attempts:
                    console.log("[bold red]🚫 All retries failed. Giving up.[/bold red]")
                    raise
                console.log(f"[yellow]⏳ Retrying in {self.config.delay_seconds:g} seconds...[/yellow]")
                await asyncio.sleep(self.config.delay_seconds)


@dataclass
class SyncStatus:
    """Outcome of the most recent sync, as reported by the status endpoint."""

    state: str = "idle"
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    item_count: Optional[int] = None
    attempts: int = 0
    catalog: Optional[str] = None
    error: Optional[str] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SyncRunner:
    """
    Serializes sync runs triggered from several threads.

    The periodic job and the manual trigger both go through ``run_sync``; a
    request that arrives while a run is active is rejected instead of
    racing on the catalog store.
    """

    def __init__(
        self,
        pipeline_config: Optional[PipelineConfig] = None,
        supervisor: Optional[RetrySupervisor] = None,
    ):
        self.config = pipeline_config or get_config()
        self.supervisor = supervisor or RetrySupervisor(
            SyncPipeline(self.config), self.config.retry
        )
        self._lock = threading.Lock()
        self._status = SyncStatus()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    @property
    def status(self) -> dict:
        return asdict(self._status)

    def run_sync(self) -> list[ListingRecord]:
        """
        Run one supervised sync on a fresh event loop.

        Raises:
            SyncInProgressError: if another run holds the lock
        """
        if not self._lock.acquire(blocking=False):
            raise SyncInProgressError("a sync is already running")

        self._status = SyncStatus(state="running", started_at=_now())
        try:
            records = asyncio.run(self.supervisor.run())
        except Exception as e:
            self._status.state = "failed"
            self._status.error = str(e)
            raise
        else:
            self._status.state = "succeeded"
            self._status.item_count = len(records)
            last_commit = self.supervisor.pipeline.last_commit
            if last_commit is not None:
                self._status.catalog = last_commit.outcome.value
            return records
        finally:
            self._status.finished_at = _now()
            self._status.attempts = self.supervisor.attempts
            self._lock.release()
