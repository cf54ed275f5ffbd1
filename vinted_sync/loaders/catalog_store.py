"""
Catalog store for the durable products record.

A successful sync replaces the stored catalog wholesale. The one exception is
a heuristic guard: an empty catalog never overwrites an existing record,
because a page-structure change and a genuinely empty profile look the same
to the extractor.
"""

import json
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError
from rich.console import Console

from config.settings import StorageConfig, get_config
from vinted_sync.transformers.listing_transformer import Catalog

console = Console()


class CatalogReadError(ValueError):
    """The durable record exists but cannot be parsed as a catalog."""


class CommitOutcome(str, Enum):
    WRITTEN = "written"
    PRESERVED = "preserved"


@dataclass
class CommitResult:
    """What ``CatalogStore.commit`` did with a catalog."""

    outcome: CommitOutcome
    item_count: int
    path: Path

    @property
    def preserved(self) -> bool:
        return self.outcome is CommitOutcome.PRESERVED


class CatalogStore:
    """Reads and writes the catalog as a single JSON document."""

    def __init__(self, storage_config: Optional[StorageConfig] = None):
        self.config = storage_config or get_config().storage

    @property
    def path(self) -> Path:
        return self.config.products_file

    def exists(self) -> bool:
        return self.path.exists()

    def read_raw(self) -> Any:
        """
        Return the durable record exactly as stored.

        Returns an empty list when nothing has been committed yet.

        Raises:
            CatalogReadError: if the record is not valid JSON
        """
        if not self.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogReadError(f"Failed to read {self.path}: {e}") from e

    def read(self) -> Catalog:
        """
        Return the last committed catalog, or an empty one if none exists.

        Raises:
            CatalogReadError: if the record is malformed
        """
        return self._parse(self.read_raw())

    def read_record(self) -> Any:
        """Validated durable record in its stored shape, for serving verbatim."""
        data = self.read_raw()
        self._parse(data)
        return data

    def _parse(self, data: Any) -> Catalog:
        try:
            return Catalog.from_record(data)
        except (ValidationError, ValueError) as e:
            raise CatalogReadError(f"Malformed catalog in {self.path}: {e}") from e

    def commit(self, catalog: Catalog) -> CommitResult:
        """
        Persist ``catalog``, unless it is empty and a record already exists.

        Returns:
            CommitResult with outcome ``written`` or ``preserved``
        """
        if catalog.is_empty and self.exists():
            console.print(
                "[bold yellow]⚠ Sync produced no listings; keeping the previous catalog[/bold yellow]"
            )
            return CommitResult(CommitOutcome.PRESERVED, 0, self.path)

        self._write(catalog)
        console.print(f"[green]💾 Saved {catalog.item_count} items to {self.path}[/green]")
        return CommitResult(CommitOutcome.WRITTEN, catalog.item_count, self.path)

    def _write(self, catalog: Catalog) -> None:
        """Write to a temporary file, then atomically replace the record."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(catalog.to_record(), f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)
