# tests/test_server.py

"""Tests for the HTTP API using Flask's test client."""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from config.settings import PipelineConfig, StorageConfig
from server import create_app, main, scheduled_sync
from vinted_sync.loaders.catalog_store import CatalogStore
from vinted_sync.supervisor import SyncInProgressError
from vinted_sync.transformers.listing_transformer import Catalog, ListingRecord


class TestServer(unittest.TestCase):
    """Tests for the read API, the manual trigger and image serving."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.mkdtemp()
        self.config = PipelineConfig(storage=StorageConfig(base_dir=Path(self.tmp_dir)))
        self.store = CatalogStore(self.config.storage)
        self.runner = MagicMock()
        self.runner.status = {"state": "idle"}
        self.runner.running = False
        app = create_app(self.config, runner=self.runner, store=self.store)
        app.testing = True
        self.client = app.test_client()

    def test_products_before_first_sync(self) -> None:
        """Without a record the API returns an empty list."""
        response = self.client.get("/api/products")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), [])

    def test_products_returns_record_verbatim(self) -> None:
        """The stored record is served as written."""
        catalog = Catalog(
            items=[
                ListingRecord(
                    link="https://www.vinted.cz/items/1-coat",
                    title="Coat",
                    price="500 Kč",
                    img="https://images1.vinted.net/t/coat.jpg",
                )
            ]
        )
        self.store.commit(catalog)

        response = self.client.get("/api/products")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), catalog.to_record())

    def test_malformed_record_is_server_error(self) -> None:
        """A corrupt record yields a 500 with a fixed error message."""
        self.store.path.write_text("[{broken", encoding="utf-8")
        response = self.client.get("/api/products")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json(), {"error": "Failed to read products"})

    def test_sync_reports_count(self) -> None:
        """A successful manual sync reports how many listings it stored."""
        self.runner.run_sync.return_value = [
            ListingRecord(link=f"https://www.vinted.cz/items/{i}") for i in range(3)
        ]
        response = self.client.post("/sync")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"ok": True, "synced": 3})

    def test_sync_failure(self) -> None:
        """A failed sync is a 500 carrying the error description."""
        self.runner.run_sync.side_effect = RuntimeError("navigation timeout")
        response = self.client.post("/sync")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.get_json(), {"ok": False, "error": "navigation timeout"}
        )

    def test_sync_while_running_is_conflict(self) -> None:
        """A second trigger during a run is rejected."""
        self.runner.run_sync.side_effect = SyncInProgressError("a sync is already running")
        response = self.client.post("/sync")
        self.assertEqual(response.status_code, 409)
        self.assertFalse(response.get_json()["ok"])

    def test_sync_requires_post(self) -> None:
        """The trigger is not reachable with GET."""
        self.assertEqual(self.client.get("/sync").status_code, 405)

    def test_status(self) -> None:
        """Status merges the last run with the running flag."""
        response = self.client.get("/api/status")
        self.assertEqual(response.get_json(), {"state": "idle", "running": False})

    def test_serves_acquired_images(self) -> None:
        """Files in the content area are served under the images prefix."""
        (self.config.storage.images_dir / "0_1-coat.jpg").write_bytes(b"jpeg-bytes")
        response = self.client.get("/public/images/0_1-coat.jpg")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, b"jpeg-bytes")
        response.close()

        self.assertEqual(self.client.get("/public/images/missing.jpg").status_code, 404)


class TestScheduledSync(unittest.TestCase):
    """Tests for the periodic job wrapper."""

    def test_errors_do_not_escape(self) -> None:
        """A failing run is logged and the scheduler keeps going."""
        runner = MagicMock()
        runner.run_sync.side_effect = RuntimeError("boom")
        scheduled_sync(runner)
        runner.run_sync.assert_called_once()

    def test_busy_runner_is_skipped(self) -> None:
        """A tick that overlaps a manual run is skipped."""
        runner = MagicMock()
        runner.run_sync.side_effect = SyncInProgressError("busy")
        scheduled_sync(runner)
        runner.run_sync.assert_called_once()


class TestServerMain(unittest.TestCase):
    """Tests for the server entry point."""

    def test_invalid_environment_exit_code(self) -> None:
        """A bad configuration value exits 2 before the server starts."""
        with patch.dict(os.environ, {"SYNC_MAX_ATTEMPTS": "three"}):
            with patch("server.create_app") as create:
                self.assertEqual(main(["--no-schedule"]), 2)
        create.assert_not_called()


if __name__ == "__main__":
    unittest.main()
