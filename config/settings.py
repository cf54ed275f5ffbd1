"""
Configuration settings for the Vinted profile sync pipeline.

Values are read from the environment (a local .env file is honoured) with
the defaults documented next to each field.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_PROFILE_URL = "https://www.vinted.cz/member/288077372-praguevintageshop"
EXTRACTION_MODES = ("listing", "detail")


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value.strip() if value and value.strip() else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ScraperConfig:
    """Configuration for the browser session and listing extraction."""

    profile_url: str = field(
        default_factory=lambda: _env_str("VINTED_URL", DEFAULT_PROFILE_URL)
    )

    # "listing" is the supported contract, "detail" is the legacy per-item mode
    extraction_mode: str = field(
        default_factory=lambda: _env_str("EXTRACTION_MODE", "listing").lower()
    )

    # Browser settings
    browser_type: str = "chromium"
    headless: bool = field(default_factory=lambda: _env_flag("HEADLESS", True))
    viewport_width: int = 1366
    viewport_height: int = 900
    navigation_timeout_ms: int = 60000
    selector_timeout_ms: int = 15000
    launch_args: list = field(
        default_factory=lambda: ["--no-sandbox", "--disable-setuid-sandbox"]
    )
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )
    locale: str = "cs-CZ"
    timezone_id: str = "Europe/Prague"

    # Lazy-loading scroll loop
    scroll_settle_seconds: float = 1.5
    max_scrolls: int = 10

    # Anchors whose href contains this fragment are listings
    item_path_fragment: str = "/items/"
    # Listing photos are served from this host
    image_host_fragment: str = "vinted.net"
    wait_until: str = "domcontentloaded"

    def __post_init__(self):
        if self.extraction_mode not in EXTRACTION_MODES:
            raise ValueError(
                f"EXTRACTION_MODE must be one of {EXTRACTION_MODES}, "
                f"got {self.extraction_mode!r}"
            )
        if self.max_scrolls < 1:
            raise ValueError("max_scrolls must be at least 1")


@dataclass
class StorageConfig:
    """Configuration for the durable catalog record and the image content area."""

    base_dir: Path = field(
        default_factory=lambda: Path(
            _env_str("DATA_DIR", str(Path(__file__).parent.parent / "data"))
        )
    )

    products_filename: str = "products.json"

    # Image settings
    download_images: bool = field(
        default_factory=lambda: not _env_flag("SKIP_IMAGE_DOWNLOAD", False)
    )
    images_url_prefix: str = "/public/images"
    max_filename_length: int = 120
    image_timeout_seconds: float = 30.0

    @property
    def products_file(self) -> Path:
        """Path of the durable catalog record."""
        return self.base_dir / self.products_filename

    @property
    def images_dir(self) -> Path:
        """Local content area for acquired images."""
        return self.base_dir / "public" / "images"

    def ensure_dirs(self) -> None:
        """Create necessary directories if they don't exist."""
        self.images_dir.mkdir(parents=True, exist_ok=True)


@dataclass
class RetryConfig:
    """Bounds for the whole-pipeline retry loop."""

    max_attempts: int = field(default_factory=lambda: _env_int("SYNC_MAX_ATTEMPTS", 3))
    delay_seconds: float = field(
        default_factory=lambda: _env_float("SYNC_RETRY_DELAY", 10.0)
    )

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("SYNC_MAX_ATTEMPTS must be at least 1")


@dataclass
class ServerConfig:
    """Configuration for the HTTP API and the periodic trigger."""

    host: str = field(default_factory=lambda: _env_str("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 3000))
    sync_interval_minutes: int = field(
        default_factory=lambda: _env_int("SYNC_INTERVAL_MINUTES", 5)
    )
    schedule_enabled: bool = field(
        default_factory=lambda: _env_flag("SCHEDULE_ENABLED", True)
    )


@dataclass
class PipelineConfig:
    """Main configuration combining all settings."""

    scraper: ScraperConfig = field(default_factory=ScraperConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def __post_init__(self):
        """Ensure all necessary directories exist."""
        self.storage.ensure_dirs()


def load_config(base_dir: Optional[Path] = None) -> PipelineConfig:
    """Build a fresh configuration from the current environment."""
    storage = StorageConfig(base_dir=base_dir) if base_dir else StorageConfig()
    return PipelineConfig(storage=storage)


_default_config: Optional[PipelineConfig] = None


def get_config() -> PipelineConfig:
    """Shared default configuration, built from the environment on first use."""
    global _default_config
    if _default_config is None:
        _default_config = PipelineConfig()
    return _default_config
