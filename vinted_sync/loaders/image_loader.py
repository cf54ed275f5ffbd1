"""
Image loader for copying listing photos into the local content area.
"""

import re
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urlsplit

import aiofiles
import aiohttp
from rich.console import Console

from config.settings import StorageConfig, get_config
from vinted_sync.transformers.listing_transformer import ListingRecord

console = Console()

DEFAULT_EXTENSION = ".jpg"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9\-_.]")
_EXTENSION = re.compile(r"\.[A-Za-z0-9]{1,5}")

REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
}


def sanitize_filename(name: str, max_length: int = 120) -> str:
    """Replace everything outside ``[A-Za-z0-9-_.]`` with ``_`` and truncate."""
    return _UNSAFE_CHARS.sub("_", name)[:max_length]


def link_basename(link: str) -> str:
    """Last path segment of a listing link (``.../items/123-coat`` -> ``123-coat``)."""
    try:
        path = urlsplit(link).path
    except ValueError:
        path = link
    return PurePosixPath(path.rstrip("/")).name or "item"


def image_extension(url: str) -> str:
    """Extension of the image URL's path, ``.jpg`` when absent or unparseable."""
    try:
        suffix = PurePosixPath(urlsplit(url).path).suffix
    except ValueError:
        return DEFAULT_EXTENSION
    return suffix if _EXTENSION.fullmatch(suffix) else DEFAULT_EXTENSION


def image_filename(index: int, link: str, image_url: str, max_length: int = 120) -> str:
    """
    Local filename for a listing's image.

    The ordinal index prefix keeps names unique when two listings share a
    basename. The result never exceeds ``max_length`` and is already sanitized.
    """
    extension = image_extension(image_url)
    stem = sanitize_filename(f"{index}_{link_basename(link)}", max_length - len(extension))
    return stem + extension


class ImageLoader:
    """Downloads listing images, falling back to the remote URL on any failure."""

    def __init__(self, storage_config: Optional[StorageConfig] = None):
        self.config = storage_config or get_config().storage
        self.config.ensure_dirs()

    @property
    def images_dir(self) -> Path:
        return self.config.images_dir

    def local_reference(self, filename: str) -> str:
        """Path the read API and the static route use for an acquired image."""
        return f"{self.config.images_url_prefix.rstrip('/')}/{filename}"

    async def download_image(
        self,
        url: str,
        filename: str,
        session: aiohttp.ClientSession,
    ) -> str:
        """
        Download a single image into the content area.

        Args:
            url: Remote image URL
            filename: Target filename inside the content area
            session: aiohttp session

        Returns:
            Local reference on success, otherwise ``url`` unchanged
        """
        save_path = self.images_dir / filename
        try:
            timeout = aiohttp.ClientTimeout(total=self.config.image_timeout_seconds)
            async with session.get(url, headers=REQUEST_HEADERS, timeout=timeout) as response:
                if response.status != 200:
                    console.print(
                        f"[yellow]⚠ Image download failed: {url} (HTTP {response.status})[/yellow]"
                    )
                    return url
                content = await response.read()

            async with aiofiles.open(save_path, "wb") as f:
                await f.write(content)
            return self.local_reference(filename)

        except Exception as e:
            console.print(f"[yellow]⚠ Image download failed: {url} ({e})[/yellow]")
            return url

    async def resolve_images(self, records: list[ListingRecord]) -> int:
        """
        Give every record with a remote image a displayable local reference.

        Downloads run one at a time. With downloads disabled the local
        reference mirrors the remote URL.

        Returns:
            Number of images stored locally
        """
        if not self.config.download_images:
            console.print("[yellow]⚡ Image download skipped (SKIP_IMAGE_DOWNLOAD=1)[/yellow]")
            for record in records:
                record.local_image_path = record.remote_image_url
            return 0

        stored = 0
        async with aiohttp.ClientSession() as session:
            for index, record in enumerate(records):
                if not record.remote_image_url:
                    continue
                filename = image_filename(
                    index,
                    record.link,
                    record.remote_image_url,
                    self.config.max_filename_length,
                )
                record.local_image_path = await self.download_image(
                    record.remote_image_url, filename, session
                )
                if record.local_image_path != record.remote_image_url:
                    stored += 1

        console.print(f"[green]Stored {stored}/{len(records)} images locally[/green]")
        return stored

    def prune_unreferenced(self, records: list[ListingRecord]) -> int:
        """
        Delete files in the content area that no record points at.

        Filenames carry the listing's position, so a reordered profile leaves
        the previous run's names behind. Call only after the catalog holding
        ``records`` has been written.

        Returns:
            Number of files removed
        """
        referenced = {record.local_image_path for record in records}
        removed = 0
        for path in self.images_dir.iterdir():
            if not path.is_file() or self.local_reference(path.name) in referenced:
                continue
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                console.print(f"[yellow]⚠ Could not remove stale image {path.name}: {e}[/yellow]")

        if removed:
            console.print(f"[dim]Removed {removed} stale images[/dim]")
        return removed
