"""
Listing transformer for turning raw DOM readings into clean catalog records.

The browser side only collects candidate values; choosing between them happens
here, through ordered strategy tables. Each field has a list of independent
strategies that are tried in sequence until one yields a non-empty value.
"""

import re
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from rich.console import Console

console = Console()

CATALOG_VERSION = 1

# Digit groups are joined by (narrow) no-break spaces, dots or commas; a plain
# space ends the amount so a neighbouring size number is never absorbed
_AMOUNT = r"\d{1,3}(?:[\u00a0\u202f.,]\d{3})*(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?"
_SYMBOL_BEFORE = r"€|£|\$"
_CURRENCY_AFTER = r"(?:Kč|€|zł|£|\$|Ft|lei|kr|CHF|EUR|CZK|PLN|USD|GBP)(?!\w)"

PRICE_PATTERN = re.compile(
    rf"(?:(?:{_SYMBOL_BEFORE})\s?(?:{_AMOUNT}))|(?:(?:{_AMOUNT})\s?{_CURRENCY_AFTER})"
)

# Navigation/header strings that look like listings but are not
BOILERPLATE_TITLES = frozenset(
    {
        "vinted",
        "home",
        "domů",
        "catalog",
        "katalog",
        "sell now",
        "prodat",
        "prodej hned",
        "log in",
        "sign up",
        "přihlásit se",
        "zaregistrovat se",
        "help",
        "help centre",
        "nápověda",
        "messages",
        "zprávy",
        "favourites",
        "oblíbené",
        "notifications",
        "upozornění",
        "member",
        "profile",
    }
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def clean_text(value: Optional[str]) -> str:
    """Collapse whitespace (including non-breaking spaces) and strip."""
    if not value:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def match_price(text: Optional[str]) -> str:
    """Return the first currency-bearing amount in ``text``, or an empty string."""
    if not text:
        return ""
    match = PRICE_PATTERN.search(text)
    return clean_text(match.group(0)) if match else ""


def canonical_link(href: Optional[str], base_url: str = "") -> str:
    """Absolute listing URL without query string or fragment."""
    href = (href or "").strip()
    if not href or href.startswith(("javascript:", "mailto:", "#")):
        return ""
    absolute = urljoin(base_url, href) if base_url else href
    try:
        parts = urlsplit(absolute)
    except ValueError:
        return ""
    if not parts.scheme or not parts.netloc:
        return ""
    return urlunsplit((parts.scheme, parts.netloc, parts.path.rstrip("/"), "", ""))


def is_boilerplate(title: str) -> bool:
    """True for navigation/header strings picked up by the item anchor scan."""
    return clean_text(title).lower() in BOILERPLATE_TITLES


class ListingRecord(BaseModel):
    """One catalog entry.

    Serialized with the keys used by the durable record and the read API
    (``img`` and ``localImage`` for the two image references).
    """

    model_config = ConfigDict(populate_by_name=True)

    link: str
    title: str = ""
    price: str = ""
    remote_image_url: str = Field(default="", alias="img")
    local_image_path: str = Field(default="", alias="localImage")

    @field_validator("link")
    @classmethod
    def require_link(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("listing link must not be empty")
        return v

    @field_validator("title", "price", "remote_image_url", "local_image_path", mode="before")
    @classmethod
    def clean_fields(cls, v: Optional[str]) -> str:
        return clean_text(v)

    @model_validator(mode="after")
    def mirror_remote_image(self) -> "ListingRecord":
        # A record with a remote image always has something displayable
        if self.remote_image_url and not self.local_image_path:
            self.local_image_path = self.remote_image_url
        return self

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


class Catalog(BaseModel):
    """All listings produced by one successful sync run."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[ListingRecord] = Field(default_factory=list)
    last_updated: str = Field(default_factory=_utc_now, alias="lastUpdated")
    version: int = CATALOG_VERSION

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def __len__(self) -> int:
        return len(self.items)

    def to_record(self) -> dict:
        """Versioned wrapped shape written to the durable record."""
        return {
            "version": self.version,
            "lastUpdated": self.last_updated,
            "itemCount": self.item_count,
            "items": [item.to_record() for item in self.items],
        }

    @classmethod
    def from_record(cls, data) -> "Catalog":
        """Accept either the wrapped object or a bare list of records."""
        if isinstance(data, list):
            return cls(items=data)
        if isinstance(data, dict) and isinstance(data.get("items"), list):
            return cls(
                items=data["items"],
                lastUpdated=data.get("lastUpdated") or _utc_now(),
                version=data.get("version", CATALOG_VERSION),
            )
        raise ValueError("catalog record must be a list or an object with 'items'")


Strategy = tuple[str, Callable[[dict], Optional[str]]]

# Listing-page mode: candidates read around each item anchor
TITLE_STRATEGIES: tuple[Strategy, ...] = (
    ("title attribute", lambda raw: raw.get("titleAttr")),
    ("nearby heading", lambda raw: raw.get("headingText")),
    ("title-class element", lambda raw: raw.get("titleClassText")),
)

PRICE_STRATEGIES: tuple[Strategy, ...] = (
    ("currency in title", lambda raw: match_price(raw.get("titleAttr"))),
    ("currency in heading", lambda raw: match_price(raw.get("headingText"))),
    ("price-class element", lambda raw: match_price(raw.get("priceClassText"))),
)

IMAGE_STRATEGIES: tuple[Strategy, ...] = (
    ("container image", lambda raw: raw.get("containerImage")),
    ("sibling image", lambda raw: raw.get("siblingImage")),
)

# Detail-page mode: candidates read from an item's own page
DETAIL_TITLE_STRATEGIES: tuple[Strategy, ...] = (
    ("primary heading", lambda raw: raw.get("heading")),
    ("metadata title", lambda raw: raw.get("metaTitle")),
)

DETAIL_PRICE_STRATEGIES: tuple[Strategy, ...] = (
    (
        "first currency text",
        lambda raw: next(
            (p for p in (match_price(t) for t in raw.get("priceTexts") or []) if p), ""
        ),
    ),
)

DETAIL_IMAGE_STRATEGIES: tuple[Strategy, ...] = (
    ("metadata image", lambda raw: raw.get("metaImage")),
    ("host image", lambda raw: raw.get("hostImage")),
)


def first_match(strategies: Iterable[Strategy], raw: dict) -> str:
    """Run strategies in order, returning the first non-empty cleaned value."""
    for _name, strategy in strategies:
        value = clean_text(strategy(raw))
        if value:
            return value
    return ""


class ListingTransformer:
    """Transforms raw DOM candidates into validated, de-duplicated listing records."""

    def __init__(self, base_url: str = ""):
        self.base_url = base_url

    def transform(self, raw: dict) -> Optional[ListingRecord]:
        """Build a record from one anchor's candidates (listing-page mode)."""
        link = canonical_link(raw.get("link"), self.base_url)
        if not link:
            return None

        title = first_match(TITLE_STRATEGIES, raw)
        if title and is_boilerplate(title):
            return None

        return ListingRecord(
            link=link,
            title=title,
            price=first_match(PRICE_STRATEGIES, raw),
            remote_image_url=self._absolute(first_match(IMAGE_STRATEGIES, raw)),
        )

    def transform_detail(self, link: str, raw: dict) -> ListingRecord:
        """Build a record from an item page's candidates (detail-page mode)."""
        return ListingRecord(
            link=link,
            title=first_match(DETAIL_TITLE_STRATEGIES, raw),
            price=first_match(DETAIL_PRICE_STRATEGIES, raw),
            remote_image_url=self._absolute(first_match(DETAIL_IMAGE_STRATEGIES, raw)),
        )

    def transform_batch(self, raw_items: list[dict]) -> list[ListingRecord]:
        """Transform a batch, merging anchors that point at the same listing."""
        records: dict[str, ListingRecord] = {}
        discarded = 0

        for raw in raw_items:
            record = self.transform(raw)
            if record is None:
                discarded += 1
                continue

            existing = records.get(record.link)
            if existing is None:
                records[record.link] = record
                continue

            # Several anchors per card (image, title); fill gaps from later ones
            for name in ("title", "price", "remote_image_url"):
                if not getattr(existing, name) and getattr(record, name):
                    setattr(existing, name, getattr(record, name))
            if existing.remote_image_url and not existing.local_image_path:
                existing.local_image_path = existing.remote_image_url

        if discarded:
            console.print(f"[dim]Discarded {discarded} non-listing anchors[/dim]")

        return list(records.values())

    def unique_links(self, hrefs: Iterable[str]) -> list[str]:
        """Canonical item links in first-seen order, without duplicates."""
        seen: dict[str, None] = {}
        for href in hrefs:
            link = canonical_link(href, self.base_url)
            if link:
                seen.setdefault(link, None)
        return list(seen)

    def _absolute(self, url: str) -> str:
        if not url or url.startswith("data:"):
            return ""
        if self.base_url and not url.startswith(("http://", "https://")):
            return urljoin(self.base_url, url)
        return url
