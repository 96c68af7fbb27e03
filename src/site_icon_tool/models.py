"""Data model shared by discovery, validation, selection and caching."""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .normalizer import normalize_icon_url


@dataclass(unsafe_hash=True)
class IconCandidate:
    """
    A discovered, not yet confirmed icon reference.

    Identity is (url, content_type, width, height, purpose). The score is
    assigned after candidates are collected in a set, so it is excluded from
    equality and hashing.
    """

    url: str
    content_type: str
    width: int | None = None
    height: int | None = None
    purpose: str | None = None
    score: int = field(default=0, compare=False)

    @classmethod
    def create(
        cls,
        url: str,
        content_type: str,
        width: int | None = None,
        height: int | None = None,
        purpose: str | None = None,
    ) -> "IconCandidate":
        """Create a candidate with its URL canonicalized."""
        return cls(
            url=normalize_icon_url(url),
            content_type=content_type,
            width=width,
            height=height,
            purpose=purpose,
        )

    @property
    def has_dimensions(self) -> bool:
        return self.width is not None and self.height is not None

    @property
    def size(self) -> int | None:
        """Largest known dimension, or None if either is unknown."""
        if not self.has_dimensions:
            return None
        return max(self.width, self.height)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the public JSON shape (score is internal)."""
        data: dict[str, Any] = {
            "url": self.url,
            "type": self.content_type,
            "width": self.width,
            "height": self.height,
        }
        if self.purpose is not None:
            data["purpose"] = self.purpose
        return data


@dataclass
class DiscoveryResult:
    """Icons found for an origin plus the selected best match."""

    url: str
    icons: list[IconCandidate] = field(default_factory=list)
    best_icon: IconCandidate | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "icons": [icon.to_dict() for icon in self.icons],
        }
        if self.best_icon is not None:
            data["best_icon"] = self.best_icon.to_dict()
        return data


def compute_etag(content: bytes) -> str:
    """Quoted hex digest of content, usable in If-None-Match comparisons."""
    return f'"{hashlib.md5(content).hexdigest()}"'


@dataclass
class CacheEntry:
    """
    Cached response body.

    content is bytes and never mutated after construction, so one entry can
    be handed to any number of concurrent readers. access_count is a
    best-effort heat metric; lost increments are acceptable.
    """

    content: bytes
    content_type: str
    etag: str
    access_count: int = 1

    @classmethod
    def create(cls, content: bytes, content_type: str) -> "CacheEntry":
        return cls(content=content, content_type=content_type, etag=compute_etag(content))


class CacheTier(Enum):
    """Cache tiers, in lookup order."""

    NEGATIVE = "negative"
    MAIN = "main"
    EXPIRED = "expired"


def build_cache_key(origin: str, requested_size: int | None = None, as_json: bool = False) -> str:
    """
    Build the cache key for an origin.

    Image responses use origin[:size], JSON responses origin:json[:size], so
    every response kind and requested size has its own entry.
    """
    key = f"{origin}:json" if as_json else origin
    if requested_size is not None:
        key += f":{requested_size}"
    return key
