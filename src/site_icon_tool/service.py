"""Cache-first icon service.

Framework-independent request handling: turns a raw URL into an
IconResponse (status, body, headers) using the three-tier cache, and keeps
stale entries fresh with background refresh jobs.
"""

import json
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from .cache import IconCache
from .config import Config
from .constants import MAX_AGE_FRESH_HIT, MAX_AGE_NEW, MAX_AGE_STALE
from .errors import FetchError, IconNotFoundError, InvalidOriginError, SiteIconError
from .models import CacheEntry, build_cache_key, compute_etag
from .normalizer import normalize_origin
from .pipeline import IconPipeline
from .utils.debug_stats import get_stats_tracker

logger = logging.getLogger(__name__)

SERVICE_NAME = "site-icon-tool"
JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

# FetchError.kind -> response status
FETCH_ERROR_STATUS = {
    "timeout": 504,
    "connection": 502,
    "not_found": 404,
    "invalid_content": 404,
    "general": 500,
}

PipelineFactory = Callable[[dict[str, str] | None], IconPipeline]


@dataclass
class IconResponse:
    """Response produced by IconService, ready to be written by any HTTP layer."""

    status: int
    body: bytes = b""
    content_type: str = TEXT_CONTENT_TYPE
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def error(cls, status: int, message: str) -> "IconResponse":
        return cls(status=status, body=message.encode("utf-8"))


def _cache_headers(etag: str, max_age: int) -> dict[str, str]:
    return {"ETag": etag, "Cache-Control": f"public, max-age={max_age}"}


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    """Check an If-None-Match header value against an ETag."""
    if not if_none_match:
        return False
    candidates = [value.strip() for value in if_none_match.split(",")]
    return "*" in candidates or etag in candidates


class IconService:
    """
    Serves icons and icon metadata from cache, running the pipeline on misses.

    Stale hits are served immediately and refreshed on a bounded worker pool.
    Refresh jobs never raise; failures are logged and the stale entry stays.
    """

    def __init__(
        self,
        config: Config | None = None,
        cache: IconCache | None = None,
        pipeline_factory: PipelineFactory | None = None,
        executor: Executor | None = None,
    ):
        """
        Initialize service.

        Args:
            config: Application configuration
            cache: Icon cache (built from config.cache if omitted)
            pipeline_factory: Creates a pipeline for one lookup, given the
                headers to forward
            executor: Runs refresh jobs (a thread pool is created if omitted)
        """
        self.config = config or Config()
        self.cache = cache or IconCache(
            capacity=self.config.cache.capacity,
            ttl=self.config.cache.ttl_seconds,
            expired_ttl=self.config.cache.expired_ttl_seconds,
        )
        self._pipeline_factory = pipeline_factory or self._default_pipeline
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.config.cache.refresh_workers,
            thread_name_prefix="icon-refresh",
        )
        self._in_flight: set[str] = set()
        self._in_flight_lock = threading.Lock()

    def _default_pipeline(self, extra_headers: dict[str, str] | None = None) -> IconPipeline:
        return IconPipeline(self.config, extra_headers=extra_headers)

    # ========================================================================
    # Image endpoint
    # ========================================================================

    def get_image(
        self,
        raw_url: str,
        size: int | None = None,
        if_none_match: str | None = None,
        forwarded_headers: dict[str, str] | None = None,
    ) -> IconResponse:
        """
        Serve the best icon of a site as image bytes.

        Args:
            raw_url: URL or host as given by the caller
            size: Requested icon size in pixels
            if_none_match: If-None-Match request header
            forwarded_headers: Request headers to forward to the target site

        Returns:
            IconResponse with status 200, 304, 400, 404, 500, 502 or 504
        """
        try:
            origin = normalize_origin(raw_url)
        except InvalidOriginError:
            return IconResponse.error(400, "Invalid URL")

        key = build_cache_key(origin, size)

        hit = self.cache.get(key)
        if hit is not None:
            entry, needs_refresh = hit
            if needs_refresh:
                logger.debug(f"Serving stale icon for {key}, refreshing in background")
                self._schedule_refresh(key, origin, size, False, forwarded_headers)
                return self._entry_response(entry, MAX_AGE_STALE, if_none_match)
            logger.debug(f"Serving cached icon for {key}")
            return self._entry_response(entry, MAX_AGE_FRESH_HIT, if_none_match)

        if self.cache.is_negative(key):
            return IconResponse.error(404, "No icons found")

        try:
            with self._pipeline_factory(forwarded_headers) as pipeline:
                best, content, content_type = pipeline.resolve(origin, size)
        except IconNotFoundError:
            logger.warning(f"No icons found for {origin}")
            self.cache.insert_negative(key)
            return IconResponse.error(404, "No icons found")
        except FetchError as e:
            logger.warning(f"Failed to fetch icon for {origin}: {e}")
            return IconResponse.error(FETCH_ERROR_STATUS.get(e.kind, 500), f"Failed to fetch icon: {e}")

        entry = CacheEntry.create(content, content_type)
        if self.cache.insert(key, content, content_type, entry.etag):
            self.cache.remove_from_expired(key)
        logger.info(f"Serving {best.url} for {origin}")
        return self._entry_response(entry, MAX_AGE_NEW, if_none_match)

    # ========================================================================
    # JSON endpoint
    # ========================================================================

    def get_json(
        self,
        raw_url: str,
        size: int | None = None,
        forwarded_headers: dict[str, str] | None = None,
    ) -> IconResponse:
        """
        Serve the discovery result of a site as JSON.

        Args:
            raw_url: URL or host as given by the caller
            size: Requested icon size used to pick best_icon
            forwarded_headers: Request headers to forward to the target site

        Returns:
            IconResponse with status 200, 400 or 404
        """
        try:
            origin = normalize_origin(raw_url)
        except InvalidOriginError:
            return IconResponse.error(400, "Invalid URL")

        key = build_cache_key(origin, size, as_json=True)

        hit = self.cache.get(key)
        if hit is not None:
            entry, needs_refresh = hit
            if needs_refresh:
                self._schedule_refresh(key, origin, size, True, forwarded_headers)
            max_age = MAX_AGE_STALE if needs_refresh else MAX_AGE_NEW
            return self._entry_response(entry, max_age)

        if self.cache.is_negative(key):
            return IconResponse.error(404, "No icons found")

        try:
            body = self._discovery_json(origin, size, forwarded_headers)
        except IconNotFoundError:
            logger.warning(f"No icons found for {origin}")
            self.cache.insert_negative(key)
            return IconResponse.error(404, "No icons found")

        etag = compute_etag(body)
        self.cache.insert(key, body, JSON_CONTENT_TYPE, etag)
        return IconResponse(
            status=200,
            body=body,
            content_type=JSON_CONTENT_TYPE,
            headers=_cache_headers(etag, MAX_AGE_NEW),
        )

    def _discovery_json(
        self,
        origin: str,
        size: int | None,
        forwarded_headers: dict[str, str] | None,
    ) -> bytes:
        with self._pipeline_factory(forwarded_headers) as pipeline:
            result = pipeline.build_result(origin, size)
        return json.dumps(result.to_dict()).encode("utf-8")

    # ========================================================================
    # Health and lifecycle
    # ========================================================================

    def health(self) -> dict[str, Any]:
        """Service status with per-tier cache entry counts."""
        main_count, expired_count, negative_count = self.cache.stats()
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "cache_stats": {
                "main_cache": main_count,
                "expired_cache": expired_count,
                "negative_cache": negative_count,
            },
        }

    def shutdown(self, wait: bool = True) -> None:
        """Stop the refresh worker pool."""
        self._executor.shutdown(wait=wait)

    # ========================================================================
    # Internals
    # ========================================================================

    def _entry_response(
        self, entry: CacheEntry, max_age: int, if_none_match: str | None = None
    ) -> IconResponse:
        headers = _cache_headers(entry.etag, max_age)
        if etag_matches(if_none_match, entry.etag):
            return IconResponse(status=304, content_type=entry.content_type, headers=headers)
        return IconResponse(
            status=200, body=entry.content, content_type=entry.content_type, headers=headers
        )

    def _schedule_refresh(
        self,
        key: str,
        origin: str,
        size: int | None,
        as_json: bool,
        forwarded_headers: dict[str, str] | None,
    ) -> None:
        if self.config.cache.single_flight_refresh:
            with self._in_flight_lock:
                if key in self._in_flight:
                    logger.debug(f"Refresh already running for {key}")
                    return
                self._in_flight.add(key)

        get_stats_tracker().record_refresh(key)
        try:
            self._executor.submit(self._refresh, key, origin, size, as_json, forwarded_headers)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning(f"Could not schedule refresh for {key}: {e}")
            self._release(key)

    def _release(self, key: str) -> None:
        with self._in_flight_lock:
            self._in_flight.discard(key)

    def _refresh(
        self,
        key: str,
        origin: str,
        size: int | None,
        as_json: bool,
        forwarded_headers: dict[str, str] | None,
    ) -> None:
        """Re-run the lookup for a stale key. Never raises."""
        try:
            if as_json:
                content = self._discovery_json(origin, size, forwarded_headers)
                content_type = JSON_CONTENT_TYPE
            else:
                with self._pipeline_factory(forwarded_headers) as pipeline:
                    _, content, content_type = pipeline.resolve(origin, size)

            if self.cache.insert(key, content, content_type):
                self.cache.remove_from_expired(key)
                logger.info(f"Background refresh updated {key}")
        except SiteIconError as e:
            logger.warning(f"Background refresh failed for {key}, keeping stale entry: {e}")
        except Exception as e:
            logger.error(f"Background refresh crashed for {key}: {e}", exc_info=True)
        finally:
            self._release(key)
