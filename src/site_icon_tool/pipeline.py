"""Lookup pipeline: discover, rank, validate, select and download."""

import logging
import re
from urllib.parse import urljoin

import httpx

from .config import Config
from .discovery import IconDiscoverer, infer_content_type
from .errors import FetchError, IconNotFoundError
from .http_utils import create_client, safe_http_get
from .models import DiscoveryResult, IconCandidate
from .normalizer import origin_url
from .scoring import rank_candidates, select_best
from .validation import (
    IconValidator,
    is_html_content,
    is_image_content_type,
    validate_image_content,
)

logger = logging.getLogger(__name__)

_SIZE_IN_NAME = re.compile(r"(\d+)x(\d+)")

# HTTPResult.error_type -> FetchError.kind
_FETCH_ERROR_KINDS = {
    "timeout": "timeout",
    "connection_error": "connection",
    "ssl_error": "connection",
    "http_error": "not_found",
}


def fallback_candidate(base_url: str, path: str) -> IconCandidate:
    """
    Build a candidate for a common icon path.

    MIME type comes from the extension and the size from a "WxH" part of the
    file name, when present.
    """
    width = height = None
    match = _SIZE_IN_NAME.search(path)
    if match:
        width, height = int(match.group(1)), int(match.group(2))

    return IconCandidate.create(
        urljoin(base_url, path),
        infer_content_type(path, default="image/png"),
        width,
        height,
    )


class IconPipeline:
    """
    Runs one icon lookup against a single pooled HTTP client.

    Use as a context manager so the client is closed when the lookup ends.
    """

    def __init__(
        self,
        config: Config | None = None,
        client: httpx.Client | None = None,
        extra_headers: dict[str, str] | None = None,
        validate: bool = True,
    ):
        """
        Initialize pipeline.

        Args:
            config: Application configuration
            client: HTTP client (a private one is created if omitted)
            extra_headers: Headers forwarded with every outbound request
            validate: Probe candidates before selecting one
        """
        self.config = config or Config()
        self._owns_client = client is None
        self.client = client or create_client(
            timeout=self.config.http.timeout,
            max_redirects=self.config.http.max_redirects,
        )
        self.extra_headers = dict(extra_headers or {})
        self.validate = validate

        self.discoverer = IconDiscoverer(self.client, self.config.discovery, self.extra_headers)
        self.validator = IconValidator(
            self.client,
            timeout=self.config.validation.timeout,
            peek_bytes=self.config.validation.peek_bytes,
            extra_headers=self.extra_headers,
        )

    def __enter__(self) -> "IconPipeline":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def find_icons(self, origin: str) -> list[IconCandidate]:
        """
        Discover and validate icons for an origin.

        The top K ranked candidates are validated. If none passes, the common
        icon paths are probed. If those fail too, the ranked discovery list is
        returned unvalidated as a last resort.

        Args:
            origin: Normalized origin

        Returns:
            Candidates sorted best first (empty only if discovery found nothing)
        """
        return self._find_icons(origin)[0]

    def _find_icons(self, origin: str) -> tuple[list[IconCandidate], bool]:
        """Like find_icons(), also telling whether the list was validated."""
        ranked = rank_candidates(self.discoverer.discover(origin))
        if not ranked:
            logger.warning(f"No icon candidates discovered for {origin}")
            return [], False

        if not self.validate:
            return ranked, False

        top_k = self.config.validation.top_k
        validated = self.validator.validate_all(ranked[:top_k])
        if validated:
            return rank_candidates(validated), True

        logger.info(f"No top candidate validated for {origin}, probing common icon paths")
        base_url = origin_url(origin)
        fallbacks = [
            fallback_candidate(base_url, path) for path in self.config.validation.fallback_paths
        ]
        validated = self.validator.validate_all(fallbacks)
        if validated:
            return rank_candidates(validated), True

        logger.warning(f"No icon validated for {origin}, using unvalidated candidates")
        return ranked, False

    def fetch_icon(self, candidate: IconCandidate) -> tuple[bytes, str]:
        """
        Download and verify the bytes of a selected icon.

        Args:
            candidate: Icon to download

        Returns:
            Tuple of (content, content type of the candidate)

        Raises:
            FetchError: If the download fails or the bytes are not an image
        """
        headers = self.validator.headers_for(candidate)
        result = safe_http_get(
            self.client,
            candidate.url,
            "fetch",
            timeout=self.config.http.timeout,
            headers=headers,
        )

        response = result.response
        if response is None:
            kind = _FETCH_ERROR_KINDS.get(result.error_type, "general")
            raise FetchError(kind, result.error or f"Failed to fetch {candidate.url}")

        content_type = response.headers.get("content-type")
        if content_type and not is_image_content_type(content_type):
            raise FetchError(
                "invalid_content",
                f"Invalid content type for icon {candidate.url}: {content_type}",
            )

        if not result.success:
            raise FetchError("not_found", result.error or f"HTTP {response.status_code}")

        content = response.content
        if not content:
            raise FetchError("invalid_content", f"Empty icon body: {candidate.url}")

        if is_html_content(content):
            raise FetchError("invalid_content", f"Icon URL returned HTML: {candidate.url}")

        if not validate_image_content(content, candidate.content_type):
            raise FetchError("invalid_content", f"Icon content is not a valid image: {candidate.url}")

        logger.debug(f"Fetched {len(content)} bytes from {candidate.url}")
        return content, candidate.content_type

    def resolve(
        self, origin: str, requested_size: int | None = None
    ) -> tuple[IconCandidate, bytes, str]:
        """
        Run the full lookup for an origin.

        Args:
            origin: Normalized origin
            requested_size: Desired icon size in pixels

        Returns:
            Tuple of (selected icon, content, content type)

        Raises:
            IconNotFoundError: If no candidate was found, or no candidate
                validated and the unvalidated best one could not be downloaded
            FetchError: If a validated icon could not be downloaded
        """
        icons, validated = self._find_icons(origin)
        best = select_best(icons, requested_size)
        if best is None:
            raise IconNotFoundError(origin)

        try:
            content, content_type = self.fetch_icon(best)
        except FetchError as e:
            if self.validate and not validated:
                logger.warning(f"Unvalidated icon for {origin} could not be fetched: {e}")
                raise IconNotFoundError(origin) from e
            raise

        return best, content, content_type

    def build_result(self, origin: str, requested_size: int | None = None) -> DiscoveryResult:
        """
        Run discovery and selection without downloading.

        Raises:
            IconNotFoundError: If no candidate was found, or validation is
                enabled and no candidate validated
        """
        icons, validated = self._find_icons(origin)
        if not icons or (self.validate and not validated):
            raise IconNotFoundError(origin)

        return DiscoveryResult(
            url=origin, icons=icons, best_icon=select_best(icons, requested_size)
        )
