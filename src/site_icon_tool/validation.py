"""Icon validation.

Cheap liveness checks (HEAD probe, ranged peek on redirects) decide which
candidates survive discovery. Full content validation runs once the selected
icon's bytes are downloaded.
"""

import io
import logging

import httpx
from PIL import Image

from .constants import (
    ANDROID_CHROME_USER_AGENT,
    DEFAULT_PEEK_BYTES,
    DEFAULT_VALIDATION_TIMEOUT,
    IOS_USER_AGENT,
    WINDOWS_CHROME_USER_AGENT,
)
from .http_utils import create_client, safe_http_head, safe_http_peek
from .models import IconCandidate

logger = logging.getLogger(__name__)

# ============================================================================
# Content Sniffing
# ============================================================================

HTML_PREFIXES = (b"<!DOCTYPE", b"<html", b"<HTML")
HTML_MARKERS = (b"<script", b"<body", b"<head")

# Format: (magic prefix, format name)
IMAGE_SIGNATURES = [
    (b"\x89PNG", "png"),
    (b"GIF8", "gif"),
    (b"\xff\xd8\xff", "jpeg"),
    (b"<svg", "svg"),
    (b"<?xml", "svg"),
    (b"RIFF", "webp"),
    (b"\x00\x00\x01\x00", "ico"),
]

PNG_MAGIC = b"\x89PNG"


def is_image_content_type(content_type: str) -> bool:
    """Check if a Content-Type header value denotes an image."""
    return content_type.strip().lower().startswith("image/")


def is_html_content(data: bytes) -> bool:
    """
    Check if bytes look like an HTML document rather than an image.

    Catches login walls, cookie banners and soft 404 pages served with an
    image URL.
    """
    return data.startswith(HTML_PREFIXES) or any(marker in data for marker in HTML_MARKERS)


def detect_image_format(data: bytes) -> str | None:
    """Return the format name matching the data's magic bytes, if any."""
    for magic, name in IMAGE_SIGNATURES:
        if data.startswith(magic):
            return name
    return None


def has_valid_image_signature(data: bytes) -> bool:
    """Check if bytes start with a recognized image signature."""
    return detect_image_format(data) is not None


def _decodes(data: bytes) -> bool:
    """Try a full decode with Pillow."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
        return True
    except Exception as e:
        logger.debug(f"Image decode failed: {e}")
        return False


def validate_image_content(data: bytes, content_type: str) -> bool:
    """
    Validate downloaded icon bytes.

    Args:
        data: Full response body
        content_type: Declared content type of the candidate

    Returns:
        True if the bytes are an acceptable image
    """
    if not data:
        logger.debug("Image validation failed - empty content")
        return False

    if is_html_content(data):
        logger.debug("Image validation failed - content is HTML, not an image")
        return False

    if not has_valid_image_signature(data):
        logger.debug(f"Image validation failed - no image signature for {content_type}")
        return False

    if content_type == "image/svg+xml":
        return True

    if content_type == "image/png":
        if _decodes(data):
            return True
        # Some valid PNGs use features the decoder does not support
        if data.startswith(PNG_MAGIC):
            logger.debug("PNG failed to decode but has PNG signature - accepting")
            return True
        return False

    return _decodes(data)


# ============================================================================
# User Agent Selection
# ============================================================================


def select_user_agent(candidate: IconCandidate) -> str:
    """
    Pick the browser identity most likely to be served this icon.

    Args:
        candidate: Icon candidate

    Returns:
        User-Agent header value
    """
    purpose = candidate.purpose or ""

    if "apple-touch-icon" in candidate.url or "apple-touch-icon" in purpose:
        return IOS_USER_AGENT
    if "maskable" in purpose:
        return ANDROID_CHROME_USER_AGENT
    if "msapplication" in purpose:
        return WINDOWS_CHROME_USER_AGENT
    return WINDOWS_CHROME_USER_AGENT


# ============================================================================
# Network Validation
# ============================================================================


class IconValidator:
    """
    Confirms candidates are live and image-shaped.

    Uses a HEAD probe per candidate and, when the probe was redirected, a
    ranged GET of the first bytes of the final URL to sniff the real content.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_VALIDATION_TIMEOUT,
        peek_bytes: int = DEFAULT_PEEK_BYTES,
        extra_headers: dict[str, str] | None = None,
    ):
        """
        Initialize validator.

        Args:
            client: Pooled HTTP client (a private one is created if omitted)
            timeout: Per-request timeout for probe and peek
            peek_bytes: Number of bytes fetched when sniffing redirects
            extra_headers: Headers forwarded with every request
        """
        self._owns_client = client is None
        self.client = client or create_client(timeout=timeout)
        self.timeout = timeout
        self.peek_bytes = peek_bytes
        self.extra_headers = dict(extra_headers or {})

    def __enter__(self) -> "IconValidator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def headers_for(self, candidate: IconCandidate) -> dict[str, str]:
        """Request headers for a candidate, with its category User-Agent."""
        headers = dict(self.extra_headers)
        headers["User-Agent"] = select_user_agent(candidate)
        return headers

    def validate(self, candidate: IconCandidate) -> bool:
        """
        Check that a candidate exists and is served as an image.

        Args:
            candidate: Icon candidate

        Returns:
            True if the candidate passed every check
        """
        headers = self.headers_for(candidate)
        result = safe_http_head(
            self.client, candidate.url, "probe", timeout=self.timeout, headers=headers
        )

        if not result.success:
            logger.debug(f"Icon validation failed - {result.error}")
            return False

        response = result.response
        content_type = response.headers.get("content-type")

        final_url = str(response.url)
        if final_url != candidate.url:
            logger.debug(f"Icon was redirected: {candidate.url} -> {final_url}")

            if content_type and not is_image_content_type(content_type):
                logger.debug(
                    f"Icon validation failed - redirected to non-image content type: {content_type}"
                )
                return False

            if not self.peek(final_url, headers):
                logger.debug(f"Icon validation failed - peeked content is not an image: {final_url}")
                return False

        if content_type and not is_image_content_type(content_type):
            logger.debug(f"Icon validation failed - non-image content type: {content_type}")
            return False

        content_length = response.headers.get("content-length")
        if content_length is not None:
            try:
                if int(content_length) == 0:
                    logger.debug(f"Icon validation failed - zero content length: {candidate.url}")
                    return False
            except ValueError:
                logger.debug(f"Ignoring malformed Content-Length: {content_length}")

        logger.debug(f"Icon validation successful: {candidate.url}")
        return True

    def peek(self, url: str, headers: dict[str, str]) -> bool:
        """
        Fetch the first bytes of a URL and check they look like an image.

        At most peek_bytes are read, also from servers that ignore Range.

        Args:
            url: URL to sniff (the final URL after redirects)
            headers: Request headers

        Returns:
            True if the slice is non-empty, not HTML and has an image signature
        """
        peek_headers = dict(headers)
        peek_headers["Range"] = f"bytes=0-{self.peek_bytes - 1}"

        result = safe_http_peek(
            self.client, url, "peek", self.peek_bytes, timeout=self.timeout, headers=peek_headers
        )
        if not result.success:
            logger.debug(f"Peek request failed: {result.error}")
            return False

        data = result.content

        if not data:
            logger.debug(f"Peek content is empty for URL: {url}")
            return False

        if is_html_content(data):
            logger.debug(f"Peek content is HTML, not an image for URL: {url}")
            return False

        return has_valid_image_signature(data)

    def validate_all(self, candidates: list[IconCandidate]) -> list[IconCandidate]:
        """
        Validate candidates one by one.

        Args:
            candidates: Candidates to check

        Returns:
            Candidates that passed, in input order
        """
        validated = [candidate for candidate in candidates if self.validate(candidate)]
        logger.info(f"Validated {len(validated)}/{len(candidates)} icons successfully")
        return validated
