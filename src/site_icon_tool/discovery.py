"""Icon discovery - collect icon candidates for an origin.

Sources, each best-effort and independent of the others:

1. Well-known locations (no network)
2. Icon <link> and <meta> tags of the root document
3. Web App Manifests (declared, or the default locations)
4. browserconfig.xml referenced by msapplication-config
5. og:image as a low priority fallback
"""

import json
import logging
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup

from .config import DiscoveryConfig
from .constants import DEFAULT_MANIFEST_PATHS, WELL_KNOWN_ICONS
from .http_utils import safe_http_get
from .models import IconCandidate
from .normalizer import origin_url

logger = logging.getLogger(__name__)

# rel tokens that mark a <link> as an icon ("shortcut icon" carries "icon")
ICON_REL_TOKENS = {"icon", "apple-touch-icon", "apple-touch-icon-precomposed", "mask-icon"}

TILE_IMAGE_SIZE = 144

# Extension -> MIME type, checked in order
EXTENSION_TYPES = [
    (".png", "image/png"),
    (".svg", "image/svg+xml"),
    (".webp", "image/webp"),
    (".jpg", "image/jpeg"),
    (".jpeg", "image/jpeg"),
]


# ============================================================================
# Helper Functions
# ============================================================================


def infer_content_type(href: str, default: str = "image/x-icon") -> str:
    """
    Infer an icon MIME type from the URL's file extension.

    Args:
        href: Icon URL or path as written in the source
        default: Type returned when the extension is not recognized

    Returns:
        MIME type
    """
    path = urlsplit(href).path.lower()
    for extension, content_type in EXTENSION_TYPES:
        if path.endswith(extension):
            return content_type
    return default


def parse_link_sizes(sizes: str | None) -> tuple[int | None, int | None]:
    """
    Parse a <link sizes> attribute.

    Only a single "WxH" pair yields dimensions; "any", lists of sizes and
    malformed values give (None, None).
    """
    if not sizes:
        return None, None

    parts = sizes.strip().lower().split("x")
    if len(parts) != 2:
        return None, None

    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None, None


def parse_manifest_sizes(sizes: str) -> tuple[int | None, int | None]:
    """
    Parse a manifest icon "sizes" value.

    "WxH" gives each side independently (an unparsable side stays None), a
    bare integer means a square icon, anything else gives (None, None).
    """
    value = sizes.strip().lower()

    if "x" in value:
        parts = value.split("x")
        if len(parts) != 2:
            return None, None
        return _parse_int(parts[0]), _parse_int(parts[1])

    size = _parse_int(value)
    return size, size


def _parse_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def extract_square_tile_src(xml_text: str) -> str | None:
    """
    Extract the tile image path from browserconfig.xml text.

    Uses the first line containing "<square" and the value of its src="..."
    attribute, without parsing the XML.
    """
    for line in xml_text.splitlines():
        if "<square" not in line:
            continue

        start = line.find('src="')
        if start == -1:
            return None
        start += len('src="')
        end = line.find('"', start)
        if end == -1:
            return None
        return line[start:end]

    return None


def _resolve(base: str, href: str) -> str | None:
    """Resolve href against base, keeping only http(s) results."""
    href = href.strip()
    if not href:
        return None

    resolved = urljoin(base, href)
    if urlsplit(resolved).scheme not in ("http", "https"):
        logger.debug(f"Skipping non-http icon reference: {href[:60]}")
        return None
    return resolved


def _rel_tokens(rel) -> list[str]:
    """BeautifulSoup gives rel as a list of tokens, other parsers as a string."""
    if rel is None:
        return []
    if isinstance(rel, str):
        return rel.split()
    return list(rel)


# ============================================================================
# Discoverer
# ============================================================================


class IconDiscoverer:
    """Collects icon candidates from every known source of one origin."""

    def __init__(
        self,
        client: httpx.Client,
        config: DiscoveryConfig | None = None,
        extra_headers: dict[str, str] | None = None,
    ):
        """
        Initialize discoverer.

        Args:
            client: Pooled HTTP client shared with validation and download
            config: Discovery configuration
            extra_headers: Headers forwarded with every request (e.g. Accept-Language)
        """
        self.client = client
        self.config = config or DiscoveryConfig()
        self.extra_headers = dict(extra_headers or {})

    def discover(self, origin: str) -> list[IconCandidate]:
        """
        Collect icon candidates for a normalized origin.

        No source failure is fatal; a source that cannot be fetched or
        parsed just contributes nothing.

        Args:
            origin: Normalized origin (output of normalize_origin())

        Returns:
            Unique candidates (order not significant)
        """
        base_url = origin_url(origin)
        icons: set[IconCandidate] = set()
        manifest_urls: list[str] = []

        self._add_well_known(base_url, icons)

        if self.config.check_html:
            manifest_urls = self._parse_document(base_url, icons)

        if self.config.check_manifest:
            if not manifest_urls:
                manifest_urls = [urljoin(base_url, path) for path in DEFAULT_MANIFEST_PATHS]
            for manifest_url in manifest_urls:
                self._parse_manifest(manifest_url, icons)

        logger.info(f"Discovered {len(icons)} icon candidates for {origin}")
        return list(icons)

    def _headers(self, user_agent: str) -> dict[str, str]:
        headers = dict(self.extra_headers)
        headers["User-Agent"] = user_agent
        return headers

    def _fetch_text(self, url: str, kind: str, user_agent: str) -> str | None:
        """Fetch a discovery resource, returning its text on 2xx only."""
        result = safe_http_get(
            self.client,
            url,
            kind,
            timeout=self.config.timeout,
            headers=self._headers(user_agent),
        )
        if not result.success:
            logger.debug(f"Failed to fetch {kind}: {result.error}")
            return None
        return result.response.text

    def _add_well_known(self, base_url: str, icons: set[IconCandidate]) -> None:
        for path, content_type, size, purpose in WELL_KNOWN_ICONS:
            icons.add(
                IconCandidate.create(
                    urljoin(base_url, path), content_type, size, size, purpose=purpose
                )
            )

    def _parse_document(self, base_url: str, icons: set[IconCandidate]) -> list[str]:
        """
        Extract icons from the root document.

        Returns:
            Manifest URLs declared by the document
        """
        html = self._fetch_text(base_url, "document", self.config.desktop_user_agent)
        if html is None:
            return []

        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as e:
            logger.debug(f"Error parsing document {base_url}: {e}")
            return []

        # 1. Icon link tags
        for link in soup.find_all("link", href=True):
            tokens = _rel_tokens(link.get("rel"))
            if not any(token.lower() in ICON_REL_TOKENS for token in tokens):
                continue

            href = link["href"]
            icon_url = _resolve(base_url, href)
            if icon_url is None:
                continue

            content_type = link.get("type") or "image/x-icon"
            if content_type == "image/x-icon":
                content_type = infer_content_type(href)

            width, height = parse_link_sizes(link.get("sizes"))
            purpose = " ".join(tokens)

            icons.add(IconCandidate.create(icon_url, content_type, width, height, purpose))
            logger.debug(f"Found icon link: {icon_url} (rel={purpose})")

        # 2. Windows tile image
        for meta in soup.find_all("meta", attrs={"name": "msapplication-TileImage"}):
            tile_url = _resolve(base_url, meta.get("content") or "")
            if tile_url is None:
                continue
            icons.add(
                IconCandidate.create(
                    tile_url,
                    "image/png",
                    TILE_IMAGE_SIZE,
                    TILE_IMAGE_SIZE,
                    purpose="msapplication-TileImage",
                )
            )
            logger.debug(f"Found Microsoft Tile icon: {tile_url}")

        # 3. Web App Manifest links
        manifest_urls = []
        for link in soup.find_all("link", href=True):
            if "manifest" not in [token.lower() for token in _rel_tokens(link.get("rel"))]:
                continue
            manifest_url = _resolve(base_url, link["href"])
            if manifest_url is not None:
                manifest_urls.append(manifest_url)

        # 4. browserconfig.xml
        if self.config.check_browserconfig:
            for meta in soup.find_all("meta", attrs={"name": "msapplication-config"}):
                config_url = _resolve(base_url, meta.get("content") or "")
                if config_url is not None:
                    self._parse_browserconfig(config_url, base_url, icons)

        # 5. Open Graph image
        if self.config.check_og_image:
            for meta in soup.find_all("meta", attrs={"property": "og:image"}):
                og_url = _resolve(base_url, meta.get("content") or "")
                if og_url is None:
                    continue
                icons.add(IconCandidate.create(og_url, "image/jpeg", purpose="og:image"))
                logger.debug(f"Found og:image: {og_url}")

        return manifest_urls

    def _parse_manifest(self, manifest_url: str, icons: set[IconCandidate]) -> None:
        """Add icons declared by a Web App Manifest."""
        text = self._fetch_text(manifest_url, "manifest", self.config.mobile_user_agent)
        if text is None:
            return

        try:
            manifest = json.loads(text)
        except json.JSONDecodeError as e:
            logger.debug(f"Invalid JSON in manifest {manifest_url}: {e}")
            return

        manifest_icons = manifest.get("icons") if isinstance(manifest, dict) else None
        if not isinstance(manifest_icons, list):
            logger.debug(f"Manifest has no icons array: {manifest_url}")
            return

        for icon in manifest_icons:
            if not isinstance(icon, dict):
                continue

            src = icon.get("src")
            sizes = icon.get("sizes")
            if not isinstance(src, str) or not isinstance(sizes, str):
                continue

            icon_url = _resolve(manifest_url, src)
            if icon_url is None:
                continue

            width, height = parse_manifest_sizes(sizes)
            purpose = icon.get("purpose")
            if not isinstance(purpose, str):
                purpose = None

            icons.add(
                IconCandidate.create(
                    icon_url,
                    infer_content_type(src, default="image/png"),
                    width,
                    height,
                    purpose,
                )
            )
            logger.debug(f"Found manifest icon: {icon_url} (sizes={sizes})")

    def _parse_browserconfig(
        self, config_url: str, base_url: str, icons: set[IconCandidate]
    ) -> None:
        """Add the square tile declared by browserconfig.xml."""
        text = self._fetch_text(config_url, "browserconfig", self.config.desktop_user_agent)
        if text is None:
            return

        src = extract_square_tile_src(text)
        if not src:
            logger.debug(f"No square tile in browserconfig: {config_url}")
            return

        tile_url = _resolve(base_url, src)
        if tile_url is None:
            return

        icons.add(
            IconCandidate.create(
                tile_url,
                "image/png",
                TILE_IMAGE_SIZE,
                TILE_IMAGE_SIZE,
                purpose="msapplication-tile",
            )
        )
        logger.debug(f"Found browserconfig tile: {tile_url}")
