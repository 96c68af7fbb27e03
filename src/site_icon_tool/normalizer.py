"""Origin normalization.

Turns arbitrary user input ("Example.com", "https://example.com/blog/?q=1",
"localhost:8080") into the stable host[:port][/path] form used as cache key
root and as the base for resolving relative icon links.
"""

import re
from urllib.parse import urlsplit

from .errors import InvalidOriginError

_HOST_PATTERN = re.compile(r"^[a-z0-9_\-.]+$")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def _clean_host(host: str | None, value: str) -> str:
    """Validate and canonicalize a parsed hostname."""
    if not host:
        raise InvalidOriginError(value)

    if ":" in host:
        # IPv6 literal, urlsplit strips the brackets
        return f"[{host}]"

    if not host.isascii():
        try:
            host = host.encode("idna").decode("ascii")
        except UnicodeError as e:
            raise InvalidOriginError(value) from e

    if not _HOST_PATTERN.match(host) or ".." in host:
        raise InvalidOriginError(value)

    return host


def normalize_origin(value: str) -> str:
    """
    Normalize user input to a lowercase host[:port][/path] origin reference.

    Query string, fragment and trailing slash are dropped. Input without a
    scheme is parsed as if it started with https://. A bare host:port value
    with an all-digit port is recognized directly and keeps only host:port.

    Args:
        value: Arbitrary user-supplied URL or host

    Returns:
        Normalized origin (e.g., "example.com", "localhost:8080", "example.com/blog")

    Raises:
        InvalidOriginError: If the value cannot be parsed as an origin
    """
    text = value.strip() if value else ""
    if not text:
        raise InvalidOriginError(value)

    # host:port without scheme
    if ":" in text and not text.startswith("http"):
        host_part, _, rest = text.partition(":")
        port = rest.split("/", 1)[0]
        if port.isascii() and port.isdigit():
            try:
                parsed = urlsplit(f"https://{host_part}:{port}")
                has_port = parsed.port is not None
            except ValueError:
                has_port = False  # out of range or malformed host
            if has_port and parsed.hostname:
                return f"{_clean_host(parsed.hostname, value)}:{port}"

    if "://" not in text:
        text = f"https://{text}"

    try:
        parsed = urlsplit(text)
        port = parsed.port
    except ValueError as e:
        raise InvalidOriginError(value) from e

    if " " in parsed.netloc:
        raise InvalidOriginError(value)

    normalized = _clean_host(parsed.hostname, value)
    if port is not None and port != _DEFAULT_PORTS.get(parsed.scheme.lower()):
        normalized += f":{port}"

    path = parsed.path.strip("/")
    if path:
        normalized += f"/{path}"

    return normalized


def origin_url(normalized: str) -> str:
    """
    Build the absolute base URL for a normalized origin.

    Args:
        normalized: Output of normalize_origin()

    Returns:
        https:// URL suitable for fetching and for urljoin()
    """
    return f"https://{normalized}"


def normalize_icon_url(url: str) -> str:
    """
    Canonicalize a resolved icon URL for storage and comparison.

    Icon URLs are rewritten to https://<normalized origin>; URLs that cannot
    be normalized are kept verbatim.
    """
    try:
        return origin_url(normalize_origin(url))
    except InvalidOriginError:
        return url
