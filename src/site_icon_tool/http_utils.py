"""HTTP utilities for discovery, validation and icon download."""

from dataclasses import dataclass
from typing import Any

import httpx

from .constants import DEFAULT_HTTP_MAX_REDIRECTS, DEFAULT_HTTP_TIMEOUT
from .utils.debug_stats import get_stats_tracker


@dataclass
class HTTPResult:
    """
    Result of an HTTP request.

    Either contains a successful response or error information.
    """

    success: bool
    response: httpx.Response | None = None
    error: str | None = None
    error_type: str | None = None  # "timeout", "http_error", "ssl_error", "connection_error", "general"
    content: bytes | None = None  # body prefix read by safe_http_peek()


def create_client(
    timeout: float = DEFAULT_HTTP_TIMEOUT,
    max_redirects: int = DEFAULT_HTTP_MAX_REDIRECTS,
    **kwargs: Any,
) -> httpx.Client:
    """
    Create a pooled client shared by every request of one lookup.

    Args:
        timeout: Default per-request timeout in seconds
        max_redirects: Maximum number of redirects to follow
        **kwargs: Additional httpx.Client arguments

    Returns:
        httpx.Client that follows redirects
    """
    return httpx.Client(
        timeout=timeout,
        follow_redirects=True,
        max_redirects=max_redirects,
        **kwargs,
    )


def safe_http_request(
    client: httpx.Client,
    method: str,
    url: str,
    kind: str,
    timeout: float | None = None,
    headers: dict[str, str] | None = None,
) -> HTTPResult:
    """
    Perform an HTTP request with standardized error handling.

    Non-2xx responses are reported as "http_error" with the response attached,
    so callers can still inspect the status. Every request is recorded in the
    debug statistics under its kind.

    Args:
        client: Pooled HTTP client
        method: HTTP method ("GET", "HEAD")
        url: URL to request
        kind: Request kind for statistics (document, manifest, probe, ...)
        timeout: Per-request timeout override in seconds
        headers: Request headers

    Returns:
        HTTPResult with either successful response or error information

    Example:
        >>> with create_client() as client:
        ...     result = safe_http_request(client, "GET", "https://example.com/", "document")
        ...     if result.success:
        ...         print(result.response.text)
    """
    stats = get_stats_tracker()
    request_kwargs: dict[str, Any] = {"headers": headers or {}}
    if timeout is not None:
        request_kwargs["timeout"] = timeout

    try:
        response = client.request(method, url, **request_kwargs)
        stats.record_http_request(kind, url, status_code=response.status_code)
        response.raise_for_status()
        return HTTPResult(success=True, response=response)

    except httpx.HTTPStatusError as e:
        return HTTPResult(
            success=False,
            response=e.response,
            error=f"HTTP {e.response.status_code}: {url}",
            error_type="http_error",
        )

    except Exception as e:
        return _request_failed(kind, url, e)


def safe_http_peek(
    client: httpx.Client,
    url: str,
    kind: str,
    limit: int,
    timeout: float | None = None,
    headers: dict[str, str] | None = None,
) -> HTTPResult:
    """
    GET at most the first `limit` bytes of a body.

    The response is streamed and closed as soon as `limit` bytes arrived, so
    a server that ignores Range cannot make us download the whole body. The
    bytes read are returned in HTTPResult.content. Errors are reported like
    safe_http_request().

    Args:
        client: Pooled HTTP client
        url: URL to request
        kind: Request kind for statistics
        limit: Maximum number of body bytes to read
        timeout: Per-request timeout override in seconds
        headers: Request headers

    Returns:
        HTTPResult with the body prefix or error information
    """
    stats = get_stats_tracker()
    request_kwargs: dict[str, Any] = {"headers": headers or {}}
    if timeout is not None:
        request_kwargs["timeout"] = timeout

    try:
        with client.stream("GET", url, **request_kwargs) as response:
            stats.record_http_request(kind, url, status_code=response.status_code)
            response.raise_for_status()

            data = bytearray()
            for chunk in response.iter_bytes():
                data.extend(chunk)
                if len(data) >= limit:
                    break

        return HTTPResult(success=True, response=response, content=bytes(data[:limit]))

    except httpx.HTTPStatusError as e:
        return HTTPResult(
            success=False,
            response=e.response,
            error=f"HTTP {e.response.status_code}: {url}",
            error_type="http_error",
        )

    except Exception as e:
        return _request_failed(kind, url, e)


def _request_failed(kind: str, url: str, e: Exception) -> HTTPResult:
    """Classify a request that produced no response."""
    stats = get_stats_tracker()

    if isinstance(e, httpx.TimeoutException):
        stats.record_http_request(kind, url, success=False, error="timeout")
        return HTTPResult(
            success=False,
            error=f"Timeout accessing {url}",
            error_type="timeout",
        )

    if isinstance(e, httpx.ConnectError):
        stats.record_http_request(kind, url, success=False, error=str(e))

        # Check if it's SSL-related error
        error_msg = str(e).lower()
        is_ssl_error = any(ssl_term in error_msg for ssl_term in ["ssl", "certificate", "tls"])

        if is_ssl_error:
            return HTTPResult(
                success=False,
                error=f"SSL error accessing {url}: {e}",
                error_type="ssl_error",
            )
        else:
            return HTTPResult(
                success=False,
                error=f"Connection error accessing {url}: {e}",
                error_type="connection_error",
            )

    stats.record_http_request(kind, url, success=False, error=str(e))
    return HTTPResult(
        success=False,
        error=f"Error accessing {url}: {e}",
        error_type="general",
    )


def safe_http_get(client: httpx.Client, url: str, kind: str, **kwargs: Any) -> HTTPResult:
    """GET wrapper around safe_http_request()."""
    return safe_http_request(client, "GET", url, kind, **kwargs)


def safe_http_head(client: httpx.Client, url: str, kind: str, **kwargs: Any) -> HTTPResult:
    """HEAD wrapper around safe_http_request()."""
    return safe_http_request(client, "HEAD", url, kind, **kwargs)
