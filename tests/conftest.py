"""Shared fixtures: an in-memory website behind a mocked httpx.Client."""

import io
from contextlib import contextmanager
from unittest.mock import Mock

import httpx
import pytest
from PIL import Image

from site_icon_tool.utils.debug_stats import get_stats_tracker


def make_image(fmt: str = "PNG", size: int = 16) -> bytes:
    """Encode a small solid image with Pillow."""
    buffer = io.BytesIO()
    Image.new("RGBA", (size, size), (255, 0, 0, 255)).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeSite:
    """
    Routes requests by exact URL to canned responses.

    Unknown URLs answer 404. A route can also be an exception instance, which
    is raised instead of answering.
    """

    def __init__(self):
        self.routes: dict[str, object] = {}
        self.calls: list[tuple[str, str, dict]] = []

    def add(
        self,
        url: str,
        content: bytes | str = b"",
        status: int = 200,
        content_type: str | None = None,
        final_url: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        route_headers = dict(headers or {})
        if content_type:
            route_headers["Content-Type"] = content_type
        self.routes[url] = {
            "status": status,
            "content": content,
            "headers": route_headers,
            "final_url": final_url or url,
        }

    def fail(self, url: str, error: Exception) -> None:
        self.routes[url] = error

    def request(self, method, url, headers=None, timeout=None):
        self.calls.append((method, url, dict(headers or {})))
        route = self.routes.get(url)

        if isinstance(route, Exception):
            raise route

        if route is None:
            route = {"status": 404, "content": b"Not Found", "headers": {}, "final_url": url}

        response_headers = dict(route["headers"])
        if method == "HEAD":
            response_headers.setdefault("Content-Length", str(len(route["content"])))
            content = b""
        else:
            content = route["content"]

        return httpx.Response(
            route["status"],
            headers=response_headers,
            content=content,
            request=httpx.Request(method, route["final_url"]),
        )

    @contextmanager
    def stream(self, method, url, headers=None, timeout=None):
        response = self.request(method, url, headers=headers, timeout=timeout)
        try:
            yield response
        finally:
            response.close()

    def urls_requested(self, method: str | None = None) -> list[str]:
        return [url for m, url, _ in self.calls if method is None or m == method]


@pytest.fixture
def site():
    """Empty fake website."""
    return FakeSite()


@pytest.fixture
def client(site):
    """httpx.Client mock answering from the fake website."""
    mock_client = Mock(spec=httpx.Client)
    mock_client.request.side_effect = site.request
    mock_client.stream.side_effect = site.stream
    return mock_client


@pytest.fixture
def png_bytes():
    return make_image("PNG")


@pytest.fixture
def ico_bytes():
    return make_image("ICO")


@pytest.fixture(autouse=True)
def reset_stats():
    """Keep the debug statistics singleton isolated between tests."""
    tracker = get_stats_tracker()
    tracker.disable()
    tracker.reset()
    yield
    tracker.disable()
    tracker.reset()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Drop SITE_ICON_* variables so configuration defaults apply."""
    import os

    for name in list(os.environ):
        if name.startswith("SITE_ICON_"):
            monkeypatch.delenv(name, raising=False)
