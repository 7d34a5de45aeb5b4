"""
Shared fixtures: an in-memory website served through a stand-in for
``requests.Session``, and a fake browser renderer.

Nothing here touches the network or launches a browser.
"""

import asyncio
import threading
from typing import Dict, List, Optional, Union

import pytest
import requests

from harvester.render import FetchedPage, HttpRenderer, Renderer
from harvester.run_config import ScraperConfig
from harvester.session import CrawlSession
from harvester.transport import HttpClient

ORIGIN = "https://example.com"

FILLER = (
    "This paragraph exists so that the page carries enough readable text "
    "to pass the minimum content length check."
)


def html_page(title: str = "Page", body: str = FILLER, links=(), head_extra: str = "") -> str:
    """Build a small HTML document with optional links in the body."""
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return (
        f"<html><head><title>{title}</title>{head_extra}</head>"
        f"<body><main><p>{body}</p>{anchors}</main></body></html>"
    )


def urlset(*urls: str) -> str:
    entries = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        f"{entries}</urlset>"
    )


def sitemap_index(*urls: str) -> str:
    entries = "".join(f"<sitemap><loc>{u}</loc></sitemap>" for u in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        f"{entries}</sitemapindex>"
    )


def make_response(url: str, body: Union[str, bytes] = "", status: int = 200,
                  content_type: str = "text/html; charset=utf-8") -> requests.Response:
    """Build a real ``requests.Response`` without any network."""
    response = requests.Response()
    response.status_code = status
    response._content = body.encode("utf-8") if isinstance(body, str) else body
    response.url = url
    response.encoding = "utf-8"
    response.reason = "OK" if status < 400 else "Error"
    response.headers["Content-Type"] = content_type
    return response


Served = Union[str, bytes, tuple, Exception]


class FakeSession:
    """
    Stand-in for ``requests.Session`` serving a fixed URL map.

    Values may be a body (200), a ``(status, body)`` tuple, or an exception
    instance to raise. Unknown URLs get a 404.
    """

    def __init__(self, routes: Optional[Dict[str, Served]] = None):
        self.routes: Dict[str, Served] = dict(routes or {})
        self.headers: Dict[str, str] = {}
        self.max_redirects = 30
        self.calls: List[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url, timeout=None, allow_redirects=True, **kwargs):
        with self._lock:
            self.calls.append(url)
        served = self.routes.get(url)
        if isinstance(served, Exception):
            raise served
        if served is None:
            return make_response(url, "<html><body>Not Found</body></html>", status=404)
        if isinstance(served, tuple):
            status, body = served
            return make_response(url, body, status=status)
        content_type = "application/xml" if url.endswith(".xml") else "text/html; charset=utf-8"
        return make_response(url, served, content_type=content_type)

    def count(self, url: str) -> int:
        return self.calls.count(url)

    def close(self):
        self.closed = True


class FakeBrowserRenderer(Renderer):
    """
    Browser stand-in serving HTML from a path map.

    Tracks start/close calls and the peak number of concurrent renders.
    """

    name = "fake-browser"
    instances: List["FakeBrowserRenderer"] = []

    def __init__(self, config, pages: Optional[Dict[str, str]] = None, fail_on=None):
        self.config = config
        self.pages = pages or {}
        self.fail_on = fail_on or {}
        self.starts = 0
        self.closes = 0
        self.rendered: List[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        FakeBrowserRenderer.instances.append(self)

    async def start(self):
        self.starts += 1

    async def render(self, url, timeout=None):
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            self.rendered.append(url)
            if url in self.fail_on:
                raise self.fail_on[url]
            return FetchedPage(url=url, html=self.pages.get(url, "<html><body></body></html>"))
        finally:
            self.in_flight -= 1

    async def close(self):
        self.closes += 1


def make_session(routes=None, config: ScraperConfig = None, seed: str = ORIGIN + "/"):
    """Build a CrawlSession over a FakeSession without opening a context."""
    config = config or ScraperConfig(batch_delay=0)
    fake = FakeSession(routes)
    http = HttpClient(config, session=fake)
    session = CrawlSession(config, seed, http, HttpRenderer(http))
    return session, fake


@pytest.fixture
def config():
    return ScraperConfig(batch_delay=0)


@pytest.fixture(autouse=True)
def _reset_fake_browsers():
    FakeBrowserRenderer.instances.clear()
    yield
    FakeBrowserRenderer.instances.clear()
