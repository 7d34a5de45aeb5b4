"""
Crawl Session
Per-invocation state: origin, visited set, filter counters, robots gate and
the render handle. A session is created fresh for every ``scrape`` call and
never shared, so concurrent crawls stay independent.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import AsyncIterator, Callable, Dict, Optional, Set, Union

import requests

from .filters import UrlPatternFilter
from .render import BrowserRenderer, FetchedPage, HttpRenderer, Renderer
from .robots import RobotsGate
from .run_config import ScraperConfig
from .transport import HttpClient
from .utils import origin_of

logger = logging.getLogger(__name__)


@dataclass
class FilterCounts:
    """How many pages were intentionally excluded, by reason."""
    status: int = 0     # HTTP 404/401/403/5xx or non-2xx
    url: int = 0        # robots.txt or URL pattern
    content: int = 0    # login / error page detected in the HTML

    @property
    def total(self) -> int:
        return self.status + self.url + self.content

    def to_dict(self) -> dict:
        return asdict(self)


class CrawlSession:
    """
    Mutable state owned by exactly one crawl.

    Use :func:`open_session` rather than constructing directly; it guarantees
    the render handle and HTTP session are released on every exit path.
    """

    def __init__(
        self,
        config: ScraperConfig,
        seed_url: str,
        http: HttpClient,
        renderer: Renderer,
        render_handle: Optional[Renderer] = None,
    ):
        self.config = config
        self.seed_url = seed_url
        self.base_origin = origin_of(seed_url)
        self.http = http
        self.renderer = renderer
        self.render_handle = render_handle

        self.robots = RobotsGate(http, config.user_agent)
        self.url_filter = UrlPatternFilter(config)

        self.visited: Set[str] = set()
        self.filtered = FilterCounts()
        self.fetch_count = 0

        self._prefetched: Dict[str, Union[FetchedPage, Exception]] = {}
        self._visited_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Visited bookkeeping
    # ------------------------------------------------------------------

    def is_visited(self, url: str) -> bool:
        return url in self.visited

    async def mark_visited(self, url: str) -> bool:
        """Claim *url* for fetching. Returns False if it was already claimed."""
        async with self._visited_lock:
            if url in self.visited:
                return False
            self.visited.add(url)
            return True

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def remember(self, page: FetchedPage) -> None:
        """Keep HTML fetched during discovery so the page is not fetched again."""
        self._prefetched[page.url] = page

    def remember_failure(self, url: str, error: Exception) -> None:
        """Keep a failed discovery fetch; the next :meth:`fetch` re-raises it."""
        self._prefetched[url] = error

    async def fetch(self, url: str) -> FetchedPage:
        """Return HTML for *url*, from the discovery cache or the renderer."""
        cached = self._prefetched.pop(url, None)
        if cached is not None:
            logger.debug(f"[SESSION] Reusing discovery fetch for {url}")
            if isinstance(cached, Exception):
                raise cached
            return cached
        self.fetch_count += 1
        return await self.renderer.render(url)

    # ------------------------------------------------------------------
    # Filter accounting
    # ------------------------------------------------------------------

    def count_filtered(self, kind: str, url: str, reason: str) -> None:
        """Increment the *kind* counter (``status``/``url``/``content``) and log why."""
        setattr(self.filtered, kind, getattr(self.filtered, kind) + 1)
        logger.debug(f"[FILTER] {kind}: {url} ({reason})")


@asynccontextmanager
async def open_session(
    config: ScraperConfig,
    seed_url: str,
    http_session: Optional[requests.Session] = None,
    browser_factory: Optional[Callable[[ScraperConfig], Renderer]] = None,
) -> AsyncIterator[CrawlSession]:
    """
    Open a crawl session and release its resources on exit.

    When ``config.render_javascript`` is set, one browser renderer is built
    with *browser_factory* (default :class:`BrowserRenderer`), started once
    and closed once, whether the crawl succeeds, a page fails, or an
    exception escapes.

    Raises:
        BrowserNotFoundError: rendering requested but no browser binary found
    """
    http = HttpClient(config, session=http_session)
    render_handle: Optional[Renderer] = None
    try:
        if config.render_javascript:
            render_handle = (browser_factory or BrowserRenderer)(config)
            await render_handle.start()
            renderer = render_handle
        else:
            renderer = HttpRenderer(http)

        session = CrawlSession(config, seed_url, http, renderer, render_handle=render_handle)
        logger.info(f"[SESSION] Opened for {session.base_origin} (renderer={renderer.name})")
        yield session
        logger.info(
            f"[SESSION] Closing for {session.base_origin} "
            f"(visited={len(session.visited)}, fetches={session.fetch_count})"
        )
    finally:
        if render_handle is not None:
            await render_handle.close()
        http.close()
