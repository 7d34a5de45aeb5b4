"""
Website Scraper
===============
Top-level crawl orchestration for one seed URL::

    robots.txt → URL discovery (sitemap, seed links) → chunked page fetching

Usage::

    scraper = WebsiteScraper(ScraperConfig(max_pages=20))
    report = await scraper.crawl("https://example.com")

    # Or from sync code:
    pages = scrape("https://example.com", max_pages=20)
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

import requests

from .discovery import URLDiscovery
from .render import Renderer
from .run_config import ScraperConfig
from .scheduler import BatchScheduler
from .scraper import PageFetcher, ScrapedPage
from .session import FilterCounts, open_session
from .utils import canonical_url

logger = logging.getLogger(__name__)


@dataclass
class ScrapeReport:
    """Result of a crawl: the pages plus why everything else was left out."""
    pages: List[ScrapedPage] = field(default_factory=list)
    filtered: FilterCounts = field(default_factory=FilterCounts)
    stats: Dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'stats': self.stats,
            'filtered': self.filtered.to_dict(),
            'pages': [p.to_dict() for p in self.pages],
        }


def normalize_seed(url: str) -> str:
    """
    Validate the seed URL and put it in canonical form.

    Raises:
        ValueError: not an absolute HTTP(S) URL
    """
    seed = canonical_url(url or "")
    if seed is None:
        raise ValueError(f"Invalid seed URL: {url!r}")
    return seed


class WebsiteScraper:
    """
    Bounded single-origin crawler.

    Each call to :meth:`crawl` opens its own session, so one scraper object
    can be reused and concurrent crawls never share visited sets, counters
    or browser instances.
    """

    def __init__(
        self,
        config: ScraperConfig = None,
        http_session: Optional[requests.Session] = None,
        browser_factory: Optional[Callable[[ScraperConfig], Renderer]] = None,
    ):
        self.config = config or ScraperConfig()
        self.http_session = http_session
        self.browser_factory = browser_factory

    # ------------------------------------------------------------------
    # Sync entry point
    # ------------------------------------------------------------------

    def run(self, seed_url: str, max_pages: int = None) -> ScrapeReport:
        """Sync wrapper — run the async crawl from synchronous code."""
        return asyncio.run(self.crawl(seed_url, max_pages=max_pages))

    # ------------------------------------------------------------------
    # Main async crawl
    # ------------------------------------------------------------------

    async def crawl(self, seed_url: str, max_pages: int = None) -> ScrapeReport:
        """
        Crawl one origin starting at *seed_url*.

        1. Load robots.txt (fail-open)
        2. Discover candidates: seed, sitemap, seed-page links
        3. Fetch candidates in chunks until ``max_pages`` pages are kept

        Raises:
            ValueError: invalid seed URL or configuration
            BrowserNotFoundError: JS rendering requested without a browser
        """
        seed_url = normalize_seed(seed_url)
        config = self.config.with_overrides(max_pages=max_pages).validate()
        config.log_summary(seed_url)

        start_time = time.time()
        async with open_session(
            config,
            seed_url,
            http_session=self.http_session,
            browser_factory=self.browser_factory,
        ) as session:
            await session.robots.load(session.base_origin)

            urls = await URLDiscovery(session).collect(seed_url)

            scheduler = BatchScheduler(config, PageFetcher(session))
            pages = await scheduler.run(urls)

            elapsed = time.time() - start_time
            stats = {
                'urls_discovered': len(urls),
                'pages_scraped': len(pages),
                'page_fetches': session.fetch_count,
                'elapsed_time': round(elapsed, 2),
                'stop_reason': scheduler.stop_reason,
                'total_filtered': session.filtered.total,
            }
            filtered = session.filtered

        logger.info("=" * 65)
        logger.info("SCRAPE COMPLETE")
        logger.info(f"  Pages scraped:   {stats['pages_scraped']}/{stats['urls_discovered']} discovered")
        logger.info(
            f"  Filtered:        {filtered.total} "
            f"(status={filtered.status}, url={filtered.url}, content={filtered.content})"
        )
        logger.info(f"  Elapsed:         {stats['elapsed_time']:.1f}s")
        logger.info(f"  Stop reason:     {stats['stop_reason']}")
        logger.info("=" * 65)

        return ScrapeReport(pages=pages, filtered=filtered, stats=stats)

    # ------------------------------------------------------------------
    # Export helpers
    # ------------------------------------------------------------------

    def export_json(self, report: ScrapeReport, filepath: str) -> str:
        """Write ``report.to_dict()`` as JSON and return the absolute path."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
        return str(path.absolute())


# ---------------------------------------------------------------------------
# Convenience entry points
# ---------------------------------------------------------------------------

def scrape(
    seed_url: str,
    max_pages: int = 50,
    render_javascript: bool = False,
    **overrides,
) -> List[ScrapedPage]:
    """
    Scrape up to *max_pages* pages from the origin of *seed_url*.

    Extra keyword arguments override :class:`ScraperConfig` fields
    (``concurrency``, ``custom_filter_patterns``, ...). Environment
    defaults (``HARVESTER_*``) apply to anything not given here.
    """
    config = ScraperConfig.from_env(
        max_pages=max_pages,
        render_javascript=render_javascript,
        **overrides,
    )
    return WebsiteScraper(config).run(seed_url).pages


def scrape_website(url: str, max_pages: int = 50, **options) -> List[ScrapedPage]:
    """Scrape a website with default filtering; same as :func:`scrape`."""
    return scrape(url, max_pages=max_pages, **options)
