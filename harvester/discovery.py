"""
URL Discovery
Builds the ordered candidate list for a crawl: the seed, then sitemap
entries, then links harvested from the seed page when the sitemap falls
short of ``max_pages``.
"""

import logging
from typing import Dict, Iterable, List

from .links import LinkCrawler
from .session import CrawlSession
from .sitemap import SitemapReader

logger = logging.getLogger(__name__)


class URLDiscovery:
    """Combine the discovery sources into one deduplicated candidate list."""

    def __init__(
        self,
        session: CrawlSession,
        sitemap_reader: SitemapReader = None,
        link_crawler: LinkCrawler = None,
    ):
        self.session = session
        self.sitemap_reader = sitemap_reader or SitemapReader(session)
        self.link_crawler = link_crawler or LinkCrawler(session)

    async def collect(self, seed_url: str) -> List[str]:
        """
        Return at most ``max_pages`` candidate URLs in discovery order.

        Link crawling only runs when the seed plus sitemap entries leave
        room under the page limit.
        """
        max_pages = self.session.config.max_pages
        url_filter = self.session.url_filter
        candidates: Dict[str, None] = {}

        if not url_filter.is_useless(seed_url):
            candidates[seed_url] = None
        else:
            logger.info(f"[DISCOVERY] Seed URL matches a filter pattern: {seed_url}")

        sitemap_urls = await self.sitemap_reader.read()
        self._add(candidates, sitemap_urls)

        link_urls: List[str] = []
        if len(candidates) < max_pages:
            link_urls = await self.link_crawler.crawl(seed_url)
            self._add(candidates, link_urls, limit=max_pages)

        urls = list(candidates)[:max_pages]
        logger.info(
            f"[DISCOVERY] {len(urls)} URLs to scrape "
            f"(sitemap={len(sitemap_urls)}, links={len(link_urls)}, limit={max_pages})"
        )
        return urls

    def _add(self, candidates: Dict[str, None], urls: Iterable[str], limit: int = None) -> None:
        url_filter = self.session.url_filter
        for url in urls:
            if limit is not None and len(candidates) >= limit:
                break
            if url in candidates or url_filter.is_useless(url):
                continue
            candidates[url] = None
