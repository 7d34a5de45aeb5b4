"""
Link Crawler
Harvests same-origin page links from the seed page. Used to top up the
candidate list when the sitemap alone does not reach ``max_pages``.
"""

import logging
from typing import List

import requests
from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError

from .session import CrawlSession
from .utils import HTML_PARSER, resolve_link

logger = logging.getLogger(__name__)


class LinkCrawler:
    """Fetch one page through the session renderer and collect its links."""

    def __init__(self, session: CrawlSession):
        self.session = session

    async def crawl(self, start_url: str) -> List[str]:
        """
        Return crawlable links found on *start_url*.

        The fetch outcome, page or error, is kept on the session so the seed
        is not requested a second time when it is scraped. Any failure yields
        an empty list.
        """
        session = self.session

        if not session.robots.is_allowed(start_url):
            logger.info(f"[LINKS] Seed page disallowed by robots.txt: {start_url}")
            return []

        try:
            fetched = await session.fetch(start_url)
        except (requests.RequestException, PlaywrightError) as e:
            logger.debug(f"[LINKS] Failed to crawl for links on {start_url}: {e}")
            session.remember_failure(start_url, e)
            return []

        if fetched.status_code is not None and not 200 <= fetched.status_code < 300:
            logger.debug(f"[LINKS] {start_url} returned {fetched.status_code} — no links")
            session.remember(fetched)
            return []

        session.remember(fetched)
        links = self.extract_links(fetched.html, start_url)
        logger.info(f"[LINKS] {start_url} → {len(links)} candidate links")
        return links

    def extract_links(self, html: str, page_url: str) -> List[str]:
        """
        Resolve every ``<a href>`` on the page and keep same-origin page
        links that robots.txt and the URL filters allow.
        """
        session = self.session
        soup = BeautifulSoup(html or "", HTML_PARSER)

        # Honour <base href> when the page declares one
        base_url = page_url
        base_tag = soup.find('base', href=True)
        if base_tag is not None:
            base_url = resolve_link(base_tag['href'], page_url, session.base_origin) or page_url

        links: List[str] = []
        seen = set()
        for anchor in soup.find_all('a', href=True):
            url = resolve_link(anchor['href'], base_url, session.base_origin)
            if url is None or url in seen:
                continue
            seen.add(url)

            if not session.robots.is_allowed(url):
                continue
            if session.url_filter.is_useless(url):
                continue
            links.append(url)

        return links
