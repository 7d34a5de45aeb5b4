"""
Page Fetcher
Fetches one candidate URL, applies status / URL / content filters and
extracts the page's main text.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional

import requests
from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError

from .filters import is_error_page, is_login_page
from .session import CrawlSession
from .transport import is_filtered_status
from .utils import HTML_PARSER, clean_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScrapedPage:
    """A page that survived every filter. The only artifact a crawl returns."""
    url: str
    title: str
    content: str

    def to_dict(self) -> dict:
        return asdict(self)


class PageFetcher:
    """
    Turns a candidate URL into a ``ScrapedPage`` or ``None``.

    All per-crawl state (visited set, counters, renderer) lives on the
    session, so one fetcher serves a whole crawl.
    """

    # Non-content elements removed before anything is read from the page
    STRIP_SELECTORS = (
        'script', 'style', 'nav', 'header', 'footer', 'iframe', 'noscript', 'svg',
        '.navigation', '.sidebar', '.menu', '.cookie-banner', '.ad', '.advertisement',
    )

    # Tried in order; the first selector with text wins, else the whole body
    MAIN_CONTENT_SELECTORS = (
        'main',
        'article',
        '[role="main"]',
        '.content',
        '.main-content',
        '#content',
        '#main',
    )

    def __init__(self, session: CrawlSession):
        self.session = session
        self.config = session.config

    async def fetch(self, url: str) -> Optional[ScrapedPage]:
        """
        Fetch and extract *url*.

        Returns:
            ScrapedPage, or None if the URL was already visited, filtered,
            failed to load, or had too little content
        """
        session = self.session

        if session.is_visited(url):
            return None

        if not session.robots.is_allowed(url):
            session.count_filtered("url", url, "robots.txt")
            return None

        reason = session.url_filter.reason(url)
        if reason:
            session.count_filtered("url", url, f"url_pattern:{reason}")
            return None

        if not await session.mark_visited(url):
            return None

        try:
            fetched = await session.fetch(url)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status is not None and is_filtered_status(status):
                session.count_filtered("status", url, f"http_error:{status}")
            else:
                logger.info(f"[FETCH] Dropped {url}: {e}")
            return None
        except requests.RequestException as e:
            logger.info(f"[FETCH] Request failed for {url}: {e}")
            return None
        except PlaywrightError as e:
            logger.info(f"[FETCH] Render failed for {url}: {e}")
            return None

        if fetched.status_code is not None and not 200 <= fetched.status_code < 300:
            session.count_filtered("status", url, f"http_status:{fetched.status_code}")
            return None

        return self.extract(url, fetched.html)

    def extract(self, url: str, html: str) -> Optional[ScrapedPage]:
        """Apply content filters to fetched HTML and pull out the main text."""
        soup = BeautifulSoup(html or "", HTML_PARSER)
        self._remove_unwanted_elements(soup)

        title = self._extract_title(soup) or url

        if self.config.filter_login_pages and is_login_page(soup, title):
            self.session.count_filtered("content", url, f"login_page title='{title[:60]}'")
            return None

        if self.config.filter_error_pages and is_error_page(soup, title):
            self.session.count_filtered("content", url, f"error_page title='{title[:60]}'")
            return None

        content = self._extract_main_content(soup)
        if len(content) < self.config.min_content_length:
            logger.info(f"[FETCH] Skipping {url}: insufficient content ({len(content)} chars)")
            return None

        logger.info(f"[FETCH] {url[:70]} — title='{title[:50]}', chars={len(content):,}")
        return ScrapedPage(url=url, title=title, content=content)

    # ------------------------------------------------------------------
    # Extraction helpers
    # ------------------------------------------------------------------

    def _remove_unwanted_elements(self, soup: BeautifulSoup) -> None:
        for selector in self.STRIP_SELECTORS:
            for element in soup.select(selector):
                element.extract()

    def _extract_title(self, soup: BeautifulSoup) -> str:
        title_tag = soup.find('title')
        if title_tag is not None:
            title = clean_text(title_tag.get_text())
            if title:
                return title

        h1 = soup.find('h1')
        if h1 is not None:
            return clean_text(h1.get_text())

        return ""

    def _extract_main_content(self, soup: BeautifulSoup) -> str:
        for selector in self.MAIN_CONTENT_SELECTORS:
            elements = soup.select(selector)
            if not elements:
                continue
            # Skip matches nested inside another match to avoid double text
            matched = {id(el) for el in elements}
            outermost = [
                el for el in elements
                if not any(id(parent) in matched for parent in el.parents)
            ]
            text = clean_text(' '.join(el.get_text(' ') for el in outermost))
            if text:
                return text

        body = soup.body or soup
        return clean_text(body.get_text(' '))
