"""
Sitemap Reader
Discovers page URLs from ``sitemap.xml`` / ``sitemap_index.xml`` at the
crawl origin, following one level of sitemap-index nesting.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Iterator, List

import requests

from .session import CrawlSession
from .utils import canonical_url, is_same_origin

logger = logging.getLogger(__name__)


def _local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix sitemaps put on every tag."""
    return tag.rsplit('}', 1)[-1] if tag.startswith('{') else tag


def _iter_locs(root: ET.Element, entry_tag: str) -> Iterator[str]:
    """Yield ``<loc>`` text of every ``<entry_tag>`` directly under *root*."""
    for entry in root:
        if _local_name(entry.tag) != entry_tag:
            continue
        for child in entry:
            if _local_name(child.tag) == 'loc' and child.text and child.text.strip():
                yield child.text.strip()
                break


class SitemapReader:
    """
    Reads sitemap URLs for the session's origin.

    Candidates are tried in order and reading stops at the first one that
    yields any URL; results from different candidates are never merged.
    Every failure is swallowed so discovery can fall through to link crawling.
    """

    CANDIDATES = ('sitemap.xml', 'sitemap_index.xml')

    def __init__(self, session: CrawlSession):
        self.session = session

    async def read(self) -> List[str]:
        """Return allowed, non-useless same-origin URLs from the first usable sitemap."""
        origin = self.session.base_origin
        for name in self.CANDIDATES:
            sitemap_url = f"{origin}/{name}"
            try:
                urls = await self._read_source(sitemap_url)
            except (requests.RequestException, ET.ParseError) as e:
                logger.debug(f"[SITEMAP] {sitemap_url} unavailable: {e}")
                continue

            if urls:
                logger.info(f"[SITEMAP] {sitemap_url} → {len(urls)} URLs")
                return urls
            logger.debug(f"[SITEMAP] {sitemap_url} yielded no usable URLs")

        logger.info(f"[SITEMAP] No sitemap URLs found for {origin}")
        return []

    async def _fetch_xml(self, url: str) -> ET.Element:
        response = await self.session.http.aget(url)
        response.raise_for_status()
        return ET.fromstring(response.content)

    async def _read_source(self, sitemap_url: str) -> List[str]:
        root = await self._fetch_xml(sitemap_url)
        kind = _local_name(root.tag)

        if kind == 'sitemapindex':
            urls: List[str] = []
            for child_url in _iter_locs(root, 'sitemap'):
                urls.extend(await self._read_child(child_url))
            return list(dict.fromkeys(urls))

        if kind == 'urlset':
            return list(dict.fromkeys(self._accepted(_iter_locs(root, 'url'))))

        logger.debug(f"[SITEMAP] {sitemap_url} has unexpected root <{kind}>")
        return []

    async def _read_child(self, child_url: str) -> List[str]:
        """Read one sitemap listed in an index. Nested indexes are not followed."""
        try:
            root = await self._fetch_xml(child_url)
        except (requests.RequestException, ET.ParseError) as e:
            logger.debug(f"[SITEMAP] Child sitemap {child_url} unavailable: {e}")
            return []

        if _local_name(root.tag) != 'urlset':
            logger.debug(f"[SITEMAP] Child sitemap {child_url} is not a urlset — skipped")
            return []

        return self._accepted(_iter_locs(root, 'url'))

    def _accepted(self, urls) -> List[str]:
        session = self.session
        kept = []
        for raw in urls:
            url = canonical_url(raw)
            if url is None or not is_same_origin(url, session.base_origin):
                logger.debug(f"[SITEMAP] Off-origin entry skipped: {raw}")
                continue
            if not session.robots.is_allowed(url):
                continue
            if session.url_filter.is_useless(url):
                continue
            kept.append(url)
        return kept
