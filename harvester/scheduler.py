"""
Batch Scheduler
Runs the page fetcher over the candidate list in fixed-size chunks with a
pause between chunks, stopping as soon as enough pages have been scraped.
"""

import asyncio
import logging
from typing import List, Optional

from .run_config import ScraperConfig
from .scraper import PageFetcher, ScrapedPage
from .utils import chunk_list

logger = logging.getLogger(__name__)

STOP_EXHAUSTED = "exhausted"
STOP_MAX_PAGES = "max_pages"


class BatchScheduler:
    """
    Chunked concurrent dispatch.

    Chunk size is ``config.effective_concurrency`` (1 when pages are
    rendered in a browser). A page that raises is logged and dropped; it
    never cancels the rest of its chunk.
    """

    def __init__(self, config: ScraperConfig, fetcher: PageFetcher):
        self.config = config
        self.fetcher = fetcher
        self.stop_reason: Optional[str] = None
        self.chunks_dispatched = 0

    async def run(self, urls: List[str]) -> List[ScrapedPage]:
        max_pages = self.config.max_pages
        chunk_size = self.config.effective_concurrency
        chunks = chunk_list(urls, chunk_size)
        results: List[ScrapedPage] = []
        self.stop_reason = STOP_EXHAUSTED
        self.chunks_dispatched = 0

        logger.info(
            f"[BATCH] {len(urls)} URLs in {len(chunks)} chunks "
            f"(size={chunk_size}, limit={max_pages})"
        )

        for index, chunk in enumerate(chunks):
            if index > 0 and self.config.batch_delay > 0:
                await asyncio.sleep(self.config.batch_delay)

            self.chunks_dispatched += 1
            outcomes = await asyncio.gather(
                *(self.fetcher.fetch(url) for url in chunk),
                return_exceptions=True,
            )

            for url, outcome in zip(chunk, outcomes):
                if isinstance(outcome, BaseException):
                    logger.warning(f"[BATCH] Unexpected error on {url}: {outcome}")
                elif outcome is not None:
                    results.append(outcome)

            logger.debug(
                f"[BATCH] Chunk {index + 1}/{len(chunks)} done — {len(results)} pages so far"
            )

            if len(results) >= max_pages:
                results = results[:max_pages]
                self.stop_reason = STOP_MAX_PAGES
                logger.info(f"[BATCH] Reached max_pages={max_pages}, stopping")
                break

        return results
