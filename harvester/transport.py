"""
HTTP Transport
Shared ``requests`` session for robots.txt, sitemaps and direct page fetches.
"""

import asyncio
import functools
import logging
from typing import Optional

import requests

from .run_config import ScraperConfig

logger = logging.getLogger(__name__)

# HTTP statuses that mark a page as filtered rather than merely failed
FILTERED_STATUS_CODES = frozenset({401, 403, 404})


def is_filtered_status(status: int) -> bool:
    """True for 404/401/403 and every 5xx status."""
    return status in FILTERED_STATUS_CODES or status >= 500


def create_session(config: ScraperConfig) -> requests.Session:
    """Create a configured requests session with the crawler's identity."""
    session = requests.Session()
    session.headers.update({
        'User-Agent': config.user_agent,
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.9',
    })
    session.max_redirects = config.max_redirects
    return session


class HttpClient:
    """
    Thin wrapper around a ``requests.Session``.

    Blocking calls are pushed onto the event loop's default executor so that
    a chunk of page fetches can be in flight at once.
    """

    def __init__(self, config: ScraperConfig, session: Optional[requests.Session] = None):
        self.config = config
        self._owns_session = session is None
        self.session = session if session is not None else create_session(config)

    def get(self, url: str, timeout: Optional[float] = None) -> requests.Response:
        """
        GET *url* following redirects (capped by the session).

        Raises:
            requests.RequestException: transport failures, redirect loops
        """
        return self.session.get(
            url,
            timeout=timeout or self.config.timeout_seconds,
            allow_redirects=True,
        )

    async def aget(self, url: str, timeout: Optional[float] = None) -> requests.Response:
        """Async variant of :meth:`get` running on the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self.get, url, timeout))

    def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._owns_session:
            self.session.close()
            logger.debug("[HTTP] Session closed")
