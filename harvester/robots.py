"""
Robots.txt Gate
Fetches and parses robots.txt for the crawl origin and answers per-URL
permission checks. Fail-open: any problem loading the file means
"no known restriction", never "deny all".
"""

import logging
from typing import Optional
from urllib.robotparser import RobotFileParser

import requests

from .transport import HttpClient

logger = logging.getLogger(__name__)


class RobotsGate:
    """
    Robots exclusion rules for a single origin.

    ``load`` must be awaited once per crawl; until then every URL is allowed.
    """

    def __init__(self, client: HttpClient, user_agent: str):
        self.client = client
        self.user_agent = user_agent
        self.ruleset: Optional[RobotFileParser] = None

    @staticmethod
    def robots_url(origin: str) -> str:
        return f"{origin.rstrip('/')}/robots.txt"

    async def load(self, origin: str) -> Optional[RobotFileParser]:
        """
        Best-effort fetch of ``{origin}/robots.txt``.

        Args:
            origin: Crawl origin (``scheme://host[:port]``)

        Returns:
            The parsed ruleset, or None if nothing usable was found
        """
        robots_url = self.robots_url(origin)
        self.ruleset = None

        try:
            logger.info(f"[ROBOTS] Fetching {robots_url}")
            response = await self.client.aget(robots_url)
        except requests.RequestException as e:
            logger.info(f"[ROBOTS] Could not fetch {robots_url}: {e} — no restrictions assumed")
            return None

        if response.status_code != 200:
            logger.info(
                f"[ROBOTS] No robots.txt for {origin} "
                f"(status: {response.status_code}) — no restrictions assumed"
            )
            return None

        try:
            rp = RobotFileParser()
            rp.set_url(robots_url)
            rp.parse(response.text.splitlines())
        except Exception as e:
            logger.warning(f"[ROBOTS] Unparseable robots.txt at {robots_url}: {e}")
            return None

        self.ruleset = rp
        logger.info(f"[ROBOTS] Parsed robots.txt for {origin}")
        return rp

    def is_allowed(self, url: str, agent: Optional[str] = None) -> bool:
        """
        True unless the loaded ruleset explicitly disallows *url* for *agent*.

        Args:
            url: Absolute URL to check
            agent: User agent to check for (default: the crawler's own)
        """
        if self.ruleset is None:
            return True

        try:
            allowed = self.ruleset.can_fetch(agent or self.user_agent, url)
        except Exception as e:
            logger.debug(f"[ROBOTS] Check failed for {url}: {e} — allowing")
            return True

        if not allowed:
            logger.debug(f"[ROBOTS] Blocked by robots.txt: {url}")
        return allowed
