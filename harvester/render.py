"""
Render Engines
==============
Pluggable page sources behind one interface::

    await renderer.start()
    page = await renderer.render(url, timeout)   # -> FetchedPage
    await renderer.close()

- ``HttpRenderer``    — direct HTTP via the shared ``requests`` session
- ``BrowserRenderer`` — headless Chromium via async Playwright; one browser
  per crawl session, one fresh page per URL

The crawl picks one of them from ``ScraperConfig.render_javascript``; the
fetch path never branches on that flag itself.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import List, Mapping, NamedTuple, Optional

from playwright.async_api import Browser, Route, async_playwright

from .errors import BrowserNotFoundError
from .run_config import ScraperConfig
from .transport import HttpClient

logger = logging.getLogger(__name__)


# Resource types aborted before navigation
BLOCKED_RESOURCE_TYPES = frozenset(["image", "font", "media"])

# Explicit browser overrides, checked in order
BROWSER_PATH_ENV_VARS = ("HARVESTER_BROWSER_PATH", "CHROME_EXECUTABLE_PATH")

# Well-known install locations, checked after the bundled Playwright browser
WELL_KNOWN_BROWSER_PATHS = (
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/bin/google-chrome-stable",
    "/usr/bin/google-chrome",
    "/snap/bin/chromium",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    r"C:\Program Files\Google\Chrome\Application\chrome.exe",
    r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
)


class FetchedPage(NamedTuple):
    """Raw HTML for one URL. ``status_code`` is None when the engine has none."""
    url: str
    html: str
    status_code: Optional[int] = None


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------

class Renderer(ABC):
    """A source of page HTML for a crawl session."""

    name = "renderer"

    async def start(self) -> None:
        """Acquire expensive resources. Called once per session."""

    @abstractmethod
    async def render(self, url: str, timeout: Optional[float] = None) -> FetchedPage:
        """
        Return the HTML for *url*.

        Args:
            url: Absolute URL
            timeout: Seconds before giving up (default: configured timeout)
        """

    async def close(self) -> None:
        """Release resources. Must be safe to call more than once."""


# ---------------------------------------------------------------------------
# Direct HTTP
# ---------------------------------------------------------------------------

class HttpRenderer(Renderer):
    """Fetch raw server HTML without executing scripts."""

    name = "http"

    def __init__(self, client: HttpClient):
        self.client = client

    async def render(self, url: str, timeout: Optional[float] = None) -> FetchedPage:
        """
        Raises:
            requests.HTTPError: 4xx / 5xx responses (carries ``.response``)
            requests.RequestException: timeouts, connection errors
        """
        response = await self.client.aget(url, timeout)
        response.raise_for_status()
        return FetchedPage(url=url, html=response.text, status_code=response.status_code)


# ---------------------------------------------------------------------------
# Headless browser
# ---------------------------------------------------------------------------

def resolve_browser_executable(
    bundled_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Locate a Chromium-compatible executable.

    Order: environment override → bundled Playwright browser → well-known
    OS install paths.

    Raises:
        BrowserNotFoundError: nothing usable was found
    """
    environ = os.environ if environ is None else environ
    tried: List[str] = []

    for key in BROWSER_PATH_ENV_VARS:
        candidate = (environ.get(key) or "").strip()
        if not candidate:
            continue
        tried.append(candidate)
        if os.path.isfile(candidate):
            logger.info(f"[RENDER] Using browser from ${key}: {candidate}")
            return candidate
        logger.warning(f"[RENDER] ${key} points at a missing file: {candidate}")

    if bundled_path:
        tried.append(bundled_path)
        if os.path.isfile(bundled_path):
            logger.info(f"[RENDER] Using bundled browser: {bundled_path}")
            return bundled_path

    for candidate in WELL_KNOWN_BROWSER_PATHS:
        tried.append(candidate)
        if os.path.isfile(candidate):
            logger.info(f"[RENDER] Using system browser: {candidate}")
            return candidate

    raise BrowserNotFoundError(tried)


def browser_launch_args(config: ScraperConfig) -> List[str]:
    """Chromium flags for container execution with a bounded memory ceiling."""
    return [
        '--no-sandbox',
        '--disable-setuid-sandbox',
        '--disable-dev-shm-usage',
        '--disable-gpu',
        '--disable-extensions',
        '--disable-background-networking',
        '--no-first-run',
        f'--js-flags=--max-old-space-size={config.browser_memory_mb}',
    ]


async def _block_heavy_resources(route: Route) -> None:
    """Abort images, fonts and media; let everything else through."""
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class BrowserRenderer(Renderer):
    """
    Render pages with headless Chromium.

    One browser is launched per crawl session so start-up cost is paid once;
    every URL gets its own page object, closed on every exit path, so no
    state bleeds between pages.
    """

    name = "browser"

    def __init__(self, config: ScraperConfig, executable_path: Optional[str] = None):
        self.config = config
        self.executable_path = executable_path
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._closed = False
        self.pages_rendered = 0

    @property
    def is_open(self) -> bool:
        return self._browser is not None and not self._closed

    async def start(self) -> None:
        """
        Launch the browser.

        Raises:
            BrowserNotFoundError: no executable could be resolved
        """
        self._playwright = await async_playwright().start()
        try:
            path = self.executable_path or resolve_browser_executable(
                bundled_path=self._bundled_executable()
            )
            self._browser = await self._playwright.chromium.launch(
                executable_path=path,
                headless=True,
                args=browser_launch_args(self.config),
            )
        except BaseException:
            await self.close()
            raise
        logger.info(
            f"[RENDER] Headless browser launched "
            f"(memory cap={self.config.browser_memory_mb}MB, "
            f"blocking={','.join(sorted(BLOCKED_RESOURCE_TYPES))})"
        )

    def _bundled_executable(self) -> Optional[str]:
        try:
            return self._playwright.chromium.executable_path
        except Exception as e:
            logger.debug(f"[RENDER] No bundled browser path: {e}")
            return None

    async def render(self, url: str, timeout: Optional[float] = None) -> FetchedPage:
        """
        Navigate to *url*, wait for network activity to settle and return
        the rendered DOM.

        Rendered pages are judged on their content; the main document's
        HTTP status is not reported.

        Raises:
            RuntimeError: renderer not started or already closed
            playwright.async_api.TimeoutError: navigation exceeded *timeout*
        """
        if not self.is_open:
            raise RuntimeError("Browser renderer is not running")

        timeout_ms = int(timeout * 1000) if timeout else self.config.timeout_ms
        page = await self._browser.new_page(user_agent=self.config.user_agent)
        try:
            await page.route("**/*", _block_heavy_resources)
            await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            html = await page.content()
            self.pages_rendered += 1
            return FetchedPage(url=url, html=html, status_code=None)
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.debug(f"[RENDER] Page close failed for {url}: {e}")

    async def close(self) -> None:
        """Close the browser and stop Playwright (idempotent)."""
        if self._closed:
            return
        self._closed = True

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug(f"[RENDER] Browser close failed: {e}")
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"[RENDER] Playwright stop failed: {e}")
            self._playwright = None

        logger.info(f"[RENDER] Headless browser closed ({self.pages_rendered} pages rendered)")
