"""
Harvester Exceptions
Errors that abort a whole crawl session. Per-page and per-source failures
are handled where they occur and never surface as exceptions.
"""


class HarvesterError(Exception):
    """Base class for crawl-level failures."""


class BrowserNotFoundError(HarvesterError):
    """
    JavaScript rendering was requested but no browser binary could be resolved.

    Raised while the crawl session is being opened, before any page is fetched.
    """

    def __init__(self, tried: list):
        self.tried = list(tried)
        locations = ", ".join(self.tried) if self.tried else "(none)"
        super().__init__(
            f"No headless browser executable found (tried: {locations}). "
            f"Set HARVESTER_BROWSER_PATH or run 'playwright install chromium'."
        )
