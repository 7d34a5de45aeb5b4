"""
Scraper Configuration
=====================
Single source of truth for every crawl default and runtime limit.

``ScraperConfig`` is immutable: one instance describes one crawl. The CLI,
environment variables and keyword overrides all populate the same object.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Tuple

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults, the only place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "max_pages": 50,
    "concurrency": 3,
    "timeout_seconds": 30.0,         # per request / per navigation
    "user_agent": "ChatbotScraper/1.0 (+https://example.com/bot)",
    "filter_login_pages": True,
    "filter_error_pages": True,
    "render_javascript": False,
    "batch_delay": 1.0,              # seconds between chunks
    "max_redirects": 5,
    "min_content_length": 50,        # chars of normalized text to keep a page
    "browser_memory_mb": 512,        # V8 heap ceiling for the headless browser
}

# Environment variables read by ``ScraperConfig.from_env``
_ENV_KEYS = {
    "max_pages": "HARVESTER_MAX_PAGES",
    "concurrency": "HARVESTER_CONCURRENCY",
    "timeout_seconds": "HARVESTER_TIMEOUT",
    "user_agent": "HARVESTER_USER_AGENT",
    "render_javascript": "HARVESTER_RENDER_JS",
    "batch_delay": "HARVESTER_BATCH_DELAY",
}


def _env_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")


@dataclass(frozen=True)
class ScraperConfig:
    """
    Per-crawl configuration.

    Populate via:
      - ``ScraperConfig()``                 → all defaults
      - ``ScraperConfig(max_pages=10)``     → override one value
      - ``ScraperConfig.from_env()``        → HARVESTER_* environment variables
      - ``ScraperConfig.from_cli_args(ns)`` → argparse Namespace
    """

    # ---- Crawl limits ----
    max_pages: int = _DEFAULTS["max_pages"]
    concurrency: int = _DEFAULTS["concurrency"]
    timeout_seconds: float = _DEFAULTS["timeout_seconds"]
    batch_delay: float = _DEFAULTS["batch_delay"]
    max_redirects: int = _DEFAULTS["max_redirects"]
    min_content_length: int = _DEFAULTS["min_content_length"]

    # ---- Identity ----
    user_agent: str = _DEFAULTS["user_agent"]

    # ---- Filtering ----
    filter_login_pages: bool = _DEFAULTS["filter_login_pages"]
    filter_error_pages: bool = _DEFAULTS["filter_error_pages"]
    custom_filter_patterns: Tuple[str, ...] = field(default_factory=tuple)

    # ---- Rendering ----
    render_javascript: bool = _DEFAULTS["render_javascript"]
    browser_memory_mb: int = _DEFAULTS["browser_memory_mb"]

    def __post_init__(self):
        # Accept any iterable of patterns but store an immutable tuple
        if not isinstance(self.custom_filter_patterns, tuple):
            object.__setattr__(
                self, "custom_filter_patterns", tuple(self.custom_filter_patterns or ())
            )

    # -----------------------------------------------------------------------
    # Derived values
    # -----------------------------------------------------------------------
    @property
    def timeout_ms(self) -> int:
        """Timeout in milliseconds, as the browser API expects it."""
        return int(self.timeout_seconds * 1000)

    @property
    def effective_concurrency(self) -> int:
        """Browser pages are serialized to keep memory bounded."""
        return 1 if self.render_javascript else self.concurrency

    def validate(self) -> "ScraperConfig":
        """Raise ``ValueError`` for limits that cannot produce a crawl."""
        if self.max_pages < 1:
            raise ValueError(f"max_pages must be >= 1 (got {self.max_pages})")
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1 (got {self.concurrency})")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0 (got {self.timeout_seconds})")
        if self.batch_delay < 0:
            raise ValueError(f"batch_delay must be >= 0 (got {self.batch_delay})")
        return self

    def with_overrides(self, **overrides) -> "ScraperConfig":
        """Return a copy with the given fields replaced (``None`` values ignored)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_env(cls, environ=None, **overrides) -> "ScraperConfig":
        """Build config from HARVESTER_* environment variables."""
        environ = os.environ if environ is None else environ
        values = {}
        for name, key in _ENV_KEYS.items():
            raw = environ.get(key)
            if raw is None or raw.strip() == "":
                continue
            default = _DEFAULTS[name]
            try:
                if isinstance(default, bool):
                    values[name] = _env_bool(raw)
                elif isinstance(default, int):
                    values[name] = int(raw)
                elif isinstance(default, float):
                    values[name] = float(raw)
                else:
                    values[name] = raw.strip()
            except ValueError:
                logger.warning(f"[CONFIG] Ignoring invalid {key}={raw!r}")
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def from_cli_args(cls, args, base: "ScraperConfig" = None) -> "ScraperConfig":
        """Build config from an argparse Namespace (``__main__.py``)."""
        base = base or cls()
        return base.with_overrides(
            max_pages=getattr(args, "pages", None),
            concurrency=getattr(args, "concurrency", None),
            timeout_seconds=getattr(args, "timeout", None),
            batch_delay=getattr(args, "delay", None),
            user_agent=getattr(args, "user_agent", None),
            render_javascript=True if getattr(args, "render_js", False) else None,
            filter_login_pages=False if getattr(args, "no_login_filter", False) else None,
            filter_error_pages=False if getattr(args, "no_error_filter", False) else None,
            custom_filter_patterns=tuple(getattr(args, "deny_pattern", None) or ()) or None,
        )

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self, url: str) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("SCRAPE RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  URL:              {url}")
        logger.info(f"  Max Pages:        {self.max_pages}")
        logger.info(f"  Concurrency:      {self.effective_concurrency}")
        logger.info(f"  Timeout:          {self.timeout_seconds}s per page")
        logger.info(f"  Batch Delay:      {self.batch_delay}s between chunks")
        logger.info(f"  Render JS:        {self.render_javascript}")
        logger.info(f"  Login Filter:     {self.filter_login_pages}")
        logger.info(f"  Error Filter:     {self.filter_error_pages}")
        if self.custom_filter_patterns:
            logger.info(f"  Custom Patterns:  {len(self.custom_filter_patterns)} configured")
        logger.info("=" * 60)
