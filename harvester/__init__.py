"""
Website Harvester Package
Bounded single-origin crawler that turns a website into clean text pages
for a knowledge base.

CLI Usage:
    python -m harvester <url> [options]

    Options:
        --pages          Maximum pages to return (default: 50)
        --concurrency    Pages fetched per chunk (default: 3)
        --timeout        Per-page timeout in seconds (default: 30)
        --delay          Delay between chunks (default: 1.0)
        --render-js      Render pages in headless Chromium
        --deny-pattern   Regex deny-pattern for URLs (repeatable)
        --output-json    Export to JSON file
"""

from .crawler import WebsiteScraper, ScrapeReport, scrape, scrape_website
from .scraper import PageFetcher, ScrapedPage
from .session import CrawlSession, FilterCounts, open_session
from .robots import RobotsGate
from .sitemap import SitemapReader
from .links import LinkCrawler
from .discovery import URLDiscovery
from .scheduler import BatchScheduler
from .render import BrowserRenderer, HttpRenderer, Renderer, resolve_browser_executable
from .filters import UrlPatternFilter, is_error_page, is_login_page
from .run_config import ScraperConfig
from .errors import BrowserNotFoundError, HarvesterError

__all__ = [
    'WebsiteScraper',
    'ScrapeReport',
    'scrape',
    'scrape_website',
    'PageFetcher',
    'ScrapedPage',
    'CrawlSession',
    'FilterCounts',
    'open_session',
    # Discovery
    'RobotsGate',
    'SitemapReader',
    'LinkCrawler',
    'URLDiscovery',
    'BatchScheduler',
    # Rendering
    'Renderer',
    'HttpRenderer',
    'BrowserRenderer',
    'resolve_browser_executable',
    # Filtering
    'UrlPatternFilter',
    'is_login_page',
    'is_error_page',
    'ScraperConfig',
    'BrowserNotFoundError',
    'HarvesterError',
]

__version__ = '1.0.0'
