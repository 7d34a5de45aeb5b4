#!/usr/bin/env python3
"""
Command-line interface for the website harvester.

All configuration flows through ``ScraperConfig``: ``HARVESTER_*``
environment variables (optionally from a ``.env`` file) provide the base,
command-line flags override them.

Run with: python -m harvester https://example.com
"""

import argparse
import logging
import sys
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv

from .crawler import WebsiteScraper, ScrapeReport
from .errors import HarvesterError
from .run_config import ScraperConfig

# Load .env from the project root, else the current directory
_env_path = Path(__file__).resolve().parent.parent / '.env'
if _env_path.exists():
    load_dotenv(_env_path)
else:
    load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)


def _base_name_from_url(url: str) -> str:
    """Derive a filesystem-safe base name from a URL."""
    parsed = urlparse(url)
    base = parsed.netloc.replace('.', '_').replace(':', '_')
    if parsed.path and parsed.path != '/':
        path_part = parsed.path.strip('/').replace('/', '_')[:30]
        base = f"{base}_{path_part}"
    return base


def print_summary(report: ScrapeReport):
    """Print scrape summary."""
    stats = report.stats
    filtered = report.filtered
    print("\n" + "=" * 65)
    print("SCRAPE COMPLETE")
    print("=" * 65)
    print(f"  URLs discovered:     {stats.get('urls_discovered', 0)}")
    print(f"  Pages scraped:       {stats.get('pages_scraped', 0)}")
    print(f"  Filtered (status):   {filtered.status}")
    print(f"  Filtered (url):      {filtered.url}")
    print(f"  Filtered (content):  {filtered.content}")
    print(f"  Total time:          {stats.get('elapsed_time', 0):.1f}s")
    print(f"  Stop reason:         {stats.get('stop_reason', 'exhausted')}")
    print("=" * 65)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='python -m harvester',
        description='Website harvester - bounded single-origin content scraper',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m harvester https://example.com
  python -m harvester https://example.com --pages 20 --output-json out.json
  python -m harvester https://spa.example.com --render-js --deny-pattern '/tag/'
        """
    )

    parser.add_argument('url', help='Seed URL to scrape')
    parser.add_argument('--pages', type=int, help='Maximum pages to return (default: 50)')
    parser.add_argument('--concurrency', type=int, help='Pages fetched per chunk (default: 3)')
    parser.add_argument('--timeout', type=float, help='Timeout per page in seconds (default: 30)')
    parser.add_argument('--delay', type=float, help='Delay between chunks in seconds (default: 1.0)')
    parser.add_argument('--user-agent', type=str, help='User-Agent header and robots.txt agent')
    parser.add_argument(
        '--render-js', action='store_true',
        help='Render pages in headless Chromium (forces concurrency to 1)',
    )
    parser.add_argument(
        '--deny-pattern', type=str, action='append', default=[],
        help='Regex deny-pattern for URLs (repeatable)',
    )
    parser.add_argument('--no-login-filter', action='store_true', help='Keep login/sign-up pages')
    parser.add_argument('--no-error-filter', action='store_true', help='Keep error pages')
    parser.add_argument('--output-json', type=str, help='JSON output file path')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def run_cli_with_args(argv=None) -> int:
    """Parse argv, build ScraperConfig, run. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    url = args.url
    if not url.startswith(('http://', 'https://')):
        url = 'https://' + url

    try:
        cfg = ScraperConfig.from_cli_args(args, base=ScraperConfig.from_env())
        scraper = WebsiteScraper(cfg)
        report = scraper.run(url)
    except (ValueError, HarvesterError) as e:
        logger.error(f"Scrape failed: {e}")
        return 1

    output = args.output_json or f"{_base_name_from_url(url)}.json"
    path = scraper.export_json(report, output)
    print("\n" + "-" * 40)
    print(f"  Exported: {path}")
    print("-" * 40)

    print_summary(report)
    return 0


if __name__ == '__main__':
    sys.exit(run_cli_with_args())
