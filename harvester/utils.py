"""
Utility Functions
Origin handling, link resolution and text helpers shared by the crawl stages.
"""

import logging
import re
from typing import List, Optional, Sequence, TypeVar
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)

T = TypeVar("T")

# BeautifulSoup parser used for every HTML document
HTML_PARSER = "lxml"

# File extensions that never point at an HTML page
SKIP_EXTENSIONS = (
    # images
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.svg', '.webp', '.ico',
    # fonts
    '.woff', '.woff2', '.ttf', '.eot', '.otf',
    # stylesheets / scripts
    '.css', '.js', '.mjs',
    # archives
    '.zip', '.rar', '.tar', '.gz', '.7z',
    # media
    '.mp3', '.mp4', '.avi', '.mov', '.wmv', '.flv', '.webm', '.wav',
    # data documents
    '.pdf', '.xml', '.json', '.csv', '.rss', '.atom',
    '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx',
)

_IGNORED_HREF_PREFIXES = ('javascript:', 'mailto:', 'tel:', 'data:', '#')

_DEFAULT_PORTS = {'http': 80, 'https': 443}


def origin_of(url: str) -> Optional[str]:
    """
    Return the origin (``scheme://host[:port]``) of a URL.

    Default ports are dropped so ``https://a.com:443`` and ``https://a.com``
    share an origin. Returns None for non-HTTP(S) or malformed URLs.
    """
    try:
        parsed = urlparse(url.strip())
        port = parsed.port
    except (ValueError, AttributeError):
        return None

    scheme = parsed.scheme.lower()
    if scheme not in ('http', 'https') or not parsed.hostname:
        return None

    host = parsed.hostname.lower()
    if ':' in host:
        host = f"[{host}]"
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def canonical_url(url: str) -> Optional[str]:
    """
    Rewrite an absolute URL into the form the crawl keys pages by.

    The origin is lowercased without its default port, an empty path
    becomes ``/`` and the fragment is dropped. The query is kept.
    Returns None when the URL is not absolute HTTP(S).
    """
    origin = origin_of(url)
    if origin is None:
        return None
    parsed = urlparse(url.strip())
    path = parsed.path or '/'
    return f"{origin}{path}?{parsed.query}" if parsed.query else f"{origin}{path}"


def is_same_origin(url: str, origin: str) -> bool:
    """Check whether *url* belongs to *origin*."""
    return origin_of(url) == origin


def has_skip_extension(path: str) -> bool:
    """True if the path ends in a known non-page file extension."""
    return path.lower().endswith(SKIP_EXTENSIONS)


def resolve_link(href: str, page_url: str, origin: str) -> Optional[str]:
    """
    Resolve an anchor ``href`` into a crawlable same-origin page URL.

    Args:
        href: Raw attribute value
        page_url: URL of the page the anchor was found on
        origin: Crawl origin the result must belong to

    Returns:
        Absolute URL with query and fragment stripped, or None if the link
        leaves the origin or points at a non-page resource
    """
    if not href:
        return None
    href = href.strip()
    if not href or href.lower().startswith(_IGNORED_HREF_PREFIXES):
        return None

    try:
        absolute = urljoin(page_url, href)
        parsed = urlparse(absolute)
    except ValueError:
        return None

    if not is_same_origin(absolute, origin):
        return None

    path = parsed.path or '/'
    if has_skip_extension(path):
        return None

    return f"{origin}{path}"


def clean_text(text: str) -> str:
    """Collapse runs of whitespace and newlines into single spaces."""
    if not text:
        return ""
    return re.sub(r'\s+', ' ', text).strip()


def chunk_list(items: Sequence[T], size: int) -> List[List[T]]:
    """Split *items* into consecutive lists of at most *size* elements."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1 (got {size})")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]
