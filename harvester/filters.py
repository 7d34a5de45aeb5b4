"""
Page Filters
============
Rule tables and predicates that keep non-informative pages out of the
knowledge base.

Two families of rules:

- **URL rules** (``UrlPatternFilter``) run before any network fetch and look
  only at the URL path: login/auth screens, error pages, and caller-supplied
  regex patterns.
- **Content rules** (``is_login_page`` / ``is_error_page``) run on the parsed
  page: title keywords, login forms, short error boilerplate.

Every rule list is a module-level tuple so each entry can be tested alone and
extended through configuration.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .run_config import ScraperConfig

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------
# URL rule tables (matched against the lower-cased path)
# -----------------------------------------------------------------------

LOGIN_PATH_PATTERNS = tuple(re.compile(p, re.IGNORECASE) for p in (
    r"/login",
    r"/signin",
    r"/sign-in",
    r"/auth",
    r"/authentication",
    r"/logout",
    r"/signout",
    r"/sign-out",
    r"/register",
    r"/signup",
    r"/sign-up",
    r"/forgot-password",
    r"/reset-password",
    r"/password-reset",
    r"/password/reset",
    r"/admin/login",
    r"/wp-admin",
    r"/wp-login",
))

ERROR_PATH_PATTERNS = tuple(re.compile(p, re.IGNORECASE) for p in (
    r"/404",
    r"/error",
    r"/not-found",
    r"/500",
    r"/503",
    r"/unauthorized",
    r"/forbidden",
))


# -----------------------------------------------------------------------
# Content rule tables (matched against lower-cased text)
# -----------------------------------------------------------------------

LOGIN_TITLE_KEYWORDS = (
    "login",
    "sign in",
    "sign-in",
    "sign up",
    "sign-up",
    "register",
    "authentication",
    "log in",
)

# Text inside a form holding a password field that marks it as a login form
LOGIN_FORM_KEYWORDS = (
    "login",
    "sign in",
    "email",
    "username",
)

ERROR_TITLE_KEYWORDS = (
    "404",
    "not found",
    "page not found",
    "error",
    "unauthorized",
    "forbidden",
    "server error",
    "500",
    "503",
)

ERROR_BODY_PHRASES = (
    "404",
    "not found",
    "page not found",
    "error occurred",
    "something went wrong",
    "unauthorized access",
    "access denied",
    "forbidden",
    "internal server error",
)

# Body text at or above this length is treated as a real page even when it
# mentions an error phrase
ERROR_BODY_MAX_LENGTH = 200


# -----------------------------------------------------------------------
# URL pattern filter
# -----------------------------------------------------------------------

class UrlPatternFilter:
    """
    Decides whether a URL is "useless" before it is ever fetched.

    Custom patterns are compiled once; invalid regexes are logged and
    skipped rather than failing the crawl.
    """

    def __init__(self, config: ScraperConfig):
        self.filter_login_pages = config.filter_login_pages
        self.filter_error_pages = config.filter_error_pages
        self._custom: List[re.Pattern] = []
        for pat in config.custom_filter_patterns:
            try:
                self._custom.append(re.compile(pat, re.IGNORECASE))
            except re.error as exc:
                logger.warning(f"[FILTER] Invalid custom pattern '{pat}': {exc}")

    def reason(self, url: str) -> Optional[str]:
        """
        Return why *url* is useless (``"login"``, ``"error"``, ``"custom"``),
        or None if it should be crawled.

        Malformed URLs are never useless here; they fail later at fetch time.
        """
        try:
            path = urlparse(url).path.lower()
        except (ValueError, AttributeError):
            return None

        if self.filter_login_pages and any(rx.search(path) for rx in LOGIN_PATH_PATTERNS):
            return "login"

        if self.filter_error_pages and any(rx.search(path) for rx in ERROR_PATH_PATTERNS):
            return "error"

        for rx in self._custom:
            if rx.search(path) or rx.search(url):
                return "custom"

        return None

    def is_useless(self, url: str) -> bool:
        return self.reason(url) is not None


# -----------------------------------------------------------------------
# Content-based rules
# -----------------------------------------------------------------------

def _contains_any(text: str, needles) -> bool:
    return any(needle in text for needle in needles)


def is_login_page(soup: BeautifulSoup, title: str) -> bool:
    """
    Detect a login screen.

    A page is a login page if its title carries a login keyword, or if a
    password input sits inside a form whose text mentions login, sign in,
    email or username (a contact form with a password field is not enough).
    """
    if _contains_any(title.lower(), LOGIN_TITLE_KEYWORDS):
        return True

    for password_input in soup.select('input[type="password" i]'):
        form = password_input.find_parent('form')
        if form is None:
            continue
        if _contains_any(form.get_text(' ').lower(), LOGIN_FORM_KEYWORDS):
            return True

    return False


def is_error_page(soup: BeautifulSoup, title: str) -> bool:
    """
    Detect an error page rendered with a success status.

    Title keywords are decisive on their own. Body phrases only count when
    the whole body is short, so articles that merely mention "not found"
    survive.
    """
    if _contains_any(title.lower(), ERROR_TITLE_KEYWORDS):
        return True

    body = soup.body or soup
    body_text = body.get_text().strip().lower()
    if _contains_any(body_text, ERROR_BODY_PHRASES):
        return len(body_text) < ERROR_BODY_MAX_LENGTH

    return False
