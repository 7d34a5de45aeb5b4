"""
Tests for render.py: browser binary resolution, launch flags and the
browser page lifecycle (driven through fake Playwright objects).
"""

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

import harvester.render as render
from harvester.errors import BrowserNotFoundError
from harvester.render import BrowserRenderer, HttpRenderer, browser_launch_args, resolve_browser_executable
from harvester.run_config import ScraperConfig
from harvester.session import CrawlSession
from harvester.transport import HttpClient

from conftest import ORIGIN, FakeSession, html_page


# ====================================================================
# Fake Playwright objects
# ====================================================================

class FakeRequest:
    def __init__(self, resource_type):
        self.resource_type = resource_type


class FakeRoute:
    def __init__(self, resource_type):
        self.request = FakeRequest(resource_type)
        self.action = None

    async def abort(self):
        self.action = "abort"

    async def continue_(self):
        self.action = "continue"


class FakePage:
    def __init__(self, html="<html></html>", goto_error=None):
        self.html = html
        self.goto_error = goto_error
        self.routes = []
        self.goto_calls = []
        self.closed = False

    async def route(self, pattern, handler):
        self.routes.append((pattern, handler))

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append((url, wait_until, timeout))
        if self.goto_error is not None:
            raise self.goto_error

    async def content(self):
        return self.html

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory):
        self.page_factory = page_factory
        self.pages = []
        self.page_kwargs = []
        self.close_calls = 0

    async def new_page(self, **kwargs):
        self.page_kwargs.append(kwargs)
        page = self.page_factory()
        self.pages.append(page)
        return page

    async def close(self):
        self.close_calls += 1


class FakeChromium:
    def __init__(self, executable_path="/nonexistent/chromium", browser=None):
        self.executable_path = executable_path
        self.browser = browser or FakeBrowser(FakePage)
        self.launch_kwargs = None

    async def launch(self, **kwargs):
        self.launch_kwargs = kwargs
        return self.browser


class FakePlaywright:
    def __init__(self, chromium):
        self.chromium = chromium
        self.stop_calls = 0

    async def stop(self):
        self.stop_calls += 1


class FakePlaywrightManager:
    def __init__(self, playwright):
        self.playwright = playwright

    async def start(self):
        return self.playwright


def open_renderer(page_factory=FakePage, config=None):
    """A BrowserRenderer whose browser is already 'running'."""
    renderer = BrowserRenderer(config or ScraperConfig())
    renderer._browser = FakeBrowser(page_factory)
    renderer._playwright = FakePlaywright(FakeChromium())
    return renderer


@pytest.fixture
def no_env_browser(monkeypatch):
    for key in render.BROWSER_PATH_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


# ====================================================================
# Binary resolution
# ====================================================================

class TestResolveBrowserExecutable:

    def test_env_override_wins(self, tmp_path):
        env_bin = tmp_path / "env-chrome"
        env_bin.write_text("")
        bundled = tmp_path / "bundled-chrome"
        bundled.write_text("")
        path = resolve_browser_executable(
            bundled_path=str(bundled), environ={"HARVESTER_BROWSER_PATH": str(env_bin)},
        )
        assert path == str(env_bin)

    def test_second_env_var_used(self, tmp_path):
        env_bin = tmp_path / "chrome"
        env_bin.write_text("")
        path = resolve_browser_executable(environ={"CHROME_EXECUTABLE_PATH": str(env_bin)})
        assert path == str(env_bin)

    def test_missing_env_target_falls_through_to_bundled(self, tmp_path):
        bundled = tmp_path / "bundled-chrome"
        bundled.write_text("")
        path = resolve_browser_executable(
            bundled_path=str(bundled),
            environ={"HARVESTER_BROWSER_PATH": str(tmp_path / "missing")},
        )
        assert path == str(bundled)

    def test_well_known_paths_last(self, tmp_path, monkeypatch):
        system = tmp_path / "chromium"
        system.write_text("")
        monkeypatch.setattr(render, "WELL_KNOWN_BROWSER_PATHS", (str(system),))
        path = resolve_browser_executable(bundled_path=str(tmp_path / "nope"), environ={})
        assert path == str(system)

    def test_nothing_found_raises(self, tmp_path, monkeypatch):
        monkeypatch.setattr(render, "WELL_KNOWN_BROWSER_PATHS", (str(tmp_path / "none"),))
        with pytest.raises(BrowserNotFoundError) as exc_info:
            resolve_browser_executable(
                bundled_path=str(tmp_path / "bundled"),
                environ={"HARVESTER_BROWSER_PATH": str(tmp_path / "env")},
            )
        err = exc_info.value
        assert err.tried == [str(tmp_path / "env"), str(tmp_path / "bundled"), str(tmp_path / "none")]
        assert "HARVESTER_BROWSER_PATH" in str(err)


# ====================================================================
# Browser lifecycle
# ====================================================================

class TestBrowserStart:

    def test_launch_flags(self, tmp_path, monkeypatch, no_env_browser):
        binary = tmp_path / "chrome"
        binary.write_text("")
        chromium = FakeChromium(executable_path=str(binary))
        playwright = FakePlaywright(chromium)
        monkeypatch.setattr(render, "async_playwright", lambda: FakePlaywrightManager(playwright))

        renderer = BrowserRenderer(ScraperConfig(browser_memory_mb=256))
        asyncio.run(renderer.start())

        assert renderer.is_open
        assert chromium.launch_kwargs["executable_path"] == str(binary)
        assert chromium.launch_kwargs["headless"] is True
        args = chromium.launch_kwargs["args"]
        assert "--no-sandbox" in args
        assert "--disable-dev-shm-usage" in args
        assert "--js-flags=--max-old-space-size=256" in args

    def test_missing_binary_stops_playwright(self, tmp_path, monkeypatch, no_env_browser):
        playwright = FakePlaywright(FakeChromium(executable_path=str(tmp_path / "missing")))
        monkeypatch.setattr(render, "async_playwright", lambda: FakePlaywrightManager(playwright))
        monkeypatch.setattr(render, "WELL_KNOWN_BROWSER_PATHS", ())

        renderer = BrowserRenderer(ScraperConfig())
        with pytest.raises(BrowserNotFoundError):
            asyncio.run(renderer.start())
        assert playwright.stop_calls == 1
        assert not renderer.is_open

    def test_launch_args_helper(self):
        args = browser_launch_args(ScraperConfig())
        assert "--disable-setuid-sandbox" in args
        assert "--js-flags=--max-old-space-size=512" in args


class TestBrowserRender:

    def test_render_returns_dom_without_status(self):
        renderer = open_renderer(lambda: FakePage(html="<html><body>Rendered</body></html>"))
        page = asyncio.run(renderer.render(ORIGIN + "/app", timeout=5))

        assert page.html == "<html><body>Rendered</body></html>"
        assert page.status_code is None
        fake_page = renderer._browser.pages[0]
        assert fake_page.goto_calls == [(ORIGIN + "/app", "networkidle", 5000)]
        assert fake_page.routes[0][0] == "**/*"
        assert fake_page.closed
        assert renderer._browser.page_kwargs[0]["user_agent"] == ScraperConfig().user_agent

    def test_each_url_gets_a_fresh_page(self):
        renderer = open_renderer()
        asyncio.run(renderer.render(ORIGIN + "/a"))
        asyncio.run(renderer.render(ORIGIN + "/b"))
        pages = renderer._browser.pages
        assert len(pages) == 2
        assert all(p.closed for p in pages)
        assert renderer.pages_rendered == 2

    def test_page_closed_after_navigation_failure(self):
        renderer = open_renderer(lambda: FakePage(goto_error=PlaywrightError("net::ERR_NAME_NOT_RESOLVED")))
        with pytest.raises(PlaywrightError):
            asyncio.run(renderer.render(ORIGIN + "/down"))
        assert renderer._browser.pages[0].closed
        assert renderer.pages_rendered == 0

    def test_default_timeout_from_config(self):
        renderer = open_renderer(config=ScraperConfig(timeout_seconds=12))
        asyncio.run(renderer.render(ORIGIN + "/a"))
        assert renderer._browser.pages[0].goto_calls[0][2] == 12000

    def test_session_fetch_navigates_with_configured_timeout(self):
        config = ScraperConfig(timeout_seconds=7.5)
        renderer = open_renderer(config=config)
        http = HttpClient(config, session=FakeSession())
        session = CrawlSession(config, ORIGIN + "/", http, renderer, render_handle=renderer)

        asyncio.run(session.fetch(ORIGIN + "/a"))

        assert renderer._browser.pages[0].goto_calls[0][2] == config.timeout_ms == 7500

    def test_render_requires_start(self):
        with pytest.raises(RuntimeError):
            asyncio.run(BrowserRenderer(ScraperConfig()).render(ORIGIN + "/"))

    @pytest.mark.parametrize("resource_type,expected", [
        ("image", "abort"),
        ("font", "abort"),
        ("media", "abort"),
        ("document", "continue"),
        ("script", "continue"),
        ("xhr", "continue"),
    ])
    def test_heavy_resources_blocked(self, resource_type, expected):
        route = FakeRoute(resource_type)
        asyncio.run(render._block_heavy_resources(route))
        assert route.action == expected


class TestBrowserClose:

    def test_close_is_idempotent(self):
        renderer = open_renderer()
        browser = renderer._browser
        playwright = renderer._playwright
        asyncio.run(renderer.close())
        asyncio.run(renderer.close())
        assert browser.close_calls == 1
        assert playwright.stop_calls == 1
        assert not renderer.is_open


# ====================================================================
# Direct HTTP
# ====================================================================

class TestHttpRenderer:

    def test_returns_html_and_status(self):
        url = ORIGIN + "/plain"
        fake = FakeSession({url: html_page("Plain")})
        renderer = HttpRenderer(HttpClient(ScraperConfig(), session=fake))
        page = asyncio.run(renderer.render(url))
        assert page.status_code == 200
        assert "<title>Plain</title>" in page.html
