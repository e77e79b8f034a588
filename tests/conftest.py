"""
tests/conftest.py — In-memory browser doubles shared by the runner tests.

FakeSession/FakePage implement the same async surface as BrowserSession and
PageHandle, driven by a dict of per-URL site definitions, so crawler and
tester logic can be exercised without launching Chromium.
"""
from dataclasses import dataclass, field

import pytest

from autotest.models.types import (
    ClickResult,
    ConsoleEvent,
    EventKind,
    LinkDescriptor,
    PageSnapshot,
    RUNTIME_ERROR_KINDS,
)


@dataclass
class SitePage:
    title: str = "Home"
    text: str = "Welcome to the test application home page"
    links: tuple = ()
    forms: tuple = ()
    buttons: tuple = ()
    events: tuple = ()
    layout: tuple = (1280, 1280)
    mobile_layout: tuple = (375, 375)
    boxes: list = field(default_factory=list)
    images: list = field(default_factory=list)


def internal(href, text=""):
    return LinkDescriptor(text=text, href=href, is_internal=True)


class FakePage:
    def __init__(self, site: dict):
        self.site = site
        self.url = "about:blank"
        self.events: list[ConsoleEvent] = []
        self.visits: list[str] = []
        self.clicks: list[str] = []
        self.fills: list[tuple[str, str]] = []
        self.selects: list[str] = []
        self.viewports: list[tuple[int, int]] = []
        self.viewport = (1280, 800)
        # selector -> ClickResult override
        self.click_results: dict[str, ClickResult] = {}
        # selector -> console events appended when clicked
        self.click_errors: dict[str, list[ConsoleEvent]] = {}
        # selector -> url the click navigates to
        self.click_navigates: dict[str, str] = {}
        self.fail_fill: set[str] = set()
        self.fail_select: set[str] = set()
        self.fail_layout = False

    def _current(self) -> SitePage:
        return self.site[self.url]

    async def goto(self, url):
        self.visits.append(url)
        if url not in self.site:
            self.events.append(ConsoleEvent(EventKind.NAVIGATION_ERROR, f"net::ERR for {url}", url))
            return False
        self.url = url
        self.events.extend(self.site[url].events)
        return True

    async def snapshot(self, url):
        entry = self.site[url]
        return PageSnapshot(
            url=url,
            title=entry.title,
            links=tuple(entry.links),
            forms=tuple(entry.forms),
            buttons=tuple(entry.buttons),
            console_events=tuple(self.events),
            screenshot="c2NyZWVu",
        )

    async def click(self, selector):
        self.clicks.append(selector)
        if selector in self.click_results:
            return self.click_results[selector]
        self.events.extend(self.click_errors.get(selector, []))
        new_url = self.click_navigates.get(selector)
        if new_url:
            self.url = new_url
        return ClickResult(success=True, new_url=new_url)

    async def fill(self, selector, value):
        self.fills.append((selector, value))
        return selector not in self.fail_fill

    async def select(self, selector, value):
        self.selects.append(selector)
        return selector not in self.fail_select

    async def current_url(self):
        return self.url

    async def console_events(self):
        return list(self.events)

    async def console_errors(self):
        return [e for e in self.events if e.kind in RUNTIME_ERROR_KINDS]

    async def page_text(self):
        return self._current().text

    async def title(self):
        return self._current().title

    async def set_viewport(self, width, height):
        self.viewports.append((width, height))
        self.viewport = (width, height)

    async def screenshot(self):
        return "c2NyZWVu"

    async def layout_width(self):
        if self.fail_layout:
            raise RuntimeError("layout measurement failed")
        entry = self._current()
        return entry.mobile_layout if self.viewport[0] < 1280 else entry.layout

    async def interactive_boxes(self):
        return list(self._current().boxes)

    async def images(self):
        return list(self._current().images)

    async def close(self):
        pass


class FakeSession:
    def __init__(self, site: dict, launch_error: Exception | None = None):
        self.site = site
        self.launch_error = launch_error
        self.page = FakePage(site)
        self.launched = False
        self.closed = False
        self.pages_opened = 0
        # page number (1-based) -> error raised when that tab is opened
        self.new_page_errors: dict[int, Exception] = {}

    async def launch(self):
        if self.launch_error is not None:
            raise self.launch_error
        self.launched = True

    async def new_page(self):
        # each crawl step starts with a clean event log, like a fresh tab
        self.pages_opened += 1
        if self.pages_opened in self.new_page_errors:
            raise self.new_page_errors[self.pages_opened]
        self.page.events = []
        return self.page

    async def current_page(self):
        return self.page

    async def close(self):
        self.closed = True


@pytest.fixture
def make_session():
    def factory(site: dict, launch_error: Exception | None = None) -> FakeSession:
        return FakeSession(site, launch_error=launch_error)
    return factory


@pytest.fixture
def site_page():
    return SitePage


@pytest.fixture
def link():
    return internal
