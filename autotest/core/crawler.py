"""Breadth-first page discovery with content-integrity checks.

Every page reached through an internal link (up to the page cap) is loaded
once, snapshotted for the downstream runners, and checked for console
errors, failed requests, blank bodies and visible error text.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from urllib.parse import urlparse

from autotest.core.browser import BrowserSession, url_origin
from autotest.models.types import (
    EventKind,
    ProgressCallback,
    PageSnapshot,
    RUNTIME_ERROR_KINDS,
    Status,
    TestOutcome,
)
from autotest.utils.config import MAX_PAGES

logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 10
CONTEXT_RADIUS = 50

# Checked in order; only the first hit is reported per page.
ERROR_INDICATORS: tuple[str, ...] = (
    "cannot read properties",
    "is not defined",
    "unexpected token",
    "module not found",
    "404",
    "500 internal server error",
    "something went wrong",
    "error boundary",
    "unhandled runtime error",
)


@dataclass
class CrawlResult:
    outcomes: list[TestOutcome] = field(default_factory=list)
    pages: list[PageSnapshot] = field(default_factory=list)
    visited: list[str] = field(default_factory=list)


class PageCrawler:
    """BFS crawler over internal links, bounded by ``max_pages`` distinct URLs."""

    def __init__(
        self,
        session: BrowserSession,
        max_pages: int = MAX_PAGES,
        on_progress: ProgressCallback | None = None,
    ):
        self.session = session
        self.max_pages = max_pages
        self._emit = on_progress or (lambda *_: None)

    async def discover(self, base_url: str) -> CrawlResult:
        result = CrawlResult()
        queue: deque[str] = deque([base_url])
        visited: set[str] = set()

        while queue and len(visited) < self.max_pages:
            url = queue.popleft()
            key = normalize_url(url)
            if key in visited:
                continue
            visited.add(key)
            result.visited.append(url)

            self._emit("visiting_page", {"url": url, "page_number": len(visited)})
            try:
                snapshot = await self._visit(url, result)
            except Exception as e:
                logger.exception("Crawl step failed on %s", url)
                result.outcomes.append(TestOutcome(
                    page=url,
                    test="page-load",
                    status=Status.FAIL,
                    message=f"Page could not be checked: {url}",
                    details=str(e)[:500],
                ))
                continue
            if snapshot is None:
                continue

            for link in snapshot.links:
                if link.is_internal and normalize_url(link.href) not in visited:
                    queue.append(link.href)

        logger.info("Crawl finished: %d page(s) visited, %d loaded", len(visited), len(result.pages))
        return result

    async def _visit(self, url: str, result: CrawlResult) -> PageSnapshot | None:
        page = await self.session.new_page()

        if not await page.goto(url):
            logger.info("Page failed to load: %s", url)
            result.outcomes.append(TestOutcome(
                page=url,
                test="page-load",
                status=Status.FAIL,
                message=f"Page failed to load: {url}",
            ))
            return None

        snapshot = await page.snapshot(url)
        text = await page.page_text()

        result.pages.append(snapshot)
        result.outcomes.extend(check_console_events(snapshot))
        result.outcomes.append(check_content(snapshot, text))
        error_text = check_error_text(url, text)
        if error_text:
            result.outcomes.append(error_text)
        return snapshot


def normalize_url(url: str) -> str:
    """Origin + path with trailing slashes removed; relative or unparseable input is returned as-is."""
    origin = url_origin(url)
    if origin is None:
        return url
    return f"{origin}{urlparse(url).path}".rstrip("/")


def check_console_events(snapshot: PageSnapshot) -> list[TestOutcome]:
    outcomes = []
    runtime = [e for e in snapshot.console_events if e.kind in RUNTIME_ERROR_KINDS]
    if runtime:
        outcomes.append(TestOutcome(
            page=snapshot.url,
            test="console-errors",
            status=Status.FAIL,
            message=f"Page has {len(runtime)} console error(s)",
            details="\n".join(e.text for e in runtime),
        ))

    network = [e for e in snapshot.console_events if e.kind == EventKind.NETWORK_ERROR]
    if network:
        outcomes.append(TestOutcome(
            page=snapshot.url,
            test="network-errors",
            status=Status.WARNING,
            message=f"{len(network)} failed network request(s)",
            details="\n".join(e.text for e in network),
        ))
    return outcomes


def check_content(snapshot: PageSnapshot, text: str) -> TestOutcome:
    if len(text.strip()) < MIN_CONTENT_LENGTH:
        return TestOutcome(
            page=snapshot.url,
            test="has-content",
            status=Status.FAIL,
            message="Page appears empty or has very little content",
        )
    return TestOutcome(
        page=snapshot.url,
        test="page-load",
        status=Status.PASS,
        message=f'Page loaded successfully: "{snapshot.title}"',
        screenshot=snapshot.screenshot,
    )


def check_error_text(url: str, text: str) -> TestOutcome | None:
    lower = text.lower()
    for indicator in ERROR_INDICATORS:
        if indicator in lower:
            return TestOutcome(
                page=url,
                test="error-text-check",
                status=Status.FAIL,
                message=f'Page contains error text: "{indicator}"',
                details=extract_context(text, indicator),
            )
    return None


def extract_context(text: str, keyword: str, radius: int = CONTEXT_RADIUS) -> str:
    idx = text.lower().find(keyword)
    if idx == -1:
        return ""
    start = max(0, idx - radius)
    end = min(len(text), idx + len(keyword) + radius)
    return "..." + text[start:end] + "..."
