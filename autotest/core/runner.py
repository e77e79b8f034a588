"""Main runner: acquires the browser, crawls, fans out the selected testers.

The crawler always runs because every other tester works from the pages it
discovers; its own outcomes are only reported for ``full`` and
``navigation`` runs.
"""

from __future__ import annotations

import logging
from typing import Awaitable

from autotest.core.browser import BrowserSession
from autotest.core.click_tester import ClickTester
from autotest.core.crawler import PageCrawler
from autotest.core.form_tester import FormTester
from autotest.core.report import Reporter
from autotest.detectors.visual import VisualAuditor
from autotest.models.types import ProgressCallback, Status, TestOutcome, TestReport, TestRequest
from autotest.utils.config import Settings

logger = logging.getLogger(__name__)


class TestRunner:
    """End-to-end run for one TestRequest. Only a launch failure escapes as an exception."""

    __test__ = False

    def __init__(
        self,
        request: TestRequest,
        settings: Settings | None = None,
        on_progress: ProgressCallback | None = None,
        session: BrowserSession | None = None,
    ):
        self.request = request
        self.settings = settings or Settings()
        self._emit = on_progress or (lambda *_: None)
        self._session = session
        self.reporter = Reporter()

    async def run(self) -> TestReport:
        request = self.request
        session = self._session or BrowserSession(self.settings)
        outcomes: list[TestOutcome] = []

        logger.info("Starting %s test on %s", request.test_type.value, request.url)
        if request.context:
            logger.info("Context: %s", request.context)

        try:
            await session.launch()

            self._emit("crawl_start", {"url": request.url})
            crawler = PageCrawler(session, max_pages=self.settings.max_pages, on_progress=self._emit)
            crawl = await crawler.discover(request.url)
            if request.runs_navigation:
                outcomes.extend(crawl.outcomes)

            pages = crawl.pages
            self._emit("pages_discovered", {
                "pages": len(pages),
                "forms": sum(len(p.forms) for p in pages),
                "buttons": sum(len(p.buttons) for p in pages),
            })

            if request.runs_forms:
                form_tester = FormTester(session)
                for page in pages:
                    if page.forms:
                        self._emit("testing_forms", {"url": page.url, "count": len(page.forms)})
                        step = form_tester.test_forms(page.url, page.forms)
                        outcomes.extend(await self._guarded("form", page.url, step))

            if request.runs_clicks:
                click_tester = ClickTester(session)
                for page in pages:
                    buttons = page.testable_buttons
                    if buttons:
                        self._emit("testing_buttons", {"url": page.url, "count": len(buttons)})
                        step = click_tester.test_buttons(page.url, buttons)
                        outcomes.extend(await self._guarded("click", page.url, step))

            if request.runs_visual:
                auditor = VisualAuditor(session)
                for page in pages:
                    self._emit("checking_visual", {"url": page.url})
                    outcomes.extend(await self._guarded("visual", page.url, auditor.check_page(page.url)))

            self._emit("run_complete", {"tests": len(outcomes)})
        finally:
            await session.close()

        report = self.reporter.compile(request.url, outcomes)
        logger.info(
            "Finished %s: %d passed, %d failed, %d warnings",
            request.url, report.passed, report.failed, report.warnings,
        )
        return report

    async def _guarded(
        self, stage: str, page_url: str, step: Awaitable[list[TestOutcome]],
    ) -> list[TestOutcome]:
        """Await one per-page step; an escaped error becomes a single fail outcome."""
        try:
            return await step
        except Exception as e:
            logger.exception("%s tests failed on %s", stage, page_url)
            return [TestOutcome(
                page=page_url,
                test=f"{stage}-error",
                status=Status.FAIL,
                message=f"{stage.capitalize()} tests could not complete on {page_url}",
                details=str(e)[:500],
            )]


async def run_tests(
    request: TestRequest,
    settings: Settings | None = None,
    on_progress: ProgressCallback | None = None,
) -> TestReport:
    return await TestRunner(request, settings=settings, on_progress=on_progress).run()
