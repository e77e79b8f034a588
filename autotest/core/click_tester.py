"""Click every standalone button and watch for new runtime errors."""

from __future__ import annotations

import logging

from autotest.core.browser import BrowserSession
from autotest.models.types import ButtonDescriptor, Status, TestOutcome

logger = logging.getLogger(__name__)


class ClickTester:

    def __init__(self, session: BrowserSession):
        self.session = session

    async def test_buttons(self, page_url: str, buttons) -> list[TestOutcome]:
        """Click each testable button on a freshly loaded copy of the page."""
        results = []
        for button in buttons:
            if not button.is_testable:
                continue
            results.append(await self._click(page_url, button))
        return results

    async def _click(self, page_url: str, button: ButtonDescriptor) -> TestOutcome:
        test_id = f'click-button-"{button.text}"'
        page = await self.session.current_page()
        await page.goto(page_url)

        errors_before = len(await page.console_errors())
        click = await page.click(button.selector)

        if not click.success:
            logger.debug("Could not click %s on %s: %s", button.selector, page_url, click.error)
            return TestOutcome(
                page=page_url,
                test=test_id,
                status=Status.FAIL,
                message=f'Button "{button.text}" could not be clicked',
                details=click.error,
            )

        new_errors = (await page.console_errors())[errors_before:]
        if new_errors:
            return TestOutcome(
                page=page_url,
                test=test_id,
                status=Status.FAIL,
                message=f'Clicking "{button.text}" caused {len(new_errors)} error(s)',
                details="\n".join(e.text for e in new_errors),
                screenshot=await page.screenshot(),
            )

        navigated = f" (navigated to {click.new_url})" if click.new_url else ""
        return TestOutcome(
            page=page_url,
            test=test_id,
            status=Status.PASS,
            message=f'Button "{button.text}" clicked successfully{navigated}',
        )
