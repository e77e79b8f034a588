"""Form interaction tests: fill, submit, and empty-submission validation."""

from __future__ import annotations

import logging

from autotest.core.browser import BrowserSession, PageHandle
from autotest.models.types import FormDescriptor, Status, TestOutcome
from autotest.utils.form_data import FieldAction, plan_form_actions

logger = logging.getLogger(__name__)


class FormTester:
    """Runs the fill / submit / validation sequence for every form on a page.

    Each stage navigates to the page again first, so values typed or errors
    raised by one stage never leak into the next.
    """

    def __init__(self, session: BrowserSession):
        self.session = session

    async def test_forms(self, page_url: str, forms) -> list[TestOutcome]:
        forms = list(forms)
        if not forms:
            return [TestOutcome(
                page=page_url,
                test="form-presence",
                status=Status.PASS,
                message="No forms found on page (nothing to test)",
            )]

        results: list[TestOutcome] = []
        for index, form in enumerate(forms):
            results.extend(await self._test_form(page_url, form, index))
        return results

    async def _test_form(self, page_url: str, form: FormDescriptor, index: int) -> list[TestOutcome]:
        form_id = form.id or f"form-{index + 1}"
        results: list[TestOutcome] = []
        logger.debug("Testing %s on %s", form_id, page_url)

        if not form.submit_label and form.fields:
            results.append(TestOutcome(
                page=page_url,
                test=f"{form_id}-submit-button",
                status=Status.WARNING,
                message=f'Form "{form_id}" has no visible submit button',
            ))

        if not form.fields:
            results.append(TestOutcome(
                page=page_url,
                test=f"{form_id}-fields",
                status=Status.WARNING,
                message=f'Form "{form_id}" has no input fields',
            ))
            return results

        page = await self.session.current_page()
        await page.goto(page_url)
        results.append(await self._fill(page, page_url, form, form_id))

        submit_selector = _submit_selector(form, index)
        if form.submit_label:
            results.append(await self._submit(page, page_url, form_id, submit_selector))

        if form.required_fields and form.submit_label:
            results.append(await self._check_validation(page, page_url, form_id, submit_selector))

        return results

    async def _fill(self, page: PageHandle, page_url: str, form: FormDescriptor, form_id: str) -> TestOutcome:
        failures: list[str] = []
        for action in plan_form_actions(form.fields):
            error = await _perform(page, action)
            if error:
                failures.append(error)

        if failures:
            return TestOutcome(
                page=page_url,
                test=f"{form_id}-fill",
                status=Status.FAIL,
                message=f'Some fields in "{form_id}" could not be filled',
                details="\n".join(failures),
            )
        return TestOutcome(
            page=page_url,
            test=f"{form_id}-fill",
            status=Status.PASS,
            message=f'All fields in "{form_id}" were filled successfully',
        )

    async def _submit(self, page: PageHandle, page_url: str, form_id: str, selector: str) -> TestOutcome:
        errors_before = len(await page.console_errors())
        click = await page.click(selector)

        if not click.success:
            return TestOutcome(
                page=page_url,
                test=f"{form_id}-submit",
                status=Status.FAIL,
                message=f'Could not click submit button for "{form_id}"',
                details=click.error,
            )

        new_errors = (await page.console_errors())[errors_before:]
        if new_errors:
            return TestOutcome(
                page=page_url,
                test=f"{form_id}-submit",
                status=Status.FAIL,
                message=f'Form "{form_id}" submission caused {len(new_errors)} error(s)',
                details="\n".join(e.text for e in new_errors),
                screenshot=await page.screenshot(),
            )
        return TestOutcome(
            page=page_url,
            test=f"{form_id}-submit",
            status=Status.PASS,
            message=f'Form "{form_id}" submitted without errors',
            screenshot=await page.screenshot(),
        )

    async def _check_validation(self, page: PageHandle, page_url: str, form_id: str, selector: str) -> TestOutcome:
        """Submit the form empty; staying on the same URL means validation blocked it."""
        await page.goto(page_url)
        await page.click(selector)

        current = await page.current_url()
        if current in (page_url, page_url + "/"):
            return TestOutcome(
                page=page_url,
                test=f"{form_id}-validation",
                status=Status.PASS,
                message=f'Form "{form_id}" correctly blocks empty submission (has required fields)',
            )
        return TestOutcome(
            page=page_url,
            test=f"{form_id}-validation",
            status=Status.WARNING,
            message=f'Form "{form_id}" has required fields but submitted empty (validation may be missing)',
        )


async def _perform(page: PageHandle, action: FieldAction) -> str | None:
    """Run one field action; returns a failure line or None."""
    field = action.field
    if action.selector is None:
        return f"Could not find selector for field: {field.label or field.name or 'unknown'}"

    if action.kind == "select":
        if not await page.select(action.selector, ""):
            return f"Could not interact with select: {action.selector}"
    elif action.kind == "click":
        click = await page.click(action.selector)
        if not click.success:
            return f"Could not click {field.type}: {action.selector}"
    elif not await page.fill(action.selector, action.value):
        return f"Could not fill field: {action.selector} ({field.label or field.name})"
    return None


def _submit_selector(form: FormDescriptor, index: int) -> str:
    scope = f'form[id="{form.id}"]' if form.id else f"form:nth-of-type({index + 1})"
    return f'{scope} button[type="submit"], {scope} input[type="submit"]'
