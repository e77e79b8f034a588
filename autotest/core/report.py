"""Compile test outcomes into a report, chat-ready text, and a CLI table.

Everything except the report timestamp is a pure function of the ordered
outcome list, so the same run always renders the same narrative.
"""

from __future__ import annotations

from typing import Callable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from autotest.models.types import Status, TestOutcome, TestReport


ALL_PASSED = "✅ All tests passed! The frontend appears to be working correctly."
NO_FIXES = "No fixes needed. All tests passed."
GENERIC_FIX = "Review the error details above and fix the underlying code issue."

FixRule = tuple[Callable[[str, str], bool], str]

# Ordered (test id, message) predicates; both arguments arrive lowercased.
FIX_RULES: list[FixRule] = [
    (
        lambda test, msg: "console-error" in test or "page-error" in test,
        "Check the browser console errors above. These are JavaScript runtime errors in your code. "
        "Look at the error message and stack trace to find the source file and line.",
    ),
    (
        lambda test, msg: "network-error" in test,
        "API or resource requests are failing. Check that your API endpoints exist, the server is running, "
        "and URLs are correct. Check CORS settings if it's a cross-origin request.",
    ),
    (
        lambda test, msg: test.endswith("-fill"),
        "Form fields could not be interacted with. Ensure input fields have proper 'name' or 'id' attributes "
        "and are not hidden or overlapped by other elements.",
    ),
    (
        lambda test, msg: test.endswith("-submit"),
        "Form submission caused errors. Check your form submission handler, ensure the API endpoint exists, "
        "and verify error handling in the submit function.",
    ),
    (
        lambda test, msg: "click" in test and "button" in test,
        "A button click caused errors. Check the onClick handler for this button, verify any state changes "
        "it triggers, and ensure referenced variables/functions exist.",
    ),
    (
        lambda test, msg: "overflow" in test,
        "Content is wider than the viewport causing horizontal scroll. Check for fixed-width elements, "
        "missing overflow:hidden, or elements with absolute positioning outside the viewport.",
    ),
    (
        lambda test, msg: "broken-images" in test,
        "Some images are not loading. Verify image file paths, ensure files exist in the correct directory, "
        "and check that the image URLs are correct.",
    ),
    (
        lambda test, msg: "has-content" in test,
        "The page appears blank or empty. Check if the root component is rendering, verify there are no "
        "JavaScript errors preventing render, and ensure data fetching is working.",
    ),
    (
        lambda test, msg: "error text" in msg,
        "The page is displaying an error message to the user. This could be a React error boundary, "
        "a 404 page, or an unhandled error. Check the component rendering logic.",
    ),
]


class Reporter:

    def compile(self, url: str, results: list[TestOutcome]) -> TestReport:
        results = list(results)
        passed = sum(1 for r in results if r.status == Status.PASS)
        failed = sum(1 for r in results if r.status == Status.FAIL)
        warnings = sum(1 for r in results if r.status == Status.WARNING)

        return TestReport(
            url=url,
            total_tests=len(results),
            passed=passed,
            failed=failed,
            warnings=warnings,
            results=results,
            summary=build_summary(url, results),
            fix_instructions=build_fix_instructions(results),
        )

    def format_for_chat(self, report: TestReport) -> str:
        output = report.summary + "\n"
        if report.failed > 0:
            output += report.fix_instructions + "\n"
            output += "---\n"
            output += "Please fix the above issues. After fixing, I can test again to verify.\n"
        return output


def build_summary(url: str, results: list[TestOutcome]) -> str:
    failures = [r for r in results if r.status == Status.FAIL]
    warnings = [r for r in results if r.status == Status.WARNING]
    passed = len(results) - len(failures) - len(warnings)

    summary = f"## AutoTest Report for {url}\n\n"
    summary += f"**Results:** {passed} passed, {len(failures)} failed, {len(warnings)} warnings\n\n"

    if not failures and not warnings:
        return summary + ALL_PASSED + "\n"

    if failures:
        summary += "### ❌ Failures\n"
        for r in failures:
            summary += f"- **{r.test}** ({r.page}): {r.message}\n"
            if r.details:
                summary += f"  ```\n  {r.details}\n  ```\n"
        summary += "\n"

    if warnings:
        summary += "### ⚠️ Warnings\n"
        for r in warnings:
            summary += f"- **{r.test}** ({r.page}): {r.message}\n"
        summary += "\n"

    return summary


def build_fix_instructions(results: list[TestOutcome]) -> str:
    failures = [r for r in results if r.status == Status.FAIL]
    if not failures:
        return NO_FIXES

    instructions = "## Fix Instructions\n\n"
    instructions += "The following issues were found by testing the actual frontend in a browser:\n\n"
    for failure in failures:
        instructions += f"### Issue: {failure.test}\n"
        instructions += f"- **Page:** {failure.page}\n"
        instructions += f"- **Problem:** {failure.message}\n"
        if failure.details:
            instructions += f"- **Details:**\n```\n{failure.details}\n```\n"
        instructions += f"- **Suggested fix:** {suggest_fix(failure)}\n\n"
    return instructions


def suggest_fix(result: TestOutcome) -> str:
    test = (result.test or "").lower()
    msg = (result.message or "").lower()
    for matches, hint in FIX_RULES:
        if matches(test, msg):
            return hint
    return GENERIC_FIX


STATUS_STYLES = {"pass": "green", "fail": "red bold", "warning": "yellow"}


def print_report(report: TestReport, console: Console | None = None):
    """Print the report as a Rich panel and issue table."""
    console = console or Console()

    header = Text()
    header.append("\n AutoTest Report\n", style="bold")
    header.append(f" {report.url}\n", style="dim")
    header.append(f" {report.total_tests} tests run at {report.timestamp}\n", style="dim")
    console.print(Panel(header, border_style="blue"))

    counts = Text("  ")
    counts.append(f"{report.passed} passed", style="green")
    counts.append(", ")
    counts.append(f"{report.failed} failed", style="red")
    counts.append(", ")
    counts.append(f"{report.warnings} warnings", style="yellow")
    console.print(counts)
    console.print()

    issues = [r for r in report.results if r.status != Status.PASS]
    if not issues:
        console.print(f"  [green bold]{ALL_PASSED}[/green bold]\n")
        return

    table = Table(show_header=True, header_style="bold", padding=(0, 1))
    table.add_column("Status", width=8)
    table.add_column("Test", min_width=20)
    table.add_column("Page", max_width=35)
    table.add_column("Message", min_width=30)

    # failures first, then warnings, each in execution order
    for r in sorted(issues, key=lambda r: r.status != Status.FAIL):
        page_short = r.page.replace("https://", "").replace("http://", "")
        if len(page_short) > 35:
            page_short = page_short[:32] + "..."
        table.add_row(
            Text(r.status.value, style=STATUS_STYLES.get(r.status.value, "white")),
            r.test,
            page_short,
            r.message[:100],
        )

    console.print(table)
    console.print()

    if report.failed:
        console.print("  [bold]Suggested fixes[/bold]")
        for r in issues:
            if r.status == Status.FAIL:
                console.print(f"    [dim]• {r.test}: {suggest_fix(r)}[/dim]")
        console.print()
