#!/usr/bin/env python3
"""
AutoTest CLI
Usage: python scan.py http://localhost:3000 [--type full] [--pages 10] [--json] [--headful] [--verbose]
"""

import argparse
import asyncio
import json
import logging
import sys

from autotest.core.report import print_report
from autotest.core.runner import run_tests
from autotest.models.errors import AutoTestError
from autotest.models.types import TestRequest, TestType
from autotest.utils.config import load_settings


def main():
    parser = argparse.ArgumentParser(
        description="AutoTest — autonomous frontend testing in a real browser",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  python scan.py http://localhost:3000\n"
               "  python scan.py http://localhost:3000/signup --type forms\n"
               "  python scan.py localhost:5173 --type visual --json",
    )
    parser.add_argument("url", help="URL of the running app to test")
    parser.add_argument(
        "--type", dest="test_type", default="full",
        choices=[t.value for t in TestType],
        help="Which tests to run (default: full)",
    )
    parser.add_argument("--pages", type=int, default=None, help="Max pages to crawl (default: 10)")
    parser.add_argument("--context", default=None, help="What just changed in the app (free text)")
    parser.add_argument("--headful", action="store_true", help="Run the browser visibly")
    parser.add_argument("--json", action="store_true", help="Output the report as JSON instead of a table")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG-level logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    for lib in ("asyncio", "urllib3"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    url = args.url
    if not url.startswith("http"):
        url = f"http://{url}"

    settings = load_settings(max_pages=args.pages, headless=False if args.headful else None)
    request = TestRequest(url=url, test_type=TestType(args.test_type), context=args.context)

    if not args.json:
        print(f"\n  AutoTest: {request.test_type.value} test on {url}")
        print(f"  Max pages: {settings.max_pages} | Mode: {'headful' if not settings.headless else 'headless'}\n")

    report = asyncio.run(run(request, settings, quiet=args.json))

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_report(report)

    sys.exit(1 if report.failed else 0)


def _cli_progress(event_type: str, data: dict):
    if event_type == "visiting_page":
        print(f"   [{data.get('page_number', '?')}] Visiting {data.get('url', '')[:80]}")
    elif event_type == "pages_discovered":
        print(f"\n   Found {data.get('pages', 0)} page(s), {data.get('forms', 0)} form(s), "
              f"{data.get('buttons', 0)} button(s)\n")
    elif event_type == "testing_forms":
        print(f"   Testing {data.get('count', 0)} form(s) on {data.get('url', '')[:80]}")
    elif event_type == "testing_buttons":
        print(f"   Testing {data.get('count', 0)} button(s) on {data.get('url', '')[:80]}")
    elif event_type == "checking_visual":
        print(f"   Checking layout on {data.get('url', '')[:80]}")
    elif event_type == "run_complete":
        print(f"\n   Done: {data.get('tests', 0)} tests\n")


async def run(request: TestRequest, settings, quiet: bool = False):
    try:
        return await run_tests(request, settings=settings, on_progress=None if quiet else _cli_progress)
    except AutoTestError as e:
        print(f"\n  Error during test run: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
