"""
tests/test_crawler.py — Unit tests for PageCrawler and its page checks.
"""
import asyncio

import pytest

from autotest.core.browser import is_internal_link
from autotest.core.crawler import (
    ERROR_INDICATORS,
    PageCrawler,
    check_console_events,
    check_content,
    check_error_text,
    extract_context,
    normalize_url,
)
from autotest.models.errors import PageError
from autotest.models.types import ConsoleEvent, EventKind, LinkDescriptor, PageSnapshot, Status


BASE = "http://localhost:3000"


def crawl(session, url=BASE, max_pages=10, on_progress=None):
    crawler = PageCrawler(session, max_pages=max_pages, on_progress=on_progress)
    return asyncio.run(crawler.discover(url))


# ---------------------------------------------------------------------------
# normalize_url
# ---------------------------------------------------------------------------


class TestNormalizeUrl:
    def test_strips_trailing_slash(self):
        assert normalize_url("http://localhost:3000/about/") == "http://localhost:3000/about"

    def test_root_slash_removed(self):
        assert normalize_url("http://localhost:3000/") == "http://localhost:3000"

    def test_drops_query_and_fragment(self):
        assert normalize_url("http://localhost:3000/a?x=1#top") == "http://localhost:3000/a"

    def test_idempotent(self):
        for url in ("http://localhost:3000/a/", "https://example.com", "http://h/x?y=1#z", "not a url"):
            assert normalize_url(normalize_url(url)) == normalize_url(url)

    def test_relative_input_returned_verbatim(self):
        assert normalize_url("/about/") == "/about/"

    def test_garbage_returned_verbatim(self):
        assert normalize_url("not a url") == "not a url"

    def test_host_case_folded(self):
        assert normalize_url("http://LocalHost:3000/a") == normalize_url("http://localhost:3000/a")

    def test_scheme_case_folded(self):
        assert normalize_url("HTTP://localhost:3000/a") == "http://localhost:3000/a"

    def test_path_case_kept(self):
        assert normalize_url("http://localhost:3000/About") == "http://localhost:3000/About"

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("http://example.com:80/a", "http://example.com/a"),
            ("https://Example.COM:443/", "https://example.com"),
            ("https://example.com:80/a", "https://example.com:80/a"),
            ("http://user:pw@example.com/a", "http://example.com/a"),
            ("http://[::1]:3000/a/", "http://[::1]:3000/a"),
        ],
    )
    def test_origin_form(self, url, expected):
        assert normalize_url(url) == expected
        assert normalize_url(expected) == expected

    def test_bad_port_returned_verbatim(self):
        assert normalize_url("http://localhost:abc/a") == "http://localhost:abc/a"


# ---------------------------------------------------------------------------
# discover
# ---------------------------------------------------------------------------


class TestDiscover:
    def test_breadth_first_order(self, make_session, site_page, link):
        site = {
            BASE: site_page(links=(link(f"{BASE}/b"), link(f"{BASE}/c"))),
            f"{BASE}/b": site_page(links=(link(f"{BASE}/d"),)),
            f"{BASE}/c": site_page(),
            f"{BASE}/d": site_page(),
        }
        result = crawl(make_session(site))
        assert result.visited == [BASE, f"{BASE}/b", f"{BASE}/c", f"{BASE}/d"]
        assert [p.url for p in result.pages] == result.visited

    def test_page_cap(self, make_session, site_page, link):
        links = tuple(link(f"{BASE}/p{i}") for i in range(20))
        site = {BASE: site_page(links=links)}
        site.update({f"{BASE}/p{i}": site_page() for i in range(20)})
        result = crawl(make_session(site), max_pages=10)
        assert len(result.visited) == 10

    def test_trailing_slash_variants_visited_once(self, make_session, site_page, link):
        site = {
            BASE: site_page(links=(link(f"{BASE}/"), link(f"{BASE}/a"), link(f"{BASE}/a/"))),
            f"{BASE}/a": site_page(links=(link(BASE),)),
        }
        result = crawl(make_session(site))
        assert result.visited == [BASE, f"{BASE}/a"]

    def test_external_links_not_followed(self, make_session, site_page):
        external = LinkDescriptor(text="x", href="https://other.example/", is_internal=False)
        site = {BASE: site_page(links=(external,))}
        result = crawl(make_session(site))
        assert result.visited == [BASE]

    def test_failed_navigation_records_page_load_failure(self, make_session, site_page, link):
        site = {BASE: site_page(links=(link(f"{BASE}/missing"),))}
        result = crawl(make_session(site))
        failures = [o for o in result.outcomes if o.status == Status.FAIL]
        assert len(failures) == 1
        assert failures[0].test == "page-load"
        assert failures[0].page == f"{BASE}/missing"
        assert len(result.pages) == 1

    def test_healthy_page_passes(self, make_session, site_page):
        result = crawl(make_session({BASE: site_page(title="Shop")}))
        assert len(result.outcomes) == 1
        outcome = result.outcomes[0]
        assert outcome.test == "page-load"
        assert outcome.status == Status.PASS
        assert '"Shop"' in outcome.message
        assert outcome.screenshot

    def test_progress_events(self, make_session, site_page, link):
        events = []
        site = {BASE: site_page(links=(link(f"{BASE}/b"),)), f"{BASE}/b": site_page()}
        crawl(make_session(site), on_progress=lambda kind, data: events.append((kind, data)))
        assert events == [
            ("visiting_page", {"url": BASE, "page_number": 1}),
            ("visiting_page", {"url": f"{BASE}/b", "page_number": 2}),
        ]

    def test_fresh_page_per_url(self, make_session, site_page, link):
        session = make_session({BASE: site_page(links=(link(f"{BASE}/b"),)), f"{BASE}/b": site_page()})
        crawl(session)
        assert session.pages_opened == 2

    def test_mixed_case_base_not_crawled_twice(self, make_session, site_page, link):
        mixed = "http://LocalHost:3000"
        site = {mixed: site_page(links=(link(f"{BASE}/"), link(f"{BASE}/b"))), f"{BASE}/b": site_page()}
        result = crawl(make_session(site), url=mixed)
        assert result.visited == [mixed, f"{BASE}/b"]

    def test_failing_step_recorded_and_crawl_continues(self, make_session, site_page, link):
        site = {
            BASE: site_page(links=(link(f"{BASE}/b"), link(f"{BASE}/c"))),
            f"{BASE}/b": site_page(),
            f"{BASE}/c": site_page(),
        }
        session = make_session(site)
        session.new_page_errors[2] = PageError("Could not open a new page: browser has been closed")
        result = crawl(session)
        assert result.visited == [BASE, f"{BASE}/b", f"{BASE}/c"]
        failed = [o for o in result.outcomes if o.status == Status.FAIL]
        assert [(o.page, o.test) for o in failed] == [(f"{BASE}/b", "page-load")]
        assert "browser has been closed" in failed[0].details
        assert [p.url for p in result.pages] == [BASE, f"{BASE}/c"]


# ---------------------------------------------------------------------------
# Page checks
# ---------------------------------------------------------------------------


def snapshot_with(*events):
    return PageSnapshot(url=BASE, title="Home", console_events=tuple(events))


class TestCheckConsoleEvents:
    def test_no_events_no_outcomes(self):
        assert check_console_events(snapshot_with()) == []

    def test_console_and_page_errors_fail_together(self):
        outcomes = check_console_events(snapshot_with(
            ConsoleEvent(EventKind.CONSOLE_ERROR, "x is undefined"),
            ConsoleEvent(EventKind.PAGE_ERROR, "boom"),
        ))
        assert len(outcomes) == 1
        assert outcomes[0].test == "console-errors"
        assert outcomes[0].status == Status.FAIL
        assert outcomes[0].message == "Page has 2 console error(s)"
        assert outcomes[0].details == "x is undefined\nboom"

    def test_network_errors_are_warnings(self):
        outcomes = check_console_events(snapshot_with(
            ConsoleEvent(EventKind.NETWORK_ERROR, "GET /api/x - net::ERR_FAILED"),
        ))
        assert [(o.test, o.status) for o in outcomes] == [("network-errors", Status.WARNING)]
        assert outcomes[0].message == "1 failed network request(s)"

    def test_navigation_errors_ignored(self):
        outcomes = check_console_events(snapshot_with(ConsoleEvent(EventKind.NAVIGATION_ERROR, "timeout")))
        assert outcomes == []

    def test_runtime_before_network(self):
        outcomes = check_console_events(snapshot_with(
            ConsoleEvent(EventKind.NETWORK_ERROR, "n"),
            ConsoleEvent(EventKind.CONSOLE_ERROR, "c"),
        ))
        assert [o.test for o in outcomes] == ["console-errors", "network-errors"]


class TestCheckContent:
    def test_short_body_fails(self):
        outcome = check_content(snapshot_with(), "   Loading  ")
        assert outcome.test == "has-content"
        assert outcome.status == Status.FAIL

    def test_ten_characters_is_enough(self):
        outcome = check_content(snapshot_with(), "0123456789")
        assert outcome.status == Status.PASS


class TestCheckErrorText:
    def test_clean_text_returns_none(self):
        assert check_error_text(BASE, "Everything is fine here") is None

    def test_case_insensitive_match(self):
        outcome = check_error_text(BASE, "Oops! Something Went Wrong. Try again")
        assert outcome.test == "error-text-check"
        assert outcome.status == Status.FAIL
        assert outcome.message == 'Page contains error text: "something went wrong"'

    def test_first_indicator_in_list_order_wins(self):
        # "404" appears first in the text but later in the indicator list
        outcome = check_error_text(BASE, "404 - x is not defined")
        assert '"is not defined"' in outcome.message

    def test_indicator_list_order(self):
        assert ERROR_INDICATORS[0] == "cannot read properties"
        assert ERROR_INDICATORS[-1] == "unhandled runtime error"
        assert len(ERROR_INDICATORS) == 9


class TestExtractContext:
    def test_window_is_clamped_and_wrapped(self):
        text = "a" * 100 + "boom" + "b" * 100
        context = extract_context(text, "boom")
        assert context == "..." + "a" * 50 + "boom" + "b" * 50 + "..."

    def test_short_text(self):
        assert extract_context("a 404 page", "404") == "...a 404 page..."

    def test_missing_keyword(self):
        assert extract_context("nothing", "boom") == ""

    @pytest.mark.parametrize("text", ["Error Boundary caught", "ERROR BOUNDARY caught"])
    def test_case_insensitive_lookup(self, text):
        assert extract_context(text, "error boundary").startswith("...")


# ---------------------------------------------------------------------------
# is_internal_link
# ---------------------------------------------------------------------------


class TestIsInternalLink:
    def test_root_relative(self):
        assert is_internal_link("/about", f"{BASE}/about", BASE)

    def test_same_origin_absolute(self):
        assert is_internal_link(f"{BASE}/pricing", f"{BASE}/pricing", f"{BASE}/home")

    def test_protocol_relative_other_host(self):
        assert not is_internal_link("//cdn.example.com/x", "http://cdn.example.com/x", BASE)

    def test_other_port_is_external(self):
        assert not is_internal_link("http://localhost:4000/", "http://localhost:4000/", BASE)

    def test_mailto_is_external(self):
        assert not is_internal_link("mailto:a@b.c", "mailto:a@b.c", BASE)

    def test_host_case_ignored(self):
        assert is_internal_link("http://localhost:3000/a", "http://localhost:3000/a", "http://LocalHost:3000")

    def test_default_port_ignored(self):
        assert is_internal_link("https://example.com/a", "https://example.com/a", "https://example.com:443/")
