"""Playwright-backed browser session and page handle.

Every capability the test runners need is an explicit method on PageHandle.
Playwright errors and timeouts are converted to False / ClickResult errors /
empty results here, so one failed interaction never escapes into the
caller's control flow.
"""

from __future__ import annotations

import base64
import logging
from urllib.parse import urlparse

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    async_playwright,
)

from autotest.models.errors import PageError, SessionError
from autotest.models.types import (
    ButtonDescriptor,
    ClickResult,
    ConsoleEvent,
    ElementBox,
    EventKind,
    FieldDescriptor,
    FormDescriptor,
    ImageInfo,
    LinkDescriptor,
    PageSnapshot,
    RUNTIME_ERROR_KINDS,
)
from autotest.utils.config import DESKTOP_VIEWPORT, Settings

logger = logging.getLogger(__name__)


_EXTRACT_LINKS_JS = """() => {
    return [...document.querySelectorAll('a[href]')].map(a => ({
        text: (a.textContent || '').trim().substring(0, 100),
        raw: a.getAttribute('href') || '',
        href: a.href,
    }));
}"""


_EXTRACT_FORMS_JS = """() => {
    return [...document.querySelectorAll('form')].map(form => {
        const fields = [...form.querySelectorAll('input, select, textarea')].map(el => {
            let label = '';
            if (el.id) {
                const lbl = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
                if (lbl) label = (lbl.textContent || '').trim();
            }
            if (!label) {
                const parent = el.closest('label');
                if (parent) label = (parent.textContent || '').trim();
            }
            return {
                type: el.type || el.tagName.toLowerCase(),
                name: el.name || '',
                id: el.id || '',
                placeholder: el.placeholder || '',
                required: !!el.required,
                label: label.substring(0, 100),
            };
        });
        const submit = form.querySelector('button[type="submit"], input[type="submit"]');
        return {
            action: (typeof form.action === 'string' ? form.action : form.getAttribute('action')) || '',
            method: (form.getAttribute('method') || 'GET').toUpperCase(),
            fields,
            submit: submit ? ((submit.textContent || submit.value || 'Submit').trim() || 'Submit') : null,
            id: form.getAttribute('id') || null,
        };
    });
}"""


_EXTRACT_BUTTONS_JS = """() => {
    const unique = sel => {
        try { return document.querySelectorAll(sel).length === 1; } catch { return false; }
    };
    const step = node => {
        const tag = node.tagName.toLowerCase();
        const parent = node.parentElement;
        if (!parent) return tag;
        const same = [...parent.children].filter(c => c.tagName === node.tagName);
        return same.length > 1 ? `${tag}:nth-of-type(${same.indexOf(node) + 1})` : tag;
    };
    // child-combinator chain up to the nearest uniquely identified ancestor (or <html>)
    const pathTo = el => {
        const parts = [];
        for (let node = el; node; node = node.parentElement) {
            if (node !== el && node.id && unique('#' + CSS.escape(node.id))) {
                parts.unshift('#' + CSS.escape(node.id));
                break;
            }
            parts.unshift(step(node));
        }
        return parts.join(' > ');
    };
    return [...document.querySelectorAll('button, [role="button"], input[type="button"]')].map(el => {
        const tag = el.tagName.toLowerCase();
        let selector = '';
        if (el.id && unique('#' + CSS.escape(el.id))) {
            selector = '#' + CSS.escape(el.id);
        }
        if (!selector && typeof el.className === 'string' && el.className.trim()) {
            const cls = tag + '.' + CSS.escape(el.className.trim().split(/\\s+/)[0]);
            if (unique(cls)) selector = cls;
        }
        if (!selector && el.parentElement) {
            const parent = el.parentElement;
            const parentSel = parent.id ? '#' + CSS.escape(parent.id) : parent.tagName.toLowerCase();
            const short = `${parentSel} > ${step(el)}`;
            if (unique(short)) selector = short;
        }
        if (!selector) {
            selector = pathTo(el);
        }
        return {
            text: (el.textContent || el.value || '').trim().substring(0, 100),
            // a typeless <button> only submits when it sits inside a form
            type: el.closest('form') ? (el.type || 'button') : (el.getAttribute('type') || 'button'),
            id: el.id || '',
            disabled: !!el.disabled,
            selector,
        };
    });
}"""


_LAYOUT_WIDTH_JS = """() => [
    document.documentElement.scrollWidth,
    document.documentElement.clientWidth,
]"""


_INTERACTIVE_BOXES_JS = """() => {
    return [...document.querySelectorAll('button, a, input, select, textarea')].map(el => {
        const r = el.getBoundingClientRect();
        return { tag: el.tagName, id: el.id || '', x: r.left, y: r.top, width: r.width, height: r.height };
    });
}"""


_IMAGES_JS = """() => {
    return [...document.querySelectorAll('img')].map(img => ({
        src: img.currentSrc || img.src || '',
        alt: img.getAttribute('alt') || '',
        complete: img.complete,
        naturalWidth: img.naturalWidth,
    }));
}"""


class PageHandle:
    """One browser tab. Console events accumulate for the lifetime of the tab."""

    def __init__(self, page: Page, settings: Settings):
        self._page = page
        self._settings = settings
        self._events: list[ConsoleEvent] = []
        self._attach_listeners()

    def _attach_listeners(self):
        def on_console(msg):
            if msg.type == "error":
                self._events.append(ConsoleEvent(EventKind.CONSOLE_ERROR, msg.text))

        def on_page_error(error):
            self._events.append(ConsoleEvent(EventKind.PAGE_ERROR, str(error)))

        def on_request_failed(request):
            reason = request.failure or "failed"
            self._events.append(ConsoleEvent(
                EventKind.NETWORK_ERROR,
                f"{request.method} {request.url} - {reason}",
                url=request.url,
            ))

        self._page.on("console", on_console)
        self._page.on("pageerror", on_page_error)
        self._page.on("requestfailed", on_request_failed)

    async def goto(self, url: str) -> bool:
        try:
            response = await self._page.goto(
                url, wait_until="load", timeout=self._settings.nav_timeout_ms,
            )
        except PlaywrightError as e:
            self._events.append(ConsoleEvent(
                EventKind.NAVIGATION_ERROR,
                f"Failed to navigate to {url}: {e.message}",
                url=url,
            ))
            return False
        await self._wait_for_idle()
        return response is not None and response.ok

    async def snapshot(self, url: str) -> PageSnapshot:
        """Capture title, links, forms, buttons and events of the loaded page."""
        title = await self.title()
        raw_links = await self._evaluate(_EXTRACT_LINKS_JS, [])
        raw_forms = await self._evaluate(_EXTRACT_FORMS_JS, [])
        raw_buttons = await self._evaluate(_EXTRACT_BUTTONS_JS, [])

        links = tuple(
            LinkDescriptor(
                text=link["text"],
                href=link["href"],
                is_internal=is_internal_link(link["raw"], link["href"], url),
            )
            for link in raw_links
        )
        forms = tuple(
            FormDescriptor(
                action=form["action"],
                method=form["method"],
                fields=tuple(FieldDescriptor(**f) for f in form["fields"]),
                submit_label=form["submit"],
                id=form["id"],
            )
            for form in raw_forms
        )
        buttons = tuple(ButtonDescriptor(**b) for b in raw_buttons)

        return PageSnapshot(
            url=url,
            title=title,
            links=links,
            forms=forms,
            buttons=buttons,
            console_events=tuple(self._events),
            screenshot=await self.screenshot(),
        )

    async def click(self, selector: str) -> ClickResult:
        timeout = self._settings.element_timeout_ms
        try:
            await self._page.wait_for_selector(selector, timeout=timeout)
            before_url = self._page.url
            await self._page.click(selector, timeout=timeout)
            await self._page.wait_for_timeout(self._settings.settle_ms)
            await self._wait_for_idle()
        except PlaywrightError as e:
            return ClickResult(success=False, error=e.message)
        after_url = self._page.url
        return ClickResult(success=True, new_url=after_url if after_url != before_url else None)

    async def fill(self, selector: str, value: str) -> bool:
        try:
            await self._page.wait_for_selector(selector, timeout=self._settings.element_timeout_ms)
            await self._page.fill(selector, value, timeout=self._settings.element_timeout_ms)
            return True
        except PlaywrightError as e:
            logger.debug("fill %s failed: %s", selector, e.message)
            return False

    async def select(self, selector: str, value: str) -> bool:
        """Select ``value``; an empty value picks the first enabled, non-empty option."""
        timeout = self._settings.element_timeout_ms
        try:
            el = await self._page.wait_for_selector(selector, timeout=timeout)
            if el is None:
                return False
            if not value:
                options = await el.evaluate("""el => [...(el.options || [])]
                    .filter(o => o.value && !o.disabled)
                    .map(o => o.value)""")
                if not options:
                    return True
                value = options[0]
            await self._page.select_option(selector, value=value, timeout=timeout)
            return True
        except PlaywrightError as e:
            logger.debug("select %s failed: %s", selector, e.message)
            return False

    async def current_url(self) -> str:
        return self._page.url

    async def console_events(self) -> list[ConsoleEvent]:
        return list(self._events)

    async def console_errors(self) -> list[ConsoleEvent]:
        return [e for e in self._events if e.kind in RUNTIME_ERROR_KINDS]

    async def page_text(self) -> str:
        return await self._evaluate("() => document.body ? (document.body.innerText || '') : ''", "")

    async def title(self) -> str:
        try:
            return await self._page.title()
        except PlaywrightError:
            return ""

    async def set_viewport(self, width: int, height: int):
        try:
            await self._page.set_viewport_size({"width": width, "height": height})
        except PlaywrightError as e:
            logger.warning("Could not resize viewport to %dx%d: %s", width, height, e.message)

    async def screenshot(self) -> str | None:
        try:
            data = await self._page.screenshot(full_page=True)
        except PlaywrightError as e:
            logger.debug("screenshot failed: %s", e.message)
            return None
        return base64.b64encode(data).decode()

    async def layout_width(self) -> tuple[int, int]:
        """(scrollWidth, clientWidth) of the document element."""
        widths = await self._evaluate(_LAYOUT_WIDTH_JS, [0, 0])
        return int(widths[0]), int(widths[1])

    async def interactive_boxes(self) -> list[ElementBox]:
        raw = await self._evaluate(_INTERACTIVE_BOXES_JS, [])
        return [ElementBox(**box) for box in raw]

    async def images(self) -> list[ImageInfo]:
        raw = await self._evaluate(_IMAGES_JS, [])
        return [
            ImageInfo(
                src=img["src"],
                alt=img["alt"],
                complete=bool(img["complete"]),
                natural_width=int(img["naturalWidth"] or 0),
            )
            for img in raw
        ]

    async def close(self):
        try:
            await self._page.close()
        except PlaywrightError as e:
            logger.debug("page close failed: %s", e.message)

    async def _wait_for_idle(self):
        try:
            await self._page.wait_for_load_state("networkidle", timeout=self._settings.idle_ms)
        except PlaywrightError:
            logger.debug("network did not go idle within %dms", self._settings.idle_ms)

    async def _evaluate(self, script: str, default):
        try:
            return await self._page.evaluate(script)
        except PlaywrightError as e:
            logger.debug("evaluate failed on %s: %s", self._page.url, e.message)
            return default


class BrowserSession:
    """One Chromium instance per run, with at most one open page at a time."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()
        self._pw: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: PageHandle | None = None

    async def launch(self):
        try:
            self._pw = await async_playwright().start()
            self._browser = await self._pw.chromium.launch(
                headless=self.settings.headless,
                args=[
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-dev-shm-usage",
                ],
            )
            self._context = await self._browser.new_context(viewport=DESKTOP_VIEWPORT)
        except Exception as e:
            await self.close()
            raise SessionError(f"Could not launch browser: {e}") from e
        logger.info("Browser session started (headless=%s)", self.settings.headless)

    async def new_page(self) -> PageHandle:
        """Open a fresh tab, closing the previous one."""
        if self._context is None:
            raise SessionError("Browser not launched")
        if self._page is not None:
            await self._page.close()
            self._page = None
        try:
            page = await self._context.new_page()
        except PlaywrightError as e:
            raise PageError(f"Could not open a new page: {e.message}") from e
        self._page = PageHandle(page, self.settings)
        return self._page

    async def current_page(self) -> PageHandle:
        if self._page is None:
            return await self.new_page()
        return self._page

    async def close(self):
        self._page = None
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug("Browser close failed: %s", e)
        if self._pw is not None:
            await self._pw.stop()
        self._browser = None
        self._context = None
        self._pw = None

    async def __aenter__(self) -> BrowserSession:
        await self.launch()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


DEFAULT_PORTS = {"http": 80, "https": 443}


def url_origin(url: str) -> str | None:
    """scheme://host[:port] with the host lowercased and a default port dropped."""
    try:
        parsed = urlparse(url)
        port = parsed.port
    except ValueError:
        return None
    host = parsed.hostname
    if not parsed.scheme or not host:
        return None
    scheme = parsed.scheme.lower()
    if ":" in host:
        host = f"[{host}]"
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"
    return f"{scheme}://{host}"


def is_internal_link(raw_href: str, resolved_href: str, base_url: str) -> bool:
    """Root-relative hrefs and hrefs on the base origin are internal."""
    if raw_href.startswith("/") and not raw_href.startswith("//"):
        return True
    origin = url_origin(resolved_href)
    return origin is not None and origin == url_origin(base_url)
