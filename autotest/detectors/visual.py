"""Layout and accessibility heuristics: title, overflow, overlaps, images, mobile."""

from __future__ import annotations

from autotest.core.browser import BrowserSession, PageHandle
from autotest.models.types import ElementBox, Status, TestOutcome
from autotest.utils.config import DESKTOP_VIEWPORT, MOBILE_VIEWPORT

MAX_OVERLAPS = 5
PLACEHOLDER_TITLES = frozenset({"", "localhost"})


class VisualAuditor:
    """Six independent checks per page; every check runs even if an earlier one fails."""

    def __init__(self, session: BrowserSession):
        self.session = session

    async def check_page(self, page_url: str) -> list[TestOutcome]:
        findings: list[TestOutcome] = []
        page = await self.session.current_page()

        if not await page.goto(page_url):
            return [TestOutcome(
                page=page_url,
                test="page-load",
                status=Status.FAIL,
                message=f"Page failed to load for visual checks: {page_url}",
            )]

        # 1. Title
        title = (await page.title()).strip()
        if title in PLACEHOLDER_TITLES:
            findings.append(TestOutcome(
                page=page_url,
                test="page-title",
                status=Status.WARNING,
                message=f'Page has no meaningful title (got: "{title or "(empty)"}")',
            ))

        # 2. Horizontal overflow
        if await has_overflow(page):
            findings.append(TestOutcome(
                page=page_url,
                test="horizontal-overflow",
                status=Status.FAIL,
                message="Page has horizontal overflow (content wider than viewport)",
                screenshot=await page.screenshot(),
            ))

        # 3. Overlapping interactive elements
        overlaps = find_overlaps(await page.interactive_boxes())
        if overlaps:
            findings.append(TestOutcome(
                page=page_url,
                test="element-overlaps",
                status=Status.WARNING,
                message=f"Found {len(overlaps)} potentially overlapping interactive element(s)",
                details="\n".join(overlaps),
            ))

        images = await page.images()

        # 4. Alt text
        missing_alt = sum(1 for img in images if img.missing_alt)
        if missing_alt:
            findings.append(TestOutcome(
                page=page_url,
                test="images-alt",
                status=Status.WARNING,
                message=f"{missing_alt} image(s) missing alt text",
            ))

        # 5. Broken images
        broken = [img.src for img in images if img.is_broken]
        if broken:
            findings.append(TestOutcome(
                page=page_url,
                test="broken-images",
                status=Status.FAIL,
                message=f"{len(broken)} broken image(s) found",
                details="\n".join(broken),
            ))

        # 6. Mobile viewport
        findings.append(await self._check_mobile(page, page_url))
        return findings

    async def _check_mobile(self, page: PageHandle, page_url: str) -> TestOutcome:
        await page.set_viewport(MOBILE_VIEWPORT["width"], MOBILE_VIEWPORT["height"])
        try:
            await page.goto(page_url)
            if await has_overflow(page):
                return TestOutcome(
                    page=page_url,
                    test="mobile-overflow",
                    status=Status.FAIL,
                    message=f"Page has horizontal overflow on mobile viewport ({MOBILE_VIEWPORT['width']}px)",
                    screenshot=await page.screenshot(),
                )
            return TestOutcome(
                page=page_url,
                test="mobile-responsive",
                status=Status.PASS,
                message="Page renders without horizontal overflow on mobile",
            )
        finally:
            await page.set_viewport(DESKTOP_VIEWPORT["width"], DESKTOP_VIEWPORT["height"])


async def has_overflow(page: PageHandle) -> bool:
    scroll_width, client_width = await page.layout_width()
    return scroll_width > client_width


def find_overlaps(boxes: list[ElementBox], limit: int = MAX_OVERLAPS) -> list[str]:
    """Pairwise intersection over boxes with non-zero area, capped at ``limit`` pairs."""
    sized = [b for b in boxes if b.has_area]
    overlaps: list[str] = []
    for i, a in enumerate(sized):
        for b in sized[i + 1:]:
            if a.x < b.right and a.right > b.x and a.y < b.bottom and a.bottom > b.y:
                overlaps.append(f"{a.label} overlaps with {b.label}")
                if len(overlaps) >= limit:
                    return overlaps
    return overlaps
