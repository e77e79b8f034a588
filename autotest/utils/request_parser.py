"""Turn a free-text chat message into a TestRequest."""

from __future__ import annotations

import re

from autotest.models.types import TestRequest, TestType

_URL_RE = re.compile(r"(https?://[^\s]+|localhost:\d+[^\s]*)", re.I)
_CONTEXT_RE = re.compile(r"context:\s*(.+)", re.I)

# Ordered: the first keyword group found in the message picks the test type.
TEST_TYPE_KEYWORDS: list[tuple[tuple[str, ...], TestType]] = [
    (("form",), TestType.FORMS),
    (("click", "button"), TestType.CLICKS),
    (("visual", "layout", "design"), TestType.VISUAL),
    (("nav",), TestType.NAVIGATION),
]

USAGE = (
    "I can test your frontend for you. Tell me what to test:\n\n"
    "**Examples:**\n"
    "- `test http://localhost:3000` - Full test (navigation, forms, buttons, visuals)\n"
    "- `test forms on http://localhost:3000/signup` - Test only forms\n"
    "- `test clicks on http://localhost:3000` - Test all buttons\n"
    "- `test visual http://localhost:3000` - Check visual/layout issues\n"
)


def parse_request(message: str) -> TestRequest | None:
    match = _URL_RE.search(message or "")
    if not match:
        return None

    url = match.group(1)
    if not url.lower().startswith("http"):
        url = "http://" + url

    lower = message.lower()
    test_type = TestType.FULL
    for keywords, kind in TEST_TYPE_KEYWORDS:
        if any(k in lower for k in keywords):
            test_type = kind
            break

    context = _CONTEXT_RE.search(message)
    return TestRequest(
        url=url,
        test_type=test_type,
        context=context.group(1).strip() if context else None,
    )
