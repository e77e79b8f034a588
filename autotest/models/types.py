"""Core records shared by the crawler, the test runners and the reporter."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable


class Status(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARNING = "warning"


class EventKind(str, Enum):
    CONSOLE_ERROR = "console-error"
    PAGE_ERROR = "page-error"
    NETWORK_ERROR = "network-error"
    NAVIGATION_ERROR = "navigation-error"


class TestType(str, Enum):
    FULL = "full"
    FORMS = "forms"
    NAVIGATION = "navigation"
    CLICKS = "clicks"
    VISUAL = "visual"

    __test__ = False


ProgressCallback = Callable[[str, dict], None]

# Event kinds that count as runtime errors (as opposed to transport failures)
RUNTIME_ERROR_KINDS = frozenset({EventKind.CONSOLE_ERROR, EventKind.PAGE_ERROR})


@dataclass(frozen=True)
class ConsoleEvent:
    kind: EventKind
    text: str
    url: str | None = None

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "text": self.text, "url": self.url}


@dataclass(frozen=True)
class LinkDescriptor:
    text: str
    href: str
    is_internal: bool

    def to_dict(self) -> dict:
        return {"text": self.text, "href": self.href, "isInternal": self.is_internal}


@dataclass(frozen=True)
class FieldDescriptor:
    """A single control inside a form.

    ``type`` is the DOM input kind, with ``select-one``, ``select-multiple``
    and ``textarea`` standing in for non-input elements.
    """

    type: str
    name: str = ""
    id: str = ""
    placeholder: str = ""
    required: bool = False
    label: str = ""

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "name": self.name,
            "id": self.id,
            "placeholder": self.placeholder,
            "required": self.required,
            "label": self.label,
        }


@dataclass(frozen=True)
class FormDescriptor:
    action: str = ""
    method: str = "GET"
    fields: tuple[FieldDescriptor, ...] = ()
    submit_label: str | None = None
    id: str | None = None

    @property
    def required_fields(self) -> list[FieldDescriptor]:
        return [f for f in self.fields if f.required]

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "method": self.method,
            "fields": [f.to_dict() for f in self.fields],
            "submitButton": self.submit_label,
            "id": self.id,
        }


@dataclass(frozen=True)
class ButtonDescriptor:
    text: str
    type: str = "button"
    id: str = ""
    disabled: bool = False
    selector: str = ""

    @property
    def is_testable(self) -> bool:
        """Submit buttons belong to the form runner; disabled and blank ones are skipped."""
        return self.type != "submit" and not self.disabled and len(self.text) > 0

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "type": self.type,
            "id": self.id,
            "disabled": self.disabled,
            "selector": self.selector,
        }


@dataclass(frozen=True)
class PageSnapshot:
    url: str
    title: str = ""
    links: tuple[LinkDescriptor, ...] = ()
    forms: tuple[FormDescriptor, ...] = ()
    buttons: tuple[ButtonDescriptor, ...] = ()
    console_events: tuple[ConsoleEvent, ...] = ()
    screenshot: str | None = None

    @property
    def testable_buttons(self) -> list[ButtonDescriptor]:
        return [b for b in self.buttons if b.is_testable]

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "title": self.title,
            "links": [link.to_dict() for link in self.links],
            "forms": [form.to_dict() for form in self.forms],
            "buttons": [b.to_dict() for b in self.buttons],
            "errors": [e.to_dict() for e in self.console_events],
        }


@dataclass(frozen=True)
class TestOutcome:
    page: str
    test: str
    status: Status
    message: str
    details: str | None = None
    screenshot: str | None = None

    __test__ = False

    def to_dict(self) -> dict:
        data = {
            "page": self.page,
            "test": self.test,
            "status": self.status.value,
            "message": self.message,
        }
        if self.details is not None:
            data["details"] = self.details
        if self.screenshot is not None:
            data["screenshot"] = self.screenshot
        return data


@dataclass
class TestReport:
    url: str
    total_tests: int
    passed: int
    failed: int
    warnings: int
    results: list[TestOutcome] = field(default_factory=list)
    summary: str = ""
    fix_instructions: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    __test__ = False

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "timestamp": self.timestamp,
            "totalTests": self.total_tests,
            "passed": self.passed,
            "failed": self.failed,
            "warnings": self.warnings,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary,
            "fixInstructions": self.fix_instructions,
        }


@dataclass
class TestRequest:
    url: str
    test_type: TestType = TestType.FULL
    context: str | None = None

    __test__ = False

    @property
    def runs_navigation(self) -> bool:
        return self.test_type in (TestType.FULL, TestType.NAVIGATION)

    @property
    def runs_forms(self) -> bool:
        return self.test_type in (TestType.FULL, TestType.FORMS)

    @property
    def runs_clicks(self) -> bool:
        return self.test_type in (TestType.FULL, TestType.CLICKS)

    @property
    def runs_visual(self) -> bool:
        return self.test_type in (TestType.FULL, TestType.VISUAL)


@dataclass(frozen=True)
class ClickResult:
    success: bool
    error: str | None = None
    new_url: str | None = None


@dataclass(frozen=True)
class ElementBox:
    """Viewport bounding box of an interactive element."""

    tag: str
    id: str
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def has_area(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def label(self) -> str:
        return self.tag.upper() + (f"#{self.id}" if self.id else "")


@dataclass(frozen=True)
class ImageInfo:
    src: str
    alt: str = ""
    complete: bool = True
    natural_width: int = 0

    @property
    def is_broken(self) -> bool:
        return not self.complete or self.natural_width == 0

    @property
    def missing_alt(self) -> bool:
        return not self.alt or not self.alt.strip()
