"""Deterministic test data for form fields.

A field is matched first by keywords in its name, label and placeholder,
then by its input type. The same field always gets the same value, so a
failing run can be reproduced exactly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from autotest.models.types import FieldDescriptor


TEST_DATA: dict[str, str] = {
    "email": "testuser@example.com",
    "password": "TestPass123!",
    "text": "Test input value",
    "name": "John Doe",
    "tel": "1234567890",
    "phone": "1234567890",
    "number": "42",
    "url": "https://example.com",
    "search": "test search query",
    "date": "2024-01-15",
    "color": "#ff0000",
}

# Ordered: the first rule with a keyword contained in the identifier wins.
KEYWORD_RULES: list[tuple[tuple[str, ...], str]] = [
    (("email",), "email"),
    (("password", "pass"), "password"),
    (("name", "first", "last"), "name"),
    (("phone", "tel"), "tel"),
    (("url", "website"), "url"),
    (("search",), "search"),
    (("date",), "date"),
]

SKIPPED_TYPES = frozenset({"hidden", "submit"})
SELECT_TYPES = frozenset({"select", "select-one", "select-multiple"})
CLICK_TYPES = frozenset({"checkbox", "radio"})


@dataclass(frozen=True)
class FieldAction:
    """What to do with one field: ``fill`` (with value), ``select`` or ``click``."""

    kind: str
    field: FieldDescriptor
    selector: str | None
    value: str = ""


def match_test_value(type: str, name: str = "", label: str = "", placeholder: str = "") -> str:
    identifier = f"{name} {label} {placeholder}".lower()
    for keywords, kind in KEYWORD_RULES:
        if any(k in identifier for k in keywords):
            return TEST_DATA[kind]
    return TEST_DATA.get(type, TEST_DATA["text"])


_SIMPLE_ID = re.compile(r"[A-Za-z_][\w-]*")


def field_selector(field: FieldDescriptor) -> str | None:
    if field.id:
        if _SIMPLE_ID.fullmatch(field.id):
            return f"#{field.id}"
        return f'[id="{field.id}"]'
    if field.name:
        return f'[name="{field.name}"]'
    return None


def plan_field_action(field: FieldDescriptor) -> FieldAction | None:
    """Map a field to its single test action; hidden and submit fields get none."""
    if field.type in SKIPPED_TYPES:
        return None
    selector = field_selector(field)
    if field.type in SELECT_TYPES:
        return FieldAction("select", field, selector)
    if field.type in CLICK_TYPES:
        return FieldAction("click", field, selector)
    value = match_test_value(field.type, field.name, field.label, field.placeholder)
    return FieldAction("fill", field, selector, value)


def plan_form_actions(fields) -> list[FieldAction]:
    return [a for a in (plan_field_action(f) for f in fields) if a is not None]
