"""Run-level errors. Per-test failures are never raised; they become outcomes."""

from __future__ import annotations


class AutoTestError(Exception):
    """Base class for errors that abort a whole run."""


class SessionError(AutoTestError):
    """The browser session could not be acquired."""


class PageError(AutoTestError):
    """A new tab could not be opened on an already running browser."""
