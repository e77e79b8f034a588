"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

MAX_PAGES = 10

DESKTOP_VIEWPORT = {"width": 1280, "height": 800}
MOBILE_VIEWPORT = {"width": 375, "height": 667}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


@dataclass
class Settings:
    """Crawl cap and per-interaction timeouts (milliseconds)."""

    max_pages: int = field(default_factory=lambda: _env_int("AUTOTEST_MAX_PAGES", MAX_PAGES))
    nav_timeout_ms: int = field(default_factory=lambda: _env_int("AUTOTEST_NAV_TIMEOUT_MS", 15000))
    element_timeout_ms: int = field(default_factory=lambda: _env_int("AUTOTEST_ELEMENT_TIMEOUT_MS", 5000))
    settle_ms: int = field(default_factory=lambda: _env_int("AUTOTEST_SETTLE_MS", 1500))
    idle_ms: int = field(default_factory=lambda: _env_int("AUTOTEST_IDLE_MS", 3000))
    headless: bool = field(default_factory=lambda: _env_bool("AUTOTEST_HEADLESS", True))
    port: int = field(default_factory=lambda: _env_int("PORT", 8765))


def load_settings(**overrides) -> Settings:
    """Settings from the environment, with explicit keyword overrides applied on top."""
    settings = Settings()
    for key, value in overrides.items():
        if value is not None and hasattr(settings, key):
            setattr(settings, key, value)
    return settings
