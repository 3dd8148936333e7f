"""Shared test fixtures and configuration."""

from datetime import datetime, timedelta, timezone
import logging
import os

import pytest


# Test environment that pins every setting read from the environment
TEST_ENV = {
    "LAUNCHER_SEARCH_DEBOUNCE_MS": "40",
    "LAUNCHER_SEARCH_CANCEL_CHECK_INTERVAL": "64",
    "LAUNCHER_SEARCH_PARALLEL_THRESHOLD": "2048",
    "LAUNCHER_SEARCH_MAX_WORKERS": "4",
    "LAUNCHER_SEARCH_CACHE_ENABLED": "true",
    "LAUNCHER_SEARCH_LOG_LEVEL": "info",
    "LAUNCHER_SEARCH_LOG_JSON": "true",
}


for key, value in TEST_ENV.items():
    os.environ[key] = value

from launcher_search.config import SearchSettings, get_settings
from launcher_search.domain.catalog import CatalogEntry, CatalogSnapshot, ItemKind
from launcher_search.service_layer.search_service import SearchService


FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset environment variables and the cached settings for each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def settings():
    """Deterministic settings: no debounce, no cache, serial scoring."""
    return SearchSettings(debounce_ms=0, cache_enabled=False, max_workers=1)


@pytest.fixture
def sample_entries():
    return [
        CatalogEntry(
            id="clipboard-history",
            kind=ItemKind.EXTENSION,
            name="Clipboard History",
            description="Browse everything you copied",
            keywords=("paste", "copy"),
            category="Productivity",
            author="Raycast",
            usage_count=12,
            last_used_at=FIXED_NOW - timedelta(hours=2),
            updated_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        ),
        CatalogEntry(
            id="window-management",
            kind=ItemKind.EXTENSION,
            name="Window Management",
            description="Move and resize windows",
            keywords=("layout", "tile"),
            aliases=("wm",),
            category="System",
            updated_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
        ),
        CatalogEntry(
            id="toggle-dark-mode",
            kind=ItemKind.COMMAND,
            name="Toggle System Appearance",
            description="Switch between light and dark mode",
            keywords=("dark", "theme"),
            category="System",
            favorite=True,
        ),
        CatalogEntry(
            id="github",
            kind=ItemKind.EXTENSION,
            name="GitHub",
            description="Search repositories and pull requests",
            keywords=("git", "code"),
            category="Developer Tools",
            author="Thomas",
            enabled=False,
        ),
        CatalogEntry(
            id="developer-tools",
            kind=ItemKind.CATEGORY,
            name="Developer Tools",
        ),
    ]


@pytest.fixture
def sample_snapshot(sample_entries):
    return CatalogSnapshot(items=tuple(sample_entries))


@pytest.fixture
def service(settings, sample_snapshot, clock):
    with SearchService(settings, snapshot=sample_snapshot, clock=clock) as search_service:
        yield search_service


@pytest.fixture
def restore_root_logger():
    """Undo handler and level changes made by configure_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
