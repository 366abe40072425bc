"""Pytest configuration and fixtures.

Sync tests run against canned spring.io, Initializr and GitHub responses
served by respx; nothing leaves the process.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
import respx

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# The app module picks its store at import; keep it in memory for tests.
for _key in ("CATALOG_DATABASE_URL", "DATABASE_URL", "CATALOG_STORE_PATH"):
    os.environ.pop(_key, None)

from spring_catalog.adapters.catalog_store import InMemoryCatalogStore  # noqa: E402
from spring_payloads import register_spring_sources  # noqa: E402


@pytest.fixture
def spring_sources():
    with respx.mock(assert_all_called=False) as router:
        yield register_spring_sources(router)


@pytest.fixture
def store() -> InMemoryCatalogStore:
    return InMemoryCatalogStore(persist_path=None)


@pytest.fixture(autouse=True)
def _isolate_sync_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "SPRING_IO_BASE_URL",
        "SPRING_DOCS_BASE_URL",
        "INITIALIZR_URL",
        "GITHUB_API_BASE_URL",
        "GITHUB_TOKEN",
        "GH_TOKEN",
        "SYNC_CRAWL_WORKERS",
        "SYNC_FETCH_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(key, raising=False)
