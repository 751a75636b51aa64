"""Shared fixtures for pageextract unit tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from pageextract.models.annotation import BoundingBox, Viewport


# ---------------------------------------------------------------------------
# Async backend
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Run ``@pytest.mark.anyio`` tests on asyncio, the library's event loop."""
    return "asyncio"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from pageextract.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Caches
# ---------------------------------------------------------------------------


@pytest.fixture()
def memory_cache():
    """Return an empty in-process response cache."""
    from pageextract.cache.base import InMemoryResponseCache

    return InMemoryResponseCache()


@pytest.fixture()
def sql_cache(tmp_path: Path):
    """Create a disposable ``SQLResponseCache`` backed by a temporary SQLite DB."""
    from pageextract.cache.sql_store import SQLResponseCache

    cache = SQLResponseCache(db_path=tmp_path / "llm_cache.db")
    yield cache
    cache.close()


# ---------------------------------------------------------------------------
# Fake page
# ---------------------------------------------------------------------------


class FakePageBridge:
    """In-memory ``PageBridge`` that records every call.

    ``selector_map`` maps element ids to XPath lists, ``boxes`` maps an XPath to
    the raw box dicts the page script would return.  Set ``fail_on`` to a
    method name to make that call raise ``RuntimeError``.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.selector_map: dict[int, list[str]] = {}
        self.boxes: dict[str, list[dict]] = {}
        self.viewport = Viewport(width=1000, height=500)
        self.fail_on: str | None = None
        self.dom = "<html>original</html>"
        self.restored: list[str] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError(f"{name} failed")

    async def wait_for_settled_dom(self, timeout_ms: int) -> None:
        self._record("wait_for_settled_dom")

    async def start_dom_debug(self) -> None:
        self._record("start_dom_debug")

    async def cleanup_dom_debug(self) -> None:
        self._record("cleanup_dom_debug")

    async def store_dom(self) -> str:
        self._record("store_dom")
        return self.dom

    async def restore_dom(self, snapshot: str) -> None:
        self._record("restore_dom")
        self.restored.append(snapshot)

    async def process_all_of_dom(self) -> dict[int, list[str]]:
        self._record("process_all_of_dom")
        return self.selector_map

    async def create_text_bounding_boxes(self) -> None:
        self._record("create_text_bounding_boxes")

    async def get_element_bounding_boxes(self, xpath: str) -> list[BoundingBox]:
        self._record("get_element_bounding_boxes")
        return [BoundingBox.from_dict(raw) for raw in self.boxes.get(xpath, [])]

    async def viewport_size(self) -> Viewport:
        self._record("viewport_size")
        return self.viewport


@pytest.fixture()
def page_bridge() -> FakePageBridge:
    """Return a fake page showing a single ``Stars: 1000`` text run.

    The box sits at left=10, top=30, 80x10 px in a 1000x500 viewport.
    """
    bridge = FakePageBridge()
    bridge.selector_map = {0: ["/html/body/div[1]"]}
    bridge.boxes = {
        "/html/body/div[1]": [{"text": "Stars: 1000", "left": 10, "top": 30, "width": 80, "height": 10}],
    }
    return bridge


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that require external services or real I/O")
    config.addinivalue_line("markers", "slow: marks tests that take more than a few seconds")
