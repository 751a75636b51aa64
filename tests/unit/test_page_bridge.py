"""Unit tests for the Playwright page bridge using a mocked ``Page``."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from pageextract.browser.page_bridge import PlaywrightPageBridge
from pageextract.models.annotation import BoundingBox, Viewport


def _page(evaluate_result=None, viewport: dict | None = None) -> MagicMock:
    page = MagicMock()
    page.evaluate = AsyncMock(return_value=evaluate_result)
    page.wait_for_load_state = AsyncMock()
    page.viewport_size = viewport
    return page


class TestPlaywrightPageBridge:
    """Translation of ``window.*`` results into typed values."""

    @pytest.mark.anyio
    async def test_selector_map_keys_become_ints(self) -> None:
        page = _page({"selectorMap": {"0": ["/html/body"], "7": ["/a", "/b"]}})
        selector_map = await PlaywrightPageBridge(page).process_all_of_dom()
        assert selector_map == {0: ["/html/body"], 7: ["/a", "/b"]}

    @pytest.mark.anyio
    async def test_empty_selector_map(self) -> None:
        assert await PlaywrightPageBridge(_page(None)).process_all_of_dom() == {}

    @pytest.mark.anyio
    async def test_bounding_boxes_parsed(self) -> None:
        page = _page([{"text": "Hi", "left": 1, "top": 2, "width": 3, "height": 4}])
        boxes = await PlaywrightPageBridge(page).get_element_bounding_boxes("/html/body")
        assert boxes == [BoundingBox(text="Hi", left=1, top=2, width=3, height=4)]
        assert page.evaluate.await_args.args[1] == "/html/body"

    @pytest.mark.anyio
    async def test_restore_passes_snapshot(self) -> None:
        page = _page()
        await PlaywrightPageBridge(page).restore_dom("<html/>")
        assert page.evaluate.await_args.args[1] == "<html/>"

    @pytest.mark.anyio
    async def test_viewport_from_page(self) -> None:
        viewport = await PlaywrightPageBridge(_page(viewport={"width": 1280, "height": 720})).viewport_size()
        assert viewport == Viewport(width=1280, height=720)

    @pytest.mark.anyio
    async def test_viewport_fallback_to_window(self) -> None:
        viewport = await PlaywrightPageBridge(_page({"width": 800, "height": 600})).viewport_size()
        assert viewport == Viewport(width=800, height=600)

    @pytest.mark.anyio
    async def test_settle_timeout_swallowed(self) -> None:
        page = _page()
        page.evaluate = AsyncMock(side_effect=asyncio.TimeoutError())
        await PlaywrightPageBridge(page).wait_for_settled_dom(100)
        page.wait_for_load_state.assert_awaited_once_with("domcontentloaded", timeout=100)
