"""Page-evaluation boundary.

The DOM-processing script injected into the page exposes a handful of
``window.*`` functions.  ``PageBridge`` describes them as awaitable calls so
the extractor can be driven by Playwright in production and by an in-memory
fake in tests.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol

from pageextract.models.annotation import BoundingBox, Viewport

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

SelectorMap = dict[int, list[str]]


class PageBridge(Protocol):
    """Remote calls into the page's DOM-processing script."""

    async def wait_for_settled_dom(self, timeout_ms: int) -> None: ...

    async def start_dom_debug(self) -> None: ...

    async def cleanup_dom_debug(self) -> None: ...

    async def store_dom(self) -> str: ...

    async def restore_dom(self, snapshot: str) -> None: ...

    async def process_all_of_dom(self) -> SelectorMap: ...

    async def create_text_bounding_boxes(self) -> None: ...

    async def get_element_bounding_boxes(self, xpath: str) -> list[BoundingBox]: ...

    async def viewport_size(self) -> Viewport: ...


class PlaywrightPageBridge:
    """``PageBridge`` over a Playwright async ``Page``.

    Args:
        page: A page that already has the DOM-processing script loaded.
    """

    def __init__(self, page: Page) -> None:
        self.page = page

    async def wait_for_settled_dom(self, timeout_ms: int) -> None:
        """Wait for ``domcontentloaded`` and the in-page settle signal.

        A timeout is logged and swallowed; extraction proceeds on whatever
        the DOM looks like at that point.
        """
        from playwright.async_api import TimeoutError as PlaywrightTimeout

        try:
            await self.page.wait_for_load_state("domcontentloaded", timeout=timeout_ms)
            await asyncio.wait_for(
                self.page.evaluate(
                    "() => window.waitForDomSettle ? window.waitForDomSettle() : Promise.resolve()"
                ),
                timeout=timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, PlaywrightTimeout):
            logger.warning(
                "DOM did not settle within %dms; continuing",
                timeout_ms,
                extra={"category": "dom"},
            )

    async def start_dom_debug(self) -> None:
        await self.page.evaluate("() => window.debugDom()")

    async def cleanup_dom_debug(self) -> None:
        await self.page.evaluate("() => window.cleanupDebug()")

    async def store_dom(self) -> str:
        return await self.page.evaluate("() => window.storeDOM()")

    async def restore_dom(self, snapshot: str) -> None:
        await self.page.evaluate("(dom) => window.restoreDOM(dom)", snapshot)

    async def process_all_of_dom(self) -> SelectorMap:
        raw = await self.page.evaluate("() => window.processAllOfDom()")
        selector_map = raw.get("selectorMap", {}) if raw else {}
        return {int(element_id): list(paths) for element_id, paths in selector_map.items()}

    async def create_text_bounding_boxes(self) -> None:
        await self.page.evaluate("() => window.createTextBoundingBoxes()")

    async def get_element_bounding_boxes(self, xpath: str) -> list[BoundingBox]:
        raw = await self.page.evaluate("(xpath) => window.getElementBoundingBoxes(xpath)", xpath)
        return [BoundingBox.from_dict(box) for box in raw or []]

    async def viewport_size(self) -> Viewport:
        size = self.page.viewport_size
        if size is None:
            size = await self.page.evaluate("() => ({width: window.innerWidth, height: window.innerHeight})")
        return Viewport(width=size["width"], height=size["height"])
