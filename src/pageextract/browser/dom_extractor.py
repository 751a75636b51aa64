"""DOM snapshot and text annotation extraction.

Turns the live page into a deduplicated list of ``TextAnnotation`` objects and
a token-efficient text block for the extraction prompt.  The page is mutated
along the way (text bounding boxes are injected), so the DOM is snapshotted
first and always restored before ``capture`` returns.
"""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from pageextract.browser.page_bridge import PageBridge
from pageextract.models.annotation import BoundingBox, TextAnnotation, Viewport

logger = logging.getLogger(__name__)


def collect_annotations(boxes: Iterable[BoundingBox], viewport: Viewport) -> list[TextAnnotation]:
    """Deduplicate *boxes* and normalize them against *viewport*.

    Two boxes with the same text, center and size produce one annotation;
    the first occurrence wins and keeps its position in the output.
    """
    seen: set[tuple[str, float, float, float, float]] = set()
    annotations: list[TextAnnotation] = []
    for box in boxes:
        key = box.dedup_key
        if key in seen:
            continue
        seen.add(key)
        annotations.append(TextAnnotation.from_box(box, viewport))
    return annotations


def format_text(annotations: Iterable[TextAnnotation]) -> str:
    """Render annotations one per line, in order, for the LLM prompt.

    Each line carries the annotation's text followed by its normalized
    bottom-left anchor, e.g. ``Stars: 1000 @ (0.010, 0.080)``.
    """
    lines = []
    for annotation in annotations:
        text = re.sub(r"\s+", " ", annotation.text).strip()
        point = annotation.midpoint_normalized
        lines.append(f"{text} @ ({point.x:.3f}, {point.y:.3f})")
    return "\n".join(lines)


class DomAnnotationExtractor:
    """Capture the current page as formatted text annotations.

    Args:
        bridge: Page-evaluation boundary.
        debug_dom: Run the page's debug instrumentation during capture.
        settle_timeout_ms: Default bound for the DOM-settle wait.
    """

    def __init__(self, bridge: PageBridge, *, debug_dom: bool = False, settle_timeout_ms: int = 30_000) -> None:
        self.bridge = bridge
        self.debug_dom = debug_dom
        self.settle_timeout_ms = settle_timeout_ms

    @asynccontextmanager
    async def debug_session(self) -> AsyncIterator[None]:
        """Scope the page's debug instrumentation; torn down once on every exit path."""
        if not self.debug_dom:
            yield
            return
        await self.bridge.start_dom_debug()
        try:
            yield
        finally:
            await self.bridge.cleanup_dom_debug()

    async def capture(self, dom_settle_timeout_ms: int | None = None) -> str:
        """Snapshot, annotate and restore the page, returning the prompt text.

        Debug instrumentation is not started here; callers scope it with
        ``debug_session()`` around whatever else belongs to the same step.
        """
        if dom_settle_timeout_ms is None:
            dom_settle_timeout_ms = self.settle_timeout_ms
        await self.bridge.wait_for_settled_dom(dom_settle_timeout_ms)
        annotations = await self.annotate()
        formatted = format_text(annotations)
        logger.debug(
            "formatted %d annotations (%d chars)",
            len(annotations),
            len(formatted),
            extra={"category": "extraction"},
        )
        return formatted

    async def annotate(self) -> list[TextAnnotation]:
        """Collect text annotations; the DOM is restored whether or not this succeeds."""
        snapshot = await self.bridge.store_dom()
        try:
            annotations = await self._collect()
        except BaseException:
            await self._restore_after_failure(snapshot)
            raise
        await self.bridge.restore_dom(snapshot)
        return annotations

    async def _collect(self) -> list[TextAnnotation]:
        selector_map = await self.bridge.process_all_of_dom()
        logger.info(
            "received output from processAllOfDom. selectorMap has %d entries",
            len(selector_map),
            extra={"category": "extraction"},
        )

        await self.bridge.create_text_bounding_boxes()
        viewport = await self.bridge.viewport_size()

        boxes: list[BoundingBox] = []
        for paths in selector_map.values():
            if not paths:
                continue
            boxes.extend(await self.bridge.get_element_bounding_boxes(paths[0]))

        annotations = collect_annotations(boxes, viewport)
        logger.info(
            "collected %d text annotations from %d bounding boxes",
            len(annotations),
            len(boxes),
            extra={"category": "extraction"},
        )
        return annotations

    async def _restore_after_failure(self, snapshot: str) -> None:
        try:
            await self.bridge.restore_dom(snapshot)
        except Exception:
            logger.exception("failed to restore DOM after extraction error", extra={"category": "extraction"})
