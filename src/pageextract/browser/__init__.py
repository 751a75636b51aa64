"""Live-DOM snapshotting and text annotation extraction."""

from pageextract.browser.dom_extractor import DomAnnotationExtractor, collect_annotations, format_text
from pageextract.browser.page_bridge import PageBridge, PlaywrightPageBridge

__all__ = [
    "DomAnnotationExtractor",
    "PageBridge",
    "PlaywrightPageBridge",
    "collect_annotations",
    "format_text",
]
