"""Geometry models for DOM text annotations.

A ``BoundingBox`` is what the in-page script reports for one text run; a
``TextAnnotation`` is the deduplicated, viewport-normalized form handed to the
LLM prompt.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Point:
    """A 2-D coordinate in pixels or viewport fractions."""

    x: float
    y: float


@dataclass(frozen=True)
class Viewport:
    """Page viewport size in CSS pixels."""

    width: float
    height: float


@dataclass(frozen=True)
class BoundingBox:
    """A text run's box as returned by ``window.getElementBoundingBoxes``."""

    text: str
    left: float
    top: float
    width: float
    height: float

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "BoundingBox":
        return cls(
            text=str(raw.get("text", "")),
            left=float(raw.get("left", 0)),
            top=float(raw.get("top", 0)),
            width=float(raw.get("width", 0)),
            height=float(raw.get("height", 0)),
        )

    @property
    def dedup_key(self) -> tuple[str, float, float, float, float]:
        """Identity of a box: text plus geometric center and size."""
        return (
            self.text,
            self.left + self.width / 2,
            self.top + self.height / 2,
            self.width,
            self.height,
        )


@dataclass(frozen=True)
class TextAnnotation:
    """One visible text run, anchored at its bottom-left corner.

    ``midpoint`` is ``(left, top + height)`` and ``midpoint_normalized`` is the
    same point divided by the viewport size.  Downstream consumers rely on the
    x coordinate being the raw left edge rather than the horizontal center.
    """

    text: str
    midpoint: Point
    midpoint_normalized: Point
    width: float
    height: float

    @classmethod
    def from_box(cls, box: BoundingBox, viewport: Viewport) -> "TextAnnotation":
        bottom = box.top + box.height
        return cls(
            text=box.text,
            midpoint=Point(x=box.left, y=bottom),
            midpoint_normalized=Point(x=box.left / viewport.width, y=bottom / viewport.height),
            width=box.width,
            height=box.height,
        )
