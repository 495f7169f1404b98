"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))

    def canonical(self) -> Tuple[int, int, int, int]:
        """
        Integer rectangle with min <= max on both axes.

        Coordinates are truncated toward zero before ordering, so a box with
        negative width or height becomes the equivalent well-formed rectangle.
        """
        x1, y1, x2, y2 = self.as_int_tuple()
        if x1 > x2:
            x1, x2 = x2, x1
        if y1 > y2:
            y1, y2 = y2, y1
        return (x1, y1, x2, y2)

    @property
    def rect_area(self) -> int:
        """Area in pixels of the canonical integer rectangle."""
        x1, y1, x2, y2 = self.canonical()
        return (x2 - x1) * (y2 - y1)

    def intersection(self, other: "BoundingBox") -> int:
        ax1, ay1, ax2, ay2 = self.canonical()
        bx1, by1, bx2, by2 = other.canonical()
        w = min(ax2, bx2) - max(ax1, bx1)
        h = min(ay2, by2) - max(ay1, by1)
        if w <= 0 or h <= 0:
            return 0
        return w * h

    def union(self, other: "BoundingBox") -> int:
        return self.rect_area + other.rect_area - self.intersection(other)

    def iou(self, other: "BoundingBox") -> float:
        """
        Intersection-over-union as a Python float (float64).

        Computed from the canonical integer rectangles; 0.0 when the union is empty.
        """
        union = self.union(other)
        if union <= 0:
            return 0.0
        return self.intersection(other) / union


@dataclass(frozen=True)
class Detection:
    """
    A single detection decoded from the model output.

    Decoder candidates and filter survivors share this type.

    Attributes:
        bbox: Bounding box in pixel coordinates of the source image.
        confidence: Max class score of the grid cell (0-1).
        class_id: Index into the model's class list.
        class_name: Human-readable class name.
    """
    bbox: BoundingBox
    confidence: float = 1.0
    class_id: Optional[int] = None
    class_name: Optional[str] = None

    @property
    def x1(self) -> float:
        return self.bbox.x1

    @property
    def y1(self) -> float:
        return self.bbox.y1

    @property
    def x2(self) -> float:
        return self.bbox.x2

    @property
    def y2(self) -> float:
        return self.bbox.y2

    def iou(self, other: "Detection") -> float:
        return self.bbox.iou(other.bbox)

    @classmethod
    def from_xyxy(
        cls,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        confidence: float = 1.0,
        class_id: Optional[int] = None,
        class_name: Optional[str] = None,
    ) -> "Detection":
        """Create Detection from x1, y1, x2, y2 coordinates."""
        return cls(
            bbox=BoundingBox(x1=x1, y1=y1, x2=x2, y2=y2),
            confidence=confidence,
            class_id=class_id,
            class_name=class_name,
        )

    def __str__(self) -> str:
        label = self.class_name if self.class_name is not None else str(self.class_id)
        return (
            f"Object {label} (confidence {self.confidence:.2f}): "
            f"({self.x1:.2f}, {self.y1:.2f}), ({self.x2:.2f}, {self.y2:.2f})"
        )

