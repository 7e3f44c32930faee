"""
Detection models for the per-frame pipeline.

All boxes live in model input space: a fixed square (e.g. 640x640) that the
overlay renderer later scales to screen pixels.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


UNKNOWN_LABEL = "unknown"


class Proximity(str, Enum):
    """Coarse distance tier derived from box area."""
    CLOSE = "close"
    MEDIUM = "medium"
    FAR = "far"


class Direction(str, Enum):
    """Horizontal bearing bucket derived from box center."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True)
class BoundingBox:
    """
    An axis-aligned box in top-left form.

    Attributes:
        x: Left edge x coordinate.
        y: Top edge y coordinate.
        width: Box width.
        height: Box height.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    @classmethod
    def from_center(cls, cx: float, cy: float, w: float, h: float) -> "BoundingBox":
        """Create from center form (cx, cy, w, h)."""
        return cls(x=cx - w / 2, y=cy - h / 2, width=w, height=h)


@dataclass(frozen=True)
class Candidate:
    """
    A raw, pre-suppression detection straight out of the decoder.

    Attributes:
        class_id: Raw class index reported by the model.
        label: Vocabulary label for class_id (or "unknown").
        score: Confidence in [0, 1].
        cx, cy, w, h: Center-form box in model input space.
    """
    class_id: int
    label: str
    score: float
    cx: float
    cy: float
    w: float
    h: float

    @property
    def box(self) -> BoundingBox:
        """Top-left form of the candidate box."""
        return BoundingBox.from_center(self.cx, self.cy, self.w, self.h)


@dataclass(frozen=True)
class Detection:
    """
    A finalized, classified detection for one frame.

    Consumers receive a fresh tuple of these every frame; there is no
    identity across frames.
    """
    label: str
    score: float
    x: float
    y: float
    width: float
    height: float
    proximity: Proximity
    direction: Direction

    @property
    def box(self) -> BoundingBox:
        return BoundingBox(self.x, self.y, self.width, self.height)

    @classmethod
    def from_box(
        cls,
        label: str,
        score: float,
        box: BoundingBox,
        proximity: Proximity,
        direction: Direction,
    ) -> "Detection":
        return cls(
            label=label,
            score=score,
            x=box.x,
            y=box.y,
            width=box.width,
            height=box.height,
            proximity=proximity,
            direction=direction,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict for overlay/status consumers and logs."""
        return {
            "label": self.label,
            "score": self.score,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "proximity": self.proximity.value,
            "direction": self.direction.value,
        }
