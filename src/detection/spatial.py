"""
Spatial classification of detections.

No depth sensor is involved. Proximity is approximated by how much of the
frame a box covers and direction by which third of the frame its center
falls in. These are coarse heuristics: a large object far away reads as
"close" and a small object near the lens reads as "far". That accuracy
envelope is accepted; the tiers only need to be stable enough to drive
spoken cautions and overlay colours.
"""

from __future__ import annotations

from typing import List, Sequence

from models.config import SpatialConfig
from models.detection import BoundingBox, Candidate, Detection, Direction, Proximity


def classify_proximity(
    box: BoundingBox,
    frame_width: float,
    frame_height: float,
    close_area_ratio: float = 0.12,
    medium_area_ratio: float = 0.035,
) -> Proximity:
    """Tier a box by area ratio; both boundaries are strict ``>``."""
    ratio = box.area / (frame_width * frame_height)
    if ratio > close_area_ratio:
        return Proximity.CLOSE
    if ratio > medium_area_ratio:
        return Proximity.MEDIUM
    return Proximity.FAR


def classify_direction(box: BoundingBox, frame_width: float) -> Direction:
    """Bucket a box by horizontal center; a center exactly on a third line is CENTER."""
    cx, _ = box.center
    if cx < frame_width / 3:
        return Direction.LEFT
    if cx > 2 * frame_width / 3:
        return Direction.RIGHT
    return Direction.CENTER


class SpatialClassifier:
    """Turns suppressed candidates into Detections for a fixed square frame."""

    def __init__(
        self,
        frame_size: float = 640,
        close_area_ratio: float = 0.12,
        medium_area_ratio: float = 0.035,
    ):
        if frame_size <= 0:
            raise ValueError(f"frame_size must be positive, got {frame_size}")
        self.frame_size = frame_size
        self.close_area_ratio = close_area_ratio
        self.medium_area_ratio = medium_area_ratio

    @classmethod
    def from_config(cls, cfg: SpatialConfig, frame_size: float) -> "SpatialClassifier":
        return cls(
            frame_size=frame_size,
            close_area_ratio=cfg.close_area_ratio,
            medium_area_ratio=cfg.medium_area_ratio,
        )

    def classify(self, candidate: Candidate) -> Detection:
        box = candidate.box
        return Detection.from_box(
            label=candidate.label,
            score=candidate.score,
            box=box,
            proximity=classify_proximity(
                box,
                self.frame_size,
                self.frame_size,
                self.close_area_ratio,
                self.medium_area_ratio,
            ),
            direction=classify_direction(box, self.frame_size),
        )

    def classify_all(self, candidates: Sequence[Candidate]) -> List[Detection]:
        return [self.classify(c) for c in candidates]
