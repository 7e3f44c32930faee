"""
Class-aware non-max suppression.

Boxes of different classes legitimately overlap (a bottle held inside a
hand/person box, a backpack on a person), so suppression only ever compares
candidates that share a label.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Sequence

from models.config import SuppressionConfig
from models.detection import BoundingBox, Candidate


def calculate_iou(a: BoundingBox, b: BoundingBox) -> float:
    """
    Intersection over Union between two top-left boxes.

    Returns:
        IoU in [0, 1]; 0.0 for disjoint boxes or a non-positive union.
    """
    inter_w = max(0.0, min(a.x2, b.x2) - max(a.x, b.x))
    inter_h = max(0.0, min(a.y2, b.y2) - max(a.y, b.y))
    intersection = inter_w * inter_h

    union = a.area + b.area - intersection
    if union <= 0:
        return 0.0
    return intersection / union


def _by_score(candidates: Sequence[Candidate]) -> List[Candidate]:
    return sorted(candidates, key=lambda c: c.score, reverse=True)


class ClassAwareSuppressor:
    """
    Collapse overlapping same-label candidates to one box per object.

    Example:
        suppressor = ClassAwareSuppressor(iou_threshold=0.45, max_detections=40)
        kept = suppressor.suppress(candidates)
    """

    def __init__(self, iou_threshold: float = 0.45, max_detections: int = 40):
        self.iou_threshold = iou_threshold
        self.max_detections = max_detections

    @classmethod
    def from_config(cls, cfg: SuppressionConfig) -> "ClassAwareSuppressor":
        return cls(iou_threshold=cfg.iou_threshold, max_detections=cfg.max_detections)

    def suppress(self, candidates: Sequence[Candidate]) -> List[Candidate]:
        """Return survivors sorted by descending score, capped at max_detections."""
        if len(candidates) <= 1:
            return list(candidates)

        by_label: Dict[str, List[Candidate]] = defaultdict(list)
        for c in candidates:
            by_label[c.label].append(c)

        survivors: List[Candidate] = []
        for group in by_label.values():
            survivors.extend(self._suppress_group(group))

        return _by_score(survivors)[: self.max_detections]

    def _suppress_group(self, group: List[Candidate]) -> List[Candidate]:
        kept: List[Candidate] = []
        kept_boxes: List[BoundingBox] = []
        for c in _by_score(group):
            box = c.box
            if any(calculate_iou(box, other) > self.iou_threshold for other in kept_boxes):
                continue
            kept.append(c)
            kept_boxes.append(box)
        return kept
