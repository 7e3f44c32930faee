"""
Per-class confidence gate.

Applied while decoding, before suppression, so the O(n^2) suppression step
only ever sees candidates that can survive.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, List

from models.config import GateConfig
from models.detection import Candidate


class ConfidenceGate:
    """
    Minimum-confidence filter with a lower threshold for priority labels.

    A candidate passes only if ``score > threshold`` (strict). Priority labels
    are small, frequently-missed objects; everything else, including the
    "unknown" sentinel label, uses the default threshold.
    """

    def __init__(
        self,
        conf_threshold: float = 0.45,
        priority_threshold: float = 0.30,
        priority_labels: Iterable[str] = (),
    ):
        self.conf_threshold = float(conf_threshold)
        self.priority_threshold = float(priority_threshold)
        self.priority_labels: FrozenSet[str] = frozenset(priority_labels)

    @classmethod
    def from_config(cls, cfg: GateConfig) -> "ConfidenceGate":
        return cls(
            conf_threshold=cfg.conf_threshold,
            priority_threshold=cfg.priority_threshold,
            priority_labels=cfg.priority_labels,
        )

    @property
    def floor(self) -> float:
        """Lowest threshold any label can have; used for vectorized prefiltering."""
        if not self.priority_labels:
            return self.conf_threshold
        return min(self.conf_threshold, self.priority_threshold)

    def threshold_for(self, label: str) -> float:
        if label in self.priority_labels:
            return self.priority_threshold
        return self.conf_threshold

    def accepts(self, label: str, score: float) -> bool:
        return score > self.threshold_for(label)

    def filter(self, candidates: Iterable[Candidate]) -> List[Candidate]:
        return [c for c in candidates if self.accepts(c.label, c.score)]
