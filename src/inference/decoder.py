"""
Model output decoding.

Two output layouts are supported and told apart only by element count, since
the model does not describe its own layout at runtime:

- End-to-end: N rows of [cx, cy, w, h, score, class_index]; the model has
  already done its own suppression, but the pipeline still runs NMS.
- Dense-anchor: a feature-major (4 + C) x A matrix; rows 0-3 are cx, cy, w, h
  and rows 4..4+C hold per-class scores for every anchor.

The count threshold between the two is a heuristic; it is kept configurable.
"""

from __future__ import annotations

import logging
from typing import List, Protocol, Sequence

import numpy as np

from detection.gate import ConfidenceGate
from models.config import DecoderConfig
from models.detection import UNKNOWN_LABEL, Candidate
from models.raw_output import RawOutput


DENSE_ANCHOR_MIN_ELEMENTS = 5000
END_TO_END_ROW_WIDTH = 6
BOX_FEATURES = 4


class DecodeError(ValueError):
    """Raised when a buffer does not fit the layout chosen for it."""


def resolve_label(class_names: Sequence[str], class_id: int) -> str:
    """Map a raw class index to its label, or the "unknown" sentinel."""
    if 0 <= class_id < len(class_names):
        return class_names[class_id]
    return UNKNOWN_LABEL


def is_dense_anchor(count: int, min_elements: int = DENSE_ANCHOR_MIN_ELEMENTS) -> bool:
    """The single layout predicate: large buffers are dense-anchor."""
    return count >= min_elements


class OutputDecoder(Protocol):
    def decode(self, values: np.ndarray) -> List[Candidate]:
        ...


class EndToEndDecoder:
    """Decode [cx, cy, w, h, score, class_index] rows."""

    def __init__(
        self,
        class_names: Sequence[str],
        gate: ConfidenceGate,
        row_width: int = END_TO_END_ROW_WIDTH,
    ):
        if row_width < END_TO_END_ROW_WIDTH:
            raise ValueError(f"row_width must be at least {END_TO_END_ROW_WIDTH}, got {row_width}")
        self.class_names = list(class_names)
        self.gate = gate
        self.row_width = row_width

    def decode(self, values: np.ndarray) -> List[Candidate]:
        n_rows = values.size // self.row_width
        if n_rows * self.row_width != values.size:
            logging.debug(
                f"End-to-end buffer has {values.size % self.row_width} trailing elements; ignoring partial row"
            )
        if n_rows == 0:
            return []

        rows = values[: n_rows * self.row_width].reshape(n_rows, self.row_width)
        rows = rows[rows[:, 4] > self.gate.floor]

        out: List[Candidate] = []
        for cx, cy, w, h, score, cls in rows[:, :END_TO_END_ROW_WIDTH]:
            class_id = int(round(float(cls))) if np.isfinite(cls) else -1
            out.append(
                Candidate(
                    class_id=class_id,
                    label=resolve_label(self.class_names, class_id),
                    score=float(score),
                    cx=float(cx),
                    cy=float(cy),
                    w=float(w),
                    h=float(h),
                )
            )
        return self.gate.filter(out)


class DenseAnchorDecoder:
    """Decode a feature-major (box_features + C) x anchors score matrix."""

    def __init__(
        self,
        class_names: Sequence[str],
        gate: ConfidenceGate,
        box_features: int = BOX_FEATURES,
    ):
        if not class_names:
            raise ValueError("Dense-anchor decoding needs a non-empty vocabulary")
        if box_features < BOX_FEATURES:
            raise ValueError(f"box_features must be at least {BOX_FEATURES}, got {box_features}")
        self.class_names = list(class_names)
        self.gate = gate
        self.box_features = box_features

    @property
    def features(self) -> int:
        return self.box_features + len(self.class_names)

    def decode(self, values: np.ndarray) -> List[Candidate]:
        features = self.features
        if values.size % features != 0:
            raise DecodeError(
                f"{values.size} elements do not form a {features} x anchors matrix"
            )
        anchors = values.size // features
        matrix = values.reshape(features, anchors)

        class_scores = matrix[self.box_features:]
        class_ids = class_scores.argmax(axis=0)
        scores = class_scores[class_ids, np.arange(anchors)]

        out: List[Candidate] = []
        for i in np.nonzero(scores > self.gate.floor)[0]:
            class_id = int(class_ids[i])
            out.append(
                Candidate(
                    class_id=class_id,
                    label=resolve_label(self.class_names, class_id),
                    score=float(scores[i]),
                    cx=float(matrix[0, i]),
                    cy=float(matrix[1, i]),
                    w=float(matrix[2, i]),
                    h=float(matrix[3, i]),
                )
            )
        return self.gate.filter(out)


class TensorDecoder:
    """
    Layout-dispatching decoder.

    Picks EndToEndDecoder or DenseAnchorDecoder from the element count and
    never lets a malformed buffer escape as an exception: the frame simply
    yields no candidates.

    Example:
        decoder = TensorDecoder(COCO_CLASS_NAMES, ConfidenceGate())
        candidates = decoder.decode(RawOutput.from_array(output))
    """

    def __init__(
        self,
        class_names: Sequence[str],
        gate: ConfidenceGate,
        dense_anchor_min_elements: int = DENSE_ANCHOR_MIN_ELEMENTS,
        row_width: int = END_TO_END_ROW_WIDTH,
        box_features: int = BOX_FEATURES,
    ):
        self.dense_anchor_min_elements = dense_anchor_min_elements
        self.end_to_end = EndToEndDecoder(class_names, gate, row_width=row_width)
        self.dense_anchor = DenseAnchorDecoder(class_names, gate, box_features=box_features)

    @classmethod
    def from_config(cls, cfg: DecoderConfig, gate: ConfidenceGate) -> "TensorDecoder":
        return cls(
            cfg.class_names,
            gate,
            dense_anchor_min_elements=cfg.dense_anchor_min_elements,
            row_width=cfg.end_to_end_row_width,
            box_features=cfg.box_features,
        )

    def select_decoder(self, count: int) -> OutputDecoder:
        if is_dense_anchor(count, self.dense_anchor_min_elements):
            return self.dense_anchor
        return self.end_to_end

    def decode(self, raw: RawOutput) -> List[Candidate]:
        try:
            values = raw.values()
            return self.select_decoder(raw.count).decode(values)
        except (ValueError, OverflowError) as e:
            logging.warning(f"Dropping malformed model output ({raw.count} elements): {e}")
            return []
