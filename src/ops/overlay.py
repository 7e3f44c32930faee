"""
Overlay helpers for detection consumers.

Detections are in model input space (a fixed square). Screens and camera
previews are not square, so boxes are mapped with independent x and y scale
factors.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

import cv2
import numpy as np

from models.detection import BoundingBox, Detection, Proximity


# BGR
COLOR_CLOSE = (68, 68, 239)  # red
COLOR_MEDIUM = (11, 158, 245)  # amber
COLOR_FAR = (94, 197, 34)  # green
COLOR_DEFAULT = (246, 130, 59)  # blue

_PROXIMITY_COLORS: Dict[Proximity, Tuple[int, int, int]] = {
    Proximity.CLOSE: COLOR_CLOSE,
    Proximity.MEDIUM: COLOR_MEDIUM,
    Proximity.FAR: COLOR_FAR,
}


def proximity_color(proximity: Optional[Proximity]) -> Tuple[int, int, int]:
    return _PROXIMITY_COLORS.get(proximity, COLOR_DEFAULT)


def scale_to_view(
    detection: Detection,
    view_width: float,
    view_height: float,
    frame_size: float = 640,
) -> BoundingBox:
    """Map a detection box from model space to a view of the given size."""
    sx = view_width / frame_size
    sy = view_height / frame_size
    return BoundingBox(
        x=detection.x * sx,
        y=detection.y * sy,
        width=detection.width * sx,
        height=detection.height * sy,
    )


def annotate(
    frame: np.ndarray,
    detections: Sequence[Detection],
    frame_size: float = 640,
) -> np.ndarray:
    """
    Draw detections onto a copy of a BGR image.

    Boxes are coloured by proximity and labelled with class, score and
    direction.
    """
    out = frame.copy()
    h, w = out.shape[:2]
    font = cv2.FONT_HERSHEY_SIMPLEX

    for det in detections:
        box = scale_to_view(det, w, h, frame_size)
        x1, y1 = int(box.x), int(box.y)
        x2, y2 = int(box.x2), int(box.y2)
        color = proximity_color(det.proximity)
        label = f"{det.label} {det.score * 100:.0f}% {det.direction.value}"

        cv2.rectangle(out, (x1, y1), (x2, y2), color, 2)

        # Label with background, kept inside the image at the top edge
        (tw, th), _ = cv2.getTextSize(label, font, 0.5, 1)
        ty = y1 if y1 - th - 6 >= 0 else y1 + th + 6
        cv2.rectangle(out, (x1, ty - th - 6), (x1 + tw + 4, ty), color, -1)
        cv2.putText(out, label, (x1 + 2, ty - 4), font, 0.5, (255, 255, 255), 1)

    return out
