"""
Spoken scene descriptions and status-line summaries.
"""

from __future__ import annotations

from typing import List, Sequence

from models.detection import Detection, Proximity


NOTHING_SEEN = "I cannot identify any objects right now"


def describe_scene(detections: Sequence[Detection]) -> str:
    """
    Answer "what is that?" for the current frame.

    Close objects are called out first as "nearby"; everything else follows
    in score order.
    """
    if not detections:
        return NOTHING_SEEN

    close = [d.label for d in detections if d.proximity == Proximity.CLOSE]
    other = [d.label for d in detections if d.proximity != Proximity.CLOSE]

    parts: List[str] = []
    if close:
        parts.append(f"{', '.join(close)} nearby")
    if other:
        parts.append(", ".join(other))
    return f"I can see: {', '.join(parts)}"


def summarize_status(detections: Sequence[Detection]) -> str:
    """Short status-display line, e.g. ``"3 objects (1 close)"``."""
    n_close = sum(1 for d in detections if d.proximity == Proximity.CLOSE)
    summary = f"{len(detections)} objects"
    if n_close:
        summary += f" ({n_close} close)"
    return summary
