"""
PathSense - Detection Module

Post-decode candidate handling: confidence gating, class-aware suppression,
and spatial classification into Detections.
"""

from .gate import ConfidenceGate
from .nms import ClassAwareSuppressor, calculate_iou
from .spatial import SpatialClassifier, classify_direction, classify_proximity

__all__ = [
    'ConfidenceGate',
    'ClassAwareSuppressor',
    'calculate_iou',
    'SpatialClassifier',
    'classify_direction',
    'classify_proximity',
]
