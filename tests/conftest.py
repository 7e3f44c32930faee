"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.config import COCO_CLASS_NAMES  # noqa: E402


@pytest.fixture
def class_names():
    """The 80-label COCO vocabulary."""
    return list(COCO_CLASS_NAMES)


@pytest.fixture
def small_vocab():
    """A 6-label vocabulary (10 features per anchor in dense-anchor layout)."""
    return ["person", "bicycle", "car", "chair", "bottle", "dog"]


@pytest.fixture
def end_to_end_buffer():
    """Build a flat float32 end-to-end buffer from [cx, cy, w, h, score, cls] rows."""
    def build(rows):
        return np.asarray(rows, dtype=np.float32).ravel()
    return build


@pytest.fixture
def dense_anchor_buffer():
    """
    Build a flat float32 dense-anchor buffer.

    Args (of the returned builder):
        n_classes: Vocabulary size C.
        n_anchors: Anchor count A.
        anchors: Mapping anchor index -> (cx, cy, w, h, class_id, score).
        background: Score given to every other (anchor, class) cell.
    """
    def build(n_classes, n_anchors, anchors, background=0.01):
        matrix = np.full((4 + n_classes, n_anchors), background, dtype=np.float32)
        matrix[:4, :] = 1.0
        for i, (cx, cy, w, h, class_id, score) in anchors.items():
            matrix[0, i] = cx
            matrix[1, i] = cy
            matrix[2, i] = w
            matrix[3, i] = h
            matrix[4 + class_id, i] = score
        return matrix.ravel()
    return build


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
decoder:
  input_size: 640
  dense_anchor_min_elements: 5000

gate:
  conf_threshold: 0.45
  priority_threshold: 0.30
  priority_labels: ["bottle", "cup"]

suppression:
  iou_threshold: 0.45
  max_detections: 40

alerts:
  min_interval_s: 4.0
  policy: strict

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "decoder": {
            "input_size": 640,
            "dense_anchor_min_elements": 5000,
            "end_to_end_row_width": 6,
        },
        "gate": {
            "conf_threshold": 0.45,
            "priority_threshold": 0.30,
            "priority_labels": ["bottle", "cup"],
        },
        "suppression": {
            "iou_threshold": 0.45,
            "max_detections": 40,
        },
        "spatial": {
            "close_area_ratio": 0.12,
            "medium_area_ratio": 0.035,
        },
        "alerts": {
            "min_interval_s": 4.0,
            "max_items": 4,
            "policy": "strict",
        },
        "pipeline": {
            "target_hz": 10,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
