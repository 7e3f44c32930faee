"""
Typed models for the PathSense detection pipeline.

These models are plain dataclasses shared by every pipeline stage.
Use the from_dict/to_dict adapters to convert from YAML config dicts.
"""

from .raw_output import RawOutput
from .detection import BoundingBox, Candidate, Detection, Direction, Proximity, UNKNOWN_LABEL
from .config import (
    Config,
    DecoderConfig,
    GateConfig,
    SuppressionConfig,
    SpatialConfig,
    AlertConfig,
    PipelineConfig,
    COCO_CLASS_NAMES,
)

__all__ = [
    # Model output
    "RawOutput",
    # Detection
    "BoundingBox",
    "Candidate",
    "Detection",
    "Direction",
    "Proximity",
    "UNKNOWN_LABEL",
    # Config
    "Config",
    "DecoderConfig",
    "GateConfig",
    "SuppressionConfig",
    "SpatialConfig",
    "AlertConfig",
    "PipelineConfig",
    "COCO_CLASS_NAMES",
]
