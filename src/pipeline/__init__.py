"""
Pipeline module for the per-frame detection pipeline.

The pipeline orchestrates the full processing flow:
- Frame admission (rate limit, no queueing)
- Decode, confidence gate, class-aware suppression
- Spatial classification and snapshot publication
- Alert scheduling on its own cadence
"""

from .admission import FrameAdmission
from .engine import DetectionPipeline, PipelineStats, create_pipeline_from_config

__all__ = [
    "DetectionPipeline",
    "PipelineStats",
    "FrameAdmission",
    "create_pipeline_from_config",
]
