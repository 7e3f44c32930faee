"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# COCO class names in model index order.
COCO_CLASS_NAMES: List[str] = [
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat", "traffic light",
    "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat", "dog", "horse", "sheep", "cow",
    "elephant", "bear", "zebra", "giraffe", "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat", "baseball glove", "skateboard", "surfboard",
    "tennis racket", "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
    "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse", "remote", "keyboard",
    "cell phone", "microwave", "oven", "toaster", "sink", "refrigerator", "book", "clock", "vase",
    "scissors", "teddy bear", "hair drier", "toothbrush",
]

DEFAULT_PRIORITY_LABELS: List[str] = [
    "bottle", "cup", "cell phone", "remote", "book", "scissors", "toothbrush", "knife", "fork", "spoon",
]

ALERT_POLICIES = ("strict", "loose")


@dataclass
class DecoderConfig:
    """Model output decoding configuration."""
    input_size: int = 640
    dense_anchor_min_elements: int = 5000
    end_to_end_row_width: int = 6
    box_features: int = 4
    class_names: List[str] = field(default_factory=lambda: list(COCO_CLASS_NAMES))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DecoderConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            input_size=d.get("input_size", 640),
            dense_anchor_min_elements=d.get("dense_anchor_min_elements", 5000),
            end_to_end_row_width=d.get("end_to_end_row_width", 6),
            box_features=d.get("box_features", 4),
            class_names=list(d.get("class_names") or COCO_CLASS_NAMES),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_size": self.input_size,
            "dense_anchor_min_elements": self.dense_anchor_min_elements,
            "end_to_end_row_width": self.end_to_end_row_width,
            "box_features": self.box_features,
            "class_names": list(self.class_names),
        }


@dataclass
class GateConfig:
    """Per-class minimum confidence policy."""
    conf_threshold: float = 0.45
    priority_threshold: float = 0.30
    priority_labels: List[str] = field(default_factory=lambda: list(DEFAULT_PRIORITY_LABELS))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GateConfig":
        labels = d.get("priority_labels")
        return cls(
            conf_threshold=d.get("conf_threshold", 0.45),
            priority_threshold=d.get("priority_threshold", 0.30),
            priority_labels=list(labels) if labels is not None else list(DEFAULT_PRIORITY_LABELS),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conf_threshold": self.conf_threshold,
            "priority_threshold": self.priority_threshold,
            "priority_labels": list(self.priority_labels),
        }


@dataclass
class SuppressionConfig:
    """Class-aware non-max suppression configuration."""
    iou_threshold: float = 0.45
    max_detections: int = 40

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SuppressionConfig":
        return cls(
            iou_threshold=d.get("iou_threshold", 0.45),
            max_detections=d.get("max_detections", 40),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iou_threshold": self.iou_threshold,
            "max_detections": self.max_detections,
        }


@dataclass
class SpatialConfig:
    """Proximity tier thresholds (box area / frame area)."""
    close_area_ratio: float = 0.12
    medium_area_ratio: float = 0.035

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SpatialConfig":
        return cls(
            close_area_ratio=d.get("close_area_ratio", 0.12),
            medium_area_ratio=d.get("medium_area_ratio", 0.035),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "close_area_ratio": self.close_area_ratio,
            "medium_area_ratio": self.medium_area_ratio,
        }


@dataclass
class AlertConfig:
    """Spoken caution scheduling."""
    min_interval_s: float = 4.0
    max_items: int = 4
    policy: str = "strict"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AlertConfig":
        return cls(
            min_interval_s=d.get("min_interval_s", 4.0),
            max_items=d.get("max_items", 4),
            policy=d.get("policy", "strict"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_interval_s": self.min_interval_s,
            "max_items": self.max_items,
            "policy": self.policy,
        }


@dataclass
class PipelineConfig:
    """Frame admission and bookkeeping."""
    target_hz: float = 10.0
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PipelineConfig":
        return cls(
            target_hz=d.get("target_hz", 10.0),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_hz": self.target_hz,
            "stats_log_interval": self.stats_log_interval,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    suppression: SuppressionConfig = field(default_factory=SuppressionConfig)
    spatial: SpatialConfig = field(default_factory=SpatialConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    log_path: str = "logs/pathsense.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            decoder=DecoderConfig.from_dict(d.get("decoder") or {}),
            gate=GateConfig.from_dict(d.get("gate") or {}),
            suppression=SuppressionConfig.from_dict(d.get("suppression") or {}),
            spatial=SpatialConfig.from_dict(d.get("spatial") or {}),
            alerts=AlertConfig.from_dict(d.get("alerts") or {}),
            pipeline=PipelineConfig.from_dict(d.get("pipeline") or {}),
            log_path=d.get("log_path", "logs/pathsense.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "decoder": self.decoder.to_dict(),
            "gate": self.gate.to_dict(),
            "suppression": self.suppression.to_dict(),
            "spatial": self.spatial.to_dict(),
            "alerts": self.alerts.to_dict(),
            "pipeline": self.pipeline.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
