"""
Replay tool for the PathSense detection pipeline.

Feeds saved model outputs (``.npy`` arrays, one per frame) through the
pipeline and alert scheduler, logging detections, scene descriptions and any
spoken cautions. Useful for tuning thresholds against recorded sessions.

Usage:
    python src/main.py --config config/config.yaml outputs/frame_0001.npy ...

Arguments:
    --config: Path to configuration file
    --annotate: Directory to write annotated frames to
    --background: Image to draw annotations on (default: blank frame)
    --scale / --zero-point: Dequantization for uint8/int8 outputs
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np
import yaml

from alerts.scheduler import AlertPolicy
from models.config import Config
from models.raw_output import RawOutput
from ops.logging import setup_logging
from ops.overlay import annotate
from pipeline.engine import create_pipeline_from_config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into base in place; nested sections merge key by key."""
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _config_layers(config_path: str) -> List[str]:
    """Files to merge, lowest priority first, skipping duplicates."""
    config_dir = os.path.dirname(config_path)
    layers: List[str] = []
    for path in (
        os.path.join(config_dir, "default.yaml"),
        os.path.join(config_dir, "config.yaml"),
        config_path,
    ):
        if os.path.exists(path) and os.path.abspath(path) not in map(os.path.abspath, layers):
            layers.append(path)
    return layers


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load the PathSense configuration.

    Sections (decoder, gate, suppression, spatial, alerts, pipeline) are
    merged from, in increasing priority:
    - `default.yaml` next to ``config_path`` (checked-in defaults)
    - `config.yaml` in the same directory (local tuning)
    - ``config_path`` itself, e.g. a per-session threshold file

    Exits with status 1 if any layer cannot be read or parsed.
    """
    merged: Dict[str, Any] = {}
    try:
        for path in _config_layers(config_path):
            with open(path, "r") as f:
                layer = yaml.safe_load(f) or {}
            logging.debug(f"Config layer {path}: {sorted(layer)}")
            _deep_merge(merged, layer)
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)
    return merged


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_ratio(section: Dict[str, Any], key: str, name: str) -> Optional[str]:
    if key in section:
        value = section[key]
        if not _is_number(value) or not (0 <= value <= 1):
            return f"{name}.{key} must be a number between 0 and 1"
    return None


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['decoder', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Decoder
    decoder = config.get('decoder') or {}
    if 'input_size' in decoder:
        if not isinstance(decoder['input_size'], int) or decoder['input_size'] <= 0:
            return False, "decoder.input_size must be a positive integer"
    if 'dense_anchor_min_elements' in decoder:
        if not isinstance(decoder['dense_anchor_min_elements'], int) or decoder['dense_anchor_min_elements'] <= 0:
            return False, "decoder.dense_anchor_min_elements must be a positive integer"
    if 'end_to_end_row_width' in decoder:
        if not isinstance(decoder['end_to_end_row_width'], int) or decoder['end_to_end_row_width'] < 6:
            return False, "decoder.end_to_end_row_width must be an integer of at least 6"
    if 'box_features' in decoder:
        if not isinstance(decoder['box_features'], int) or decoder['box_features'] < 4:
            return False, "decoder.box_features must be an integer of at least 4"
    if 'class_names' in decoder:
        names = decoder['class_names']
        if not isinstance(names, list) or not names or not all(isinstance(n, str) for n in names):
            return False, "decoder.class_names must be a non-empty list of strings"

    # Confidence gate
    gate = config.get('gate') or {}
    for key in ('conf_threshold', 'priority_threshold'):
        error = _check_ratio(gate, key, 'gate')
        if error:
            return False, error
    if 'priority_labels' in gate:
        labels = gate['priority_labels']
        if not isinstance(labels, list) or not all(isinstance(n, str) for n in labels):
            return False, "gate.priority_labels must be a list of strings"

    # Suppression
    suppression = config.get('suppression') or {}
    error = _check_ratio(suppression, 'iou_threshold', 'suppression')
    if error:
        return False, error
    if 'max_detections' in suppression:
        if not isinstance(suppression['max_detections'], int) or suppression['max_detections'] <= 0:
            return False, "suppression.max_detections must be a positive integer"

    # Spatial
    spatial = config.get('spatial') or {}
    for key in ('close_area_ratio', 'medium_area_ratio'):
        error = _check_ratio(spatial, key, 'spatial')
        if error:
            return False, error
    if spatial.get('medium_area_ratio', 0.035) >= spatial.get('close_area_ratio', 0.12):
        return False, "spatial.medium_area_ratio must be below spatial.close_area_ratio"

    # Alerts
    alerts = config.get('alerts') or {}
    if 'min_interval_s' in alerts:
        if not _is_number(alerts['min_interval_s']) or alerts['min_interval_s'] < 0:
            return False, "alerts.min_interval_s must be a non-negative number"
    if 'max_items' in alerts:
        if not isinstance(alerts['max_items'], int) or alerts['max_items'] <= 0:
            return False, "alerts.max_items must be a positive integer"
    valid_policies = [p.value for p in AlertPolicy]
    if alerts.get('policy', 'strict') not in valid_policies:
        return False, f"alerts.policy must be one of: {', '.join(valid_policies)}"

    # Pipeline
    pipeline = config.get('pipeline') or {}
    if 'target_hz' in pipeline:
        if not _is_number(pipeline['target_hz']) or pipeline['target_hz'] <= 0:
            return False, "pipeline.target_hz must be a positive number"
    if 'stats_log_interval' in pipeline:
        if not _is_number(pipeline['stats_log_interval']) or pipeline['stats_log_interval'] <= 0:
            return False, "pipeline.stats_log_interval must be a positive number"

    # Validate log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def load_output(path: str, scale: Optional[float], zero_point: int) -> RawOutput:
    arr = np.load(path)
    return RawOutput.from_array(arr, scale=scale, zero_point=zero_point)


def replay(
    config: Config,
    paths: List[str],
    annotate_dir: Optional[str] = None,
    background: Optional[np.ndarray] = None,
    scale: Optional[float] = None,
    zero_point: int = 0,
) -> List[str]:
    """
    Replay saved outputs at the configured frame rate on a virtual clock.

    Returns the cautions that would have been spoken.
    """
    spoken: List[str] = []
    period = 1.0 / config.pipeline.target_hz
    clock_now = [0.0]

    pipeline = create_pipeline_from_config(config, speak=spoken.append, clock=lambda: clock_now[0])
    size = config.decoder.input_size
    if annotate_dir:
        os.makedirs(annotate_dir, exist_ok=True)
    if background is None:
        background = np.zeros((size, size, 3), dtype=np.uint8)

    for i, path in enumerate(paths):
        clock_now[0] = i * period
        snapshot = pipeline.submit(lambda: load_output(path, scale, zero_point))
        if snapshot is None:
            continue

        logging.info(f"[{os.path.basename(path)}] {pipeline.status()}: {pipeline.describe()}")
        for det in snapshot:
            logging.debug(f"  {det.to_dict()}")

        pipeline.tick()

        if annotate_dir:
            name = os.path.splitext(os.path.basename(path))[0] + ".png"
            cv2.imwrite(os.path.join(annotate_dir, name), annotate(background, snapshot, size))

    pipeline.stop()
    return spoken


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='PathSense - detection pipeline replay')
    parser.add_argument('outputs', nargs='+',
                        help='Saved model outputs (.npy), one per frame, in order')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--annotate', type=str, default=None,
                        help='Directory to write annotated frames to')
    parser.add_argument('--background', type=str, default=None,
                        help='Image to draw annotations on')
    parser.add_argument('--scale', type=float, default=None,
                        help='Dequantization scale for uint8/int8 outputs')
    parser.add_argument('--zero-point', type=int, default=0,
                        help='Dequantization zero point for uint8/int8 outputs')
    args = parser.parse_args()

    raw_config = load_config(args.config)

    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(raw_config['log_path'], raw_config['log_level'])
    config = Config.from_dict(raw_config)

    background = None
    if args.background:
        background = cv2.imread(args.background)
        if background is None:
            logging.error(f"Could not read background image: {args.background}")
            sys.exit(1)

    logging.info(f"Replaying {len(args.outputs)} outputs")
    spoken = replay(
        config,
        args.outputs,
        annotate_dir=args.annotate,
        background=background,
        scale=args.scale,
        zero_point=args.zero_point,
    )
    for message in spoken:
        logging.info(f"Spoken: {message}")


if __name__ == "__main__":
    main()
