"""
Configuration dataclass for the TTC fusion pipeline.

This module centralizes all estimation-related configuration parameters
to provide a single source of truth for tuning the LiDAR and camera TTC paths.
"""

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Union

import yaml

logger = logging.getLogger(__name__)


@dataclass
class FusionConfig:
    """Configuration for the TTC fusion pipeline."""

    # Sensor timing
    frame_rate: float = 10.0

    # LiDAR-to-ROI association
    shrink_factor: float = 0.10

    # LiDAR denoising (Euclidean clustering)
    cluster_tolerance: float = 0.1

    # LiDAR TTC: only points inside the ego lane count
    lane_width: float = 4.0

    # Keypoint association outlier rejection
    keypoint_outlier_ratio: float = 1.5

    # Camera TTC: minimum current-frame distance between two keypoints (pixels)
    min_keypoint_distance_px: float = 100.0

    # Parallel per-box processing
    max_workers: int = 4


def load_fusion_config(config_path: Union[str, Path]) -> FusionConfig:
    """
    Load a FusionConfig from a YAML file.

    The file may either hold the parameters at top level or nest them
    under a ``fusion:`` section. Parameters that are not present keep
    their dataclass defaults.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Populated FusionConfig

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file holds unknown keys or is not a mapping
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")

    section = raw.get('fusion', raw)
    if not isinstance(section, dict):
        raise ValueError(f"'fusion' section in {config_path} must be a mapping")

    known = {f.name for f in fields(FusionConfig)}
    unknown = set(section) - known
    if unknown:
        raise ValueError(f"Unknown fusion config keys in {config_path}: {sorted(unknown)}")

    config = FusionConfig(**section)
    logger.info(f"Loaded fusion config from {config_path}: {config}")
    return config
