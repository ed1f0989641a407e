"""
Recorded sequence frame source.

Reads a directory holding a calibration file and one ``.npz`` archive per
frame, produced offline by the detector and keypoint matcher. Implements
the IFrameSource interface.

Directory layout:
    calibration.yaml    P_rect_00 (3x4), R_rect_00 (3x3 or 4x4), RT (3x4 or 4x4), optional frame_rate
    frame_0000.npz      lidar (N,4) x,y,z,r | keypoints (M,2) | boxes (K,5) id,x,y,w,h
    frame_0001.npz      ... plus matches (L,2) prev_idx,curr_idx
"""

import logging
from pathlib import Path
from typing import List, Optional, Union
import numpy as np
import yaml

from ttc_fusion.gateway.frame_source import IFrameSource
from ttc_fusion.gateway.data_types import (
    BoundingBox, CameraCalibration, DataFrame, KeypointMatch, LidarPoint
)

logger = logging.getLogger(__name__)

DEFAULT_FRAME_RATE = 10.0


def _to_homogeneous(matrix: np.ndarray, name: str) -> np.ndarray:
    """Pad a 3x3 rotation or 3x4 rigid transform to 4x4."""
    if matrix.shape == (4, 4):
        return matrix
    padded = np.eye(4)
    if matrix.shape == (3, 3):
        padded[:3, :3] = matrix
    elif matrix.shape == (3, 4):
        padded[:3, :] = matrix
    else:
        raise ValueError(f"{name} must be 3x3, 3x4 or 4x4, got {matrix.shape}")
    return padded


class NpzFrameSource(IFrameSource):
    """Frame source backed by per-frame .npz archives."""

    def __init__(self, data_dir: Union[str, Path], calibration_file: str = 'calibration.yaml'):
        """
        Initialize frame source.

        Args:
            data_dir: Directory holding the calibration file and frame archives
            calibration_file: Calibration file name inside data_dir

        Raises:
            FileNotFoundError: If the directory or calibration file is missing
        """
        self.data_dir = Path(data_dir)
        if not self.data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {self.data_dir}")

        calibration_path = self.data_dir / calibration_file
        if not calibration_path.exists():
            raise FileNotFoundError(f"Calibration file not found: {calibration_path}")

        with open(calibration_path, 'r') as f:
            self.calibration_config = yaml.safe_load(f) or {}

        self._calibration = self._load_calibration(self.calibration_config)
        declared = self.calibration_config.get('frame_rate')
        # None when the recording does not state its rate
        self.declared_frame_rate: Optional[float] = float(declared) if declared is not None else None
        self._frame_rate = self.declared_frame_rate if declared is not None else DEFAULT_FRAME_RATE
        self.frame_files: List[Path] = sorted(self.data_dir.glob('frame_*.npz'))

        logger.info(f"Loaded sequence {self.data_dir}: {len(self.frame_files)} frames at {self._frame_rate} Hz")

    @staticmethod
    def _load_calibration(config: dict) -> CameraCalibration:
        try:
            p_rect = np.array(config['P_rect_00'], dtype=np.float64)
            r_rect = np.array(config['R_rect_00'], dtype=np.float64)
            rt = np.array(config['RT'], dtype=np.float64)
        except KeyError as e:
            raise ValueError(f"Calibration is missing {e}") from e

        return CameraCalibration(
            p_rect=p_rect,
            r_rect=_to_homogeneous(r_rect, 'R_rect_00'),
            rt=_to_homogeneous(rt, 'RT')
        )

    def __len__(self) -> int:
        return len(self.frame_files)

    @property
    def frame_rate(self) -> float:
        return self._frame_rate

    def get_calibration(self) -> CameraCalibration:
        return self._calibration

    def get_frame(self, index: int) -> DataFrame:
        """
        Load one frame.

        Args:
            index: Frame index (0-based)

        Returns:
            DataFrame with boxes, keypoints, matches and LiDAR points
        """
        if not 0 <= index < len(self.frame_files):
            raise IndexError(f"Frame index {index} out of range for {len(self.frame_files)} frames")

        path = self.frame_files[index]
        with np.load(path) as archive:
            lidar = self._read_array(archive, 'lidar', 4, path)
            keypoints = self._read_array(archive, 'keypoints', 2, path)
            boxes = self._read_array(archive, 'boxes', 5, path)
            matches = self._read_array(archive, 'matches', 2, path) if 'matches' in archive else np.zeros((0, 2))
            image = archive['image'] if 'image' in archive else None

        frame = DataFrame(
            frame_index=index,
            keypoints=keypoints.astype(np.float64),
            bounding_boxes=[
                BoundingBox(box_id=int(b[0]), x=float(b[1]), y=float(b[2]), width=float(b[3]), height=float(b[4]))
                for b in boxes
            ],
            lidar_points=[LidarPoint(float(p[0]), float(p[1]), float(p[2]), float(p[3])) for p in lidar],
            kpt_matches=[KeypointMatch(prev_idx=int(m[0]), curr_idx=int(m[1])) for m in matches],
            image=image
        )

        logger.debug(f"Frame {index}: {len(frame.lidar_points)} lidar points, {len(frame.keypoints)} keypoints, "
                     f"{len(frame.bounding_boxes)} boxes, {len(frame.kpt_matches)} matches")
        return frame

    @staticmethod
    def _read_array(archive, key: str, columns: int, path: Path) -> np.ndarray:
        if key not in archive:
            raise ValueError(f"{path.name} has no '{key}' array")
        array = np.asarray(archive[key])
        if array.size == 0:
            return np.zeros((0, columns))
        if array.ndim != 2 or array.shape[1] != columns:
            raise ValueError(f"{path.name}: '{key}' must have shape (N, {columns}), got {array.shape}")
        return array
