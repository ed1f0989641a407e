"""
Data structures for the TTC fusion gateway.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import numpy as np


@dataclass(frozen=True)
class LidarPoint:
    """Single LiDAR return in ego-vehicle coordinates."""
    x: float        # Forward distance in meters
    y: float        # Lateral offset in meters (left positive)
    z: float        # Height in meters
    r: float = 0.0  # Reflectivity

    @property
    def xyz(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class KeypointMatch:
    """Correspondence between a previous-frame and a current-frame keypoint."""
    prev_idx: int   # Index into previous frame keypoints
    curr_idx: int   # Index into current frame keypoints

    def positions(self, prev_keypoints: np.ndarray, curr_keypoints: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Resolve the pixel positions of both keypoints.

        Args:
            prev_keypoints: (N, 2) previous frame keypoints [u, v]
            curr_keypoints: (M, 2) current frame keypoints [u, v]

        Returns:
            (prev_uv, curr_uv) pixel positions

        Raises:
            IndexError: If either index is outside its keypoint list
        """
        if not 0 <= self.prev_idx < len(prev_keypoints):
            raise IndexError(f"prev_idx {self.prev_idx} out of range for {len(prev_keypoints)} keypoints")
        if not 0 <= self.curr_idx < len(curr_keypoints):
            raise IndexError(f"curr_idx {self.curr_idx} out of range for {len(curr_keypoints)} keypoints")
        return prev_keypoints[self.prev_idx], curr_keypoints[self.curr_idx]


@dataclass
class BoundingBox:
    """2D region of interest in image coordinates with its associated sensor data."""
    box_id: int             # Stable within one frame
    x: float                # Top-left x coordinate
    y: float                # Top-left y coordinate
    width: float            # Box width in pixels
    height: float           # Box height in pixels
    class_id: int = -1      # Detector class ID (-1 if unknown)
    confidence: float = 0.0  # Detector confidence (0-1)
    lidar_points: List[LidarPoint] = field(default_factory=list)
    kpt_matches: List[KeypointMatch] = field(default_factory=list)

    def roi(self) -> Tuple[float, float, float, float]:
        """Return (x, y, width, height)."""
        return (self.x, self.y, self.width, self.height)

    def contains(self, u: float, v: float) -> bool:
        """Half-open pixel test: x <= u < x + width and y <= v < y + height."""
        return self.x <= u < self.x + self.width and self.y <= v < self.y + self.height


@dataclass
class CameraCalibration:
    """Projection chain from LiDAR coordinates into the rectified image."""
    p_rect: np.ndarray  # (3, 4) rectified projection matrix
    r_rect: np.ndarray  # (4, 4) rectifying rotation (homogeneous)
    rt: np.ndarray      # (4, 4) LiDAR-to-camera extrinsics

    def __post_init__(self):
        self.p_rect = np.asarray(self.p_rect, dtype=np.float64)
        self.r_rect = np.asarray(self.r_rect, dtype=np.float64)
        self.rt = np.asarray(self.rt, dtype=np.float64)

        for name, matrix, shape in (('p_rect', self.p_rect, (3, 4)),
                                    ('r_rect', self.r_rect, (4, 4)),
                                    ('rt', self.rt, (4, 4))):
            if matrix.shape != shape:
                raise ValueError(f"{name} must have shape {shape}, got {matrix.shape}")

    @property
    def projection_matrix(self) -> np.ndarray:
        """Full (3, 4) chain P_rect @ R_rect @ RT."""
        return self.p_rect @ self.r_rect @ self.rt


@dataclass
class DataFrame:
    """Everything known about one camera/LiDAR frame."""
    frame_index: int
    keypoints: np.ndarray                      # (N, 2) keypoint pixel positions
    bounding_boxes: List[BoundingBox] = field(default_factory=list)
    lidar_points: List[LidarPoint] = field(default_factory=list)
    kpt_matches: List[KeypointMatch] = field(default_factory=list)  # Previous frame -> this frame
    image: Optional[np.ndarray] = None         # (H x W x 3) image, if recorded


TTC_SOURCE_LIDAR = 'lidar'
TTC_SOURCE_CAMERA = 'camera'

TTC_OK = 'ok'
TTC_NOT_CLOSING = 'not_closing'
TTC_NOT_COMPUTABLE = 'not_computable'


@dataclass
class TTCEstimate:
    """
    Time-to-collision estimate from a single sensor.

    status is one of:
        'ok'             - value holds a finite, positive TTC in seconds
        'not_closing'    - object holds distance or recedes; value is the raw
                           non-positive TTC, or inf when the distance is unchanged
        'not_computable' - inputs were degenerate; value is None
    """
    source: str
    status: str
    value: Optional[float] = None
    reason: str = ''

    @property
    def is_valid(self) -> bool:
        return self.status == TTC_OK

    @classmethod
    def ok(cls, source: str, value: float) -> 'TTCEstimate':
        return cls(source=source, status=TTC_OK, value=value)

    @classmethod
    def not_closing(cls, source: str, value: float, reason: str = '') -> 'TTCEstimate':
        return cls(source=source, status=TTC_NOT_CLOSING, value=value, reason=reason)

    @classmethod
    def not_computable(cls, source: str, reason: str) -> 'TTCEstimate':
        return cls(source=source, status=TTC_NOT_COMPUTABLE, value=None, reason=reason)

    def __str__(self) -> str:
        if self.status == TTC_OK:
            return f"{self.source}={self.value:.2f}s"
        if self.status == TTC_NOT_CLOSING:
            shown = 'inf' if self.value is not None and math.isinf(self.value) else f"{self.value:.2f}s"
            return f"{self.source}=not closing ({shown})"
        return f"{self.source}=n/a ({self.reason})"


@dataclass
class BoxTTCResult:
    """Both TTC estimates for one tracked box over a frame pair."""
    box_id: int                 # Box ID in the current frame
    prev_box_id: int            # Matched box ID in the previous frame
    lidar: TTCEstimate
    camera: TTCEstimate
    num_lidar_points_prev: int = 0  # After denoising
    num_lidar_points_curr: int = 0  # After denoising
    num_kpt_matches: int = 0        # After outlier removal
