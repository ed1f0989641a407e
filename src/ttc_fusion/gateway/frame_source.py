"""
Frame Source - Interface for accessing recorded or live sensor frames.

This module defines the abstract interface that any frame provider
(recorded dataset, simulator bridge, live vehicle) must implement.
Detection boxes, keypoints and keypoint matches arrive already computed
by external collaborators.
"""

from abc import ABC, abstractmethod
from typing import Iterator
from .data_types import CameraCalibration, DataFrame


class IFrameSource(ABC):
    """Abstract interface for sequential frame access."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of frames available."""
        pass

    @abstractmethod
    def get_frame(self, index: int) -> DataFrame:
        """
        Get one frame with boxes, keypoints, matches and LiDAR points.

        Args:
            index: Frame index (0-based)

        Returns:
            DataFrame for that index
        """
        pass

    @abstractmethod
    def get_calibration(self) -> CameraCalibration:
        """Get the camera/LiDAR projection chain for the sequence."""
        pass

    @property
    @abstractmethod
    def frame_rate(self) -> float:
        """Sensor frame rate in Hz."""
        pass

    def __iter__(self) -> Iterator[DataFrame]:
        for index in range(len(self)):
            yield self.get_frame(index)
