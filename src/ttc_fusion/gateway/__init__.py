"""
Gateway module for the TTC fusion system.

This module provides the abstraction layer between the estimation core and
the data providers (recorded datasets, simulators, vehicles). Contains the
shared data types and the frame source interface.
"""

from .frame_source import IFrameSource
from .data_types import (
    LidarPoint, KeypointMatch, BoundingBox, CameraCalibration, DataFrame,
    TTCEstimate, BoxTTCResult,
    TTC_SOURCE_LIDAR, TTC_SOURCE_CAMERA, TTC_OK, TTC_NOT_CLOSING, TTC_NOT_COMPUTABLE
)

__all__ = [
    # Frame access interface
    'IFrameSource',
    # Data types
    'LidarPoint', 'KeypointMatch', 'BoundingBox', 'CameraCalibration', 'DataFrame',
    'TTCEstimate', 'BoxTTCResult',
    # TTC tags
    'TTC_SOURCE_LIDAR', 'TTC_SOURCE_CAMERA', 'TTC_OK', 'TTC_NOT_CLOSING', 'TTC_NOT_COMPUTABLE'
]
