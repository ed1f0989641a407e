"""
Plant module for frame providers.

This module provides concrete IFrameSource implementations that turn
recorded sensor data into the abstract gateway data types.
"""

from .npz_frame_source import NpzFrameSource

__all__ = [
    'NpzFrameSource'
]
