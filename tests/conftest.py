"""
Shared fixtures for the TTC fusion tests.
"""

import os
import sys

import numpy as np
import pytest
import yaml

# Project root (run_ttc.py) and src/ layout for runs without an installed package
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, os.path.join(PROJECT_ROOT, 'src'))
sys.path.insert(0, PROJECT_ROOT)

from ttc_fusion.gateway.data_types import CameraCalibration  # noqa: E402

# Pinhole camera looking along LiDAR +x: u = CX - F*y/x, v = CY - F*z/x
F = 100.0
CX = 500.0
CY = 200.0


def make_calibration() -> CameraCalibration:
    p_rect = np.array([
        [F, 0, CX, 0],
        [0, F, CY, 0],
        [0, 0, 1, 0]
    ], dtype=float)
    # LiDAR (x fwd, y left, z up) -> camera (x right, y down, z fwd)
    rt = np.array([
        [0, -1, 0, 0],
        [0, 0, -1, 0],
        [1, 0, 0, 0],
        [0, 0, 0, 1]
    ], dtype=float)
    return CameraCalibration(p_rect=p_rect, r_rect=np.eye(4), rt=rt)


@pytest.fixture
def calibration() -> CameraCalibration:
    return make_calibration()


def car_scene_arrays(x, scale):
    """LiDAR returns of a car rear at distance x and keypoints spread by `scale` around the image center."""
    ys, zs = np.meshgrid(np.linspace(-0.5, 0.5, 21), np.linspace(-0.3, 0.3, 13))
    lidar = np.column_stack([np.full(ys.size, x), ys.ravel(), zs.ravel(), np.full(ys.size, 0.5)])
    offsets = np.array([[100.0, 0.0], [-100.0, 0.0], [0.0, 100.0], [0.0, -100.0]])
    keypoints = np.array([CX, CY]) + offsets * scale
    return lidar, keypoints


@pytest.fixture
def sequence_dir(tmp_path):
    """Two-frame recorded sequence: a car closing from 10 m to 8 m at 10 Hz."""
    calib = make_calibration()
    calibration_yaml = {
        'P_rect_00': calib.p_rect.tolist(),
        'R_rect_00': np.eye(3).tolist(),
        'RT': calib.rt[:3, :].tolist(),
        'frame_rate': 10.0
    }
    with open(tmp_path / 'calibration.yaml', 'w') as f:
        yaml.safe_dump(calibration_yaml, f)

    boxes = np.array([[0, 300, 0, 400, 400]], dtype=float)
    lidar, keypoints = car_scene_arrays(10.0, 1.0)
    np.savez(tmp_path / 'frame_0000.npz', lidar=lidar, keypoints=keypoints, boxes=boxes)

    lidar, keypoints = car_scene_arrays(8.0, 1.25)
    matches = np.array([[i, i] for i in range(4)])
    np.savez(tmp_path / 'frame_0001.npz', lidar=lidar, keypoints=keypoints, boxes=boxes, matches=matches,
             image=np.zeros((400, 1000, 3), dtype=np.uint8))
    return tmp_path
