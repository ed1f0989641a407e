"""
Unit tests for the recorded .npz frame source.
"""

import numpy as np
import pytest
import yaml

from ttc_fusion.gateway import IFrameSource
from ttc_fusion.plant import NpzFrameSource


class TestNpzFrameSource:
    def test_sequence_metadata(self, sequence_dir, calibration):
        """Frame count, frame rate and calibration come from the directory"""
        source = NpzFrameSource(sequence_dir)
        assert isinstance(source, IFrameSource)
        assert len(source) == 2
        assert source.frame_rate == 10.0
        assert source.declared_frame_rate == 10.0
        assert np.allclose(source.get_calibration().projection_matrix, calibration.projection_matrix)

    def test_calibration_padded_to_homogeneous(self, sequence_dir):
        """3x3 rectification and 3x4 extrinsics are padded to 4x4"""
        calib = NpzFrameSource(sequence_dir).get_calibration()
        assert calib.r_rect.shape == (4, 4)
        assert calib.rt.shape == (4, 4)
        assert np.allclose(calib.rt[3], [0, 0, 0, 1])

    def test_frame_contents(self, sequence_dir):
        """Arrays are converted into gateway data types"""
        frame = NpzFrameSource(sequence_dir).get_frame(1)

        assert frame.frame_index == 1
        assert frame.keypoints.shape == (4, 2)
        assert len(frame.lidar_points) == 21 * 13
        assert frame.lidar_points[0].x == 8.0
        assert frame.lidar_points[0].r == 0.5
        assert [b.box_id for b in frame.bounding_boxes] == [0]
        assert frame.bounding_boxes[0].roi() == (300.0, 0.0, 400.0, 400.0)
        assert [(m.prev_idx, m.curr_idx) for m in frame.kpt_matches] == [(0, 0), (1, 1), (2, 2), (3, 3)]
        assert frame.image.shape == (400, 1000, 3)

    def test_optional_arrays_missing(self, sequence_dir):
        """The first frame has neither matches nor an image"""
        frame = NpzFrameSource(sequence_dir).get_frame(0)
        assert frame.kpt_matches == []
        assert frame.image is None

    def test_iteration_in_order(self, sequence_dir):
        """Iterating yields frames by index"""
        assert [f.frame_index for f in NpzFrameSource(sequence_dir)] == [0, 1]

    def test_default_frame_rate(self, sequence_dir):
        """Without a frame_rate entry the sensor default of 10 Hz applies"""
        with open(sequence_dir / 'calibration.yaml') as f:
            calib = yaml.safe_load(f)
        del calib['frame_rate']
        with open(sequence_dir / 'calibration.yaml', 'w') as f:
            yaml.safe_dump(calib, f)
        source = NpzFrameSource(sequence_dir)
        assert source.frame_rate == 10.0
        assert source.declared_frame_rate is None

    def test_empty_lidar_array(self, sequence_dir):
        """A frame without LiDAR returns loads with no points"""
        np.savez(sequence_dir / 'frame_0002.npz', lidar=np.zeros((0, 4)), keypoints=np.zeros((0, 2)),
                 boxes=np.zeros((0, 5)))
        frame = NpzFrameSource(sequence_dir).get_frame(2)
        assert frame.lidar_points == []
        assert frame.bounding_boxes == []
        assert frame.keypoints.shape == (0, 2)

    def test_missing_directory(self, tmp_path):
        """A non-existent directory is reported"""
        with pytest.raises(FileNotFoundError):
            NpzFrameSource(tmp_path / 'nope')

    def test_missing_calibration(self, tmp_path):
        """A directory without calibration is reported"""
        with pytest.raises(FileNotFoundError):
            NpzFrameSource(tmp_path)

    def test_calibration_missing_key(self, sequence_dir):
        """Incomplete calibration is a data error"""
        with open(sequence_dir / 'calibration.yaml', 'w') as f:
            yaml.safe_dump({'P_rect_00': np.zeros((3, 4)).tolist()}, f)
        with pytest.raises(ValueError):
            NpzFrameSource(sequence_dir)

    def test_calibration_bad_shape(self, sequence_dir):
        """Extrinsics of the wrong shape are rejected"""
        with open(sequence_dir / 'calibration.yaml') as f:
            calib = yaml.safe_load(f)
        calib['RT'] = np.eye(2).tolist()
        with open(sequence_dir / 'calibration.yaml', 'w') as f:
            yaml.safe_dump(calib, f)
        with pytest.raises(ValueError):
            NpzFrameSource(sequence_dir)

    def test_frame_missing_array(self, sequence_dir):
        """A frame without boxes is a data error"""
        np.savez(sequence_dir / 'frame_0002.npz', lidar=np.zeros((1, 4)), keypoints=np.zeros((1, 2)))
        source = NpzFrameSource(sequence_dir)
        with pytest.raises(ValueError):
            source.get_frame(2)

    def test_frame_wrong_columns(self, sequence_dir):
        """LiDAR arrays without reflectivity are rejected"""
        np.savez(sequence_dir / 'frame_0002.npz', lidar=np.zeros((5, 3)), keypoints=np.zeros((1, 2)),
                 boxes=np.zeros((1, 5)))
        source = NpzFrameSource(sequence_dir)
        with pytest.raises(ValueError):
            source.get_frame(2)

    @pytest.mark.parametrize("index", [-1, 2])
    def test_index_out_of_range(self, sequence_dir, index):
        """Indices outside the sequence raise IndexError"""
        with pytest.raises(IndexError):
            NpzFrameSource(sequence_dir).get_frame(index)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
