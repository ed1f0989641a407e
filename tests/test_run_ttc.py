"""
End-to-end test of the recorded-sequence runner.
"""

import logging
import sys

import pytest
import yaml

import run_ttc


class TestRunTTC:
    def test_runs_sequence(self, sequence_dir, tmp_path, monkeypatch, caplog):
        """The runner processes every frame and logs the TTC of the tracked box"""
        out_dir = tmp_path / 'topview'
        monkeypatch.setattr(sys, 'argv', [
            'run_ttc.py', '--data-dir', str(sequence_dir), '--top-view-dir', str(out_dir)
        ])

        with caplog.at_level(logging.INFO):
            assert run_ttc.main() == 0

        assert sorted(p.name for p in out_dir.iterdir()) == ['topview_0000.png', 'topview_0001.png']
        assert any("lidar=0.40s" in r.getMessage() and "camera=0.40s" in r.getMessage() for r in caplog.records)

    def test_sequence_frame_rate_overrides_config(self, sequence_dir, tmp_path, monkeypatch, caplog):
        """A frame rate stated in calibration.yaml wins over the config file"""
        config_path = tmp_path / 'cfg.yaml'
        config_path.write_text("fusion:\n  frame_rate: 25.0\n  max_workers: 2\n")
        monkeypatch.setattr(sys, 'argv', [
            'run_ttc.py', '--data-dir', str(sequence_dir), '--config', str(config_path)
        ])

        with caplog.at_level(logging.INFO):
            assert run_ttc.main() == 0

        # 10 Hz from the sequence: 8 * 0.1 / 2
        assert any("lidar=0.40s" in r.getMessage() and "camera=0.40s" in r.getMessage() for r in caplog.records)

    def test_config_frame_rate_kept_when_sequence_silent(self, sequence_dir, tmp_path, monkeypatch, caplog):
        """Without a frame rate in calibration.yaml the configured rate is used"""
        calibration_path = sequence_dir / 'calibration.yaml'
        with open(calibration_path) as f:
            calibration = yaml.safe_load(f)
        del calibration['frame_rate']
        with open(calibration_path, 'w') as f:
            yaml.safe_dump(calibration, f)

        config_path = tmp_path / 'cfg.yaml'
        config_path.write_text("fusion:\n  frame_rate: 20.0\n")
        monkeypatch.setattr(sys, 'argv', [
            'run_ttc.py', '--data-dir', str(sequence_dir), '--config', str(config_path)
        ])

        with caplog.at_level(logging.INFO):
            assert run_ttc.main() == 0

        # 20 Hz from the config: 8 * 0.05 / 2
        messages = [r.getMessage() for r in caplog.records]
        assert any("lidar=0.20s" in m and "camera=0.20s" in m for m in messages)
        assert not any("Using sequence frame rate" in m for m in messages)

    def test_setup_logging_leaves_other_loggers_alone(self):
        """Only the root configuration is touched"""
        before = {name: logging.getLogger(name).level for name in ('PIL', 'matplotlib')}
        run_ttc.setup_logging(verbose=True)
        assert {name: logging.getLogger(name).level for name in before} == before

    def test_missing_data_dir(self, tmp_path, monkeypatch):
        """A missing sequence directory is reported"""
        monkeypatch.setattr(sys, 'argv', ['run_ttc.py', '--data-dir', str(tmp_path / 'nope')])
        with pytest.raises(FileNotFoundError):
            run_ttc.main()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
