"""
TTC Pipeline - Per-frame orchestration of LiDAR and camera TTC estimation.

This module wires the estimation stages together for a stream of frames.
Keeps the previous frame (boxes, keypoints and denoised LiDAR points) as the
only state carried between calls.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Tuple

from ttc_fusion.config.fusion_config import FusionConfig
from ttc_fusion.gateway.data_types import (
    BoundingBox, BoxTTCResult, CameraCalibration, DataFrame, LidarPoint
)
from ttc_fusion.perception.euclidean_clustering import remove_lidar_outliers
from ttc_fusion.perception.keypoint_association import (
    cluster_kpt_matches_with_roi, count_box_votes, match_bounding_boxes
)
from ttc_fusion.perception.lidar_association import cluster_lidar_with_roi
from ttc_fusion.perception.ttc_estimators import compute_ttc_camera, compute_ttc_lidar

logger = logging.getLogger(__name__)


class TTCPipeline:
    """
    Estimates LiDAR and camera TTC for every tracked box, one frame at a time.

    Per frame:
    1. Associate LiDAR points with the frame's boxes (shrunk ROIs)
    2. Denoise each box's points (largest Euclidean cluster)
    3. Match boxes to the previous frame by keypoint votes
    4. Per matched box: keypoint association, LiDAR TTC, camera TTC

    Per-box work in steps 2 and 4 runs on a persistent thread pool.
    """

    def __init__(self, config: FusionConfig, calibration: CameraCalibration):
        """
        Initialize pipeline.

        Args:
            config: Fusion configuration
            calibration: Projection chain from LiDAR into the image
        """
        self.config = config
        self.calibration = calibration

        # State carried to the next frame
        self.prev_frame: Optional[DataFrame] = None
        self.prev_denoised: Dict[int, List[LidarPoint]] = {}
        self.frame_count = 0

        self.executor = ThreadPoolExecutor(max_workers=self.config.max_workers, thread_name_prefix="BoxProcessor")
        logger.info(f"Initialized persistent ThreadPoolExecutor with {self.config.max_workers} workers")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self):
        """Shut down the thread pool."""
        self.executor.shutdown(wait=True)
        logger.info("ThreadPoolExecutor shut down")

    def reset(self):
        """Forget the previous frame, e.g. after a gap in the sequence."""
        self.prev_frame = None
        self.prev_denoised = {}

    def process_frame(self, frame: DataFrame) -> Dict[int, BoxTTCResult]:
        """
        Process one frame and estimate TTC against the previous one.

        Mutates the frame's boxes (lidar_points, kpt_matches).

        Args:
            frame: Current frame; its kpt_matches link the previous frame's keypoints to its own

        Returns:
            Dict {current box_id: BoxTTCResult}; empty for the first frame
        """
        frame_start = time.perf_counter()

        assigned = cluster_lidar_with_roi(
            frame.bounding_boxes, frame.lidar_points, self.config.shrink_factor, self.calibration
        )

        denoised: Dict[int, List[LidarPoint]] = {}
        for box, points in self._run_per_box(self._denoise_box, frame.bounding_boxes):
            denoised[box.box_id] = points

        results: Dict[int, BoxTTCResult] = {}
        if self.prev_frame is not None:
            if not frame.kpt_matches:
                logger.warning(f"Frame {frame.frame_index}: no keypoint matches to frame "
                               f"{self.prev_frame.frame_index}, boxes cannot be tracked")
            pairs = self._resolve_box_pairs(frame)
            curr_boxes = {b.box_id: b for b in frame.bounding_boxes}
            tasks = [(prev_id, curr_boxes[curr_id]) for curr_id, prev_id in pairs.items()]

            for _, result in self._run_per_box(
                lambda task: self._estimate_box_ttc(task[0], task[1], frame, denoised), tasks
            ):
                results[result.box_id] = result

        self.prev_frame = frame
        self.prev_denoised = denoised
        self.frame_count += 1

        frame_time = (time.perf_counter() - frame_start) * 1000
        logger.debug(f"Frame {frame.frame_index}: {len(frame.bounding_boxes)} boxes, {assigned} lidar points assigned, "
                     f"{len(results)} TTC results in {frame_time:.1f}ms")
        return results

    def _denoise_box(self, box: BoundingBox) -> List[LidarPoint]:
        return remove_lidar_outliers(box.lidar_points, self.config.cluster_tolerance)

    def _resolve_box_pairs(self, frame: DataFrame) -> Dict[int, int]:
        """
        Match current boxes to previous boxes.

        When several previous boxes pick the same current box, the one with
        most votes keeps it (earliest previous box on ties).

        Returns:
            Dict {curr_box_id: prev_box_id}
        """
        votes = count_box_votes(frame.kpt_matches, self.prev_frame, frame)
        best_matches = match_bounding_boxes(frame.kpt_matches, self.prev_frame, frame, votes=votes)

        prev_index = {b.box_id: i for i, b in enumerate(self.prev_frame.bounding_boxes)}
        curr_index = {b.box_id: i for i, b in enumerate(frame.bounding_boxes)}

        claims: Dict[int, Tuple[int, int]] = {}  # curr_id -> (prev_id, votes)
        for prev_id, curr_id in best_matches.items():
            count = int(votes[prev_index[prev_id], curr_index[curr_id]])
            if curr_id not in claims or count > claims[curr_id][1]:
                if curr_id in claims:
                    logger.debug(f"[BOX MATCH] Curr box {curr_id}: prev box {prev_id} replaces {claims[curr_id][0]}")
                claims[curr_id] = (prev_id, count)

        return {curr_id: prev_id for curr_id, (prev_id, _) in claims.items()}

    def _estimate_box_ttc(
        self,
        prev_box_id: int,
        curr_box: BoundingBox,
        frame: DataFrame,
        denoised: Dict[int, List[LidarPoint]]
    ) -> BoxTTCResult:
        """Compute both TTC estimates for one matched box."""
        prev_points = self.prev_denoised.get(prev_box_id, [])
        curr_points = denoised.get(curr_box.box_id, [])

        lidar_ttc = compute_ttc_lidar(
            prev_points, curr_points, self.config.frame_rate, lane_width=self.config.lane_width
        )

        kpt_matches = cluster_kpt_matches_with_roi(
            curr_box, self.prev_frame.keypoints, frame.keypoints, frame.kpt_matches,
            outlier_ratio=self.config.keypoint_outlier_ratio
        )
        camera_ttc = compute_ttc_camera(
            self.prev_frame.keypoints, frame.keypoints, kpt_matches, self.config.frame_rate,
            min_distance_px=self.config.min_keypoint_distance_px
        )

        return BoxTTCResult(
            box_id=curr_box.box_id,
            prev_box_id=prev_box_id,
            lidar=lidar_ttc,
            camera=camera_ttc,
            num_lidar_points_prev=len(prev_points),
            num_lidar_points_curr=len(curr_points),
            num_kpt_matches=len(kpt_matches)
        )

    def _run_per_box(self, func: Callable, items: List) -> List[Tuple[object, object]]:
        """
        Run `func` on every item, in parallel when there is more than one.

        A failing item is logged and left out; the other items still complete.

        Returns:
            List of (item, result) pairs in input order
        """
        results = {}

        if len(items) > 1:
            future_to_index = {self.executor.submit(func, item): i for i, item in enumerate(items)}

            for future in as_completed(future_to_index):
                i = future_to_index[future]
                try:
                    results[i] = future.result()
                except Exception as e:
                    # One failing box doesn't drop the frame
                    logger.error(f"Box processing failed for {self._describe(items[i])}: {e}", exc_info=True)
        else:
            for i, item in enumerate(items):
                try:
                    results[i] = func(item)
                except Exception as e:
                    logger.error(f"Box processing failed for {self._describe(items[i])}: {e}", exc_info=True)

        return [(items[i], results[i]) for i in sorted(results)]

    @staticmethod
    def _describe(item) -> str:
        if isinstance(item, BoundingBox):
            return f"box {item.box_id}"
        if isinstance(item, tuple) and len(item) == 2 and isinstance(item[1], BoundingBox):
            return f"box {item[1].box_id} (prev {item[0]})"
        return repr(item)
