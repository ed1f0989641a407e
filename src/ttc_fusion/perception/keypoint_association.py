"""
Association of keypoint matches with bounding boxes.

Covers two tasks driven by the same keypoint correspondences:
assigning matches to a box (with displacement-based outlier removal) and
matching box identities between consecutive frames by vote counting.
"""

import logging
from typing import Dict, List, Optional
import numpy as np

from ttc_fusion.gateway.data_types import BoundingBox, DataFrame, KeypointMatch

logger = logging.getLogger(__name__)


def cluster_kpt_matches_with_roi(
    box: BoundingBox,
    prev_keypoints: np.ndarray,
    curr_keypoints: np.ndarray,
    matches: List[KeypointMatch],
    outlier_ratio: float = 1.5
) -> List[KeypointMatch]:
    """
    Assign keypoint matches to a box and drop displacement outliers.

    A match belongs to the box when its current-frame keypoint lies inside
    the (unshrunk) box. Matches whose prev->curr displacement is at least
    `outlier_ratio` times the mean displacement are removed. The mean is
    computed once, before removal.

    Args:
        box: Bounding box in the current frame (its kpt_matches are replaced)
        prev_keypoints: (N, 2) previous frame keypoints
        curr_keypoints: (M, 2) current frame keypoints
        matches: All matches between the two frames
        outlier_ratio: Displacement threshold relative to the mean

    Returns:
        Matches kept for the box

    Raises:
        IndexError: If a match refers to a keypoint that does not exist
    """
    assigned = []
    displacements = []
    for match in matches:
        prev_uv, curr_uv = match.positions(prev_keypoints, curr_keypoints)
        if box.contains(curr_uv[0], curr_uv[1]):
            assigned.append(match)
            displacements.append(float(np.linalg.norm(np.asarray(curr_uv) - np.asarray(prev_uv))))

    if not assigned:
        logger.debug(f"[KPT ROI] Box {box.box_id}: no matches inside box")
        box.kpt_matches = []
        return box.kpt_matches

    mean = float(np.mean(displacements))
    if mean <= 0.0:
        logger.debug(f"[KPT ROI] Box {box.box_id}: zero mean displacement over {len(assigned)} matches, none kept")
        box.kpt_matches = []
        return box.kpt_matches

    threshold = outlier_ratio * mean
    box.kpt_matches = [m for m, d in zip(assigned, displacements) if d < threshold]

    logger.debug(f"[KPT ROI] Box {box.box_id}: {len(assigned)} matches in box, mean displacement {mean:.2f}px, "
                 f"{len(box.kpt_matches)} kept below {threshold:.2f}px")
    return box.kpt_matches


def count_box_votes(
    matches: List[KeypointMatch],
    prev_frame: DataFrame,
    curr_frame: DataFrame
) -> np.ndarray:
    """
    Count, for every (previous box, current box) pair, the matches linking them.

    A match votes for the pair when its previous keypoint is inside the
    previous box and its current keypoint is inside the current box.

    Returns:
        (num_prev_boxes, num_curr_boxes) integer vote matrix, ordered like
        the frames' bounding_boxes lists
    """
    prev_boxes = prev_frame.bounding_boxes
    curr_boxes = curr_frame.bounding_boxes
    votes = np.zeros((len(prev_boxes), len(curr_boxes)), dtype=np.int64)
    if not matches or not prev_boxes or not curr_boxes:
        return votes

    prev_in = np.zeros((len(matches), len(prev_boxes)), dtype=np.int64)
    curr_in = np.zeros((len(matches), len(curr_boxes)), dtype=np.int64)
    for m_idx, match in enumerate(matches):
        prev_uv, curr_uv = match.positions(prev_frame.keypoints, curr_frame.keypoints)
        for b_idx, b in enumerate(prev_boxes):
            prev_in[m_idx, b_idx] = b.contains(prev_uv[0], prev_uv[1])
        for b_idx, b in enumerate(curr_boxes):
            curr_in[m_idx, b_idx] = b.contains(curr_uv[0], curr_uv[1])

    # (P, M) @ (M, C) -> (P, C)
    return prev_in.T @ curr_in


def match_bounding_boxes(
    matches: List[KeypointMatch],
    prev_frame: DataFrame,
    curr_frame: DataFrame,
    votes: Optional[np.ndarray] = None
) -> Dict[int, int]:
    """
    Match each previous-frame box to the current-frame box sharing most keypoint matches.

    Ties go to the lowest current box ID. Previous boxes that share no
    match with any current box stay unmatched.

    Args:
        matches: Keypoint matches from prev_frame to curr_frame
        prev_frame: Previous frame with boxes and keypoints
        curr_frame: Current frame with boxes and keypoints
        votes: Vote matrix from count_box_votes, computed if not given

    Returns:
        Dict {prev_box_id: curr_box_id}
    """
    if votes is None:
        votes = count_box_votes(matches, prev_frame, curr_frame)
    curr_ids = [b.box_id for b in curr_frame.bounding_boxes]
    best_matches: Dict[int, int] = {}

    if votes.size == 0:
        return best_matches

    # Visit current boxes in ID order so argmax resolves ties to the lowest ID
    order = np.argsort(curr_ids, kind='stable')
    for prev_idx, prev_box in enumerate(prev_frame.bounding_boxes):
        row = votes[prev_idx, order]
        best = int(np.argmax(row))
        if row[best] == 0:
            logger.debug(f"[BOX MATCH] Prev box {prev_box.box_id}: no shared keypoints")
            continue
        curr_id = curr_ids[order[best]]
        best_matches[prev_box.box_id] = curr_id
        logger.debug(f"[BOX MATCH] {prev_box.box_id} => {curr_id} ({int(row[best])} votes)")

    return best_matches
