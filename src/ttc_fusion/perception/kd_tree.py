"""
3D k-d tree for radius-bounded neighbor queries on LiDAR points.

Built once per clustering call and discarded afterwards, so there is no
deletion or rebalancing. Both insertion and search are iterative, which
keeps degenerate (e.g. collinear, sorted) input from hitting the
interpreter recursion limit.
"""

import math
from typing import Iterable, List, Optional, Sequence, Set, Tuple

Point3 = Tuple[float, float, float]

DIMENSIONS = 3


def _as_point(point: Sequence[float]) -> Point3:
    return (float(point[0]), float(point[1]), float(point[2]))


class KdNode:
    """Tree node. Children are owned exclusively by their parent."""

    __slots__ = ('point', 'index', 'left', 'right')

    def __init__(self, point: Point3, index: int):
        self.point = point
        self.index = index
        self.left: Optional['KdNode'] = None
        self.right: Optional['KdNode'] = None


class KdTree:
    """
    k-d tree over 3D points tagged with their source index.

    The split axis cycles x, y, z with depth. Points whose coordinate on the
    split axis is strictly smaller than the node's go left, all others right.
    """

    def __init__(self):
        self.root: Optional[KdNode] = None
        self._indices: Set[int] = set()

    @classmethod
    def from_points(cls, points: Iterable[Sequence[float]]) -> 'KdTree':
        """Build a tree holding every point, tagged with its position in `points`."""
        tree = cls()
        for index, point in enumerate(points):
            tree.insert(point, index)
        return tree

    def __len__(self) -> int:
        return len(self._indices)

    def insert(self, point: Sequence[float], index: int) -> None:
        """
        Insert a point tagged with its source index.

        Args:
            point: (x, y, z) coordinates (extra trailing values are ignored)
            index: Index of the point in the source sequence

        Raises:
            ValueError: If the index is already stored
        """
        if index in self._indices:
            raise ValueError(f"Index {index} already present in k-d tree")

        new_node = KdNode(_as_point(point), index)
        self._indices.add(index)

        if self.root is None:
            self.root = new_node
            return

        node = self.root
        depth = 0
        while True:
            axis = depth % DIMENSIONS
            if new_node.point[axis] < node.point[axis]:
                if node.left is None:
                    node.left = new_node
                    return
                node = node.left
            else:
                if node.right is None:
                    node.right = new_node
                    return
                node = node.right
            depth += 1

    def search(self, point: Sequence[float], tolerance: float) -> List[int]:
        """
        Find every stored point within `tolerance` (Euclidean) of `point`.

        Subtrees are pruned per split axis: the left subtree can only hold
        coordinates below the node's, the right subtree coordinates at or
        above it.

        Args:
            point: Query (x, y, z)
            tolerance: Search radius in meters (inclusive)

        Returns:
            Source indices of all points with distance <= tolerance, in
            depth-first (node, left, right) order
        """
        if tolerance < 0:
            raise ValueError(f"tolerance must be non-negative, got {tolerance}")

        target = _as_point(point)
        found: List[int] = []

        stack: List[Tuple[KdNode, int]] = []
        if self.root is not None:
            stack.append((self.root, 0))

        while stack:
            node, depth = stack.pop()

            if math.dist(target, node.point) <= tolerance:
                found.append(node.index)

            axis = depth % DIMENSIONS
            # Right pushed first so the left subtree is explored first
            if node.right is not None and target[axis] + tolerance >= node.point[axis]:
                stack.append((node.right, depth + 1))
            if node.left is not None and target[axis] - tolerance < node.point[axis]:
                stack.append((node.left, depth + 1))

        return found
