"""
Radial tree layout.

Every root sits at the layout center and each level of the hierarchy is
arranged on a ring around its parent. Rings grow with depth and with the
number of siblings they must hold. An optional relaxation pass then pushes
apart nodes closer than the minimum separation, and a final clamp keeps
everything inside the canvas.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Optional
import logging
import math

import numpy as np

from .config import LayoutConfig, LayoutResult, LayoutType
from .engine import LayoutEngine
from .errors import InvalidOperationError
from .geom import (
    LayoutBounds,
    Point,
    calculate_radius,
    cartesian_to_polar,
    distance,
    distribute_angles,
    polar_to_cartesian,
)
from .models import NodeId

if TYPE_CHECKING:
    from .graph import Graph

logger = logging.getLogger(__name__)

# floor on the separation enforced by collision resolution
MIN_SEPARATION = 50.0
# extra clearance added to node_size by the minimum-angle ring radius
ANGLE_CLEARANCE = 20.0


class RadialLayout(LayoutEngine):
    """
    Concentric ring layout of the parent/child hierarchy.

    A node at depth d lies on a circle around its parent of radius::

        max(base_radius + d * radius_increment,
            calculate_radius(k, min_distance, node_size),
            (node_size + 20) / (2 * sin(min_angle / 2)))   # k > 1 only

    where k is the number of siblings sharing the ring. The children of a
    root are at depth 1. Below the roots, children are
    rotated so that they straddle the direction pointing away from the
    grandparent and none of them points straight back at it.
    """

    layout_type = LayoutType.radial
    parameter_names = (
        "base_radius",
        "radius_increment",
        "min_angle",
        "start_angle",
        "max_depth",
        "node_size",
        "resolve_collisions",
        "collision_iterations",
        "constrain_to_canvas",
    )
    integer_parameters = ("max_depth",)

    def __init__(
        self,
        base_radius: float = 150.0,
        radius_increment: float = 100.0,
        min_angle: float = math.pi / 12.0,
        start_angle: float = 0.0,
        max_depth: Optional[int] = None,
        node_size: float = 40.0,
        resolve_collisions: bool = True,
        collision_iterations: int = 50,
        constrain_to_canvas: bool = True
    ):
        """
        Initialize the radial layout engine.

        Args:
            base_radius: Ring radius at depth 0, before the first increment
            radius_increment: Added to the ring radius per level of depth
            min_angle: Smallest angle wanted between neighbouring siblings
            start_angle: Angle of the first child of each root
            max_depth: Nodes deeper than this are left out of the result
            node_size: Diameter assumed for every node
            resolve_collisions: Push overlapping nodes apart after placement
            collision_iterations: Upper bound on relaxation passes
            constrain_to_canvas: Clamp the result into the canvas minus margin
        """
        self.base_radius = base_radius
        self.radius_increment = radius_increment
        self.min_angle = min_angle
        self.start_angle = start_angle
        self.max_depth = max_depth
        self.node_size = node_size
        self.resolve_collisions = resolve_collisions
        self.collision_iterations = collision_iterations
        self.constrain_to_canvas = constrain_to_canvas

    def validate_parameters(self) -> None:
        if not self.base_radius > 0:
            raise InvalidOperationError("base_radius must be positive")
        if not self.radius_increment > 0:
            raise InvalidOperationError("radius_increment must be positive")
        if not 0 < self.min_angle < math.pi:
            raise InvalidOperationError("min_angle must be between 0 and pi")
        if not self.node_size > 0:
            raise InvalidOperationError("node_size must be positive")
        if not math.isfinite(self.start_angle):
            raise InvalidOperationError("start_angle must be finite")
        if self.max_depth is not None and self.max_depth < 0:
            raise InvalidOperationError("max_depth cannot be negative")
        if self.collision_iterations < 0:
            raise InvalidOperationError("collision_iterations cannot be negative")

    def ring_radius(self, depth: int, child_count: int, min_distance: float) -> float:
        """
        Radius of the ring holding child_count siblings at depth.

        Args:
            depth: Depth of the nodes on the ring, roots being 0
            child_count: Number of children on the ring
            min_distance: Minimum gap between node centers

        Returns:
            The ring radius
        """
        radius = max(self.base_radius + depth * self.radius_increment,
                     calculate_radius(child_count, min_distance, self.node_size))
        if child_count > 1:
            radius = max(radius, (self.node_size + ANGLE_CLEARANCE) /
                         (2.0 * math.sin(self.min_angle / 2.0)))
        return radius

    def _layout(self, graph: Graph, config: LayoutConfig) -> LayoutResult:
        roots = graph.get_root_nodes()
        if not roots:
            return LayoutResult.empty(self.layout_type)

        positions: dict[NodeId, Point] = {}
        for root in roots:
            anchor = config.center
            if config.preserve_positions and root.position.is_finite():
                anchor = root.position
            self._place_tree(graph, root.id, anchor, config, positions)

        skipped = graph.node_count() - len(positions)
        if skipped:
            logger.debug("Radial layout left out %d nodes deeper than %s", skipped, self.max_depth)

        if self.resolve_collisions and len(positions) > 1:
            separation = max(config.min_distance + self.node_size, MIN_SEPARATION)
            pinned = {root.id for root in roots}
            positions = resolve_collisions(positions, pinned, separation,
                                           self.collision_iterations)

        if self.constrain_to_canvas:
            inner = config.inner_bounds()
            positions = {node_id: clamp_point(p, inner) for node_id, p in positions.items()}

        return LayoutResult(
            positions=positions,
            bounds=LayoutBounds.from_points(positions.values()),
            iterations=1,
            energy=edge_length_energy(graph, positions),
            converged=True,
        )

    def _place_tree(
        self,
        graph: Graph,
        root_id: NodeId,
        anchor: Point,
        config: LayoutConfig,
        positions: dict[NodeId, Point]
    ) -> None:
        """Breadth-first placement of one root and its descendants."""
        positions[root_id] = anchor
        # outward angle of each placed node as seen from its parent
        outward: dict[NodeId, float] = {}
        queue = deque([(root_id, 0)])

        while queue:
            node_id, depth = queue.popleft()
            if self.max_depth is not None and depth >= self.max_depth:
                continue
            children = graph.get_children(node_id)
            k = len(children)
            if k == 0:
                continue

            if node_id in outward:
                offset = outward[node_id] + math.pi + math.pi / k
            else:
                offset = self.start_angle

            radius = self.ring_radius(depth + 1, k, config.min_distance)
            center = positions[node_id]
            for child, angle in zip(children, distribute_angles(k, offset)):
                positions[child.id] = polar_to_cartesian(radius, angle, center)
                outward[child.id] = cartesian_to_polar(positions[child.id], center)[1]
                queue.append((child.id, depth + 1))


def resolve_collisions(
    positions: dict[NodeId, Point],
    pinned: set[NodeId],
    separation: float,
    iterations: int
) -> dict[NodeId, Point]:
    """
    Push apart every pair of nodes closer than separation.

    Each pass moves both nodes of an overlapping pair half the overlap along
    the line joining them; a node paired with a pinned one takes the whole
    overlap. Coincident pairs are split along a direction derived from their
    indices so the result stays deterministic.

    Args:
        positions: Node positions to relax
        pinned: Nodes that must not move
        separation: Wanted minimum distance between any two nodes
        iterations: Maximum number of relaxation passes

    Returns:
        New position mapping with the same keys
    """
    ids = list(positions)
    n = len(ids)
    x = np.array([[positions[i].x for i in ids], [positions[i].y for i in ids]], dtype=float)
    fixed = np.array([i in pinned for i in ids], dtype=bool)
    if fixed.all():
        return dict(positions)

    diagonal = np.eye(n, dtype=bool)
    lo, hi = np.minimum.outer(np.arange(n), np.arange(n)), np.maximum.outer(np.arange(n), np.arange(n))
    # antisymmetric fallback directions for coincident pairs
    theta = (lo * 2.399963 + hi * 0.618034) % (2.0 * math.pi)
    sign = np.where(np.arange(n)[:, np.newaxis] < np.arange(n)[np.newaxis, :], -1.0, 1.0)
    fallback = np.stack([np.cos(theta) * sign, np.sin(theta) * sign])

    # a free node whose partner is pinned absorbs the whole push
    share = np.where(fixed[np.newaxis, :], 1.0, 0.5)

    passes = 0
    for _ in range(iterations):
        diff = x[:, :, np.newaxis] - x[:, np.newaxis, :]
        dist = np.sqrt(np.sum(diff ** 2, axis=0))
        overlap = (dist < separation) & ~diagonal & ~(fixed[:, np.newaxis] & fixed[np.newaxis, :])
        if not overlap.any():
            break

        coincident = dist < 1e-9
        safe = np.where(coincident, 1.0, dist)
        direction = np.where(coincident[np.newaxis, :, :], fallback, diff / safe[np.newaxis, :, :])
        push = np.where(overlap, (separation - dist) * share, 0.0)
        displacement = np.sum(direction * push[np.newaxis, :, :], axis=2)
        displacement[:, fixed] = 0.0
        x += displacement
        passes += 1

    logger.debug("Collision resolution ran %d passes", passes)
    return {node_id: Point(float(x[0, i]), float(x[1, i])) for i, node_id in enumerate(ids)}


def clamp_point(p: Point, bounds: LayoutBounds) -> Point:
    return Point(min(max(p.x, bounds.min_x), bounds.max_x),
                 min(max(p.y, bounds.min_y), bounds.max_y))


def edge_length_energy(graph: Graph, positions: dict[NodeId, Point]) -> float:
    """Total length of the explicit edges whose endpoints were both placed."""
    total = 0.0
    for edge in graph.edges():
        a = positions.get(edge.from_node)
        b = positions.get(edge.to_node)
        if a is not None and b is not None:
            total += distance(a, b)
    return total
