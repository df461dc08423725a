"""
Layered tree layout.

Two passes over each hierarchy: a bottom-up pass measures the extent every
subtree needs along the sibling axis, and a top-down pass hands each child
a slot of that width inside its parent's slot. Depth maps to the primary
axis, so every level sits exactly vertical_spacing further along the
orientation direction than the one above it.
"""

from __future__ import annotations

from collections import deque
from enum import IntEnum
from typing import TYPE_CHECKING, Optional
import logging

from .config import LayoutConfig, LayoutResult, LayoutType
from .engine import LayoutEngine
from .errors import InvalidOperationError
from .geom import LayoutBounds, Point, scale_to_fit
from .models import NodeId

if TYPE_CHECKING:
    from .graph import Graph

logger = logging.getLogger(__name__)


class TreeOrientation(IntEnum):
    """Direction in which depth grows."""
    top_down = 0
    bottom_up = 1
    left_right = 2
    right_left = 3


def orient(secondary: float, primary: float, orientation: TreeOrientation) -> Point:
    """
    Map (sibling axis, depth axis) coordinates onto the canvas.

    Args:
        secondary: Coordinate along the sibling axis
        primary: Depth coordinate, growing with depth
        orientation: Direction in which depth grows

    Returns:
        Canvas point
    """
    if orientation == TreeOrientation.bottom_up:
        return Point(secondary, -primary)
    if orientation == TreeOrientation.left_right:
        return Point(primary, secondary)
    if orientation == TreeOrientation.right_left:
        return Point(-primary, secondary)
    return Point(secondary, primary)


class TreeLayout(LayoutEngine):
    """
    Tidy layered layout of the parent/child hierarchy.

    Several roots are laid out side by side as a forest, horizontal_spacing
    apart. The finished drawing is translated so its bounds are centred on
    the configured center; it is only rescaled when fit_to_canvas is set,
    since rescaling shrinks the spacing below the configured values.
    """

    layout_type = LayoutType.tree
    parameter_names = (
        "orientation",
        "horizontal_spacing",
        "vertical_spacing",
        "node_size",
        "balance_subtrees",
        "fit_to_canvas",
    )

    def __init__(
        self,
        orientation: TreeOrientation = TreeOrientation.top_down,
        horizontal_spacing: Optional[float] = None,
        vertical_spacing: Optional[float] = None,
        node_size: float = 60.0,
        balance_subtrees: bool = True,
        fit_to_canvas: bool = False
    ):
        """
        Initialize the tree layout engine.

        Args:
            orientation: Direction in which depth grows
            horizontal_spacing: Gap between sibling subtrees; defaults to
                the config's node_spacing
            vertical_spacing: Distance between levels; defaults to the
                config's level_spacing
            node_size: Width of a node along the sibling axis
            balance_subtrees: Centre parents over their children instead of
                placing them at the start of their slot
            fit_to_canvas: Scale the result into the canvas minus margin
        """
        self.orientation = orientation
        self.horizontal_spacing = horizontal_spacing
        self.vertical_spacing = vertical_spacing
        self.node_size = node_size
        self.balance_subtrees = balance_subtrees
        self.fit_to_canvas = fit_to_canvas

    def validate_parameters(self) -> None:
        if self.orientation not in tuple(TreeOrientation):
            raise InvalidOperationError("orientation must be between 0 and 3")
        if self.horizontal_spacing is not None and not self.horizontal_spacing >= 0:
            raise InvalidOperationError("horizontal_spacing cannot be negative")
        if self.vertical_spacing is not None and not self.vertical_spacing > 0:
            raise InvalidOperationError("vertical_spacing must be positive")
        if not self.node_size > 0:
            raise InvalidOperationError("node_size must be positive")

    def _layout(self, graph: Graph, config: LayoutConfig) -> LayoutResult:
        roots = graph.get_root_nodes()
        if not roots:
            return LayoutResult.empty(self.layout_type)

        hs = self.horizontal_spacing if self.horizontal_spacing is not None else config.node_spacing
        vs = self.vertical_spacing if self.vertical_spacing is not None else config.level_spacing
        if not vs > 0:
            raise InvalidOperationError("vertical_spacing must be positive")
        orientation = TreeOrientation(self.orientation)

        positions: dict[NodeId, Point] = {}
        cursor = 0.0
        for root in roots:
            order, children, depth = self._walk(graph, root.id)
            extent = self._measure(order, children, hs)
            secondary = self._arrange(root.id, cursor, order, children, extent, hs)
            for node_id in order:
                positions[node_id] = orient(secondary[node_id], depth[node_id] * vs, orientation)
            cursor += extent[root.id] + hs

        self._anchor(positions, roots[0].id, roots[0].position, config)
        if self.fit_to_canvas:
            scale_to_fit(positions, config.inner_bounds())

        bounds = LayoutBounds.from_points(positions.values())
        return LayoutResult(
            positions=positions,
            bounds=bounds,
            iterations=1,
            energy=bounds.width() * bounds.height(),
            converged=True,
        )

    @staticmethod
    def _walk(graph: Graph, root_id: NodeId):
        """Breadth-first order, child lists and depths of one tree."""
        order: list[NodeId] = []
        children: dict[NodeId, list[NodeId]] = {}
        depth: dict[NodeId, int] = {root_id: 0}
        queue = deque([root_id])
        while queue:
            node_id = queue.popleft()
            order.append(node_id)
            children[node_id] = [c.id for c in graph.get_children(node_id)]
            for child_id in children[node_id]:
                depth[child_id] = depth[node_id] + 1
                queue.append(child_id)
        return order, children, depth

    def _measure(
        self,
        order: list[NodeId],
        children: dict[NodeId, list[NodeId]],
        hs: float
    ) -> dict[NodeId, float]:
        """Bottom-up pass: sibling-axis extent needed by every subtree."""
        extent: dict[NodeId, float] = {}
        for node_id in reversed(order):
            kids = children[node_id]
            if not kids:
                extent[node_id] = self.node_size
            else:
                needed = sum(extent[c] for c in kids) + hs * (len(kids) - 1)
                extent[node_id] = max(self.node_size, needed)
        return extent

    def _arrange(
        self,
        root_id: NodeId,
        left: float,
        order: list[NodeId],
        children: dict[NodeId, list[NodeId]],
        extent: dict[NodeId, float],
        hs: float
    ) -> dict[NodeId, float]:
        """Top-down pass: slot each subtree, then place nodes inside slots."""
        slot = {root_id: left}
        for node_id in order:
            kids = children[node_id]
            if not kids:
                continue
            used = sum(extent[c] for c in kids) + hs * (len(kids) - 1)
            start = slot[node_id] + (extent[node_id] - used) / 2.0
            for child_id in kids:
                slot[child_id] = start
                start += extent[child_id] + hs

        half = self.node_size / 2.0
        coord: dict[NodeId, float] = {}
        for node_id in reversed(order):
            kids = children[node_id]
            if kids and self.balance_subtrees:
                coord[node_id] = sum(coord[c] for c in kids) / len(kids)
            else:
                coord[node_id] = slot[node_id] + half
        return coord

    @staticmethod
    def _anchor(
        positions: dict[NodeId, Point],
        first_root: NodeId,
        stored: Point,
        config: LayoutConfig
    ) -> None:
        """Translate the drawing onto the configured center or stored root."""
        if config.preserve_positions and stored.is_finite():
            current = positions[first_root]
            target = stored
        else:
            current = LayoutBounds.from_points(positions.values()).center()
            target = config.center
        dx = target.x - current.x
        dy = target.y - current.y
        for node_id, p in positions.items():
            positions[node_id] = p.translate(dx, dy)
