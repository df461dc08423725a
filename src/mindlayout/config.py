"""
Layout configuration and result types shared by every layout engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional
import math

from .errors import InvalidOperationError
from .geom import LayoutBounds, Point
from .models import NodeId


class LayoutType(IntEnum):
    """Available layout algorithms."""
    radial = 0
    tree = 1
    force = 2


@dataclass
class LayoutConfig:
    """
    Parameters controlling a layout run.

    Attributes:
        canvas_width: Width of the drawing area
        canvas_height: Height of the drawing area
        center: Layout center; defaults to the middle of the canvas
        margin: Distance kept free along every canvas edge
        min_distance: Minimum gap between node centers
        node_spacing: Gap between siblings (tree horizontal spacing)
        level_spacing: Gap between hierarchy levels (tree vertical spacing)
        parameters: Per-algorithm overrides, keyed by engine parameter name
        preserve_positions: Start from the positions stored on the nodes
    """

    canvas_width: float = 1000.0
    canvas_height: float = 800.0
    center: Optional[Point] = None
    margin: float = 50.0
    min_distance: float = 100.0
    node_spacing: float = 80.0
    level_spacing: float = 120.0
    parameters: dict[str, float] = field(default_factory=dict)
    preserve_positions: bool = False

    def __post_init__(self):
        if self.center is None:
            self.center = Point(self.canvas_width / 2.0, self.canvas_height / 2.0)

    def validate(self) -> None:
        """
        Reject configurations no engine can work with.

        Raises:
            InvalidOperationError: For non-positive canvas dimensions or a
                negative margin, distance or spacing
        """
        if not (math.isfinite(self.canvas_width) and self.canvas_width > 0):
            raise InvalidOperationError("Canvas width must be positive")
        if not (math.isfinite(self.canvas_height) and self.canvas_height > 0):
            raise InvalidOperationError("Canvas height must be positive")
        for name in ("margin", "min_distance", "node_spacing", "level_spacing"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise InvalidOperationError(f"{name} cannot be negative")
        if self.center is None or not Point(*self.center).is_finite():
            raise InvalidOperationError("Layout center must be finite")

    def get_parameter(self, name: str, default: float) -> float:
        return self.parameters.get(name, default)

    def canvas_bounds(self) -> LayoutBounds:
        return LayoutBounds(0.0, 0.0, self.canvas_width, self.canvas_height)

    def inner_bounds(self) -> LayoutBounds:
        """
        The canvas shrunk by margin on every side.

        A margin wider than half the canvas collapses the axis onto its
        midline instead of inverting it.
        """
        mx = min(self.margin, self.canvas_width / 2.0)
        my = min(self.margin, self.canvas_height / 2.0)
        return LayoutBounds(mx, my, self.canvas_width - mx, self.canvas_height - my)


@dataclass
class LayoutResult:
    """
    Positions produced by one layout run.

    Attributes:
        positions: Computed position for every laid out node
        bounds: Bounds of the positions
        computation_time: Wall-clock seconds spent in the engine
        iterations: Simulation steps taken (1 for single-pass engines)
        energy: Engine-specific quality measure of the final layout
        converged: Whether the engine reached its stopping criterion
        layout_type: The algorithm that produced the result
    """

    positions: dict[NodeId, Point] = field(default_factory=dict)
    bounds: LayoutBounds = field(default_factory=LayoutBounds)
    computation_time: float = 0.0
    iterations: int = 1
    energy: float = 0.0
    converged: bool = True
    layout_type: Optional[LayoutType] = None

    @classmethod
    def empty(cls, layout_type: LayoutType) -> LayoutResult:
        """Result for a graph with no nodes."""
        return cls(iterations=0, layout_type=layout_type)

    def get_position(self, node_id: NodeId) -> Optional[Point]:
        return self.positions.get(node_id)

    def __len__(self) -> int:
        return len(self.positions)
