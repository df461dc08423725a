"""
mindlayout: mindmap graph engine and layout algorithms

An in-memory graph of nodes joined by a parent/child hierarchy and by
explicit edges, with radial, tree and force-directed layout engines.
"""

import logging

from .animation import AnimationFrame, EasingType, ease, fit_positions, interpolate_frames, snap_to_grid
from .concurrency import ReadWriteLock, SharedGraph
from .config import LayoutConfig, LayoutResult, LayoutType
from .engine import LayoutEngine
from .errors import (
    EdgeNotFoundError,
    InvalidOperationError,
    LayoutComputationError,
    MindmapError,
    NodeNotFoundError,
)
from .force import EventType, ForceDirectedLayout
from .geom import LayoutBounds, Point
from .graph import BatchResult, Graph, GraphStatistics
from .layout import LayoutCoordinator, apply_layout, compute_layout
from .models import Edge, EdgeId, Node, NodeId
from .radial import RadialLayout
from .traversal import TraversalOrder, TraversalResult
from .tree import TreeLayout, TreeOrientation

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AnimationFrame",
    "Edge",
    "EdgeId",
    "EdgeNotFoundError",
    "EasingType",
    "EventType",
    "ForceDirectedLayout",
    "Graph",
    "GraphStatistics",
    "BatchResult",
    "InvalidOperationError",
    "LayoutBounds",
    "LayoutComputationError",
    "LayoutConfig",
    "LayoutCoordinator",
    "LayoutEngine",
    "LayoutResult",
    "LayoutType",
    "MindmapError",
    "Node",
    "NodeId",
    "NodeNotFoundError",
    "Point",
    "RadialLayout",
    "ReadWriteLock",
    "SharedGraph",
    "TraversalOrder",
    "TraversalResult",
    "TreeLayout",
    "TreeOrientation",
    "apply_layout",
    "compute_layout",
    "ease",
    "fit_positions",
    "interpolate_frames",
    "snap_to_grid",
]
