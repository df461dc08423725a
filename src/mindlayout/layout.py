"""
Layout selection and write-back.

compute_layout is the single dispatch point from a LayoutType to an
engine. LayoutCoordinator keeps one configured engine per type, which lets
callers tune an engine once and reuse it across runs.
"""

from __future__ import annotations

from typing import Optional
import logging

from .config import LayoutConfig, LayoutResult, LayoutType
from .engine import LayoutEngine
from .force import ForceDirectedLayout
from .graph import Graph
from .radial import RadialLayout
from .tree import TreeLayout

logger = logging.getLogger(__name__)

ENGINES: dict[LayoutType, type[LayoutEngine]] = {
    LayoutType.radial: RadialLayout,
    LayoutType.tree: TreeLayout,
    LayoutType.force: ForceDirectedLayout,
}


def create_engine(layout_type: LayoutType) -> LayoutEngine:
    """Engine with default parameters for layout_type."""
    return ENGINES[LayoutType(layout_type)]()


def compute_layout(
    graph: Graph,
    config: Optional[LayoutConfig] = None,
    layout_type: LayoutType = LayoutType.radial
) -> LayoutResult:
    """
    Lay out graph with a default-configured engine.

    Args:
        graph: Graph to read; it is not modified
        config: Canvas and parameter overrides, defaults if omitted
        layout_type: Algorithm to use

    Returns:
        The computed layout

    Raises:
        InvalidOperationError: If the configuration is invalid
    """
    if config is None:
        config = LayoutConfig()
    return create_engine(layout_type).compute(graph, config)


def apply_layout(graph: Graph, result: LayoutResult) -> int:
    """
    Write the positions of result back onto the nodes of graph.

    Positions for nodes that have since left the graph are ignored.

    Returns:
        Number of nodes updated
    """
    updated = 0
    for node_id, position in result.positions.items():
        node = graph.get_node(node_id)
        if node is None:
            continue
        node.set_position(position)
        updated += 1
    if updated < len(result.positions):
        logger.debug("Ignored %d positions for removed nodes", len(result.positions) - updated)
    return updated


class LayoutCoordinator:
    """
    Holds a current layout type and one engine instance per type.

    Example:
        coordinator = LayoutCoordinator(LayoutType.tree)
        coordinator.engine(LayoutType.tree).balance_subtrees = False
        result = coordinator.compute(graph)
        apply_layout(graph, result)
    """

    def __init__(self, layout_type: LayoutType = LayoutType.radial,
                 config: Optional[LayoutConfig] = None):
        self.layout_type = LayoutType(layout_type)
        self.config = config if config is not None else LayoutConfig()
        self.engines: dict[LayoutType, LayoutEngine] = {
            t: create_engine(t) for t in LayoutType
        }

    def set_layout_type(self, layout_type: LayoutType) -> None:
        self.layout_type = LayoutType(layout_type)

    def engine(self, layout_type: Optional[LayoutType] = None) -> LayoutEngine:
        return self.engines[LayoutType(layout_type if layout_type is not None else self.layout_type)]

    def available_layouts(self) -> list[LayoutType]:
        return list(self.engines)

    def compute(
        self,
        graph: Graph,
        config: Optional[LayoutConfig] = None,
        layout_type: Optional[LayoutType] = None
    ) -> LayoutResult:
        """
        Run the engine for layout_type, or the current type if omitted.

        Args:
            graph: Graph to read
            config: Overrides the coordinator's config for this run
            layout_type: Overrides the current layout type for this run
        """
        engine = self.engine(layout_type)
        return engine.compute(graph, config if config is not None else self.config)

    def compute_and_apply(
        self,
        graph: Graph,
        config: Optional[LayoutConfig] = None,
        layout_type: Optional[LayoutType] = None
    ) -> LayoutResult:
        result = self.compute(graph, config, layout_type)
        apply_layout(graph, result)
        return result

    def stop(self) -> None:
        """Ask a running force simulation to finish early."""
        engine = self.engines[LayoutType.force]
        if isinstance(engine, ForceDirectedLayout):
            engine.stop()
