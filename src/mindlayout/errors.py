"""
Exception types raised by the graph engine and the layout engines.

Graph mutations raise before touching any index, so a failed call leaves
the graph exactly as it was.
"""

from __future__ import annotations

from typing import Any


class MindmapError(Exception):
    """Base class for all mindlayout errors."""


class NodeNotFoundError(MindmapError):
    """Raised when a node id does not reference a node in the graph."""

    def __init__(self, id: Any):
        self.id = id
        super().__init__(f"Node not found: {id}")


class EdgeNotFoundError(MindmapError):
    """Raised when an edge id does not reference an edge in the graph."""

    def __init__(self, id: Any):
        self.id = id
        super().__init__(f"Edge not found: {id}")


class InvalidOperationError(MindmapError):
    """Raised for rejected mutations and invalid layout configuration."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Invalid operation: {message}")


class LayoutComputationError(MindmapError):
    """Raised when a layout engine cannot produce positions for a graph."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Layout computation failed: {message}")
