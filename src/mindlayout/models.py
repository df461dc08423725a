"""
Node and edge entities stored by the graph engine.

Identifiers are UUID4 values wrapped in distinct NewTypes so node and edge
ids are not mixed up by type checkers. They are generated on creation and
never reused.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import NewType, Optional
import uuid

from .geom import Point

NodeId = NewType("NodeId", uuid.UUID)
EdgeId = NewType("EdgeId", uuid.UUID)

MAX_TEXT_LENGTH = 10000


def new_node_id() -> NodeId:
    return NodeId(uuid.uuid4())


def new_edge_id() -> EdgeId:
    return EdgeId(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Node:
    """
    A mindmap node.

    Attributes:
        text: Text content
        parent_id: Hierarchy parent, independent of edges
        position: Canvas position
        id: Unique identifier
        tags: Free-form labels
        metadata: Arbitrary string key/value pairs
        created_at: Creation time (UTC)
        updated_at: Last modification time (UTC)
    """

    text: str
    parent_id: Optional[NodeId] = None
    position: Point = field(default_factory=Point.origin)
    id: NodeId = field(default_factory=new_node_id)
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def child_of(cls, parent_id: NodeId, text: str) -> Node:
        """Create a node under parent_id."""
        return cls(text, parent_id=parent_id)

    def touch(self) -> None:
        self.updated_at = utc_now()

    def set_text(self, text: str) -> None:
        self.text = text
        self.touch()

    def set_position(self, position: Point) -> None:
        self.position = position
        self.touch()

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)
            self.touch()

    def remove_tag(self, tag: str) -> bool:
        if tag in self.tags:
            self.tags.remove(tag)
            self.touch()
            return True
        return False

    def set_metadata(self, key: str, value: str) -> None:
        self.metadata[key] = value
        self.touch()

    def is_root(self) -> bool:
        return self.parent_id is None

    def is_child_of(self, parent_id: NodeId) -> bool:
        return self.parent_id == parent_id

    def validate(self) -> Optional[str]:
        """
        Check the node's own fields.

        Returns:
            A description of the first problem, or None if the node is valid
        """
        if not self.text.strip():
            return "Node text cannot be empty"
        if len(self.text) > MAX_TEXT_LENGTH:
            return f"Node text cannot exceed {MAX_TEXT_LENGTH} characters"
        if self.parent_id is not None and self.parent_id == self.id:
            return "Node cannot be its own parent"
        return None


@dataclass
class Edge:
    """
    An explicit connection between two nodes.

    Stored with a direction, but treated as undirected for connectivity.
    """

    from_node: NodeId
    to_node: NodeId
    label: Optional[str] = None
    id: EdgeId = field(default_factory=new_edge_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def connects(self, a: NodeId, b: NodeId) -> bool:
        """True if the edge joins a and b in either direction."""
        return (self.from_node == a and self.to_node == b) or \
            (self.from_node == b and self.to_node == a)

    def other_end(self, node_id: NodeId) -> NodeId:
        return self.to_node if self.from_node == node_id else self.from_node

    def set_label(self, label: Optional[str]) -> None:
        self.label = label
        self.updated_at = utc_now()

    def validate(self) -> Optional[str]:
        if self.from_node == self.to_node:
            return "Edge cannot connect a node to itself"
        return None
