"""
Traversal over the undirected edge adjacency of a graph.

Edges are stored with a direction but the traversals here follow them both
ways. None of them crosses into a component that is not reachable from its
starting node. Only has_directed_path and has_directed_cycle respect the
stored direction.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .graph import Graph
    from .models import NodeId


class TraversalOrder(IntEnum):
    """Visitation policy for Graph.traverse."""
    depth_first = 0
    breadth_first = 1


@dataclass
class TraversalResult:
    """
    Outcome of a traversal.

    Attributes:
        visited: Node ids in the order they were visited
        depths: Hop count from the start node (start is 0)
        parents: Node each visited node was reached from (start has none)
    """

    visited: list[NodeId] = field(default_factory=list)
    depths: dict[NodeId, int] = field(default_factory=dict)
    parents: dict[NodeId, NodeId] = field(default_factory=dict)

    def _visit(self, node_id: NodeId, depth: int, parent: Optional[NodeId]) -> None:
        self.visited.append(node_id)
        self.depths[node_id] = depth
        if parent is not None:
            self.parents[node_id] = parent


def depth_first_search(graph: Graph, start: NodeId) -> TraversalResult:
    """
    Depth-first traversal from start.

    Neighbours are explored in adjacency order: the first neighbour of a
    node is visited before its second.
    """
    result = TraversalResult()
    seen: set[NodeId] = set()
    stack: list[tuple[NodeId, int, Optional[NodeId]]] = [(start, 0, None)]

    while stack:
        node_id, depth, parent = stack.pop()
        if node_id in seen:
            continue
        seen.add(node_id)
        result._visit(node_id, depth, parent)

        for neighbor in reversed(graph.get_neighbors(node_id)):
            if neighbor not in seen:
                stack.append((neighbor, depth + 1, node_id))

    return result


def breadth_first_search(graph: Graph, start: NodeId) -> TraversalResult:
    """Breadth-first traversal from start; depths are shortest hop counts."""
    result = TraversalResult()
    seen: set[NodeId] = {start}
    queue: deque[tuple[NodeId, int, Optional[NodeId]]] = deque([(start, 0, None)])

    while queue:
        node_id, depth, parent = queue.popleft()
        result._visit(node_id, depth, parent)

        for neighbor in graph.get_neighbors(node_id):
            if neighbor not in seen:
                seen.add(neighbor)
                queue.append((neighbor, depth + 1, node_id))

    return result


def has_path(graph: Graph, a: NodeId, b: NodeId) -> bool:
    """
    Undirected reachability between a and b.

    Reflexive for any node in the graph and symmetric.
    """
    if not graph.contains_node(a) or not graph.contains_node(b):
        return False
    if a == b:
        return True

    seen = {a}
    stack = [a]
    while stack:
        current = stack.pop()
        for neighbor in graph.get_neighbors(current):
            if neighbor == b:
                return True
            if neighbor not in seen:
                seen.add(neighbor)
                stack.append(neighbor)
    return False


def find_path(graph: Graph, a: NodeId, b: NodeId) -> Optional[list[NodeId]]:
    """
    Shortest undirected path from a to b.

    Returns:
        Node ids from a to b inclusive, or None if b is unreachable
    """
    if not graph.contains_node(a) or not graph.contains_node(b):
        return None
    if a == b:
        return [a]

    parents: dict[NodeId, NodeId] = {}
    seen = {a}
    queue = deque([a])
    while queue:
        current = queue.popleft()
        for neighbor in graph.get_neighbors(current):
            if neighbor in seen:
                continue
            seen.add(neighbor)
            parents[neighbor] = current
            if neighbor == b:
                path = [b]
                while path[-1] != a:
                    path.append(parents[path[-1]])
                path.reverse()
                return path
            queue.append(neighbor)
    return None


def connected_components(graph: Graph) -> list[list[NodeId]]:
    """
    Find the connected components of the edge relation.

    Components are listed in the insertion order of their first node, and an
    isolated node forms a component of its own.

    Returns:
        List of components, each a list of node ids
    """
    marks: set[NodeId] = set()
    components: list[list[NodeId]] = []

    for node_id in graph.node_ids():
        if node_id in marks:
            continue
        component = []
        marks.add(node_id)
        stack = [node_id]
        while stack:
            current = stack.pop()
            component.append(current)
            for adj in graph.get_neighbors(current):
                if adj not in marks:
                    marks.add(adj)
                    stack.append(adj)
        components.append(component)

    return components


def has_directed_path(graph: Graph, a: NodeId, b: NodeId) -> bool:
    """True if b can be reached from a by following edges from_node -> to_node."""
    if not (graph.contains_node(a) and graph.contains_node(b)):
        return False
    seen = {a}
    stack = [a]
    while stack:
        current = stack.pop()
        if current == b:
            return True
        for edge in graph.get_outgoing_edges(current):
            if edge.to_node not in seen:
                seen.add(edge.to_node)
                stack.append(edge.to_node)
    return False


def has_directed_cycle(graph: Graph) -> bool:
    """
    Detect a cycle in the directed edge relation.

    The hierarchy is ignored. Uses an iterative three-colour depth-first
    search so deep chains do not hit the recursion limit.
    """
    # 1 = on the current path, 2 = finished
    state: dict[NodeId, int] = {}

    for start in graph.node_ids():
        if start in state:
            continue
        state[start] = 1
        stack = [(start, iter(graph.get_outgoing_edges(start)))]
        while stack:
            node_id, edges = stack[-1]
            for edge in edges:
                mark = state.get(edge.to_node)
                if mark == 1:
                    return True
                if mark is None:
                    state[edge.to_node] = 1
                    stack.append((edge.to_node, iter(graph.get_outgoing_edges(edge.to_node))))
                    break
            else:
                state[node_id] = 2
                stack.pop()

    return False
