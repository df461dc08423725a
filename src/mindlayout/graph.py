"""
In-memory mindmap graph.

The Graph owns two independent relations over one node id space:

- the hierarchy, built only from each node's ``parent_id``
- the explicit edge set, indexed by outgoing and incoming edges per node

Neither relation is ever inferred from the other. Every mutation checks its
preconditions before touching any index, so a failed call leaves the graph
unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Generic, Iterable, Iterator, Optional, TypeVar
import logging

from .errors import EdgeNotFoundError, InvalidOperationError, MindmapError, NodeNotFoundError
from .models import Edge, EdgeId, Node, NodeId, new_edge_id, new_node_id
from .traversal import (
    TraversalOrder,
    TraversalResult,
    breadth_first_search,
    connected_components,
    depth_first_search,
    find_path,
    has_directed_cycle,
    has_directed_path,
    has_path,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class GraphStatistics:
    """Summary counts for a graph."""

    node_count: int
    edge_count: int
    root_count: int
    max_depth: int
    avg_degree: float
    component_count: int
    has_cycles: bool = False


@dataclass
class BatchResult(Generic[T]):
    """
    Outcome of a batch insert or update.

    Attributes:
        successes: Ids applied, in input order
        failures: (id, error message) for every rejected item
    """

    successes: list[T] = field(default_factory=list)
    failures: list[tuple[T, str]] = field(default_factory=list)

    def all_succeeded(self) -> bool:
        return not self.failures


class Graph:
    """
    Mindmap graph with hierarchy and adjacency indices.

    Nodes and edges handed to the graph are owned by it afterwards: read them
    through the query methods and change them through update_node,
    move_node or the edge mutators, never by editing ``parent_id`` in place
    and expecting the indices to follow.

    Ordered dicts with None values serve as insertion-ordered sets so every
    query, and therefore every layout, is deterministic.
    """

    def __init__(self):
        self._nodes: dict[NodeId, Node] = {}
        self._edges: dict[EdgeId, Edge] = {}
        self._outgoing: dict[NodeId, dict[EdgeId, None]] = {}
        self._incoming: dict[NodeId, dict[EdgeId, None]] = {}
        self._children: dict[NodeId, dict[NodeId, None]] = {}
        # parent each node is currently indexed under
        self._parent_of: dict[NodeId, Optional[NodeId]] = {}
        self._roots: dict[NodeId, None] = {}

    @classmethod
    def from_entities(cls, nodes: Iterable[Node], edges: Iterable[Edge] = ()) -> Graph:
        """
        Build a graph from previously enumerated nodes and edges.

        Nodes may arrive in any order; parents are inserted before their
        children.

        Args:
            nodes: Nodes to insert
            edges: Edges to insert after all nodes

        Returns:
            The populated graph

        Raises:
            NodeNotFoundError: If a parent or edge endpoint is missing
        """
        graph = cls()
        pending = list(nodes)
        while pending:
            deferred = []
            for node in pending:
                if node.parent_id is None or node.parent_id in graph._nodes:
                    graph.add_node(node)
                else:
                    deferred.append(node)
            if len(deferred) == len(pending):
                # dangling or cyclic parents: let add_node report the first one
                graph.add_node(deferred[0])
            pending = deferred
        for edge in edges:
            graph.add_edge(edge)
        return graph

    # ------------------------------------------------------------------
    # Nodes

    def add_node(self, node: Node) -> NodeId:
        """
        Insert a node.

        Args:
            node: Node to insert; its parent, if any, must already be present

        Returns:
            The node's id

        Raises:
            NodeNotFoundError: If node.parent_id is set but not in the graph
            InvalidOperationError: If the node is invalid or its id is taken
        """
        problem = node.validate()
        if problem:
            raise InvalidOperationError(problem)
        if node.id in self._nodes:
            raise InvalidOperationError(f"Node {node.id} already exists")
        if node.parent_id is not None and node.parent_id not in self._nodes:
            raise NodeNotFoundError(node.parent_id)

        self._nodes[node.id] = node
        self._outgoing[node.id] = {}
        self._incoming[node.id] = {}
        self._children[node.id] = {}
        self._attach(node.id, node.parent_id)

        logger.debug("Added node %s (parent %s)", node.id, node.parent_id)
        return node.id

    def get_node(self, node_id: NodeId) -> Optional[Node]:
        return self._nodes.get(node_id)

    def contains_node(self, node_id: NodeId) -> bool:
        return node_id in self._nodes

    def update_node(self, node: Node) -> None:
        """
        Replace the stored node that has node.id.

        A changed parent_id moves the node in the hierarchy index.

        Raises:
            NodeNotFoundError: If the node or its new parent is absent
            InvalidOperationError: If the node is invalid or the new parent
                would create a hierarchy cycle
        """
        if node.id not in self._nodes:
            raise NodeNotFoundError(node.id)
        problem = node.validate()
        if problem:
            raise InvalidOperationError(problem)

        new_parent = node.parent_id
        old_parent = self._parent_of[node.id]
        if new_parent != old_parent and new_parent is not None:
            self._check_parent(node.id, new_parent)

        self._nodes[node.id] = node
        if new_parent != old_parent:
            self._detach(node.id)
            self._attach(node.id, new_parent)
        logger.debug("Updated node %s", node.id)

    def move_node(self, node_id: NodeId, new_parent_id: Optional[NodeId]) -> None:
        """
        Re-parent a node, or make it a root when new_parent_id is None.

        Raises:
            NodeNotFoundError: If the node or new parent is absent
            InvalidOperationError: If the move would create a hierarchy cycle
        """
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        if new_parent_id is not None:
            self._check_parent(node_id, new_parent_id)

        node.parent_id = new_parent_id
        node.touch()
        self._detach(node_id)
        self._attach(node_id, new_parent_id)

    def remove_node(self, node_id: NodeId) -> Node:
        """
        Remove a node together with every edge incident to it.

        Former children of the node are detached and become roots.

        Returns:
            The removed node

        Raises:
            NodeNotFoundError: If the node is absent
        """
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)

        incident = list(self._outgoing[node_id]) + list(self._incoming[node_id])
        for edge_id in incident:
            edge = self._edges.pop(edge_id, None)
            if edge is None:
                continue
            self._outgoing[edge.from_node].pop(edge_id, None)
            self._incoming[edge.to_node].pop(edge_id, None)

        for child_id in list(self._children[node_id]):
            child = self._nodes[child_id]
            child.parent_id = None
            child.touch()
            self._parent_of[child_id] = None
            self._roots[child_id] = None

        self._detach(node_id)
        del self._parent_of[node_id]
        del self._children[node_id]
        del self._outgoing[node_id]
        del self._incoming[node_id]
        del self._nodes[node_id]

        logger.debug("Removed node %s and %d incident edges", node_id, len(set(incident)))
        return node

    def nodes(self) -> Iterator[Node]:
        """Iterate over all nodes in insertion order."""
        return iter(list(self._nodes.values()))

    def node_ids(self) -> list[NodeId]:
        return list(self._nodes)

    # ------------------------------------------------------------------
    # Edges

    def add_edge(self, edge: Edge) -> EdgeId:
        """
        Insert an edge.

        Raises:
            NodeNotFoundError: Naming whichever endpoint is missing
            InvalidOperationError: For self-loops or a duplicate edge id
        """
        problem = edge.validate()
        if problem:
            raise InvalidOperationError(problem)
        if edge.id in self._edges:
            raise InvalidOperationError(f"Edge {edge.id} already exists")
        if edge.from_node not in self._nodes:
            raise NodeNotFoundError(edge.from_node)
        if edge.to_node not in self._nodes:
            raise NodeNotFoundError(edge.to_node)

        self._edges[edge.id] = edge
        self._outgoing[edge.from_node][edge.id] = None
        self._incoming[edge.to_node][edge.id] = None
        logger.debug("Added edge %s (%s -> %s)", edge.id, edge.from_node, edge.to_node)
        return edge.id

    def get_edge(self, edge_id: EdgeId) -> Optional[Edge]:
        return self._edges.get(edge_id)

    def contains_edge(self, edge_id: EdgeId) -> bool:
        return edge_id in self._edges

    def remove_edge(self, edge_id: EdgeId) -> Edge:
        """
        Remove an edge.

        Raises:
            EdgeNotFoundError: If the edge is absent
        """
        edge = self._edges.get(edge_id)
        if edge is None:
            raise EdgeNotFoundError(edge_id)
        del self._edges[edge_id]
        self._outgoing[edge.from_node].pop(edge_id, None)
        self._incoming[edge.to_node].pop(edge_id, None)
        logger.debug("Removed edge %s", edge_id)
        return edge

    def edges(self) -> Iterator[Edge]:
        """Iterate over all edges in insertion order."""
        return iter(list(self._edges.values()))

    def has_edge_between(self, a: NodeId, b: NodeId) -> bool:
        """True if any edge joins a and b, in either direction."""
        return any(self._edges[e].to_node == b for e in self._outgoing.get(a, ())) or \
            any(self._edges[e].to_node == a for e in self._outgoing.get(b, ()))

    def remove_edges_between(self, a: NodeId, b: NodeId) -> list[Edge]:
        """Remove every edge joining a and b and return them."""
        doomed = [e for e in self._outgoing.get(a, ()) if self._edges[e].to_node == b]
        doomed += [e for e in self._outgoing.get(b, ()) if self._edges[e].to_node == a]
        return [self.remove_edge(e) for e in doomed]

    # ------------------------------------------------------------------
    # Hierarchy queries

    def get_children(self, parent_id: NodeId) -> list[Node]:
        return [self._nodes[c] for c in self._children.get(parent_id, ())]

    def get_parent(self, child_id: NodeId) -> Optional[Node]:
        parent_id = self._parent_of.get(child_id)
        return self._nodes.get(parent_id) if parent_id is not None else None

    def get_root_nodes(self) -> list[Node]:
        return [self._nodes[r] for r in self._roots]

    def get_ancestors(self, node_id: NodeId) -> list[NodeId]:
        """Ids from the node's parent up to its root."""
        ancestors = []
        current = self._parent_of.get(node_id)
        while current is not None:
            ancestors.append(current)
            current = self._parent_of.get(current)
        return ancestors

    def get_descendants(self, node_id: NodeId) -> list[NodeId]:
        """Ids of every node below node_id, in depth-first order."""
        descendants = []
        stack = list(reversed(self._children.get(node_id, {})))
        while stack:
            current = stack.pop()
            descendants.append(current)
            stack.extend(reversed(self._children[current]))
        return descendants

    def is_ancestor(self, ancestor_id: NodeId, descendant_id: NodeId) -> bool:
        return ancestor_id in self.get_ancestors(descendant_id)

    def get_node_depth(self, node_id: NodeId) -> Optional[int]:
        if node_id not in self._nodes:
            return None
        return len(self.get_ancestors(node_id))

    def max_depth(self) -> int:
        """Deepest hierarchy level, roots being level 0."""
        depth = 0
        level = list(self._roots)
        while level:
            level = [c for n in level for c in self._children[n]]
            if level:
                depth += 1
        return depth

    def get_nodes_at_depth(self, depth: int) -> list[NodeId]:
        """Ids of every node at the given hierarchy level, in insertion order."""
        level = list(self._roots)
        for _ in range(depth):
            level = [c for n in level for c in self._children[n]]
        wanted = set(level)
        return [node_id for node_id in self._nodes if node_id in wanted]

    def lowest_common_ancestor(self, a: NodeId, b: NodeId) -> Optional[NodeId]:
        """
        Deepest node that is a or an ancestor of a, and also b or an ancestor of b.

        Returns:
            The common ancestor, or None if either node is absent or they lie
            in different trees
        """
        if a not in self._nodes or b not in self._nodes:
            return None
        lineage = {a, *self.get_ancestors(a)}
        for candidate in [b] + self.get_ancestors(b):
            if candidate in lineage:
                return candidate
        return None

    # ------------------------------------------------------------------
    # Adjacency queries

    def get_outgoing_edges(self, node_id: NodeId) -> list[Edge]:
        return [self._edges[e] for e in self._outgoing.get(node_id, ())]

    def get_incoming_edges(self, node_id: NodeId) -> list[Edge]:
        return [self._edges[e] for e in self._incoming.get(node_id, ())]

    def get_neighbors(self, node_id: NodeId) -> list[NodeId]:
        """Nodes joined to node_id by an edge in either direction."""
        neighbors: dict[NodeId, None] = {}
        for e in self._outgoing.get(node_id, ()):
            neighbors[self._edges[e].to_node] = None
        for e in self._incoming.get(node_id, ()):
            neighbors[self._edges[e].from_node] = None
        return list(neighbors)

    def degree(self, node_id: NodeId) -> int:
        return len(self._outgoing.get(node_id, ())) + len(self._incoming.get(node_id, ()))

    # ------------------------------------------------------------------
    # Traversal

    def has_path(self, a: NodeId, b: NodeId) -> bool:
        return has_path(self, a, b)

    def traverse(self, start: NodeId, order: TraversalOrder) -> Optional[TraversalResult]:
        """
        Visit the connected component of start.

        Returns:
            The traversal, or None if start is not in the graph
        """
        if start not in self._nodes:
            return None
        if order == TraversalOrder.depth_first:
            return depth_first_search(self, start)
        return breadth_first_search(self, start)

    def find_path(self, a: NodeId, b: NodeId) -> Optional[list[NodeId]]:
        return find_path(self, a, b)

    def connected_components(self) -> list[list[NodeId]]:
        return connected_components(self)

    def has_cycles(self) -> bool:
        """True if the directed edge set contains a cycle; the hierarchy is ignored."""
        return has_directed_cycle(self)

    def would_create_cycle(self, from_node: NodeId, to_node: NodeId) -> bool:
        """True if adding an edge from_node -> to_node would close a directed cycle."""
        return from_node == to_node or has_directed_path(self, to_node, from_node)

    # ------------------------------------------------------------------
    # Batch and subgraph operations

    def add_nodes_batch(self, nodes: Iterable[Node]) -> BatchResult[NodeId]:
        """
        Insert nodes one by one, collecting failures instead of stopping.

        Each node is checked exactly as add_node checks it, so a node whose
        parent comes later in the batch fails.
        """
        result: BatchResult[NodeId] = BatchResult()
        for node in nodes:
            try:
                result.successes.append(self.add_node(node))
            except MindmapError as e:
                result.failures.append((node.id, str(e)))
        return result

    def update_nodes_batch(self, nodes: Iterable[Node]) -> BatchResult[NodeId]:
        result: BatchResult[NodeId] = BatchResult()
        for node in nodes:
            try:
                self.update_node(node)
                result.successes.append(node.id)
            except MindmapError as e:
                result.failures.append((node.id, str(e)))
        return result

    def add_edges_batch(self, edges: Iterable[Edge]) -> BatchResult[EdgeId]:
        result: BatchResult[EdgeId] = BatchResult()
        for edge in edges:
            try:
                result.successes.append(self.add_edge(edge))
            except MindmapError as e:
                result.failures.append((edge.id, str(e)))
        if result.failures:
            logger.info("Edge batch rejected %d of %d edges",
                        len(result.failures), len(result.failures) + len(result.successes))
        return result

    def clone_subgraph(self, root_id: NodeId, max_depth: Optional[int] = None) -> Graph:
        """
        Copy the hierarchy below root_id into a new graph.

        Every copied node and edge gets a fresh id. The copy of root_id is a
        root of the new graph, and only edges with both endpoints copied are
        kept.

        Args:
            root_id: Top of the subtree to copy
            max_depth: Levels below root_id to include; None copies everything

        Returns:
            The new graph

        Raises:
            NodeNotFoundError: If root_id is absent
        """
        if root_id not in self._nodes:
            raise NodeNotFoundError(root_id)

        clone = Graph()
        mapping: dict[NodeId, NodeId] = {}
        level = [root_id]
        depth = 0
        while level:
            for node_id in level:
                parent = self._parent_of[node_id] if node_id != root_id else None
                duplicate = _copy_node(self._nodes[node_id], mapping.get(parent))
                mapping[node_id] = duplicate.id
                clone.add_node(duplicate)
            if max_depth is not None and depth >= max_depth:
                break
            level = [c for n in level for c in self._children[n]]
            depth += 1

        self._copy_edges(clone, mapping)
        logger.debug("Cloned %d nodes below %s", len(mapping), root_id)
        return clone

    def merge_graph(self, other: Graph) -> dict[NodeId, NodeId]:
        """
        Copy every node and edge of other into this graph under fresh ids.

        The hierarchy of other is reproduced among the copies.

        Returns:
            Mapping from ids in other to the ids of their copies here
        """
        mapping: dict[NodeId, NodeId] = {}
        level = list(other._roots)
        while level:
            for node_id in level:
                parent = other._parent_of[node_id]
                duplicate = _copy_node(other._nodes[node_id], mapping.get(parent))
                mapping[node_id] = duplicate.id
                self.add_node(duplicate)
            level = [c for n in level for c in other._children[n]]

        other._copy_edges(self, mapping)
        logger.debug("Merged %d nodes into graph", len(mapping))
        return mapping

    def _copy_edges(self, target: Graph, mapping: dict[NodeId, NodeId]) -> None:
        for edge in list(self._edges.values()):
            if edge.from_node in mapping and edge.to_node in mapping:
                target.add_edge(replace(edge, id=new_edge_id(),
                                        from_node=mapping[edge.from_node],
                                        to_node=mapping[edge.to_node]))

    # ------------------------------------------------------------------
    # Bookkeeping

    def validate(self) -> None:
        """
        Check referential integrity of every node, edge and index.

        Raises:
            NodeNotFoundError: For a dangling parent_id or edge endpoint
            InvalidOperationError: For an index that disagrees with the data
        """
        for node in self._nodes.values():
            if node.parent_id is not None and node.parent_id not in self._nodes:
                raise NodeNotFoundError(node.parent_id)
            if self._parent_of.get(node.id) != node.parent_id:
                raise InvalidOperationError(f"Hierarchy index out of date for node {node.id}")

        for edge in self._edges.values():
            if edge.from_node not in self._nodes:
                raise NodeNotFoundError(edge.from_node)
            if edge.to_node not in self._nodes:
                raise NodeNotFoundError(edge.to_node)
            if edge.id not in self._outgoing[edge.from_node] or \
                    edge.id not in self._incoming[edge.to_node]:
                raise InvalidOperationError(f"Adjacency index missing edge {edge.id}")

        for node_id, edge_ids in self._outgoing.items():
            for edge_id in edge_ids:
                edge = self._edges.get(edge_id)
                if edge is None or edge.from_node != node_id:
                    raise InvalidOperationError("Outgoing edge index inconsistency")

        for node_id, edge_ids in self._incoming.items():
            for edge_id in edge_ids:
                edge = self._edges.get(edge_id)
                if edge is None or edge.to_node != node_id:
                    raise InvalidOperationError("Incoming edge index inconsistency")

    def statistics(self) -> GraphStatistics:
        n = len(self._nodes)
        total_degree = sum(len(self.get_neighbors(node_id)) for node_id in self._nodes)
        return GraphStatistics(
            node_count=n,
            edge_count=len(self._edges),
            root_count=len(self._roots),
            max_depth=self.max_depth(),
            avg_degree=total_degree / n if n else 0.0,
            component_count=len(self.connected_components()),
            has_cycles=self.has_cycles(),
        )

    def node_count(self) -> int:
        return len(self._nodes)

    def edge_count(self) -> int:
        return len(self._edges)

    def is_empty(self) -> bool:
        return not self._nodes and not self._edges

    def clear(self) -> None:
        self._nodes.clear()
        self._edges.clear()
        self._outgoing.clear()
        self._incoming.clear()
        self._children.clear()
        self._parent_of.clear()
        self._roots.clear()

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # ------------------------------------------------------------------
    # Index maintenance

    def _check_parent(self, node_id: NodeId, parent_id: NodeId) -> None:
        if parent_id not in self._nodes:
            raise NodeNotFoundError(parent_id)
        if parent_id == node_id:
            raise InvalidOperationError("Node cannot be its own parent")
        if node_id in self.get_ancestors(parent_id):
            raise InvalidOperationError(
                "Cannot create circular dependency in parent-child relationships"
            )

    def _attach(self, node_id: NodeId, parent_id: Optional[NodeId]) -> None:
        self._parent_of[node_id] = parent_id
        if parent_id is None:
            self._roots[node_id] = None
        else:
            self._children[parent_id][node_id] = None

    def _detach(self, node_id: NodeId) -> None:
        parent_id = self._parent_of.get(node_id)
        if parent_id is None:
            self._roots.pop(node_id, None)
        else:
            self._children[parent_id].pop(node_id, None)


def _copy_node(node: Node, parent_id: Optional[NodeId]) -> Node:
    return replace(node, id=new_node_id(), parent_id=parent_id,
                   tags=list(node.tags), metadata=dict(node.metadata))
