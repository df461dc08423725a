"""Tests for the graph engine."""

import pytest
import random
from dataclasses import replace
from mindlayout.errors import EdgeNotFoundError, InvalidOperationError, NodeNotFoundError
from mindlayout.graph import Graph
from mindlayout.models import Edge, Node, new_edge_id, new_node_id
from mindlayout.traversal import TraversalOrder


def make_tree():
    """root -> (a -> (a1, a2), b)"""
    graph = Graph()
    root = graph.add_node(Node("root"))
    a = graph.add_node(Node("a", parent_id=root))
    b = graph.add_node(Node("b", parent_id=root))
    a1 = graph.add_node(Node("a1", parent_id=a))
    a2 = graph.add_node(Node("a2", parent_id=a))
    return graph, root, a, b, a1, a2


class TestAddNode:
    """Test node insertion."""

    def test_count_matches_successful_adds(self):
        """Test node count equals successful inserts."""
        graph = Graph()
        ids = []
        successes = 0
        rng = random.Random(7)
        for i in range(60):
            if ids and rng.random() < 0.3:
                parent = new_node_id()  # dangling
            elif ids and rng.random() < 0.5:
                parent = rng.choice(ids)
            else:
                parent = None
            try:
                ids.append(graph.add_node(Node(f"n{i}", parent_id=parent)))
                successes += 1
            except NodeNotFoundError:
                pass
            assert graph.node_count() == successes

    def test_dangling_parent(self):
        """Test inserting under a missing parent."""
        graph = Graph()
        graph.add_node(Node("root"))
        missing = new_node_id()
        with pytest.raises(NodeNotFoundError) as exc:
            graph.add_node(Node("orphan", parent_id=missing))
        assert exc.value.id == missing
        assert graph.node_count() == 1
        graph.validate()

    def test_duplicate_id(self):
        """Test inserting a node id twice."""
        graph = Graph()
        node = Node("once")
        graph.add_node(node)
        with pytest.raises(InvalidOperationError):
            graph.add_node(replace(node, text="twice"))
        assert graph.node_count() == 1

    def test_blank_text(self):
        """Test blank node text."""
        graph = Graph()
        with pytest.raises(InvalidOperationError):
            graph.add_node(Node("  "))
        assert graph.is_empty()

    def test_get_and_contains(self):
        """Test node lookup."""
        graph = Graph()
        node = Node("x")
        graph.add_node(node)
        assert graph.get_node(node.id) is node
        assert graph.contains_node(node.id)
        assert node.id in graph
        assert graph.get_node(new_node_id()) is None
        assert not graph.contains_node(new_node_id())


class TestUpdateNode:
    """Test node replacement and re-parenting."""

    def test_update_text(self):
        """Test replacing a node."""
        graph, root, *_ = make_tree()
        graph.update_node(replace(graph.get_node(root), text="renamed"))
        assert graph.get_node(root).text == "renamed"

    def test_update_missing(self):
        """Test updating an absent node."""
        graph = Graph()
        with pytest.raises(NodeNotFoundError):
            graph.update_node(Node("ghost"))

    def test_update_moves_in_hierarchy(self):
        """Test a new parent_id moves the node."""
        graph, root, a, b, a1, a2 = make_tree()
        graph.update_node(replace(graph.get_node(a1), parent_id=b))
        assert [n.id for n in graph.get_children(b)] == [a1]
        assert [n.id for n in graph.get_children(a)] == [a2]
        graph.validate()

    def test_update_refuses_cycle(self):
        """Test update refuses hierarchy cycles."""
        graph, root, a, b, a1, a2 = make_tree()
        with pytest.raises(InvalidOperationError):
            graph.update_node(replace(graph.get_node(root), parent_id=a1))
        assert graph.get_node(root).parent_id is None
        assert [n.id for n in graph.get_root_nodes()] == [root]
        graph.validate()

    def test_move_node(self):
        """Test re-parenting and cycle checks."""
        graph, root, a, b, a1, a2 = make_tree()
        graph.move_node(a2, None)
        assert graph.get_node(a2).is_root()
        assert a2 in [n.id for n in graph.get_root_nodes()]
        with pytest.raises(InvalidOperationError):
            graph.move_node(a, a1)
        with pytest.raises(NodeNotFoundError):
            graph.move_node(a, new_node_id())
        graph.validate()


class TestRemoveNode:
    """Test node removal."""

    def test_chain_keeps_unrelated_edges(self):
        """Test removal drops only incident edges."""
        graph = Graph()
        a = graph.add_node(Node("A"))
        b = graph.add_node(Node("B"))
        c = graph.add_node(Node("C"))
        graph.add_edge(Edge(a, b))
        graph.add_edge(Edge(b, c))
        ac = graph.add_edge(Edge(a, c))

        removed = graph.remove_node(b)

        assert removed.id == b
        assert graph.node_count() == 2
        assert graph.edge_count() == 1
        assert graph.contains_edge(ac)
        assert graph.get_neighbors(a) == [c]
        assert graph.get_outgoing_edges(b) == []
        graph.validate()

    def test_children_detached_to_roots(self):
        """Test children of a removed node become roots."""
        graph, root, a, b, a1, a2 = make_tree()
        graph.remove_node(a)
        for child in (a1, a2):
            assert graph.get_node(child).parent_id is None
        assert [n.id for n in graph.get_root_nodes()] == [root, a1, a2]
        assert [n.id for n in graph.get_children(root)] == [b]
        graph.validate()

    def test_remove_missing(self):
        """Test removing an absent node."""
        graph = Graph()
        with pytest.raises(NodeNotFoundError):
            graph.remove_node(new_node_id())


class TestEdges:
    """Test edge operations."""

    def test_add_edge_missing_endpoint(self):
        """Test error names the missing endpoint."""
        graph = Graph()
        a = graph.add_node(Node("A"))
        missing = new_node_id()
        with pytest.raises(NodeNotFoundError) as exc:
            graph.add_edge(Edge(a, missing))
        assert exc.value.id == missing
        with pytest.raises(NodeNotFoundError) as exc:
            graph.add_edge(Edge(missing, a))
        assert exc.value.id == missing
        assert graph.edge_count() == 0

    def test_self_loop(self):
        """Test self-loops are refused."""
        graph = Graph()
        a = graph.add_node(Node("A"))
        with pytest.raises(InvalidOperationError):
            graph.add_edge(Edge(a, a))

    def test_remove_edge(self):
        """Test edge removal."""
        graph = Graph()
        a = graph.add_node(Node("A"))
        b = graph.add_node(Node("B"))
        e = graph.add_edge(Edge(a, b, label="link"))
        assert graph.get_edge(e).label == "link"
        graph.remove_edge(e)
        assert graph.get_edge(e) is None
        assert graph.get_neighbors(a) == []
        with pytest.raises(EdgeNotFoundError):
            graph.remove_edge(e)
        with pytest.raises(EdgeNotFoundError):
            graph.remove_edge(new_edge_id())

    def test_adjacency_directions(self):
        """Test outgoing and incoming indices."""
        graph = Graph()
        a = graph.add_node(Node("A"))
        b = graph.add_node(Node("B"))
        e = graph.add_edge(Edge(a, b))
        assert [x.id for x in graph.get_outgoing_edges(a)] == [e]
        assert [x.id for x in graph.get_incoming_edges(b)] == [e]
        assert graph.get_incoming_edges(a) == []
        assert graph.get_neighbors(a) == [b]
        assert graph.get_neighbors(b) == [a]
        assert graph.degree(a) == 1

    def test_edges_between(self):
        """Test finding and removing edges between two nodes."""
        graph = Graph()
        a = graph.add_node(Node("A"))
        b = graph.add_node(Node("B"))
        c = graph.add_node(Node("C"))
        graph.add_edge(Edge(a, b))
        graph.add_edge(Edge(b, a))
        graph.add_edge(Edge(b, c))
        assert graph.has_edge_between(b, a)
        assert not graph.has_edge_between(a, c)
        assert len(graph.remove_edges_between(a, b)) == 2
        assert graph.edge_count() == 1
        graph.validate()


class TestHierarchy:
    """Test hierarchy queries."""

    def test_children_and_parent(self):
        """Test children, parent and roots."""
        graph, root, a, b, a1, a2 = make_tree()
        assert [n.id for n in graph.get_children(root)] == [a, b]
        assert graph.get_parent(a1).id == a
        assert graph.get_parent(root) is None
        assert [n.id for n in graph.get_root_nodes()] == [root]

    def test_edges_do_not_imply_hierarchy(self):
        """Test edges leave the hierarchy alone."""
        graph = Graph()
        a = graph.add_node(Node("A"))
        b = graph.add_node(Node("B"))
        graph.add_edge(Edge(a, b))
        assert graph.get_children(a) == []
        assert len(graph.get_root_nodes()) == 2

    def test_hierarchy_does_not_imply_edges(self):
        """Test parent links are not edges."""
        graph, root, a, *_ = make_tree()
        assert graph.get_neighbors(root) == []
        assert not graph.has_path(root, a)

    def test_ancestors_descendants(self):
        """Test ancestor and descendant queries."""
        graph, root, a, b, a1, a2 = make_tree()
        assert graph.get_ancestors(a2) == [a, root]
        assert graph.get_descendants(root) == [a, a1, a2, b]
        assert graph.is_ancestor(root, a1)
        assert not graph.is_ancestor(b, a1)

    def test_depth(self):
        """Test node depth and max depth."""
        graph, root, a, b, a1, a2 = make_tree()
        assert graph.get_node_depth(root) == 0
        assert graph.get_node_depth(a1) == 2
        assert graph.get_node_depth(new_node_id()) is None
        assert graph.max_depth() == 2
        assert Graph().max_depth() == 0

    def test_nodes_at_depth(self):
        """Test listing the nodes of one hierarchy level."""
        graph, root, a, b, a1, a2 = make_tree()
        assert graph.get_nodes_at_depth(0) == [root]
        assert graph.get_nodes_at_depth(1) == [a, b]
        assert graph.get_nodes_at_depth(2) == [a1, a2]
        assert graph.get_nodes_at_depth(3) == []

    def test_lowest_common_ancestor(self):
        """Test the deepest shared ancestor of two nodes."""
        graph, root, a, b, a1, a2 = make_tree()
        other = graph.add_node(Node("other"))
        assert graph.lowest_common_ancestor(a1, a2) == a
        assert graph.lowest_common_ancestor(a1, b) == root
        assert graph.lowest_common_ancestor(a, a2) == a
        assert graph.lowest_common_ancestor(a1, a1) == a1
        assert graph.lowest_common_ancestor(a1, other) is None
        assert graph.lowest_common_ancestor(a1, new_node_id()) is None


class TestPaths:
    """Test path queries on a cyclic graph."""

    def setup_method(self):
        self.graph = Graph()
        self.ids = [self.graph.add_node(Node(t)) for t in "ABCD"]
        a, b, c, d = self.ids
        self.graph.add_edge(Edge(a, b))
        self.graph.add_edge(Edge(b, c))
        self.graph.add_edge(Edge(c, a))

    def test_reflexive(self):
        """Test every node reaches itself."""
        for node_id in self.ids:
            assert self.graph.has_path(node_id, node_id)

    def test_symmetric(self):
        """Test reachability is symmetric."""
        for x in self.ids:
            for y in self.ids:
                assert self.graph.has_path(x, y) == self.graph.has_path(y, x)

    def test_isolated_node(self):
        """Test an isolated node is unreachable."""
        a, b, c, d = self.ids
        assert self.graph.has_path(a, c)
        assert not self.graph.has_path(a, d)
        assert not self.graph.has_path(a, new_node_id())

    def test_find_path(self):
        """Test shortest path lookup."""
        a, b, c, d = self.ids
        assert self.graph.find_path(a, c) == [a, c]
        assert self.graph.find_path(a, a) == [a]
        assert self.graph.find_path(a, d) is None

    def test_traverse_missing_start(self):
        """Test traversal from an absent node."""
        assert self.graph.traverse(new_node_id(), TraversalOrder.breadth_first) is None

    def test_has_cycles(self):
        """Test directed cycle detection over the edge set."""
        assert self.graph.has_cycles()
        a, b, c, d = self.ids
        self.graph.remove_edges_between(c, a)
        assert not self.graph.has_cycles()

    def test_hierarchy_is_not_a_cycle(self):
        """Test that parent links never count as cycles."""
        graph, root, a, b, a1, a2 = make_tree()
        graph.add_edge(Edge(a1, root))
        assert not graph.has_cycles()
        assert graph.statistics().has_cycles is False

    def test_would_create_cycle(self):
        """Test cycle prediction follows edge direction."""
        graph = Graph()
        a, b, c = [graph.add_node(Node(t)) for t in "abc"]
        graph.add_edge(Edge(a, b))
        graph.add_edge(Edge(b, c))
        assert graph.would_create_cycle(c, a)
        assert graph.would_create_cycle(a, a)
        assert not graph.would_create_cycle(a, c)
        graph.add_edge(Edge(a, c))
        assert not graph.has_cycles()


class TestPersistence:
    """Test enumerate and rebuild."""

    def test_round_trip(self):
        """Test enumerate and rebuild."""
        graph, root, a, b, a1, a2 = make_tree()
        graph.add_edge(Edge(a1, b))
        graph.add_edge(Edge(a2, root))

        nodes = list(graph.nodes())
        edges = list(graph.edges())
        random.Random(3).shuffle(nodes)

        rebuilt = Graph.from_entities(nodes, edges)
        assert rebuilt.node_count() == graph.node_count()
        assert rebuilt.edge_count() == graph.edge_count()
        for node_id in (root, a, b, a1, a2):
            assert {n.id for n in rebuilt.get_children(node_id)} == \
                {n.id for n in graph.get_children(node_id)}
            assert set(rebuilt.get_neighbors(node_id)) == set(graph.get_neighbors(node_id))
        rebuilt.validate()

    def test_dangling_parent_on_load(self):
        """Test rebuilding with a missing parent."""
        with pytest.raises(NodeNotFoundError):
            Graph.from_entities([Node("orphan", parent_id=new_node_id())])

    def test_add_nodes_batch(self):
        """Test that a node batch keeps going past failures."""
        graph = Graph()
        parent = Node("parent")
        child = Node("child", parent_id=parent.id)
        orphan = Node("orphan", parent_id=new_node_id())
        blank = Node("  ")
        result = graph.add_nodes_batch([parent, orphan, child, blank])

        assert result.successes == [parent.id, child.id]
        assert [node_id for node_id, _ in result.failures] == [orphan.id, blank.id]
        assert not result.all_succeeded()
        assert graph.node_count() == 2
        graph.validate()

    def test_update_nodes_batch(self):
        """Test batch updates report missing nodes."""
        graph, root, a, b, a1, a2 = make_tree()
        renamed = replace(graph.get_node(a), text="renamed")
        missing = Node("missing")
        result = graph.update_nodes_batch([renamed, missing])
        assert result.successes == [a]
        assert result.failures[0][0] == missing.id
        assert graph.get_node(a).text == "renamed"

    def test_add_edges_batch(self):
        """Test that an edge batch keeps going past failures."""
        graph, root, a, b, a1, a2 = make_tree()
        good = Edge(a1, b)
        dangling = Edge(a1, new_node_id())
        loop = Edge(a, a)
        result = graph.add_edges_batch([good, dangling, loop])
        assert result.successes == [good.id]
        assert len(result.failures) == 2
        assert graph.edge_count() == 1

    def test_clone_subgraph(self):
        """Test copying a subtree under fresh ids."""
        graph, root, a, b, a1, a2 = make_tree()
        graph.add_edge(Edge(a1, a2, label="inside"))
        graph.add_edge(Edge(a1, b))
        graph.get_node(a1).add_tag("keep")

        clone = graph.clone_subgraph(a)
        clone.validate()
        assert clone.node_count() == 3
        assert clone.edge_count() == 1
        assert not set(clone.node_ids()) & set(graph.node_ids())

        [top] = clone.get_root_nodes()
        assert top.text == "a"
        assert sorted(n.text for n in clone.get_children(top.id)) == ["a1", "a2"]
        [edge] = clone.edges()
        assert edge.label == "inside"
        assert edge.id not in {e.id for e in graph.edges()}

        copied = next(n for n in clone.nodes() if n.text == "a1")
        copied.add_tag("clone only")
        assert graph.get_node(a1).tags == ["keep"]

    def test_clone_subgraph_max_depth(self):
        """Test that max_depth limits the copied levels."""
        graph, root, a, b, a1, a2 = make_tree()
        assert graph.clone_subgraph(root, max_depth=0).node_count() == 1
        assert graph.clone_subgraph(root, max_depth=1).node_count() == 3
        assert graph.clone_subgraph(root).node_count() == 5

    def test_clone_subgraph_missing_root(self):
        """Test cloning from an absent node."""
        graph, *_ = make_tree()
        with pytest.raises(NodeNotFoundError):
            graph.clone_subgraph(new_node_id())

    def test_merge_graph(self):
        """Test merging another graph under fresh ids."""
        graph, root, a, b, a1, a2 = make_tree()
        other, o_root, o_a, o_b, o_a1, o_a2 = make_tree()
        other.add_edge(Edge(o_a1, o_b))

        mapping = graph.merge_graph(other)
        graph.validate()
        assert set(mapping) == {o_root, o_a, o_b, o_a1, o_a2}
        assert graph.node_count() == 10
        assert graph.edge_count() == 1
        assert graph.get_parent(mapping[o_a1]).id == mapping[o_a]
        assert graph.has_edge_between(mapping[o_a1], mapping[o_b])
        assert len(graph.get_root_nodes()) == 2
        assert other.node_count() == 5

    def test_merge_into_itself(self):
        """Test merging a graph with itself doubles it."""
        graph, root, a, b, a1, a2 = make_tree()
        graph.add_edge(Edge(a, b))
        graph.merge_graph(graph)
        graph.validate()
        assert graph.node_count() == 10
        assert graph.edge_count() == 2


class TestBookkeeping:
    """Test validation, statistics and clearing."""

    def test_validate_detects_in_place_reparent(self):
        """Test validate catches a stale hierarchy index."""
        graph, root, a, b, a1, a2 = make_tree()
        graph.get_node(a1).parent_id = b
        with pytest.raises(InvalidOperationError):
            graph.validate()

    def test_statistics(self):
        """Test graph statistics."""
        graph, root, a, b, a1, a2 = make_tree()
        graph.add_edge(Edge(a1, a2))
        stats = graph.statistics()
        assert stats.node_count == 5
        assert stats.edge_count == 1
        assert stats.root_count == 1
        assert stats.max_depth == 2
        assert stats.avg_degree == pytest.approx(2 / 5)
        assert stats.component_count == 4

    def test_clear(self):
        """Test clearing the graph."""
        graph, *_ = make_tree()
        assert not graph.is_empty()
        graph.clear()
        assert graph.is_empty()
        assert graph.node_count() == 0
        assert graph.edge_count() == 0
        assert graph.get_root_nodes() == []
