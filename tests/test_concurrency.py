"""Tests for reader/writer locking and the shared graph."""

import pytest
import threading
import time
from mindlayout.concurrency import ReadWriteLock, SharedGraph
from mindlayout.config import LayoutConfig, LayoutType
from mindlayout.force import EventType, ForceDirectedLayout
from mindlayout.graph import Graph
from mindlayout.models import Edge, Node


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.001)


class TestReadWriteLock:
    """Test ReadWriteLock class."""

    def test_readers_share(self):
        """Test readers hold the lock together."""
        lock = ReadWriteLock()
        lock.acquire_read()
        lock.acquire_read()
        assert lock.readers == 2
        lock.release_read()
        lock.release_read()
        assert lock.readers == 0

    def test_writer_excludes_readers(self):
        """Test a writer blocks readers."""
        lock = ReadWriteLock()
        entered = threading.Event()

        def reader():
            with lock.read_locked():
                entered.set()

        with lock.write_locked():
            assert lock.write_held
            t = threading.Thread(target=reader)
            t.start()
            assert not entered.wait(0.05)
        t.join(5)
        assert entered.is_set()

    def test_writer_waits_for_readers(self):
        """Test a writer waits for active readers."""
        lock = ReadWriteLock()
        entered = threading.Event()

        def writer():
            with lock.write_locked():
                entered.set()

        lock.acquire_read()
        t = threading.Thread(target=writer)
        t.start()
        assert not entered.wait(0.05)
        lock.release_read()
        t.join(5)
        assert entered.is_set()

    def test_waiting_writer_goes_before_new_readers(self):
        """Test writer preference over newly arriving readers."""
        lock = ReadWriteLock()
        order = []

        def writer():
            with lock.write_locked():
                order.append("w")

        def reader():
            with lock.read_locked():
                order.append("r")

        lock.acquire_read()
        w = threading.Thread(target=writer)
        w.start()
        wait_until(lambda: lock._writers_waiting == 1)

        r = threading.Thread(target=reader)
        r.start()
        time.sleep(0.05)
        assert order == []

        lock.release_read()
        w.join(5)
        r.join(5)
        assert order == ["w", "r"]

    def test_unbalanced_release(self):
        """Test releasing a lock that is not held."""
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            lock.release_read()
        with pytest.raises(RuntimeError):
            lock.release_write()

    def test_released_on_exception(self):
        """Test context managers release on error."""
        lock = ReadWriteLock()
        with pytest.raises(ValueError):
            with lock.write_locked():
                raise ValueError("boom")
        assert not lock.write_held
        with lock.read_locked():
            assert lock.readers == 1


class TestSharedGraph:
    """Test SharedGraph class."""

    def make_shared(self):
        shared = SharedGraph()
        with shared.write() as graph:
            root = graph.add_node(Node("root"))
            ids = [root] + [graph.add_node(Node(f"c{i}", parent_id=root)) for i in range(4)]
            graph.add_edge(Edge(ids[1], ids[2]))
        return shared, ids

    @pytest.mark.parametrize("layout_type", list(LayoutType))
    def test_compute_and_apply(self, layout_type):
        """Test layout positions are committed to the graph."""
        shared, ids = self.make_shared()
        result = shared.compute_and_apply(LayoutConfig(), layout_type)
        with shared.read() as graph:
            for node_id in ids:
                assert graph.get_node(node_id).position == result.positions[node_id]

    def test_compute_inside_read(self):
        """Test computing while already holding a read lock."""
        shared, ids = self.make_shared()
        with shared.read() as graph:
            result = shared.compute_layout(layout_type=LayoutType.tree)
            assert graph.node_count() == 5
        assert len(result.positions) == 5

    def test_concurrent_layouts_and_mutations(self):
        """Test layouts and mutations from several threads."""
        shared, ids = self.make_shared()
        errors = []

        def layouts():
            try:
                for _ in range(5):
                    result = shared.compute_layout(LayoutConfig(), LayoutType.radial)
                    shared.apply(result)
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        def mutations():
            try:
                for i in range(20):
                    with shared.write() as graph:
                        node = graph.add_node(Node(f"extra{i}", parent_id=ids[0]))
                        graph.add_edge(Edge(node, ids[1]))
                        if i % 2:
                            graph.remove_node(node)
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=layouts) for _ in range(3)]
        threads.append(threading.Thread(target=mutations))
        for t in threads:
            t.start()
        for t in threads:
            t.join(30)

        assert errors == []
        with shared.read() as graph:
            graph.validate()
            assert graph.node_count() == 5 + 10


class TestForceCancellation:
    """Test stopping a force run while another one starts."""

    def test_stop_survives_later_run(self):
        """Test that a run started after stop() does not revive an earlier run."""
        graph = Graph()
        ids = [graph.add_node(Node(f"n{i}")) for i in range(30)]
        for i in range(30):
            graph.add_edge(Edge(ids[i], ids[(i + 1) % 30]))

        engine = ForceDirectedLayout()
        running = threading.Event()
        engine.on(EventType.tick, lambda e: running.set())
        endless = LayoutConfig(parameters={"convergence_threshold": 0, "max_iterations": 200000})
        results = []

        first = threading.Thread(target=lambda: results.append(engine.compute(graph, endless)))
        first.start()
        assert running.wait(5)
        engine.stop()

        second = engine.compute(graph, LayoutConfig(parameters={"max_iterations": 5}))
        first.join(30)

        assert not first.is_alive()
        assert second.iterations == 5
        assert results[0].iterations < 200000
        assert not results[0].converged

    def test_stop_reaches_every_run(self):
        """Test that stop() cancels all runs in flight on one engine."""
        graph = Graph()
        ids = [graph.add_node(Node(f"n{i}")) for i in range(10)]
        for i in range(9):
            graph.add_edge(Edge(ids[i], ids[i + 1]))

        engine = ForceDirectedLayout()
        endless = LayoutConfig(parameters={"convergence_threshold": 0, "max_iterations": 200000})
        ticks = {}
        both_running = threading.Barrier(3)
        results = []

        def on_tick(e):
            name = threading.current_thread().name
            ticks[name] = ticks.get(name, 0) + 1
            if ticks[name] == 1:
                both_running.wait(5)

        engine.on(EventType.tick, on_tick)
        threads = [threading.Thread(target=lambda: results.append(engine.compute(graph, endless)),
                                    name=f"run{i}") for i in range(2)]
        for t in threads:
            t.start()
        both_running.wait(5)
        engine.stop()
        for t in threads:
            t.join(30)

        assert len(results) == 2
        for result in results:
            assert result.iterations < 200000
            assert not result.converged
