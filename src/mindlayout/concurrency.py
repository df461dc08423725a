"""
Reader/writer guarded access to a shared graph.

Queries and layout computation take the read side and may run together.
Mutations take the write side and run alone, so a reader never sees an
edge that has left the edge map but not yet the adjacency index.

Example:
    shared = SharedGraph()
    with shared.write() as graph:
        root = graph.add_node(Node("Root"))
    result = shared.compute_layout(LayoutConfig(), LayoutType.force)
    shared.apply(result)
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional
import logging
import threading

from .config import LayoutConfig, LayoutResult, LayoutType
from .graph import Graph
from .layout import LayoutCoordinator, apply_layout

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """
    Writer-preferring reader/writer lock.

    Once a writer is waiting, new readers block until it has finished, so a
    steady stream of readers cannot starve mutations. The lock is not
    reentrant.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read without matching acquire_read")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write without matching acquire_write")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def write_held(self) -> bool:
        return self._writer


class SharedGraph:
    """
    A Graph guarded by a single ReadWriteLock.

    Layouts are computed while holding only the read lock and committed
    under a brief write lock.
    """

    def __init__(self, graph: Optional[Graph] = None,
                 coordinator: Optional[LayoutCoordinator] = None):
        self._graph = graph if graph is not None else Graph()
        self.coordinator = coordinator if coordinator is not None else LayoutCoordinator()
        self.lock = ReadWriteLock()

    @contextmanager
    def read(self) -> Iterator[Graph]:
        """Shared access; callers must not mutate the yielded graph."""
        with self.lock.read_locked():
            yield self._graph

    @contextmanager
    def write(self) -> Iterator[Graph]:
        """Exclusive access for mutations."""
        with self.lock.write_locked():
            yield self._graph

    def compute_layout(
        self,
        config: Optional[LayoutConfig] = None,
        layout_type: Optional[LayoutType] = None
    ) -> LayoutResult:
        """Compute a layout while holding the read lock."""
        with self.read() as graph:
            return self.coordinator.compute(graph, config, layout_type)

    def apply(self, result: LayoutResult) -> int:
        """Commit result's positions under the write lock."""
        with self.write() as graph:
            updated = apply_layout(graph, result)
        logger.debug("Committed %d positions", updated)
        return updated

    def compute_and_apply(
        self,
        config: Optional[LayoutConfig] = None,
        layout_type: Optional[LayoutType] = None
    ) -> LayoutResult:
        """Compute under the read lock, then commit under the write lock."""
        result = self.compute_layout(config, layout_type)
        self.apply(result)
        return result
