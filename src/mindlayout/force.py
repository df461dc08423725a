"""
Force-directed layout simulation.

Nodes repel each other, explicit edges act as springs and a weak pull keeps
the drawing near the layout center. The simulation advances a velocity per
node until the kinetic energy drops below the convergence threshold or the
iteration ceiling is hit. All pairwise terms are computed with NumPy
broadcasting over a (2 x n) coordinate array.
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Callable, Optional, TypedDict, Union
import logging
import math
import threading

import numpy as np

from .config import LayoutConfig, LayoutResult, LayoutType
from .engine import LayoutEngine
from .errors import InvalidOperationError, LayoutComputationError
from .geom import LayoutBounds, Point

if TYPE_CHECKING:
    from .graph import Graph

logger = logging.getLogger(__name__)

# tries at moving a node off an occupied start point
JITTER_ATTEMPTS = 100


class EventType(IntEnum):
    """
    The simulation fires three events:
    - start: iterations are about to begin
    - tick: fired once per iteration, listen to this to animate
    - end: the simulation stopped, converged or not
    """
    start = 0
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event dictionary passed to event listeners."""
    type: EventType
    iteration: int
    energy: float
    converged: bool


class PseudoRandom:
    """Linear congruential pseudo random number generator."""

    def __init__(self, seed: int = 1):
        self.seed = seed
        self.a = 214013
        self.c = 2531011
        self.m = 2147483648
        self.range = 32767

    def get_next(self) -> float:
        """Get random real between 0 and 1."""
        self.seed = (self.seed * self.a + self.c) % self.m
        return (self.seed >> 16) / self.range

    def get_next_between(self, min_val: float, max_val: float) -> float:
        """Get random real between min and max."""
        return min_val + self.get_next() * (max_val - min_val)


class ForceDirectedLayout(LayoutEngine):
    """
    Spring-electrical simulation over the explicit edges.

    Each iteration computes, for every node:

    - repulsion ``repulsion_strength / d^2`` from every other node, with d
      floored at 1
    - a Hooke spring ``spring_strength * (d - spring_length)`` along every
      incident edge
    - a centering pull ``center_strength * (center - x)``

    then updates ``v = damping * v + F / mass * time_step`` and
    ``x += v * time_step``. Node mass is ``1 + 0.1 * connections``. Positions
    are clamped into the canvas minus margin, zeroing the velocity on any
    clamped axis, so output is always finite. Energy is measured before
    that zeroing: a node held against the boundary by a strong force keeps
    the run from counting as converged.

    The run is reproducible: initial positions and the jitter separating
    co-located nodes come from a seeded linear congruential generator.
    """

    layout_type = LayoutType.force
    parameter_names = (
        "spring_strength",
        "spring_length",
        "repulsion_strength",
        "center_strength",
        "damping",
        "time_step",
        "max_iterations",
        "convergence_threshold",
        "adaptive_timestep",
        "max_displacement",
        "seed",
        "hierarchy_springs",
    )
    integer_parameters = ("seed",)

    # repulsion distance floor, squared
    MIN_DISTANCE_SQ = 1.0
    # springs shorter than this exert no directional force
    MIN_SPRING_LENGTH = 0.1

    def __init__(
        self,
        spring_strength: float = 0.1,
        spring_length: float = 100.0,
        repulsion_strength: float = 10000.0,
        center_strength: float = 0.01,
        damping: float = 0.5,
        time_step: float = 1.0,
        max_iterations: int = 1000,
        convergence_threshold: float = 0.01,
        adaptive_timestep: bool = True,
        max_displacement: Optional[float] = None,
        seed: Optional[int] = None,
        hierarchy_springs: bool = False
    ):
        """
        Initialize the force-directed layout engine.

        Args:
            spring_strength: Hooke constant of edge springs
            spring_length: Rest length of edge springs
            repulsion_strength: Numerator of the inverse-square repulsion
            center_strength: Pull toward the layout center per unit distance
            damping: Fraction of velocity kept each iteration
            time_step: Integration step
            max_iterations: Hard ceiling on iterations
            convergence_threshold: Stop once the sum of squared speeds is
                below this. With the other defaults a lone node stops about
                5 units short of the center
            adaptive_timestep: Shrink a step whose largest displacement would
                exceed max_displacement
            max_displacement: Displacement cap per step; defaults to
                spring_length
            seed: Seed for initial placement and jitter; None uses 1
            hierarchy_springs: Also treat parent/child pairs as springs
        """
        self.spring_strength = spring_strength
        self.spring_length = spring_length
        self.repulsion_strength = repulsion_strength
        self.center_strength = center_strength
        self.damping = damping
        self.time_step = time_step
        self.max_iterations = max_iterations
        self.convergence_threshold = convergence_threshold
        self.adaptive_timestep = adaptive_timestep
        self.max_displacement = max_displacement
        self.seed = seed
        self.hierarchy_springs = hierarchy_springs

        # cooperative cancellation, checked at the top of every iteration
        self.should_stop: Optional[Callable[[], bool]] = None
        # one token per run in flight; shared by the per-run copies of self
        self._runs: set[threading.Event] = set()
        self._runs_lock = threading.Lock()

        self.event: Optional[dict] = None

    def on(self, e: Union[EventType, str], listener: Callable[[Event], None]) -> ForceDirectedLayout:
        """
        Subscribe a listener to an event.

        Args:
            e: Event type (EventType enum or string name)
            listener: Function to call when event fires

        Returns:
            self for method chaining
        """
        if self.event is None:
            self.event = {}

        if isinstance(e, str):
            event_type = EventType[e]
            self.event[event_type] = listener
        else:
            self.event[e] = listener

        return self

    def trigger(self, e: Event) -> None:
        """
        Trigger an event by calling registered listeners.

        Args:
            e: Event to trigger
        """
        if self.event and e['type'] in self.event:
            self.event[e['type']](e)

    def stop(self) -> None:
        """
        Ask every simulation running on this engine to finish after its
        current iteration. Runs started later are not affected.
        """
        with self._runs_lock:
            for token in self._runs:
                token.set()

    def _cancelled(self, token: threading.Event) -> bool:
        if token.is_set():
            return True
        return self.should_stop is not None and bool(self.should_stop())

    def validate_parameters(self) -> None:
        for name in ("spring_strength", "repulsion_strength", "center_strength",
                     "convergence_threshold"):
            value = getattr(self, name)
            if not (math.isfinite(value) and value >= 0):
                raise InvalidOperationError(f"{name} cannot be negative")
        if not (math.isfinite(self.spring_length) and self.spring_length > 0):
            raise InvalidOperationError("spring_length must be positive")
        if not 0 < self.damping < 1:
            raise InvalidOperationError("damping must be between 0 and 1")
        if not 0 < self.time_step <= 1:
            raise InvalidOperationError("time_step must be in (0, 1]")
        if self.max_iterations < 1:
            raise InvalidOperationError("max_iterations must be at least 1")
        if self.max_displacement is not None and not self.max_displacement > 0:
            raise InvalidOperationError("max_displacement must be positive")

    def _layout(self, graph: Graph, config: LayoutConfig) -> LayoutResult:
        ids = graph.node_ids()
        n = len(ids)
        if n == 0:
            return LayoutResult.empty(self.layout_type)

        token = threading.Event()
        with self._runs_lock:
            self._runs.add(token)
        try:
            return self._simulate(graph, config, ids, token)
        finally:
            with self._runs_lock:
                self._runs.discard(token)

    def _simulate(
        self,
        graph: Graph,
        config: LayoutConfig,
        ids: list,
        token: threading.Event
    ) -> LayoutResult:
        n = len(ids)
        index = {node_id: i for i, node_id in enumerate(ids)}

        sources, targets = [], []
        for edge in graph.edges():
            sources.append(index[edge.from_node])
            targets.append(index[edge.to_node])
        if self.hierarchy_springs:
            for node in graph.nodes():
                if node.parent_id is not None:
                    sources.append(index[node.parent_id])
                    targets.append(index[node.id])
        s = np.array(sources, dtype=int)
        t = np.array(targets, dtype=int)

        connections = np.bincount(np.concatenate([s, t]), minlength=n) if len(s) else np.zeros(n)
        mass = 1.0 + 0.1 * connections

        inner = config.inner_bounds()
        x = self._initial_positions(graph, ids, inner, config.preserve_positions)
        v = np.zeros((2, n))
        center = np.array([[config.center.x], [config.center.y]])
        lo = np.array([[inner.min_x], [inner.min_y]])
        hi = np.array([[inner.max_x], [inner.max_y]])
        max_displacement = self.max_displacement or self.spring_length

        self.trigger({'type': EventType.start, 'iteration': 0, 'energy': 0.0})

        iterations = 0
        energy = 0.0
        converged = False
        while iterations < self.max_iterations:
            if self._cancelled(token):
                logger.info("Force layout stopped after %d iterations", iterations)
                break

            forces = self.compute_forces(x, s, t, center)
            v = v * self.damping + forces / mass * self.time_step

            step = v * self.time_step
            if self.adaptive_timestep:
                largest = float(np.max(np.sqrt(np.sum(step ** 2, axis=0))))
                if largest > max_displacement:
                    shrink = max_displacement / largest
                    v *= shrink
                    step *= shrink
            x = x + step
            iterations += 1
            energy = float(np.sum(v ** 2))

            clamped = (x < lo) | (x > hi)
            if clamped.any():
                x = np.clip(x, lo, hi)
                v[clamped] = 0.0

            self.trigger({'type': EventType.tick, 'iteration': iterations, 'energy': energy})
            if energy < self.convergence_threshold:
                converged = True
                break

        if not converged and iterations >= self.max_iterations:
            logger.info("Force layout hit max_iterations=%d, energy %.4g",
                        self.max_iterations, energy)
        if not np.isfinite(x).all():
            raise LayoutComputationError("simulation produced non-finite positions")

        self.trigger({'type': EventType.end, 'iteration': iterations,
                      'energy': energy, 'converged': converged})

        positions = {node_id: Point(float(x[0, i]), float(x[1, i])) for i, node_id in enumerate(ids)}
        return LayoutResult(
            positions=positions,
            bounds=LayoutBounds.from_points(positions.values()),
            iterations=iterations,
            energy=energy,
            converged=converged,
        )

    def compute_forces(
        self,
        x: np.ndarray,
        s: np.ndarray,
        t: np.ndarray,
        center: np.ndarray
    ) -> np.ndarray:
        """
        Net force on every node.

        Args:
            x: Current positions (2 x n)
            s: Spring source indices
            t: Spring target indices
            center: Layout center (2 x 1)

        Returns:
            Forces (2 x n)
        """
        # diff[:, u, v] = x[:, u] - x[:, v]
        diff = x[:, :, np.newaxis] - x[:, np.newaxis, :]
        dist_sq = np.maximum(np.sum(diff ** 2, axis=0), self.MIN_DISTANCE_SQ)
        np.fill_diagonal(dist_sq, np.inf)
        dist = np.sqrt(dist_sq)
        forces = np.sum(diff * (self.repulsion_strength / (dist_sq * dist))[np.newaxis, :, :], axis=2)

        if len(s):
            delta = x[:, t] - x[:, s]
            length = np.sqrt(np.sum(delta ** 2, axis=0))
            safe = np.maximum(length, self.MIN_SPRING_LENGTH)
            pull = np.where(length >= self.MIN_SPRING_LENGTH,
                            self.spring_strength * (length - self.spring_length) / safe, 0.0)
            f = delta * pull[np.newaxis, :]
            for dim in range(2):
                np.add.at(forces[dim], s, f[dim])
                np.add.at(forces[dim], t, -f[dim])

        forces += self.center_strength * (center - x)
        return forces

    def _initial_positions(
        self,
        graph: Graph,
        ids: list,
        inner: LayoutBounds,
        preserve: bool
    ) -> np.ndarray:
        """
        Starting coordinates (2 x n).

        Stored positions are used when preserve is set; non-finite ones are
        replaced by seeded random points and all are clamped into inner.
        Nodes sharing a start point are jittered apart.
        """
        random = PseudoRandom(self.seed if self.seed is not None else 1)
        x = np.zeros((2, len(ids)))
        seen: set[tuple[float, float]] = set()
        for i, node_id in enumerate(ids):
            p = graph.get_node(node_id).position
            if not (preserve and p.is_finite()):
                p = Point(random.get_next_between(inner.min_x, inner.max_x),
                          random.get_next_between(inner.min_y, inner.max_y))
            px = min(max(p.x, inner.min_x), inner.max_x)
            py = min(max(p.y, inner.min_y), inner.max_y)
            for _ in range(JITTER_ATTEMPTS):
                if (px, py) not in seen:
                    break
                px = min(max(px + random.get_next_between(-1.0, 1.0), inner.min_x), inner.max_x)
                py = min(max(py + random.get_next_between(-1.0, 1.0), inner.min_y), inner.max_y)
            seen.add((px, py))
            x[0, i] = px
            x[1, i] = py
        return x
