"""
Base class for layout engines.

An engine is a callable object ``(Graph, LayoutConfig) -> LayoutResult``.
Its tuning parameters are plain attributes set in ``__init__``; a run can
override any of them through ``LayoutConfig.parameters`` without changing
the engine instance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any
import copy
import logging
import time

from .config import LayoutConfig, LayoutResult, LayoutType
from .errors import InvalidOperationError

if TYPE_CHECKING:
    from .graph import Graph

logger = logging.getLogger(__name__)


class LayoutEngine(ABC):
    """Abstract base class for layout engines."""

    layout_type: LayoutType

    # names of the attributes that LayoutConfig.parameters may override
    parameter_names: tuple[str, ...] = ()
    # optional parameters whose default is None but whose values are integers
    integer_parameters: tuple[str, ...] = ()

    def compute(self, graph: Graph, config: LayoutConfig) -> LayoutResult:
        """
        Lay out graph without mutating it.

        The configuration and the effective engine parameters are validated
        before any computation starts.

        Args:
            graph: Graph to read
            config: Canvas and parameter overrides for this run

        Returns:
            The computed layout

        Raises:
            InvalidOperationError: For an invalid configuration or parameter
        """
        config.validate()
        settings = self.with_parameters(config.parameters)
        settings.validate_parameters()

        started = time.perf_counter()
        result = settings._layout(graph, config)
        result.computation_time = time.perf_counter() - started
        result.layout_type = self.layout_type

        logger.debug("%s layout of %d nodes: %d iterations, energy %.4g, %.3f ms",
                     self.layout_type.name, len(result.positions), result.iterations,
                     result.energy, result.computation_time * 1000.0)
        return result

    __call__ = compute

    def with_parameters(self, overrides: dict[str, Any]) -> LayoutEngine:
        """
        Copy of this engine with matching overrides applied.

        Keys that name no parameter of this engine are ignored, so one
        parameter bag can serve several engines.
        """
        settings = copy.copy(self)
        for name, value in overrides.items():
            if name not in self.parameter_names:
                continue
            current = getattr(self, name)
            if value is None:
                setattr(settings, name, None)
            elif isinstance(current, bool):
                setattr(settings, name, bool(value))
            elif isinstance(current, int) or name in self.integer_parameters:
                setattr(settings, name, _as_int(name, value))
            else:
                setattr(settings, name, _as_float(name, value))
        return settings

    @abstractmethod
    def validate_parameters(self) -> None:
        """Raise InvalidOperationError for an out-of-range parameter."""
        ...

    @abstractmethod
    def _layout(self, graph: Graph, config: LayoutConfig) -> LayoutResult:
        ...


def _as_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidOperationError(f"{name} must be a number") from e


def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidOperationError(f"{name} must be an integer") from e
