"""
Frame interpolation between two layouts, plus small position helpers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, Mapping
import math

from .errors import InvalidOperationError
from .geom import LayoutBounds, Point, scale_to_fit
from .models import NodeId


class EasingType(IntEnum):
    """Progress curves for animated transitions."""
    linear = 0
    ease_in_out = 1
    ease_out = 2


def ease(progress: float, easing: EasingType = EasingType.linear) -> float:
    """
    Apply an easing curve to a progress value in [0, 1].

    Args:
        progress: Linear progress
        easing: Curve to apply; both eased curves are quadratic

    Returns:
        Eased progress, equal to progress at 0 and 1
    """
    if easing == EasingType.ease_in_out:
        if progress < 0.5:
            return 2.0 * progress * progress
        return 1.0 - 2.0 * (1.0 - progress) ** 2
    if easing == EasingType.ease_out:
        return 1.0 - (1.0 - progress) ** 2
    return progress


@dataclass
class AnimationFrame:
    """
    One step of an animated transition.

    Attributes:
        frame_index: Position of the frame in the sequence
        timestamp_ms: Offset of the frame from the start of the animation
        progress: Eased progress of the frame
        positions: Interpolated node positions
    """

    frame_index: int
    timestamp_ms: float
    progress: float
    positions: dict[NodeId, Point] = field(default_factory=dict)


def interpolate_frames(
    start: Mapping[NodeId, Point],
    end: Mapping[NodeId, Point],
    frame_count: int,
    easing: EasingType = EasingType.linear,
    duration_ms: float = 1000.0
) -> Iterator[AnimationFrame]:
    """
    Interpolate node positions from start to end.

    Frame i has progress ``i / (frame_count - 1)`` passed through the easing
    curve, so the first frame is the start state and the last is the end
    state. A single frame is the end state. Nodes missing from start begin
    at their end position; nodes missing from end are not animated.

    Args:
        start: Positions before the transition
        end: Positions after the transition
        frame_count: Number of frames to produce
        easing: Progress curve
        duration_ms: Total animation length, used for frame timestamps

    Returns:
        Iterator over the frames, computed lazily and not restartable

    Raises:
        InvalidOperationError: If frame_count is less than 1
    """
    if frame_count < 1:
        raise InvalidOperationError("frame_count must be at least 1")
    if not (math.isfinite(duration_ms) and duration_ms >= 0):
        raise InvalidOperationError("duration_ms cannot be negative")
    return _frames(dict(start), dict(end), frame_count, EasingType(easing), duration_ms)


def _frames(start, end, frame_count, easing, duration_ms) -> Iterator[AnimationFrame]:
    interval = duration_ms / frame_count
    for i in range(frame_count):
        progress = i / (frame_count - 1) if frame_count > 1 else 1.0
        t = ease(progress, easing)
        positions = {}
        for node_id, q in end.items():
            p = start.get(node_id, q)
            positions[node_id] = Point(p.x + (q.x - p.x) * t, p.y + (q.y - p.y) * t)
        yield AnimationFrame(frame_index=i, timestamp_ms=i * interval,
                             progress=t, positions=positions)


def snap_to_grid(positions: Mapping[NodeId, Point], grid_size: float) -> dict[NodeId, Point]:
    """
    Round every position to the nearest grid intersection.

    Raises:
        InvalidOperationError: If grid_size is not positive
    """
    if not grid_size > 0:
        raise InvalidOperationError("grid_size must be positive")
    return {node_id: Point(round(p.x / grid_size) * grid_size,
                           round(p.y / grid_size) * grid_size)
            for node_id, p in positions.items()}


def fit_positions(
    positions: Mapping[NodeId, Point],
    width: float,
    height: float,
    padding: float = 50.0
) -> dict[NodeId, Point]:
    """
    Shrink and centre positions into a width x height viewport.

    Content that already fits is only recentred, never enlarged.

    Raises:
        InvalidOperationError: If the padding leaves no room in the viewport
    """
    if padding < 0 or width - 2.0 * padding <= 0 or height - 2.0 * padding <= 0:
        raise InvalidOperationError("viewport too small for padding")
    fitted = dict(positions)
    scale_to_fit(fitted, LayoutBounds(padding, padding, width - padding, height - padding))
    return fitted
