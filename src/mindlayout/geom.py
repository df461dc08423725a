"""
Geometric utilities for mindmap layout.

This module provides the point and bounds value types shared by every
layout engine, together with pure helpers for polar coordinates, angle
distribution, ring radius estimation and fitting point sets into a
target rectangle.
"""

from __future__ import annotations

from typing import Iterable, MutableMapping, NamedTuple, Optional, TypeVar
import math

K = TypeVar("K")

TWO_PI = 2.0 * math.pi


class Point(NamedTuple):
    """Immutable 2D point."""

    x: float = 0.0
    y: float = 0.0

    @staticmethod
    def origin() -> Point:
        return Point(0.0, 0.0)

    def distance_to(self, other: Point) -> float:
        """Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def midpoint(self, other: Point) -> Point:
        return Point((self.x + other.x) / 2.0, (self.y + other.y) / 2.0)

    def translate(self, dx: float, dy: float) -> Point:
        return Point(self.x + dx, self.y + dy)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


class LayoutBounds:
    """
    Axis-aligned rectangle enclosing a set of positions.

    Attributes:
        min_x: Left edge
        min_y: Top edge
        max_x: Right edge
        max_y: Bottom edge
    """

    def __init__(self, min_x: float = 0.0, min_y: float = 0.0,
                 max_x: float = 0.0, max_y: float = 0.0):
        self.min_x = min_x
        self.min_y = min_y
        self.max_x = max_x
        self.max_y = max_y

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> LayoutBounds:
        """
        Compute the bounds of a collection of points.

        Args:
            points: Points to enclose

        Returns:
            Bounds over both axes. An empty collection yields a zero-sized
            bounds at the origin.
        """
        bounds: Optional[LayoutBounds] = None
        for p in points:
            if bounds is None:
                bounds = cls(p.x, p.y, p.x, p.y)
            else:
                bounds.extend(p)
        return bounds if bounds is not None else cls()

    def extend(self, p: Point) -> None:
        """Grow the bounds to include p."""
        self.min_x = min(self.min_x, p.x)
        self.min_y = min(self.min_y, p.y)
        self.max_x = max(self.max_x, p.x)
        self.max_y = max(self.max_y, p.y)

    def width(self) -> float:
        return self.max_x - self.min_x

    def height(self) -> float:
        return self.max_y - self.min_y

    def center(self) -> Point:
        return Point((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    def is_valid(self) -> bool:
        """Bounds are valid when max >= min on both axes."""
        return self.max_x >= self.min_x and self.max_y >= self.min_y

    def contains(self, p: Point, tolerance: float = 0.0) -> bool:
        return (self.min_x - tolerance <= p.x <= self.max_x + tolerance
                and self.min_y - tolerance <= p.y <= self.max_y + tolerance)

    def expanded(self, margin: float) -> LayoutBounds:
        """Return new bounds grown by margin on every side."""
        return LayoutBounds(self.min_x - margin, self.min_y - margin,
                            self.max_x + margin, self.max_y + margin)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LayoutBounds):
            return NotImplemented
        return (self.min_x, self.min_y, self.max_x, self.max_y) == \
            (other.min_x, other.min_y, other.max_x, other.max_y)

    def __repr__(self) -> str:
        return (f"LayoutBounds(min_x={self.min_x}, min_y={self.min_y}, "
                f"max_x={self.max_x}, max_y={self.max_y})")


def distance(p: Point, q: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(p.x - q.x, p.y - q.y)


def normalize_angle(angle: float) -> float:
    """
    Map any real angle into [0, 2*pi).

    Args:
        angle: Angle in radians

    Returns:
        Equivalent angle in [0, 2*pi)
    """
    a = math.fmod(angle, TWO_PI)
    if a < 0:
        a += TWO_PI
    # fmod of a tiny negative value can round up to exactly 2*pi
    if a >= TWO_PI:
        a = 0.0
    return a


def polar_to_cartesian(radius: float, angle: float, center: Point) -> Point:
    """Convert polar coordinates around center to a cartesian point."""
    return Point(center.x + radius * math.cos(angle),
                 center.y + radius * math.sin(angle))


def cartesian_to_polar(point: Point, center: Point) -> tuple[float, float]:
    """
    Convert a point to polar coordinates relative to center.

    Returns:
        (radius, angle) with angle normalized into [0, 2*pi)
    """
    dx = point.x - center.x
    dy = point.y - center.y
    return math.hypot(dx, dy), normalize_angle(math.atan2(dy, dx))


def distribute_angles(count: int, start_angle: float = 0.0) -> list[float]:
    """
    Spread count angles evenly around a full circle.

    Args:
        count: Number of angles
        start_angle: Angle of the first entry

    Returns:
        count angles spaced by 2*pi/count, starting at start_angle
    """
    if count <= 0:
        return []
    if count == 1:
        return [start_angle]
    step = TWO_PI / count
    return [normalize_angle(start_angle + i * step) for i in range(count)]


def calculate_radius(child_count: int, min_distance: float, node_size: float) -> float:
    """
    Radius of a ring that keeps child_count nodes apart.

    The chord between neighbouring children must be at least
    min_distance + node_size.

    Args:
        child_count: Number of nodes on the ring
        min_distance: Minimum gap between nodes
        node_size: Diameter of a node

    Returns:
        Radius no smaller than min_distance or 2 * node_size
    """
    floor = max(min_distance, node_size * 2.0)
    if child_count <= 1:
        return floor
    half_step = math.pi / child_count
    chord = min_distance + node_size
    return max(chord / (2.0 * math.sin(half_step)), floor)


def scale_to_fit(points: MutableMapping[K, Point], target_bounds: LayoutBounds) -> None:
    """
    Uniformly rescale and recentre points so they fit in target_bounds.

    Aspect ratio is preserved and content that already fits is only
    translated, never enlarged. Empty, singleton and coincident point sets
    are left untouched. An axis with zero extent does not constrain the
    scale.

    Args:
        points: Mapping of keys to points, updated in place
        target_bounds: Rectangle to fit into
    """
    if len(points) < 2:
        return

    current = LayoutBounds.from_points(points.values())
    width = current.width()
    height = current.height()
    if not current.is_valid() or (width <= 0.0 and height <= 0.0):
        return

    scales = [1.0]
    if width > 0.0:
        scales.append(target_bounds.width() / width)
    if height > 0.0:
        scales.append(target_bounds.height() / height)
    scale = max(min(scales), 0.0)

    cc = current.center()
    tc = target_bounds.center()
    for key, p in points.items():
        points[key] = Point(tc.x + (p.x - cc.x) * scale,
                            tc.y + (p.y - cc.y) * scale)
