"""
Pure geometry functions for wire synthesis and the ignore-mode preview.

Nothing here touches the host document. All functions operate on Point
values and plain floats so they can be tested in isolation.

Handle length follows a piecewise ramp over the wire length L:

    L < 10        5% of L
    10 <= L < 20  5% -> 10% of L
    20 <= L < 30  10% -> 15% of L
    30 <= L < 50  15% -> 25% of L
    L >= 50       min(30% of L, 30)

with a floor of 0.5 so very short wires still bend.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence
import math

from .errors import GeometryDegenerate
from .types import Point

MAX_HANDLE_LENGTH = 30.0
MIN_HANDLE_LENGTH = 0.5

# Circle approximation constant for four cubic bezier segments
KAPPA = 4.0 * (math.sqrt(2.0) - 1.0) / 3.0


def unit_vector(vector: Point) -> Optional[Point]:
    """Normalize a vector, or None for a zero-length one."""
    length = vector.length
    if length == 0:
        return None
    return Point(vector.x / length, vector.y / length)


def within(a: Point, b: Point, tolerance: float) -> bool:
    """Inclusive distance test."""
    return a.distance_to(b) <= tolerance


def strictly_within(a: Point, b: Point, tolerance: float) -> bool:
    return a.distance_to(b) < tolerance


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def handle_length(wire_length: float) -> float:
    """Bezier handle length for a wire of the given length."""
    if wire_length < 10:
        length = wire_length * 0.05
    elif wire_length < 20:
        t = (wire_length - 10) / 10
        length = wire_length * (0.05 + t * 0.05)
    elif wire_length < 30:
        t = (wire_length - 20) / 10
        length = wire_length * (0.10 + t * 0.05)
    elif wire_length < 50:
        t = (wire_length - 30) / 20
        length = wire_length * (0.15 + t * 0.10)
    else:
        length = min(wire_length * 0.30, MAX_HANDLE_LENGTH)
    return max(length, MIN_HANDLE_LENGTH)


# =============================================================================
# Endpoint analysis
# =============================================================================


@dataclass(frozen=True)
class EndpointInfo:
    """Terminal anchor of an open path with its approach direction."""

    endpoint: Point
    direction: Point
    length: float


def terminal_endpoint(anchors: Sequence[Point]) -> Optional[EndpointInfo]:
    """Describe the last anchor of a path and how the path arrives at it.

    A zero-length final segment points along +x with length 1 so the
    preview still has something to draw.
    """
    if len(anchors) < 2:
        return None
    last = anchors[-1]
    prev = anchors[-2]
    delta = last - prev
    length = delta.length
    if length == 0:
        return EndpointInfo(endpoint=last, direction=Point(1.0, 0.0), length=1.0)
    return EndpointInfo(
        endpoint=last,
        direction=Point(delta.x / length, delta.y / length),
        length=length,
    )


def marker_radius(approach_length: float, low: float = 3.0, high: float = 15.0) -> float:
    """Radius of the endpoint disk in the ignore preview."""
    return clamp(approach_length / 6.0, low, high)


# =============================================================================
# Shapes
# =============================================================================


@dataclass(frozen=True)
class BezierPoint:
    anchor: Point
    left: Point
    right: Point


def circle_points(center: Point, radius: float) -> List[BezierPoint]:
    """Four smooth bezier points tracing a closed circle."""
    if radius <= 0:
        raise GeometryDegenerate(f"Circle radius must be positive, got {radius}")
    k = radius * KAPPA
    cx, cy = center.x, center.y
    return [
        BezierPoint(Point(cx, cy + radius), Point(cx - k, cy + radius), Point(cx + k, cy + radius)),
        BezierPoint(Point(cx + radius, cy), Point(cx + radius, cy + k), Point(cx + radius, cy - k)),
        BezierPoint(Point(cx, cy - radius), Point(cx + k, cy - radius), Point(cx - k, cy - radius)),
        BezierPoint(Point(cx - radius, cy), Point(cx - radius, cy - k), Point(cx - radius, cy + k)),
    ]


def arrow_points(origin: Point, direction: Point, length: float) -> List[List[Point]]:
    """Shaft and head polylines of an arrow starting at ``origin``.

    Returns two open polylines: the shaft, then a three-point head whose
    middle point is the tip.
    """
    if direction.length == 0:
        raise GeometryDegenerate("Arrow direction has zero length")
    tip = origin + direction.scaled(length)
    head = length * 0.35
    # perpendicular to direction
    normal = Point(-direction.y, direction.x)
    back = tip - direction.scaled(head)
    left = back + normal.scaled(head * 0.6)
    right = back - normal.scaled(head * 0.6)
    return [[origin, tip], [left, tip, right]]
