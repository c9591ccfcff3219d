"""
Anchor index and spatial matcher.

Anchor markers are one-point open paths that record connection points.
Queries scan the requested layers on every call; documents are small
enough that no index is kept.
"""

from typing import Iterable, List, Optional, Sequence

from .document import Entity, Layer, PathEntity
from .geometry import within
from .types import Point


def is_anchor_marker(entity: Entity) -> bool:
    return isinstance(entity, PathEntity) and entity.is_anchor_marker


def is_drawn_geometry(entity: Entity) -> bool:
    return isinstance(entity, PathEntity) and len(entity.points) >= 2


def anchor_position(marker: PathEntity) -> Point:
    return marker.points[0].anchor


def anchor_markers(layers: Iterable[Layer]) -> List[PathEntity]:
    """All anchor markers on ``layers`` in layer-then-entity order."""
    markers: List[PathEntity] = []
    for layer in layers:
        for entity in layer.entities:
            if is_anchor_marker(entity):
                markers.append(entity)
    return markers


def anchors_within(
    point: Point,
    tolerance: float,
    layers: Iterable[Layer],
) -> List[PathEntity]:
    """Anchor markers within ``tolerance`` of ``point`` (inclusive).

    Results keep traversal order; they are not sorted by distance.
    """
    return [
        marker
        for marker in anchor_markers(layers)
        if within(anchor_position(marker), point, tolerance)
    ]


def nearest_anchor(point: Point, markers: Sequence[PathEntity]) -> Optional[PathEntity]:
    """Closest marker with no distance bound. First wins on ties."""
    best: Optional[PathEntity] = None
    best_dist = float("inf")
    for marker in markers:
        dist = anchor_position(marker).distance_to(point)
        if dist < best_dist:
            best = marker
            best_dist = dist
    return best
