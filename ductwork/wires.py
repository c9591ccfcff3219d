"""
Register wire synthesis.

Two passes over the active document:

1. Canonicalization: placed assets are repointed to their alternate
   variants where one exists on disk, and every anchor marker on a mapped
   register layer gets the register asset placed on it (or relinked, if a
   different asset already sits there).
2. Synthesis (optional): each open endpoint of a duct path that lands near a
   register anchor gets a short curved connector drawn from the duct's
   neighbouring anchor to the endpoint. Endpoints near an ignore point are
   never wired.

Wire planning is pure (``plan_wires``) and only the final step touches the
document.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Literal, Optional, Sequence, Tuple
import logging

from .anchors import anchor_markers, anchor_position
from .assets import AssetLibrary
from .config import Config, DEFAULT_CONFIG
from .document import Document, Layer, PathEntity, PathPoint, PathStyle, PlacedAsset, RGBColor
from .errors import AssetNotFound, HostOperationFailed, NoDocument
from .geometry import handle_length, strictly_within, unit_vector
from .layers import is_duct_layer, is_ignore_layer, layer_override
from .oplog import OpLog
from .types import Point, WireResult

logger = logging.getLogger("ductwork.wires")

# Two wires whose endpoints agree this closely are the same wire
DUPLICATE_TOLERANCE = 0.5


# =============================================================================
# Planning
# =============================================================================


@dataclass(frozen=True)
class DuctPath:
    """Anchors of a duct path and the layer it lives on."""

    points: Tuple[Point, ...]
    layer: str
    name: str = ""


@dataclass(frozen=True)
class WirePlan:
    """A connector from a duct's neighbouring anchor to its endpoint."""

    layer: str
    start: Point
    end: Point
    direction: Point
    handle: float
    end_handle_ratio: float = 0.6

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)

    def path_points(self) -> List[PathPoint]:
        """Bezier points: start follows the duct, end arrives travelling down."""
        start = PathPoint(
            anchor=self.start,
            left_direction=self.start,
            right_direction=self.start + self.direction.scaled(self.handle),
            point_type="smooth",
        )
        end = PathPoint(
            anchor=self.end,
            left_direction=self.end.offset_by(0.0, self.handle * self.end_handle_ratio),
            right_direction=self.end,
            point_type="smooth",
        )
        return [start, end]


SkipReason = Literal["ignored", "short", "duplicate"]


@dataclass(frozen=True)
class EndpointSkip:
    point: Point
    reason: SkipReason
    length: Optional[float] = None


@dataclass
class WirePlanResult:
    wires: List[WirePlan] = field(default_factory=list)
    skips: List[EndpointSkip] = field(default_factory=list)


def _approaches(points: Sequence[Point]) -> Iterator[Tuple[Point, Point, Optional[Point]]]:
    """(endpoint, previous, before-previous) for both ends of a path."""
    n = len(points)
    yield points[0], points[1], points[2] if n >= 3 else None
    yield points[-1], points[-2], points[-3] if n >= 3 else None


def _is_duplicate(start: Point, end: Point, wires: Sequence[Tuple[Point, Point]]) -> bool:
    """A wire is only a copy when it runs the same way; B to A is a different wire."""
    for a, b in wires:
        if a.distance_to(start) <= DUPLICATE_TOLERANCE and b.distance_to(end) <= DUPLICATE_TOLERANCE:
            return True
    return False


def plan_wires(
    duct_paths: Sequence[DuctPath],
    register_points: Sequence[Point],
    ignore_points: Sequence[Point],
    existing_wires: Sequence[Tuple[Point, Point]] = (),
    config: Config = DEFAULT_CONFIG,
) -> WirePlanResult:
    """Decide which duct endpoints get a wire.

    Args:
        duct_paths: Candidate duct paths (paths with fewer than two points
            are ignored)
        register_points: Register anchor positions
        ignore_points: Every point on the Ignore layer
        existing_wires: (start, end) of wires already in the document
        config: Tolerances and handle ratio

    Returns:
        WirePlanResult with planned wires and the endpoints that were
        matched to a register but skipped
    """
    result = WirePlanResult()
    known: List[Tuple[Point, Point]] = list(existing_wires)

    for duct in duct_paths:
        if len(duct.points) < 2:
            continue
        for endpoint, prev, before in _approaches(duct.points):
            if any(strictly_within(endpoint, p, config.ignore_tolerance) for p in ignore_points):
                result.skips.append(EndpointSkip(point=endpoint, reason="ignored"))
                continue
            if not any(
                strictly_within(endpoint, r, config.wire_connection_tolerance)
                for r in register_points
            ):
                continue

            length = prev.distance_to(endpoint)
            if length < config.min_wire_length or length == 0:
                result.skips.append(EndpointSkip(point=endpoint, reason="short", length=length))
                continue
            if _is_duplicate(prev, endpoint, known):
                result.skips.append(EndpointSkip(point=endpoint, reason="duplicate", length=length))
                continue

            direction = unit_vector(endpoint - prev)
            if before is not None:
                direction = unit_vector(prev - before) or direction

            wire = WirePlan(
                layer=duct.layer,
                start=prev,
                end=endpoint,
                direction=direction,
                handle=handle_length(length),
                end_handle_ratio=config.end_handle_ratio,
            )
            result.wires.append(wire)
            known.append((prev, endpoint))

    return result


# =============================================================================
# Document scanning
# =============================================================================


def is_register_wire(entity, config: Config = DEFAULT_CONFIG) -> bool:
    return isinstance(entity, PathEntity) and entity.note == config.wire_tag


def collect_duct_paths(document: Document, config: Config = DEFAULT_CONFIG) -> List[DuctPath]:
    ducts: List[DuctPath] = []
    for layer in document.layers:
        if not is_duct_layer(layer, config):
            continue
        for path in layer.paths:
            if path.closed or path.guides or is_register_wire(path, config):
                continue
            if len(path.points) < 2:
                continue
            ducts.append(DuctPath(points=tuple(path.anchors), layer=layer.name, name=path.display_name))
    return ducts


def collect_register_points(document: Document, config: Config = DEFAULT_CONFIG) -> List[Point]:
    layers = [layer for layer in document.layers if layer.name in config.register_layers]
    return [anchor_position(m) for m in anchor_markers(layers)]


def collect_ignore_points(document: Document, config: Config = DEFAULT_CONFIG) -> List[Point]:
    points: List[Point] = []
    for layer in document.layers:
        if is_ignore_layer(layer, config):
            for path in layer.paths:
                points.extend(path.anchors)
    return points


def collect_existing_wires(document: Document, config: Config = DEFAULT_CONFIG) -> List[Tuple[Point, Point]]:
    wires = []
    for entity in document.iter_entities():
        if is_register_wire(entity, config) and len(entity.points) >= 2:
            wires.append((entity.anchors[0], entity.anchors[-1]))
    return wires


# =============================================================================
# Canonicalization
# =============================================================================


def swap_to_alternates(
    document: Document,
    assets: AssetLibrary,
    oplog: OpLog,
) -> int:
    """Repoint placed assets to their alternate variant. Returns the count."""
    swapped = 0
    for asset in document.placed_assets:
        try:
            alternate = assets.alternate_of(asset.file)
            if alternate is None:
                continue
            old = asset.file.name
            asset.relink(alternate)
        except Exception as e:
            logger.error(f"Failed to swap {asset.display_name}: {e}")
            oplog.item_fail(asset.display_name, str(e))
            continue
        swapped += 1
        oplog.asset_swap(old, alternate.name)
        logger.debug(f"Swapped {old} -> {alternate.name}")
    return swapped


def _placed_near(
    document: Document, point: Point, tolerance: float
) -> Optional[PlacedAsset]:
    for asset in document.placed_assets:
        if strictly_within(asset.geometric_center, point, tolerance):
            return asset
    return None


def _place_on_layer(
    document: Document,
    layer: Layer,
    asset_name: str,
    assets: AssetLibrary,
    config: Config,
    oplog: OpLog,
) -> int:
    markers = anchor_markers([layer])
    if not markers:
        return 0
    try:
        register_file = assets.register_asset(asset_name)
    except AssetNotFound as e:
        logger.warning(f"No register asset for {layer.name}: {e}")
        oplog.item_fail(asset_name, str(e))
        return 0

    changed = 0
    for marker in markers:
        point = anchor_position(marker)
        try:
            existing = _placed_near(document, point, config.register_search_tolerance)
            if existing is not None:
                if existing.file.name == register_file.name:
                    continue
                old = existing.file.name
                existing.relink(register_file)
                oplog.asset_swap(old, register_file.name)
                logger.info(
                    f"Swapped register at [{point.x:.1f},{point.y:.1f}] to {register_file.name}"
                )
            else:
                with layer_override(layer, config):
                    placed = layer.place(register_file)
                    placed.center_on(point)
                oplog.register_place(layer.name, register_file.name, point.x, point.y)
                logger.info(
                    f"Placed {register_file.name} at [{point.x:.1f},{point.y:.1f}]"
                )
        except Exception as e:
            logger.error(f"Error placing register on {layer.name}: {e}")
            oplog.item_fail(marker.display_name, str(e))
            continue
        changed += 1
    return changed


def place_register_assets(
    document: Document,
    assets: AssetLibrary,
    config: Config = DEFAULT_CONFIG,
    oplog: Optional[OpLog] = None,
) -> int:
    """Ensure every register anchor carries its register asset."""
    oplog = oplog if oplog is not None else OpLog()
    changed = 0
    for layer_name, asset_name in config.register_assets.items():
        layer = document.layer(layer_name)
        if layer is None:
            continue
        changed += _place_on_layer(document, layer, asset_name, assets, config, oplog)
    return changed


# =============================================================================
# Synthesis
# =============================================================================


def wire_style(config: Config = DEFAULT_CONFIG) -> PathStyle:
    return PathStyle(
        stroked=True,
        stroke_width=config.wire_stroke_width,
        stroke_color=RGBColor(*config.wire_color),
        stroke_cap="round",
        stroke_join="round",
        filled=False,
        fill_color=None,
    )


def draw_wire(layer: Layer, plan: WirePlan, config: Config = DEFAULT_CONFIG) -> PathEntity:
    with layer_override(layer, config):
        wire = layer.add_path([plan.start, plan.end], closed=False)
        wire.unapply_all()
        wire.style = wire_style(config)
        wire.points = plan.path_points()
        wire.name = config.wire_name
        wire.note = config.wire_tag
    return wire


def create_wires(
    document: Document,
    config: Config = DEFAULT_CONFIG,
    oplog: Optional[OpLog] = None,
) -> int:
    """Plan and draw register wires. Returns the number drawn."""
    oplog = oplog if oplog is not None else OpLog()
    ducts = collect_duct_paths(document, config)
    registers = collect_register_points(document, config)
    ignores = collect_ignore_points(document, config)
    logger.info(
        f"Found {len(ducts)} duct paths, {len(registers)} register points, "
        f"{len(ignores)} ignore points"
    )

    plan = plan_wires(ducts, registers, ignores, collect_existing_wires(document, config), config)

    for skip in plan.skips:
        if skip.reason == "ignored":
            oplog.endpoint_ignored(skip.point.x, skip.point.y)
            logger.debug(f"Skipping endpoint at [{skip.point.x:.1f},{skip.point.y:.1f}] near ignore point")
        else:
            oplog.wire_skip(skip.point.x, skip.point.y, skip.reason, skip.length)

    created = 0
    for wire in plan.wires:
        layer = document.layer(wire.layer)
        try:
            if layer is None:
                raise HostOperationFailed(f"Layer {wire.layer!r} disappeared")
            draw_wire(layer, wire, config)
        except Exception as e:
            logger.error(f"Wire creation error at [{wire.end.x:.1f},{wire.end.y:.1f}]: {e}")
            oplog.item_fail(config.wire_name, str(e))
            continue
        created += 1
        oplog.wire_add(wire.layer, wire.start.x, wire.start.y, wire.end.x, wire.end.y, wire.handle)
    return created


def synthesize_register_wires(
    document: Optional[Document],
    enable_wire_creation: bool = False,
    assets: Optional[AssetLibrary] = None,
    config: Config = DEFAULT_CONFIG,
    oplog: Optional[OpLog] = None,
) -> WireResult:
    """Canonicalize assets, then optionally synthesize register wires."""
    if document is None:
        raise NoDocument()
    oplog = oplog if oplog is not None else OpLog()
    assets = assets if assets is not None else AssetLibrary(config=config)

    swapped = swap_to_alternates(document, assets, oplog)
    swapped += place_register_assets(document, assets, config, oplog)

    created = 0
    if enable_wire_creation:
        created = create_wires(document, config, oplog)
    else:
        logger.info("Register wire creation skipped (disabled)")

    result = WireResult(
        swapped=swapped,
        wires_created=created,
        wires_enabled=enable_wire_creation,
        alternate_label=config.alternate_label,
        oplog=oplog,
    )
    logger.info(result.summary())
    return result
