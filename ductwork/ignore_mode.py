"""
Ignore mode: interactive preview and ignore-marker placement.

While active, the controller follows the document selection. When the
selection holds an eligible open path, the path's terminal endpoint is
previewed on a temporary overlay layer (a translucent clone of the path, a
disk at the endpoint and an arrow along the approach direction). Applying
drops an invisible ignore marker on that endpoint, which suppresses wire
synthesis there.

States:

    inactive
    active:no-selection
    active:<entity name>

The overlay is always cleared before it is rebuilt, and deactivation
cancels the selection subscription before removing the overlay layer.
"""

from dataclasses import dataclass, replace
from typing import List, Literal, Optional
import logging

from .config import Config, DEFAULT_CONFIG
from .document import (
    Document,
    Entity,
    Host,
    Layer,
    PathEntity,
    PathPoint,
    PathStyle,
    PlacedAsset,
    RGBColor,
    Subscription,
)
from .errors import NoDocument
from .geometry import EndpointInfo, arrow_points, circle_points, marker_radius, terminal_endpoint
from .layers import ensure_ignore_layer, is_preview_layer, layer_override
from .oplog import OpLog
from .types import IgnoreSelectionResult, Point

logger = logging.getLogger("ductwork.ignore")

IgnoreOutcome = Literal["IGNORE_ADDED", "NO_SELECTION", "NO_DOCUMENT", "INVALID_SELECTION"]
Mode = Literal["inactive", "no-selection", "selected"]

ARROW_LENGTH_FACTOR = 2.5


def is_eligible_path(entity: Entity, config: Config = DEFAULT_CONFIG) -> bool:
    """An editable open path with at least one segment."""
    if not isinstance(entity, PathEntity):
        return False
    if entity.closed or len(entity.points) < 2:
        return False
    if entity.guides or entity.locked or entity.hidden:
        return False
    layer = entity.layer
    if layer is None or not layer.is_editable:
        return False
    return not is_preview_layer(layer, config)


def _marker_style() -> PathStyle:
    return PathStyle(stroked=False, stroke_color=None, filled=False, fill_color=None, opacity=0.0)


def _add_marker(layer: Layer, point: Point, config: Config) -> PathEntity:
    return layer.add_path(
        [point, point],
        closed=False,
        name=config.ignore_marker_name,
        style=_marker_style(),
    )


def add_ignore_marker(
    document: Document,
    point: Point,
    config: Config = DEFAULT_CONFIG,
    oplog: Optional[OpLog] = None,
    source: str = "",
) -> PathEntity:
    """Drop an invisible ignore marker at ``point`` on the Ignore layer."""
    layer = ensure_ignore_layer(document, config, oplog=oplog)
    with layer_override(layer, config):
        marker = _add_marker(layer, point, config)
    if oplog is not None:
        oplog.ignore_add(point.x, point.y, source)
    logger.info(f"Added ignore point at [{point.x:.1f},{point.y:.1f}]")
    return marker


def ignore_selection(
    document: Optional[Document],
    config: Config = DEFAULT_CONFIG,
    oplog: Optional[OpLog] = None,
) -> IgnoreSelectionResult:
    """Ignore every selected endpoint and park selected pieces on the Ignore layer.

    Open paths get a marker on their terminal endpoint. Placed assets on
    piece layers move to the Ignore layer and leave a marker at their former
    center.
    """
    oplog = oplog if oplog is not None else OpLog()
    if document is None:
        return IgnoreSelectionResult(reason="no-document", oplog=oplog)
    selection = document.selection
    if not selection:
        return IgnoreSelectionResult(reason="no-selection", oplog=oplog)

    paths = [e for e in selection if isinstance(e, PathEntity) and not e.is_anchor_marker]
    parts = [
        e
        for e in selection
        if isinstance(e, PlacedAsset) and e.layer is not None and e.layer.name in config.piece_layers
    ]
    result = IgnoreSelectionResult(total=len(paths) + len(parts), oplog=oplog)
    eligible = {id(p) for p in paths if is_eligible_path(p, config)}

    layer = ensure_ignore_layer(document, config, oplog=oplog)
    with layer_override(layer, config):
        for path in paths:
            info = terminal_endpoint(path.anchors) if id(path) in eligible else None
            if info is None:
                oplog.item_skip(path.display_name, "ineligible")
                result.skipped += 1
                continue
            try:
                _add_marker(layer, info.endpoint, config)
            except Exception as e:
                logger.error(f"Failed to add ignore point for {path.display_name}: {e}")
                oplog.item_fail(path.display_name, str(e))
                result.skipped += 1
                continue
            oplog.ignore_add(info.endpoint.x, info.endpoint.y, path.display_name)
            result.added += 1

        for part in parts:
            try:
                center = part.geometric_center
                part.move_to(layer)
            except Exception as e:
                logger.error(f"Failed to move {part.display_name} to {layer.name}: {e}")
                oplog.item_fail(part.display_name, str(e))
                result.skipped += 1
                continue
            oplog.item_move(part.display_name, part.kind, layer.name)
            result.moved += 1
            try:
                _add_marker(layer, center, config)
            except Exception as e:
                logger.error(f"Failed to add ignore point for {part.display_name}: {e}")
                oplog.item_fail(part.display_name, str(e))
                continue
            oplog.ignore_add(center.x, center.y, part.display_name)
            result.added += 1

    logger.info(
        f"Ignored selection: {result.added} points added, {result.moved} pieces moved, "
        f"{result.skipped} skipped"
    )
    return result


# =============================================================================
# Controller
# =============================================================================


@dataclass(frozen=True)
class IgnoreTarget:
    """The path under preview and its endpoint at evaluation time."""

    path: PathEntity
    endpoint: EndpointInfo


class IgnoreModeController:
    """Session-scoped ignore mode state for one host.

    Holds at most one live selection subscription. All state lives on the
    instance; construct one per session and call ``cleanup`` on shutdown.
    """

    def __init__(self, host: Host, config: Config = DEFAULT_CONFIG):
        self.host = host
        self.config = config
        self._subscription: Optional[Subscription] = None
        self._target: Optional[IgnoreTarget] = None

    @property
    def active(self) -> bool:
        return self._subscription is not None

    @property
    def mode(self) -> Mode:
        if not self.active:
            return "inactive"
        if self._target is None:
            return "no-selection"
        return "selected"

    @property
    def target(self) -> Optional[IgnoreTarget]:
        return self._target

    def _document(self) -> Optional[Document]:
        if self._subscription is not None:
            return self._subscription.document
        return self.host.active_document

    # -------------------------------------------------------------------------
    # Mode transitions
    # -------------------------------------------------------------------------

    def set_mode(self, enabled: bool) -> bool:
        """Activate or deactivate. Returns whether ignore mode is now active."""
        if enabled and not self.active:
            self._activate()
        elif not enabled and self.active:
            self._deactivate()
        return self.active

    def toggle(self) -> bool:
        return self.set_mode(not self.active)

    def cleanup(self) -> None:
        """Force-deactivate regardless of state."""
        if self.active:
            self._deactivate()
        self._target = None

    def _activate(self) -> None:
        document = self.host.active_document
        if document is None:
            raise NoDocument()
        self._subscription = document.subscribe(self._on_selection_changed)
        logger.info(f"Ignore mode activated on {document.name}")
        self.refresh()

    def _deactivate(self) -> None:
        subscription = self._subscription
        self._subscription = None
        self._target = None
        document = subscription.document
        subscription.cancel()
        if document is not None:
            self._remove_overlay(document)
        logger.info("Ignore mode deactivated")

    def _on_selection_changed(self, document: Document) -> None:
        if self._subscription is None or self._subscription.document is not document:
            return
        self.refresh()

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def refresh(self) -> None:
        """Re-evaluate the selection and rebuild the overlay."""
        if not self.active:
            return
        document = self._document()
        if document is None:
            self._deactivate()
            return

        self._clear_overlay(document)
        self._target = None

        for entity in document.selection:
            if not is_eligible_path(entity, self.config):
                continue
            info = terminal_endpoint(entity.anchors)
            if info is None:
                continue
            self._target = IgnoreTarget(path=entity, endpoint=info)
            try:
                self._draw_overlay(document, entity, info)
            except Exception as e:
                logger.error(f"Failed to draw preview for {entity.display_name}: {e}")
            logger.debug(
                f"Previewing endpoint of {entity.display_name} at "
                f"[{info.endpoint.x:.1f},{info.endpoint.y:.1f}]"
            )
            return

    def apply_ignore(self, oplog: Optional[OpLog] = None) -> IgnoreOutcome:
        """Place an ignore marker at the previewed endpoint."""
        document = self._document()
        if document is None:
            return "NO_DOCUMENT"
        target = self._target
        if not self.active or target is None:
            return "NO_SELECTION"
        if target.path.is_removed or not is_eligible_path(target.path, self.config):
            self.refresh()
            return "INVALID_SELECTION"

        add_ignore_marker(
            document,
            target.endpoint.endpoint,
            self.config,
            oplog=oplog,
            source=target.path.display_name,
        )
        self.refresh()
        return "IGNORE_ADDED"

    def status(self) -> str:
        mode = self.mode
        if mode == "inactive":
            return "inactive"
        if mode == "no-selection":
            return "active:no-selection"
        return f"active:{self._target.path.display_name}"

    # -------------------------------------------------------------------------
    # Overlay
    # -------------------------------------------------------------------------

    def _overlay_layer(self, document: Document) -> Layer:
        layer = document.layer(self.config.preview_layer_name)
        if layer is None:
            layer = document.add_layer(self.config.preview_layer_name)
        elif layer.z_order != 0:
            layer.move_to_front()
        layer.locked = False
        layer.visible = True
        return layer

    def _clear_overlay(self, document: Document) -> None:
        layer = document.layer(self.config.preview_layer_name)
        if layer is not None:
            layer.locked = False
            layer.visible = True
            layer.clear()

    def _remove_overlay(self, document: Document) -> None:
        layer = document.layer(self.config.preview_layer_name)
        if layer is not None:
            document.remove_layer(layer)

    def _accent(self) -> RGBColor:
        return RGBColor(*self.config.preview_color)

    def _draw_overlay(self, document: Document, path: PathEntity, info: EndpointInfo) -> List[Entity]:
        config = self.config
        layer = self._overlay_layer(document)
        accent = self._accent()

        clone = path.duplicate(layer)
        clone.name = ""
        clone.note = ""
        clone.style = replace(
            clone.style,
            stroked=True,
            stroke_color=accent,
            stroke_width=config.preview_stroke_width,
            opacity=config.preview_opacity,
        )

        radius = marker_radius(info.length, config.marker_radius_min, config.marker_radius_max)
        disk = PathEntity(
            points=[
                PathPoint(anchor=p.anchor, left_direction=p.left, right_direction=p.right, point_type="smooth")
                for p in circle_points(info.endpoint, radius)
            ],
            closed=True,
            style=PathStyle(stroked=False, stroke_color=None, filled=True, fill_color=accent),
        )
        layer.add(disk)

        arrow_style = PathStyle(
            stroked=True,
            stroke_width=config.preview_stroke_width,
            stroke_color=accent,
            stroke_cap="round",
            stroke_join="round",
        )
        arrows = [
            layer.add_path(line, closed=False, style=replace(arrow_style))
            for line in arrow_points(info.endpoint, info.direction, radius * ARROW_LENGTH_FACTOR)
        ]
        return [clone, disk] + arrows
