"""
Move/relocate engine.

Moves the current selection onto a category layer. Placed assets can be
swapped for a canonical replacement asset, scale-normalized against the
assets already on the destination and centered on the nearest selected
anchor marker. Anchor markers left behind near a moved item are pulled
along so connection metadata follows its artwork.

Per-item failures never abort the batch: they are logged, recorded in the
OpLog and counted as skipped.
"""

from pathlib import Path
from typing import List, Optional, Set
import logging

from .anchors import anchor_position, anchors_within, is_anchor_marker, nearest_anchor
from .config import Config, DEFAULT_CONFIG
from .document import Document, Entity, Layer, PathEntity, PlacedAsset
from .errors import AssetNotFound, InvalidInput
from .layers import (
    category_layers,
    is_category_layer,
    is_ignore_layer,
    layer_override,
    resolve_target_layer,
)
from .oplog import OpLog
from .types import MoveResult, Point

logger = logging.getLogger("ductwork.relocate")

DEFAULT_SCALE_PERCENT = 100.0


def normalized_scale(layer: Layer, exclude: Optional[Entity] = None) -> float:
    """Smallest scale among placed assets on ``layer``, or 100%."""
    scales = [a.scale_percent for a in layer.placed_assets if a is not exclude]
    if not scales:
        return DEFAULT_SCALE_PERCENT
    return min(scales)


def move_selection_to_layer(
    document: Optional[Document],
    target_layer_name: str,
    replacement_asset_path: Optional[Path] = None,
    config: Config = DEFAULT_CONFIG,
    oplog: Optional[OpLog] = None,
) -> MoveResult:
    """Move every eligible selected entity to ``target_layer_name``.

    Args:
        document: Active document, or None when nothing is open
        target_layer_name: Destination layer, created if missing
        replacement_asset_path: Asset swapped in for selected placed assets.
            Ignored when the destination is the Ignore layer.
        config: Tolerances and layer names
        oplog: Accumulator for per-item events (a new one by default)

    Returns:
        MoveResult with moved/anchor/skipped counts and the OpLog
    """
    oplog = oplog if oplog is not None else OpLog()
    if document is None:
        return MoveResult(reason="no-document", oplog=oplog)

    selection = document.selection
    if not selection:
        return MoveResult(reason="no-selection", oplog=oplog)

    if not target_layer_name or not isinstance(target_layer_name, str):
        raise InvalidInput("A target layer name is required")
    if not is_category_layer(target_layer_name, config):
        raise InvalidInput(f"{target_layer_name!r} is not a ductwork category layer")

    target = resolve_target_layer(document, target_layer_name, config, oplog)
    replacement = replacement_asset_path
    if is_ignore_layer(target, config) and replacement is not None:
        logger.info(f"Asset replacement suppressed for {target.name}")
        replacement = None

    mover = _SelectionMover(
        document=document,
        target=target,
        replacement=replacement,
        selection=selection,
        config=config,
        oplog=oplog,
    )
    with layer_override(target, config):
        for entity in selection:
            mover.move(entity)

    document.selection = []

    result = mover.result
    logger.info(
        f"Moved {result.items_moved} items, {result.anchors_moved} anchors "
        f"to {target.name}, skipped {result.items_skipped}"
    )
    return result


class _SelectionMover:
    """State for one move call: destination, selection snapshot and counts."""

    def __init__(
        self,
        document: Document,
        target: Layer,
        replacement: Optional[Path],
        selection: List[Entity],
        config: Config,
        oplog: OpLog,
    ):
        self.document = document
        self.target = target
        self.replacement = replacement
        self.config = config
        self.oplog = oplog
        self.selected_ids: Set[int] = {id(e) for e in selection}
        self.selection_anchors: List[PathEntity] = [
            e for e in selection if is_anchor_marker(e)
        ]
        self.result = MoveResult(oplog=oplog)

    def move(self, entity: Entity) -> None:
        layer = entity.layer
        if layer is None:
            self._skip(entity, "removed")
            return
        if not is_category_layer(layer, self.config):
            self._skip(entity, "not-category", layer.name)
            return

        if not isinstance(entity, (PlacedAsset, PathEntity)):
            self._skip(entity, "unsupported", layer.name)
            return

        try:
            if isinstance(entity, PlacedAsset):
                self._move_placed(entity)
            else:
                self._move_path(entity)
        except Exception as e:
            logger.error(f"Failed to move {entity.display_name}: {e}")
            self.oplog.item_fail(entity.display_name, str(e))
            self.result.items_skipped += 1

    def _skip(self, entity: Entity, reason: str, layer: str = "") -> None:
        logger.debug(f"Skipping {entity.display_name} ({reason})")
        self.oplog.item_skip(entity.display_name, reason, layer)
        self.result.items_skipped += 1

    # -------------------------------------------------------------------------
    # Per-kind moves
    # -------------------------------------------------------------------------

    def _move_placed(self, asset: PlacedAsset) -> None:
        if self.replacement is not None:
            try:
                point = self._replace(asset)
            except Exception as e:
                logger.warning(
                    f"Replacement failed for {asset.display_name}, relocating as-is: {e}"
                )
                self.oplog.replace_fallback(asset.display_name, str(e))
            else:
                self.result.items_moved += 1
                self.result.anchors_moved += self._relocate_orphans(
                    point, self.config.replace_rescan_tolerance
                )
                return

        center = asset.geometric_center
        asset.move_to(self.target)
        self.oplog.item_move(asset.display_name, asset.kind, self.target.name)
        self.result.items_moved += 1
        self.result.anchors_moved += self._relocate_orphans(
            center, self.config.relocate_rescan_tolerance
        )

    def _move_path(self, path: PathEntity) -> None:
        if path.is_anchor_marker:
            position = anchor_position(path)
            path.move_to(self.target)
            self.oplog.anchor_move(path.display_name, self.target.name, position.x, position.y)
            self.result.anchors_moved += 1
            return

        center = path.geometric_center
        path.move_to(self.target)
        self.oplog.item_move(path.display_name, path.kind, self.target.name)
        self.result.items_moved += 1
        self.result.anchors_moved += self._relocate_orphans(
            center, self.config.relocate_rescan_tolerance
        )

    def _replace(self, asset: PlacedAsset) -> Point:
        """Swap ``asset`` for the replacement file. Returns the placement point."""
        replacement = self.replacement
        if not replacement.is_file():
            raise AssetNotFound(replacement)

        center = asset.geometric_center
        anchor = nearest_anchor(center, self.selection_anchors)
        point = anchor_position(anchor) if anchor is not None else center
        scale = normalized_scale(self.target, exclude=asset)

        new_asset = self.target.place(replacement)
        try:
            new_asset.resize(scale)
            new_asset.center_on(point)
            asset.remove()
        except Exception:
            new_asset.remove()
            raise

        self.oplog.asset_replace(
            asset.file.name, replacement.name, self.target.name, point.x, point.y, scale
        )
        logger.info(
            f"Replaced {asset.display_name} with {replacement.name} "
            f"at [{point.x:.1f},{point.y:.1f}] ({scale:.1f}%)"
        )
        return point

    def _relocate_orphans(self, point: Point, tolerance: float) -> int:
        """Pull unselected anchor markers near ``point`` onto the target."""
        layers = [
            layer
            for layer in category_layers(self.document, self.config)
            if layer is not self.target
        ]
        moved = 0
        for marker in anchors_within(point, tolerance, layers):
            if id(marker) in self.selected_ids:
                continue
            position = anchor_position(marker)
            try:
                marker.move_to(self.target)
            except Exception as e:
                logger.error(f"Failed to move orphaned anchor {marker.display_name}: {e}")
                self.oplog.item_fail(marker.display_name, str(e))
                continue
            self.oplog.orphan_move(marker.display_name, self.target.name, position.x, position.y)
            moved += 1
        return moved
