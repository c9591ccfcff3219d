"""
Layer registry: category whitelist, reserved layers and lock overrides.

Layers are created lazily the first time an operation needs them. The
Ignore layer is singular: any of its aliases counts, and lookups always
return the first one in stacking order.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional, Union
import logging

from .config import Config, DEFAULT_CONFIG
from .document import Document, Layer
from .oplog import OpLog

logger = logging.getLogger("ductwork.layers")

LayerLike = Union[Layer, str]


def _name(layer: LayerLike) -> str:
    return layer if isinstance(layer, str) else layer.name


def is_category_layer(layer: LayerLike, config: Config = DEFAULT_CONFIG) -> bool:
    return _name(layer) in config.category_layers


def is_ignore_layer(layer: LayerLike, config: Config = DEFAULT_CONFIG) -> bool:
    return _name(layer) in config.ignore_layer_names


def is_duct_layer(layer: LayerLike, config: Config = DEFAULT_CONFIG) -> bool:
    return config.duct_keyword.lower() in _name(layer).lower()


def is_preview_layer(layer: LayerLike, config: Config = DEFAULT_CONFIG) -> bool:
    return _name(layer) == config.preview_layer_name


def category_layers(document: Document, config: Config = DEFAULT_CONFIG) -> List[Layer]:
    """Whitelisted layers present in the document, in stacking order."""
    return [layer for layer in document.layers if is_category_layer(layer, config)]


def find_ignore_layer(document: Document, config: Config = DEFAULT_CONFIG) -> Optional[Layer]:
    for layer in document.layers:
        if is_ignore_layer(layer, config):
            return layer
    return None


def ensure_layer(
    document: Document,
    name: str,
    oplog: Optional[OpLog] = None,
) -> Layer:
    """Return the named layer, creating it at the top of the stack if missing."""
    layer = document.layer(name)
    if layer is None:
        layer = document.add_layer(name)
        logger.info(f"Created missing layer: {name}")
        if oplog is not None:
            oplog.layer_add(name)
    return layer


def ensure_ignore_layer(
    document: Document,
    config: Config = DEFAULT_CONFIG,
    name: Optional[str] = None,
    oplog: Optional[OpLog] = None,
) -> Layer:
    """Return the Ignore layer under any alias, or create it."""
    layer = find_ignore_layer(document, config)
    if layer is not None:
        return layer
    return ensure_layer(document, name or config.ignore_layer_name, oplog)


def resolve_target_layer(
    document: Document,
    name: str,
    config: Config = DEFAULT_CONFIG,
    oplog: Optional[OpLog] = None,
) -> Layer:
    if is_ignore_layer(name, config):
        return ensure_ignore_layer(document, config, name=name, oplog=oplog)
    return ensure_layer(document, name, oplog)


@contextmanager
def layer_override(layer: Layer, config: Config = DEFAULT_CONFIG) -> Iterator[Layer]:
    """Unlock and show ``layer`` for the duration of a mutation.

    On exit the previous lock/visibility is restored, except for the Ignore
    layer which is always left locked and hidden.
    """
    was_locked = layer.locked
    was_visible = layer.visible
    layer.locked = False
    layer.visible = True
    try:
        yield layer
    finally:
        if is_ignore_layer(layer, config):
            layer.visible = False
            layer.locked = True
        else:
            layer.visible = was_visible
            layer.locked = was_locked


def ensure_standard_layers(
    document: Document,
    config: Config = DEFAULT_CONFIG,
    oplog: Optional[OpLog] = None,
) -> List[str]:
    """Create missing standard layers and stack them at the top in order.

    Returns the names of the layers that were created. Lock state of
    existing layers is preserved; every standard layer ends visible.
    """
    created: List[str] = []
    for name in config.standard_layers:
        if document.layer(name) is None:
            ensure_layer(document, name, oplog)
            created.append(name)

    # Walk bottom-up so the first name ends on top
    for name in reversed(config.standard_layers):
        layer = document.layer(name)
        if layer is None:
            continue
        layer.visible = True
        layer.move_to_front()

    logger.info(f"Ensured standard layers ({len(created)} created)")
    return created
