"""
Host document model.

Models the capability the engines need from the vector-editing host:
an ordered layer collection, path entities with bezier handles, placed
(linked) assets with a 2x2 transform, a selection and selection-change
notification. Objects mirror the shape of the host's scripting objects so a
binding to a real application can provide the same attributes and methods.

Coordinates are document space with y pointing up: a placed asset's
``position`` is its top-left corner and its bounds extend right and down.

Locked or hidden layers reject structural mutations with
HostOperationFailed, the same way the host refuses to edit them.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, ClassVar, Dict, Iterable, Iterator, List, Literal, Optional, Sequence, Tuple, Union
import copy
import itertools
import math
import weakref

from .errors import HostOperationFailed
from .types import Bounds, Point

EntityKind = Literal["path", "placed"]
PointType = Literal["corner", "smooth"]
StrokeCap = Literal["butt", "round", "projecting"]
StrokeJoin = Literal["miter", "round", "bevel"]

DEFAULT_ASSET_SIZE = (24.0, 24.0)


@dataclass(frozen=True)
class RGBColor:
    red: int
    green: int
    blue: int


BLACK = RGBColor(0, 0, 0)


@dataclass
class PathStyle:
    """Stroke/fill appearance of a path."""

    stroked: bool = True
    stroke_width: float = 1.0
    stroke_color: Optional[RGBColor] = BLACK
    stroke_cap: StrokeCap = "butt"
    stroke_join: StrokeJoin = "miter"
    filled: bool = False
    fill_color: Optional[RGBColor] = None
    opacity: float = 100.0
    graphic_style: Optional[str] = None

    @classmethod
    def unapplied(cls) -> "PathStyle":
        """Appearance after every applied style has been stripped."""
        return cls(stroked=False, stroke_color=None, filled=False, fill_color=None)


@dataclass
class PathPoint:
    """Anchor with its incoming (left) and outgoing (right) handles."""

    anchor: Point
    left_direction: Optional[Point] = None
    right_direction: Optional[Point] = None
    point_type: PointType = "corner"

    def __post_init__(self):
        if self.left_direction is None:
            self.left_direction = self.anchor
        if self.right_direction is None:
            self.right_direction = self.anchor

    def translated(self, dx: float, dy: float) -> "PathPoint":
        return PathPoint(
            anchor=self.anchor.offset_by(dx, dy),
            left_direction=self.left_direction.offset_by(dx, dy),
            right_direction=self.right_direction.offset_by(dx, dy),
            point_type=self.point_type,
        )


# =============================================================================
# Entities
# =============================================================================


class Entity:
    """Common behaviour of page items owned by a layer."""

    kind: ClassVar[EntityKind]

    def __init__(self, name: str = ""):
        self.name = name
        self.note = ""
        self.locked = False
        self.hidden = False
        self._layer_ref: Optional["weakref.ReferenceType[Layer]"] = None

    @property
    def layer(self) -> Optional["Layer"]:
        if self._layer_ref is None:
            return None
        return self._layer_ref()

    @property
    def is_removed(self) -> bool:
        return self.layer is None

    @property
    def display_name(self) -> str:
        return self.name or self.kind

    @property
    def geometric_bounds(self) -> Bounds:
        raise NotImplementedError

    @property
    def geometric_center(self) -> Point:
        return self.geometric_bounds.center

    def remove(self) -> None:
        layer = self.layer
        if layer is None:
            raise HostOperationFailed(f"{self.display_name} is no longer in the document")
        layer._detach(self)

    def move_to(self, layer: "Layer") -> None:
        """Re-parent to ``layer``, placing the entity at the top of its stack."""
        source = self.layer
        if source is None:
            raise HostOperationFailed(f"{self.display_name} is no longer in the document")
        if source is layer:
            return
        layer._check_mutable()
        source._detach(self)
        layer._attach(self)

    def duplicate(self, layer: "Layer") -> "Entity":
        raise NotImplementedError


class PathEntity(Entity):
    """Open or closed bezier path. One point makes it an anchor marker."""

    kind = "path"

    def __init__(
        self,
        points: Sequence[PathPoint] = (),
        closed: bool = False,
        name: str = "",
        style: Optional[PathStyle] = None,
    ):
        super().__init__(name)
        self.points: List[PathPoint] = list(points)
        self.closed = closed
        self.style = style if style is not None else PathStyle()
        self.guides = False

    def __repr__(self) -> str:
        return f"PathEntity(name={self.name!r}, points={len(self.points)}, closed={self.closed})"

    @property
    def anchors(self) -> List[Point]:
        return [p.anchor for p in self.points]

    @property
    def is_anchor_marker(self) -> bool:
        return len(self.points) == 1

    @property
    def geometric_bounds(self) -> Bounds:
        if not self.points:
            raise HostOperationFailed(f"{self.display_name} has no points")
        xs = [p.anchor.x for p in self.points]
        ys = [p.anchor.y for p in self.points]
        return Bounds(left=min(xs), top=max(ys), right=max(xs), bottom=min(ys))

    def set_entire_path(self, anchors: Sequence[Point]) -> None:
        self.points = [PathPoint(anchor=a) for a in anchors]

    def unapply_all(self) -> None:
        self.style = PathStyle.unapplied()

    def duplicate(self, layer: "Layer") -> "PathEntity":
        clone = PathEntity(
            points=[copy.copy(p) for p in self.points],
            closed=self.closed,
            name=self.name,
            style=replace(self.style),
        )
        clone.note = self.note
        layer.add(clone)
        return clone


class PlacedAsset(Entity):
    """Linked external artwork with a 2x2 scale/rotation matrix."""

    kind = "placed"

    def __init__(
        self,
        file: Union[str, Path],
        native_size: Tuple[float, float] = DEFAULT_ASSET_SIZE,
        position: Point = Point(0.0, 0.0),
        matrix: Tuple[float, float, float, float] = (1.0, 0.0, 0.0, 1.0),
        name: str = "",
    ):
        super().__init__(name)
        self.file = Path(file)
        self.native_width, self.native_height = native_size
        self.position = position
        self.matrix = matrix

    def __repr__(self) -> str:
        return f"PlacedAsset(file={self.file.name!r}, scale={self.scale_percent:.1f})"

    @property
    def display_name(self) -> str:
        return self.name or self.file.name

    def _extent(self) -> Tuple[float, float]:
        a, b, c, d = self.matrix
        w, h = self.native_width, self.native_height
        corners = [(0.0, 0.0), (w, 0.0), (0.0, h), (w, h)]
        xs = [a * x + c * y for x, y in corners]
        ys = [b * x + d * y for x, y in corners]
        return max(xs) - min(xs), max(ys) - min(ys)

    @property
    def width(self) -> float:
        return self._extent()[0]

    @property
    def height(self) -> float:
        return self._extent()[1]

    @property
    def geometric_bounds(self) -> Bounds:
        w, h = self._extent()
        left, top = self.position.x, self.position.y
        return Bounds(left=left, top=top, right=left + w, bottom=top - h)

    @property
    def scale_percent(self) -> float:
        a, b, _, _ = self.matrix
        return math.hypot(a, b) * 100.0

    def resize(self, percent: float) -> None:
        """Uniformly rescale to ``percent`` keeping rotation and top-left."""
        current = self.scale_percent
        if current <= 0 or percent <= 0:
            raise HostOperationFailed(f"Cannot resize {self.display_name} to {percent}%")
        factor = percent / current
        self.matrix = tuple(v * factor for v in self.matrix)

    def center_on(self, point: Point) -> None:
        w, h = self._extent()
        self.position = Point(point.x - w / 2, point.y + h / 2)

    def relink(self, file: Union[str, Path]) -> None:
        if self.is_removed:
            raise HostOperationFailed(f"{self.display_name} is no longer in the document")
        self.file = Path(file)

    def duplicate(self, layer: "Layer") -> "PlacedAsset":
        clone = PlacedAsset(
            file=self.file,
            native_size=(self.native_width, self.native_height),
            position=self.position,
            matrix=self.matrix,
            name=self.name,
        )
        layer.add(clone)
        return clone


# =============================================================================
# Layers
# =============================================================================


class Layer:
    """Named, ordered container of entities. Index 0 is the top of the stack."""

    kind: ClassVar[str] = "layer"

    def __init__(self, name: str, document: Optional["Document"] = None):
        self.name = name
        self.locked = False
        self.visible = True
        self._entities: List[Entity] = []
        self._document_ref = weakref.ref(document) if document is not None else None

    def __repr__(self) -> str:
        return f"Layer({self.name!r}, items={len(self._entities)})"

    @property
    def document(self) -> Optional["Document"]:
        if self._document_ref is None:
            return None
        return self._document_ref()

    @property
    def entities(self) -> List[Entity]:
        return list(self._entities)

    @property
    def paths(self) -> List[PathEntity]:
        return [e for e in self._entities if isinstance(e, PathEntity)]

    @property
    def placed_assets(self) -> List[PlacedAsset]:
        return [e for e in self._entities if isinstance(e, PlacedAsset)]

    @property
    def z_order(self) -> int:
        doc = self.document
        if doc is None:
            return -1
        return doc.layers.index(self)

    @property
    def is_editable(self) -> bool:
        return not self.locked and self.visible

    def _check_mutable(self) -> None:
        if self.locked:
            raise HostOperationFailed(f"Layer {self.name!r} is locked")
        if not self.visible:
            raise HostOperationFailed(f"Layer {self.name!r} is hidden")

    def _attach(self, entity: Entity) -> None:
        self._entities.insert(0, entity)
        entity._layer_ref = weakref.ref(self)

    def _detach(self, entity: Entity) -> None:
        self._check_mutable()
        self._entities.remove(entity)
        entity._layer_ref = None

    def add(self, entity: Entity) -> Entity:
        self._check_mutable()
        if entity.layer is not None:
            raise HostOperationFailed(f"{entity.display_name} already belongs to a layer")
        self._attach(entity)
        return entity

    def add_path(
        self,
        anchors: Sequence[Point],
        closed: bool = False,
        name: str = "",
        style: Optional[PathStyle] = None,
    ) -> PathEntity:
        path = PathEntity(
            points=[PathPoint(anchor=a) for a in anchors],
            closed=closed,
            name=name,
            style=style,
        )
        self.add(path)
        return path

    def place(self, file: Union[str, Path], name: str = "") -> PlacedAsset:
        """Place a linked asset at its native size."""
        doc = self.document
        file = Path(file)
        size = doc.asset_size(file) if doc is not None else DEFAULT_ASSET_SIZE
        asset = PlacedAsset(file=file, native_size=size, name=name)
        self.add(asset)
        return asset

    def clear(self) -> int:
        removed = 0
        for entity in list(self._entities):
            self._detach(entity)
            removed += 1
        return removed

    def move_to_front(self) -> None:
        doc = self.document
        if doc is None:
            raise HostOperationFailed(f"Layer {self.name!r} is not in a document")
        doc._layers.remove(self)
        doc._layers.insert(0, self)


# =============================================================================
# Documents and selection notification
# =============================================================================


SelectionCallback = Callable[["Document"], None]


class Subscription:
    """Handle for one live selection-change subscription."""

    def __init__(self, document: "Document", token: int):
        self._document_ref = weakref.ref(document)
        self._token = token
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def document(self) -> Optional["Document"]:
        return self._document_ref()

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        doc = self._document_ref()
        if doc is not None:
            doc._subscribers.pop(self._token, None)


class Document:
    """An open drawing: layers, selection and selection-change listeners."""

    _tokens = itertools.count(1)

    def __init__(
        self,
        name: str = "Untitled",
        asset_size: Optional[Callable[[Path], Tuple[float, float]]] = None,
    ):
        self.name = name
        self._layers: List[Layer] = []
        self._selection: List[Entity] = []
        self._subscribers: Dict[int, SelectionCallback] = {}
        self._asset_size = asset_size

    def __repr__(self) -> str:
        return f"Document({self.name!r}, layers={len(self._layers)})"

    def asset_size(self, file: Path) -> Tuple[float, float]:
        if self._asset_size is None:
            return DEFAULT_ASSET_SIZE
        return self._asset_size(file)

    @property
    def layers(self) -> List[Layer]:
        return list(self._layers)

    def layer(self, name: str) -> Optional[Layer]:
        for layer in self._layers:
            if layer.name == name:
                return layer
        return None

    def add_layer(self, name: str) -> Layer:
        """Create a layer at the top of the stack."""
        layer = Layer(name, document=self)
        self._layers.insert(0, layer)
        return layer

    def remove_layer(self, layer: Layer) -> None:
        if layer not in self._layers:
            raise HostOperationFailed(f"Layer {layer.name!r} is not in this document")
        for entity in layer.entities:
            entity._layer_ref = None
        layer._entities.clear()
        self._layers.remove(layer)

    def iter_entities(self, layers: Optional[Iterable[Layer]] = None) -> Iterator[Entity]:
        """Traverse entities layer by layer, in stacking order."""
        for layer in (self._layers if layers is None else layers):
            yield from layer.entities

    @property
    def placed_assets(self) -> List[PlacedAsset]:
        return [e for e in self.iter_entities() if isinstance(e, PlacedAsset)]

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    @property
    def selection(self) -> List[Entity]:
        return [e for e in self._selection if not e.is_removed]

    @selection.setter
    def selection(self, entities: Optional[Iterable[Entity]]) -> None:
        self._selection = list(entities) if entities else []
        self._notify_selection_changed()

    def subscribe(self, callback: SelectionCallback) -> Subscription:
        token = next(self._tokens)
        self._subscribers[token] = callback
        return Subscription(self, token)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _notify_selection_changed(self) -> None:
        for callback in list(self._subscribers.values()):
            callback(self)


class Host:
    """The application: open documents and the active one."""

    def __init__(self, documents: Optional[Iterable[Document]] = None):
        self.documents: List[Document] = list(documents or [])
        self._active: Optional[Document] = self.documents[-1] if self.documents else None

    @property
    def active_document(self) -> Optional[Document]:
        return self._active

    def open(self, document: Document) -> Document:
        if document not in self.documents:
            self.documents.append(document)
        self._active = document
        return document

    def new_document(self, name: str = "Untitled", **kwargs) -> Document:
        return self.open(Document(name, **kwargs))

    def close(self, document: Document) -> None:
        self.documents.remove(document)
        if self._active is document:
            self._active = self.documents[-1] if self.documents else None
