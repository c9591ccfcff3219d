"""
Core value types for the ductwork automation engines.

Geometry values are immutable and hashable. Engine results are plain
dataclasses that serialize to the JSON shapes the bridge returns.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Literal, Optional, TypeVar, Union, TYPE_CHECKING
import math

if TYPE_CHECKING:
    from .oplog import OpLog


@dataclass(frozen=True)
class Point:
    """2D point in document space (y-up, no unit conversion)."""

    x: float
    y: float

    def __add__(self, other: "Point") -> "Point":
        return Point(x=self.x + other.x, y=self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(x=self.x - other.x, y=self.y - other.y)

    def scaled(self, factor: float) -> "Point":
        return Point(x=self.x * factor, y=self.y * factor)

    def offset_by(self, dx: float, dy: float) -> "Point":
        return Point(x=self.x + dx, y=self.y + dy)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    @property
    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def as_tuple(self) -> tuple:
        return (self.x, self.y)


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned bounds: left/top/right/bottom with top >= bottom."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom

    @property
    def center(self) -> Point:
        return Point((self.left + self.right) / 2, (self.top + self.bottom) / 2)


# =============================================================================
# Engine results
# =============================================================================


MoveReason = Literal["no-document", "no-selection"]


@dataclass
class MoveResult:
    """Counts reported by a move-to-layer call."""

    items_moved: int = 0
    anchors_moved: int = 0
    items_skipped: int = 0
    reason: Optional[MoveReason] = None
    oplog: Optional["OpLog"] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "itemsMoved": self.items_moved,
            "anchorsMoved": self.anchors_moved,
            "itemsSkipped": self.items_skipped,
        }
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class IgnoreSelectionResult:
    """Counts reported by the ignore-selection batch."""

    total: int = 0
    added: int = 0
    skipped: int = 0
    moved: int = 0
    reason: Optional[MoveReason] = None
    oplog: Optional["OpLog"] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "total": self.total,
            "added": self.added,
            "skipped": self.skipped,
            "moved": self.moved,
        }
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class WireResult:
    """Counts reported by a register-wire synthesis run."""

    swapped: int = 0
    wires_created: int = 0
    wires_enabled: bool = False
    alternate_label: str = "alternate"
    oplog: Optional["OpLog"] = field(default=None, compare=False, repr=False)

    def summary(self) -> str:
        message = f"Swapped {self.swapped} items to {self.alternate_label} versions"
        if self.wires_enabled:
            message += f" and created {self.wires_created} register wires"
        return message + "."


# =============================================================================
# Tagged outcome for the command boundary
# =============================================================================


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful command outcome."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed command outcome carrying the exception that caused it."""

    error: Exception

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.error) or self.error.__class__.__name__


Outcome = Union[Ok[Any], Err]
