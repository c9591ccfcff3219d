"""
Operation log for engine calls.

Records every action a batch operation takes, including items it skipped or
failed on, so partial success is explicit instead of hidden in exception
handlers. Each operation is a structured OpEvent serialized as one
human-readable line:

    ITEM_MOVE name=Unit.ai kind=placed layer=Units
    WIRE_SKIP x=10.0 y=4.0 reason=short len=3.0

The parse side (``OpLog.from_plaintext``) reads a log back into events so
tests can compare a run against a stored snapshot.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional


# =============================================================================
# Serialization Utilities
# =============================================================================


def format_value(value: Any) -> str:
    """Format a value for serialization."""
    if isinstance(value, str):
        if " " in value or "=" in value or '"' in value or "," in value or not value:
            escaped = value.replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:.1f}"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, list):
        formatted = ", ".join(format_value(v) for v in value)
        return f"[{formatted}]"
    return str(value)


def parse_value(s: str) -> Any:
    """Parse a serialized value."""
    s = s.strip()

    if s.startswith('"') and s.endswith('"'):
        inner = s[1:-1]
        return inner.replace('\\"', '"').replace("\\\\", "\\")

    if s.startswith("[") and s.endswith("]"):
        inner = s[1:-1].strip()
        if not inner:
            return []
        return [parse_value(item) for item in _split(inner, ",")]

    if s == "true":
        return True
    if s == "false":
        return False

    try:
        if "." in s:
            return float(s)
        return int(s)
    except ValueError:
        return s


def _split(s: str, separator: str) -> List[str]:
    """Split on ``separator`` outside quotes and brackets."""
    items = []
    current = ""
    in_quotes = False
    in_brackets = 0
    escape = False

    for c in s:
        if escape:
            current += c
            escape = False
        elif c == "\\":
            current += c
            escape = True
        elif c == '"':
            current += c
            in_quotes = not in_quotes
        elif c == "[" and not in_quotes:
            current += c
            in_brackets += 1
        elif c == "]" and not in_quotes:
            current += c
            in_brackets -= 1
        elif c == separator and not in_quotes and in_brackets == 0:
            if current.strip():
                items.append(current.strip())
            current = ""
        else:
            current += c

    if current.strip():
        items.append(current.strip())
    return items


def format_line(kind: str, fields: Dict[str, Any]) -> str:
    """Format a single line: KIND key=value key=value ..."""
    parts = [kind]
    for key, value in fields.items():
        parts.append(f"{key}={format_value(value)}")
    return " ".join(parts)


def parse_line(line: str) -> tuple:
    """Parse a single line into (kind, fields) tuple."""
    line = line.strip()
    if not line or line.startswith("#"):
        raise ValueError(f"Cannot parse empty or comment line: {line!r}")

    tokens = _split(line, " ")
    kind = tokens[0]
    fields: Dict[str, Any] = {}

    for token in tokens[1:]:
        if "=" not in token:
            raise ValueError(f"Invalid field (no '='): {token!r}")
        key, value_str = token.split("=", 1)
        fields[key] = parse_value(value_str)

    return kind, fields


# =============================================================================
# Events
# =============================================================================


OpKind = Literal[
    "LAYER_ADD",
    "ITEM_MOVE",
    "ANCHOR_MOVE",
    "ORPHAN_MOVE",
    "ITEM_SKIP",
    "ITEM_FAIL",
    "ASSET_REPLACE",
    "REPLACE_FALLBACK",
    "ASSET_SWAP",
    "REGISTER_PLACE",
    "WIRE_ADD",
    "WIRE_SKIP",
    "ENDPOINT_IGNORED",
    "IGNORE_ADD",
]


@dataclass(frozen=True)
class OpEvent:
    """A single structured operation event."""

    kind: OpKind
    fields: Dict[str, Any] = field(default_factory=dict)

    def to_line(self) -> str:
        return format_line(self.kind, self.fields)

    @classmethod
    def from_line(cls, line: str) -> "OpEvent":
        kind, fields = parse_line(line)
        return cls(kind=kind, fields=fields)


def _xy(fields: Dict[str, Any], x: float, y: float) -> Dict[str, Any]:
    fields["x"] = round(float(x), 1)
    fields["y"] = round(float(y), 1)
    return fields


@dataclass
class OpLog:
    """Accumulates per-item outcomes of one engine call."""

    events: List[OpEvent] = field(default_factory=list)

    def emit(self, event: OpEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: OpKind) -> List[OpEvent]:
        return [e for e in self.events if e.kind == kind]

    def count(self, kind: OpKind) -> int:
        return len(self.of_kind(kind))

    # =========================================================================
    # Layers
    # =========================================================================

    def layer_add(self, name: str) -> None:
        self.emit(OpEvent(kind="LAYER_ADD", fields={"name": name}))

    # =========================================================================
    # Move engine
    # =========================================================================

    def item_move(self, name: str, kind: str, layer: str) -> None:
        self.emit(OpEvent(
            kind="ITEM_MOVE",
            fields={"name": name, "kind": kind, "layer": layer},
        ))

    def anchor_move(self, name: str, layer: str, x: float, y: float) -> None:
        self.emit(OpEvent(
            kind="ANCHOR_MOVE",
            fields=_xy({"name": name, "layer": layer}, x, y),
        ))

    def orphan_move(self, name: str, layer: str, x: float, y: float) -> None:
        self.emit(OpEvent(
            kind="ORPHAN_MOVE",
            fields=_xy({"name": name, "layer": layer}, x, y),
        ))

    def item_skip(self, name: str, reason: str, layer: str = "") -> None:
        fields: Dict[str, Any] = {"name": name, "reason": reason}
        if layer:
            fields["layer"] = layer
        self.emit(OpEvent(kind="ITEM_SKIP", fields=fields))

    def item_fail(self, name: str, error: str) -> None:
        self.emit(OpEvent(kind="ITEM_FAIL", fields={"name": name, "error": error}))

    def asset_replace(
        self, old: str, new: str, layer: str, x: float, y: float, scale: float
    ) -> None:
        fields = _xy({"old": old, "new": new, "layer": layer}, x, y)
        fields["scale"] = round(float(scale), 1)
        self.emit(OpEvent(kind="ASSET_REPLACE", fields=fields))

    def replace_fallback(self, name: str, error: str) -> None:
        self.emit(OpEvent(
            kind="REPLACE_FALLBACK",
            fields={"name": name, "error": error},
        ))

    # =========================================================================
    # Wire synthesis
    # =========================================================================

    def asset_swap(self, old: str, new: str) -> None:
        self.emit(OpEvent(kind="ASSET_SWAP", fields={"old": old, "new": new}))

    def register_place(self, layer: str, asset: str, x: float, y: float) -> None:
        self.emit(OpEvent(
            kind="REGISTER_PLACE",
            fields=_xy({"layer": layer, "asset": asset}, x, y),
        ))

    def wire_add(
        self, layer: str, x1: float, y1: float, x2: float, y2: float, handle: float
    ) -> None:
        self.emit(OpEvent(
            kind="WIRE_ADD",
            fields={
                "layer": layer,
                "x1": round(float(x1), 1),
                "y1": round(float(y1), 1),
                "x2": round(float(x2), 1),
                "y2": round(float(y2), 1),
                "handle": round(float(handle), 1),
            },
        ))

    def wire_skip(self, x: float, y: float, reason: str, length: Optional[float] = None) -> None:
        fields = _xy({}, x, y)
        fields["reason"] = reason
        if length is not None:
            fields["len"] = round(float(length), 1)
        self.emit(OpEvent(kind="WIRE_SKIP", fields=fields))

    def endpoint_ignored(self, x: float, y: float) -> None:
        self.emit(OpEvent(kind="ENDPOINT_IGNORED", fields=_xy({}, x, y)))

    # =========================================================================
    # Ignore markers
    # =========================================================================

    def ignore_add(self, x: float, y: float, source: str = "") -> None:
        fields = _xy({}, x, y)
        if source:
            fields["source"] = source
        self.emit(OpEvent(kind="IGNORE_ADD", fields=fields))

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_plaintext(self) -> str:
        """Serialize to plaintext - one line per event."""
        if not self.events:
            return ""
        lines = [event.to_line() for event in self.events]
        return "\n".join(lines) + "\n"

    def log_to(self, logger) -> None:
        """Log all events as INFO-level messages."""
        for event in self.events:
            logger.info(f"OPLOG {event.to_line()}")

    @classmethod
    def from_plaintext(cls, text: str) -> "OpLog":
        events: List[OpEvent] = []
        for line in text.strip().split("\n"):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            events.append(OpEvent.from_line(line))
        return cls(events=events)
