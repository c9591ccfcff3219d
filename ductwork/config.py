"""
Engine configuration.

Every tolerance and constant the engines use lives here. Defaults match the
production panel; a JSON file can override any field by name:

    {
        "wire_connection_tolerance": 60,
        "alternate_suffix": " Emory",
        "register_assets": {"Square Registers": "Square Register"}
    }
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Tuple, Union
import json
import logging

from .errors import InvalidInput

logger = logging.getLogger("ductwork.config")

# Layers whose contents are ductwork pieces (units, registers, thermostats)
PIECE_LAYERS: Tuple[str, ...] = (
    "Thermostats",
    "Units",
    "Secondary Exhaust Registers",
    "Exhaust Registers",
    "Orange Register",
    "Rectangular Registers",
    "Square Registers",
    "Circular Registers",
)

IGNORE_LAYER_NAMES: Tuple[str, ...] = ("Ignore", "Ignored", "ignore", "ignored")

# Top-to-bottom order of the standard layer stack
STANDARD_LAYERS: Tuple[str, ...] = (
    "Scale Factor Container Layer",
    "Frame",
    "Ignored",
    "Thermostats",
    "Units",
    "Secondary Exhaust Registers",
    "Thermostat Lines",
    "Exhaust Registers",
    "Rectangular Registers",
    "Circular Registers",
    "Orange Register",
    "Square Registers",
    "Light Orange Ductwork",
    "Orange Ductwork",
    "Blue Ductwork",
    "Green Ductwork",
)


@dataclass(frozen=True)
class Config:
    """Tolerances, styles and layer names used by the engines."""

    # Move engine
    replace_rescan_tolerance: float = 5.0
    relocate_rescan_tolerance: float = 10.0

    # Wire synthesis
    wire_connection_tolerance: float = 50.0
    ignore_tolerance: float = 5.0
    min_wire_length: float = 5.0
    register_search_tolerance: float = 5.0
    end_handle_ratio: float = 0.6
    wire_stroke_width: float = 3.0
    wire_color: Tuple[int, int, int] = (0, 0, 255)
    wire_name: str = "Register Wire"
    wire_tag: str = "MD:REGISTER_WIRE"
    duct_keyword: str = "ductwork"
    register_layers: Tuple[str, ...] = (
        "Square Registers",
        "Rectangular Registers",
        "Registers",
    )
    register_assets: Dict[str, str] = field(
        default_factory=lambda: {
            "Square Registers": "Square Register",
            "Rectangular Registers": "Rectangular Register",
        }
    )

    # Assets
    alternate_suffix: str = " Emory"
    asset_extension: str = ".ai"

    # Ignore mode
    ignore_layer_name: str = "Ignore"
    ignore_marker_name: str = "__ignore_point"
    preview_layer_name: str = "__RegisterPreview"
    preview_opacity: float = 40.0
    preview_color: Tuple[int, int, int] = (255, 0, 128)
    preview_stroke_width: float = 2.0
    marker_radius_min: float = 3.0
    marker_radius_max: float = 15.0

    # Layer registry
    piece_layers: Tuple[str, ...] = PIECE_LAYERS
    ignore_layer_names: Tuple[str, ...] = IGNORE_LAYER_NAMES
    standard_layers: Tuple[str, ...] = STANDARD_LAYERS

    @property
    def category_layers(self) -> Tuple[str, ...]:
        """Layers whose entities the move engine may relocate."""
        return self.piece_layers + self.ignore_layer_names

    @property
    def alternate_label(self) -> str:
        return self.alternate_suffix.strip() or "alternate"


DEFAULT_CONFIG = Config()


def config_from_dict(data: Dict[str, Any], base: Config = DEFAULT_CONFIG) -> Config:
    """Apply overrides by field name; unknown keys are rejected."""
    known = {f.name: f for f in fields(Config)}
    overrides: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            raise InvalidInput(f"Unknown config key: {key!r}")
        current = getattr(base, key)
        if isinstance(current, tuple) and isinstance(value, list):
            value = tuple(value)
        elif isinstance(current, float) and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        elif isinstance(current, dict) and not isinstance(value, dict):
            raise InvalidInput(f"Config key {key!r} expects an object")
        overrides[key] = value
    return replace(base, **overrides)


def load_config(path: Union[str, Path]) -> Config:
    """Read a JSON file of overrides on top of the defaults."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidInput(f"Cannot read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise InvalidInput(f"Config {path} must contain a JSON object")
    config = config_from_dict(data)
    logger.info(f"Loaded config overrides from {path}: {sorted(data)}")
    return config
