"""Layer automation for HVAC ductwork drawings."""

from .bridge import Bridge
from .config import Config, load_config
from .ignore_mode import IgnoreModeController, ignore_selection
from .relocate import move_selection_to_layer
from .wires import plan_wires, synthesize_register_wires

__all__ = [
    "Bridge",
    "Config",
    "load_config",
    "IgnoreModeController",
    "ignore_selection",
    "move_selection_to_layer",
    "plan_wires",
    "synthesize_register_wires",
]
