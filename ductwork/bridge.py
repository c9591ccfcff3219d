"""
String command bridge.

The panel talks to the engines through named commands that take one raw
text argument and return one line of text. Engine calls produce a tagged
Ok/Err outcome; this module is the only place that turns outcomes into
strings. Failures are reported as ``ERROR:<message>``.

    moveSelectionToLayer({"layerName": "Units", "fileBaseName": "Unit.ai"})
    setIgnoreMode true
    runRegisterWireSynthesis(false)
"""

from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Tuple
import json
import logging
import re

from .assets import AssetLibrary
from .config import Config, DEFAULT_CONFIG
from .document import Host
from .errors import AssetNotFound, DuctworkError, InvalidInput, NoDocument
from .ignore_mode import IgnoreModeController, ignore_selection
from .layers import ensure_standard_layers
from .oplog import OpLog
from .relocate import move_selection_to_layer
from .types import Err, IgnoreSelectionResult, MoveResult, Ok, Outcome, WireResult
from .wires import synthesize_register_wires

logger = logging.getLogger("ductwork.bridge")
oplog_logger = logging.getLogger("ductwork.oplog")

ERROR_PREFIX = "ERROR:"
STANDARD_LAYERS_MESSAGE = "Standard ductwork layers ensured."

_CALL_RE = re.compile(r"^(?P<name>\w+)\s*(?:\((?P<paren>.*)\)|\s+(?P<bare>.*))?$", re.DOTALL)


def parse_call(line: str) -> Tuple[str, Optional[str]]:
    """Split ``name(arg)`` or ``name arg`` into the command name and argument."""
    match = _CALL_RE.match(line.strip())
    if match is None:
        raise InvalidInput(f"Cannot parse command: {line!r}")
    argument = match.group("paren")
    if argument is None:
        argument = match.group("bare")
    if argument is not None:
        argument = argument.strip() or None
    return match.group("name"), argument


def parse_bool(argument: Optional[str], default: Optional[bool] = None) -> bool:
    if argument is None:
        if default is None:
            raise InvalidInput("A true/false argument is required")
        return default
    text = argument.strip().strip("\"'").lower()
    if text in ("true", "1"):
        return True
    if text in ("false", "0"):
        return False
    raise InvalidInput(f"Expected true or false, got {argument!r}")


@dataclass(frozen=True)
class MoveRequest:
    layer_name: str
    file_base_name: Optional[str] = None

    @classmethod
    def from_json(cls, argument: Optional[str]) -> "MoveRequest":
        if not argument:
            raise InvalidInput("moveSelectionToLayer requires a JSON argument")
        try:
            data = json.loads(argument)
        except json.JSONDecodeError as e:
            raise InvalidInput(f"Invalid JSON argument: {e}") from e
        if not isinstance(data, dict):
            raise InvalidInput("moveSelectionToLayer expects a JSON object")

        layer_name = data.get("layerName")
        if not isinstance(layer_name, str) or not layer_name:
            raise InvalidInput("layerName must be a non-empty string")
        file_base_name = data.get("fileBaseName")
        if file_base_name is not None and not isinstance(file_base_name, str):
            raise InvalidInput("fileBaseName must be a string or null")
        return cls(layer_name=layer_name, file_base_name=file_base_name or None)


def render(value: Any) -> str:
    """Text form of a successful command value."""
    if isinstance(value, (MoveResult, IgnoreSelectionResult)):
        return json.dumps(value.to_dict())
    if isinstance(value, WireResult):
        return value.summary()
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "OK"
    return str(value)


def _outcome(method: Callable[..., Any]) -> Callable[..., Outcome]:
    """Wrap a command body so domain errors become Err outcomes."""

    @wraps(method)
    def wrapper(self, *args, **kwargs) -> Outcome:
        try:
            return Ok(method(self, *args, **kwargs))
        except DuctworkError as e:
            logger.warning(f"{method.__name__} failed: {e}")
            return Err(e)

    return wrapper


class Bridge:
    """Command surface for one host session."""

    def __init__(
        self,
        host: Host,
        assets: Optional[AssetLibrary] = None,
        config: Config = DEFAULT_CONFIG,
    ):
        self.host = host
        self.config = config
        self.assets = assets if assets is not None else AssetLibrary(config=config)
        self.ignore_mode = IgnoreModeController(host, config)
        self._commands: Dict[str, Callable[[Optional[str]], Outcome]] = {
            "moveSelectionToLayer": self.move_selection_to_layer,
            "toggleIgnoreMode": self.toggle_ignore_mode,
            "setIgnoreMode": self.set_ignore_mode,
            "applyIgnoreToCurrent": self.apply_ignore_to_current,
            "applyIgnoreToSelection": self.apply_ignore_to_selection,
            "ignoreModeStatus": self.ignore_mode_status,
            "runRegisterWireSynthesis": self.run_register_wire_synthesis,
            "createStandardLayers": self.create_standard_layers,
            "cleanup": self.cleanup,
        }

    @property
    def commands(self) -> List[str]:
        return sorted(self._commands)

    # -------------------------------------------------------------------------
    # String entry points
    # -------------------------------------------------------------------------

    def call(self, name: str, argument: Optional[str] = None) -> str:
        """Run one command and return its text result. Never raises."""
        command = self._commands.get(name)
        if command is None:
            return f"{ERROR_PREFIX}Unknown command: {name}"
        try:
            outcome = command(argument)
        except Exception as e:
            logger.exception(f"Unhandled error in {name}")
            return f"{ERROR_PREFIX}{str(e) or e.__class__.__name__}"
        if isinstance(outcome, Err):
            return f"{ERROR_PREFIX}{outcome.message}"
        return render(outcome.value)

    def dispatch(self, line: str) -> str:
        try:
            name, argument = parse_call(line)
        except InvalidInput as e:
            return f"{ERROR_PREFIX}{e}"
        logger.debug(f"Dispatching {name}({argument or ''})")
        return self.call(name, argument)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    @_outcome
    def move_selection_to_layer(self, argument: Optional[str]) -> MoveResult:
        request = MoveRequest.from_json(argument)
        replacement = None
        if request.file_base_name is not None:
            try:
                replacement = self.assets.resolve(request.file_base_name)
            except AssetNotFound as e:
                logger.warning(f"No asset folder for replacement, relocating as-is: {e}")
        oplog = OpLog()
        result = move_selection_to_layer(
            self.host.active_document,
            request.layer_name,
            replacement,
            config=self.config,
            oplog=oplog,
        )
        oplog.log_to(oplog_logger)
        return result

    @_outcome
    def toggle_ignore_mode(self, argument: Optional[str] = None) -> bool:
        return self.ignore_mode.toggle()

    @_outcome
    def set_ignore_mode(self, argument: Optional[str]) -> bool:
        return self.ignore_mode.set_mode(parse_bool(argument))

    @_outcome
    def apply_ignore_to_current(self, argument: Optional[str] = None) -> str:
        oplog = OpLog()
        outcome = self.ignore_mode.apply_ignore(oplog)
        oplog.log_to(oplog_logger)
        return outcome

    @_outcome
    def apply_ignore_to_selection(self, argument: Optional[str] = None) -> IgnoreSelectionResult:
        oplog = OpLog()
        result = ignore_selection(self.host.active_document, self.config, oplog)
        oplog.log_to(oplog_logger)
        self.ignore_mode.refresh()
        return result

    @_outcome
    def ignore_mode_status(self, argument: Optional[str] = None) -> str:
        return self.ignore_mode.status()

    @_outcome
    def run_register_wire_synthesis(self, argument: Optional[str] = None) -> WireResult:
        oplog = OpLog()
        result = synthesize_register_wires(
            self.host.active_document,
            parse_bool(argument, default=False),
            assets=self.assets,
            config=self.config,
            oplog=oplog,
        )
        oplog.log_to(oplog_logger)
        return result

    @_outcome
    def create_standard_layers(self, argument: Optional[str] = None) -> str:
        document = self.host.active_document
        if document is None:
            raise NoDocument()
        ensure_standard_layers(document, self.config)
        return STANDARD_LAYERS_MESSAGE

    @_outcome
    def cleanup(self, argument: Optional[str] = None) -> None:
        self.ignore_mode.cleanup()
