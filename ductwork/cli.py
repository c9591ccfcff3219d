"""Command line entry point for the ductwork bridge."""

import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click

from .assets import AssetLibrary
from .bridge import ERROR_PREFIX, Bridge
from .config import DEFAULT_CONFIG, load_config
from .errors import InvalidInput

logger = logging.getLogger("ductwork")

DEFAULT_HOST = "ductwork.document:Host"

_installed_handlers: List[logging.Handler] = []


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Send ductwork logs to stderr, and optionally to a file."""
    for handler in _installed_handlers:
        logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    formatter = logging.Formatter("%(levelname)s: %(message)s")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    _installed_handlers.append(handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s: %(message)s")
        )
        _installed_handlers.append(file_handler)

    for h in _installed_handlers:
        logger.addHandler(h)


def load_host(reference: str):
    """Build the host from a ``module:factory`` reference."""
    module_name, sep, attr = reference.partition(":")
    if not sep or not module_name or not attr:
        raise click.BadParameter(f"expected module:factory, got {reference!r}", param_hint="--host")
    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise click.BadParameter(f"cannot load {reference}: {e}", param_hint="--host") from e
    return factory()


@click.group()
@click.option(
    "--assets",
    "assets_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Folder holding the ductwork piece assets.",
)
@click.option(
    "--alternate-assets",
    "alternate_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Folder holding the alternate register assets.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file overriding tolerances, styles and layer names.",
)
@click.option(
    "--host",
    "host_ref",
    default=DEFAULT_HOST,
    show_default=True,
    help="Host factory as module:callable.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write logs to this file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    assets_dir: Optional[Path],
    alternate_dir: Optional[Path],
    config_path: Optional[Path],
    host_ref: str,
    log_file: Optional[Path],
    verbose: bool,
) -> None:
    """Ductwork layer automation."""
    setup_logging(verbose, log_file)

    try:
        config = load_config(config_path) if config_path else DEFAULT_CONFIG
    except InvalidInput as e:
        raise click.ClickException(str(e)) from e

    host = load_host(host_ref)
    assets = AssetLibrary(assets_dir, alternate_dir, config)
    bridge = Bridge(host, assets, config)
    ctx.obj = bridge
    ctx.call_on_close(lambda: bridge.call("cleanup"))


@cli.command()
@click.pass_obj
def serve(bridge: Bridge) -> None:
    """Answer one command per stdin line on stdout."""
    logger.info(f"Serving commands: {', '.join(bridge.commands)}")
    for line in click.get_text_stream("stdin"):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line in ("quit", "exit"):
            break
        click.echo(bridge.dispatch(line))


@cli.command()
@click.argument("name")
@click.argument("argument", required=False)
@click.pass_obj
def call(bridge: Bridge, name: str, argument: Optional[str]) -> None:
    """Run a single command NAME with an optional raw ARGUMENT."""
    result = bridge.call(name, argument)
    click.echo(result)
    if result.startswith(ERROR_PREFIX):
        sys.exit(1)


if __name__ == "__main__":
    cli()
