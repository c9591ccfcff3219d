"""Tests for the click entry point."""

import json
import logging

import click
import pytest
from click.testing import CliRunner

from .. import cli as cli_module
from ..cli import cli, load_host
from ..document import Host
from ..types import Point

HOST_REF = f"{__name__}:make_host"


def make_host() -> Host:
    host = Host()
    doc = host.new_document("Plan")
    doc.add_layer("Blue Ductwork").add_path([Point(0, 0), Point(60, 0), Point(100, 0)])
    doc.add_layer("Square Registers").add_path([Point(100, 20)])
    return host


def output_lines(result):
    """Command output without the log lines click mixes into it."""
    return [
        line
        for line in result.stdout.splitlines()
        if not line.startswith(("DEBUG: ", "INFO: ", "WARNING: ", "ERROR: "))
    ]


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("ductwork")
    for handler in cli_module._installed_handlers:
        logger.removeHandler(handler)
    cli_module._installed_handlers.clear()
    logger.setLevel(logging.NOTSET)


class TestCall:
    def test_status_on_default_host(self):
        result = CliRunner().invoke(cli, ["call", "ignoreModeStatus"])
        assert result.exit_code == 0
        assert output_lines(result)[-1] == "inactive"

    def test_unknown_command_exits_nonzero(self):
        result = CliRunner().invoke(cli, ["call", "frobnicate"])
        assert result.exit_code == 1
        assert output_lines(result)[-1] == "ERROR:Unknown command: frobnicate"

    def test_custom_host(self):
        result = CliRunner().invoke(cli, ["--host", HOST_REF, "call", "runRegisterWireSynthesis", "true"])
        assert result.exit_code == 0
        assert output_lines(result)[-1] == "Swapped 0 items to Emory versions and created 1 register wires."

    def test_config_overrides(self, tmp_path):
        config = tmp_path / "ductwork.json"
        config.write_text(json.dumps({"alternate_suffix": " Alt"}))
        result = CliRunner().invoke(
            cli, ["--config", str(config), "--host", HOST_REF, "call", "runRegisterWireSynthesis"]
        )
        assert result.exit_code == 0
        assert output_lines(result)[-1] == "Swapped 0 items to Alt versions."

    def test_bad_config_is_reported(self, tmp_path):
        config = tmp_path / "ductwork.json"
        config.write_text(json.dumps({"no_such_key": 1}))
        result = CliRunner().invoke(cli, ["--config", str(config), "call", "cleanup"])
        assert result.exit_code != 0

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "ductwork.log"
        result = CliRunner().invoke(
            cli, ["--log-file", str(log_file), "--host", HOST_REF, "call", "createStandardLayers"]
        )
        assert result.exit_code == 0
        for handler in cli_module._installed_handlers:
            handler.flush()
        assert "Ensured standard layers" in log_file.read_text()


class TestServe:
    def test_answers_each_line(self):
        script = "\n".join(
            [
                "setIgnoreMode true",
                "# comment",
                "",
                "ignoreModeStatus()",
                "bogus",
                "quit",
                "ignoreModeStatus",
            ]
        )
        result = CliRunner().invoke(cli, ["--host", HOST_REF, "serve"], input=script + "\n")
        assert result.exit_code == 0
        assert output_lines(result) == [
            "true",
            "active:no-selection",
            "ERROR:Unknown command: bogus",
        ]


class TestLoadHost:
    def test_default_host(self):
        host = load_host(cli_module.DEFAULT_HOST)
        assert isinstance(host, Host)
        assert host.active_document is None

    @pytest.mark.parametrize("reference", ["ductwork.document", "ductwork.nope:Host", "ductwork.document:Nope"])
    def test_bad_reference(self, reference):
        with pytest.raises(click.BadParameter):
            load_host(reference)
