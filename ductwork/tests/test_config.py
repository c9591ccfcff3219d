"""Tests for configuration defaults and JSON overrides."""

import json

import pytest

from ..config import DEFAULT_CONFIG, Config, config_from_dict, load_config
from ..errors import InvalidInput


class TestDefaults:
    def test_tolerances(self):
        assert DEFAULT_CONFIG.replace_rescan_tolerance == 5
        assert DEFAULT_CONFIG.relocate_rescan_tolerance == 10
        assert DEFAULT_CONFIG.wire_connection_tolerance == 50
        assert DEFAULT_CONFIG.ignore_tolerance == 5
        assert DEFAULT_CONFIG.min_wire_length == 5

    def test_category_layers_include_ignore_aliases(self):
        assert "Units" in DEFAULT_CONFIG.category_layers
        assert "Ignored" in DEFAULT_CONFIG.category_layers

    def test_alternate_label(self):
        assert DEFAULT_CONFIG.alternate_label == "Emory"
        assert Config(alternate_suffix="").alternate_label == "alternate"


class TestOverrides:
    def test_numbers_and_lists_are_coerced(self):
        config = config_from_dict({"wire_connection_tolerance": 60, "register_layers": ["Registers"]})
        assert config.wire_connection_tolerance == 60.0
        assert isinstance(config.wire_connection_tolerance, float)
        assert config.register_layers == ("Registers",)
        # untouched fields keep their defaults
        assert config.ignore_tolerance == DEFAULT_CONFIG.ignore_tolerance

    def test_unknown_key_rejected(self):
        with pytest.raises(InvalidInput):
            config_from_dict({"wire_tolerance": 1})

    def test_dict_field_requires_object(self):
        with pytest.raises(InvalidInput):
            config_from_dict({"register_assets": ["Square Register"]})


class TestLoadConfig:
    def test_reads_json_file(self, tmp_path):
        path = tmp_path / "ductwork.json"
        path.write_text(json.dumps({"alternate_suffix": " Alt", "min_wire_length": 2}))
        config = load_config(path)
        assert config.alternate_suffix == " Alt"
        assert config.min_wire_length == 2.0

    def test_rejects_non_object(self, tmp_path):
        path = tmp_path / "ductwork.json"
        path.write_text("[1, 2]")
        with pytest.raises(InvalidInput):
            load_config(path)

    def test_rejects_bad_json(self, tmp_path):
        path = tmp_path / "ductwork.json"
        path.write_text("{not json")
        with pytest.raises(InvalidInput):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidInput):
            load_config(tmp_path / "missing.json")
