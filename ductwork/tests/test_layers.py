"""Tests for the layer registry and lock overrides."""

import pytest

from ..config import DEFAULT_CONFIG, STANDARD_LAYERS
from ..document import Document
from ..layers import (
    category_layers,
    ensure_ignore_layer,
    ensure_layer,
    ensure_standard_layers,
    find_ignore_layer,
    is_category_layer,
    is_duct_layer,
    is_ignore_layer,
    layer_override,
    resolve_target_layer,
)
from ..oplog import OpLog


class TestClassification:
    def test_category_whitelist(self):
        assert is_category_layer("Units")
        assert is_category_layer("Square Registers")
        assert is_category_layer("Ignored")
        assert not is_category_layer("Blue Ductwork")
        assert not is_category_layer("units")

    def test_ignore_aliases(self):
        for name in ("Ignore", "Ignored", "ignore", "ignored"):
            assert is_ignore_layer(name)
        assert not is_ignore_layer("IGNORE")

    def test_duct_layer_is_case_insensitive(self):
        assert is_duct_layer("Blue Ductwork")
        assert is_duct_layer("light orange ductwork")
        assert not is_duct_layer("Units")

    def test_category_layers_in_stacking_order(self):
        doc = Document()
        units = doc.add_layer("Units")
        doc.add_layer("Frame")
        squares = doc.add_layer("Square Registers")
        assert category_layers(doc) == [squares, units]


class TestEnsureLayer:
    def test_creates_once(self):
        doc = Document()
        oplog = OpLog()
        first = ensure_layer(doc, "Units", oplog)
        second = ensure_layer(doc, "Units", oplog)
        assert first is second
        assert oplog.count("LAYER_ADD") == 1

    def test_ignore_alias_reuses_existing_layer(self):
        doc = Document()
        existing = doc.add_layer("ignore")
        assert resolve_target_layer(doc, "Ignored") is existing
        assert doc.layer("Ignored") is None

    def test_ignore_layer_created_under_requested_name(self):
        doc = Document()
        layer = resolve_target_layer(doc, "Ignored")
        assert layer.name == "Ignored"
        assert find_ignore_layer(doc) is layer

    def test_default_ignore_name(self):
        doc = Document()
        assert ensure_ignore_layer(doc).name == DEFAULT_CONFIG.ignore_layer_name


class TestLayerOverride:
    def test_restores_previous_state(self):
        doc = Document()
        units = doc.add_layer("Units")
        units.locked = True
        units.visible = False
        with layer_override(units):
            assert units.is_editable
        assert units.locked
        assert not units.visible

    def test_ignore_layer_always_ends_locked_and_hidden(self):
        doc = Document()
        ignored = doc.add_layer("Ignored")
        assert ignored.is_editable
        with layer_override(ignored):
            pass
        assert ignored.locked
        assert not ignored.visible

    def test_restores_on_error(self):
        doc = Document()
        units = doc.add_layer("Units")
        units.locked = True
        with pytest.raises(RuntimeError):
            with layer_override(units):
                raise RuntimeError("boom")
        assert units.locked


class TestStandardLayers:
    def test_creates_missing_and_orders_on_top(self):
        doc = Document()
        extra = doc.add_layer("Sketch")
        frame = doc.add_layer("Frame")
        frame.locked = True
        frame.visible = False

        created = ensure_standard_layers(doc)

        assert "Frame" not in created
        assert len(created) == len(STANDARD_LAYERS) - 1
        names = [layer.name for layer in doc.layers]
        assert names[: len(STANDARD_LAYERS)] == list(STANDARD_LAYERS)
        assert names[-1] == extra.name
        assert frame.locked
        assert frame.visible

    def test_second_run_creates_nothing(self):
        doc = Document()
        ensure_standard_layers(doc)
        assert ensure_standard_layers(doc) == []
