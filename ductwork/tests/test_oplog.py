"""Tests for OpLog serialization and accumulation."""

import logging

import pytest

from ..oplog import OpEvent, OpLog, format_line, format_value, parse_line, parse_value


class TestValues:
    def test_strings_with_spaces_are_quoted(self):
        assert format_value("Unit.ai") == "Unit.ai"
        assert format_value("Square Register Emory.ai") == '"Square Register Emory.ai"'
        assert format_value("") == '""'

    def test_floats_use_one_decimal(self):
        assert format_value(3.14159) == "3.1"
        assert format_value(True) == "true"
        assert format_value(7) == "7"

    def test_parse_quoted_with_escapes(self):
        assert parse_value('"say \\"hi\\""') == 'say "hi"'

    def test_parse_list(self):
        assert parse_value("[1, 2.5, a]") == [1, 2.5, "a"]
        assert parse_value("[]") == []


class TestLines:
    def test_format_and_parse(self):
        line = format_line("ITEM_MOVE", {"name": "Big Unit.ai", "kind": "placed", "layer": "Units"})
        assert line == 'ITEM_MOVE name="Big Unit.ai" kind=placed layer=Units'
        kind, fields = parse_line(line)
        assert kind == "ITEM_MOVE"
        assert fields == {"name": "Big Unit.ai", "kind": "placed", "layer": "Units"}

    def test_comment_line_rejected(self):
        with pytest.raises(ValueError):
            parse_line("# comment")

    def test_field_without_equals_rejected(self):
        with pytest.raises(ValueError):
            parse_line("ITEM_MOVE name")


class TestOpLog:
    def test_helpers_record_events(self):
        oplog = OpLog()
        oplog.layer_add("Ignored")
        oplog.item_move("Unit.ai", "placed", "Ignored")
        oplog.wire_skip(10.0, 4.0, "short", 3.0)
        oplog.endpoint_ignored(1.0, 2.0)

        assert oplog.count("ITEM_MOVE") == 1
        assert oplog.of_kind("WIRE_SKIP")[0].fields == {
            "x": 10.0,
            "y": 4.0,
            "reason": "short",
            "len": 3.0,
        }

    def test_plaintext_round_trip(self):
        oplog = OpLog()
        oplog.asset_replace("Old.ai", "New Unit.ai", "Units", 12.25, -4.0, 80.0)
        oplog.item_skip("frame", "not-category", "Frame")

        text = oplog.to_plaintext()
        assert text.endswith("\n")
        assert OpLog.from_plaintext(text).events == oplog.events
        assert OpEvent.from_line(text.splitlines()[0]).fields["new"] == "New Unit.ai"

    def test_from_plaintext_skips_comments_and_blanks(self):
        oplog = OpLog.from_plaintext("# header\n\nLAYER_ADD name=Units\n")
        assert [e.kind for e in oplog.events] == ["LAYER_ADD"]

    def test_empty_log_is_empty_text(self):
        assert OpLog().to_plaintext() == ""

    def test_log_to(self, caplog):
        oplog = OpLog()
        oplog.layer_add("Units")
        log = logging.getLogger("ductwork.test")
        with caplog.at_level(logging.INFO, logger="ductwork.test"):
            oplog.log_to(log)
        assert "OPLOG LAYER_ADD name=Units" in caplog.text
