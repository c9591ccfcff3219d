"""
Tests for the ignore-mode controller and the ignore-selection batch.

State machine:

    inactive --set_mode(True)--> active:no-selection <--> active:<name>
    any      --set_mode(False) / cleanup()--> inactive
"""

import pytest

from ..config import DEFAULT_CONFIG
from ..document import Host
from ..errors import NoDocument
from ..ignore_mode import IgnoreModeController, ignore_selection, is_eligible_path
from ..types import Point

PREVIEW = DEFAULT_CONFIG.preview_layer_name


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def make_session():
    host = Host()
    doc = host.new_document("Plan")
    ducts = doc.add_layer("Blue Ductwork")
    doc.add_layer("Units")
    run = ducts.add_path([Point(0, 0), Point(0, 60), Point(60, 60)], name="Run 1")
    return host, doc, run


# ═══════════════════════════════════════════════════════════════════════════════
# Eligibility
# ═══════════════════════════════════════════════════════════════════════════════


class TestEligibility:
    def test_open_path_is_eligible(self):
        _, _, run = make_session()
        assert is_eligible_path(run)

    def test_closed_and_single_point_paths_are_not(self):
        _, doc, run = make_session()
        run.closed = True
        assert not is_eligible_path(run)
        marker = doc.layer("Units").add_path([Point(0, 0)])
        assert not is_eligible_path(marker)

    @pytest.mark.parametrize("attr", ["guides", "locked", "hidden"])
    def test_flagged_paths_are_not(self, attr):
        _, _, run = make_session()
        setattr(run, attr, True)
        assert not is_eligible_path(run)

    def test_paths_on_locked_layers_are_not(self):
        _, doc, run = make_session()
        doc.layer("Blue Ductwork").locked = True
        assert not is_eligible_path(run)

    def test_placed_assets_are_not(self):
        _, doc, _ = make_session()
        assert not is_eligible_path(doc.layer("Units").place("Unit.ai"))


# ═══════════════════════════════════════════════════════════════════════════════
# Controller
# ═══════════════════════════════════════════════════════════════════════════════


class TestModeTransitions:
    def test_activation_requires_document(self):
        controller = IgnoreModeController(Host())
        with pytest.raises(NoDocument):
            controller.set_mode(True)
        assert controller.status() == "inactive"

    def test_activate_and_deactivate(self):
        host, doc, _ = make_session()
        controller = IgnoreModeController(host)

        assert controller.set_mode(True) is True
        assert controller.status() == "active:no-selection"
        assert doc.subscriber_count == 1

        assert controller.set_mode(False) is False
        assert controller.status() == "inactive"
        assert doc.subscriber_count == 0

    def test_activating_twice_keeps_one_subscription(self):
        host, doc, _ = make_session()
        controller = IgnoreModeController(host)
        controller.set_mode(True)
        controller.set_mode(True)
        assert doc.subscriber_count == 1

    def test_toggle(self):
        host, _, _ = make_session()
        controller = IgnoreModeController(host)
        assert controller.toggle() is True
        assert controller.toggle() is False

    def test_activation_evaluates_current_selection(self):
        host, doc, run = make_session()
        doc.selection = [run]
        controller = IgnoreModeController(host)
        controller.set_mode(True)
        assert controller.status() == "active:Run 1"

    def test_cleanup_from_any_state(self):
        host, doc, run = make_session()
        controller = IgnoreModeController(host)
        controller.cleanup()
        assert controller.status() == "inactive"

        controller.set_mode(True)
        doc.selection = [run]
        controller.cleanup()
        assert controller.status() == "inactive"
        assert doc.layer(PREVIEW) is None
        assert doc.subscriber_count == 0


class TestPreview:
    def test_selection_renders_preview(self):
        host, doc, run = make_session()
        controller = IgnoreModeController(host)
        controller.set_mode(True)

        doc.selection = [run]

        preview = doc.layer(PREVIEW)
        assert preview is not None
        assert preview.z_order == 0
        assert controller.mode == "selected"
        assert controller.target.endpoint.endpoint == Point(60, 60)
        # clone, disk and the two arrow polylines
        assert len(preview.entities) == 4
        clone = [p for p in preview.paths if p.anchors == run.anchors][0]
        assert clone.style.opacity == DEFAULT_CONFIG.preview_opacity
        assert run.style.opacity == 100

    def test_disk_radius_follows_approach_length(self):
        host, doc, run = make_session()
        controller = IgnoreModeController(host)
        controller.set_mode(True)
        doc.selection = [run]

        disk = [p for p in doc.layer(PREVIEW).paths if p.closed][0]
        # last segment is 60 long, so the radius is 60 / 6
        for anchor in disk.anchors:
            assert anchor.distance_to(Point(60, 60)) == pytest.approx(10.0)

    def test_refresh_replaces_previous_preview(self):
        host, doc, run = make_session()
        other = doc.layer("Blue Ductwork").add_path([Point(200, 0), Point(300, 0)], name="Run 2")
        controller = IgnoreModeController(host)
        controller.set_mode(True)

        doc.selection = [run]
        doc.selection = [other]

        assert controller.status() == "active:Run 2"
        assert len(doc.layer(PREVIEW).entities) == 4

    def test_ineligible_selection_clears_preview(self):
        host, doc, run = make_session()
        controller = IgnoreModeController(host)
        controller.set_mode(True)
        doc.selection = [run]

        doc.selection = [doc.layer("Units").place("Unit.ai")]

        assert controller.status() == "active:no-selection"
        assert doc.layer(PREVIEW).entities == []

    def test_preview_items_are_not_targets(self):
        host, doc, run = make_session()
        controller = IgnoreModeController(host)
        controller.set_mode(True)
        doc.selection = [run]

        doc.selection = doc.layer(PREVIEW).paths

        assert controller.status() == "active:no-selection"

    def test_deactivation_stops_overlay_updates(self):
        host, doc, run = make_session()
        controller = IgnoreModeController(host)
        controller.set_mode(True)
        doc.selection = [run]
        controller.set_mode(False)

        assert doc.layer(PREVIEW) is None
        doc.selection = []
        doc.selection = [run]
        assert doc.layer(PREVIEW) is None
        assert controller.status() == "inactive"


class TestApplyIgnore:
    def test_no_document(self):
        assert IgnoreModeController(Host()).apply_ignore() == "NO_DOCUMENT"

    def test_inactive_is_no_selection(self):
        host, doc, run = make_session()
        doc.selection = [run]
        assert IgnoreModeController(host).apply_ignore() == "NO_SELECTION"

    def test_nothing_selected(self):
        host, _, _ = make_session()
        controller = IgnoreModeController(host)
        controller.set_mode(True)
        assert controller.apply_ignore() == "NO_SELECTION"

    def test_adds_marker_at_endpoint(self):
        host, doc, run = make_session()
        controller = IgnoreModeController(host)
        controller.set_mode(True)
        doc.selection = [run]

        assert controller.apply_ignore() == "IGNORE_ADDED"

        ignore = doc.layer("Ignore")
        [marker] = ignore.paths
        assert marker.anchors == [Point(60, 60), Point(60, 60)]
        assert marker.name == DEFAULT_CONFIG.ignore_marker_name
        assert marker.style.opacity == 0
        assert not marker.style.stroked and not marker.style.filled
        assert ignore.locked and not ignore.visible
        # selection is re-evaluated and still points at the same path
        assert controller.status() == "active:Run 1"

    def test_removed_path_is_invalid(self):
        host, doc, run = make_session()
        controller = IgnoreModeController(host)
        controller.set_mode(True)
        doc.selection = [run]

        run.remove()

        assert controller.apply_ignore() == "INVALID_SELECTION"
        assert controller.status() == "active:no-selection"
        assert doc.layer("Ignore") is None

    def test_locked_path_is_invalid(self):
        host, doc, run = make_session()
        controller = IgnoreModeController(host)
        controller.set_mode(True)
        doc.selection = [run]

        run.locked = True

        assert controller.apply_ignore() == "INVALID_SELECTION"


# ═══════════════════════════════════════════════════════════════════════════════
# Ignore selection batch
# ═══════════════════════════════════════════════════════════════════════════════


class TestIgnoreSelection:
    def test_no_document_and_no_selection(self):
        assert ignore_selection(None).reason == "no-document"
        _, doc, _ = make_session()
        assert ignore_selection(doc).to_dict() == {
            "total": 0,
            "added": 0,
            "skipped": 0,
            "moved": 0,
            "reason": "no-selection",
        }

    def test_paths_and_pieces(self):
        _, doc, run = make_session()
        unit = doc.layer("Units").place("Unit.ai")
        unit.center_on(Point(500, 500))
        doc.selection = [run, unit]

        result = ignore_selection(doc)

        assert result.to_dict() == {"total": 2, "added": 2, "skipped": 0, "moved": 1}
        ignore = doc.layer("Ignore")
        assert unit.layer is ignore
        anchors = sorted(p.anchors[0].as_tuple() for p in ignore.paths)
        assert anchors == [(60, 60), (500, 500)]
        assert ignore.locked and not ignore.visible

    def test_ineligible_paths_are_skipped(self):
        _, doc, run = make_session()
        run.closed = True
        doc.selection = [run]

        result = ignore_selection(doc)

        assert (result.total, result.added, result.skipped) == (1, 0, 1)

    def test_pieces_off_piece_layers_are_left_alone(self):
        _, doc, _ = make_session()
        stray = doc.layer("Blue Ductwork").place("Unit.ai")
        doc.selection = [stray]

        result = ignore_selection(doc)

        assert result.total == 0
        assert stray.layer is doc.layer("Blue Ductwork")
