"""
Transform engine tests: capture lifecycle, scale-corrected drag and resize,
parent bounds and rotation steps.
"""

import pytest

from boardspace.canvas.registry import ElementRegistry
from boardspace.canvas.transform import POINTER_MOVE, POINTER_UP, ListenerRegistry, TransformEngine
from boardspace.models.canvas_models import Point, Size, Viewport
from boardspace.models.engine_models import GestureKind, PointerRegion


class Harness:
    def __init__(self, records, scale=1.0):
        self.registry = ElementRegistry.from_records(records)
        self.viewport = Viewport(scale=scale)
        self.listeners = ListenerRegistry()
        self.outcomes = []
        self.engine = TransformEngine(
            self.registry, lambda: self.viewport, self.listeners, self.outcomes.append
        )

    def drag(self, element_id, start, end, region=PointerRegion.HANDLE):
        kind = self.engine.pointer_down(element_id, start, region)
        self.listeners.dispatch(POINTER_MOVE, end)
        self.listeners.dispatch(POINTER_UP, end)
        return kind


def test_listener_count_is_stable_across_drag_cycles(make_record):
    harness = Harness([make_record("s")])

    for step in range(3):
        harness.engine.pointer_down("s", Point(x=0, y=0), PointerRegion.HANDLE)
        assert harness.listeners.count(POINTER_MOVE) == 1
        assert harness.listeners.count(POINTER_UP) == 1
        harness.listeners.dispatch(POINTER_MOVE, Point(x=step, y=step))
        harness.listeners.dispatch(POINTER_UP, Point(x=step, y=step))
        assert harness.listeners.count() == 0

    assert len(harness.outcomes) == 3


def test_drag_delta_is_divided_by_scale(make_record):
    harness = Harness([make_record("s", x=100, y=100)], scale=2.0)

    harness.drag("s", Point(x=10, y=10), Point(x=110, y=60))

    outcome = harness.outcomes[0]
    assert outcome.kind == GestureKind.MOVE
    assert outcome.anchor == Point(x=150, y=125)
    assert outcome.relative_position is None


def test_drag_reads_live_scale(make_record):
    harness = Harness([make_record("s", x=0, y=0)], scale=1.0)
    harness.engine.pointer_down("s", Point(x=0, y=0), PointerRegion.HANDLE)

    harness.viewport = Viewport(scale=4.0)
    harness.listeners.dispatch(POINTER_UP, Point(x=100, y=0))

    assert harness.outcomes[0].anchor == Point(x=25, y=0)


def test_preview_tracks_pointer_until_release(make_record):
    harness = Harness([make_record("s", x=0, y=0)])
    harness.engine.pointer_down("s", Point(x=0, y=0), PointerRegion.HANDLE)

    harness.listeners.dispatch(POINTER_MOVE, Point(x=30, y=40))

    assert harness.engine.preview.anchor == Point(x=30, y=40)
    assert harness.outcomes == []


def test_body_press_on_handle_variant_only_selects(make_record):
    harness = Harness([make_record("s", "sticky")])

    kind = harness.engine.pointer_down("s", Point(x=0, y=0), PointerRegion.BODY)

    assert kind is None
    assert harness.listeners.count() == 0


def test_variants_without_handle_drag_from_body(make_record):
    harness = Harness([make_record("img", "image", x=0, y=0)])

    kind = harness.drag("img", Point(x=0, y=0), Point(x=20, y=10), region=PointerRegion.BODY)

    assert kind == GestureKind.MOVE
    assert harness.outcomes[0].anchor == Point(x=20, y=10)


def test_unknown_type_never_starts_a_gesture(make_record):
    harness = Harness([make_record("h", "hologram")])

    assert harness.engine.pointer_down("h", Point(), PointerRegion.HANDLE) is None
    assert harness.listeners.count() == 0


def test_resize_has_minimum_size(make_record):
    harness = Harness([make_record("s", width=224, height=224)])

    harness.drag("s", Point(x=0, y=0), Point(x=-500, y=-500), region=PointerRegion.RESIZE)

    outcome = harness.outcomes[0]
    assert outcome.kind == GestureKind.RESIZE
    assert outcome.size == Size(width=50, height=50)
    assert outcome.anchor == Point(x=100, y=100)


def test_resize_is_scale_corrected(make_record):
    harness = Harness([make_record("s", width=200, height=100)], scale=0.5)

    harness.drag("s", Point(x=0, y=0), Point(x=50, y=25), region=PointerRegion.RESIZE)

    assert harness.outcomes[0].size == Size(width=300, height=150)


def test_drag_inside_parent_is_bounded(make_record, make_container):
    harness = Harness([
        make_container("c", 100, 100, members=["s"]),
        make_record("s", x=150, y=150, width=100, height=100, parent_id="c", hidden=True,
                    properties={"relative_position": {"x": 50, "y": 50}}),
    ])

    harness.drag("s", Point(x=0, y=0), Point(x=1000, y=-1000))

    outcome = harness.outcomes[0]
    assert outcome.relative_position == Point(x=200, y=0)
    assert outcome.anchor == Point(x=300, y=100)


def test_resize_inside_parent_is_bounded(make_record, make_container):
    harness = Harness([
        make_container("c", 100, 100, members=["s"]),
        make_record("s", x=150, y=150, width=100, height=100, parent_id="c", hidden=True,
                    properties={"relative_position": {"x": 50, "y": 50}}),
    ])

    harness.drag("s", Point(x=0, y=0), Point(x=1000, y=1000), region=PointerRegion.RESIZE)

    assert harness.outcomes[0].size == Size(width=250, height=250)
    patch = harness.engine.resize_patch(harness.outcomes[0])
    assert patch["properties"]["relative_position"] == {"x": 50, "y": 50}
    assert patch["properties"]["size"] == {"width": 250, "height": 250}


def test_element_deleted_mid_gesture_is_a_no_op(make_record):
    harness = Harness([make_record("s")])
    harness.engine.pointer_down("s", Point(x=0, y=0), PointerRegion.HANDLE)

    harness.registry.remove("s")
    harness.listeners.dispatch(POINTER_MOVE, Point(x=10, y=10))
    harness.listeners.dispatch(POINTER_UP, Point(x=10, y=10))

    assert harness.outcomes == []
    assert harness.listeners.count() == 0
    assert not harness.engine.active


def test_cancel_releases_capture_without_outcome(make_record):
    harness = Harness([make_record("s")])
    harness.engine.pointer_down("s", Point(x=0, y=0), PointerRegion.HANDLE)

    harness.engine.cancel()
    harness.listeners.dispatch(POINTER_UP, Point(x=10, y=10))

    assert harness.outcomes == []
    assert harness.listeners.count() == 0


def test_new_gesture_replaces_unfinished_one(make_record):
    harness = Harness([make_record("a"), make_record("b")])

    harness.engine.pointer_down("a", Point(), PointerRegion.HANDLE)
    harness.engine.pointer_down("b", Point(), PointerRegion.HANDLE)

    assert harness.listeners.count() == 2
    harness.listeners.dispatch(POINTER_UP, Point(x=5, y=5))
    assert [o.element_id for o in harness.outcomes] == ["b"]


class TestRotation:

    def test_rotate_to_normalizes(self, make_record):
        harness = Harness([make_record("s")])

        patch = harness.engine.rotate_to("s", -45)

        assert patch["properties"]["rotation"] == 315
        assert patch["properties"]["position"] == {"x": 100, "y": 100}

    @pytest.mark.parametrize("element_type, start, direction, expected", [
        ("sticky", 0, 1, 15),
        ("sticky", 350, 1, 5),
        ("sticky", 0, -1, 345),
        ("image-frame", 270, 1, 0),
    ])
    def test_rotation_steps(self, make_record, element_type, start, direction, expected):
        harness = Harness([make_record("e", element_type, properties={"rotation": start})])

        patch = harness.engine.rotate_step("e", direction)

        assert patch["properties"]["rotation"] == expected

    def test_variants_without_rotation_step(self, make_record):
        harness = Harness([make_record("t", "text")])

        assert harness.engine.rotate_step("t") is None
