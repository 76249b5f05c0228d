"""
Z-order tests: selection promotion with exact restore, notebook click raise
and explicit ordering.
"""

import pytest


def z(engine, element_id):
    return engine.registry.get(element_id).properties.z_index


@pytest.fixture
def engine(make_engine, make_record):
    return make_engine([
        make_record("a", "text", z_index=3),
        make_record("b", "text"),
        make_record("n", "notepad"),
    ])


def test_selecting_another_element_restores_previous(engine):
    engine.select("a")
    assert z(engine, "a") == 999

    engine.select("b")

    assert z(engine, "a") == 3
    assert z(engine, "b") == 999
    assert sum(1 for e in engine.registry if e.properties.z_index == 999) == 1

    engine.select(None)
    assert z(engine, "b") is None


def test_reselecting_does_not_recapture(engine):
    engine.select("a")
    engine.select("a")
    engine.zorder.refresh()

    engine.select(None)

    assert z(engine, "a") == 3


def test_refresh_reasserts_front_value(engine):
    engine.select("a")
    engine.registry.apply_patch("a", {"properties": {"position": {"x": 0, "y": 0}, "z_index": 7}})

    engine.zorder.refresh()

    assert z(engine, "a") == 999
    engine.select(None)
    assert z(engine, "a") == 3


def test_multi_selection_promotes_nobody(engine):
    engine.select("a")
    engine.select("b", multi=True)

    assert z(engine, "a") == 3
    assert z(engine, "b") is None


def test_promotion_is_sent_to_host_with_full_properties(engine, host):
    engine.select("a")

    changes = host.updates_for("a")[-1]
    assert changes["properties"]["z_index"] == 999
    assert changes["properties"]["size"] == {"width": 200, "height": 150}


def test_notebook_click_raises_then_reverts(engine, scheduler):
    assert engine.click("n") is True
    assert z(engine, "n") == 0

    scheduler.advance(1.9)
    assert z(engine, "n") == 0

    scheduler.advance(0.2)
    assert z(engine, "n") is None


def test_notebook_click_does_not_revert_selected_element(engine, scheduler):
    engine.click("n")
    engine.select("n")
    assert z(engine, "n") == 999

    scheduler.advance(3)
    assert z(engine, "n") == 999

    engine.select(None)
    assert z(engine, "n") is None


def test_repeated_click_extends_raise_and_keeps_original(engine, scheduler):
    engine.click("n")
    scheduler.advance(1.5)
    engine.click("n")
    scheduler.advance(1.5)
    assert z(engine, "n") == 0

    scheduler.advance(1.0)
    assert z(engine, "n") is None


def test_click_on_regular_element_is_not_raised(engine, scheduler):
    assert engine.click("b") is False
    assert scheduler.pending == 0


def test_next_z_index(make_engine, make_record):
    assert make_engine([]).zorder.next_z_index() == 1

    engine = make_engine([make_record("a", z_index=3), make_record("b", z_index=999)])
    assert engine.zorder.next_z_index() == 4


def test_next_z_index_counts_captured_value(engine):
    engine.select("a")

    assert engine.zorder.next_z_index() == 4


def test_explicit_ordering(engine):
    assert engine.bring_to_front("b") == 4
    assert z(engine, "b") == 4

    assert engine.send_to_back("a") == -2
    assert z(engine, "a") == -2

    assert engine.move_backward("b") == 3
    assert z(engine, "b") == 3


def test_reordering_promoted_element_changes_its_restore_value(engine):
    engine.select("b")

    engine.bring_to_front("b")
    assert z(engine, "b") == 999

    engine.select(None)
    assert z(engine, "b") == 4


def test_deleted_element_is_forgotten(engine):
    engine.select("a")
    engine.registry.remove("a")

    engine.select("b")

    assert engine.zorder.promoted_id == "b"
