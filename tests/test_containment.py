"""
Containment resolver tests: anchoring on drop, leaving, re-anchoring and
release placement.
"""

from boardspace.canvas.containment import ContainmentResolver
from boardspace.canvas.registry import ElementRegistry
from boardspace.models.canvas_models import Point


def resolver_for(records):
    registry = ElementRegistry.from_records(records)
    return registry, ContainmentResolver(registry)


def apply(registry, patches):
    for patch in patches:
        registry.apply_patch(patch.element_id, patch.changes)


def test_drop_inside_container_anchors_element(make_record, make_container):
    registry, resolver = resolver_for([
        make_container("c", 100, 100),
        make_record("s", x=600, y=600, width=100, height=100),
    ])

    apply(registry, resolver.resolve_drop("s", Point(x=150, y=150)))

    element = registry.get("s")
    assert element.parent_id == "c"
    assert element.hidden is True
    assert element.properties.relative_position == Point(x=50, y=50)
    assert registry.get("c").container_ids() == ["s"]


def test_container_move_carries_anchored_child(make_record, make_container):
    registry, resolver = resolver_for([
        make_container("c", 100, 100),
        make_record("s", x=600, y=600, width=100, height=100),
    ])
    apply(registry, resolver.resolve_drop("s", Point(x=150, y=150)))

    apply(registry, resolver.resolve_drop("c", Point(x=200, y=100)))

    assert registry.get("c").position == Point(x=200, y=100)
    assert registry.render_position(registry.get("s")) == Point(x=250, y=150)
    assert registry.get("s").properties.relative_position == Point(x=50, y=50)


def test_repeated_drop_lists_element_once(make_record, make_container):
    registry, resolver = resolver_for([make_container("c", 100, 100), make_record("s", x=0, y=0)])

    first = resolver.resolve_drop("s", Point(x=150, y=150))
    assert first == resolver.resolve_drop("s", Point(x=150, y=150))
    apply(registry, first)
    apply(registry, resolver.resolve_drop("s", Point(x=150, y=150)))

    assert registry.get("c").container_ids() == ["s"]
    assert registry.get("s").properties.relative_position == Point(x=50, y=50)


def test_container_edges_are_inclusive(make_record, make_container):
    registry, resolver = resolver_for([make_container("c", 100, 100), make_record("s", x=0, y=0)])

    apply(registry, resolver.resolve_drop("s", Point(x=400, y=400)))

    assert registry.get("s").parent_id == "c"
    assert registry.get("s").properties.relative_position == Point(x=300, y=300)


def test_only_anchor_corner_is_tested(make_record, make_container):
    registry, resolver = resolver_for([
        make_container("c", 100, 100),
        make_record("s", x=0, y=0, width=200, height=200),
    ])

    # Mostly overlapping, but the top-left corner is outside
    apply(registry, resolver.resolve_drop("s", Point(x=99, y=150)))

    assert registry.get("s").parent_id is None
    assert registry.get("c").container_ids() == []


def test_drop_outside_frees_element(make_record, make_container):
    registry, resolver = resolver_for([
        make_container("c", 100, 100, members=["s"]),
        make_record("s", x=150, y=150, parent_id="c", hidden=True,
                    properties={"relative_position": {"x": 50, "y": 50}}),
    ])

    apply(registry, resolver.resolve_drop("s", Point(x=800, y=20)))

    element = registry.get("s")
    assert element.parent_id is None
    assert element.hidden is False
    assert element.position == Point(x=800, y=20)
    assert element.properties.relative_position is None
    assert registry.get("c").container_ids() == []


def test_moving_between_containers_updates_both(make_record, make_container):
    registry, resolver = resolver_for([
        make_container("a", 0, 0, members=["s"]),
        make_container("b", 500, 0),
        make_record("s", x=10, y=10, parent_id="a", hidden=True,
                    properties={"relative_position": {"x": 10, "y": 10}}),
    ])

    apply(registry, resolver.resolve_drop("s", Point(x=520, y=30)))

    assert registry.get("a").container_ids() == []
    assert registry.get("b").container_ids() == ["s"]
    assert registry.get("s").parent_id == "b"
    assert registry.get("s").properties.relative_position == Point(x=20, y=30)


def test_containers_do_not_nest(make_container):
    registry, resolver = resolver_for([make_container("outer", 0, 0, 800, 800), make_container("inner", 900, 0)])

    apply(registry, resolver.resolve_drop("inner", Point(x=100, y=100)))

    assert registry.get("inner").parent_id is None
    assert registry.get("outer").container_ids() == []


def test_first_container_in_stacking_order_wins(make_record, make_container):
    registry, resolver = resolver_for([
        make_container("upper", 0, 0, 500, 500, properties={"z_index": 5}),
        make_container("lower", 0, 0, 500, 500, properties={"z_index": 2}),
        make_record("s", x=900, y=900),
    ])

    apply(registry, resolver.resolve_drop("s", Point(x=10, y=10)))

    assert registry.get("s").parent_id == "lower"


def test_patches_carry_full_properties(make_record, make_container):
    registry, resolver = resolver_for([
        make_container("c", 100, 100),
        make_record("s", x=0, y=0, z_index=4, properties={"color": "mint"}),
    ])

    patches = resolver.resolve_drop("s", Point(x=150, y=150))

    element_patch = [p for p in patches if p.element_id == "s"][0]
    properties = element_patch.changes["properties"]
    assert properties["color"] == "mint"
    assert properties["z_index"] == 4
    assert properties["size"] == {"width": 200, "height": 150}


def test_release_places_element_right_of_container(make_record, make_container):
    registry, resolver = resolver_for([
        make_container("c", 100, 100, members=["s"]),
        make_record("s", x=150, y=150, parent_id="c", hidden=True,
                    properties={"relative_position": {"x": 50, "y": 50}}),
    ])

    apply(registry, resolver.release("c", "s"))

    element = registry.get("s")
    container = registry.get("c")
    assert element.parent_id is None
    assert element.hidden is False
    assert element.position == Point(x=420, y=100)
    assert element.position.x > container.position.x + container.size.width
    assert container.container_ids() == []


def test_missing_elements_are_no_ops(make_container):
    registry, resolver = resolver_for([make_container("c", 100, 100)])

    assert resolver.resolve_drop("ghost", Point(x=150, y=150)) == []
    assert resolver.release("c", "ghost") == []
    assert resolver.release("ghost", "c") == []


def test_release_through_other_container_is_refused(make_record, make_container):
    registry, resolver = resolver_for([
        make_container("c1", 100, 100),
        make_container("c2", 600, 100, members=["s"]),
        make_record("s", x=650, y=150, parent_id="c2", hidden=True,
                    properties={"relative_position": {"x": 50, "y": 50}}),
    ])

    assert resolver.release("c1", "s") == []

    element = registry.get("s")
    assert element.parent_id == "c2"
    assert element.hidden is True
    assert registry.get("c2").container_ids() == ["s"]


def test_release_of_free_element_is_refused(make_record, make_container):
    registry, resolver = resolver_for([make_container("c", 100, 100), make_record("s", x=600, y=600)])

    assert resolver.release("c", "s") == []
    assert registry.get("s").position == Point(x=600, y=600)
