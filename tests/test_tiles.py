import pytest

from tiles import (
    LEFT, MIDDLE, RIGHT, canonical_edges, canonical_key, enumerate_tile_catalog,
    find_tile, get_tile, mirror_edges, rotate_edges, serialize_edges, transform_edges,
)


def test_catalog_has_42_distinct_shapes():
    catalog = enumerate_tile_catalog()
    assert len(catalog) == 42
    assert len({t.id for t in catalog}) == 42
    assert len({canonical_key(t.edges) for t in catalog}) == 42


def test_catalog_is_memoized_and_ids_are_sequential():
    first = enumerate_tile_catalog()
    assert enumerate_tile_catalog() is first
    assert [t.id for t in first] == [f"tile_{i}" for i in range(len(first))]


def test_catalog_entries_store_the_canonical_representative():
    for t in enumerate_tile_catalog():
        assert canonical_edges(t.edges) == t.edges
        assert 1 <= t.connector_count <= 4


def test_rotation_moves_right_edge_to_top():
    edges = (None, MIDDLE, None, None)
    assert rotate_edges(edges) == (MIDDLE, None, None, None)
    assert rotate_edges(edges, 4) == edges


def test_mirror_swaps_top_bottom_and_flips_positions():
    assert mirror_edges((LEFT, RIGHT, None, MIDDLE)) == (None, LEFT, RIGHT, MIDDLE)
    assert mirror_edges(mirror_edges((LEFT, RIGHT, None, MIDDLE))) == (LEFT, RIGHT, None, MIDDLE)


def test_every_transform_lands_on_the_same_catalog_entry():
    for t in enumerate_tile_catalog():
        for rotation in (0, 90, 180, 270):
            for mirrored in (False, True):
                assert find_tile(transform_edges(t.edges, rotation, mirrored)) is t


def test_serialize_uses_single_letters():
    assert serialize_edges((None, LEFT, MIDDLE, RIGHT)) == "x-l-m-r"


def test_cap_and_straight_names():
    cap = find_tile((None, None, MIDDLE, None))
    assert cap.edges == (MIDDLE, None, None, None)
    assert cap.name == "cap: T-m"
    straight = find_tile((None, MIDDLE, None, MIDDLE))
    assert straight.name == "2way: T-m B-m"


def test_connector_count_histogram():
    counts = {}
    for t in enumerate_tile_catalog():
        counts[t.connector_count] = counts.get(t.connector_count, 0) + 1
    # 1 connector: the three positions collapse to left/right and middle
    assert counts[1] == 2
    assert sum(counts.values()) == 42


def test_unknown_tile_id_raises_key_error():
    with pytest.raises(KeyError):
        get_tile("tile_999")
