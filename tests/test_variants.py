import pytest

from models import EDGE_X, EDGE_Z, FLAT, NEG_X, NEG_Y, NEG_Z, OPPOSITE, POS_X, POS_Y, POS_Z, RELEVANT_DIRECTIONS
from tiles import EDGES, MIDDLE, enumerate_tile_catalog, find_tile, transform_edges
from solver.compat import get_index
from solver.constructive import flat_profile
from solver.variants import (
    all_variants, connectors_for, get_variant, tile_records, variant_key_for, variants_for,
)

CAP = (MIDDLE, None, None, None)
STRAIGHT = (MIDDLE, None, MIDDLE, None)
CROSS = (MIDDLE, MIDDLE, MIDDLE, MIDDLE)


def test_cap_top_connector_faces_negative_z_when_flat():
    cap = find_tile(CAP).id
    (c,) = connectors_for(cap, 0, False, FLAT)
    assert c.offset == (0.5, 0.0, 0.0)
    assert c.facing == NEG_Z


def test_edge_x_cap_rotated_half_turn_points_down():
    cap = find_tile(CAP).id
    (c,) = connectors_for(cap, 180, False, EDGE_X)
    assert c.offset == (1.0, 0.0, 0.5)
    assert c.facing == NEG_Y


def test_edge_z_cap_points_up():
    cap = find_tile(CAP).id
    (c,) = connectors_for(cap, 0, False, EDGE_Z)
    assert c.offset == (0.5, 1.0, 1.0)
    assert c.facing == POS_Y


def test_symmetric_shapes_collapse_to_fewer_variants():
    records = tile_records()
    assert len(records[find_tile(CROSS).id].variants) == 3
    assert records[find_tile(CROSS).id].symmetry_order == 8
    assert len(records[find_tile(CAP).id].variants) == 12
    assert len(variants_for(find_tile(STRAIGHT).id, FLAT)) == 2


def test_every_raw_combination_maps_to_a_representative():
    for t in enumerate_tile_catalog():
        for o in (FLAT, EDGE_X, EDGE_Z):
            for rotation in (0, 90, 180, 270):
                for mirrored in (False, True):
                    key = variant_key_for(t.id, rotation, mirrored, o)
                    rep = get_variant(key)
                    raw = connectors_for(t.id, rotation, mirrored, o)
                    assert rep.offsets == frozenset(c.offset for c in raw)
                    assert rep.orientation == o


def test_variant_keys_are_unique_and_well_formed():
    keys = [v.key for v in all_variants()]
    assert len(keys) == len(set(keys))
    tile_id, rotation, mirrored, orientation = keys[0].split(":")
    assert tile_id.startswith("tile_")
    assert int(rotation) in (0, 90, 180, 270)
    assert mirrored in ("0", "1")


def test_flat_profile_agrees_with_edge_transforms():
    for t in enumerate_tile_catalog():
        for rotation in (0, 90, 180, 270):
            for mirrored in (False, True):
                expected = {
                    edge: pos
                    for edge, pos in zip(EDGES, transform_edges(t.edges, rotation, mirrored))
                    if pos is not None
                }
                assert flat_profile(t.id, rotation, mirrored) == expected


def test_bad_rotation_is_rejected():
    with pytest.raises(ValueError):
        connectors_for(find_tile(CAP).id, 45, False, FLAT)


def test_compatibility_is_symmetric():
    index = get_index()
    for v in all_variants():
        for d in RELEVANT_DIRECTIONS[v.orientation]:
            for w in index.compatible(v.key, d):
                assert v.key in index.compatible(w, OPPOSITE[d])
                assert index.orientation_of(w) == v.orientation


def test_straight_along_x_chains_with_itself():
    index = get_index()
    straight = find_tile(STRAIGHT).id
    along_x = [v for v in variants_for(straight, FLAT) if {c.facing for c in v.connectors} == {POS_X, NEG_X}]
    assert len(along_x) == 1
    key = along_x[0].key
    assert key in index.compatible(key, POS_X)
    # no connector toward -z, so only neighbors closed toward +z fit there
    assert key in index.closed(FLAT, NEG_Z)
    assert all(not index.face_key(w, POS_Z) for w in index.compatible(key, NEG_Z))
    assert index.is_compatible(key, key, POS_X)
