from models import EDGE_X, FLAT, Placement
from tiles import MIDDLE, find_tile
from solver.closure import placement_connectors, validate_closure
from solver.unionfind import UnionFind

from conftest import corridor_placements, loop_placements


def test_two_by_two_loop_is_closed(loop_2x2):
    report = validate_closure(loop_2x2)
    assert report.valid
    assert report.open_connectors == []
    assert report.connected_pairs == 4
    assert report.components == 1


def test_corridor_is_closed():
    report = validate_closure(corridor_placements())
    assert report.valid
    assert report.connected_pairs == 3


def test_missing_tile_leaves_two_open_connectors(loop_2x2):
    report = validate_closure(loop_2x2[:3])
    assert not report.valid
    assert len(report.open_connectors) == 2


def test_disjoint_loops_are_not_one_network():
    report = validate_closure(loop_placements() + loop_placements(x0=3))
    assert report.open_connectors == []
    assert report.components == 2
    assert not report.valid


def test_duplicate_slot_is_invalid(loop_2x2):
    report = validate_closure(loop_2x2 + [loop_2x2[0]])
    assert not report.valid
    assert report.duplicate_slots == [loop_2x2[0].slot]


def test_empty_set_is_invalid():
    report = validate_closure([])
    assert not report.valid
    assert report.components == 0


def test_flat_cap_meets_standing_cap_on_shared_edge():
    cap = find_tile((MIDDLE, None, None, None)).id
    flat = Placement((0, 0, 0), FLAT, cap, 270)
    standing = Placement((0, 0, 0), EDGE_X, cap, 180)
    (a,) = placement_connectors(flat)
    (b,) = placement_connectors(standing)
    assert a.point == b.point == (1.0, 0.0, 0.5)
    assert validate_closure([flat, standing]).valid


def test_union_find_tracks_components():
    uf = UnionFind()
    for i in range(5):
        uf.add(i)
    assert uf.union(0, 1)
    assert uf.union(1, 2)
    assert not uf.union(0, 2)
    assert uf.connected(0, 2)
    assert not uf.connected(0, 3)
    assert uf.component_count() == 3
    copy = uf.clone()
    copy.union(3, 4)
    assert copy.component_count() == 2
    assert uf.component_count() == 3
    assert sorted(sorted(c) for c in uf.get_all_components()) == [[0, 1, 2], [3], [4]]


def test_removing_any_tile_opens_the_loop(loop_2x2):
    for i in range(len(loop_2x2)):
        rest = loop_2x2[:i] + loop_2x2[i + 1:]
        assert validate_closure(rest).open_connectors
