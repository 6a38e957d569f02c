import random
from collections import Counter

import pytest

from models import EDGE_X, FLAT, ORIENTATIONS, Bounds, Placement
from tiles import MIDDLE, find_tile
from solver.deriver import (
    compute_bounds, derive_puzzle, is_3d, is_valid_puzzle, pick_hint, size_category,
)

from conftest import corridor_placements, loop_placements


def test_bounds_pad_x_and_z_but_not_y_for_flat_networks():
    bounds = compute_bounds(loop_placements(x0=3, z0=4))
    assert bounds == Bounds((2, 0, 3), (5, 0, 6))


def test_bounds_clamp_to_the_grid():
    bounds = compute_bounds(loop_placements(), grid=(2, 1, 2))
    assert bounds == Bounds((0, 0, 0), (1, 0, 1))


def test_bounds_leave_room_above_standing_tiles():
    cap = find_tile((MIDDLE, None, None, None)).id
    network = [Placement((0, 0, 0), FLAT, cap, 270), Placement((0, 0, 0), EDGE_X, cap, 180)]
    assert is_3d(network)
    bounds = compute_bounds(network)
    assert bounds.max[0] >= 1
    assert bounds.max[1] == 1


def test_hint_is_nearest_the_centroid():
    network = corridor_placements()
    assert pick_hint(network).cell == (1, 0, 0)


def test_arrange_mode_keeps_the_hint_out_of_the_inventory():
    network = corridor_placements()
    puzzle = derive_puzzle(network, "arrange", rng=random.Random(0))
    assert puzzle.hint is not None
    assert puzzle.fixed == [puzzle.hint]
    expected = Counter(p.tile_id for p in network)
    expected[puzzle.hint.tile_id] -= 1
    assert puzzle.inventory == {t: n for t, n in expected.items() if n > 0}
    assert puzzle.total_tiles() == len(network) - 1
    assert puzzle.orientations == (FLAT,)
    assert is_valid_puzzle(puzzle)


def test_arrange_mode_without_hint_uses_every_tile():
    network = corridor_placements()
    puzzle = derive_puzzle(network, "arrange", include_hint=False, rng=random.Random(0))
    assert puzzle.hint is None
    assert puzzle.fixed == []
    assert puzzle.total_tiles() == 4


@pytest.mark.parametrize("difficulty,removed", [("easy", 1), ("medium", 1), ("hard", 2), ("expert", 3)])
def test_complete_mode_removal_ratio(difficulty, removed):
    network = loop_placements()
    puzzle = derive_puzzle(network, "complete", difficulty, rng=random.Random(1))
    assert puzzle.total_tiles() == removed
    assert len(puzzle.fixed) == len(network) - removed
    assert set(puzzle.fixed) <= set(network)
    assert puzzle.hint is None
    assert is_valid_puzzle(puzzle)


def test_metadata_is_filled_in():
    network = loop_placements()
    puzzle = derive_puzzle(network, "arrange", "hard", rng=random.Random(2), puzzle_id="p1")
    assert puzzle.metadata.id == "p1"
    assert puzzle.metadata.difficulty == "hard"
    assert puzzle.metadata.category == "flat"
    assert puzzle.metadata.size == "small"
    generated = derive_puzzle(network, rng=random.Random(2)).metadata.id
    assert generated.startswith("puzzle_")


def test_three_d_networks_allow_every_orientation():
    cap = find_tile((MIDDLE, None, None, None)).id
    network = [Placement((0, 0, 0), FLAT, cap, 270), Placement((0, 0, 0), EDGE_X, cap, 180)]
    puzzle = derive_puzzle(network, "arrange", include_hint=False, rng=random.Random(0))
    assert puzzle.orientations == ORIENTATIONS
    assert puzzle.metadata.category == "3d"


def test_size_categories():
    assert size_category(5) == "small"
    assert size_category(6) == "medium"
    assert size_category(11) == "large"


def test_bad_inputs_are_rejected():
    with pytest.raises(ValueError):
        derive_puzzle([], "arrange")
    with pytest.raises(ValueError):
        derive_puzzle(loop_placements(), "rebuild")
