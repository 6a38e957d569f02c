import random

import pytest

from models import FLAT, GenerationConfig
from tiles import connector_count
from solver.closure import validate_closure
from solver.constructive import (
    build_path, build_structured, generation_pool, line_cells, rectangle_cells, snake_cells,
    structured_options,
)
from solver.orchestrator import _coerce_size_range, generate_solution
from solver.random_walk import build_random_walk


def test_pool_respects_connector_counts():
    pool = generation_pool(GenerationConfig())
    assert pool
    assert {connector_count(t) for t in pool} == {1, 2}
    no_caps = generation_pool(GenerationConfig(allow_end_caps=False, allow_4way=True))
    assert {connector_count(t) for t in no_caps} == {2, 4}


def test_pool_can_be_restricted_to_named_tiles():
    pool = generation_pool(GenerationConfig(tile_pool=["tile_0", "tile_999"]))
    assert pool == ["tile_0"]


def test_rectangle_is_a_clockwise_perimeter():
    cells = rectangle_cells((0, 0), 3, 2)
    assert cells == [(0, 0), (1, 0), (2, 0), (2, 1), (1, 1), (0, 1)]
    assert snake_cells((0, 0), 2, 2) == [(0, 0), (1, 0), (1, 1), (0, 1)]
    assert line_cells((1, 1), 3, vertical=True) == [(1, 1), (1, 2), (1, 3)]


@pytest.mark.parametrize("seed", range(5))
def test_closed_rectangle_paths_validate(seed):
    rng = random.Random(seed)
    pool = generation_pool(GenerationConfig())
    placements = build_path(rectangle_cells((2, 2), 3, 3), True, rng, pool)
    assert placements is not None
    assert len(placements) == 8
    assert validate_closure(placements).valid


@pytest.mark.parametrize("seed", range(5))
def test_capped_lines_validate(seed):
    rng = random.Random(seed)
    pool = generation_pool(GenerationConfig())
    placements = build_path(line_cells((0, 0), 5), False, rng, pool)
    assert placements is not None
    assert validate_closure(placements).valid


def test_lines_need_end_caps():
    options = structured_options(4, 4, (10, 10), allow_caps=False)
    assert options == [("rectangle", 2, 2)]


@pytest.mark.parametrize("seed", range(5))
def test_structured_builder_stays_in_range(seed):
    placements = build_structured((4, 8), random.Random(seed), grid=(6, 6))
    assert placements is not None
    assert 4 <= len(placements) <= 8
    assert all(p.orientation == FLAT and p.cell[1] == 0 for p in placements)
    assert all(0 <= p.cell[0] < 6 and 0 <= p.cell[2] < 6 for p in placements)
    assert validate_closure(placements).valid


@pytest.mark.parametrize("seed", range(10))
def test_random_walk_output_is_closed_when_it_succeeds(seed):
    placements = build_random_walk((4, 10), True, random.Random(seed), grid=(8, 3, 8))
    if placements is None:
        return
    assert 4 <= len(placements) <= 10
    assert validate_closure(placements).valid
    assert all(p.cell[1] < 3 for p in placements)


@pytest.mark.parametrize("seed", range(5))
def test_generate_solution_flat(seed):
    placements = generate_solution((4, 8), False, seed=seed)
    assert placements is not None
    assert 4 <= len(placements) <= 8
    assert all(p.orientation == FLAT for p in placements)
    assert validate_closure(placements).valid


def test_generate_solution_is_reproducible_with_a_seed():
    a = generate_solution((4, 6), False, seed=11)
    b = generate_solution((4, 6), False, seed=11)
    assert a == b


def test_size_range_coercion():
    assert _coerce_size_range((3, 5)) == (3, 5)
    assert _coerce_size_range({"min": 2, "max": 4}) == (2, 4)
    assert _coerce_size_range(6) == (6, 6)
    with pytest.raises(ValueError):
        _coerce_size_range((5, 3))
    with pytest.raises(ValueError):
        _coerce_size_range("big")


def test_four_tile_network_is_found_quickly():
    placements = generate_solution({"min": 4, "max": 4}, False, seed=0, max_attempts=5)
    assert placements is not None
    assert len(placements) == 4
    assert validate_closure(placements).valid
