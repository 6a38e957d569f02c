import random

import pytest

from models import FLAT, Bounds, Placement, PuzzleSpec
from tiles import BOTTOM, LEFT_EDGE, MIDDLE, RIGHT_EDGE, TOP, find_tile
from solver.constructive import find_tile as find_oriented


CAP = (MIDDLE, None, None, None)
STRAIGHT = (MIDDLE, None, MIDDLE, None)
CORNER = (None, MIDDLE, MIDDLE, None)


def _flat(tile_id, cell, edges):
    """Flat placement of ``tile_id`` whose connectors sit on exactly ``edges``."""
    found = find_oriented(random.Random(0), [tile_id], {e: None for e in edges})
    assert found is not None
    tile, rotation, mirrored, _ = found
    return Placement((cell[0], 0, cell[1]), FLAT, tile, rotation, mirrored)


def loop_placements(x0=0, z0=0):
    corner = find_tile(CORNER).id
    return [
        _flat(corner, (x0, z0), (RIGHT_EDGE, BOTTOM)),
        _flat(corner, (x0 + 1, z0), (LEFT_EDGE, BOTTOM)),
        _flat(corner, (x0, z0 + 1), (RIGHT_EDGE, TOP)),
        _flat(corner, (x0 + 1, z0 + 1), (LEFT_EDGE, TOP)),
    ]


def corridor_placements():
    cap = find_tile(CAP).id
    straight = find_tile(STRAIGHT).id
    return [
        _flat(cap, (0, 0), (RIGHT_EDGE,)),
        _flat(straight, (1, 0), (LEFT_EDGE, RIGHT_EDGE)),
        _flat(straight, (2, 0), (LEFT_EDGE, RIGHT_EDGE)),
        _flat(cap, (3, 0), (LEFT_EDGE,)),
    ]


@pytest.fixture
def loop_2x2():
    return loop_placements()


@pytest.fixture
def corridor_puzzle():
    cap = find_tile(CAP).id
    straight = find_tile(STRAIGHT).id
    return PuzzleSpec(
        bounds=Bounds((0, 0, 0), (3, 0, 0)),
        inventory={cap: 2, straight: 2},
        orientations=(FLAT,),
    )


@pytest.fixture
def loop_puzzle():
    corner = find_tile(CORNER).id
    return PuzzleSpec(
        bounds=Bounds((0, 0, 0), (1, 0, 1)),
        inventory={corner: 4},
        orientations=(FLAT,),
    )
