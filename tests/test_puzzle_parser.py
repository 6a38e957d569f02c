import pytest

from models import EDGE_X, EDGE_Z, FLAT, Bounds, Placement, PuzzleSpec
from puzzle_parser import (
    PuzzleSpecError, _coerce_inventory, _to_int, coerce_orientation, parse_puzzle,
    placement_from_dict, placement_to_dict, puzzle_to_dict, require_valid, validate_puzzle,
)


def _payload(**extra):
    payload = {
        "bounds": {"min": [0, 0, 0], "max": [3, 0, 2]},
        "inventory": {"tile_0": 2, "tile_1": 1},
    }
    payload.update(extra)
    return payload


def test_to_int_accepts_integral_values_only():
    assert _to_int("4") == 4
    assert _to_int(3.0) == 3
    assert _to_int(2.5) is None
    assert _to_int(True) is None
    assert _to_int("nan") is None
    assert _to_int(None) is None


def test_inventory_shapes_accumulate():
    inv, err = _coerce_inventory([{"tileId": "tile_0", "count": 2}, ("tile_0", "1"), {"tile_id": "tile_3"}])
    assert err is None
    assert inv == {"tile_0": 3, "tile_3": 1}


@pytest.mark.parametrize(
    "raw",
    [
        {"tile_0": -1},
        {"tile_0": "many"},
        [("tile_0", 1, 2)],
        "tile_0",
    ],
)
def test_bad_inventory_shapes(raw):
    inv, err = _coerce_inventory(raw)
    assert inv is None
    assert err.startswith("Bad inventory")


def test_orientation_aliases():
    assert coerce_orientation("Flat") == FLAT
    assert coerce_orientation("edge-x") == EDGE_X
    assert coerce_orientation("vertical_z") == EDGE_Z
    assert coerce_orientation("sideways") is None


def test_placement_round_trip_through_dict():
    raw = {"position": {"x": 1, "y": 0, "z": 2}, "orientation": "edge_z", "tileId": "tile_5", "rotation": 450, "flipped": 1}
    p, err = placement_from_dict(raw)
    assert err is None
    assert p == Placement((1, 0, 2), EDGE_Z, "tile_5", 90, True)
    assert placement_from_dict(placement_to_dict(p)) == (p, None)


@pytest.mark.parametrize(
    "raw,fragment",
    [
        ({"cell": [0, 0], "tile_id": "tile_0"}, "cell"),
        ({"cell": [0, 0, 0]}, "tile id"),
        ({"cell": [0, 0, 0], "tile_id": "tile_0", "orientation": "diagonal"}, "orientation"),
        ({"cell": [0, 0, 0], "tile_id": "tile_0", "rotation": "a bit"}, "rotation"),
        ("tile_0", "object"),
    ],
)
def test_bad_placements(raw, fragment):
    p, err = placement_from_dict(raw)
    assert p is None
    assert fragment in err


def test_parse_puzzle_defaults():
    puzzle, err = parse_puzzle(_payload())
    assert err is None
    assert puzzle.bounds == Bounds((0, 0, 0), (3, 0, 2))
    assert puzzle.mode == "arrange"
    assert puzzle.fixed == []
    assert puzzle.total_tiles() == 3


def test_parse_puzzle_with_fixed_hint_and_metadata():
    fixed = {"cell": [1, 0, 1], "tile_id": "tile_2", "rotation": 180}
    puzzle, err = parse_puzzle(_payload(
        mode="COMPLETE",
        fixedPlacements=[fixed],
        hint=fixed,
        orientations=["flat", "horizontal"],
        metadata={"id": "abc", "difficulty": "hard"},
    ))
    assert err is None
    assert puzzle.mode == "complete"
    assert puzzle.fixed == [Placement((1, 0, 1), FLAT, "tile_2", 180)]
    assert puzzle.hint == puzzle.fixed[0]
    assert puzzle.orientations == (FLAT,)
    assert puzzle.metadata.id == "abc"
    assert puzzle.metadata.difficulty == "hard"
    again, err = parse_puzzle(puzzle_to_dict(puzzle))
    assert err is None
    assert again == puzzle


@pytest.mark.parametrize(
    "payload,fragment",
    [
        (_payload(bounds={"min": [0, 0, 0]}), "Bad bounds"),
        (_payload(bounds={"min": [2, 0, 0], "max": [1, 0, 0]}), "Bad bounds"),
        (_payload(inventory={"tile_999": 1}), "unknown tile id"),
        (_payload(mode="race"), "Bad mode"),
        (_payload(fixed=[{"cell": [9, 0, 0], "tile_id": "tile_0"}]), "outside"),
        (_payload(fixed=[{"cell": [0, 0, 0], "tile_id": "tile_0", "rotation": 45}]), "rotation"),
        (_payload(orientations=["flat", "upside"]), "orientation"),
        ([], "object"),
    ],
)
def test_parse_puzzle_errors(payload, fragment):
    puzzle, err = parse_puzzle(payload)
    assert puzzle is None
    assert fragment in err


def test_validate_rejects_non_integer_counts():
    puzzle = PuzzleSpec(bounds=Bounds((0, 0, 0), (1, 0, 0)), inventory={"tile_0": 1.5})
    ok, reason = validate_puzzle(puzzle)
    assert not ok
    assert "integer" in reason
    with pytest.raises(PuzzleSpecError):
        require_valid(puzzle)
    assert issubclass(PuzzleSpecError, ValueError)
