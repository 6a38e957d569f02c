# puzzle_parser.py: puzzle validation and forgiving payload coercion
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

from models import (
    ARRANGE, EDGE_X, EDGE_Z, FLAT, ORIENTATIONS, PUZZLE_MODES, ROTATIONS,
    Bounds, Cell, Placement, PuzzleMetadata, PuzzleSpec,
)
from tiles import has_tile


class PuzzleSpecError(ValueError):
    """A puzzle that cannot be searched (bad bounds, counts, tile ids or fixed tiles)."""


_ORIENTATION_ALIASES = {
    "flat": FLAT,
    "horizontal": FLAT,
    "edge_x": EDGE_X,
    "edge-x": EDGE_X,
    "edgealongx": EDGE_X,
    "vertical-x": EDGE_X,
    "vertical_x": EDGE_X,
    "edge_z": EDGE_Z,
    "edge-z": EDGE_Z,
    "edgealongz": EDGE_Z,
    "vertical-z": EDGE_Z,
    "vertical_z": EDGE_Z,
}


# ---------- validation ----------

def _check_placement(p: Placement, bounds: Bounds) -> Optional[str]:
    if p.orientation not in ORIENTATIONS:
        return f"Bad placement: unknown orientation {p.orientation!r}"
    if p.rotation not in ROTATIONS:
        return f"Bad placement: rotation must be one of {ROTATIONS}, got {p.rotation!r}"
    if not has_tile(p.tile_id):
        return f"Bad placement: unknown tile id {p.tile_id!r}"
    if not bounds.contains(p.cell):
        return f"Bad placement: {p.cell} is outside the puzzle bounds"
    return None


def validate_puzzle(puzzle: PuzzleSpec) -> Tuple[bool, Optional[str]]:
    """Return (ok, reason). ``reason`` is None when the puzzle can be searched."""
    bounds = puzzle.bounds
    if len(bounds.min) != 3 or len(bounds.max) != 3:
        return False, "Bad bounds: expected 3D min/max cells"
    if not bounds.is_valid():
        return False, f"Bad bounds: min {bounds.min} exceeds max {bounds.max}"
    if puzzle.mode not in PUZZLE_MODES:
        return False, f"Bad mode: {puzzle.mode!r}"
    for o in puzzle.orientations:
        if o not in ORIENTATIONS:
            return False, f"Bad orientation: {o!r}"

    for tile_id, count in puzzle.inventory.items():
        if not has_tile(tile_id):
            return False, f"Bad inventory: unknown tile id {tile_id!r}"
        if isinstance(count, bool) or not isinstance(count, int):
            return False, f"Bad inventory: count for {tile_id} is not an integer"
        if count < 0:
            return False, f"Bad inventory: negative count for {tile_id}"

    seen = set()
    for p in puzzle.fixed:
        reason = _check_placement(p, bounds)
        if reason:
            return False, reason
        if p.slot in seen:
            return False, f"Bad placement: two fixed tiles share slot {p.slot}"
        seen.add(p.slot)
    if puzzle.hint is not None:
        reason = _check_placement(puzzle.hint, bounds)
        if reason:
            return False, reason
    return True, None


def require_valid(puzzle: PuzzleSpec) -> None:
    ok, reason = validate_puzzle(puzzle)
    if not ok:
        raise PuzzleSpecError(reason)


# ---------- coercion helpers ----------

def _to_int(x: Any) -> Optional[int]:
    if isinstance(x, bool):
        return None
    try:
        f = float(x)
    except Exception:
        return None
    if not math.isfinite(f) or f != int(f):
        return None
    return int(f)


def _first(d: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return default


def _coerce_cell(raw: Any) -> Optional[Cell]:
    if isinstance(raw, dict):
        raw = (raw.get("x"), raw.get("y"), raw.get("z"))
    if not isinstance(raw, (list, tuple)) or len(raw) != 3:
        return None
    out = [_to_int(v) for v in raw]
    if any(v is None for v in out):
        return None
    return tuple(out)  # type: ignore[return-value]


def coerce_orientation(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    return _ORIENTATION_ALIASES.get(str(raw).strip().lower().replace(" ", ""))


def placement_from_dict(raw: Dict[str, Any]) -> Tuple[Optional[Placement], Optional[str]]:
    """
    Accepts {"cell"|"position": [x, y, z] | {"x", "y", "z"}, "orientation",
    "tile_id"|"tileId", "rotation", "mirrored"|"flipped"}.
    """
    if not isinstance(raw, dict):
        return None, "Bad placement: expected an object"
    cell = _coerce_cell(_first(raw, "cell", "position", "pos"))
    if cell is None:
        return None, "Bad placement: cell must be three integers"
    orientation = coerce_orientation(_first(raw, "orientation", default=FLAT))
    if orientation is None:
        return None, f"Bad placement: unknown orientation {raw.get('orientation')!r}"
    tile_id = _first(raw, "tile_id", "tileId", "tile")
    if not tile_id:
        return None, "Bad placement: missing tile id"
    rotation = _to_int(_first(raw, "rotation", default=0))
    if rotation is None:
        return None, "Bad placement: rotation must be an integer"
    mirrored = bool(_first(raw, "mirrored", "flipped", default=False))
    return Placement(cell, orientation, str(tile_id), rotation % 360, mirrored), None


def placement_to_dict(p: Placement) -> Dict[str, Any]:
    return {
        "cell": list(p.cell),
        "orientation": p.orientation,
        "tile_id": p.tile_id,
        "rotation": p.rotation,
        "mirrored": p.mirrored,
    }


def _coerce_inventory(raw: Any) -> Tuple[Optional[Dict[str, int]], Optional[str]]:
    """
    Convert a variety of inbound shapes into {tile_id: count}.
    Accepts:
      - {tile_id: count}
      - [{"tile_id"|"tileId": ..., "count": n}, ...]
      - [(tile_id, count), ...]
    Repeated ids accumulate.
    """
    items: List[Tuple[Any, Any]] = []
    if isinstance(raw, dict):
        items = list(raw.items())
    elif isinstance(raw, (list, tuple)):
        for entry in raw:
            if isinstance(entry, dict):
                items.append((_first(entry, "tile_id", "tileId", "id"), _first(entry, "count", "qty", default=1)))
            elif isinstance(entry, (list, tuple)) and len(entry) == 2:
                items.append((entry[0], entry[1]))
            else:
                return None, f"Bad inventory entry: {entry!r}"
    elif raw is None:
        return {}, None
    else:
        return None, "Bad inventory: expected a mapping or a list"

    out: Dict[str, int] = {}
    for tile_id, count in items:
        if not tile_id:
            return None, "Bad inventory: missing tile id"
        n = _to_int(count)
        if n is None:
            return None, f"Bad inventory: count for {tile_id} is not an integer"
        if n < 0:
            return None, f"Bad inventory: negative count for {tile_id}"
        out[str(tile_id)] = out.get(str(tile_id), 0) + n
    return out, None


def parse_puzzle(payload: Any) -> Tuple[Optional[PuzzleSpec], Optional[str]]:
    """
    Return (puzzle, error_message_or_None) for a plain dict payload.
    The resulting puzzle has passed :func:`validate_puzzle`.
    """
    if not isinstance(payload, dict):
        return None, "Bad puzzle: expected an object"

    raw_bounds = payload.get("bounds") or {}
    if not isinstance(raw_bounds, dict):
        return None, "Bad bounds: expected {min, max}"
    lo = _coerce_cell(raw_bounds.get("min"))
    hi = _coerce_cell(raw_bounds.get("max"))
    if lo is None or hi is None:
        return None, "Bad bounds: min and max must be three integers"

    inventory, err = _coerce_inventory(_first(payload, "inventory", "tiles"))
    if err:
        return None, err

    fixed: List[Placement] = []
    for raw in _first(payload, "fixed", "fixed_placements", "fixedPlacements", default=[]) or []:
        p, err = placement_from_dict(raw)
        if err:
            return None, err
        fixed.append(p)

    hint = None
    if payload.get("hint") is not None:
        hint, err = placement_from_dict(payload["hint"])
        if err:
            return None, err

    orientations = tuple(ORIENTATIONS)
    if payload.get("orientations") is not None:
        coerced = [coerce_orientation(o) for o in payload["orientations"]]
        if any(o is None for o in coerced):
            return None, f"Bad orientation list: {payload['orientations']!r}"
        orientations = tuple(dict.fromkeys(coerced))  # type: ignore[arg-type]

    metadata = None
    raw_meta = payload.get("metadata")
    if isinstance(raw_meta, dict) and raw_meta.get("id"):
        metadata = PuzzleMetadata(
            id=str(raw_meta["id"]),
            difficulty=str(raw_meta.get("difficulty", "medium")),
            category=str(raw_meta.get("category", "flat")),
            size=str(raw_meta.get("size", "small")),
        )

    puzzle = PuzzleSpec(
        bounds=Bounds(lo, hi),
        inventory=inventory or {},
        fixed=fixed,
        mode=str(payload.get("mode", ARRANGE)).lower(),
        hint=hint,
        orientations=orientations,
        metadata=metadata,
    )
    ok, reason = validate_puzzle(puzzle)
    if not ok:
        return None, reason
    return puzzle, None


def puzzle_to_dict(puzzle: PuzzleSpec) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "bounds": {"min": list(puzzle.bounds.min), "max": list(puzzle.bounds.max)},
        "inventory": dict(puzzle.inventory),
        "fixed": [placement_to_dict(p) for p in puzzle.fixed],
        "mode": puzzle.mode,
        "orientations": list(puzzle.orientations),
    }
    if puzzle.hint is not None:
        out["hint"] = placement_to_dict(puzzle.hint)
    if puzzle.metadata is not None:
        m = puzzle.metadata
        out["metadata"] = {"id": m.id, "difficulty": m.difficulty, "category": m.category, "size": m.size}
    return out
