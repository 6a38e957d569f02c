# solver/constructive.py
"""Structured network construction on the ground layer.

Every builder walks a fixed path of flat cells (an open line or snake capped at
both ends, or a closed rectangular loop) and, cell by cell, looks for a tile
orientation whose edge profile has connectors on exactly the incoming and
outgoing edges.  The incoming position must mirror the previous tile's outgoing
position so the two connectors meet.
"""
import random
from typing import Dict, List, Optional, Sequence, Tuple

from config import CFG
from models import FLAT, NEG_X, NEG_Z, POS_X, POS_Z, ROTATIONS, GenerationConfig, Placement
from tiles import (
    BOTTOM, LEFT, LEFT_EDGE, MIDDLE, RIGHT, RIGHT_EDGE, TOP,
    enumerate_tile_catalog, mirror_position,
)
from solver.variants import connectors_for

Cell2 = Tuple[int, int]   # (x, z) on the ground layer

_WORLD_EDGE = {NEG_Z: TOP, POS_X: RIGHT_EDGE, POS_Z: BOTTOM, NEG_X: LEFT_EDGE}
_STEP_EDGE = {(1, 0): RIGHT_EDGE, (-1, 0): LEFT_EDGE, (0, 1): BOTTOM, (0, -1): TOP}


# ---------- helpers ----------

def generation_pool(config: Optional[GenerationConfig] = None) -> List[str]:
    """Tile ids a generator may use under ``config``."""
    config = config or GenerationConfig()
    allowed_counts = {2}
    if config.allow_end_caps:
        allowed_counts.add(1)
    if config.allow_3way:
        allowed_counts.add(3)
    if config.allow_4way:
        allowed_counts.add(4)
    wanted = set(config.tile_pool) if config.tile_pool else None
    return [
        t.id for t in enumerate_tile_catalog()
        if t.connector_count in allowed_counts and (wanted is None or t.id in wanted)
    ]


def _position_label(edge: str, offset) -> str:
    x, _, z = offset
    if edge == TOP:
        off = x - 0.5
    elif edge == RIGHT_EDGE:
        off = z - 0.5
    elif edge == BOTTOM:
        off = 0.5 - x
    else:
        off = 0.5 - z
    if off < -1e-6:
        return LEFT
    if off > 1e-6:
        return RIGHT
    return MIDDLE


def flat_profile(tile_id: str, rotation: int, mirrored: bool) -> Dict[str, str]:
    """World edge -> connector position of a flat tile, read off its connector geometry."""
    out: Dict[str, str] = {}
    for c in connectors_for(tile_id, rotation, mirrored, FLAT):
        edge = _WORLD_EDGE[c.facing]
        out[edge] = _position_label(edge, c.offset)
    return out


def find_tile(
    rng: random.Random,
    pool: Sequence[str],
    required: Dict[str, Optional[str]],
) -> Optional[Tuple[str, int, bool, Dict[str, str]]]:
    """
    First (tile, rotation, mirrored) in shuffled order whose flat profile has
    connectors on exactly the edges in ``required``.  A value of None accepts any
    position on that edge.
    """
    tiles = list(pool)
    rng.shuffle(tiles)
    combos = [(r, m) for r in ROTATIONS for m in (False, True)]
    for tile_id in tiles:
        rng.shuffle(combos)
        for rotation, mirrored in combos:
            profile = flat_profile(tile_id, rotation, mirrored)
            if set(profile) != set(required):
                continue
            if all(pos is None or profile[edge] == pos for edge, pos in required.items()):
                return tile_id, rotation, mirrored, profile
    return None


def _edge_towards(a: Cell2, b: Cell2) -> str:
    return _STEP_EDGE[(b[0] - a[0], b[1] - a[1])]


def _opposite_edge(edge: str) -> str:
    return {TOP: BOTTOM, BOTTOM: TOP, LEFT_EDGE: RIGHT_EDGE, RIGHT_EDGE: LEFT_EDGE}[edge]


def build_path(cells: Sequence[Cell2], closed: bool, rng: random.Random, pool: Sequence[str]) -> Optional[List[Placement]]:
    """Tiles along ``cells``; open paths end in caps, closed paths join last to first."""
    n = len(cells)
    if n < 2 or (closed and n < 4):
        return None
    placements: List[Placement] = []
    prev_out: Optional[str] = None
    first_in: Optional[str] = None

    for i, cell in enumerate(cells):
        required: Dict[str, Optional[str]] = {}
        if i > 0 or closed:
            in_edge = _edge_towards(cell, cells[i - 1])
            required[in_edge] = mirror_position(prev_out) if i > 0 else None
        if i < n - 1 or closed:
            out_edge = _edge_towards(cell, cells[(i + 1) % n])
            required[out_edge] = None
            if closed and i == n - 1:
                required[out_edge] = mirror_position(first_in)
        found = find_tile(rng, pool, required)
        if found is None:
            return None
        tile_id, rotation, mirrored, profile = found
        if i == 0 and closed:
            first_in = profile[_edge_towards(cell, cells[-1])]
        if i < n - 1 or closed:
            prev_out = profile[_edge_towards(cell, cells[(i + 1) % n])]
        placements.append(Placement((cell[0], 0, cell[1]), FLAT, tile_id, rotation, mirrored))

    if closed:
        # first tile's incoming connector must mirror the last tile's outgoing one
        last_out = prev_out
        if first_in != mirror_position(last_out):
            return None
    return placements


# ---------- path shapes ----------

def line_cells(start: Cell2, length: int, vertical: bool = False) -> List[Cell2]:
    x, z = start
    if vertical:
        return [(x, z + i) for i in range(length)]
    return [(x + i, z) for i in range(length)]


def rectangle_cells(start: Cell2, w: int, h: int) -> List[Cell2]:
    """Clockwise perimeter starting at the top-left corner."""
    x0, z0 = start
    cells = [(x0 + i, z0) for i in range(w)]
    cells += [(x0 + w - 1, z0 + j) for j in range(1, h)]
    cells += [(x0 + i, z0 + h - 1) for i in range(w - 2, -1, -1)]
    cells += [(x0, z0 + j) for j in range(h - 2, 0, -1)]
    return cells


def snake_cells(start: Cell2, row_len: int, rows: int) -> List[Cell2]:
    x0, z0 = start
    cells: List[Cell2] = []
    for r in range(rows):
        xs = range(row_len) if r % 2 == 0 else range(row_len - 1, -1, -1)
        cells += [(x0 + i, z0 + r) for i in xs]
    return cells


def structured_options(size_min: int, size_max: int, grid: Tuple[int, int], allow_caps: bool) -> List[Tuple]:
    W, D = grid
    options: List[Tuple] = []
    for n in range(max(2, size_min), size_max + 1):
        if allow_caps:
            if n <= W:
                options.append(("line", n, False))
            if n <= D:
                options.append(("line", n, True))
    for w in range(2, W + 1):
        for h in range(2, D + 1):
            if size_min <= 2 * w + 2 * h - 4 <= size_max:
                options.append(("rectangle", w, h))
    if allow_caps:
        for row_len in range(2, W + 1):
            for rows in range(2, D + 1):
                if size_min <= row_len * rows <= size_max:
                    options.append(("snake", row_len, rows))
    return options


def _extent(option: Tuple) -> Tuple[int, int]:
    kind = option[0]
    if kind == "line":
        return (1, option[1]) if option[2] else (option[1], 1)
    return (option[1], option[2])


def build_structured(
    size_range: Tuple[int, int],
    rng: random.Random,
    *,
    config: Optional[GenerationConfig] = None,
    grid: Optional[Tuple[int, int]] = None,
) -> Optional[List[Placement]]:
    """Try the applicable shapes in random order; first one that builds wins."""
    config = config or GenerationConfig()
    W, D = grid or (CFG.GRID_W, CFG.GRID_D)
    pool = generation_pool(config)
    options = structured_options(size_range[0], size_range[1], (W, D), config.allow_end_caps)
    rng.shuffle(options)
    for option in options:
        w, d = _extent(option)
        start = (rng.randint(0, W - w), rng.randint(0, D - d))
        kind = option[0]
        if kind == "line":
            placements = build_path(line_cells(start, option[1], option[2]), False, rng, pool)
        elif kind == "rectangle":
            placements = build_path(rectangle_cells(start, option[1], option[2]), True, rng, pool)
        else:
            placements = build_path(snake_cells(start, option[1], option[2]), False, rng, pool)
        if placements:
            return placements
    return None
