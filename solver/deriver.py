# solver/deriver.py
"""Turn a closed network into a puzzle.

*arrange*: the player gets every tile (minus an optional hint that is placed
for them) and must rebuild a closed network inside the bounds.
*complete*: part of the network stays fixed and the removed tiles form the
inventory.
"""
from __future__ import annotations

import math
import random
import time
from collections import Counter
from typing import Dict, List, Optional, Tuple

from config import CFG
from models import (
    ARRANGE, COMPLETE, EDGE_X, EDGE_Z, FLAT, ORIENTATIONS, Bounds, Placement, PuzzleMetadata, PuzzleSpec,
)
from puzzle_parser import validate_puzzle

REMOVAL_RATIOS: Dict[str, float] = {
    "easy": 0.2,
    "medium": 0.4,
    "hard": 0.6,
    "expert": 0.8,
}


def is_3d(solution: List[Placement]) -> bool:
    return any(p.orientation != FLAT or p.cell[1] > 0 for p in solution)


def compute_bounds(solution: List[Placement], grid: Optional[Tuple[int, int, int]] = None) -> Bounds:
    """Tight box around the network, one cell of slack in x and z (and upwards for 3D)."""
    W, H, D = grid or (CFG.GRID_W, CFG.GRID_H, CFG.GRID_D)
    xs = [p.cell[0] for p in solution]
    ys = [p.cell[1] for p in solution]
    zs = [p.cell[2] for p in solution]
    # edge-mounted tiles need the neighboring column/row inside the box
    max_x = max(p.cell[0] + (1 if p.orientation == EDGE_X else 0) for p in solution)
    max_z = max(p.cell[2] + (1 if p.orientation == EDGE_Z else 0) for p in solution)
    y_top = max(ys) + 1 if is_3d(solution) else max(ys)
    lo = (max(0, min(xs) - 1), max(0, min(ys)), max(0, min(zs) - 1))
    hi = (min(W - 1, max_x + 1), min(H - 1, y_top), min(D - 1, max_z + 1))
    hi = tuple(max(h, l) for h, l in zip(hi, (max_x, max(ys), max_z)))
    return Bounds(lo, hi)  # type: ignore[arg-type]


def pick_hint(solution: List[Placement]) -> Placement:
    """The placement closest to the centroid of the network."""
    n = len(solution)
    cx = sum(p.cell[0] for p in solution) / n
    cy = sum(p.cell[1] for p in solution) / n
    cz = sum(p.cell[2] for p in solution) / n
    return min(
        solution,
        key=lambda p: ((p.cell[0] - cx) ** 2 + (p.cell[1] - cy) ** 2 + (p.cell[2] - cz) ** 2, p.sort_key()),
    )


def removal_score(p: Placement, solution: List[Placement], counts: Counter, rng: random.Random) -> float:
    neighbors = sum(
        1 for q in solution
        if q is not p and sum(abs(a - b) for a, b in zip(p.cell, q.cell)) == 1
    )
    score = 0.0
    if neighbors >= 2:
        score += 2.0
    if p.cell[1] > 0:
        score += 1.0
    if counts[p.tile_id] > 1:
        score += 1.0
    return score + rng.random() * 0.5


def size_category(n: int) -> str:
    if n <= 5:
        return "small"
    if n <= 10:
        return "medium"
    return "large"


def derive_puzzle(
    solution: List[Placement],
    mode: str = ARRANGE,
    difficulty: str = "medium",
    *,
    rng: Optional[random.Random] = None,
    include_hint: bool = True,
    grid: Optional[Tuple[int, int, int]] = None,
    puzzle_id: Optional[str] = None,
) -> PuzzleSpec:
    if not solution:
        raise ValueError("Cannot derive a puzzle from an empty solution")
    if mode not in (ARRANGE, COMPLETE):
        raise ValueError(f"Unknown puzzle mode: {mode!r}")
    rng = rng or random.Random()
    solution = sorted(solution, key=lambda p: p.sort_key())

    bounds = compute_bounds(solution, grid)
    orientations = ORIENTATIONS if is_3d(solution) else (FLAT,)
    counts = Counter(p.tile_id for p in solution)

    fixed: List[Placement] = []
    hint: Optional[Placement] = None
    if mode == ARRANGE:
        inventory = Counter(counts)
        if include_hint and len(solution) > 1:
            hint = pick_hint(solution)
            fixed = [hint]
            inventory[hint.tile_id] -= 1
    else:
        ratio = REMOVAL_RATIOS.get(difficulty, REMOVAL_RATIOS["medium"])
        remove_count = min(len(solution), max(1, math.floor(len(solution) * ratio)))
        scored = sorted(
            ((removal_score(p, solution, counts, rng), i) for i, p in enumerate(solution)),
            reverse=True,
        )
        removed = {i for _, i in scored[:remove_count]}
        inventory = Counter(solution[i].tile_id for i in removed)
        fixed = [p for i, p in enumerate(solution) if i not in removed]

    if puzzle_id is None:
        puzzle_id = f"puzzle_{int(time.time())}_{rng.getrandbits(32):08x}"
    metadata = PuzzleMetadata(
        id=puzzle_id,
        difficulty=difficulty,
        category="3d" if is_3d(solution) else "flat",
        size=size_category(len(solution)),
    )
    return PuzzleSpec(
        bounds=bounds,
        inventory={t: n for t, n in sorted(inventory.items()) if n > 0},
        fixed=fixed,
        mode=mode,
        hint=hint,
        orientations=orientations,
        metadata=metadata,
    )


def is_valid_puzzle(puzzle: PuzzleSpec) -> bool:
    ok, _ = validate_puzzle(puzzle)
    if not ok:
        return False
    if puzzle.total_tiles() <= 0:
        return False
    if puzzle.mode == ARRANGE and len(puzzle.fixed) > 1:
        return False
    return True
