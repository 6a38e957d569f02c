# solver/random_walk.py
from __future__ import annotations

import random
from typing import Dict, List, Optional, Tuple

from config import CFG
from models import EDGE_X, EDGE_Z, FLAT, ORIENTATIONS, GenerationConfig, Placement, Point, Slot
from solver.compat import get_index
from solver.constructive import generation_pool
from solver.variants import Variant, get_variant, quantize_point, variants_for
from tiles import connector_count

Candidate = Tuple[Slot, Variant, int, int, Tuple[Point, ...]]   # slot, variant, closes, opens, points


class _Walk:
    """Growing network: occupied slots plus how many connectors sit on each point."""

    def __init__(self, grid: Tuple[int, int, int], orientations, pool: List[str]):
        self.W, self.H, self.D = grid
        self.orientations = tuple(orientations)
        self.occupied: Dict[Slot, Variant] = {}
        self.points: Dict[Point, int] = {}
        self.placements: List[Placement] = []

        index = get_index()
        pool_set = set(pool)
        # per orientation: connector offset -> pool variant keys with a connector there
        self.by_offset: Dict[str, List[Tuple[Point, List[str]]]] = {}
        for o in self.orientations:
            entries = []
            for off in index.connector_offsets(o):
                keys = sorted(k for k in index.with_connector_at(o, off) if k.split(":", 1)[0] in pool_set)
                if keys:
                    entries.append((off, keys))
            self.by_offset[o] = entries

    def in_grid(self, slot: Slot) -> bool:
        if not (0 <= slot.x < self.W and 0 <= slot.y < self.H and 0 <= slot.z < self.D):
            return False
        if slot.orientation == EDGE_X and slot.x >= self.W - 1:
            return False
        if slot.orientation == EDGE_Z and slot.z >= self.D - 1:
            return False
        return True

    def supported(self, slot: Slot) -> bool:
        if slot.y == 0:
            return True
        below = slot.y - 1
        if slot.orientation == FLAT:
            props = (
                Slot(slot.x - 1, below, slot.z, EDGE_X),
                Slot(slot.x, below, slot.z, EDGE_X),
                Slot(slot.x, below, slot.z - 1, EDGE_Z),
                Slot(slot.x, below, slot.z, EDGE_Z),
            )
            return any(p in self.occupied for p in props)
        return Slot(slot.x, below, slot.z, FLAT) in self.occupied

    def world_points(self, slot: Slot, variant: Variant) -> Tuple[Point, ...]:
        return tuple(
            quantize_point((slot.x + c.offset[0], slot.y + c.offset[1], slot.z + c.offset[2]))
            for c in variant.connectors
        )

    def evaluate(self, slot: Slot, variant: Variant) -> Optional[Candidate]:
        if slot in self.occupied or not self.in_grid(slot) or not self.supported(slot):
            return None
        pts = self.world_points(slot, variant)
        closes = opens = 0
        for p in pts:
            n = self.points.get(p, 0)
            if n >= 2:
                return None
            if n == 1:
                closes += 1
            else:
                opens += 1
        return (slot, variant, closes, opens, pts)

    def place(self, slot: Slot, variant: Variant, pts: Tuple[Point, ...]) -> None:
        self.occupied[slot] = variant
        for p in pts:
            self.points[p] = self.points.get(p, 0) + 1
        self.placements.append(Placement(slot.cell, slot.orientation, variant.tile_id, variant.rotation, variant.mirrored))

    def open_points(self) -> List[Point]:
        return sorted(p for p, n in self.points.items() if n == 1)

    def candidates_at(self, point: Point) -> List[Candidate]:
        out: List[Candidate] = []
        for o in self.orientations:
            for off, keys in self.by_offset[o]:
                raw = [point[i] - off[i] for i in range(3)]
                cell = [int(round(c)) for c in raw]
                if any(abs(c - r) > 1e-6 for c, r in zip(raw, cell)):
                    continue
                slot = Slot(cell[0], cell[1], cell[2], o)
                for key in keys:
                    cand = self.evaluate(slot, get_variant(key))
                    if cand is not None:
                        out.append(cand)
        return out

    def frontier(self) -> List[Candidate]:
        seen = {}
        for p in self.open_points():
            for cand in self.candidates_at(p):
                seen.setdefault((cand[0], cand[1].key), cand)
        return [seen[k] for k in sorted(seen, key=lambda k: (k[0], k[1]))]


def _score(closes: int, opens: int) -> float:
    score = CFG.GEN_CLOSE_WEIGHT * closes - CFG.GEN_OPEN_WEIGHT * opens
    if closes >= 2:
        score += CFG.GEN_LOOP_BONUS
    return max(CFG.GEN_MIN_WEIGHT, score)


def build_random_walk(
    size_range: Tuple[int, int],
    allow_3d: bool,
    rng: random.Random,
    *,
    config: Optional[GenerationConfig] = None,
    grid: Optional[Tuple[int, int, int]] = None,
) -> Optional[List[Placement]]:
    """
    Grow a network from a seed tile by repeatedly attaching a tile at an open
    connector, then close the remaining ends greedily.

    Returns placements with no open connector, or None when the walk got stuck.
    """
    config = config or GenerationConfig()
    lo, hi = size_range
    W, H, D = grid or (CFG.GRID_W, CFG.GRID_H, CFG.GRID_D)
    if config.max_height is not None:
        H = max(1, min(H, int(config.max_height)))
    if not allow_3d:
        H = 1
    orientations = ORIENTATIONS if allow_3d else (FLAT,)
    pool = generation_pool(config)
    if not pool:
        return None

    walk = _Walk((W, H, D), orientations, pool)

    # seed: a flat tile near the middle of the ground layer, two-way shapes preferred
    weights = [3.0 if connector_count(t) == 2 else 1.0 for t in pool]
    seed_tile = rng.choices(pool, weights=weights)[0]
    seed_variant = rng.choice(list(variants_for(seed_tile, FLAT)))
    seed_slot = Slot(rng.randint(W // 4, max(W // 4, (3 * W) // 4 - 1)), 0,
                     rng.randint(D // 4, max(D // 4, (3 * D) // 4 - 1)), FLAT)
    first = walk.evaluate(seed_slot, seed_variant)
    if first is None:
        return None
    walk.place(seed_slot, seed_variant, first[4])

    target = max(1, rng.randint(lo, hi) - 1)
    while len(walk.placements) < target:
        open_now = len(walk.open_points())
        if open_now == 0:
            break
        options = walk.frontier()
        if len(walk.placements) + 1 < lo:
            # do not close the network before it is big enough
            options = [c for c in options if open_now - c[2] + c[3] > 0]
        if not options:
            break
        pick = rng.choices(options, weights=[_score(c[2], c[3]) for c in options])[0]
        walk.place(pick[0], pick[1], pick[4])

    budget = min(CFG.GEN_MAX_EXTRA_TILES, hi - len(walk.placements))
    extra = 0
    while walk.open_points() and extra < budget:
        options = walk.frontier()
        if not options:
            break
        rng.shuffle(options)
        best = max(options, key=lambda c: (c[2] - c[3], -c[3]))
        walk.place(best[0], best[1], best[4])
        extra += 1

    if walk.open_points():
        return None
    if not (lo <= len(walk.placements) <= hi):
        return None
    return list(walk.placements)
