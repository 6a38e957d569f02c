# solver/state.py
from __future__ import annotations

from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from models import (
    EDGE_X, EDGE_Z, FLAT, OPPOSITE, ORIENTATIONS, RELEVANT_DIRECTIONS,
    Placement, Point, PuzzleSpec, Slot,
)
from solver.compat import CompatibilityIndex
from solver.unionfind import UnionFind
from solver.variants import get_variant, quantize_point, variant_key_for, variants_for

# Domain marker for "this slot stays vacant".
EMPTY = "<empty>"


def tile_of(value: str) -> str:
    return value.split(":", 1)[0]


class SlotBoard:
    """Immutable per-puzzle geometry shared by every search state.

    Holds the slots inside the bounds, the tile values each slot may start with,
    which slots can put a connector on each world point, and the neighbor arcs
    used by propagation.
    """

    def __init__(self, puzzle: PuzzleSpec, index: CompatibilityIndex):
        self.puzzle = puzzle
        self.index = index
        bounds = puzzle.bounds
        allowed = set(puzzle.orientations)

        slots: Set[Slot] = set()
        for (x, y, z) in bounds.cells():
            for o in ORIENTATIONS:
                if o not in allowed:
                    continue
                # an edge-mounted tile on the outer face would stand outside the region
                if o == EDGE_X and x >= bounds.max[0]:
                    continue
                if o == EDGE_Z and z >= bounds.max[2]:
                    continue
                slots.add(Slot(x, y, z, o))
        for p in puzzle.fixed:
            slots.add(p.slot)

        self.slots: List[Slot] = sorted(slots)
        self.slot_id: Dict[Slot, int] = {s: i for i, s in enumerate(self.slots)}
        self.ground_y = bounds.min[1]

        self.fixed_values: Dict[int, str] = {}
        for p in puzzle.fixed:
            sid = self.slot_id[p.slot]
            self.fixed_values[sid] = variant_key_for(p.tile_id, p.rotation, p.mirrored, p.orientation)

        stock = sorted(t for t, n in puzzle.inventory.items() if n > 0)
        by_orientation = {
            o: frozenset(v.key for t in stock for v in variants_for(t, o)) for o in ORIENTATIONS
        }
        self.initial_values: List[FrozenSet[str]] = []
        for sid, slot in enumerate(self.slots):
            if sid in self.fixed_values:
                self.initial_values.append(frozenset([self.fixed_values[sid]]))
            else:
                self.initial_values.append(by_orientation[slot.orientation])

        self._conn_cache: Dict[Tuple[int, str], Tuple[Tuple[Point, str], ...]] = {}

        point_slots: Dict[Point, Set[int]] = {}
        for sid, values in enumerate(self.initial_values):
            for v in values:
                for p in self.points(sid, v):
                    point_slots.setdefault(p, set()).add(sid)
        self.point_slots: Dict[Point, Tuple[int, ...]] = {p: tuple(sorted(s)) for p, s in point_slots.items()}

        touching: List[Set[int]] = [set() for _ in self.slots]
        for members in self.point_slots.values():
            for a in members:
                touching[a].update(m for m in members if m != a)
        self.touching: List[FrozenSet[int]] = [frozenset(t) for t in touching]

        self.arcs: List[Tuple[Tuple[str, int], ...]] = []
        self.arc_third: Dict[Tuple[int, str], Tuple[Tuple[int, Tuple[Point, ...]], ...]] = {}
        for sid, slot in enumerate(self.slots):
            arcs = []
            for d in RELEVANT_DIRECTIONS[slot.orientation]:
                nid = self.slot_id.get(slot.neighbor(d))
                if nid is None:
                    continue
                arcs.append((d, nid))
                face = self._face_points(sid, d) | self._face_points(nid, OPPOSITE[d])
                third: Dict[int, Set[Point]] = {}
                for p in face:
                    for t in self.point_slots.get(p, ()):
                        if t not in (sid, nid):
                            third.setdefault(t, set()).add(self.relative(t, p))
                self.arc_third[(sid, d)] = tuple((t, tuple(sorted(rel))) for t, rel in sorted(third.items()))
            self.arcs.append(tuple(arcs))

        self.flat_below: List[Optional[int]] = []
        self.needs_support: List[bool] = []
        for slot in self.slots:
            vertical_above_ground = slot.orientation != FLAT and slot.y > self.ground_y
            self.needs_support.append(vertical_above_ground)
            below = Slot(slot.x, slot.y - 1, slot.z, FLAT) if vertical_above_ground else None
            self.flat_below.append(self.slot_id.get(below) if below is not None else None)

    def connectors(self, sid: int, value: str) -> Tuple[Tuple[Point, str], ...]:
        """World (point, facing) pairs of a tile value placed in slot ``sid``."""
        key = (sid, value)
        cached = self._conn_cache.get(key)
        if cached is None:
            x, y, z = self.slots[sid].cell
            cached = tuple(
                (quantize_point((x + c.offset[0], y + c.offset[1], z + c.offset[2])), c.facing)
                for c in get_variant(value).connectors
            )
            self._conn_cache[key] = cached
        return cached

    def points(self, sid: int, value: str) -> Tuple[Point, ...]:
        if value == EMPTY:
            return ()
        return tuple(p for p, _ in self.connectors(sid, value))

    def relative(self, sid: int, point: Point) -> Point:
        x, y, z = self.slots[sid].cell
        return quantize_point((point[0] - x, point[1] - y, point[2] - z))

    def _face_points(self, sid: int, direction: str) -> Set[Point]:
        return {
            p
            for v in self.initial_values[sid]
            for p, facing in self.connectors(sid, v)
            if facing == direction
        }

    def placement(self, sid: int, value: str) -> Placement:
        variant = get_variant(value)
        slot = self.slots[sid]
        return Placement(slot.cell, slot.orientation, variant.tile_id, variant.rotation, variant.mirrored)


class SolverState:
    """One node of the search: domains, commitments, inventory and connectivity."""

    def __init__(self, board: SlotBoard, inventory: Dict[str, int]):
        self.board = board
        self.domains: List[Set[str]] = []
        for sid, values in enumerate(board.initial_values):
            dom = set(values)
            if sid not in board.fixed_values:
                dom.add(EMPTY)
            self.domains.append(dom)
        self.decided: Dict[int, str] = {}
        self.placements: Dict[int, Placement] = {}
        self.fixed: Set[int] = set()
        self.inventory: Dict[str, int] = {t: int(n) for t, n in inventory.items()}
        self.point_use: Dict[Point, List[int]] = {}
        self.connectivity: UnionFind[int] = UnionFind()

    def clone(self) -> "SolverState":
        out = SolverState.__new__(SolverState)
        out.board = self.board
        out.domains = [set(d) for d in self.domains]
        out.decided = dict(self.decided)
        out.placements = dict(self.placements)
        out.fixed = set(self.fixed)
        out.inventory = dict(self.inventory)
        out.point_use = {p: list(users) for p, users in self.point_use.items()}
        out.connectivity = self.connectivity.clone()
        return out

    def undecided(self) -> List[int]:
        return [sid for sid in range(len(self.domains)) if sid not in self.decided]

    def remaining(self) -> int:
        return sum(max(0, n) for n in self.inventory.values())

    def apply_placement(self, sid: int, value: str, fixed: bool = False) -> bool:
        if sid in self.decided or value == EMPTY or value not in self.domains[sid]:
            return False
        tile_id = tile_of(value)
        if not fixed and self.inventory.get(tile_id, 0) <= 0:
            return False
        points = self.board.points(sid, value)
        if any(len(self.point_use.get(p, ())) >= 2 for p in points):
            return False

        self.domains[sid] = {value}
        self.decided[sid] = value
        self.placements[sid] = self.board.placement(sid, value)
        if fixed:
            self.fixed.add(sid)
        else:
            self.inventory[tile_id] -= 1
            if self.inventory[tile_id] == 0:
                self._drop_tile(tile_id)

        self.connectivity.add(sid)
        for p in points:
            users = self.point_use.setdefault(p, [])
            for other in users:
                self.connectivity.union(sid, other)
            users.append(sid)
        return True

    def leave_empty(self, sid: int) -> bool:
        if sid in self.decided or EMPTY not in self.domains[sid]:
            return False
        self.domains[sid] = {EMPTY}
        self.decided[sid] = EMPTY
        return True

    def assign(self, sid: int, value: str) -> bool:
        if value == EMPTY:
            return self.leave_empty(sid)
        return self.apply_placement(sid, value)

    def _drop_tile(self, tile_id: str) -> None:
        prefix = tile_id + ":"
        for sid, dom in enumerate(self.domains):
            if sid in self.decided:
                continue
            stale = [v for v in dom if v.startswith(prefix)]
            dom.difference_update(stale)

    def all_placements(self) -> List[Placement]:
        return sorted(self.placements.values(), key=lambda p: p.sort_key())

    def is_fully_connected(self) -> bool:
        return self.connectivity.component_count() <= 1
