from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

Cell = Tuple[int, int, int]
Point = Tuple[float, float, float]

# ---------- mounting orientations ----------
FLAT = "flat"        # lies in the XZ plane of its cell
EDGE_X = "edge_x"    # stands on the +X face of its cell
EDGE_Z = "edge_z"    # stands on the +Z face of its cell
ORIENTATIONS: Tuple[str, ...] = (FLAT, EDGE_X, EDGE_Z)

ROTATIONS: Tuple[int, ...] = (0, 90, 180, 270)

# ---------- axis directions ----------
POS_X, NEG_X = "+x", "-x"
POS_Y, NEG_Y = "+y", "-y"
POS_Z, NEG_Z = "+z", "-z"
DIRECTIONS: Tuple[str, ...] = (POS_X, NEG_X, POS_Y, NEG_Y, POS_Z, NEG_Z)

DIRECTION_VECTORS: Dict[str, Cell] = {
    POS_X: (1, 0, 0),
    NEG_X: (-1, 0, 0),
    POS_Y: (0, 1, 0),
    NEG_Y: (0, -1, 0),
    POS_Z: (0, 0, 1),
    NEG_Z: (0, 0, -1),
}

OPPOSITE: Dict[str, str] = {
    POS_X: NEG_X, NEG_X: POS_X,
    POS_Y: NEG_Y, NEG_Y: POS_Y,
    POS_Z: NEG_Z, NEG_Z: POS_Z,
}

# Directions in which a tile of a given orientation can meet a same-orientation neighbor.
RELEVANT_DIRECTIONS: Dict[str, Tuple[str, ...]] = {
    FLAT: (POS_X, NEG_X, POS_Z, NEG_Z),
    EDGE_X: (POS_Y, NEG_Y, POS_Z, NEG_Z),
    EDGE_Z: (POS_X, NEG_X, POS_Y, NEG_Y),
}

ARRANGE = "arrange"
COMPLETE = "complete"
PUZZLE_MODES = (ARRANGE, COMPLETE)

DIFFICULTIES = ("easy", "medium", "hard", "expert")


def step(cell: Cell, direction: str) -> Cell:
    dx, dy, dz = DIRECTION_VECTORS[direction]
    return (cell[0] + dx, cell[1] + dy, cell[2] + dz)


@dataclass(frozen=True, order=True)
class Slot:
    x: int
    y: int
    z: int
    orientation: str

    @property
    def cell(self) -> Cell:
        return (self.x, self.y, self.z)

    def neighbor(self, direction: str) -> "Slot":
        x, y, z = step(self.cell, direction)
        return Slot(x, y, z, self.orientation)


@dataclass(frozen=True)
class Placement:
    cell: Cell
    orientation: str
    tile_id: str
    rotation: int = 0
    mirrored: bool = False

    @property
    def slot(self) -> Slot:
        x, y, z = self.cell
        return Slot(x, y, z, self.orientation)

    def sort_key(self):
        return (self.slot, self.tile_id, self.rotation, self.mirrored)


@dataclass(frozen=True)
class Bounds:
    min: Cell
    max: Cell

    def contains(self, cell: Cell) -> bool:
        return all(lo <= c <= hi for c, lo, hi in zip(cell, self.min, self.max))

    def is_valid(self) -> bool:
        return all(lo <= hi for lo, hi in zip(self.min, self.max))

    def cells(self) -> Iterator[Cell]:
        for y in range(self.min[1], self.max[1] + 1):
            for z in range(self.min[2], self.max[2] + 1):
                for x in range(self.min[0], self.max[0] + 1):
                    yield (x, y, z)

    @property
    def size(self) -> Cell:
        return tuple(hi - lo + 1 for lo, hi in zip(self.min, self.max))  # type: ignore[return-value]


@dataclass(frozen=True)
class Connector:
    point: Point
    facing: str
    placement: Placement
    edge: str
    position: str


@dataclass
class PuzzleMetadata:
    id: str
    difficulty: str = "medium"
    category: str = "flat"   # flat | 3d
    size: str = "small"      # small | medium | large


@dataclass
class PuzzleSpec:
    bounds: Bounds
    inventory: Dict[str, int]
    fixed: List[Placement] = field(default_factory=list)
    mode: str = ARRANGE
    hint: Optional[Placement] = None
    orientations: Tuple[str, ...] = ORIENTATIONS
    metadata: Optional[PuzzleMetadata] = None

    def total_tiles(self) -> int:
        return sum(int(n) for n in self.inventory.values())


@dataclass
class SolveOptions:
    mode: str = "first"                  # first | count | all
    max_solutions: Optional[int] = None  # all -> CFG.MAX_SOLUTIONS_ALL, otherwise 1
    timeout_ms: Optional[int] = None     # None -> CFG.SOLVER_TIMEOUT_MS
    trace: bool = False
    engine: Optional[str] = None         # None -> CFG.SOLVER_ENGINE


@dataclass
class SolveTrace:
    nodes_explored: int = 0
    total_backtracks: int = 0
    max_depth: int = 0
    propagation_calls: int = 0


@dataclass
class SolveResult:
    solutions: List[List[Placement]]
    solution_count: int
    timed_out: bool
    trace: Optional[SolveTrace] = None


@dataclass
class ClosureReport:
    valid: bool
    open_connectors: List[Connector]
    connected_pairs: int = 0
    components: int = 0
    duplicate_slots: List[Slot] = field(default_factory=list)


@dataclass
class GenerationConfig:
    size_min: int = 4
    size_max: int = 8
    mode: str = ARRANGE
    difficulty: str = "medium"
    allow_3d: bool = False
    max_height: Optional[int] = None
    tile_pool: Optional[List[str]] = None
    allow_end_caps: bool = True
    allow_3way: bool = False
    allow_4way: bool = False
    include_hint: bool = True
    seed: Optional[int] = None
