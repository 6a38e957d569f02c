# tiles.py: canonical tile shapes
from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

LEFT = "left"
MIDDLE = "middle"
RIGHT = "right"
POSITIONS: Tuple[str, ...] = (LEFT, MIDDLE, RIGHT)

TOP, RIGHT_EDGE, BOTTOM, LEFT_EDGE = "top", "right", "bottom", "left"
EDGES: Tuple[str, ...] = (TOP, RIGHT_EDGE, BOTTOM, LEFT_EDGE)

Edges = Tuple[Optional[str], Optional[str], Optional[str], Optional[str]]

_LETTER = {None: "x", LEFT: "l", MIDDLE: "m", RIGHT: "r"}
_EDGE_ABBR = {TOP: "T", RIGHT_EDGE: "R", BOTTOM: "B", LEFT_EDGE: "L"}


def mirror_position(pos: Optional[str]) -> Optional[str]:
    """Left and right swap across the shared edge of two adjacent tiles; middle stays."""
    if pos == LEFT:
        return RIGHT
    if pos == RIGHT:
        return LEFT
    return pos


def rotate_edges(edges: Edges, steps: int = 1) -> Edges:
    # One counter-clockwise quarter turn: the right edge becomes the top edge.
    t, r, b, l = edges
    for _ in range(steps % 4):
        t, r, b, l = r, b, l, t
    return (t, r, b, l)


def mirror_edges(edges: Edges) -> Edges:
    # Negating the local vertical axis swaps top/bottom and flips every position label.
    t, r, b, l = edges
    return (mirror_position(b), mirror_position(r), mirror_position(t), mirror_position(l))


def transform_edges(edges: Edges, rotation: int, mirrored: bool) -> Edges:
    """Mirror first (if requested), then rotate counter-clockwise by ``rotation`` degrees."""
    out = mirror_edges(edges) if mirrored else tuple(edges)
    return rotate_edges(out, (int(rotation) // 90) % 4)  # type: ignore[arg-type]


def serialize_edges(edges: Sequence[Optional[str]]) -> str:
    return "-".join(_LETTER[e] for e in edges)


def canonical_edges(edges: Sequence[Optional[str]]) -> Edges:
    base: Edges = tuple(edges)  # type: ignore[assignment]
    candidates = []
    for mirrored in (False, True):
        for rotation in (0, 90, 180, 270):
            candidates.append(transform_edges(base, rotation, mirrored))
    return min(candidates, key=serialize_edges)


def canonical_key(edges: Sequence[Optional[str]]) -> str:
    return serialize_edges(canonical_edges(edges))


@dataclass(frozen=True)
class TileShape:
    id: str
    edges: Edges
    name: str

    @property
    def connector_count(self) -> int:
        return sum(1 for e in self.edges if e is not None)

    @property
    def key(self) -> str:
        return serialize_edges(self.edges)


def _shape_name(edges: Edges) -> str:
    parts = [f"{_EDGE_ABBR[edge]}-{_LETTER[pos]}" for edge, pos in zip(EDGES, edges) if pos is not None]
    count = len(parts)
    label = "cap" if count == 1 else f"{count}way"
    return f"{label}: {' '.join(parts)}"


def _build_catalog() -> Tuple[TileShape, ...]:
    seen: Dict[str, TileShape] = {}
    options = (None,) + POSITIONS
    for combo in itertools.product(options, repeat=4):
        if all(c is None for c in combo):
            continue
        key = canonical_key(combo)
        if key in seen:
            continue
        edges = canonical_edges(combo)
        seen[key] = TileShape(id=f"tile_{len(seen)}", edges=edges, name=_shape_name(edges))
    return tuple(seen.values())


_CATALOG: Optional[Tuple[TileShape, ...]] = None
_BY_ID: Dict[str, TileShape] = {}
_BY_KEY: Dict[str, TileShape] = {}
_CATALOG_LOCK = threading.Lock()


def enumerate_tile_catalog() -> Tuple[TileShape, ...]:
    """Every distinct tile shape up to rotation and mirroring, with stable ids."""
    global _CATALOG
    if _CATALOG is None:
        with _CATALOG_LOCK:
            if _CATALOG is None:
                catalog = _build_catalog()
                _BY_ID.update({t.id: t for t in catalog})
                _BY_KEY.update({t.key: t for t in catalog})
                _CATALOG = catalog
    return _CATALOG


def get_tile(tile_id: str) -> TileShape:
    enumerate_tile_catalog()
    return _BY_ID[tile_id]


def has_tile(tile_id: str) -> bool:
    enumerate_tile_catalog()
    return tile_id in _BY_ID


def find_tile(edges: Sequence[Optional[str]]) -> TileShape:
    """Catalog entry for any edge configuration (any rotation or mirror of it)."""
    enumerate_tile_catalog()
    return _BY_KEY[canonical_key(edges)]


def connector_count(tile_id: str) -> int:
    return get_tile(tile_id).connector_count


__all__ = [
    "LEFT", "MIDDLE", "RIGHT", "POSITIONS", "EDGES",
    "TOP", "RIGHT_EDGE", "BOTTOM", "LEFT_EDGE",
    "TileShape", "enumerate_tile_catalog", "get_tile", "has_tile", "find_tile",
    "canonical_key", "canonical_edges", "transform_edges", "rotate_edges",
    "mirror_edges", "mirror_position", "serialize_edges", "connector_count",
]
