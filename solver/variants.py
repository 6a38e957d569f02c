# solver/variants.py
"""Placement variants of every catalog tile.

A variant is one (rotation, mirror, mounting orientation) combination of a tile
together with the 3D offsets of its connectors, measured from the minimum corner
of the cell the tile occupies.  Combinations that put the connectors on the exact
same offsets are merged; the first one in (orientation, mirror, rotation) order is
kept as the representative and every raw combination maps onto it.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, FrozenSet, List, Optional, Tuple

from config import CFG
from models import (
    EDGE_X, EDGE_Z, FLAT, NEG_X, NEG_Y, NEG_Z, ORIENTATIONS, POS_X, POS_Y, POS_Z,
    ROTATIONS, Point,
)
from tiles import (
    BOTTOM, EDGES, LEFT, MIDDLE, RIGHT, RIGHT_EDGE, TOP, TileShape,
    enumerate_tile_catalog, get_tile,
)

# (axis index, positive direction, negative direction) per orientation
_FACING_AXES: Dict[str, Tuple[Tuple[int, str, str], ...]] = {
    FLAT: ((0, POS_X, NEG_X), (2, POS_Z, NEG_Z)),
    EDGE_X: ((1, POS_Y, NEG_Y), (2, POS_Z, NEG_Z)),
    EDGE_Z: ((0, POS_X, NEG_X), (1, POS_Y, NEG_Y)),
}


@dataclass(frozen=True)
class VariantConnector:
    offset: Point
    facing: str
    edge: str       # edge of the untransformed tile
    position: str   # left | middle | right on that edge


@dataclass(frozen=True)
class Variant:
    key: str
    tile_id: str
    rotation: int
    mirrored: bool
    orientation: str
    connectors: Tuple[VariantConnector, ...]

    @property
    def offsets(self) -> FrozenSet[Point]:
        return frozenset(c.offset for c in self.connectors)

    def facing(self, direction: str) -> Tuple[VariantConnector, ...]:
        return tuple(c for c in self.connectors if c.facing == direction)


@dataclass(frozen=True)
class TileRecord:
    tile: TileShape
    variants: Tuple[Variant, ...]
    symmetry_order: int


def quantize(value: float) -> float:
    # +0.0 folds negative zero into zero so equal points hash equally
    return round(float(value), CFG.POINT_DECIMALS) + 0.0


def quantize_point(p) -> Point:
    return (quantize(p[0]), quantize(p[1]), quantize(p[2]))


def variant_key(tile_id: str, rotation: int, mirrored: bool, orientation: str) -> str:
    return f"{tile_id}:{int(rotation)}:{1 if mirrored else 0}:{orientation}"


def _local_point(edge: str, position: str) -> Tuple[float, float]:
    off = {LEFT: -CFG.CORNER_OFFSET, MIDDLE: 0.0, RIGHT: CFG.CORNER_OFFSET}[position]
    if edge == TOP:
        return (off, 0.5)
    if edge == BOTTOM:
        return (-off, -0.5)
    if edge == RIGHT_EDGE:
        return (0.5, -off)
    return (-0.5, off)


def _quarter_turns(x: float, y: float, steps: int) -> Tuple[float, float]:
    # counter-clockwise; exact so no trig noise leaks into the offsets
    for _ in range(steps % 4):
        x, y = -y, x
    return x, y


def _embed(orientation: str, x: float, y: float) -> Point:
    if orientation == FLAT:
        return (0.5 + x, 0.0, 0.5 - y)
    if orientation == EDGE_X:
        return (1.0, 0.5 + y, 0.5 + x)
    if orientation == EDGE_Z:
        return (0.5 - x, 0.5 + y, 1.0)
    raise ValueError(f"Unknown orientation: {orientation!r}")


def facing_of(orientation: str, offset: Point) -> Optional[str]:
    for axis, pos_dir, neg_dir in _FACING_AXES[orientation]:
        d = offset[axis] - 0.5
        if d > CFG.FACE_THRESHOLD:
            return pos_dir
        if d < -CFG.FACE_THRESHOLD:
            return neg_dir
    return None


@lru_cache(maxsize=None)
def connectors_for(tile_id: str, rotation: int, mirrored: bool, orientation: str) -> Tuple[VariantConnector, ...]:
    """Connector offsets of one raw (non-deduplicated) combination."""
    if int(rotation) not in ROTATIONS:
        raise ValueError(f"Rotation must be one of {ROTATIONS}, got {rotation!r}")
    tile = get_tile(tile_id)
    out: List[VariantConnector] = []
    for edge, position in zip(EDGES, tile.edges):
        if position is None:
            continue
        x, y = _local_point(edge, position)
        if mirrored:
            y = -y
        x, y = _quarter_turns(x, y, int(rotation) // 90)
        offset = quantize_point(_embed(orientation, x, y))
        out.append(VariantConnector(offset, facing_of(orientation, offset), edge, position))
    return tuple(out)


def compute_variants(tile: TileShape) -> List[Variant]:
    variants: List[Variant] = []
    seen = set()
    for orientation in ORIENTATIONS:
        for mirrored in (False, True):
            for rotation in ROTATIONS:
                conns = connectors_for(tile.id, rotation, mirrored, orientation)
                signature = (orientation, tuple(sorted(c.offset for c in conns)))
                if signature in seen:
                    continue
                seen.add(signature)
                variants.append(Variant(
                    key=variant_key(tile.id, rotation, mirrored, orientation),
                    tile_id=tile.id,
                    rotation=rotation,
                    mirrored=mirrored,
                    orientation=orientation,
                    connectors=conns,
                ))
    return variants


# ---------- process-wide tables ----------

_RECORDS: Optional[Dict[str, TileRecord]] = None
_VARIANTS: Dict[str, Variant] = {}
_ALIASES: Dict[Tuple[str, int, bool, str], str] = {}
_LOCK = threading.Lock()


def _build_tables() -> Dict[str, TileRecord]:
    records: Dict[str, TileRecord] = {}
    for tile in enumerate_tile_catalog():
        variants = compute_variants(tile)
        by_signature = {
            (v.orientation, tuple(sorted(v.offsets))): v.key for v in variants
        }
        for orientation in ORIENTATIONS:
            for mirrored in (False, True):
                for rotation in ROTATIONS:
                    conns = connectors_for(tile.id, rotation, mirrored, orientation)
                    sig = (orientation, tuple(sorted(c.offset for c in conns)))
                    _ALIASES[(tile.id, rotation, mirrored, orientation)] = by_signature[sig]
        for v in variants:
            _VARIANTS[v.key] = v
        records[tile.id] = TileRecord(tile, tuple(variants), 24 // len(variants))
    return records


def tile_records() -> Dict[str, TileRecord]:
    global _RECORDS
    if _RECORDS is None:
        with _LOCK:
            if _RECORDS is None:
                _RECORDS = _build_tables()
    return _RECORDS


def all_variants() -> Tuple[Variant, ...]:
    return tuple(v for rec in tile_records().values() for v in rec.variants)


def get_variant(key: str) -> Variant:
    tile_records()
    return _VARIANTS[key]


def variants_for(tile_id: str, orientation: Optional[str] = None) -> Tuple[Variant, ...]:
    rec = tile_records()[tile_id]
    if orientation is None:
        return rec.variants
    return tuple(v for v in rec.variants if v.orientation == orientation)


def variant_key_for(tile_id: str, rotation: int, mirrored: bool, orientation: str) -> str:
    """Representative variant key for any raw combination."""
    tile_records()
    return _ALIASES[(tile_id, int(rotation), bool(mirrored), orientation)]
