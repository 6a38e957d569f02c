# solver/compat.py
from __future__ import annotations

import threading
from typing import Dict, FrozenSet, Iterable, Optional, Set, Tuple

from models import OPPOSITE, RELEVANT_DIRECTIONS, POS_X, NEG_X, POS_Y, NEG_Y, POS_Z, NEG_Z, Point
from solver.variants import Variant, all_variants, quantize_point

FaceKey = FrozenSet[Tuple[float, float]]
EMPTY_FACE: FaceKey = frozenset()

_AXIS = {POS_X: 0, NEG_X: 0, POS_Y: 1, NEG_Y: 1, POS_Z: 2, NEG_Z: 2}


def _project(offset: Point, direction: str) -> Tuple[float, float]:
    axis = _AXIS[direction]
    return tuple(v for i, v in enumerate(offset) if i != axis)  # type: ignore[return-value]


class CompatibilityIndex:
    """Directional neighbor relation between variants of the same orientation.

    Two variants are compatible across a shared face when the connectors facing
    that face coincide one-to-one once the neighbor is shifted by one cell.  The
    coordinate along the direction's axis is then fixed on both sides, so equal
    projected point sets ("face keys") is the same condition.
    """

    def __init__(self, variants: Iterable[Variant]):
        self._orientation: Dict[str, str] = {}
        self._face: Dict[Tuple[str, str], FaceKey] = {}
        buckets: Dict[Tuple[str, str], Dict[FaceKey, Set[str]]] = {}
        at: Dict[Tuple[str, Point], Set[str]] = {}

        for v in variants:
            self._orientation[v.key] = v.orientation
            for d in RELEVANT_DIRECTIONS[v.orientation]:
                fk = frozenset(_project(c.offset, d) for c in v.connectors if c.facing == d)
                self._face[(v.key, d)] = fk
                buckets.setdefault((v.orientation, d), {}).setdefault(fk, set()).add(v.key)
            for c in v.connectors:
                at.setdefault((v.orientation, c.offset), set()).add(v.key)

        self._buckets: Dict[Tuple[str, str], Dict[FaceKey, FrozenSet[str]]] = {
            k: {fk: frozenset(keys) for fk, keys in b.items()} for k, b in buckets.items()
        }
        self._at: Dict[Tuple[str, Point], FrozenSet[str]] = {k: frozenset(s) for k, s in at.items()}

    def __contains__(self, key: str) -> bool:
        return key in self._orientation

    def __len__(self) -> int:
        return len(self._orientation)

    def orientation_of(self, key: str) -> str:
        return self._orientation[key]

    def face_key(self, key: str, direction: str) -> FaceKey:
        return self._face[(key, direction)]

    def compatible(self, key: str, direction: str) -> FrozenSet[str]:
        """Variants allowed as the neighbor of ``key`` in ``direction``."""
        orientation = self._orientation[key]
        fk = self._face[(key, direction)]
        return self._buckets.get((orientation, OPPOSITE[direction]), {}).get(fk, frozenset())

    def is_compatible(self, a: str, b: str, direction: str) -> bool:
        if self._orientation[a] != self._orientation[b]:
            return False
        return self._face[(a, direction)] == self._face[(b, OPPOSITE[direction])]

    def closed(self, orientation: str, direction: str) -> FrozenSet[str]:
        """Variants with no connector facing ``direction``."""
        return self._buckets.get((orientation, direction), {}).get(EMPTY_FACE, frozenset())

    def with_connector_at(self, orientation: str, offset: Point) -> FrozenSet[str]:
        return self._at.get((orientation, quantize_point(offset)), frozenset())

    def connector_offsets(self, orientation: str) -> Tuple[Point, ...]:
        return tuple(sorted(p for (o, p) in self._at if o == orientation))


def build_index(variants: Iterable[Variant]) -> CompatibilityIndex:
    return CompatibilityIndex(variants)


_INDEX: Optional[CompatibilityIndex] = None
_LOCK = threading.Lock()


def get_index() -> CompatibilityIndex:
    global _INDEX
    if _INDEX is None:
        with _LOCK:
            if _INDEX is None:
                _INDEX = build_index(all_variants())
    return _INDEX
