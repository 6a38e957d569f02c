# solver/closure.py
"""The single definition of a finished network.

A placement set is closed when every connector meets exactly one connector of
another tile at the same world point and all tiles form one connected piece.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from models import ClosureReport, Connector, Placement, Point, Slot
from solver.unionfind import UnionFind
from solver.variants import connectors_for, quantize_point


def placement_connectors(placement: Placement) -> List[Connector]:
    x, y, z = placement.cell
    out: List[Connector] = []
    for c in connectors_for(placement.tile_id, placement.rotation, placement.mirrored, placement.orientation):
        point = quantize_point((x + c.offset[0], y + c.offset[1], z + c.offset[2]))
        out.append(Connector(point, c.facing, placement, c.edge, c.position))
    return out


def connector_points(placements: Iterable[Placement]) -> Dict[Point, List[Tuple[int, Connector]]]:
    by_point: Dict[Point, List[Tuple[int, Connector]]] = {}
    for i, p in enumerate(placements):
        for c in placement_connectors(p):
            by_point.setdefault(c.point, []).append((i, c))
    return by_point


def validate_closure(placements: Iterable[Placement]) -> ClosureReport:
    placed = list(placements)

    seen: Dict[Slot, int] = {}
    duplicates: List[Slot] = []
    for p in placed:
        seen[p.slot] = seen.get(p.slot, 0) + 1
        if seen[p.slot] == 2:
            duplicates.append(p.slot)

    uf: UnionFind[int] = UnionFind()
    for i in range(len(placed)):
        uf.add(i)

    open_connectors: List[Connector] = []
    pairs = 0
    for point, items in connector_points(placed).items():
        if len(items) == 2 and items[0][0] != items[1][0]:
            pairs += 1
            uf.union(items[0][0], items[1][0])
        else:
            open_connectors.extend(c for _, c in items)

    open_connectors.sort(key=lambda c: (c.point, c.placement.sort_key()))
    components = uf.component_count()
    valid = bool(placed) and not duplicates and not open_connectors and components == 1
    return ClosureReport(
        valid=valid,
        open_connectors=open_connectors,
        connected_pairs=pairs,
        components=components,
        duplicate_slots=sorted(duplicates),
    )
