# solver/propagate.py
"""Domain filtering for the slot CSP.

Two passes run until nothing changes:

* arc consistency between same-orientation neighbors, driven by the
  compatibility index.  An arc is only revised while no third slot can still
  put a connector on the shared face; otherwise a binary check could throw out
  values whose partner is that third slot.
* support: every connector of a candidate value needs some other slot able to
  meet it (and its point must not already be paired), committed open connectors
  still need a possible partner, and edge-mounted slots above the lowest layer
  need a possible flat tile in the cell below.
"""
from __future__ import annotations

from collections import deque
from typing import Deque, Optional, Set

from config import CFG
from models import OPPOSITE, Point
from solver.compat import EMPTY_FACE
from solver.state import EMPTY, SolverState


def _face(state: SolverState, value: str, direction: str):
    if value == EMPTY:
        return EMPTY_FACE
    return state.board.index.face_key(value, direction)


def _arc_is_exact(state: SolverState, sid: int, direction: str) -> bool:
    board = state.board
    index = board.index
    for t, rels in board.arc_third.get((sid, direction), ()):
        orientation = board.slots[t].orientation
        dom = state.domains[t]
        for rel in rels:
            if not dom.isdisjoint(index.with_connector_at(orientation, rel)):
                return False
    return True


def _arc_consistency(state: SolverState, queue: Deque[int], queued: Set[int]) -> bool:
    board = state.board
    domains = state.domains
    while queue:
        sid = queue.popleft()
        queued.discard(sid)
        for d, nid in board.arcs[sid]:
            if not _arc_is_exact(state, sid, d):
                continue
            wanted = {_face(state, v, d) for v in domains[sid]}
            opp = OPPOSITE[d]
            current = domains[nid]
            keep = {w for w in current if _face(state, w, opp) in wanted}
            if len(keep) == len(current):
                continue
            domains[nid] = keep
            if not keep:
                return False
            if nid not in queued:
                queue.append(nid)
                queued.add(nid)
    return True


def _can_reach(state: SolverState, point: Point, exclude: int) -> bool:
    """True when some undecided slot other than ``exclude`` could put a connector on ``point``."""
    board = state.board
    index = board.index
    for t in board.point_slots.get(point, ()):
        if t == exclude or t in state.decided:
            continue
        rel = board.relative(t, point)
        if not state.domains[t].isdisjoint(index.with_connector_at(board.slots[t].orientation, rel)):
            return True
    return False


def _support_pass(state: SolverState) -> Optional[Set[int]]:
    """Returns the slots whose domains shrank, or None on contradiction."""
    board = state.board

    for point, users in state.point_use.items():
        if len(users) == 1 and not _can_reach(state, point, users[0]):
            return None

    for sid in state.decided:
        if state.decided[sid] == EMPTY or not board.needs_support[sid]:
            continue
        below = board.flat_below[sid]
        if below is None or state.domains[below] == {EMPTY}:
            return None

    changed: Set[int] = set()
    for sid in state.undecided():
        dom = state.domains[sid]
        drop = []
        unsupported = False
        if board.needs_support[sid]:
            below = board.flat_below[sid]
            unsupported = below is None or not any(v != EMPTY for v in state.domains[below])
        for v in dom:
            if v == EMPTY:
                continue
            if unsupported:
                drop.append(v)
                continue
            for p in board.points(sid, v):
                used = state.point_use.get(p, ())
                if len(used) >= 2:
                    drop.append(v)
                    break
                if len(used) == 1:
                    continue
                if not _can_reach(state, p, sid):
                    drop.append(v)
                    break
        if drop:
            dom.difference_update(drop)
            if not dom:
                return None
            changed.add(sid)
    return changed


def propagate(state: SolverState) -> bool:
    """Filter domains to a fixpoint. False signals a contradiction."""
    queue: Deque[int] = deque(range(len(state.domains)))
    queued: Set[int] = set(queue)
    rounds = 0
    while True:
        rounds += 1
        if not _arc_consistency(state, queue, queued):
            return False
        changed = _support_pass(state)
        if changed is None:
            return False
        if not changed or rounds >= CFG.PROPAGATION_MAX_ROUNDS:
            return True
        # re-check neighbors of shrunken slots as well as the slots themselves
        wake: Set[int] = set(changed)
        for sid in changed:
            wake.update(nid for _, nid in state.board.arcs[sid])
        queue = deque(sorted(wake))
        queued = set(wake)
