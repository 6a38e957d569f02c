# solver/backtrack.py
from __future__ import annotations

import time
from typing import Dict, Iterator, List, Optional

from config import CFG
from models import Placement, PuzzleSpec, SolveOptions, SolveResult, SolveTrace
from puzzle_parser import require_valid
from solver.closure import validate_closure
from solver.compat import CompatibilityIndex, get_index
from solver.propagate import propagate
from solver.state import EMPTY, SlotBoard, SolverState, tile_of
from solver.variants import variant_key_for

SOLVE_MODES = ("first", "count", "all")


def resolve_limits(options: SolveOptions):
    """(max_solutions, timeout_ms) after applying config defaults."""
    if options.mode not in SOLVE_MODES:
        raise ValueError(f"Unknown solve mode: {options.mode!r}")
    if options.mode == "first":
        limit = 1
    elif options.max_solutions is not None:
        limit = max(1, int(options.max_solutions))
    else:
        limit = int(CFG.MAX_SOLUTIONS_ALL)
    timeout_ms = CFG.SOLVER_TIMEOUT_MS if options.timeout_ms is None else options.timeout_ms
    return limit, float(timeout_ms)


def initial_state(puzzle: PuzzleSpec, index: Optional[CompatibilityIndex] = None) -> Optional[SolverState]:
    """Root state with the fixed tiles committed, or None when they already conflict."""
    board = SlotBoard(puzzle, index or get_index())
    state = SolverState(board, puzzle.inventory)
    for p in puzzle.fixed:
        sid = board.slot_id[p.slot]
        key = variant_key_for(p.tile_id, p.rotation, p.mirrored, p.orientation)
        if not state.apply_placement(sid, key, fixed=True):
            return None
    return state


def solve(puzzle: PuzzleSpec, options: Optional[SolveOptions] = None, *, index: Optional[CompatibilityIndex] = None) -> SolveResult:
    """
    Depth-first search with propagation over the puzzle's slots.

    The search keeps an explicit stack of child-state iterators so large bounds
    do not hit the interpreter's recursion limit.  Every recorded solution has
    used the whole inventory and passed :func:`validate_closure`.
    """
    options = options or SolveOptions()
    require_valid(puzzle)
    limit, timeout_ms = resolve_limits(options)
    deadline = time.time() + timeout_ms / 1000.0

    stats: Dict[str, int] = {"nodes": 0, "backtracks": 0, "max_depth": 0, "propagations": 0}
    solutions: List[List[Placement]] = []
    found = 0
    timed_out = False

    def _deadline_exceeded() -> bool:
        return time.time() >= deadline

    def _trace() -> SolveTrace:
        return SolveTrace(
            nodes_explored=stats["nodes"],
            total_backtracks=stats["backtracks"],
            max_depth=stats["max_depth"],
            propagation_calls=stats["propagations"],
        )

    def _settle(st: SolverState) -> bool:
        # propagate, then commit every slot left with a single value
        while True:
            stats["propagations"] += 1
            if not propagate(st):
                return False
            forced = [sid for sid in st.undecided() if len(st.domains[sid]) == 1]
            if not forced:
                break
            for sid in forced:
                if sid in st.decided:
                    continue
                # an earlier forced assignment may have used up this slot's tile
                domain = st.domains[sid]
                if not domain or not st.assign(sid, next(iter(domain))):
                    return False
        capacity = sum(1 for sid in st.undecided() if any(v != EMPTY for v in st.domains[sid]))
        return capacity >= st.remaining()

    def _select(st: SolverState) -> Optional[int]:
        board = st.board
        best = None
        best_key = None
        for sid in st.undecided():
            touching = any(o in st.placements for o in board.touching[sid])
            key = (len(st.domains[sid]), 0 if touching else 1, sid)
            if best_key is None or key < best_key:
                best, best_key = sid, key
        return best

    def _order_values(st: SolverState, sid: int) -> List[str]:
        tiles = [v for v in st.domains[sid] if v != EMPTY]
        tiles.sort(key=lambda v: (-st.inventory.get(tile_of(v), 0), v))
        if EMPTY in st.domains[sid]:
            tiles.append(EMPTY)
        return tiles

    def _children(st: SolverState, sid: int) -> Iterator[SolverState]:
        for value in _order_values(st, sid):
            child = st.clone()
            if child.assign(sid, value):
                yield child

    def _expand(st: SolverState) -> Optional[Iterator[SolverState]]:
        nonlocal found
        stats["nodes"] += 1
        if not _settle(st):
            stats["backtracks"] += 1
            return None
        if st.remaining() == 0:
            for sid in st.undecided():
                if not st.leave_empty(sid):
                    stats["backtracks"] += 1
                    return None
            placements = st.all_placements()
            if validate_closure(placements).valid:
                found += 1
                if options.mode != "count":
                    solutions.append(placements)
            else:
                stats["backtracks"] += 1
            return None
        sid = _select(st)
        if sid is None:
            stats["backtracks"] += 1
            return None
        return _children(st, sid)

    root = initial_state(puzzle, index)
    if root is not None:
        stack: List[Iterator[SolverState]] = [iter([root])]
        while stack:
            if _deadline_exceeded():
                timed_out = True
                break
            try:
                node = next(stack[-1])
            except StopIteration:
                stack.pop()
                continue
            stats["max_depth"] = max(stats["max_depth"], len(stack))
            children = _expand(node)
            if found >= limit:
                break
            if children is not None:
                stack.append(children)

    setattr(solve, "last_stats", dict(stats))
    return SolveResult(
        solutions=solutions,
        solution_count=found,
        timed_out=timed_out,
        trace=_trace() if options.trace else None,
    )
