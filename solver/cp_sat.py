# solver/cp_sat.py
"""Exact alternative engine on OR-Tools CP-SAT.

One boolean per (slot, tile value).  Connector points carry the "0 or 2
connectors" rule directly, so the model needs no notion of neighbors.
Connectivity is not modelled: every assignment is checked with
:func:`validate_closure` and excluded with a no-good cut before re-solving.
"""
from __future__ import annotations

import time
from typing import Dict, List, Optional, Tuple

from ortools.sat.python import cp_model as _cp

from config import CFG
from models import Placement, PuzzleSpec, SolveOptions, SolveResult, SolveTrace
from puzzle_parser import require_valid
from solver.backtrack import resolve_limits
from solver.closure import validate_closure
from solver.compat import CompatibilityIndex, get_index
from solver.state import SlotBoard, tile_of


def build_model(board: SlotBoard) -> Tuple[Optional[_cp.CpModel], Dict[Tuple[int, str], _cp.IntVar]]:
    """Returns (model, vars); the model is None when the inventory obviously cannot be placed."""
    puzzle = board.puzzle
    m = _cp.CpModel()
    x: Dict[Tuple[int, str], _cp.IntVar] = {}

    for sid, values in enumerate(board.initial_values):
        for v in sorted(values):
            x[(sid, v)] = m.NewBoolVar(f"s{sid}_{v}")
        own = [x[(sid, v)] for v in sorted(values)]
        if sid in board.fixed_values:
            m.Add(x[(sid, board.fixed_values[sid])] == 1)
        elif own:
            m.Add(sum(own) <= 1)

    # inventory is used exactly; fixed tiles do not draw from it
    for tile_id, count in puzzle.inventory.items():
        terms = [var for (sid, v), var in x.items() if sid not in board.fixed_values and tile_of(v) == tile_id]
        if not terms:
            if count > 0:
                return None, x
            continue
        m.Add(sum(terms) == int(count))

    by_point: Dict[tuple, List[_cp.IntVar]] = {}
    for (sid, v), var in x.items():
        for p in board.points(sid, v):
            by_point.setdefault(p, []).append(var)
    for i, (point, users) in enumerate(sorted(by_point.items())):
        if len(users) == 1:
            m.Add(users[0] == 0)
            continue
        paired = m.NewBoolVar(f"p{i}")
        m.Add(sum(users) == 2 * paired)

    for sid, values in enumerate(board.initial_values):
        if not board.needs_support[sid]:
            continue
        below = board.flat_below[sid]
        below_vars = [var for (b, _), var in x.items() if b == below] if below is not None else []
        for v in values:
            if below_vars:
                m.Add(x[(sid, v)] <= sum(below_vars))
            else:
                m.Add(x[(sid, v)] == 0)
    return m, x


def solve_cp_sat(puzzle: PuzzleSpec, options: Optional[SolveOptions] = None, *, index: Optional[CompatibilityIndex] = None) -> SolveResult:
    options = options or SolveOptions()
    require_valid(puzzle)
    limit, timeout_ms = resolve_limits(options)
    deadline = time.time() + timeout_ms / 1000.0

    board = SlotBoard(puzzle, index or get_index())
    m, x = build_model(board)
    stats = {"solves": 0, "rejected": 0}
    solutions: List[List[Placement]] = []
    found = 0
    timed_out = False

    while m is not None and found < limit:
        remaining = deadline - time.time()
        if remaining <= 0:
            timed_out = True
            break
        solver = _cp.CpSolver()
        solver.parameters.max_time_in_seconds = float(remaining)
        solver.parameters.num_search_workers = int(getattr(CFG, "CP_SAT_WORKERS", 1))
        solver.parameters.random_seed = int(getattr(CFG, "CP_SAT_RANDOM_SEED", 0))
        solver.parameters.log_search_progress = False
        res = solver.Solve(m)
        stats["solves"] += 1

        if res == _cp.INFEASIBLE:
            break
        if res == _cp.MODEL_INVALID:
            raise RuntimeError("CP-SAT model invalid")
        if res not in (_cp.OPTIMAL, _cp.FEASIBLE):
            timed_out = True
            break

        chosen = [(key, var) for key, var in x.items() if solver.BooleanValue(var)]
        placements = sorted((board.placement(sid, v) for (sid, v), _ in chosen), key=lambda p: p.sort_key())
        if validate_closure(placements).valid:
            found += 1
            if options.mode != "count":
                solutions.append(placements)
        else:
            stats["rejected"] += 1
        # exclude this exact selection; every solution uses the same number of tiles
        m.AddBoolOr([var.Not() for _, var in chosen])

    setattr(solve_cp_sat, "last_stats", dict(stats))
    trace = None
    if options.trace:
        trace = SolveTrace(
            nodes_explored=stats["solves"],
            total_backtracks=stats["rejected"],
            max_depth=0,
            propagation_calls=0,
        )
    return SolveResult(solutions=solutions, solution_count=found, timed_out=timed_out, trace=trace)
