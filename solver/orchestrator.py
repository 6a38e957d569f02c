# Orchestrator: engine dispatch for solving, bounded attempt loops for generation
from __future__ import annotations

import random
import time
from typing import Any, List, Optional, Tuple

from config import CFG
from models import GenerationConfig, Placement, PuzzleSpec, SolveOptions, SolveResult
from progress import (
    log_attempt_detail, reset, set_attempt, set_counts, set_done, set_message,
    set_phase, set_status, set_strategy, start_timer,
)
from puzzle_parser import PuzzleSpecError
from solver.backtrack import solve
from solver.closure import validate_closure
from solver.constructive import build_structured
from solver.deriver import derive_puzzle, is_valid_puzzle
from solver.random_walk import build_random_walk

ENGINES = ("backtrack", "cp_sat")
STRATEGIES = ("structured", "random_walk")

_RNG: Optional[random.Random] = None


# ---------- helpers ----------

def _system_rng() -> random.Random:
    global _RNG
    if _RNG is None:
        try:
            _RNG = random.SystemRandom()
        except NotImplementedError:
            _RNG = random.Random()
    return _RNG


def _resolve_rng(rng: Optional[random.Random], seed: Optional[int]) -> random.Random:
    if rng is not None:
        return rng
    if seed is not None:
        return random.Random(seed)
    return _system_rng()


def _coerce_size_range(maybe: Any) -> Tuple[int, int]:
    """
    Accepts:
      - (min, max) / [min, max]
      - {"min": a, "max": b}
      - a single int (exact size)
    """
    if isinstance(maybe, dict):
        lo, hi = maybe.get("min"), maybe.get("max")
    elif isinstance(maybe, (list, tuple)) and len(maybe) == 2:
        lo, hi = maybe
    else:
        lo = hi = maybe
    try:
        lo_i, hi_i = int(lo), int(hi)
    except (TypeError, ValueError):
        raise ValueError(f"Bad size range: {maybe!r}")
    if lo_i < 1 or hi_i < lo_i:
        raise ValueError(f"Bad size range: {maybe!r}")
    return lo_i, hi_i


def select_engine(options: Optional[SolveOptions] = None) -> str:
    engine = (options.engine if options is not None else None) or CFG.SOLVER_ENGINE
    engine = str(engine).strip().lower()
    if engine not in ENGINES:
        raise ValueError(f"Unknown solver engine: {engine!r}")
    return engine


def run_engine(puzzle: PuzzleSpec, options: Optional[SolveOptions] = None) -> SolveResult:
    """Solve with the configured engine, without progress reporting."""
    options = options or SolveOptions()
    if select_engine(options) == "cp_sat":
        from solver.cp_sat import solve_cp_sat  # ortools is only needed for this engine
        return solve_cp_sat(puzzle, options)
    return solve(puzzle, options)


# ---------- public entrypoints ----------

def solve_puzzle(puzzle: PuzzleSpec, options: Optional[SolveOptions] = None) -> SolveResult:
    """Solve ``puzzle`` and report the run through :mod:`progress`."""
    options = options or SolveOptions()
    engine = select_engine(options)
    reset()
    start_timer()
    set_status("Solving")
    set_phase("solve")
    set_strategy(engine)
    log_attempt_detail(
        "Solve setup",
        engine=engine,
        mode=options.mode,
        puzzle_mode=puzzle.mode,
        tiles=puzzle.total_tiles(),
        fixed=len(puzzle.fixed),
        bounds=f"{puzzle.bounds.min}-{puzzle.bounds.max}",
    )
    t0 = time.time()
    try:
        result = run_engine(puzzle, options)
    except PuzzleSpecError as e:
        set_done(False, message=str(e))
        raise

    set_counts(
        nodes=result.trace.nodes_explored if result.trace else None,
        solutions=result.solution_count,
    )
    log_attempt_detail(
        "Solve finished",
        solutions=result.solution_count,
        timed_out=result.timed_out,
        seconds=f"{time.time() - t0:.2f}",
    )
    if result.timed_out and result.solution_count == 0:
        set_done(False, message="Stopped before solution (timebox)")
    elif result.solution_count == 0:
        set_done(False, message="No solution")
    else:
        set_done(True)
    return result


def generate_solution(
    size_range: Any,
    allow_3d: bool = False,
    *,
    config: Optional[GenerationConfig] = None,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    grid: Optional[Tuple[int, int, int]] = None,
    max_attempts: Optional[int] = None,
) -> Optional[List[Placement]]:
    """
    A closed, connected network whose tile count lies in ``size_range``,
    or None once the attempt budget is spent.
    """
    lo, hi = _coerce_size_range(size_range)
    config = config or GenerationConfig(size_min=lo, size_max=hi, allow_3d=allow_3d)
    rng = _resolve_rng(rng, seed)
    grid = grid or (CFG.GRID_W, CFG.GRID_H, CFG.GRID_D)
    attempts = int(max_attempts if max_attempts is not None else CFG.GEN_MAX_ATTEMPTS)

    set_phase("generate")
    for attempt in range(attempts):
        set_attempt(f"{attempt + 1}/{attempts}")
        order = list(STRATEGIES)
        rng.shuffle(order)
        for name in order:
            set_strategy(name)
            if name == "structured":
                candidate = build_structured((lo, hi), rng, config=config, grid=(grid[0], grid[2]))
            else:
                candidate = build_random_walk((lo, hi), allow_3d, rng, config=config, grid=grid)
            if not candidate or not (lo <= len(candidate) <= hi):
                continue
            if not validate_closure(candidate).valid:
                log_attempt_detail("Rejected candidate", strategy=name, tiles=len(candidate))
                continue
            log_attempt_detail("Network built", strategy=name, tiles=len(candidate))
            return candidate
    set_attempt("")
    return None


def generate_puzzle(
    config: Optional[GenerationConfig] = None,
    *,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[Optional[PuzzleSpec], Optional[List[Placement]]]:
    """Returns (puzzle, solution), or (None, None) when no valid puzzle came out."""
    config = config or GenerationConfig()
    if seed is None:
        seed = config.seed
    rng = _resolve_rng(rng, seed)

    reset()
    start_timer()
    set_status("Generating")
    for _ in range(int(CFG.PUZZLE_MAX_ATTEMPTS)):
        solution = generate_solution(
            (config.size_min, config.size_max),
            config.allow_3d,
            config=config,
            rng=rng,
        )
        if solution is None:
            continue
        set_phase("derive")
        puzzle = derive_puzzle(
            solution,
            config.mode,
            config.difficulty,
            rng=rng,
            include_hint=config.include_hint,
        )
        if is_valid_puzzle(puzzle):
            set_message(puzzle.metadata.id if puzzle.metadata else "")
            set_done(True)
            return puzzle, solution
    set_done(False, message="No valid puzzle within the attempt budget")
    return None, None
