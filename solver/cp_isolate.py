# solver/cp_isolate.py
import multiprocessing as mp
import queue
import traceback
from typing import Optional, Tuple

from config import CFG
from models import PuzzleSpec, SolveOptions, SolveResult


# Worker must be top-level (picklable under spawn)
def _solve_worker(q, puzzle: PuzzleSpec, options: SolveOptions):
    try:
        from solver.orchestrator import run_engine  # import inside child
        result = run_engine(puzzle, options)
        q.put(("ok", result, None))
    except MemoryError:
        q.put(("err", None, "Child ran out of memory"))
    except Exception as e:
        q.put(("exc", None, f"{e}\n{traceback.format_exc()}"))


def run_solve_isolated(
    puzzle: PuzzleSpec,
    options: Optional[SolveOptions] = None,
    hard_timeout_s: Optional[float] = None,
) -> Tuple[bool, Optional[SolveResult], Optional[str], Optional[str]]:
    """
    Solve in a spawned child so a native crash or a runaway search cannot take
    the caller down.

    Returns (ok, result, reason, crash_note).
    crash_note is non-empty only if the child crashed/was killed/timed out.
    """
    options = options or SolveOptions()
    timeout_ms = options.timeout_ms if options.timeout_ms is not None else CFG.SOLVER_TIMEOUT_MS
    if hard_timeout_s is None:
        # small buffer beyond the solver's own timebox for teardown
        hard_timeout_s = float(timeout_ms) / 1000.0 + 5.0

    ctx = mp.get_context("spawn")
    q = ctx.Queue()
    p = ctx.Process(target=_solve_worker, args=(q, puzzle, options))
    p.daemon = True
    p.start()

    # read before join: a large result would otherwise block the child on the pipe
    try:
        tag, result, reason = q.get(timeout=hard_timeout_s)
    except queue.Empty:
        tag = None
    p.join(2.0)

    if tag is None:
        if p.is_alive():
            p.terminate()
            p.join(2.0)
            return False, None, "Stopped before solution (timebox)", "killed: timeout"
        if p.exitcode not in (0, None):
            return False, None, f"Stopped before solution (child exit {p.exitcode})", "child crashed"
        return False, None, "No result from child process", "no-result"

    if tag == "ok":
        return result.solution_count > 0, result, None, None
    return False, None, reason, None
