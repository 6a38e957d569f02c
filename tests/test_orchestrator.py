import pytest

from models import Bounds, GenerationConfig, PuzzleSpec, SolveOptions
from progress import snapshot
from puzzle_parser import PuzzleSpecError
from solver.backtrack import solve
from solver.closure import validate_closure
from solver.cp_isolate import run_solve_isolated
from solver.deriver import is_valid_puzzle
from solver.orchestrator import generate_puzzle, select_engine, solve_puzzle


def test_engine_selection(monkeypatch):
    from config import CFG
    monkeypatch.setattr(CFG, "SOLVER_ENGINE", "backtrack")
    assert select_engine() == "backtrack"
    assert select_engine(SolveOptions(engine=" CP_SAT ")) == "cp_sat"
    with pytest.raises(ValueError):
        select_engine(SolveOptions(engine="quantum"))


def test_solve_puzzle_reports_progress(corridor_puzzle):
    result = solve_puzzle(corridor_puzzle, SolveOptions(mode="all", engine="backtrack", trace=True))
    assert result.solution_count == 1
    snap = snapshot()
    assert snap["done"] is True
    assert snap["ok"] is True
    assert snap["status"] == "Solved"
    assert snap["strategy"] == "backtrack"
    assert snap["solutions"] == 1
    assert snap["nodes"] == result.trace.nodes_explored


def test_solve_puzzle_marks_unsolvable_runs():
    puzzle = PuzzleSpec(bounds=Bounds((0, 0, 0), (1, 0, 0)), inventory={"tile_0": 1}, orientations=("flat",))
    result = solve_puzzle(puzzle, SolveOptions(engine="backtrack"))
    assert result.solution_count == 0
    snap = snapshot()
    assert snap["ok"] is False
    assert snap["message"] == "No solution"


def test_solve_puzzle_reraises_malformed_specs():
    puzzle = PuzzleSpec(bounds=Bounds((0, 0, 0), (1, 0, 0)), inventory={"tile_999": 1})
    with pytest.raises(PuzzleSpecError):
        solve_puzzle(puzzle, SolveOptions(engine="backtrack"))
    snap = snapshot()
    assert snap["done"] is True
    assert snap["ok"] is False
    assert "tile_999" in snap["message"]


@pytest.mark.parametrize("mode", ["arrange", "complete"])
def test_generated_puzzles_are_solvable(mode):
    config = GenerationConfig(size_min=4, size_max=5, mode=mode, difficulty="easy", seed=5)
    puzzle, solution = generate_puzzle(config)
    assert puzzle is not None
    assert is_valid_puzzle(puzzle)
    assert validate_closure(solution).valid
    assert puzzle.total_tiles() + len(puzzle.fixed) == len(solution)
    for p in solution:
        assert puzzle.bounds.contains(p.cell)
    result = solve(puzzle, SolveOptions(timeout_ms=60000))
    assert result.solution_count == 1
    assert validate_closure(result.solutions[0]).valid


def test_generation_is_reproducible():
    config = GenerationConfig(size_min=4, size_max=6)
    a, sol_a = generate_puzzle(config, seed=21)
    b, sol_b = generate_puzzle(config, seed=21)
    assert sol_a == sol_b
    assert a.inventory == b.inventory
    assert a.fixed == b.fixed


def test_isolated_solve_returns_the_child_result(corridor_puzzle):
    ok, result, reason, crash = run_solve_isolated(corridor_puzzle, SolveOptions(mode="all", engine="backtrack"))
    assert ok
    assert crash is None
    assert reason is None
    assert result.solution_count == 1
