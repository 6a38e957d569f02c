# analysis.py
"""Puzzle quality heuristics: interestingness, cheese detection, difficulty."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models import PuzzleSpec, Placement, SolveOptions, SolveTrace, FLAT
from progress import log_attempt_detail
from solver.backtrack import solve

WEIGHTS: Dict[str, float] = {
    "solution_uniqueness": 0.25,
    "search_depth": 0.20,
    "red_herrings": 0.18,
    "spatial_complexity": 0.15,
    "tile_interaction": 0.12,
    "constraint_balance": 0.10,
}

CHEESE_SEVERITY: Dict[str, int] = {
    "line": 40,
    "single_type": 30,
    "trivial": 50,
    "no_paths": 20,
    "forced_move": 25,
}

ANALYSIS_MAX_SOLUTIONS = 50


@dataclass(frozen=True)
class CheeseIssue:
    type: str
    description: str


@dataclass
class InterestingnessScore:
    total: float
    components: Dict[str, float]


@dataclass
class PuzzleAnalysis:
    solvable: bool
    solution_count: int
    difficulty: str
    interestingness: InterestingnessScore
    issues: List[CheeseIssue] = field(default_factory=list)
    trace: Optional[SolveTrace] = None


def _zero_score() -> InterestingnessScore:
    return InterestingnessScore(0.0, {k: 0.0 for k in WEIGHTS})


# ---------- component scores ----------

def score_solution_uniqueness(n: int) -> float:
    if n == 0:
        return 0.0
    if n == 1:
        return 100.0
    if n == 2:
        return 90.0
    if n == 3:
        return 80.0
    if n <= 5:
        return 60.0
    if n <= 10:
        return 40.0
    if n <= 20:
        return 20.0
    return max(0.0, 10 - n / 10)


def score_search_depth(trace: Optional[SolveTrace]) -> float:
    if trace is None:
        return 50.0
    if trace.total_backtracks == 0:
        return 20.0
    d = trace.max_depth
    if d <= 2:
        return 40.0
    if d <= 4:
        return 70.0
    if d <= 6:
        return 90.0
    if d <= 8:
        return 100.0
    if d <= 12:
        return 80.0
    return 50.0


def score_red_herrings(trace: Optional[SolveTrace]) -> float:
    if trace is None:
        return 50.0
    b = trace.total_backtracks
    if b == 0:
        return 30.0
    if b <= 2:
        return 50.0
    if b <= 5:
        return 80.0
    if b <= 10:
        return 100.0
    if b <= 20:
        return 70.0
    return 40.0


def score_spatial_complexity(solutions: List[List[Placement]]) -> float:
    if not solutions or not solutions[0]:
        return 0.0
    sol = solutions[0]
    heights = {p.cell[1] for p in sol}
    score = min(len(heights) * 20, 40)
    xs = [p.cell[0] for p in sol]
    zs = [p.cell[2] for p in sol]
    x_spread = max(xs) - min(xs) + 1
    z_spread = max(zs) - min(zs) + 1
    score += min(x_spread, z_spread) / max(x_spread, z_spread) * 30
    vertical = sum(1 for p in sol if p.orientation != FLAT)
    score += min(vertical * 10, 30)
    return float(min(score, 100))


def score_tile_interaction(puzzle: PuzzleSpec) -> float:
    kinds = [t for t, n in puzzle.inventory.items() if n > 0]
    total = puzzle.total_tiles()
    if total <= 1:
        return 30.0
    variety = len(kinds) / total
    if len(kinds) == 1:
        return 20.0
    if len(kinds) == 2:
        return 60 + variety * 20
    return 70 + variety * 30


def score_constraint_balance(puzzle: PuzzleSpec, trace: Optional[SolveTrace]) -> float:
    if trace is None:
        return 50.0
    total = puzzle.total_tiles()
    if total == 0:
        return 0.0
    ratio = trace.nodes_explored / total
    if ratio < 1.5:
        return 30.0
    if ratio < 3:
        return 60.0
    if ratio < 6:
        return 100.0
    if ratio < 12:
        return 80.0
    if ratio < 25:
        return 60.0
    return 40.0


def compute_interestingness(
    puzzle: PuzzleSpec,
    solutions: List[List[Placement]],
    trace: Optional[SolveTrace] = None,
    solution_count: Optional[int] = None,
) -> InterestingnessScore:
    n = len(solutions) if solution_count is None else solution_count
    components = {
        "solution_uniqueness": score_solution_uniqueness(n),
        "search_depth": score_search_depth(trace),
        "red_herrings": score_red_herrings(trace),
        "spatial_complexity": score_spatial_complexity(solutions),
        "tile_interaction": score_tile_interaction(puzzle),
        "constraint_balance": score_constraint_balance(puzzle, trace),
    }
    total = sum(components[k] * w for k, w in WEIGHTS.items())
    return InterestingnessScore(total, components)


def quick_interestingness_estimate(puzzle: PuzzleSpec) -> float:
    """Rough score from the inventory alone, no solving."""
    score = 50.0
    total = puzzle.total_tiles()
    kinds = sum(1 for n in puzzle.inventory.values() if n > 0)
    if 4 <= total <= 8:
        score += 10
    elif total > 8:
        score += 5
    if kinds >= 2:
        score += 10
    if kinds >= 3:
        score += 10
    if puzzle.fixed and total > 0:
        fixed_ratio = len(puzzle.fixed) / total
        if 0.2 < fixed_ratio < 0.8:
            score += 10
    return min(score, 100.0)


# ---------- cheese ----------

def _is_line(solution: List[Placement]) -> bool:
    if len(solution) <= 2:
        return True
    xs = {p.cell[0] for p in solution}
    zs = {p.cell[2] for p in solution}
    if len(xs) == 1 or len(zs) == 1:
        return True
    if len({p.cell[1] for p in solution}) == 1 and len(solution) <= 4:
        ordered = sorted(solution, key=lambda p: p.cell[0])
        # short diagonal staircase
        if all(b.cell[0] - a.cell[0] == 1 and abs(b.cell[2] - a.cell[2]) == 1
               for a, b in zip(ordered, ordered[1:])):
            return True
    return False


def detect_cheese(solution: List[Placement]) -> List[CheeseIssue]:
    issues: List[CheeseIssue] = []
    if _is_line(solution):
        issues.append(CheeseIssue("line", "Solution is a straight line"))
    if len(solution) > 2 and len({p.tile_id for p in solution}) == 1:
        issues.append(CheeseIssue("single_type", "Uses only one tile type"))
    if len(solution) < 3:
        issues.append(CheeseIssue("trivial", "Solution has too few tiles"))
    return issues


def cheese_severity(issues: List[CheeseIssue]) -> int:
    return min(100, sum(CHEESE_SEVERITY.get(i.type, 0) for i in issues))


def all_solutions_cheesy(solutions: List[List[Placement]]) -> bool:
    return bool(solutions) and all(detect_cheese(s) for s in solutions)


def is_trivial_puzzle(puzzle: PuzzleSpec) -> Optional[str]:
    """Reason string when the puzzle is trivial before any solving, else None."""
    total = puzzle.total_tiles()
    if total <= 2:
        return "Too few tiles"
    if sum(1 for n in puzzle.inventory.values() if n > 0) == 1:
        return "All tiles are identical"
    return None


def estimate_difficulty(solution_count: int, total_tiles: int, max_depth: int) -> str:
    if solution_count == 0:
        return "expert"
    if solution_count >= 10:
        return "easy"
    depth_factor = max_depth / max(total_tiles, 1)
    if depth_factor < 0.5:
        return "easy"
    if depth_factor < 1.0:
        return "medium"
    if depth_factor < 2.0:
        return "hard"
    return "expert"


def analyze_puzzle(puzzle: PuzzleSpec, timeout_ms: Optional[int] = None) -> PuzzleAnalysis:
    trivial = is_trivial_puzzle(puzzle)
    if trivial:
        return PuzzleAnalysis(
            solvable=True,
            solution_count=1,
            difficulty="easy",
            interestingness=_zero_score(),
            issues=[CheeseIssue("trivial", trivial)],
        )

    result = solve(puzzle, SolveOptions(
        mode="all",
        max_solutions=ANALYSIS_MAX_SOLUTIONS,
        timeout_ms=timeout_ms,
        trace=True,
    ))
    if result.solution_count == 0:
        return PuzzleAnalysis(
            solvable=False,
            solution_count=0,
            difficulty="expert",
            interestingness=_zero_score(),
            trace=result.trace,
        )

    score = compute_interestingness(puzzle, result.solutions, result.trace, result.solution_count)
    issues: List[CheeseIssue] = []
    for sol in result.solutions:
        for issue in detect_cheese(sol):
            if issue not in issues:
                issues.append(issue)
    depth = result.trace.max_depth if result.trace else 0
    difficulty = estimate_difficulty(result.solution_count, puzzle.total_tiles(), depth)
    log_attempt_detail(
        "Analysis",
        solutions=result.solution_count,
        score=f"{score.total:.1f}",
        difficulty=difficulty,
        issues=",".join(i.type for i in issues),
    )
    return PuzzleAnalysis(
        solvable=True,
        solution_count=result.solution_count,
        difficulty=difficulty,
        interestingness=score,
        issues=issues,
        trace=result.trace,
    )
