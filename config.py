# config.py
import os

# ======= Tile geometry =======
# Distance of a left/right connector from the middle of its edge (tile spans -0.5..0.5).
CORNER_OFFSET  = float(os.getenv("PN_CORNER_OFFSET", "0.18"))
# A connector faces a direction when it sits further than this from the cell centre on that axis.
FACE_THRESHOLD = float(os.getenv("PN_FACE_THRESHOLD", "0.4"))
# Connector points are compared after rounding to this many decimals (tolerance 1e-3).
POINT_DECIMALS = int(os.getenv("PN_POINT_DECIMALS", "3"))

# ======= Solver =======
SOLVER_ENGINE          = os.getenv("PN_SOLVER_ENGINE", "backtrack")   # backtrack | cp_sat
SOLVER_TIMEOUT_MS      = int(os.getenv("PN_SOLVER_TIMEOUT_MS", "30000"))
MAX_SOLUTIONS_ALL      = int(os.getenv("PN_MAX_SOLUTIONS_ALL", "1000"))
PROPAGATION_MAX_ROUNDS = int(os.getenv("PN_PROPAGATION_MAX_ROUNDS", "100"))
CP_SAT_WORKERS         = int(os.getenv("PN_CP_SAT_WORKERS", "1"))
CP_SAT_RANDOM_SEED     = int(os.getenv("PN_CP_SAT_RANDOM_SEED", "0"))

# ======= Generation grid (cells) =======
# Default board is 10 x 10 cells with 5 layers of height.
GRID_W = int(os.getenv("PN_GRID_W", "10"))
GRID_H = int(os.getenv("PN_GRID_H", "5"))
GRID_D = int(os.getenv("PN_GRID_D", "10"))

# ======= Generator =======
GEN_MAX_ATTEMPTS    = int(os.getenv("PN_GEN_MAX_ATTEMPTS", "50"))
GEN_MAX_EXTRA_TILES = int(os.getenv("PN_GEN_MAX_EXTRA_TILES", "6"))
GEN_CLOSE_WEIGHT    = float(os.getenv("PN_GEN_CLOSE_WEIGHT", "3.0"))
GEN_OPEN_WEIGHT     = float(os.getenv("PN_GEN_OPEN_WEIGHT", "1.0"))
GEN_LOOP_BONUS      = float(os.getenv("PN_GEN_LOOP_BONUS", "5.0"))
GEN_MIN_WEIGHT      = float(os.getenv("PN_GEN_MIN_WEIGHT", "0.1"))
PUZZLE_MAX_ATTEMPTS = int(os.getenv("PN_PUZZLE_MAX_ATTEMPTS", "50"))

# ======= Logging =======
ATTEMPT_LOG = os.getenv("PN_ATTEMPT_LOG", "")   # empty -> logs/solver_attempts.log beside progress.py

class CFG:
    CORNER_OFFSET  = CORNER_OFFSET
    FACE_THRESHOLD = FACE_THRESHOLD
    POINT_DECIMALS = POINT_DECIMALS

    SOLVER_ENGINE          = SOLVER_ENGINE
    SOLVER_TIMEOUT_MS      = SOLVER_TIMEOUT_MS
    MAX_SOLUTIONS_ALL      = MAX_SOLUTIONS_ALL
    PROPAGATION_MAX_ROUNDS = PROPAGATION_MAX_ROUNDS
    CP_SAT_WORKERS         = CP_SAT_WORKERS
    CP_SAT_RANDOM_SEED     = CP_SAT_RANDOM_SEED

    GRID_W = GRID_W
    GRID_H = GRID_H
    GRID_D = GRID_D

    GEN_MAX_ATTEMPTS    = GEN_MAX_ATTEMPTS
    GEN_MAX_EXTRA_TILES = GEN_MAX_EXTRA_TILES
    GEN_CLOSE_WEIGHT    = GEN_CLOSE_WEIGHT
    GEN_OPEN_WEIGHT     = GEN_OPEN_WEIGHT
    GEN_LOOP_BONUS      = GEN_LOOP_BONUS
    GEN_MIN_WEIGHT      = GEN_MIN_WEIGHT
    PUZZLE_MAX_ATTEMPTS = PUZZLE_MAX_ATTEMPTS

    ATTEMPT_LOG = ATTEMPT_LOG

__all__ = ["CFG"]
