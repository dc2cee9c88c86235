# config.py
import os

# ======= Branching strategy =======
# sequential | throttled | depth-capped
STRATEGY = os.getenv("SD_STRATEGY", "sequential").strip().lower()

# ======= Concurrency caps =======
# Permit pool size for the throttled strategy; defaults to the visible cores.
WORKERS      = int(os.getenv("SD_WORKERS", str(os.cpu_count() or 1)))
# Recursion depth up to which the depth-capped strategy spawns threads.
DEPTH_CUTOFF = int(os.getenv("SD_DEPTH_CUTOFF", "3"))

# ======= Generator knobs =======
# Number of random transformations applied by populate(); -1 means one per cell.
SHUFFLE_ROUNDS = int(os.getenv("SD_SHUFFLE_ROUNDS", "-1"))
_seed = os.getenv("SD_RANDOM_SEED", "").strip()
RANDOM_SEED = int(_seed) if _seed else None

# ======= CP-SAT cross-check =======
CP_SAT_SECONDS = float(os.getenv("SD_CP_SAT_SECONDS", "10"))

# ======= Logging =======
LOG_FILE = os.getenv("SD_LOG_FILE", "")


class CFG:
    STRATEGY = STRATEGY

    WORKERS      = WORKERS
    DEPTH_CUTOFF = DEPTH_CUTOFF

    SHUFFLE_ROUNDS = SHUFFLE_ROUNDS
    RANDOM_SEED    = RANDOM_SEED

    CP_SAT_SECONDS = CP_SAT_SECONDS

    LOG_FILE = LOG_FILE
