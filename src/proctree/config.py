"""Configuration defaults for proctree."""

import os


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


# Ceiling on tree depth; the only guard against cyclic ppid chains.
DEFAULT_MAX_DEPTH = max(0, _env_int("PROCTREE_MAX_DEPTH", 10))

# Seconds between two polls of ProcessTreeMonitor.
DEFAULT_POLL_RATE = max(0.1, _env_float("PROCTREE_POLL_RATE", 2.0))
