from __future__ import annotations

import os


def cpu_count() -> int:
    """Number of CPUs usable by this process (at least 1)."""
    try:
        count = len(os.sched_getaffinity(0))
    except (AttributeError, OSError):
        count = os.cpu_count() or 1
    return max(count, 1)


def default_parallelism() -> int:
    """Worker count used when the caller does not pass --jobs."""
    return cpu_count()
