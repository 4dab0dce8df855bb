"""Public plan exports for asdfaccel."""

from __future__ import annotations

from .job import SyncJob, build_jobs
from .selection import SyncSelection, select_plugins

__all__ = [
    "SyncSelection",
    "select_plugins",
    "SyncJob",
    "build_jobs",
]
