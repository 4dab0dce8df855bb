"""SyncJob model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from asdfaccel.models import PluginRef


@dataclass(slots=True, frozen=True)
class SyncJob:
    """One scheduled plugin sync. Lives only for the duration of a run."""

    plugin: PluginRef
    seq: int
    slot: int


def build_jobs(selection: Sequence[PluginRef], max_parallel: int) -> list[SyncJob]:
    """
    Create one job per selected plugin, in input order.

    slot is seq modulo max_parallel: the worker lane the job is admitted to
    when the pool is saturated. Used for log correlation only.
    """
    if max_parallel < 1:
        raise ValueError("max_parallel must be >= 1")
    return [
        SyncJob(plugin=plugin, seq=seq, slot=seq % max_parallel)
        for seq, plugin in enumerate(selection)
    ]
