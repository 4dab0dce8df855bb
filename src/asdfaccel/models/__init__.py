"""Public model exports for asdfaccel."""

from __future__ import annotations

from .outcome import CANCELLED_REASON, OutcomeStatus, SyncOutcome
from .plugin_ref import PluginRef
from .report import SyncReport

__all__ = [
    "PluginRef",
    "OutcomeStatus",
    "SyncOutcome",
    "CANCELLED_REASON",
    "SyncReport",
]
