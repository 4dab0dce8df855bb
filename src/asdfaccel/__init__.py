"""asdfaccel public API."""

from __future__ import annotations

from asdfaccel.config import AcceleratorSettings
from asdfaccel.errors import (
    AsdfAccelError,
    ChecksumMismatchError,
    InvalidConcurrencyError,
    NetworkError,
    PluginNotFoundError,
    ProcessErrorInfo,
    RegistryUnavailableError,
    TaskFailureError,
    TaskTimeoutError,
    map_process_error,
)
from asdfaccel.manager import HealthStatus, PluginSyncManager
from asdfaccel.models import PluginRef, SyncOutcome, SyncReport
from asdfaccel.plan import SyncJob, SyncSelection, select_plugins
from asdfaccel.registry import AsdfCli, PluginRegistry, PluginUpdater
from asdfaccel.scheduler import JobHandle, RunState, SyncScheduler
from asdfaccel.task import SyncTask

__version__ = "0.1.0"

__all__ = [
    # High-level
    "PluginSyncManager",
    "HealthStatus",
    "AcceleratorSettings",
    # Engine
    "SyncScheduler",
    "JobHandle",
    "RunState",
    "SyncTask",
    # Plan / Models
    "SyncSelection",
    "select_plugins",
    "SyncJob",
    "PluginRef",
    "SyncOutcome",
    "SyncReport",
    # Collaborators
    "PluginRegistry",
    "PluginUpdater",
    "AsdfCli",
    # Errors
    "AsdfAccelError",
    "InvalidConcurrencyError",
    "RegistryUnavailableError",
    "TaskTimeoutError",
    "TaskFailureError",
    "PluginNotFoundError",
    "NetworkError",
    "ChecksumMismatchError",
    "ProcessErrorInfo",
    "map_process_error",
]
