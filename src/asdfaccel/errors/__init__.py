"""Public error exports for asdfaccel."""

from __future__ import annotations

from .exceptions import (
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

__all__ = [
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
