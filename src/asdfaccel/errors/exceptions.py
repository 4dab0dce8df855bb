"""Exception hierarchy and subprocess error mapping for asdfaccel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class AsdfAccelError(Exception):
    """
    Base exception for asdfaccel.

    Attributes:
        details: Optional structured information (e.g., plugin name, exit code).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class InvalidConcurrencyError(AsdfAccelError):
    """Raised when max_parallel is not a positive integer."""


class RegistryUnavailableError(AsdfAccelError):
    """Raised when installed plugins cannot be enumerated (asdf missing, broken)."""


class TaskTimeoutError(AsdfAccelError):
    """Raised when a single plugin sync exceeds its timeout."""


class TaskFailureError(AsdfAccelError):
    """Raised for per-plugin failures that have no finer classification."""


class PluginNotFoundError(TaskFailureError):
    """Raised when asdf does not know the plugin being synced."""


class NetworkError(TaskFailureError):
    """Raised when the plugin's upstream repository cannot be reached."""


class ChecksumMismatchError(TaskFailureError):
    """Raised when downloaded plugin content fails verification."""


@dataclass(frozen=True)
class ProcessErrorInfo:
    """Lightweight description of a failed subprocess, used for classification."""

    returncode: int
    command: str
    stderr: str = ""
    details: dict[str, Any] | None = None


_NOT_FOUND_KEYWORDS: tuple[str, ...] = (
    "no such plugin",
    "not installed",
    "plugin not found",
)

_NETWORK_KEYWORDS: tuple[str, ...] = (
    "could not resolve host",
    "unable to access",
    "connection refused",
    "connection timed out",
    "network is unreachable",
    "timed out",
)

_CHECKSUM_KEYWORDS: tuple[str, ...] = (
    "checksum",
    "sha256 mismatch",
    "signature",
)


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(key in lowered for key in keywords)


def map_process_error(
    info: ProcessErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> AsdfAccelError:
    """
    Map a failed asdf/git subprocess to an asdfaccel exception.

    Policy:
        - 127 (command not found) -> RegistryUnavailableError
        - stderr names an unknown plugin -> PluginNotFoundError
        - stderr reports DNS/connection trouble -> NetworkError
        - stderr reports checksum/signature trouble -> ChecksumMismatchError
        - otherwise -> TaskFailureError
    """
    details: dict[str, Any] = {
        "returncode": info.returncode,
        "command": info.command,
    }
    if info.details:
        details.update(info.details)

    stderr = (info.stderr or "").strip()
    message = stderr.splitlines()[-1] if stderr else f"Command failed ({info.returncode}): {info.command}"

    if info.returncode == 127:
        return RegistryUnavailableError(message, details=details, cause=cause)
    if _contains_any(stderr, _NOT_FOUND_KEYWORDS):
        return PluginNotFoundError(message, details=details, cause=cause)
    if _contains_any(stderr, _NETWORK_KEYWORDS):
        return NetworkError(message, details=details, cause=cause)
    if _contains_any(stderr, _CHECKSUM_KEYWORDS):
        return ChecksumMismatchError(message, details=details, cause=cause)

    return TaskFailureError(message, details=details, cause=cause)
