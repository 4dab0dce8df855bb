"""Per-plugin sync outcome."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Literal, Optional


OutcomeStatus = Literal["succeeded", "skipped", "failed"]

CANCELLED_REASON = "cancelled"


@dataclass(slots=True, frozen=True)
class SyncOutcome:
    """Result of syncing a single plugin."""

    status: OutcomeStatus

    reason: Optional[str] = None

    error_type: Optional[str] = None
    error_message: Optional[str] = None
    error_details: Optional[dict[str, Any]] = None

    duration_sec: Optional[float] = None

    @classmethod
    def succeeded(cls) -> "SyncOutcome":
        return cls(status="succeeded")

    @classmethod
    def skipped(cls, reason: str) -> "SyncOutcome":
        """Skip with a human-readable reason (e.g. "already up to date")."""
        return cls(status="skipped", reason=reason)

    @classmethod
    def failed(cls, exc: BaseException) -> "SyncOutcome":
        """Build a failure from an exception, keeping its class as classification."""
        return cls(
            status="failed",
            error_type=exc.__class__.__name__,
            error_message=str(exc),
            error_details=dict(getattr(exc, "details", None) or {}) or None,
        )

    @property
    def is_cancelled(self) -> bool:
        return self.status == "skipped" and self.reason == CANCELLED_REASON

    def with_duration(self, duration_sec: float) -> "SyncOutcome":
        return replace(self, duration_sec=duration_sec)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status}
        if self.reason is not None:
            data["reason"] = self.reason
        if self.error_type is not None:
            data["error_type"] = self.error_type
            data["error_message"] = self.error_message
        if self.error_details:
            data["error_details"] = self.error_details
        if self.duration_sec is not None:
            data["duration_sec"] = round(self.duration_sec, 3)
        return data
