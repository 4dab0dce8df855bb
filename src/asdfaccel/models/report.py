"""Aggregate report for one sync run."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Iterable, Optional

from asdfaccel.util.time import now_utc, to_rfc3339

from .outcome import SyncOutcome
from .plugin_ref import PluginRef

logger = logging.getLogger(__name__)


class SyncReport:
    """
    Collects per-plugin outcomes as jobs complete.

    Notes:
        - outcomes are kept in completion order, not submission order.
        - counts are derived from outcomes and cannot be set directly.
        - record() and finalize() are serialized by an internal lock, so worker
          threads may report concurrently.
        - once finalized, the report rejects further outcomes.
    """

    def __init__(self, expected: Iterable[PluginRef]) -> None:
        self._expected: dict[str, PluginRef] = {}
        for plugin in expected:
            self._expected.setdefault(plugin.name, plugin)
        self._outcomes: list[tuple[PluginRef, SyncOutcome]] = []
        self._recorded: set[str] = set()
        self._lock = threading.RLock()
        self._finalized = False
        self._cancelled = False
        self.started_at: datetime = now_utc()
        self.finished_at: Optional[datetime] = None

    # ----------------------------
    # Accumulation
    # ----------------------------
    def record(self, plugin: PluginRef, outcome: SyncOutcome) -> bool:
        """
        Record one plugin's outcome.

        Returns:
            True if recorded; False if the report is finalized, the plugin
            already has an outcome, or the plugin was never selected.
        """
        with self._lock:
            if self._finalized:
                logger.warning(
                    "Discarding late outcome for %s (%s): run already finalized",
                    plugin.name,
                    outcome.status,
                )
                return False
            if plugin.name not in self._expected:
                logger.warning("Discarding outcome for unselected plugin %s", plugin.name)
                return False
            if plugin.name in self._recorded:
                logger.warning("Discarding duplicate outcome for %s", plugin.name)
                return False
            self._recorded.add(plugin.name)
            self._outcomes.append((plugin, outcome))
            return True

    def finalize(self, fill_reason: Optional[str] = None) -> "SyncReport":
        """
        Close the report. Idempotent.

        Args:
            fill_reason: if given, every selected plugin still lacking an
                outcome is recorded as skipped with this reason.
        """
        with self._lock:
            if self._finalized:
                return self
            if fill_reason is not None:
                for name, plugin in self._expected.items():
                    if name not in self._recorded:
                        self._recorded.add(name)
                        self._outcomes.append((plugin, SyncOutcome.skipped(fill_reason)))
            self._finalized = True
            self.finished_at = now_utc()
            return self

    def cancel(self, reason: str) -> bool:
        """
        Mark the run cancelled and finalize, filling pending plugins with
        Skipped(reason).

        Returns:
            False (and changes nothing) if the report is already finalized or
            every selected plugin already has an outcome.
        """
        with self._lock:
            if self._finalized or self.is_complete():
                return False
            self._cancelled = True
            self.finalize(reason)
            return True

    # ----------------------------
    # Views
    # ----------------------------
    @property
    def outcomes(self) -> list[tuple[PluginRef, SyncOutcome]]:
        with self._lock:
            return list(self._outcomes)

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def selected(self) -> int:
        return len(self._expected)

    @property
    def total(self) -> int:
        with self._lock:
            return len(self._outcomes)

    @property
    def succeeded(self) -> int:
        return self._count("succeeded")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    def _count(self, status: str) -> int:
        with self._lock:
            return sum(1 for _plugin, outcome in self._outcomes if outcome.status == status)

    def is_complete(self) -> bool:
        with self._lock:
            return len(self._recorded) == len(self._expected)

    def pending_names(self) -> list[str]:
        with self._lock:
            return [name for name in self._expected if name not in self._recorded]

    def outcome_for(self, name: str) -> Optional[SyncOutcome]:
        with self._lock:
            for plugin, outcome in self._outcomes:
                if plugin.name == name:
                    return outcome
        return None

    def all_succeeded(self) -> bool:
        """True when nothing failed and nothing was left undone by cancellation."""
        with self._lock:
            return all(
                outcome.status != "failed" and not outcome.is_cancelled
                for _plugin, outcome in self._outcomes
            )

    def summary_line(self) -> str:
        return f"{self.succeeded} succeeded / {self.failed} failed / {self.skipped} skipped"

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "started_at": to_rfc3339(self.started_at),
                "finished_at": to_rfc3339(self.finished_at) if self.finished_at else None,
                "finalized": self._finalized,
                "cancelled": self._cancelled,
                "total": len(self._outcomes),
                "succeeded": self.succeeded,
                "failed": self.failed,
                "skipped": self.skipped,
                "outcomes": [
                    {"plugin": plugin.name, **outcome.to_dict()}
                    for plugin, outcome in self._outcomes
                ],
            }

    def __repr__(self) -> str:
        return (
            f"SyncReport(total={self.total}, succeeded={self.succeeded}, "
            f"failed={self.failed}, skipped={self.skipped}, finalized={self._finalized})"
        )
