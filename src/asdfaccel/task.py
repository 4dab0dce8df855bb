"""SyncTask: the unit of work for one plugin."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, wait
from functools import partial
from typing import Optional

from asdfaccel.errors import AsdfAccelError, TaskFailureError, TaskTimeoutError
from asdfaccel.models import CANCELLED_REASON, PluginRef, SyncOutcome
from asdfaccel.registry import PluginUpdater
from asdfaccel.util.time import monotonic

logger = logging.getLogger(__name__)


class SyncTask:
    """
    Runs one plugin update and turns every result into a SyncOutcome.

    execute() never raises: a failing plugin must not abort its siblings.
    Running it twice without upstream changes yields the same outcome (or a
    skip), so callers may retry freely.
    """

    def __init__(self, updater: PluginUpdater, *, timeout: Optional[float] = None) -> None:
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0 when given")
        self._updater = updater
        self._timeout = timeout

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    def execute(
        self,
        plugin: PluginRef,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncOutcome:
        if cancel_event is not None and cancel_event.is_set():
            return SyncOutcome.skipped(CANCELLED_REASON)

        started = monotonic()
        try:
            outcome = self._update_within_deadline(plugin)
            if not isinstance(outcome, SyncOutcome):
                raise TaskFailureError(
                    "Updater returned an invalid outcome",
                    details={"plugin": plugin.name, "returned": type(outcome).__name__},
                )
        except AsdfAccelError as exc:
            outcome = SyncOutcome.failed(exc)
        except Exception as exc:
            logger.debug("Unexpected error syncing %s", plugin.name, exc_info=True)
            outcome = SyncOutcome.failed(
                TaskFailureError(
                    str(exc) or exc.__class__.__name__,
                    details={"plugin": plugin.name},
                    cause=exc,
                )
            )

        elapsed = monotonic() - started
        if self._timeout is not None and elapsed > self._timeout and outcome.status != "failed":
            outcome = SyncOutcome.failed(self._timeout_error(plugin))

        _log_outcome(plugin, outcome)
        return outcome.with_duration(elapsed)

    def _update_within_deadline(self, plugin: PluginRef) -> SyncOutcome:
        """
        Call the updater, waiting at most `timeout` seconds for it.

        The updater runs on a daemon helper thread so a hung update releases
        the calling worker once the deadline passes; its late result is
        discarded.

        Raises:
            TaskTimeoutError: if the updater has not returned in time.
        """
        if self._timeout is None:
            return self._updater.update(plugin, timeout=None)

        future: Future = Future()

        def _call() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._updater.update(plugin, timeout=self._timeout))
            except BaseException as exc:
                future.set_exception(exc)

        threading.Thread(
            target=_call,
            name=f"asdf-update-{plugin.name}",
            daemon=True,
        ).start()

        done, _ = wait([future], timeout=self._timeout)
        if not done:
            future.add_done_callback(partial(_log_discarded, plugin))
            raise self._timeout_error(plugin)
        return future.result()

    def _timeout_error(self, plugin: PluginRef) -> TaskTimeoutError:
        return TaskTimeoutError(
            f"Timed out syncing {plugin.name} after {self._timeout:g}s",
            details={"plugin": plugin.name, "timeout_sec": self._timeout},
        )


def _log_discarded(plugin: PluginRef, future: Future) -> None:
    logger.debug("Discarding result of timed-out update for %s", plugin.name)


def _log_outcome(plugin: PluginRef, outcome: SyncOutcome) -> None:
    if outcome.status == "failed":
        logger.warning("%s: failed (%s: %s)", plugin.name, outcome.error_type, outcome.error_message)
    elif outcome.status == "skipped":
        logger.info("%s: skipped (%s)", plugin.name, outcome.reason)
    else:
        logger.info("%s: synced", plugin.name)
