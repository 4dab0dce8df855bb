"""SyncScheduler: bounded worker pool for plugin sync runs."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from functools import partial
from typing import Optional, Sequence

from asdfaccel.errors import InvalidConcurrencyError, TaskFailureError
from asdfaccel.models import CANCELLED_REASON, PluginRef, SyncOutcome, SyncReport
from asdfaccel.plan import SyncJob, build_jobs
from asdfaccel.task import SyncTask
from asdfaccel.util.ids import new_run_id
from asdfaccel.util.system import default_parallelism

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Lifecycle of one run. FINALIZED is terminal."""

    PENDING = "pending"
    SELECTING = "selecting"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    FINALIZED = "finalized"


def resolve_parallelism(max_parallel: Optional[int]) -> int:
    """
    Validate a worker count; None means one worker per CPU.

    Raises:
        InvalidConcurrencyError: if max_parallel is not an integer >= 1.
    """
    if max_parallel is None:
        return default_parallelism()
    if isinstance(max_parallel, bool) or not isinstance(max_parallel, int):
        raise InvalidConcurrencyError(
            "max_parallel must be an integer",
            details={"max_parallel": repr(max_parallel)},
        )
    if max_parallel < 1:
        raise InvalidConcurrencyError(
            f"max_parallel must be >= 1 (got {max_parallel})",
            details={"max_parallel": max_parallel},
        )
    return max_parallel


class JobHandle:
    """
    Handle on a running (or finished) sync run.

    Callers may poll done()/report, block on wait(), or cancel(). The report
    is live: it fills in as jobs complete.
    """

    def __init__(self, run_id: str, report: SyncReport) -> None:
        self.run_id = run_id
        self._report = report
        self._state = RunState.PENDING
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._cancel_event = threading.Event()
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def report(self) -> SyncReport:
        return self._report

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> SyncReport:
        """
        Block until the run is finalized and return its report.

        Raises:
            TimeoutError: if the run is still going after timeout seconds.
        """
        if not self._done.wait(timeout):
            raise TimeoutError(f"Sync run {self.run_id} still in progress")
        return self._report

    def cancel(self) -> bool:
        """
        Stop admitting jobs and finalize now.

        Jobs without an outcome at this point are recorded as skipped
        ("cancelled"); in-flight tasks keep running until their own I/O
        boundary and their late outcomes are discarded.

        Returns:
            False if the run had already finished, including when its last
            job completed concurrently with this call.
        """
        with self._lock:
            if self._state is RunState.FINALIZED:
                return False
        if not self._report.cancel(CANCELLED_REASON):
            return False
        self._cancel_event.set()
        logger.info("Cancelling sync run %s", self.run_id)

        executor = self._executor
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
        self._finalize()
        return True

    # ----------------------------
    # Scheduler side
    # ----------------------------
    def _set_state(self, state: RunState) -> None:
        with self._lock:
            if self._state is RunState.FINALIZED:
                return
            logger.debug("Run %s: %s -> %s", self.run_id, self._state.value, state.value)
            self._state = state

    def _attach(self, executor: ThreadPoolExecutor) -> None:
        self._executor = executor

    def _on_job_done(self, job: SyncJob, future: Future) -> None:
        # Only cancel() cancels futures, and it has already filled their outcomes.
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            outcome = SyncOutcome.failed(
                TaskFailureError(str(exc), details={"plugin": job.plugin.name}, cause=exc)
            )
        else:
            outcome = future.result()

        self._report.record(job.plugin, outcome)
        if self._report.is_complete():
            self._finalize()

    def _finalize(self) -> None:
        self._report.finalize()
        with self._lock:
            if self._state is RunState.FINALIZED:
                return
            self._state = RunState.FINALIZED
        self._done.set()
        logger.info("Sync run %s finished: %s", self.run_id, self._report.summary_line())


class SyncScheduler:
    """
    Runs one SyncTask per selected plugin with at most max_parallel in flight.

    Jobs are admitted in selection order; outcomes land in the report in
    completion order.
    """

    def __init__(self, task: SyncTask, *, max_parallel: Optional[int] = None) -> None:
        if max_parallel is not None:
            resolve_parallelism(max_parallel)
        self._task = task
        self._max_parallel = max_parallel

    def run(
        self,
        selection: Sequence[PluginRef],
        max_parallel: Optional[int] = None,
        detached: bool = False,
    ) -> SyncReport | JobHandle:
        """
        Sync the selected plugins.

        - detached=False: block and return the finalized SyncReport.
        - detached=True: return a JobHandle immediately.

        Raises:
            InvalidConcurrencyError: before any job starts.
        """
        handle = self.start(selection, max_parallel)
        if detached:
            return handle
        return handle.wait()

    def start(
        self,
        selection: Sequence[PluginRef],
        max_parallel: Optional[int] = None,
    ) -> JobHandle:
        """Start a run without blocking and return its handle."""
        workers = resolve_parallelism(
            max_parallel if max_parallel is not None else self._max_parallel
        )

        report = SyncReport(selection)
        handle = JobHandle(new_run_id(), report)

        handle._set_state(RunState.SELECTING)
        jobs = build_jobs(_dedupe(selection), workers)
        logger.info(
            "Sync run %s: %d plugin(s), %d worker(s)",
            handle.run_id,
            len(jobs),
            workers,
        )
        if not jobs:
            handle._finalize()
            return handle

        executor = ThreadPoolExecutor(
            max_workers=min(workers, len(jobs)),
            thread_name_prefix=f"asdf-sync-{handle.run_id}",
        )
        handle._attach(executor)

        handle._set_state(RunState.DISPATCHING)
        for job in jobs:
            future = executor.submit(self._run_job, handle, job)
            future.add_done_callback(partial(handle._on_job_done, job))
        handle._set_state(RunState.COLLECTING)

        # No more submissions; idle workers exit once the queue drains.
        executor.shutdown(wait=False)
        return handle

    def _run_job(self, handle: JobHandle, job: SyncJob) -> SyncOutcome:
        logger.debug(
            "Run %s: job %d (%s) in slot %d",
            handle.run_id,
            job.seq,
            job.plugin.name,
            job.slot,
        )
        return self._task.execute(job.plugin, handle._cancel_event)


def _dedupe(selection: Sequence[PluginRef]) -> list[PluginRef]:
    seen: set[str] = set()
    out: list[PluginRef] = []
    for plugin in selection:
        if plugin.name in seen:
            continue
        seen.add(plugin.name)
        out.append(plugin)
    return out
