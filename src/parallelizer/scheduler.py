"""
Process-pool scheduler.

- Drains the JobQueue one job at a time
- Blocks admission while the active-process count is at the ceiling
- Forks one child per admitted job
- Waits at a final barrier until every child has been reaped

What the scheduler MUST NOT do:
- Kill or time out children (no cancellation)
- Retry a failed fork
- Touch the active set outside the reaper's critical section
"""

import logging
import os
import signal
import sys
import time
from typing import Any, Callable, NoReturn, Optional, Sequence

from .config import (
    CHILD_EXIT_FAILURE,
    CHILD_EXIT_SUCCESS,
    DEFAULT_MAX_PROCESSES,
    DEFAULT_POLL_INTERVAL,
)
from .entities import JobDescriptor, JobOutcome, SchedulerState
from .errors import (
    ProcessCreationError,
    SchedulerBusyError,
    UnsupportedPlatformError,
)
from .job_queue import JobQueue
from .reaper import SignalReaper
from .run_log import RunLog


logger = logging.getLogger(__name__)


def _system_exit_code(exc: SystemExit) -> int:
    if exc.code is None:
        return CHILD_EXIT_SUCCESS
    if isinstance(exc.code, int) and 0 <= exc.code <= 255:
        return exc.code
    return CHILD_EXIT_FAILURE


def execute_job(job: JobDescriptor) -> int:
    """
    Run a job in the current process and map its result to an exit code.

    A return value of exactly False means failure; anything else is
    success. An exception raised by the target is logged and treated like
    the failure sentinel. SystemExit keeps its own code when it is a valid
    exit status (0-255).

    Returns:
        Exit code for the child process
    """
    try:
        result = job.target(*job.args)
    except SystemExit as e:
        return _system_exit_code(e)
    except Exception:
        logger.exception(f"Job {job.job_id} ({job.name}) raised")
        return CHILD_EXIT_FAILURE

    return CHILD_EXIT_FAILURE if result is False else CHILD_EXIT_SUCCESS


def _flush_std_streams() -> None:
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (AttributeError, ValueError):
            pass


def _child_main(job: JobDescriptor) -> NoReturn:
    """Entry point of a forked child. Never returns into the caller's stack."""
    code = CHILD_EXIT_FAILURE
    try:
        # The parent's handler and reaper state are meaningless here
        signal.signal(signal.SIGCHLD, signal.SIG_DFL)
        code = execute_job(job)
    finally:
        _flush_std_streams()
        os._exit(code)


class ProcessPoolScheduler:
    """
    Runs submitted jobs in forked child processes.

    Usage:
        scheduler = ProcessPoolScheduler()
        scheduler.configure_concurrency(2)
        scheduler.submit(some_function, ["param1", "param2"])
        scheduler.run()
        log = scheduler.get_log()

    Per-run states: IDLE -> ADMITTING -> DRAINING -> BARRIER -> IDLE.
    The log of a run stays readable until the next run starts.
    """

    def __init__(
        self,
        max_processes: int = DEFAULT_MAX_PROCESSES,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """
        Initialize ProcessPoolScheduler.

        Args:
            max_processes: Maximum number of concurrently running children
            poll_interval: Seconds between rechecks while waiting

        Raises:
            UnsupportedPlatformError: If os.fork or SIGCHLD is unavailable
            ValueError: If max_processes or poll_interval is not positive
        """
        if not hasattr(os, "fork"):
            raise UnsupportedPlatformError("os.fork")
        if not hasattr(signal, "SIGCHLD"):
            raise UnsupportedPlatformError("signal.SIGCHLD")

        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")

        self.poll_interval = poll_interval
        self._max_processes = DEFAULT_MAX_PROCESSES
        if not self.configure_concurrency(max_processes):
            raise ValueError(f"max_processes must be a positive integer, got {max_processes!r}")

        self._queue = JobQueue()
        self._run_log = RunLog()
        self._reaper = SignalReaper(self._run_log)
        self._state = SchedulerState.IDLE

    # =========================================================================
    # Configuration & Submission
    # =========================================================================

    def configure_concurrency(self, max_processes: int) -> bool:
        """
        Set the maximum number of concurrent processes.

        Returns:
            True on success, False if max_processes is not a positive int
            (the previous value is kept)
        """
        if (
            isinstance(max_processes, bool)
            or not isinstance(max_processes, int)
            or max_processes <= 0
        ):
            logger.warning(
                f"Rejected concurrency {max_processes!r}, keeping {self._max_processes}"
            )
            return False

        self._max_processes = max_processes
        return True

    def submit(
        self,
        target: Callable[..., Any],
        args: Optional[Sequence[Any]] = None,
    ) -> bool:
        """
        Add a job to the queue.

        Args:
            target: Callable run in the child as target(*args)
            args: Positional arguments, as an ordered sequence

        Returns:
            True on success, False if target isn't callable or args is not a
            list or tuple
        """
        return self._queue.submit(target, args) is not None

    # =========================================================================
    # Inspection
    # =========================================================================

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def max_processes(self) -> int:
        return self._max_processes

    @property
    def active_count(self) -> int:
        """Children forked in the current run and not reaped yet."""
        return self._reaper.active_count

    @property
    def pending_count(self) -> int:
        """Jobs submitted and not yet admitted."""
        return len(self._queue)

    def get_log(self) -> list[str]:
        """All log entries of the last run, in termination order."""
        return self._run_log.entries()

    def get_outcomes(self) -> list[JobOutcome]:
        """Structured outcomes of the last run (with job IDs), in termination order."""
        return self._run_log.outcomes()

    # =========================================================================
    # Run
    # =========================================================================

    def run(self) -> list[str]:
        """
        Run all queued jobs and block until every one has terminated.

        Returns:
            The run's log entries

        Raises:
            SchedulerBusyError: If a run is already in progress
            ProcessCreationError: If a child process could not be forked
        """
        if self._state != SchedulerState.IDLE:
            raise SchedulerBusyError(f"Cannot start run in {self._state.value} state")

        self._run_log.clear()

        total = len(self._queue)
        if total == 0:
            logger.debug("No jobs queued, nothing to run")
            return []

        logger.info(
            f"Starting run: {total} jobs, max {self._max_processes} concurrent processes"
        )
        started_at = time.monotonic()

        try:
            with self._reaper.installed():
                for job in self._queue.drain():
                    self._wait_for_slot()
                    self._spawn(job)

                self._state = SchedulerState.BARRIER
                self._wait_for_barrier()
        finally:
            self._state = SchedulerState.IDLE
            self._queue.clear()
            self._reaper.discard_orphans()

        failed = sum(1 for outcome in self.get_outcomes() if not outcome.succeeded)
        logger.info(
            f"Run finished in {time.monotonic() - started_at:.2f}s: "
            f"{total} jobs, {failed} failed"
        )
        return self.get_log()

    def _wait_for_slot(self) -> None:
        """Block until the active count is below the ceiling."""
        if self._reaper.active_count >= self._max_processes:
            self._state = SchedulerState.ADMITTING
            logger.debug(
                f"Concurrency ceiling reached ({self._max_processes}), waiting for a slot"
            )
        while self._reaper.active_count >= self._max_processes:
            time.sleep(self.poll_interval)
            self._reaper.reap()

    def _wait_for_barrier(self) -> None:
        """Block until every child of this run has been reaped."""
        logger.debug(f"Waiting for {self._reaper.active_count} active processes")
        while self._reaper.active_count:
            time.sleep(self.poll_interval)
            self._reaper.reap()

    def _spawn(self, job: JobDescriptor) -> int:
        """Fork a child for job and register it with the reaper."""
        self._state = SchedulerState.DRAINING
        _flush_std_streams()
        mark = self._reaper.mark()

        try:
            pid = os.fork()
        except OSError as e:
            logger.error(f"Fork failed for job {job.job_id}: {e}")
            abandoned = self._reaper.forget_active()
            if abandoned:
                logger.warning(
                    f"Aborting run with {len(abandoned)} children still running"
                )
            raise ProcessCreationError(job.job_id, e) from e

        if pid == 0:
            _child_main(job)

        # The child may already have exited and been reaped by the handler
        replayed = self._reaper.register(pid, job.job_id, since=mark)
        if replayed is not None:
            logger.debug(f"Job {job.job_id} (PID {pid}) finished before registration")
        else:
            logger.debug(f"Forked PID {pid} for job {job.job_id} ({job.name})")

        return pid
