"""
SIGCHLD reaper for the process-pool scheduler.

Owns the state shared between the parent's main control flow and the
signal handler:
- the active set (pid -> ActiveProcess)
- the buffer of exits reaped before their PID was registered
- the RunLog (written on every known termination)

Python runs signal handlers on the main thread between bytecodes, so the
handler can interrupt the parent anywhere, including halfway through its
post-fork bookkeeping. All mutations of the shared state happen inside
deferred(): a signal that arrives while it is held only marks a reap as
pending, and the pending reap runs when the section is left.
"""

import logging
import os
import signal
from contextlib import contextmanager
from typing import Iterator, Optional

from .entities import ActiveProcess, JobOutcome, SignalQueueEntry
from .run_log import RunLog


logger = logging.getLogger(__name__)


class SignalReaper:
    """
    Drains terminated children and classifies them as known or orphaned.

    One SIGCHLD can stand for several terminations, so every pass loops on
    a non-blocking waitpid until no terminated child is left.
    """

    def __init__(self, run_log: RunLog):
        """
        Initialize SignalReaper.

        Args:
            run_log: Log receiving one entry per reaped known child
        """
        self.run_log = run_log
        self._active: dict[int, ActiveProcess] = {}
        self._signal_queue: dict[int, SignalQueueEntry] = {}
        self._sequence = 0
        self._critical = False
        self._reap_pending = False
        self._previous_handler = None
        self._installed = False

    # =========================================================================
    # Inspection
    # =========================================================================

    @property
    def active_count(self) -> int:
        """Number of forked children not yet reaped."""
        return len(self._active)

    def active_processes(self) -> list[ActiveProcess]:
        """Snapshot of the active set."""
        with self.deferred():
            return list(self._active.values())

    def buffered(self) -> list[SignalQueueEntry]:
        """Snapshot of exits waiting for their PID to be registered."""
        with self.deferred():
            return list(self._signal_queue.values())

    # =========================================================================
    # Handler installation
    # =========================================================================

    @contextmanager
    def installed(self) -> Iterator["SignalReaper"]:
        """
        Install the SIGCHLD handler for the duration of a run.

        The previous handler is restored on exit, so each scheduler
        instance only receives notifications while it is running.
        Must be entered from the main thread.
        """
        self._previous_handler = signal.signal(signal.SIGCHLD, self.handle_signal)
        self._installed = True
        logger.debug("SIGCHLD handler installed")
        try:
            yield self
        finally:
            previous = self._previous_handler
            signal.signal(
                signal.SIGCHLD,
                previous if previous is not None else signal.SIG_DFL,
            )
            self._previous_handler = None
            self._installed = False
            logger.debug("SIGCHLD handler restored")

    @property
    def is_installed(self) -> bool:
        return self._installed

    def handle_signal(self, signum: int, frame) -> None:
        """SIGCHLD handler entry point."""
        if self._critical:
            self._reap_pending = True
            return
        self.reap()

    # =========================================================================
    # Critical section
    # =========================================================================

    @contextmanager
    def deferred(self) -> Iterator[None]:
        """
        Hold off reaping while shared state is being mutated.

        Re-entrant: nested use is a no-op. On exit of the outermost section
        any reap requested in the meantime is performed.
        """
        if self._critical:
            yield
            return

        self._critical = True
        try:
            yield
        finally:
            self._critical = False
            if self._reap_pending:
                self.reap()

    # =========================================================================
    # Reaping
    # =========================================================================

    def reap(self) -> int:
        """
        Reap every terminated child currently available.

        Safe to call from the handler or from the main flow (the scheduler
        calls it on each poll tick in case a notification was coalesced
        away or arrived while no handler was installed).

        Returns:
            Number of children reaped in this pass
        """
        with self.deferred():
            self._reap_pending = False
            return self._drain()

    def _drain(self) -> int:
        reaped = 0
        while True:
            try:
                pid, status = os.waitpid(-1, os.WNOHANG)
            except ChildProcessError:
                # No children left at all
                break

            if pid == 0:
                break

            self._on_child_exit(pid, status)
            reaped += 1

        return reaped

    def _on_child_exit(self, pid: int, status: int) -> None:
        """Log a known termination or buffer an orphaned one."""
        process = self._active.pop(pid, None)

        if process is None:
            # A second exit for the same PID means the PID was reused; the
            # older entry belongs to a previous owner.
            if pid in self._signal_queue:
                logger.warning(f"Replacing stale buffered exit of PID {pid}")
            self._sequence += 1
            self._signal_queue[pid] = SignalQueueEntry(
                pid=pid, status=status, sequence=self._sequence
            )
            logger.debug(f"Buffered exit of unregistered PID {pid}")
            return

        exit_code = os.waitstatus_to_exitcode(status)
        self.run_log.record_outcome(
            JobOutcome(pid=pid, exit_code=exit_code, job_id=process.job_id)
        )
        logger.info(f"Job {process.job_id} (PID {pid}) exited with status {exit_code}")

    # =========================================================================
    # Bookkeeping called by the scheduler
    # =========================================================================

    def mark(self) -> int:
        """Sequence number of the most recently buffered exit."""
        return self._sequence

    def register(
        self,
        pid: int,
        job_id: str,
        since: Optional[int] = None,
    ) -> Optional[SignalQueueEntry]:
        """
        Record a freshly forked child and reconcile an early exit.

        If the child already terminated and was reaped before this call,
        its buffered exit is replayed through the normal completion path
        and discarded.

        Args:
            pid: PID returned by fork
            job_id: Job run by the child
            since: mark() taken just before fork. A PID is only handed out
                again after its previous owner was reaped, so entries
                buffered at or before this mark are stale and dropped.

        Returns:
            The replayed entry, or None if the child had not exited yet
        """
        with self.deferred():
            self._active[pid] = ActiveProcess(pid=pid, job_id=job_id)
            entry = self._signal_queue.pop(pid, None)
            if entry is None:
                return None

            if since is not None and entry.sequence <= since:
                logger.warning(f"Discarding stale exit of reused PID {pid}")
                return None

            logger.debug(f"Replaying buffered exit of PID {pid}")
            self._on_child_exit(entry.pid, entry.status)
            return entry

    def discard_orphans(self) -> list[SignalQueueEntry]:
        """
        Drop buffered exits that never matched a registered PID.

        These belong to children forked by someone else in this process.
        They are dropped at the end of a run so a reused PID cannot be
        matched against a stale status.
        """
        with self.deferred():
            orphans = list(self._signal_queue.values())
            self._signal_queue.clear()
        for entry in orphans:
            logger.warning(f"Discarding exit of unknown child PID {entry.pid}")
        return orphans

    def forget_active(self) -> list[ActiveProcess]:
        """Stop tracking all active children (used when a run aborts)."""
        with self.deferred():
            abandoned = list(self._active.values())
            self._active.clear()
        return abandoned
