"""
Append-only completion log for a scheduler run.

Written from the SIGCHLD handler, which runs on the main thread between
arbitrary bytecodes, and read by the caller (possibly from another thread).
The lock is reentrant so a handler that interrupts a reader on the same
thread does not deadlock.
"""

import threading

from .entities import JobOutcome


class RunLog:
    """Ordered, human-readable record of child terminations."""

    def __init__(self):
        self._lock = threading.RLock()
        self._entries: list[str] = []
        self._outcomes: list[JobOutcome] = []

    def record(self, message: str) -> None:
        """Append a message. Empty or blank messages are ignored."""
        if not message or not message.strip():
            return
        with self._lock:
            self._entries.append(message)

    def record_outcome(self, outcome: JobOutcome) -> None:
        """Append a terminal job outcome together with its log line."""
        with self._lock:
            self._outcomes.append(outcome)
            self.record(outcome.message)

    def entries(self) -> list[str]:
        """All messages in observation order."""
        with self._lock:
            return list(self._entries)

    def outcomes(self) -> list[JobOutcome]:
        """All job outcomes in observation order."""
        with self._lock:
            return list(self._outcomes)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._outcomes.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
