"""
Parallelizer test fixtures.

Base fixtures:
  - Scheduler with fast polling
  - Fresh RunLog / SignalReaper
  - Scripted waitpid for deterministic reaping

Scheduler tests fork real children. Job callables can be closures:
children are forked, never pickled.
"""

import os
import signal
import time
from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest

from parallelizer import ProcessPoolScheduler, RunLog, SignalReaper


# Fast polling for tests
TEST_POLL_INTERVAL = 0.01


def _exit_status(code: int) -> int:
    return code << 8


class ScriptedWaitpid:
    """
    Stand-in for os.waitpid returning a scripted list of terminations.

    Each pending (pid, status) is returned once; afterwards (0, 0) means
    "children exist but none terminated", or ChildProcessError when
    no_children is set.
    """

    def __init__(self, exits: Optional[Iterable[tuple[int, int]]] = None):
        self.pending: list[tuple[int, int]] = list(exits or [])
        self.calls = 0
        self.no_children = False

    def add(self, pid: int, status: int) -> None:
        self.pending.append((pid, status))

    def __call__(self, pid: int, options: int) -> tuple[int, int]:
        self.calls += 1
        if self.pending:
            return self.pending.pop(0)
        if self.no_children:
            raise ChildProcessError(10, "No child processes")
        return 0, 0


@pytest.fixture
def scheduler() -> ProcessPoolScheduler:
    """Scheduler with ceiling 2 and fast polling."""
    return ProcessPoolScheduler(max_processes=2, poll_interval=TEST_POLL_INTERVAL)


@pytest.fixture
def run_log() -> RunLog:
    return RunLog()


@pytest.fixture
def reaper(run_log: RunLog) -> SignalReaper:
    return SignalReaper(run_log)


@pytest.fixture
def exit_status() -> Callable[[int], int]:
    """Builds the raw waitpid status for a normal exit with a given code."""
    return _exit_status


@pytest.fixture
def scripted_waitpid(monkeypatch) -> ScriptedWaitpid:
    """Replace os.waitpid with a scripted fake."""
    fake = ScriptedWaitpid()
    monkeypatch.setattr(os, "waitpid", fake)
    return fake


@pytest.fixture(autouse=True)
def restore_sigchld():
    """Fail loudly if a test leaves a SIGCHLD handler behind."""
    before = signal.getsignal(signal.SIGCHLD)
    yield
    after = signal.getsignal(signal.SIGCHLD)
    signal.signal(signal.SIGCHLD, before)
    assert after == before, "SIGCHLD handler was not restored"


@pytest.fixture
def concurrency_probe(tmp_path: Path) -> Callable:
    """
    Factory for jobs that record how many probe jobs run at the same time.

    Each job creates a marker file while it runs and writes the number of
    markers it observed. A marker only exists while its process is alive,
    so the observed count never exceeds true concurrency.

    make_job.peak() and make_job.finished() read the results after a run.
    """
    markers = tmp_path / "markers"
    observed = tmp_path / "observed"
    markers.mkdir()
    observed.mkdir()

    def make_job(name: str, duration: float = 0.2, result=True) -> Callable:
        def job():
            marker = markers / name
            marker.touch()
            try:
                seen = len(list(markers.iterdir()))
                time.sleep(duration)
                seen = max(seen, len(list(markers.iterdir())))
                (observed / name).write_text(str(seen))
            finally:
                marker.unlink()
            return result

        return job

    def peak() -> int:
        counts = [int(p.read_text()) for p in observed.iterdir()]
        return max(counts) if counts else 0

    def finished() -> int:
        return len(list(observed.iterdir()))

    make_job.peak = peak
    make_job.finished = finished
    return make_job
