"""
Parallelizer domain entities.

- JobDescriptor: a pending unit of work (callable + ordered arguments)
- ActiveProcess: a forked child the parent is still waiting on
- SignalQueueEntry: a child exit reaped before the parent registered its PID
- JobOutcome: structured form of one RunLog entry
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional
import uuid


class SchedulerState(str, Enum):
    """
    Per-run scheduler states.

    IDLE -> ADMITTING -> DRAINING -> BARRIER -> IDLE
    - IDLE: no run in progress
    - ADMITTING: waiting for a free slot below the concurrency ceiling
    - DRAINING: forking admitted jobs while the queue is non-empty
    - BARRIER: queue drained, waiting for every active child to be reaped
    """

    IDLE = "IDLE"
    ADMITTING = "ADMITTING"
    DRAINING = "DRAINING"
    BARRIER = "BARRIER"


def generate_job_id() -> str:
    """Generate a new job ID."""
    return str(uuid.uuid4())


def format_exit_message(pid: int, exit_code: int) -> str:
    """Build the RunLog line for a terminated child."""
    return f"{pid} exited with status {exit_code}"


@dataclass(frozen=True)
class JobDescriptor:
    """
    Single unit of work waiting in the JobQueue.

    Immutable. Ownership moves to the forked child on admission; the child
    works on its own copy of args, so nothing is shared with the parent.
    """

    job_id: str
    target: Callable[..., Any]
    args: tuple = field(default_factory=tuple)

    @classmethod
    def create(cls, target: Callable[..., Any], args=None) -> "JobDescriptor":
        """Create a new JobDescriptor with generated ID."""
        return cls(
            job_id=generate_job_id(),
            target=target,
            args=tuple(args) if args is not None else (),
        )

    @property
    def name(self) -> str:
        """Readable name of the target, for logging."""
        return getattr(self.target, "__qualname__", None) or repr(self.target)


@dataclass(frozen=True)
class ActiveProcess:
    """A forked child that has not been reaped yet."""

    pid: int
    job_id: str


@dataclass(frozen=True)
class SignalQueueEntry:
    """
    Exit status reaped for a PID the parent had not registered yet.

    Buffered by the reaper and replayed once the parent finishes its
    post-fork bookkeeping for that PID. sequence orders entries by the
    time they were buffered; an entry older than the fork that produced a
    PID belongs to an earlier owner of that PID.
    """

    pid: int
    status: int
    sequence: int = field(default=0, compare=False)


@dataclass(frozen=True)
class JobOutcome:
    """Terminal result of one admitted job."""

    pid: int
    exit_code: int
    job_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def message(self) -> str:
        return format_exit_message(self.pid, self.exit_code)
