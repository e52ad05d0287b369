"""
Process-parallel job runner.

Submit callables with their arguments, run them in forked child processes
under a concurrency ceiling, then read one log line per finished job.
"""

from .entities import (
    SchedulerState,
    JobDescriptor,
    ActiveProcess,
    SignalQueueEntry,
    JobOutcome,
)
from .errors import (
    ParallelizerError,
    UnsupportedPlatformError,
    ProcessCreationError,
    SchedulerBusyError,
    JobResolutionError,
    JobFileError,
)
from .job_queue import JobQueue
from .run_log import RunLog
from .reaper import SignalReaper
from .scheduler import ProcessPoolScheduler, execute_job
from .resolver import resolve_target

__all__ = [
    # Entities
    "SchedulerState",
    "JobDescriptor",
    "ActiveProcess",
    "SignalQueueEntry",
    "JobOutcome",
    # Errors
    "ParallelizerError",
    "UnsupportedPlatformError",
    "ProcessCreationError",
    "SchedulerBusyError",
    "JobResolutionError",
    "JobFileError",
    # Queue & Log
    "JobQueue",
    "RunLog",
    # Reaping
    "SignalReaper",
    # Scheduler
    "ProcessPoolScheduler",
    "execute_job",
    # Resolution
    "resolve_target",
]
