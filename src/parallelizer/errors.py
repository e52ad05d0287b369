"""
Parallelizer-specific exceptions.

Rejected submissions and invalid concurrency values are reported through
boolean return values, not exceptions. Only conditions that abort a run
or prevent one from starting are raised.
"""

from typing import Optional


class ParallelizerError(Exception):
    """Base exception for all parallelizer errors."""
    pass


class UnsupportedPlatformError(ParallelizerError):
    """Raised when the interpreter lacks os.fork or SIGCHLD (e.g. Windows)."""

    def __init__(self, missing: str):
        self.missing = missing
        super().__init__(f"Process parallelism not available on this platform: missing {missing}")


class ProcessCreationError(ParallelizerError):
    """
    Raised when the OS refuses to create a new process.

    Fatal for the run. Children that were already started are not killed,
    they keep running to natural completion.
    """

    def __init__(self, job_id: str, cause: Optional[BaseException] = None):
        self.job_id = job_id
        self.cause = cause
        super().__init__(f"Fork failed for job {job_id}: {cause}")


class SchedulerBusyError(ParallelizerError):
    """Raised when run() is called while a run is already in progress."""
    pass


class JobResolutionError(ParallelizerError):
    """Raised when a 'module:attribute' target cannot be resolved to a callable."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Cannot resolve job target '{target}': {reason}")


class JobFileError(ParallelizerError):
    """Raised when a job file cannot be read or fails validation."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid job file {path}: {reason}")
