"""
Job queue for the process-pool scheduler.

- Validates that a submitted target is callable
- Assigns each job a unique ID at submission time
- Hands jobs to the scheduler in insertion order

The queue is only touched by the parent's main control flow, never by
the SIGCHLD handler, so it needs no locking.
"""

import logging
from collections import deque
from typing import Any, Callable, Iterator, Optional, Sequence

from .entities import JobDescriptor


logger = logging.getLogger(__name__)


class JobQueue:
    """Ordered collection of pending JobDescriptors."""

    def __init__(self):
        self._jobs: deque[JobDescriptor] = deque()

    def submit(
        self,
        target: Callable[..., Any],
        args: Optional[Sequence[Any]] = None,
    ) -> Optional[str]:
        """
        Add a job to the end of the queue.

        Args:
            target: Callable invoked in the child as target(*args)
            args: Ordered positional arguments as a list or tuple (default: none)

        Returns:
            The new job ID, or None if target is not callable or args is
            not a list or tuple
        """
        if not callable(target):
            logger.warning(f"Rejected job: {target!r} is not callable")
            return None

        if args is not None and not isinstance(args, (list, tuple)):
            logger.warning(
                f"Rejected job: args must be a list or tuple, got {type(args).__name__}"
            )
            return None

        job = JobDescriptor.create(target, args)
        self._jobs.append(job)
        logger.debug(f"Queued job {job.job_id} ({job.name}, {len(job.args)} args)")
        return job.job_id

    def drain(self) -> Iterator[JobDescriptor]:
        """
        Yield pending jobs in insertion order, removing each as it is yielded.

        Jobs submitted while draining are picked up by the same drain.
        """
        while self._jobs:
            yield self._jobs.popleft()

    def pending(self) -> list[JobDescriptor]:
        """Snapshot of pending jobs in dispatch order."""
        return list(self._jobs)

    def clear(self) -> None:
        """Discard all pending jobs."""
        self._jobs.clear()

    def __len__(self) -> int:
        return len(self._jobs)
