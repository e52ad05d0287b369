"""
Configuration constants for the parallelizer.

Defaults can be overridden through environment variables (a .env file is
loaded by the CLI entry point).
"""

import logging
import os
from dataclasses import dataclass


logger = logging.getLogger(__name__)

# Concurrency
DEFAULT_MAX_PROCESSES = 4

# Seconds between rechecks while waiting for a free slot or for the barrier
DEFAULT_POLL_INTERVAL = 0.1

DEFAULT_LOG_LEVEL = "INFO"

# Environment variable names
ENV_MAX_PROCESSES = "PARALLELIZER_MAX_PROCESSES"
ENV_POLL_INTERVAL = "PARALLELIZER_POLL_INTERVAL"
ENV_LOG_LEVEL = "PARALLELIZER_LOG_LEVEL"

# Child process exit codes
CHILD_EXIT_SUCCESS = 0
CHILD_EXIT_FAILURE = 1

# CLI exit codes
EXIT_SUCCESS = 0
EXIT_JOB_FAILED = 1
EXIT_INVALID_INPUT = 2
EXIT_FORK_FAILED = 3


@dataclass(frozen=True)
class Settings:
    """Effective runtime settings."""

    max_processes: int = DEFAULT_MAX_PROCESSES
    poll_interval: float = DEFAULT_POLL_INTERVAL
    log_level: str = DEFAULT_LOG_LEVEL


def _read_positive(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default

    try:
        value = cast(raw.strip())
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a valid number, using {default}")
        return default

    if value <= 0:
        logger.warning(f"Ignoring {name}={raw!r}: must be positive, using {default}")
        return default

    return value


def load_settings() -> Settings:
    """
    Build Settings from the environment.

    Unparsable or non-positive values fall back to the defaults.
    """
    return Settings(
        max_processes=_read_positive(ENV_MAX_PROCESSES, DEFAULT_MAX_PROCESSES, int),
        poll_interval=_read_positive(ENV_POLL_INTERVAL, DEFAULT_POLL_INTERVAL, float),
        log_level=os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper(),
    )
