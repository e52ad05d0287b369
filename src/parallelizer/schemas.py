"""
Job file schemas.

A job file is JSON, either an object:

    {"max_processes": 2, "jobs": [{"target": "time:sleep", "args": [1]}]}

or a bare list of job objects.
"""

import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from .errors import JobFileError


class JobSpec(BaseModel):
    """One job entry: a resolvable target and its positional arguments."""

    target: str = Field(
        ...,
        pattern=r"^[\w.]+:[\w.]+$",
        description="Callable reference as 'package.module:attribute'",
        json_schema_extra={"examples": ["time:sleep", "mypkg.jobs:build_report"]},
    )
    args: List[Any] = Field(default=[], description="Positional arguments passed to the target")


class JobFile(BaseModel):
    """Top-level job file."""

    max_processes: Optional[int] = Field(
        default=None,
        ge=1,
        description="Concurrency ceiling; overrides the configured default",
    )
    jobs: List[JobSpec] = Field(default=[], description="Jobs in submission order")


def parse_job_file(data: Union[dict, list], source: str = "<data>") -> JobFile:
    """Validate already-decoded JSON content."""
    if isinstance(data, list):
        data = {"jobs": data}

    try:
        return JobFile.model_validate(data)
    except ValidationError as e:
        raise JobFileError(source, str(e)) from e


def load_job_file(path: str) -> JobFile:
    """
    Read and validate a job file.

    Args:
        path: File path, or "-" for stdin

    Raises:
        JobFileError: On I/O, JSON or validation errors
    """
    try:
        if path == "-":
            raw = sys.stdin.read()
        else:
            raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise JobFileError(path, str(e)) from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise JobFileError(path, f"invalid JSON: {e}") from e

    return parse_job_file(data, source=path)
