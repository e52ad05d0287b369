"""
CLI entry point for the parallelizer.

    parallelizer run jobs.json --max-processes 2
    parallelizer check jobs.json
"""

import argparse
import logging
import sys
from typing import Any, Callable, List, Optional, Tuple

from dotenv import load_dotenv

from .config import (
    EXIT_FORK_FAILED,
    EXIT_INVALID_INPUT,
    EXIT_JOB_FAILED,
    EXIT_SUCCESS,
    load_settings,
)
from .errors import JobFileError, JobResolutionError, ProcessCreationError
from .resolver import resolve_target
from .scheduler import ProcessPoolScheduler
from .schemas import JobFile, load_job_file


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    """
    Configure logging for CLI execution.

    Args:
        verbose: If True, force DEBUG level
        level: Level name used when not verbose
    """
    numeric_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def _first_set(*values):
    return next(value for value in values if value is not None)


def _load_and_resolve(path: str) -> Tuple[JobFile, List[Tuple[Callable[..., Any], list]]]:
    job_file = load_job_file(path)
    resolved = [(resolve_target(spec.target), spec.args) for spec in job_file.jobs]
    return job_file, resolved


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run every job of a job file.

    Returns:
        Exit code
    """
    settings = load_settings()

    try:
        job_file, resolved = _load_and_resolve(args.job_file)
    except (JobFileError, JobResolutionError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    max_processes = _first_set(args.max_processes, job_file.max_processes, settings.max_processes)
    poll_interval = _first_set(args.poll_interval, settings.poll_interval)

    try:
        scheduler = ProcessPoolScheduler(
            max_processes=max_processes,
            poll_interval=poll_interval,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    for target, target_args in resolved:
        scheduler.submit(target, target_args)

    try:
        scheduler.run()
    except ProcessCreationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FORK_FAILED

    for line in scheduler.get_log():
        print(line)

    if any(not outcome.succeeded for outcome in scheduler.get_outcomes()):
        return EXIT_JOB_FAILED
    return EXIT_SUCCESS


def cmd_check(args: argparse.Namespace) -> int:
    """Validate a job file and resolve its targets without running anything."""
    try:
        job_file, _ = _load_and_resolve(args.job_file)
    except (JobFileError, JobResolutionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    print(f"OK: {len(job_file.jobs)} jobs")
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parallelizer",
        description="Run independent jobs in parallel forked processes",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    # -v is also accepted after the subcommand without resetting a leading -v
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", parents=[common], help="Run the jobs of a job file")
    run_parser.add_argument("job_file", help="Path to JSON job file ('-' for stdin)")
    run_parser.add_argument(
        "-p", "--max-processes",
        type=int,
        default=None,
        help="Maximum concurrent processes (default: job file, then environment)",
    )
    run_parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between completion checks",
    )
    run_parser.set_defaults(func=cmd_run)

    check_parser = subparsers.add_parser("check", parents=[common], help="Validate a job file without running it")
    check_parser.add_argument("job_file", help="Path to JSON job file ('-' for stdin)")
    check_parser.set_defaults(func=cmd_check)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, level=load_settings().log_level)

    return args.func(args)
