"""
Resolves "package.module:attribute" strings to callables.
"""

import importlib
import logging
from typing import Any, Callable

from .errors import JobResolutionError


logger = logging.getLogger(__name__)


def resolve_target(target: str) -> Callable[..., Any]:
    """
    Import the module part of target and walk the attribute path.

    Examples:
        "os.path:join"
        "mypkg.jobs:Worker.run_static"

    Raises:
        JobResolutionError: If target is malformed, cannot be imported,
            or does not name a callable
    """
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name.strip() or not attr_path.strip():
        raise JobResolutionError(target, "expected 'module:attribute'")

    try:
        obj = importlib.import_module(module_name.strip())
    except ImportError as e:
        raise JobResolutionError(target, f"cannot import module: {e}") from e

    for part in attr_path.strip().split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise JobResolutionError(target, f"no attribute '{part}'") from e

    if not callable(obj):
        raise JobResolutionError(target, f"{type(obj).__name__} object is not callable")

    logger.debug(f"Resolved {target} -> {obj!r}")
    return obj
