"""Timing helpers for table loading."""

import functools
import logging
import time
from typing import Callable, ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")

log = logging.getLogger(__name__)


def timed(label: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Log how long the wrapped call took under ``label``, even when it raises."""

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            ok = False
            try:
                result = func(*args, **kwargs)
                ok = True
                return result
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                log.info(f"{label} {'done' if ok else 'failed'} in {elapsed_ms:.1f} ms")

        return wrapper

    return decorator
