"""Timing instrumentation for batch jobs and request-path checks."""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from gatekeeper.core.logging import get_logger

logger = get_logger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
}


@dataclass
class Timing:
    operation: str
    duration_ms: Optional[float] = None
    slow: bool = False


@contextmanager
def timer(
    operation_name: str,
    run_id: Optional[str] = None,
    log_level: str = "info",
    warn_over_ms: Optional[float] = None,
) -> Iterator[Timing]:
    """
    Time a block and log its duration.

    The yielded Timing is filled in when the block exits. Blocks slower than
    ``warn_over_ms`` are logged at WARNING whatever ``log_level`` says.

    Args:
        operation_name: Name of the operation being timed
        run_id: Optional job run identifier for context
        log_level: Log level ("debug", "info", "warning")
        warn_over_ms: Optional slow-call threshold

    Usage:
        with timer("Shadow RL job", run_id) as timing:
            snapshot = run_shadow_rl_job(events, prev)
        print(timing.duration_ms)
    """
    timing = Timing(operation=operation_name)
    start = time.perf_counter()
    try:
        yield timing
    finally:
        timing.duration_ms = round((time.perf_counter() - start) * 1000, 1)
        timing.slow = warn_over_ms is not None and timing.duration_ms > warn_over_ms

        extra = {"operation": operation_name, "duration_ms": timing.duration_ms}
        if run_id:
            extra["run_id"] = run_id

        level = logging.WARNING if timing.slow else _LEVELS.get(log_level, logging.INFO)
        suffix = f" (over {warn_over_ms:g}ms)" if timing.slow else ""
        logger.log(level, f"{operation_name} took {timing.duration_ms:.1f}ms{suffix}", extra=extra)
