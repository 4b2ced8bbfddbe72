"""Bounded polling with exponential backoff and an overall deadline."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from envctl.errors import ReadinessTimeoutError

logger = logging.getLogger(__name__)


def poll_until(
    check: Callable[[], bool],
    *,
    attempts: int = 3,
    delay: float = 30.0,
    backoff: float = 2.0,
    deadline: float | None = None,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Call *check* until it returns true.

    Between attempts sleeps ``delay``, then ``delay * backoff``, and so on,
    clipped so no sleep runs past *deadline* seconds from the first call.

    Returns:
        The 1-based attempt number on which *check* succeeded.

    Raises:
        ReadinessTimeoutError: attempts or deadline exhausted.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    started = clock()
    wait = delay

    for attempt in range(1, attempts + 1):
        if check():
            logger.debug("%s met on attempt %d", description, attempt)
            return attempt

        if attempt == attempts:
            break

        if deadline is not None:
            remaining = deadline - (clock() - started)
            if remaining <= 0:
                raise ReadinessTimeoutError(
                    f"{description} not met within {deadline:g}s ({attempt} attempts)"
                )
            wait = min(wait, remaining)

        logger.info(
            "Waiting for %s (attempt %d/%d, next check in %.0fs)",
            description,
            attempt,
            attempts,
            wait,
        )
        sleep(wait)
        wait *= backoff

    raise ReadinessTimeoutError(f"{description} not met after {attempts} attempts")
