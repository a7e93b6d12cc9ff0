"""Bounded retry loop with exponentially growing delays.

Kept independent of any HTTP client's own retry machinery so the same
policy drives the pricing API and the Telegram notifier.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterator, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def exponential_delays(
    base_delay: float, max_delay: float, factor: float = 2.0
) -> Iterator[float]:
    """Yield ``base, base*factor, base*factor**2, ...`` capped at *max_delay*."""
    delay = base_delay
    while True:
        yield min(delay, max_delay)
        delay *= factor


def retry_call(
    func: Callable[[], T],
    *,
    attempts: int,
    base_delay: float,
    max_delay: float,
    retry_on: Tuple[Type[BaseException], ...],
    factor: float = 2.0,
    sleep: Callable[[float], object] = time.sleep,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
) -> T:
    """Call *func* up to *attempts* times, sleeping between failures.

    Only exceptions listed in *retry_on* are retried; anything else
    propagates at once. When the last attempt fails its exception is
    re-raised.

    Delays follow :func:`exponential_delays`. An exception carrying a
    ``retry_after`` hint (seconds) can lengthen a delay, never shorten it.
    Once a hint has lifted the schedule, later delays keep growing by
    *factor* from the previous one, past *max_delay* if need be, so
    consecutive waits always strictly increase.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    delays = exponential_delays(base_delay, max_delay, factor)
    previous: Optional[float] = None
    hinted = False
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retry_on as exc:
            if attempt >= attempts:
                raise
            delay = next(delays)
            hint = getattr(exc, "retry_after", None)
            if hint is not None and hint > delay:
                delay = float(hint)
                hinted = True
            if hinted and previous is not None and delay <= previous:
                delay = previous * factor
            previous = delay
            logger.warning(
                "Attempt %d/%d failed (%s); retrying in %.1fs",
                attempt,
                attempts,
                exc,
                delay,
            )
            if on_retry is not None:
                on_retry(attempt, exc, delay)
            sleep(delay)

    raise AssertionError("unreachable")


__all__ = ["exponential_delays", "retry_call"]
