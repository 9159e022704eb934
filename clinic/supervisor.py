"""
Connection supervisor.

Startup blocks in :func:`establish_connection` until the database answers a
ping.  Between attempts it waits on the shutdown token for an exponentially
growing, jittered interval, so a SIGINT/SIGTERM during the wait aborts the
loop immediately instead of after the interval.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from .exceptions import ConnectError, ConnectionCancelled, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff parameters, in seconds.

    ``max_elapsed`` of 0 retries until cancelled.
    """
    initial_interval: float = 0.5
    multiplier: float = 1.5
    randomization_factor: float = 0.5
    max_interval: float = 60.0
    max_elapsed: float = 900.0

    def intervals(self, rng: Optional[random.Random] = None) -> Iterator[float]:
        rng = rng or random.Random()
        current = self.initial_interval
        while True:
            delta = self.randomization_factor * current
            yield rng.uniform(current - delta, current + delta)
            current = min(current * self.multiplier, self.max_interval)


def establish_connection(
    store,
    cancel,
    policy: Optional[RetryPolicy] = None,
    clock: Callable[[], float] = time.monotonic,
    rng: Optional[random.Random] = None,
) -> int:
    """Ping ``store`` until it answers; return the number of pings used.

    ``cancel`` is anything with ``is_set()`` and ``wait(timeout)``, normally
    the process :class:`~clinic.shutdown.ShutdownSignal`.  Raises
    :class:`ConnectionCancelled` when it fires first and :class:`ConnectError`
    when ``policy.max_elapsed`` runs out.
    """
    policy = policy or RetryPolicy()
    started = clock()
    attempts = 0
    last_error: Optional[StoreError] = None

    for interval in policy.intervals(rng):
        if cancel.is_set():
            break
        attempts += 1
        try:
            store.ping()
        except StoreError as exc:
            last_error = exc
            logger.warning("Failed to ping database: %s", exc)
        else:
            logger.info("Connected to database after %d ping(s)", attempts)
            return attempts

        if policy.max_elapsed and clock() - started + interval > policy.max_elapsed:
            raise ConnectError(
                f"failed to connect to database after {attempts} pings: {last_error}",
                attempts,
            ) from last_error
        logger.debug("Retrying database ping in %.2fs", interval)
        if cancel.wait(interval):
            break

    raise ConnectionCancelled(
        f"shutdown requested before the database was reachable ({attempts} pings): {last_error}",
        attempts,
    ) from last_error
