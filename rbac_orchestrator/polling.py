"""Bounded, cancellable polling shared by every wait of the orchestrator.

A `Poller` couples a poll interval, a deadline and an optional cancellation
signal (a `threading.Event` owned by the caller). Sleeping waits on that
event, so cancelling interrupts the current sleep instead of letting it run
to the next tick.
"""

import logging
import threading
import time
from collections.abc import Callable
from datetime import timedelta
from typing import TypeVar

from rbac_orchestrator.exceptions import OperationCancelledError, WaitTimeoutError

T = TypeVar("T")

logger = logging.getLogger(__name__)


def raise_if_cancelled(cancellation: threading.Event | None) -> None:
    """Raise `OperationCancelledError` if the cancellation signal is set."""
    if cancellation is not None and cancellation.is_set():
        raise OperationCancelledError("Operation cancelled")


def sleep_or_cancel(seconds: float, cancellation: threading.Event | None = None) -> None:
    """Sleep for `seconds`, returning early with an error if cancelled.

    Raises:
        OperationCancelledError: If the signal is set before or during the sleep.

    """
    raise_if_cancelled(cancellation)
    if seconds <= 0:
        return
    if cancellation is None:
        time.sleep(seconds)
    elif cancellation.wait(seconds):
        raise OperationCancelledError("Operation cancelled while waiting")


class Poller:
    """Repeat a check at a fixed interval until it succeeds or the deadline passes."""

    def __init__(
        self,
        interval: timedelta,
        timeout: timedelta,
        cancellation: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the poller.

        Args:
            interval (timedelta): Delay between two checks.
            timeout (timedelta): Budget of the whole poll, starting at the first check.
            cancellation (threading.Event | None): Aborts the poll when set.
            clock (Callable[[], float]): Monotonic clock, in seconds.

        """
        self.interval = interval
        self.timeout = timeout
        self.cancellation = cancellation
        self._clock = clock

    def sleep(self, seconds: float) -> None:
        """Sleep while observing the cancellation signal."""
        sleep_or_cancel(seconds, self.cancellation)

    def poll(self, check: Callable[[], T], description: str) -> T:
        """Call `check` until it returns a truthy value and return that value.

        Raises:
            WaitTimeoutError: If the budget is exhausted; carries the elapsed time.
            OperationCancelledError: If the cancellation signal fires.

        """
        started = self._clock()
        budget = self.timeout.total_seconds()
        attempt = 0
        while True:
            raise_if_cancelled(self.cancellation)
            attempt += 1
            result = check()
            if result:
                return result
            elapsed = self._clock() - started
            remaining = budget - elapsed
            if remaining <= 0:
                raise WaitTimeoutError(
                    description,
                    elapsed=timedelta(seconds=elapsed),
                    budget=self.timeout,
                )
            delay = min(self.interval.total_seconds(), remaining)
            logger.debug(
                "%s: attempt %d not satisfied, polling again in %.1fs",
                description,
                attempt,
                delay,
            )
            self.sleep(delay)
