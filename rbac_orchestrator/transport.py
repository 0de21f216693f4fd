"""Propagation-tolerant transport.

Every call to the authorization backend goes through a bounded, fixed-delay
retry on the failures known to be caused by replication lag: a grant that
is not effective yet (403) and a principal that has not replicated yet
(400 PrincipalNotFound). Propagation resolves within a roughly known window,
so the delay is fixed rather than exponential and the worst-case latency
stays predictable.
"""

import logging
import threading
from collections.abc import Callable
from datetime import timedelta
from functools import partial
from typing import Any, TypeVar

from azure.core.pipeline.policies import RetryMode, RetryPolicy
from rbac_orchestrator.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    PrincipalNotFoundError,
)
from rbac_orchestrator.polling import raise_if_cancelled, sleep_or_cancel
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 15
DEFAULT_DELAY = timedelta(seconds=5)
# Retries after the first request, as counted by azure-core.
DEFAULT_PIPELINE_RETRIES = 15
DEFAULT_RETRY_ON: tuple[type[Exception], ...] = (ForbiddenError, PrincipalNotFoundError)


class PropagationTolerantTransport:
    """Wrap backend calls in a bounded retry on propagation-transient errors.

    The transport holds configuration only: the retry counter lives in the
    `tenacity.Retrying` built for each call, so one transport can serve
    concurrent callers.
    """

    def __init__(
        self,
        attempts: int = DEFAULT_ATTEMPTS,
        delay: timedelta = DEFAULT_DELAY,
        retry_on: tuple[type[Exception], ...] = DEFAULT_RETRY_ON,
    ) -> None:
        """Initialize the transport.

        Args:
            attempts (int): Total number of attempts, the first one included.
            delay (timedelta): Fixed delay between two attempts.
            retry_on (tuple[type[Exception], ...]): Error classes worth retrying.

        """
        if attempts < 1:
            raise InvalidArgumentError("The transport needs at least one attempt.")
        self.attempts = attempts
        self.delay = delay
        self.retry_on = retry_on

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        sleep = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "Attempt %d/%d of %s failed with a propagation-transient error, retrying in %.1fs: %s",
            retry_state.attempt_number,
            self.attempts,
            getattr(retry_state.fn, "__qualname__", retry_state.fn),
            sleep,
            error,
        )

    def call(
        self,
        fn: Callable[..., T],
        *args: Any,
        cancellation: threading.Event | None = None,
        **kwargs: Any,
    ) -> T:
        """Call `fn(*args, **kwargs)`, retrying on propagation-transient errors.

        Raises:
            BackendError: The last underlying error, unchanged, once attempts are
                exhausted, or immediately for errors outside `retry_on`.
            OperationCancelledError: If cancelled before a call or during a delay.

        """
        raise_if_cancelled(cancellation)
        retrying = Retrying(
            retry=retry_if_exception_type(self.retry_on),
            stop=stop_after_attempt(self.attempts),
            wait=wait_fixed(self.delay.total_seconds()),
            sleep=partial(sleep_or_cancel, cancellation=cancellation),
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(fn, *args, **kwargs)


def rbac_propagation_retry_policy(
    retries: int = DEFAULT_PIPELINE_RETRIES, delay: timedelta = DEFAULT_DELAY
) -> RetryPolicy:
    """Build an azure-core retry policy that also retries 403 responses at a fixed delay.

    For Azure SDK clients whose calls depend on a grant made moments before
    (Key Vault keys, disk encryption sets), pass it as `retry_policy=` when
    building the client.

    azure-core stops at the first exhausted counter, so the status counter
    (3 by default) is raised along with the total. `retries` counts retries,
    not attempts: a request is sent at most `retries + 1` times.
    """
    return RetryPolicy(
        retry_total=retries,
        retry_status=retries,
        retry_backoff_factor=delay.total_seconds(),
        retry_mode=RetryMode.Fixed,
        retry_on_status_codes=[403],
    )
