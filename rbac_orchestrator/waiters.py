"""Waits that hide the propagation lag of identities and of grants.

Two independent delays are covered:

- `PrincipalAvailabilityWaiter`: a new identity is not yet resolvable by the
  authorization API. A principal-filtered list query fails while it is not,
  and succeeds (possibly empty) once it is.
- `RoleAssignmentPropagationWaiter`: a new grant is not yet listable, and
  lags further on the data plane once it is.
"""

import logging
import threading
import time
from collections.abc import Callable
from datetime import timedelta

from rbac_orchestrator.backend import AuthorizationBackend
from rbac_orchestrator.exceptions import (
    NotFoundError,
    PrincipalNotAvailableError,
    PropagationTimeoutError,
    PropagationTransientError,
    TransientError,
    WaitTimeoutError,
)
from rbac_orchestrator.polling import Poller

logger = logging.getLogger(__name__)

# Failures meaning "not visible yet" while polling; anything else is fatal.
NOT_YET_VISIBLE_ERRORS = (PropagationTransientError, NotFoundError, TransientError)

DEFAULT_POLL_INTERVAL = timedelta(seconds=5)
DEFAULT_GRACE_PERIOD = timedelta(seconds=10)


class PrincipalAvailabilityWaiter:
    """Block until a principal is visible to the authorization API."""

    def __init__(
        self,
        backend: AuthorizationBackend,
        poll_interval: timedelta = DEFAULT_POLL_INTERVAL,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the waiter.

        Args:
            backend (AuthorizationBackend): Backend queried at each poll.
            poll_interval (timedelta): Delay between two list queries.
            grace_period (timedelta): Extra sleep after the first successful query,
                as directory visibility and authorization readiness lag each other.
            clock (Callable[[], float]): Monotonic clock, in seconds.

        """
        self.backend = backend
        self.poll_interval = poll_interval
        self.grace_period = grace_period
        self._clock = clock

    def wait(
        self,
        principal_id: str,
        max_wait: timedelta,
        *,
        scope: str,
        cancellation: threading.Event | None = None,
    ) -> None:
        """Poll a principal-filtered list query at `scope` until it succeeds.

        Args:
            principal_id (str): The principal to wait for.
            max_wait (timedelta): Budget of the poll, grace period excluded.
            scope (str): Widest scope the caller can query, e.g. the subscription.
            cancellation (threading.Event | None): Aborts the wait when set.

        Raises:
            PrincipalNotAvailableError: If the budget is exhausted.
            OperationCancelledError: If the cancellation signal fires.
            BackendError: On a failure that does not mean "not visible yet".

        """
        poller = Poller(self.poll_interval, max_wait, cancellation, clock=self._clock)

        def _is_resolvable() -> bool:
            try:
                next(iter(self.backend.list_assignments(scope, principal_id)), None)
            except NOT_YET_VISIBLE_ERRORS as e:
                logger.debug("Principal %s not resolvable yet: %s", principal_id, e)
                return False
            return True

        try:
            poller.poll(_is_resolvable, f"Waiting for principal '{principal_id}'")
        except WaitTimeoutError as e:
            raise PrincipalNotAvailableError(principal_id, e.elapsed, e.budget) from e

        logger.info(
            "Principal %s is resolvable, waiting %.0fs more for authorization readiness",
            principal_id,
            self.grace_period.total_seconds(),
        )
        poller.sleep(self.grace_period.total_seconds())


class RoleAssignmentPropagationWaiter:
    """Best-effort wait until a grant is observable at its scope."""

    def __init__(
        self,
        backend: AuthorizationBackend,
        poll_interval: timedelta = DEFAULT_POLL_INTERVAL,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the waiter with the same knobs as `PrincipalAvailabilityWaiter`."""
        self.backend = backend
        self.poll_interval = poll_interval
        self.grace_period = grace_period
        self._clock = clock

    def wait(
        self,
        scope: str,
        principal_id: str,
        max_wait: timedelta,
        *,
        role_definition_id: str | None = None,
        cancellation: threading.Event | None = None,
    ) -> bool:
        """Poll until a grant to `principal_id` is listed at `scope`, then sleep the grace period.

        The authorization plane lags the control plane even once the record is
        listable, hence the grace period. A timeout is not an error: it is
        logged and `False` is returned.

        Returns:
            bool: Whether the grant was observed within `max_wait`.

        Raises:
            OperationCancelledError: If the cancellation signal fires.
            BackendError: On a failure that does not mean "not visible yet".

        """
        poller = Poller(self.poll_interval, max_wait, cancellation, clock=self._clock)

        def _is_listed() -> bool:
            try:
                assignments = self.backend.list_assignments(scope, principal_id)
                return any(
                    assignment.principal_id.lower() == principal_id.lower()
                    and (
                        role_definition_id is None
                        or assignment.matches(role_definition_id, principal_id)
                    )
                    for assignment in assignments
                )
            except NOT_YET_VISIBLE_ERRORS as e:
                logger.debug("Role assignment for %s not listable yet: %s", principal_id, e)
                return False

        description = f"Waiting for role assignment of '{principal_id}' at '{scope}'"
        try:
            poller.poll(_is_listed, description)
        except WaitTimeoutError as e:
            timeout = PropagationTimeoutError(description, elapsed=e.elapsed, budget=e.budget)
            logger.warning("Continuing without confirmed propagation: %s", timeout)
            return False

        logger.info(
            "Role assignment for %s is listed at %s, waiting %.0fs more for enforcement",
            principal_id,
            scope,
            self.grace_period.total_seconds(),
        )
        poller.sleep(self.grace_period.total_seconds())
        return True
