"""Role assignment orchestrator.

Facade sequencing the availability wait, the idempotent ensure and the
propagation wait into the calls provisioning workflows need::

    START -> WAITING_FOR_PRINCIPAL -> [timeout] -> FAILED
                                   -> [available] -> CHECKING_EXISTING
    CHECKING_EXISTING -> [match found] -> DONE
                      -> [no match] -> CREATING
    CREATING -> [success] -> DONE
             -> [403, attempts left] -> CREATING (after a fixed delay)
             -> [403, attempts exhausted] -> FAILED
             -> [other error] -> FAILED

Operations block; run independent grants concurrently from the caller.
No ordering is guaranteed between concurrent calls on the same key beyond
what deterministic assignment names provide.
"""

import logging
import threading
from datetime import timedelta
from types import TracebackType
from typing import Self

from azure.core.credentials import TokenCredential
from rbac_orchestrator.backend import AuthorizationBackend, AzureAuthorizationBackend
from rbac_orchestrator.ensurer import IdempotentAssignmentEnsurer
from rbac_orchestrator.exceptions import ConfigValidationError
from rbac_orchestrator.models import PrincipalType
from rbac_orchestrator.settings import OrchestratorSettings
from rbac_orchestrator.transport import PropagationTolerantTransport
from rbac_orchestrator.waiters import (
    PrincipalAvailabilityWaiter,
    RoleAssignmentPropagationWaiter,
)

logger = logging.getLogger(__name__)


class RoleAssignmentOrchestrator:
    """Grant, check and revoke roles while tolerating Azure propagation lag."""

    def __init__(
        self,
        backend: AuthorizationBackend,
        *,
        settings: OrchestratorSettings | None = None,
        availability_scope: str | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            backend (AuthorizationBackend): Backend owned by the caller.
            settings (OrchestratorSettings | None): Retry and wait budgets.
            availability_scope (str | None): Scope of the principal availability
                query. Defaults to the settings' one, then to the grant scope.

        """
        settings = settings or OrchestratorSettings()
        self.backend = backend
        self.settings = settings
        self.availability_scope = availability_scope or settings.principal_availability_scope
        self.transport = PropagationTolerantTransport(
            attempts=settings.retry_attempts, delay=settings.retry_delay
        )
        self.ensurer = IdempotentAssignmentEnsurer(
            backend,
            self.transport,
            deterministic_ids=settings.deterministic_assignment_ids,
        )
        self.principal_waiter = PrincipalAvailabilityWaiter(
            backend,
            poll_interval=settings.principal_poll_interval,
            grace_period=settings.principal_grace_period,
        )
        self.propagation_waiter = RoleAssignmentPropagationWaiter(
            backend,
            poll_interval=settings.propagation_poll_interval,
            grace_period=settings.propagation_grace_period,
        )

    @classmethod
    def from_settings(
        cls,
        settings: OrchestratorSettings | None = None,
        credential: TokenCredential | None = None,
    ) -> "RoleAssignmentOrchestrator":
        """Build an orchestrator on an `AzureAuthorizationBackend`.

        Raises:
            ConfigValidationError: If no subscription id is configured.

        """
        settings = settings or OrchestratorSettings()
        if not settings.subscription_id:
            raise ConfigValidationError(
                "A subscription id is required to build the Azure backend."
            )
        logging.getLogger("rbac_orchestrator").setLevel(settings.log_level.upper())
        backend = AzureAuthorizationBackend(settings.subscription_id, credential=credential)
        return cls(backend, settings=settings)

    def close(self) -> None:
        """Close the backend."""
        self.backend.close()

    def __enter__(self) -> Self:
        """Use the orchestrator as a context manager closing its backend."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the backend when leaving the context."""
        self.close()

    def ensure_role(
        self,
        scope: str,
        role_definition_id: str,
        principal_id: str,
        *,
        cancellation: threading.Event | None = None,
    ) -> bool:
        """Grant a role to a principal known to exist already.

        Returns:
            bool: True if an assignment was created, False if it already existed.

        """
        return self.ensurer.ensure_role(
            scope, role_definition_id, principal_id, cancellation=cancellation
        )

    def ensure_role_with_principal_type(
        self,
        scope: str,
        role_definition_id: str,
        principal_id: str,
        principal_type: PrincipalType | str,
        *,
        cancellation: threading.Event | None = None,
    ) -> bool:
        """Grant a role, hinting the principal type for identities created concurrently."""
        return self.ensurer.ensure_role(
            scope,
            role_definition_id,
            principal_id,
            principal_type,
            cancellation=cancellation,
        )

    def ensure_role_with_retry(
        self,
        scope: str,
        role_definition_id: str,
        principal_id: str,
        max_wait: timedelta,
        *,
        principal_type: PrincipalType | str | None = None,
        cancellation: threading.Event | None = None,
    ) -> bool:
        """Wait for a possibly just-created principal to be resolvable, then grant the role.

        No create call is issued before the availability wait succeeds.

        Raises:
            PrincipalNotAvailableError: If the principal stays unresolvable for `max_wait`.
            OperationCancelledError: If the cancellation signal fires.
            BackendError: If the grant itself fails.

        """
        self.principal_waiter.wait(
            principal_id,
            max_wait,
            scope=self.availability_scope or scope,
            cancellation=cancellation,
        )
        return self.ensurer.ensure_role(
            scope,
            role_definition_id,
            principal_id,
            principal_type,
            cancellation=cancellation,
        )

    def has_role(
        self,
        scope: str,
        principal_id: str,
        role_definition_id: str,
        *,
        cancellation: threading.Event | None = None,
    ) -> bool:
        """Tell whether the principal holds the role at the scope."""
        return self.ensurer.has_role(
            scope, principal_id, role_definition_id, cancellation=cancellation
        )

    def remove_role(
        self,
        scope: str,
        principal_id: str,
        *,
        cancellation: threading.Event | None = None,
    ) -> int:
        """Revoke every role the principal holds at the scope, returning how many were deleted."""
        return self.ensurer.remove_role(scope, principal_id, cancellation=cancellation)

    def wait_for_role_assignment_propagation(
        self,
        scope: str,
        principal_id: str,
        max_wait: timedelta,
        *,
        role_definition_id: str | None = None,
        cancellation: threading.Event | None = None,
    ) -> bool:
        """Best-effort wait for a grant to be observable; a timeout is logged, not raised.

        Returns:
            bool: Whether the grant was observed within `max_wait`.

        """
        return self.propagation_waiter.wait(
            scope,
            principal_id,
            max_wait,
            role_definition_id=role_definition_id,
            cancellation=cancellation,
        )
