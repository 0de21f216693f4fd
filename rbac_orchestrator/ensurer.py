"""Idempotent role assignment ensurer.

Keeps at most one role assignment per (scope, role definition, principal)
key. Creation is list-then-create; with deterministic assignment names a
concurrent duplicate create is rejected with 409 RoleAssignmentExists and absorbed,
which closes the window where two callers both see "absent" and both
create. With random names that window stays open and creation is
at-least-once.
"""

import logging
import threading

from rbac_orchestrator.backend import AuthorizationBackend
from rbac_orchestrator.exceptions import (
    AssignmentExistsError,
    InvalidArgumentError,
    NotFoundError,
)
from rbac_orchestrator.models import (
    PrincipalType,
    RoleAssignment,
    assignment_id_for,
    random_assignment_id,
)
from rbac_orchestrator.transport import PropagationTolerantTransport

logger = logging.getLogger(__name__)


def _require(**values: str) -> None:
    for name, value in values.items():
        if not value or not value.strip():
            raise InvalidArgumentError(f"'{name}' must be a non-empty identifier.")


class IdempotentAssignmentEnsurer:
    """Ensure, observe and revoke role assignments through the transport."""

    def __init__(
        self,
        backend: AuthorizationBackend,
        transport: PropagationTolerantTransport | None = None,
        deterministic_ids: bool = True,
    ) -> None:
        """Initialize the ensurer.

        Args:
            backend (AuthorizationBackend): Where role assignments live.
            transport (PropagationTolerantTransport | None): Retry policy wrapping
                every backend call. Defaults to 15 attempts, 5 seconds apart.
            deterministic_ids (bool): Name new assignments after their logical key
                instead of randomly.

        """
        self.backend = backend
        self.transport = transport or PropagationTolerantTransport()
        self.deterministic_ids = deterministic_ids

    def _list(self, scope: str, principal_id: str) -> list[RoleAssignment]:
        return list(self.backend.list_assignments(scope, principal_id))

    def list_for_principal(
        self,
        scope: str,
        principal_id: str,
        *,
        cancellation: threading.Event | None = None,
    ) -> list[RoleAssignment]:
        """List the assignments of `principal_id` visible at `scope`.

        The server-side filter also returns grants through group membership,
        so records are re-checked on the principal here.
        """
        assignments = self.transport.call(
            self._list, scope, principal_id, cancellation=cancellation
        )
        return [a for a in assignments if a.principal_id.lower() == principal_id.lower()]

    def has_role(
        self,
        scope: str,
        principal_id: str,
        role_definition_id: str,
        *,
        cancellation: threading.Event | None = None,
    ) -> bool:
        """Tell whether `principal_id` holds `role_definition_id` at `scope`, inherited grants included."""
        _require(scope=scope, principal_id=principal_id, role_definition_id=role_definition_id)
        return any(
            assignment.matches(role_definition_id, principal_id)
            for assignment in self.list_for_principal(
                scope, principal_id, cancellation=cancellation
            )
        )

    def ensure_role(
        self,
        scope: str,
        role_definition_id: str,
        principal_id: str,
        principal_type: PrincipalType | str | None = None,
        *,
        cancellation: threading.Event | None = None,
    ) -> bool:
        """Make sure `principal_id` holds `role_definition_id` at `scope`.

        Args:
            scope (str): Scope of the grant.
            role_definition_id (str): Fully qualified role definition id.
            principal_id (str): Object id of the principal.
            principal_type (PrincipalType | str | None): Hint for principals created
                moments ago, which the backend cannot type from their id yet.
            cancellation (threading.Event | None): Aborts retry delays when set.

        Returns:
            bool: True if an assignment was created, False if one already existed.

        Raises:
            InvalidArgumentError: If an identifier is empty.
            BackendError: A fatal failure, or the last propagation-transient one
                once the transport's attempts are exhausted.

        """
        _require(scope=scope, role_definition_id=role_definition_id, principal_id=principal_id)
        if self.has_role(scope, principal_id, role_definition_id, cancellation=cancellation):
            logger.debug(
                "Principal %s already holds %s at %s", principal_id, role_definition_id, scope
            )
            return False

        assignment_id = (
            assignment_id_for(scope, role_definition_id, principal_id)
            if self.deterministic_ids
            else random_assignment_id()
        )
        assignment = RoleAssignment(
            scope=scope,
            role_definition_id=role_definition_id,
            principal_id=principal_id,
            principal_type=principal_type,
            assignment_id=assignment_id,
        )
        try:
            self.transport.call(
                self.backend.create_assignment,
                scope,
                assignment_id,
                assignment,
                cancellation=cancellation,
            )
        except AssignmentExistsError as e:
            logger.debug("Role assignment %s already exists: %s", assignment_id, e)
            return False

        logger.info(
            "Granted %s to principal %s at %s (assignment %s)",
            role_definition_id,
            principal_id,
            scope,
            assignment_id,
        )
        return True

    def remove_role(
        self,
        scope: str,
        principal_id: str,
        *,
        cancellation: threading.Event | None = None,
    ) -> int:
        """Revoke every role `principal_id` holds at `scope`, whatever the role.

        Grants inherited from an ancestor scope are left in place. Records that
        disappear before their deletion are not an error.

        Returns:
            int: The number of deleted assignments.

        """
        _require(scope=scope, principal_id=principal_id)
        deleted = 0
        for assignment in self.list_for_principal(scope, principal_id, cancellation=cancellation):
            if not assignment.is_at_scope(scope) or assignment.assignment_id is None:
                logger.debug(
                    "Leaving role assignment %s inherited from %s",
                    assignment.assignment_id,
                    assignment.scope,
                )
                continue
            try:
                self.transport.call(
                    self.backend.delete_assignment,
                    scope,
                    assignment.assignment_id,
                    cancellation=cancellation,
                )
            except NotFoundError:
                logger.debug("Role assignment %s was already deleted", assignment.assignment_id)
                continue
            deleted += 1
            logger.info(
                "Revoked %s from principal %s at %s",
                assignment.role_definition_id,
                principal_id,
                scope,
            )
        return deleted
