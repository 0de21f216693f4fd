"""Authorization backend on top of the Azure Resource Manager authorization API."""

import logging
from collections.abc import Iterator
from typing import Any

from azure.core.credentials import TokenCredential
from azure.identity import DefaultAzureCredential
from azure.mgmt.authorization import AuthorizationManagementClient
from azure.mgmt.authorization.models import RoleAssignmentCreateParameters
from rbac_orchestrator.backend.base import AuthorizationBackend
from rbac_orchestrator.backend.errors import translate_errors
from rbac_orchestrator.models import PrincipalType, RoleAssignment

logger = logging.getLogger(__name__)


def _principal_type(value: str | None) -> PrincipalType | None:
    if value is None:
        return None
    try:
        return PrincipalType(value)
    except ValueError:
        return None


def _to_role_assignment(item: Any, scope: str) -> RoleAssignment | None:
    """Convert an SDK role assignment, skipping records lacking their key fields."""
    if item.principal_id is None or item.role_definition_id is None:
        return None
    return RoleAssignment(
        scope=item.scope or scope,
        role_definition_id=item.role_definition_id,
        principal_id=item.principal_id,
        principal_type=_principal_type(item.principal_type),
        assignment_id=item.name,
    )


class AzureAuthorizationBackend(AuthorizationBackend):
    """Role assignment records of one subscription, through `azure-mgmt-authorization`.

    Examples:
        >>> with AzureAuthorizationBackend("00000000-0000-0000-0000-000000000000") as backend:
        ...     assignments = list(backend.list_assignments(scope, principal_id))

    """

    def __init__(
        self,
        subscription_id: str,
        credential: TokenCredential | None = None,
        client: AuthorizationManagementClient | None = None,
        **client_kwargs: Any,
    ) -> None:
        """Initialize the backend.

        Args:
            subscription_id (str): The subscription the client is bound to.
            credential (TokenCredential | None): Defaults to a `DefaultAzureCredential`,
                which is then closed with the backend.
            client (AuthorizationManagementClient | None): A prebuilt client, mostly for tests.
            client_kwargs: Forwarded to `AuthorizationManagementClient`, e.g. `retry_policy`.

        """
        self.subscription_id = subscription_id
        self._owned_credential: DefaultAzureCredential | None = None
        if client is None:
            if credential is None:
                self._owned_credential = DefaultAzureCredential()
                credential = self._owned_credential
            client = AuthorizationManagementClient(
                credential, subscription_id, **client_kwargs
            )
        self._client = client

    def list_assignments(
        self, scope: str, principal_id: str | None = None
    ) -> Iterator[RoleAssignment]:
        """Stream the role assignments at `scope`, following pages lazily."""
        filter_ = f"assignedTo('{principal_id}')" if principal_id else None
        with translate_errors("list role assignments", scope):
            for item in self._client.role_assignments.list_for_scope(
                scope, filter=filter_
            ):
                assignment = _to_role_assignment(item, scope)
                if assignment is not None:
                    yield assignment

    def create_assignment(
        self, scope: str, assignment_id: str, assignment: RoleAssignment
    ) -> RoleAssignment:
        """Create the role assignment, passing the principal type hint when known."""
        parameters = RoleAssignmentCreateParameters(
            role_definition_id=assignment.role_definition_id,
            principal_id=assignment.principal_id,
            principal_type=assignment.principal_type,
        )
        with translate_errors("create role assignment", scope):
            created = self._client.role_assignments.create(
                scope, assignment_id, parameters
            )
        return _to_role_assignment(created, scope) or assignment.model_copy(
            update={"assignment_id": assignment_id}
        )

    def delete_assignment(self, scope: str, assignment_id: str) -> None:
        """Delete the role assignment.

        ARM answers 204 without a body when the record is already gone, which
        the SDK returns as `None`. A 404 on the scope raises `NotFoundError`.
        """
        with translate_errors("delete role assignment", scope):
            deleted = self._client.role_assignments.delete(scope, assignment_id)
        if deleted is None:
            logger.debug("Role assignment %s was already absent at %s", assignment_id, scope)

    def close(self) -> None:
        """Close the management client, and the credential if it was created here."""
        self._client.close()
        if self._owned_credential is not None:
            self._owned_credential.close()
