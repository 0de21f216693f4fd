"""Role assignment model and its logical key."""

import uuid
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# Fixed namespace so that every process derives the same assignment name.
ASSIGNMENT_ID_NAMESPACE = uuid.UUID("6f1c1d3e-6b0e-5c8a-9a52-2f3e0b7d9c41")


class PrincipalType(StrEnum):
    """Directory object types accepted as a role assignment principal type hint."""

    USER = "User"
    GROUP = "Group"
    SERVICE_PRINCIPAL = "ServicePrincipal"
    FOREIGN_GROUP = "ForeignGroup"
    DEVICE = "Device"


class RoleAssignment(BaseModel):
    """One grant of a role definition to a principal at a scope.

    The logical key is (scope, role_definition_id, principal_id); the
    `assignment_id` is the name of the backend record itself.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    scope: str = Field(description="The resource or hierarchy node the grant applies to.")
    role_definition_id: str = Field(description="Identifier of the granted role definition.")
    principal_id: str = Field(description="Object id of the principal receiving the grant.")
    principal_type: PrincipalType | None = Field(
        default=None,
        description="Type hint for principals too recent to be resolved by id alone.",
    )
    assignment_id: str | None = Field(
        default=None,
        description="Name of the role assignment record.",
    )

    def matches(self, role_definition_id: str, principal_id: str) -> bool:
        """Tell whether this record grants `role_definition_id` to `principal_id`.

        Azure resource identifiers are case-insensitive, so is the comparison.
        """
        return (
            self.principal_id.lower() == principal_id.lower()
            and self.role_definition_id.lower() == role_definition_id.lower()
        )

    def is_at_scope(self, scope: str) -> bool:
        """Tell whether this record was created at `scope` rather than inherited from an ancestor."""
        return self.scope.rstrip("/").lower() == scope.rstrip("/").lower()


def assignment_id_for(scope: str, role_definition_id: str, principal_id: str) -> str:
    """Derive a stable role assignment name from the logical key.

    Two callers ensuring the same grant compute the same name, so the second
    create collides with the first instead of producing a duplicate record.
    """
    key = "|".join(
        part.rstrip("/").lower() for part in (scope, role_definition_id, principal_id)
    )
    return str(uuid.uuid5(ASSIGNMENT_ID_NAMESPACE, key))


def random_assignment_id() -> str:
    """Return a fresh random role assignment name."""
    return str(uuid.uuid4())
