"""Offer the data models of the orchestrator."""

from rbac_orchestrator.models.role_assignment import (
    PrincipalType,
    RoleAssignment,
    assignment_id_for,
    random_assignment_id,
)
from rbac_orchestrator.models.role_definitions import BuiltInRole, role_definition_id

__all__ = [
    "BuiltInRole",
    "PrincipalType",
    "RoleAssignment",
    "assignment_id_for",
    "random_assignment_id",
    "role_definition_id",
]
