"""Offer a package to grant Azure role assignments despite propagation lag."""

__version__ = "0.1.0"

from rbac_orchestrator.backend import AuthorizationBackend, AzureAuthorizationBackend
from rbac_orchestrator.ensurer import IdempotentAssignmentEnsurer
from rbac_orchestrator.identity import current_principal_id
from rbac_orchestrator.models import (
    BuiltInRole,
    PrincipalType,
    RoleAssignment,
    role_definition_id,
)
from rbac_orchestrator.orchestrator import RoleAssignmentOrchestrator
from rbac_orchestrator.polling import Poller
from rbac_orchestrator.settings import OrchestratorSettings
from rbac_orchestrator.transport import (
    PropagationTolerantTransport,
    rbac_propagation_retry_policy,
)
from rbac_orchestrator.waiters import (
    PrincipalAvailabilityWaiter,
    RoleAssignmentPropagationWaiter,
)

__all__ = [
    # Facade
    "RoleAssignmentOrchestrator",
    "OrchestratorSettings",
    # Building blocks
    "IdempotentAssignmentEnsurer",
    "Poller",
    "PrincipalAvailabilityWaiter",
    "PropagationTolerantTransport",
    "RoleAssignmentPropagationWaiter",
    "rbac_propagation_retry_policy",
    # Backends
    "AuthorizationBackend",
    "AzureAuthorizationBackend",
    # Models
    "BuiltInRole",
    "PrincipalType",
    "RoleAssignment",
    "current_principal_id",
    "role_definition_id",
]
