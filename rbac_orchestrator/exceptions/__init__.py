"""Offer the error taxonomy of the orchestrator."""

from .error import (
    AssignmentExistsError,
    BackendError,
    BadRequestError,
    ConfigError,
    ConfigValidationError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    OperationCancelledError,
    PrincipalNotAvailableError,
    PrincipalNotFoundError,
    PropagationTimeoutError,
    PropagationTransientError,
    RoleAssignmentError,
    TransientError,
    WaitTimeoutError,
)

__all__ = [
    "AssignmentExistsError",
    "BackendError",
    "BadRequestError",
    "ConfigError",
    "ConfigValidationError",
    "ForbiddenError",
    "InvalidArgumentError",
    "NotFoundError",
    "OperationCancelledError",
    "PrincipalNotAvailableError",
    "PrincipalNotFoundError",
    "PropagationTimeoutError",
    "PropagationTransientError",
    "RoleAssignmentError",
    "TransientError",
    "WaitTimeoutError",
]
