"""Offers the error taxonomy raised by the role assignment orchestrator.

Backend errors are classified once, where the authorization API is called,
so that callers branch on exception types rather than on error messages.
"""

from datetime import timedelta


class RoleAssignmentError(Exception):
    """Base class for all errors raised by the orchestrator."""


class InvalidArgumentError(RoleAssignmentError, ValueError):
    """Raised when a scope, role definition or principal identifier is empty or malformed."""


class BackendError(RoleAssignmentError):
    """Base class for errors returned by the authorization backend.

    Used as-is for failures that fit no narrower class. It is fatal: the
    orchestrator surfaces it immediately.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        """Initialize the error with the HTTP status and ARM error code, when known."""
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class PropagationTransientError(BackendError):
    """Base class for failures caused by replication lag.

    They are retried within a bounded budget and only surface once that
    budget is exhausted.
    """


class ForbiddenError(PropagationTransientError):
    """The caller was denied, typically because a just-created grant is not yet effective."""


class PrincipalNotFoundError(PropagationTransientError):
    """The principal has not yet replicated to the directory used by the authorization API."""


class NotFoundError(BackendError):
    """The scope or the role assignment does not exist."""


class BadRequestError(BackendError):
    """The request was rejected as malformed for a reason other than an unknown principal."""


class AssignmentExistsError(BackendError):
    """The role assignment already exists.

    Treated as an already-satisfied outcome by the ensurer.
    """


class TransientError(BackendError):
    """Throttling, server-side or network failure."""


class WaitTimeoutError(RoleAssignmentError):
    """A bounded wait exhausted its budget."""

    def __init__(self, message: str, elapsed: timedelta, budget: timedelta) -> None:
        """Initialize the error, appending the elapsed time and the budget to the message."""
        super().__init__(
            f"{message} (waited {elapsed.total_seconds():.1f}s of a "
            f"{budget.total_seconds():.1f}s budget)"
        )
        self.elapsed = elapsed
        self.budget = budget


class PrincipalNotAvailableError(WaitTimeoutError):
    """The principal did not become visible to the authorization API within the budget."""

    def __init__(self, principal_id: str, elapsed: timedelta, budget: timedelta) -> None:
        """Initialize the error for the given principal."""
        super().__init__(
            f"Principal '{principal_id}' is not available to the authorization API",
            elapsed=elapsed,
            budget=budget,
        )
        self.principal_id = principal_id


class PropagationTimeoutError(WaitTimeoutError):
    """A role assignment was not observed at its scope within the budget."""


class OperationCancelledError(RoleAssignmentError):
    """The caller's cancellation signal fired while an operation was waiting."""


class ConfigError(Exception):
    """Base class for configuration-related errors.

    Signals an actionable problem in the configuration that prevents the
    orchestrator from being built.
    """


class ConfigValidationError(ConfigError):
    """Raised when the configuration values fail validation."""
