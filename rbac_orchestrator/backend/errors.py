"""Translate Azure SDK failures into the orchestrator error taxonomy."""

from collections.abc import Iterator
from contextlib import contextmanager

from azure.core.exceptions import (
    AzureError,
    HttpResponseError,
    ServiceRequestError,
    ServiceResponseError,
)
from rbac_orchestrator.exceptions import (
    AssignmentExistsError,
    BackendError,
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    PrincipalNotFoundError,
    TransientError,
)

PRINCIPAL_NOT_FOUND_CODE = "PrincipalNotFound"
ASSIGNMENT_EXISTS_CODE = "RoleAssignmentExists"
TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def _error_code(error: AzureError) -> str | None:
    odata_error = getattr(error, "error", None)
    return getattr(odata_error, "code", None)


def classify_http_error(error: AzureError, context: str = "") -> BackendError:
    """Map an Azure SDK error onto the error taxonomy.

    Args:
        error (AzureError): The error raised by the Azure SDK.
        context (str): Describes the failed operation, prepended to the message.

    Returns:
        BackendError: The classified error. The caller is expected to raise it
            chained to `error`.

    """
    prefix = f"{context}: " if context else ""
    if isinstance(error, (ServiceRequestError, ServiceResponseError)):
        return TransientError(f"{prefix}{error.message}")
    if not isinstance(error, HttpResponseError):
        return BackendError(f"{prefix}{error.message}")

    status_code = error.status_code
    error_code = _error_code(error)
    message = f"{prefix}HTTP {status_code} ({error_code or error.reason}): {error.message}"

    if status_code == 403:
        return ForbiddenError(message, status_code, error_code)
    if status_code == 404:
        return NotFoundError(message, status_code, error_code)
    if status_code == 400:
        if error_code == PRINCIPAL_NOT_FOUND_CODE:
            return PrincipalNotFoundError(message, status_code, error_code)
        return BadRequestError(message, status_code, error_code)
    if status_code == 409 and error_code == ASSIGNMENT_EXISTS_CODE:
        return AssignmentExistsError(message, status_code, error_code)
    if status_code in TRANSIENT_STATUS_CODES:
        return TransientError(message, status_code, error_code)
    return BackendError(message, status_code, error_code)


@contextmanager
def translate_errors(operation: str, scope: str) -> Iterator[None]:
    """Raise every Azure SDK error escaping the block as a classified error."""
    try:
        yield
    except AzureError as e:
        raise classify_http_error(e, context=f"{operation} at '{scope}'") from e
