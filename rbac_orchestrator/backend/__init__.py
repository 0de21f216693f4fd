"""Offer the authorization backend contract and its Azure implementation."""

from rbac_orchestrator.backend.azure import AzureAuthorizationBackend
from rbac_orchestrator.backend.base import AuthorizationBackend
from rbac_orchestrator.backend.errors import classify_http_error, translate_errors

__all__ = [
    "AuthorizationBackend",
    "AzureAuthorizationBackend",
    "classify_http_error",
    "translate_errors",
]
