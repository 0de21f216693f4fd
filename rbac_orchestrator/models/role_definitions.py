"""Built-in role definitions granted by provisioning workflows."""

from enum import StrEnum


class BuiltInRole(StrEnum):
    """Azure built-in role definition GUIDs."""

    READER = "acdd72a7-3385-48ef-bd42-f606fba81ae7"
    KEY_VAULT_ADMINISTRATOR = "00482a5a-887f-4fb3-b363-3b7fe8e74483"
    KEY_VAULT_CRYPTO_OFFICER = "14b46e9e-c2b7-41b4-b07b-48a6ebf60603"
    KEY_VAULT_CRYPTO_SERVICE_ENCRYPTION_USER = "e147488a-f6f5-4113-8e2d-b22465e65bf6"


def role_definition_id(subscription_id: str, role: BuiltInRole | str) -> str:
    """Build the fully qualified role definition id of `role` in a subscription.

    Examples:
        >>> role_definition_id("sub", BuiltInRole.READER)
        '/subscriptions/sub/providers/Microsoft.Authorization/roleDefinitions/acdd72a7-3385-48ef-bd42-f606fba81ae7'

    """
    return (
        f"/subscriptions/{subscription_id}"
        f"/providers/Microsoft.Authorization/roleDefinitions/{role}"
    )
