"""Discover the principal a credential authenticates as."""

import base64
import binascii
import json
import logging

from azure.core.credentials import TokenCredential
from azure.core.exceptions import ClientAuthenticationError

logger = logging.getLogger(__name__)

ARM_SCOPE = "https://management.azure.com/.default"


def _token_claims(token: str) -> dict[str, object]:
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("Invalid token format")
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    claims = json.loads(base64.urlsafe_b64decode(payload))
    if not isinstance(claims, dict):
        raise ValueError("Token payload is not a JSON object")
    return claims


def current_principal_id(credential: TokenCredential) -> str | None:
    """Return the object id (`oid` claim) of the principal behind `credential`.

    Used to grant the identity running a workflow access to what it creates.
    Returns None, with a warning, when the id cannot be determined.
    """
    try:
        access_token = credential.get_token(ARM_SCOPE)
    except ClientAuthenticationError as e:
        logger.warning("Could not get a token to determine the current principal: %s", e)
        return None

    try:
        claims = _token_claims(access_token.token)
    except (ValueError, binascii.Error) as e:
        logger.warning("Could not decode the token claims: %s", e)
        return None

    oid = claims.get("oid")
    if not isinstance(oid, str):
        logger.warning("Could not find the oid claim in the token")
        return None
    logger.debug("Current principal id: %s", oid)
    return oid
