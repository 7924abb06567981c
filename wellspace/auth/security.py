"""Verification of access tokens issued by the external auth provider.

This service never issues tokens. It only checks the signature, expiry and
audience of the provider's JWTs and reads the identity claims from them.
"""

from typing import Any

from jose import JWTError, jwt

from wellspace.config.settings import get_settings


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate a provider access token.

    Validates:
    - JWT signature (shared secret)
    - Expiration time
    - Audience, when ``auth_audience`` is configured
    - Presence of the ``sub`` claim

    Args:
        token: JWT string

    Returns:
        Decoded payload dictionary

    Raises:
        JWTError: If token is invalid, expired, or has no subject
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_jwt_secret,
        algorithms=[settings.auth_algorithm],
        audience=settings.auth_audience,
        options={"verify_aud": settings.auth_audience is not None},
    )

    if not payload.get("sub"):
        msg = "Token has no subject"
        raise JWTError(msg)

    return payload
