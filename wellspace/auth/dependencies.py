"""FastAPI dependencies for authentication.

Resolves the acting user from the ``Authorization: Bearer`` header into a
``SessionUser`` that routers pass down to the services.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from wellspace.auth.schemas import SessionUser
from wellspace.auth.security import decode_access_token
from wellspace.core.context import bind_user


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _session_from_token(token: str) -> SessionUser:
    payload = decode_access_token(token)
    user = SessionUser.from_claims(payload)
    bind_user(user.id)
    return user


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> SessionUser:
    """Get the authenticated user or fail with 401."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return _session_from_token(token)
    except (JWTError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> SessionUser | None:
    """Get the authenticated user, or None for anonymous requests.

    An invalid token is rejected rather than silently treated as anonymous.
    """
    if not token:
        return None
    return await get_current_user(token)


CurrentUser = Annotated[SessionUser, Depends(get_current_user)]
OptionalUser = Annotated[SessionUser | None, Depends(get_current_user_optional)]
