"""Minimal auth dependency.

Stub implementation that extracts the member id from a bearer token or uses a
development default. Real token validation belongs to the host application.
"""

import uuid
from typing import Annotated

from fastapi import Header, HTTPException, status

DEV_MEMBER_ID = "00000000-0000-0000-0000-000000000002"


async def get_member_id(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Extract the member id from the authorization header.

    Stub implementation that either:
    - Parses a "Bearer <member_uuid>" token
    - Returns the development member if no header

    Args:
        authorization: Authorization header (e.g., "Bearer <token>")

    Returns:
        Member id as a canonical UUID string

    Raises:
        HTTPException: If authorization is invalid
    """
    if not authorization:
        return DEV_MEMBER_ID

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:].strip()  # Strip "Bearer "

    try:
        return str(uuid.UUID(token))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token format (expected member UUID)",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
