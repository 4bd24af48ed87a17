"""Auth dependencies — bearer JWT → ActorContext.

Tokens are issued elsewhere; this module only verifies them and reads the
``sub``, ``role`` and ``company_id`` claims.
"""

from __future__ import annotations

import uuid

from fastapi import Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt

from hrms.auth.permissions import ActorContext
from hrms.common.constants import UserRole
from hrms.config import settings


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


async def get_actor_context(request: Request) -> ActorContext:
    """Validate the JWT and build the caller's ActorContext."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type.")

    try:
        actor_id = uuid.UUID(payload["sub"])
        company_id = uuid.UUID(payload["company_id"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Token is missing required claims.")

    role_str = payload.get("role", UserRole.employee.value)
    try:
        role = UserRole(role_str)
    except ValueError:
        role = UserRole.employee

    return ActorContext(
        actor_id=actor_id,
        company_id=company_id,
        role=role,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("User-Agent"),
    )
