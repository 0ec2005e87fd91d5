"""
Auth dependencies for protected FastAPI routes.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Depends, Header, HTTPException, status

from . import roles, service


def _extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header.",
        )

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format.",
        )

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization must be: Bearer <token>.",
        )
    return token


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    return _extract_bearer_token(authorization)


async def get_current_user(access_token: str = Depends(get_bearer_token)) -> dict:
    return await service.get_user_from_access_token(access_token)


def require_roles(*required: str) -> Callable[..., Awaitable[dict]]:
    """
    Build a dependency that lets the request through when the current user
    holds at least one of `required`.
    """

    async def _dependency(current_user: dict = Depends(get_current_user)) -> dict:
        if not roles.has_any_role(current_user.get("roles") or (), *required):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions.",
            )
        return current_user

    return _dependency


require_admin = require_roles(roles.ROLE_ADMIN)
require_user_or_admin = require_roles(roles.ROLE_USER, roles.ROLE_ADMIN)
