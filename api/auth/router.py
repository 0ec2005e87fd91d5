"""
Auth API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from . import dependencies, schemas, service

router = APIRouter()


def _client_meta(request: Request) -> dict[str, str | None]:
    return {
        "user_agent": request.headers.get("user-agent"),
        "ip_address": request.client.host if request.client else None,
    }


@router.post("/api/auth/register", status_code=status.HTTP_201_CREATED)
async def register(payload: schemas.RegisterRequest, request: Request) -> schemas.AuthResponse:
    return await service.register(payload, **_client_meta(request))


@router.post("/api/auth/login")
async def login(payload: schemas.LoginRequest, request: Request) -> schemas.AuthResponse:
    return await service.login(payload, **_client_meta(request))


@router.post("/api/auth/refresh")
async def refresh(payload: schemas.RefreshRequest, request: Request) -> schemas.TokenPairResponse:
    return await service.refresh_tokens(payload, **_client_meta(request))


@router.post("/api/auth/logout")
async def logout(
    payload: schemas.LogoutRequest,
    current_user: dict = Depends(dependencies.get_current_user),
) -> dict:
    return await service.logout(payload, current_user_id=int(current_user["id"]))


@router.get("/api/auth/me")
async def me(current_user: dict = Depends(dependencies.get_current_user)) -> schemas.UserResponse:
    return service.to_user_response(current_user)


@router.get("/api/user/me")
async def current_user_profile(
    current_user: dict = Depends(dependencies.get_current_user),
) -> schemas.UserResponse:
    """
    Alias of `/api/auth/me` for web clients.
    """
    return service.to_user_response(current_user)
