from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import asyncpg
import pytest
from fastapi import HTTPException

from auth import repository, schemas, security, service
from conftest import NOW, make_user


@pytest.fixture(autouse=True)
def _jwt_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")


@pytest.fixture
def token_storage():
    with patch.object(repository, "insert_refresh_token", AsyncMock(return_value={"id": 5})) as insert, patch.object(
        repository, "set_refresh_token_replacement", AsyncMock()
    ) as replace:
        yield insert, replace


class TestRegister:
    @pytest.mark.asyncio
    async def test_new_user_gets_user_role(self, token_storage):
        created = make_user(3, username="alice")
        with patch.object(repository, "get_user_by_username", AsyncMock(return_value=None)), patch.object(
            repository, "get_user_by_email", AsyncMock(return_value=None)
        ), patch.object(repository, "create_user", AsyncMock(return_value=created)) as create:
            result = await service.register(
                schemas.RegisterRequest(username="alice", email="alice@example.com", password="secret1")
            )

        assert create.await_args.kwargs["roles"] == ["ROLE_USER"]
        assert security.verify_password("secret1", create.await_args.kwargs["password_hash"])
        assert result.user.username == "alice"
        assert security.decode_access_token(result.tokens.access_token)["sub"] == "3"

    @pytest.mark.asyncio
    async def test_duplicate_username(self):
        with patch.object(repository, "get_user_by_username", AsyncMock(return_value=make_user())):
            with pytest.raises(HTTPException) as exc_info:
                await service.register(
                    schemas.RegisterRequest(username="john", email="new@example.com", password="secret1")
                )
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_unique_violation_race_is_conflict(self):
        with patch.object(repository, "get_user_by_username", AsyncMock(return_value=None)), patch.object(
            repository, "get_user_by_email", AsyncMock(return_value=None)
        ), patch.object(repository, "create_user", AsyncMock(side_effect=asyncpg.UniqueViolationError("dup"))):
            with pytest.raises(HTTPException) as exc_info:
                await service.register(
                    schemas.RegisterRequest(username="alice", email="alice@example.com", password="secret1")
                )
        assert exc_info.value.status_code == 409


class TestLogin:
    @pytest.mark.asyncio
    async def test_valid_credentials(self, token_storage):
        user = make_user(1, username="john")
        user["password_hash"] = security.hash_password("user123")
        with patch.object(repository, "get_user_by_username", AsyncMock(return_value=user)):
            result = await service.login(schemas.LoginRequest(username="john", password="user123"))

        assert result.user.roles == ["ROLE_USER"]
        assert result.tokens.token_type == "bearer"

    @pytest.mark.asyncio
    async def test_wrong_password(self):
        user = make_user(1, username="john")
        user["password_hash"] = security.hash_password("user123")
        with patch.object(repository, "get_user_by_username", AsyncMock(return_value=user)):
            with pytest.raises(HTTPException) as exc_info:
                await service.login(schemas.LoginRequest(username="john", password="nope"))
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_inactive_user(self):
        user = make_user(1, username="john", is_active=False)
        user["password_hash"] = security.hash_password("user123")
        with patch.object(repository, "get_user_by_username", AsyncMock(return_value=user)):
            with pytest.raises(HTTPException) as exc_info:
                await service.login(schemas.LoginRequest(username="john", password="user123"))
        assert exc_info.value.status_code == 403


class TestRefresh:
    @pytest.mark.asyncio
    async def test_revoked_token(self):
        row = {"id": 1, "user_id": 1, "revoked_at": NOW, "expires_at": NOW + timedelta(days=1)}
        with patch.object(repository, "get_refresh_token_by_hash", AsyncMock(return_value=row)):
            with pytest.raises(HTTPException) as exc_info:
                await service.refresh_tokens(schemas.RefreshRequest(refresh_token="x" * 40))
        assert exc_info.value.detail == "Refresh token is revoked."

    @pytest.mark.asyncio
    async def test_rotation(self, token_storage):
        _, replace = token_storage
        row = {"id": 1, "user_id": 1, "revoked_at": None, "expires_at": service._utc_now() + timedelta(days=1)}
        with patch.object(repository, "get_refresh_token_by_hash", AsyncMock(return_value=row)), patch.object(
            repository, "get_user_by_id", AsyncMock(return_value=make_user())
        ), patch.object(repository, "rotate_refresh_token", AsyncMock()) as rotate:
            tokens = await service.refresh_tokens(schemas.RefreshRequest(refresh_token="x" * 40))

        rotate.assert_awaited_once_with(1)
        replace.assert_awaited_once_with(old_token_id=1, new_token_id=5)
        assert tokens.refresh_token != "x" * 40


class TestAccessTokenResolution:
    @pytest.mark.asyncio
    async def test_roles_come_from_database(self):
        token = security.build_access_token(user_id=1, username="john", roles=["ROLE_ADMIN"])
        with patch.object(repository, "get_user_by_id", AsyncMock(return_value=make_user(1))):
            user = await service.get_user_from_access_token(token)
        assert user["roles"] == ["ROLE_USER"]

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self):
        with pytest.raises(HTTPException) as exc_info:
            await service.get_user_from_access_token("garbage")
        assert exc_info.value.status_code == 401


class TestLogout:
    @pytest.mark.asyncio
    async def test_without_token_revokes_everything(self):
        with patch.object(repository, "revoke_all_refresh_tokens_for_user", AsyncMock()) as revoke_all:
            result = await service.logout(schemas.LogoutRequest(), current_user_id=4)
        revoke_all.assert_awaited_once_with(4)
        assert result == {"ok": True}
