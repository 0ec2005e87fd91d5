from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from core import config, db


class TestEnvReaders:
    def test_env_str_falls_back_on_blank(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SOME_SETTING", "   ")
        assert config.env_str("SOME_SETTING", "default") == "default"

    def test_env_int_ignores_garbage(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SOME_NUMBER", "twelve")
        assert config.env_int("SOME_NUMBER", 7) == 7
        monkeypatch.setenv("SOME_NUMBER", "12")
        assert config.env_int("SOME_NUMBER", 7) == 12

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("true", True), ("YES", True), ("0", False), ("off", False), ("maybe", True), ("", True)],
    )
    def test_env_bool(self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool):
        monkeypatch.setenv("SOME_FLAG", raw)
        assert config.env_bool("SOME_FLAG", True) is expected

    def test_env_list_splits_and_strips(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CORS_ORIGINS", "http://a , ,http://b")
        assert config.env_list("CORS_ORIGINS", []) == ["http://a", "http://b"]


class TestDatabaseUrl:
    def test_missing_url_raises(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            db.database_url()

    def test_sslmode_is_stripped(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@host:5432/cars?sslmode=require&application_name=api")
        assert db.database_url() == "postgresql://u:p@host:5432/cars?application_name=api"

    def test_pool_requires_init(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            db.pool()

    @pytest.mark.parametrize(("status", "expected"), [("DELETE 3", 3), ("UPDATE 0", 0), ("", 0)])
    def test_rows_affected(self, status: str, expected: int):
        assert db.rows_affected(status) == expected


class TestInitPool:
    @pytest.mark.asyncio
    async def test_session_timezone_pinned_to_utc(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@host:5432/cars")
        monkeypatch.setattr(db, "_pool", None)
        create_pool = AsyncMock(return_value=MagicMock(name="pool"))
        monkeypatch.setattr(db.asyncpg, "create_pool", create_pool)

        await db.init_pool()

        assert create_pool.await_args.kwargs["server_settings"] == {"timezone": "UTC"}
        assert db.pool() is create_pool.return_value
