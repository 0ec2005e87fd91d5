from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

import seed
from bookings import cleanup
from core import db


class TestLifespan:
    @pytest.mark.asyncio
    async def test_pool_closed_when_seeding_fails(self, app, monkeypatch: pytest.MonkeyPatch):
        import main

        monkeypatch.setenv("SEED_DEMO_DATA", "true")
        monkeypatch.setenv("BOOKING_CLEANUP_ENABLED", "false")
        with patch.object(db, "init_pool", AsyncMock()), patch.object(db, "close_pool", AsyncMock()) as close_pool, patch.object(
            seed, "seed_demo_data", AsyncMock(side_effect=RuntimeError("seed failed"))
        ):
            with pytest.raises(RuntimeError, match="seed failed"):
                async with main.lifespan(app):
                    pass

        close_pool.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cleanup_task_cancelled_on_shutdown(self, app, monkeypatch: pytest.MonkeyPatch):
        import main

        monkeypatch.setenv("SEED_DEMO_DATA", "false")
        monkeypatch.setenv("BOOKING_CLEANUP_ENABLED", "true")
        started = AsyncMock()

        async def idle_loop():
            await started()
            await main.asyncio.Event().wait()

        with patch.object(db, "init_pool", AsyncMock()), patch.object(db, "close_pool", AsyncMock()) as close_pool, patch.object(
            cleanup, "cleanup_loop", idle_loop
        ):
            async with main.lifespan(app):
                await main.asyncio.sleep(0)

        started.assert_awaited_once()
        close_pool.assert_awaited_once()
