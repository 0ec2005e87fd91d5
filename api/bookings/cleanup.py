"""
Expired-booking cleanup.

`run_cleanup` does one pass; `cleanup_loop` runs it once a day (02:00 server
local time by default) for as long as the app is up. Admins can also trigger a
pass through `POST /api/bookings/cleanup-expired`.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from core.config import env_bool, env_int

from . import periods, repository

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_HOUR = 2


def cleanup_enabled() -> bool:
    return env_bool("BOOKING_CLEANUP_ENABLED", True)


def cleanup_hour() -> int:
    hour = env_int("BOOKING_CLEANUP_HOUR", DEFAULT_CLEANUP_HOUR)
    if not 0 <= hour <= 23:
        return DEFAULT_CLEANUP_HOUR
    return hour


def next_run_after(now: datetime, *, hour: int = DEFAULT_CLEANUP_HOUR) -> datetime:
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def seconds_until_next_run(now: datetime, *, hour: int = DEFAULT_CLEANUP_HOUR) -> float:
    """
    Seconds from `now` (naive, server local time) to the next run.

    Both ends are resolved to timestamps separately, so the local UTC offset
    of the run day applies even when it differs from today's.
    """
    next_run = next_run_after(now, hour=hour)
    return max(next_run.timestamp() - now.timestamp(), 0.0)


async def run_cleanup(*, now: datetime | None = None) -> int:
    """
    Delete every booking whose end lies strictly before `now`.

    Returns the number of bookings deleted.
    """
    now = periods.to_utc(now) if now is not None else periods.utc_now()
    logger.info("booking_cleanup_started now=%s", now.isoformat())

    expired = [
        row
        for row in await repository.list_bookings()
        if periods.is_expired(row["booking_date"], row["duration"], now=now)
    ]
    for row in expired:
        logger.info(
            "booking_cleanup_delete booking_id=%s car=%s end=%s",
            row["id"],
            row["car_registration_number"],
            periods.booking_end(row["booking_date"], row["duration"]).isoformat(),
        )

    deleted = await repository.delete_expired_bookings([int(row["id"]) for row in expired], now=now)
    logger.info("booking_cleanup_completed deleted=%s", deleted)
    return deleted


async def cleanup_loop(*, hour: int | None = None) -> None:
    """
    Long-running task: sleep until the next run time, clean up, repeat.

    Failures are logged and the loop keeps going; cancellation stops it.
    """
    run_hour = cleanup_hour() if hour is None else hour
    while True:
        now = datetime.now()
        delay = seconds_until_next_run(now, hour=run_hour)
        logger.info(
            "booking_cleanup_scheduled next_run=%s delay_s=%.0f",
            next_run_after(now, hour=run_hour).isoformat(),
            delay,
        )
        await asyncio.sleep(delay)

        try:
            await run_cleanup()
        except Exception:
            logger.exception("booking_cleanup_failed")
