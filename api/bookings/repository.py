"""
Booking persistence (raw SQL).

Overlap rule shared by every availability query: an existing booking `b`
overlaps the window [$start, $end] when

    b.booking_date <= $end AND b.booking_date + b.duration days >= $start
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import asyncpg

from core import db

BOOKING_END_SQL = "(b.booking_date + make_interval(days => b.duration))"


def overlap_sql(start_param: str, end_param: str) -> str:
    return f"(b.booking_date <= {end_param} AND {BOOKING_END_SQL} >= {start_param})"


_BOOKING_SELECT = """
    SELECT b.id, b.car_id, b.user_id, b.booking_date, b.duration, b.created_at,
           c.registration_number AS car_registration_number,
           u.username
    FROM bookings b
    JOIN cars c ON c.id = b.car_id
    JOIN users u ON u.id = b.user_id
"""


async def list_bookings() -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        {_BOOKING_SELECT}
        ORDER BY b.booking_date ASC, b.id ASC
        """
    )


async def list_bookings_in_range(start_date: datetime, end_date: datetime) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        {_BOOKING_SELECT}
        WHERE {overlap_sql("$1", "$2")}
        ORDER BY b.booking_date ASC, b.id ASC
        """,
        start_date,
        end_date,
    )


async def get_booking(booking_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        {_BOOKING_SELECT}
        WHERE b.id = $1
        """,
        booking_id,
    )


async def list_bookings_for_user(user_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        {_BOOKING_SELECT}
        WHERE b.user_id = $1
        ORDER BY b.booking_date ASC, b.id ASC
        """,
        user_id,
    )


async def list_bookings_for_car(car_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        {_BOOKING_SELECT}
        WHERE b.car_id = $1
        ORDER BY b.booking_date ASC, b.id ASC
        """,
        car_id,
    )


async def list_active_bookings(now: datetime) -> list[dict[str, Any]]:
    """
    Bookings that have not ended yet, earliest first.
    """
    return await db.fetch_all(
        f"""
        {_BOOKING_SELECT}
        WHERE {BOOKING_END_SQL} >= $1
        ORDER BY b.booking_date ASC, b.id ASC
        """,
        now,
    )


async def find_conflicts(
    car_id: int,
    start_date: datetime,
    end_date: datetime,
    *,
    exclude_booking_id: int | None = None,
    conn: asyncpg.Connection | None = None,
) -> list[dict[str, Any]]:
    """
    Bookings of `car_id` overlapping [start_date, end_date].

    Pass `conn` to run inside a caller-owned transaction.
    """
    sql = f"""
        {_BOOKING_SELECT}
        WHERE b.car_id = $1
          AND {overlap_sql("$2", "$3")}
          AND ($4::bigint IS NULL OR b.id <> $4::bigint)
        ORDER BY b.booking_date ASC, b.id ASC
    """
    args = (car_id, start_date, end_date, exclude_booking_id)
    if conn is None:
        return await db.fetch_all(sql, *args)
    return [dict(r) for r in await conn.fetch(sql, *args)]


async def count_active_for_car(conn: asyncpg.Connection, car_id: int, now: datetime) -> int:
    value = await conn.fetchval(
        f"""
        SELECT count(*)
        FROM bookings b
        WHERE b.car_id = $1
          AND {BOOKING_END_SQL} >= $2
        """,
        car_id,
        now,
    )
    return int(value or 0)


async def insert_booking(
    conn: asyncpg.Connection,
    *,
    car_id: int,
    user_id: int,
    booking_date: datetime,
    duration: int,
) -> int:
    booking_id = await conn.fetchval(
        """
        INSERT INTO bookings (car_id, user_id, booking_date, duration)
        VALUES ($1, $2, $3, $4)
        RETURNING id
        """,
        car_id,
        user_id,
        booking_date,
        duration,
    )
    if booking_id is None:
        raise RuntimeError("Failed to insert booking.")
    return int(booking_id)


async def update_booking(
    conn: asyncpg.Connection,
    booking_id: int,
    *,
    car_id: int,
    booking_date: datetime,
    duration: int,
) -> None:
    await conn.execute(
        """
        UPDATE bookings
        SET car_id = $2,
            booking_date = $3,
            duration = $4
        WHERE id = $1
        """,
        booking_id,
        car_id,
        booking_date,
        duration,
    )


async def delete_booking(booking_id: int) -> bool:
    status = await db.execute("DELETE FROM bookings WHERE id = $1", booking_id)
    return db.rows_affected(status) > 0


async def delete_expired_bookings(booking_ids: list[int], *, now: datetime) -> int:
    """
    Delete the given bookings, skipping any whose end is no longer before `now`.

    A booking moved to later dates after it was read stays in place.
    """
    if not booking_ids:
        return 0
    status = await db.execute(
        f"""
        DELETE FROM bookings b
        WHERE b.id = ANY($1::bigint[])
          AND {BOOKING_END_SQL} < $2
        """,
        booking_ids,
        now,
    )
    return db.rows_affected(status)
