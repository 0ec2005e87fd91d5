"""
Car persistence (raw SQL).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

import asyncpg

from bookings.repository import overlap_sql
from core import db

_CAR_COLUMNS = "c.id, c.registration_number, c.type, c.cost_per_day, c.capacity, c.created_at, c.updated_at"


async def list_cars(*, car_type: str | None = None) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {_CAR_COLUMNS}
        FROM cars c
        WHERE ($1::text IS NULL OR c.type = $1::text)
        ORDER BY c.registration_number ASC
        """,
        car_type,
    )


async def list_available_cars(
    start_date: datetime,
    end_date: datetime,
    *,
    car_type: str | None = None,
) -> list[dict[str, Any]]:
    """
    Cars with no booking overlapping [start_date, end_date].
    """
    return await db.fetch_all(
        f"""
        SELECT {_CAR_COLUMNS}
        FROM cars c
        WHERE ($3::text IS NULL OR c.type = $3::text)
          AND NOT EXISTS (
            SELECT 1
            FROM bookings b
            WHERE b.car_id = c.id
              AND {overlap_sql("$1", "$2")}
          )
        ORDER BY c.registration_number ASC
        """,
        start_date,
        end_date,
        car_type,
    )


async def get_car(car_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {_CAR_COLUMNS}
        FROM cars c
        WHERE c.id = $1
        """,
        car_id,
    )


async def lock_car(conn: asyncpg.Connection, car_id: int) -> dict[str, Any] | None:
    """
    Fetch a car with a row lock held until the caller's transaction ends.

    Booking writes for the same car serialize on this lock.
    """
    row = await conn.fetchrow(
        f"""
        SELECT {_CAR_COLUMNS}
        FROM cars c
        WHERE c.id = $1
        FOR UPDATE
        """,
        car_id,
    )
    return dict(row) if row is not None else None


async def insert_car(
    *,
    registration_number: str,
    car_type: str,
    cost_per_day: Decimal,
    capacity: int,
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO cars AS c (registration_number, type, cost_per_day, capacity)
        VALUES ($1, $2, $3, $4)
        RETURNING {_CAR_COLUMNS}
        """,
        registration_number,
        car_type,
        cost_per_day,
        capacity,
    )
    if row is None:
        raise RuntimeError("Failed to insert car.")
    return row


async def update_car(
    car_id: int,
    *,
    registration_number: str,
    car_type: str,
    cost_per_day: Decimal,
    capacity: int,
) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        UPDATE cars AS c
        SET registration_number = $2,
            type = $3,
            cost_per_day = $4,
            capacity = $5,
            updated_at = now()
        WHERE c.id = $1
        RETURNING {_CAR_COLUMNS}
        """,
        car_id,
        registration_number,
        car_type,
        cost_per_day,
        capacity,
    )


async def delete_car(conn: asyncpg.Connection, car_id: int) -> None:
    """
    Delete a car and whatever (expired) bookings still reference it.
    """
    await conn.execute("DELETE FROM bookings WHERE car_id = $1", car_id)
    await conn.execute("DELETE FROM cars WHERE id = $1", car_id)
