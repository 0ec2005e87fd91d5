"""
Car business logic.

Listings come in three flavours:
- simple: plain car rows
- for a period: every car, flagged when a booking overlaps the requested window
- with booking info: every car, flagged when it has a booking that has not ended
"""

from __future__ import annotations

import logging
from datetime import datetime

import asyncpg
from fastapi import HTTPException, status

from bookings import periods
from bookings import repository as bookings_repository
from core import db

from . import repository, schemas

logger = logging.getLogger(__name__)


def _car_type_value(car_type: schemas.CarType | None) -> str | None:
    return car_type.value if car_type is not None else None


def to_car_response(car_row: dict, booking_row: dict | None = None) -> schemas.CarResponse:
    car = schemas.CarResponse(
        id=int(car_row["id"]),
        registration_number=str(car_row["registration_number"]),
        type=schemas.CarType(car_row["type"]),
        cost_per_day=car_row["cost_per_day"],
        capacity=int(car_row["capacity"]),
    )
    if booking_row is None:
        return car

    start = booking_row["booking_date"]
    end = periods.booking_end(start, booking_row["duration"])
    return car.model_copy(
        update={
            "is_booked": True,
            "current_booking_id": int(booking_row["id"]),
            "booked_by_user_id": int(booking_row["user_id"]),
            "booked_by_username": str(booking_row["username"]),
            "booking_start_date": periods.format_for_display(start),
            "booking_end_date": periods.format_for_display(end),
        }
    )


def _first_booking_per_car(booking_rows: list[dict]) -> dict[int, dict]:
    # Rows arrive ordered by booking_date, so the first one seen wins.
    first: dict[int, dict] = {}
    for row in booking_rows:
        first.setdefault(int(row["car_id"]), row)
    return first


def _not_found(car_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Car not found with id: {car_id}",
    )


async def list_cars_simple(car_type: schemas.CarType | None = None) -> list[schemas.CarResponse]:
    rows = await repository.list_cars(car_type=_car_type_value(car_type))
    return [to_car_response(row) for row in rows]


async def list_cars_for_period(
    start_date: datetime,
    duration: int,
    car_type: schemas.CarType | None = None,
) -> list[schemas.CarResponse]:
    start, end = periods.window(start_date, duration)
    cars = await repository.list_cars(car_type=_car_type_value(car_type))
    overlapping = _first_booking_per_car(await bookings_repository.list_bookings_in_range(start, end))
    return [to_car_response(car, overlapping.get(int(car["id"]))) for car in cars]


async def list_cars_with_booking_info(
    car_type: schemas.CarType | None = None,
    *,
    now: datetime | None = None,
) -> list[schemas.CarResponse]:
    now = now or periods.utc_now()
    cars = await repository.list_cars(car_type=_car_type_value(car_type))
    active = _first_booking_per_car(await bookings_repository.list_active_bookings(now))
    return [to_car_response(car, active.get(int(car["id"]))) for car in cars]


async def list_available_cars(
    start_date: datetime,
    duration: int,
    car_type: schemas.CarType | None = None,
) -> list[schemas.CarResponse]:
    start, end = periods.window(start_date, duration)
    rows = await repository.list_available_cars(start, end, car_type=_car_type_value(car_type))
    return [to_car_response(row) for row in rows]


async def get_car(car_id: int) -> schemas.CarResponse:
    row = await repository.get_car(car_id)
    if row is None:
        raise _not_found(car_id)
    return to_car_response(row)


async def create_car(payload: schemas.CarRequest) -> schemas.CarResponse:
    try:
        row = await repository.insert_car(
            registration_number=payload.registration_number,
            car_type=payload.type.value,
            cost_per_day=payload.cost_per_day,
            capacity=payload.capacity,
        )
    except asyncpg.UniqueViolationError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Registration number {payload.registration_number} already exists.",
        ) from exc

    logger.info("car_created car_id=%s registration=%s", row["id"], row["registration_number"])
    return to_car_response(row)


async def update_car(car_id: int, payload: schemas.CarRequest) -> schemas.CarResponse:
    try:
        row = await repository.update_car(
            car_id,
            registration_number=payload.registration_number,
            car_type=payload.type.value,
            cost_per_day=payload.cost_per_day,
            capacity=payload.capacity,
        )
    except asyncpg.UniqueViolationError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Registration number {payload.registration_number} already exists.",
        ) from exc

    if row is None:
        raise _not_found(car_id)
    return to_car_response(row)


async def delete_car(car_id: int, *, now: datetime | None = None) -> None:
    now = now or periods.utc_now()
    async with db.transaction() as conn:
        car = await repository.lock_car(conn, car_id)
        if car is None:
            raise _not_found(car_id)

        active = await bookings_repository.count_active_for_car(conn, car_id, now)
        if active:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete car with active bookings. Please cancel all bookings first.",
            )

        await repository.delete_car(conn, car_id)

    logger.info("car_deleted car_id=%s registration=%s", car_id, car["registration_number"])
