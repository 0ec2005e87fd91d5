"""
Booking business logic.

Conflict checks and writes for one car run inside a transaction that holds the
car's row lock (see `cars.repository.lock_car`), so two requests cannot book
overlapping windows of the same car.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import HTTPException, status

from auth import roles
from cars import repository as cars_repository
from core import db

from . import periods, repository, schemas

logger = logging.getLogger(__name__)


def to_booking_response(row: dict) -> schemas.BookingResponse:
    return schemas.BookingResponse(
        id=int(row["id"]),
        car_id=int(row["car_id"]),
        user_id=int(row["user_id"]),
        car_registration_number=str(row["car_registration_number"]),
        username=str(row["username"]),
        booking_date=row["booking_date"],
        duration=int(row["duration"]),
        booking_end_date=periods.booking_end(row["booking_date"], row["duration"]),
        created_at=row["created_at"],
    )


def _booking_not_found(booking_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Booking not found with id: {booking_id}",
    )


def _car_not_found(car_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Car not found with id: {car_id}",
    )


def _conflict(count: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=(
            "Car is not available for the requested period. "
            f"There are {count} conflicting booking(s)."
        ),
    )


def _validated_window(payload: schemas.BookingRequest, *, now: datetime) -> tuple[datetime, datetime]:
    start, end = periods.window(payload.booking_date, payload.duration)
    if end < now:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Booking period has already ended.",
        )
    return start, end


async def list_bookings(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[schemas.BookingResponse]:
    if start_date is None and end_date is None:
        rows = await repository.list_bookings()
        return [to_booking_response(row) for row in rows]

    if start_date is None or end_date is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide both start_date and end_date, or neither.",
        )

    start, end = periods.to_utc(start_date), periods.to_utc(end_date)
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date.",
        )
    rows = await repository.list_bookings_in_range(start, end)
    return [to_booking_response(row) for row in rows]


async def get_booking(booking_id: int, *, current_user: dict) -> schemas.BookingResponse:
    row = await repository.get_booking(booking_id)
    if row is None:
        raise _booking_not_found(booking_id)

    if int(row["user_id"]) != int(current_user["id"]) and not roles.is_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own bookings",
        )
    return to_booking_response(row)


async def my_bookings(*, current_user: dict) -> list[schemas.BookingResponse]:
    rows = await repository.list_bookings_for_user(int(current_user["id"]))
    return [to_booking_response(row) for row in rows]


async def bookings_for_car(car_id: int) -> list[schemas.BookingResponse]:
    if await cars_repository.get_car(car_id) is None:
        raise _car_not_found(car_id)
    rows = await repository.list_bookings_for_car(car_id)
    return [to_booking_response(row) for row in rows]


async def check_availability(car_id: int, start_date: datetime, duration: int) -> schemas.AvailabilityResponse:
    if await cars_repository.get_car(car_id) is None:
        raise _car_not_found(car_id)

    start, end = periods.window(start_date, duration)
    conflicts = await repository.find_conflicts(car_id, start, end)
    return schemas.AvailabilityResponse(
        car_id=car_id,
        start_date=start,
        end_date=end,
        available=not conflicts,
        conflicts=len(conflicts),
    )


async def create_booking(
    payload: schemas.BookingRequest,
    *,
    current_user: dict,
    now: datetime | None = None,
) -> schemas.BookingResponse:
    start, end = _validated_window(payload, now=now or periods.utc_now())

    async with db.transaction() as conn:
        car = await cars_repository.lock_car(conn, payload.car_id)
        if car is None:
            raise _car_not_found(payload.car_id)

        conflicts = await repository.find_conflicts(payload.car_id, start, end, conn=conn)
        if conflicts:
            raise _conflict(len(conflicts))

        booking_id = await repository.insert_booking(
            conn,
            car_id=payload.car_id,
            user_id=int(current_user["id"]),
            booking_date=start,
            duration=payload.duration,
        )

    logger.info(
        "booking_created booking_id=%s car_id=%s user_id=%s start=%s duration=%s",
        booking_id,
        payload.car_id,
        current_user["id"],
        start.isoformat(),
        payload.duration,
    )
    row = await repository.get_booking(booking_id)
    if row is None:
        raise RuntimeError("Booking vanished after insert.")
    return to_booking_response(row)


async def update_booking(
    booking_id: int,
    payload: schemas.BookingRequest,
    *,
    now: datetime | None = None,
) -> schemas.BookingResponse:
    if await repository.get_booking(booking_id) is None:
        raise _booking_not_found(booking_id)

    start, end = _validated_window(payload, now=now or periods.utc_now())

    async with db.transaction() as conn:
        car = await cars_repository.lock_car(conn, payload.car_id)
        if car is None:
            raise _car_not_found(payload.car_id)

        conflicts = await repository.find_conflicts(
            payload.car_id,
            start,
            end,
            exclude_booking_id=booking_id,
            conn=conn,
        )
        if conflicts:
            raise _conflict(len(conflicts))

        await repository.update_booking(
            conn,
            booking_id,
            car_id=payload.car_id,
            booking_date=start,
            duration=payload.duration,
        )

    row = await repository.get_booking(booking_id)
    if row is None:
        raise _booking_not_found(booking_id)
    logger.info("booking_updated booking_id=%s car_id=%s", booking_id, payload.car_id)
    return to_booking_response(row)


async def delete_booking(booking_id: int, *, current_user: dict) -> None:
    row = await repository.get_booking(booking_id)
    if row is None:
        raise _booking_not_found(booking_id)

    is_owner = int(row["user_id"]) == int(current_user["id"])
    if not is_owner and not roles.is_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only cancel your own bookings",
        )

    await repository.delete_booking(booking_id)
    logger.info("booking_cancelled booking_id=%s by_user_id=%s", booking_id, current_user["id"])
