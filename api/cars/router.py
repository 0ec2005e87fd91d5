"""
Car API endpoints.

Car-scoped booking views (`/api/cars/{id}/bookings`, `/api/cars/{id}/availability`)
live here too; they delegate to the bookings service.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status

from auth import dependencies as auth_dependencies
from bookings import schemas as booking_schemas
from bookings import service as booking_service

from . import schemas, service

router = APIRouter()


@router.get("/api/cars")
async def list_cars(
    start_date: datetime = Query(...),
    duration: int = Query(..., ge=1, le=booking_schemas.MAX_DURATION_DAYS),
    type: schemas.CarType | None = Query(default=None),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> list[schemas.CarResponse]:
    """
    Every car, flagged as booked when a booking overlaps the requested period.
    """
    return await service.list_cars_for_period(start_date, duration, type)


@router.get("/api/cars/simple")
async def list_cars_simple(
    type: schemas.CarType | None = Query(default=None),
    _: dict = Depends(auth_dependencies.require_admin),
) -> list[schemas.CarResponse]:
    return await service.list_cars_simple(type)


@router.get("/api/cars/booking-info")
async def list_cars_with_booking_info(
    type: schemas.CarType | None = Query(default=None),
    _: dict = Depends(auth_dependencies.require_admin),
) -> list[schemas.CarResponse]:
    """
    Every car, flagged as booked when it has a booking that has not ended yet.
    """
    return await service.list_cars_with_booking_info(type)


@router.get("/api/cars/available")
async def list_available_cars(
    start_date: datetime = Query(...),
    duration: int = Query(..., ge=1, le=booking_schemas.MAX_DURATION_DAYS),
    type: schemas.CarType | None = Query(default=None),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> list[schemas.CarResponse]:
    return await service.list_available_cars(start_date, duration, type)


@router.get("/api/cars/{car_id}")
async def get_car(
    car_id: int,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> schemas.CarResponse:
    return await service.get_car(car_id)


@router.get("/api/cars/{car_id}/bookings")
async def list_car_bookings(
    car_id: int,
    _: dict = Depends(auth_dependencies.require_admin),
) -> list[booking_schemas.BookingResponse]:
    return await booking_service.bookings_for_car(car_id)


@router.get("/api/cars/{car_id}/availability")
async def car_availability(
    car_id: int,
    start_date: datetime = Query(...),
    duration: int = Query(..., ge=1, le=booking_schemas.MAX_DURATION_DAYS),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> booking_schemas.AvailabilityResponse:
    return await booking_service.check_availability(car_id, start_date, duration)


@router.post("/api/cars", status_code=status.HTTP_201_CREATED)
async def create_car(
    payload: schemas.CarRequest,
    _: dict = Depends(auth_dependencies.require_admin),
) -> schemas.CarResponse:
    return await service.create_car(payload)


@router.put("/api/cars/{car_id}")
async def update_car(
    car_id: int,
    payload: schemas.CarRequest,
    _: dict = Depends(auth_dependencies.require_admin),
) -> schemas.CarResponse:
    return await service.update_car(car_id, payload)


@router.delete("/api/cars/{car_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_car(
    car_id: int,
    _: dict = Depends(auth_dependencies.require_admin),
) -> Response:
    await service.delete_car(car_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
