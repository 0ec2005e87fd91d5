"""
Booking API endpoints.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status

from auth import dependencies as auth_dependencies

from . import cleanup, schemas, service

router = APIRouter()


@router.get("/api/bookings")
async def list_bookings(
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    _: dict = Depends(auth_dependencies.require_admin),
) -> list[schemas.BookingResponse]:
    """
    All bookings, or only those overlapping [start_date, end_date].
    """
    return await service.list_bookings(start_date, end_date)


@router.get("/api/bookings/my-bookings")
async def my_bookings(
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> list[schemas.BookingResponse]:
    return await service.my_bookings(current_user=current_user)


@router.post("/api/bookings/cleanup-expired")
async def cleanup_expired_bookings(
    _: dict = Depends(auth_dependencies.require_admin),
) -> schemas.CleanupResponse:
    deleted = await cleanup.run_cleanup()
    return schemas.CleanupResponse(deleted_bookings=deleted)


@router.get("/api/bookings/{booking_id}")
async def get_booking(
    booking_id: int,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> schemas.BookingResponse:
    return await service.get_booking(booking_id, current_user=current_user)


@router.post("/api/bookings", status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: schemas.BookingRequest,
    current_user: dict = Depends(auth_dependencies.require_user_or_admin),
) -> schemas.BookingResponse:
    return await service.create_booking(payload, current_user=current_user)


@router.put("/api/bookings/{booking_id}")
async def update_booking(
    booking_id: int,
    payload: schemas.BookingRequest,
    _: dict = Depends(auth_dependencies.require_admin),
) -> schemas.BookingResponse:
    return await service.update_booking(booking_id, payload)


@router.delete("/api/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int,
    current_user: dict = Depends(auth_dependencies.require_user_or_admin),
) -> Response:
    await service.delete_booking(booking_id, current_user=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
