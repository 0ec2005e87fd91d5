"""
Pydantic schemas for booking endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

# Upper bound on a single booking, in days.
MAX_DURATION_DAYS = 365


class BookingRequest(BaseModel):
    car_id: int = Field(..., ge=1)
    booking_date: datetime
    duration: int = Field(..., ge=1, le=MAX_DURATION_DAYS, description="Length in days.")


class BookingResponse(BaseModel):
    id: int
    car_id: int
    user_id: int
    car_registration_number: str
    username: str
    booking_date: datetime
    duration: int
    booking_end_date: datetime
    created_at: datetime


class AvailabilityResponse(BaseModel):
    car_id: int
    start_date: datetime
    end_date: datetime
    available: bool
    conflicts: int


class CleanupResponse(BaseModel):
    message: str = "Cleanup completed successfully"
    deleted_bookings: int
