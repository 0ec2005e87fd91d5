"""
Pydantic schemas for car endpoints.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class CarType(str, Enum):
    SEDAN = "SEDAN"
    VAN = "VAN"
    SUV = "SUV"


class CarRequest(BaseModel):
    registration_number: str = Field(..., min_length=1, max_length=32)
    type: CarType
    cost_per_day: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    capacity: int = Field(..., ge=1, le=100)

    @field_validator("registration_number")
    @classmethod
    def _normalize_registration(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("registration_number must not be blank")
        return value


class CarResponse(BaseModel):
    id: int
    registration_number: str
    type: CarType
    cost_per_day: Decimal
    capacity: int

    is_booked: bool = False
    current_booking_id: int | None = None
    booked_by_user_id: int | None = None
    booked_by_username: str | None = None
    booking_start_date: str | None = None
    booking_end_date: str | None = None
