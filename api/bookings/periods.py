"""
Booking period arithmetic.

A booking covers the closed interval [booking_date, booking_date + duration days].
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

DISPLAY_FORMAT = "%Y-%m-%d %H:%M"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """
    Treat naive datetimes as UTC; convert aware ones to UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def booking_end(booking_date: datetime, duration: int) -> datetime:
    return booking_date + timedelta(days=int(duration))


def window(start_date: datetime, duration: int) -> tuple[datetime, datetime]:
    start = to_utc(start_date)
    return start, booking_end(start, duration)


def is_expired(booking_date: datetime, duration: int, *, now: datetime) -> bool:
    # Strictly before: a booking ending exactly now is still active.
    return booking_end(to_utc(booking_date), duration) < to_utc(now)


def format_for_display(value: datetime) -> str:
    return value.strftime(DISPLAY_FORMAT)
