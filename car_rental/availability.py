from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Union

from .models import Booking
from .storage import InMemoryRentalStorage

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


def _day(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def overlaps(start_a: DateLike, end_a: DateLike, start_b: DateLike, end_b: DateLike) -> bool:
    """Inclusive overlap of two ranges, compared on calendar days.

    A range ending on the day another one starts counts as a conflict.
    """
    return _day(start_a) <= _day(end_b) and _day(end_a) >= _day(start_b)


def conflicting_bookings(
    storage: InMemoryRentalStorage,
    car_id: str,
    start: DateLike,
    end: DateLike,
    exclude_booking_id: Optional[str] = None,
) -> list[Booking]:
    return [
        booking
        for booking in storage.list_active_bookings_for_car(car_id)
        if booking.id != exclude_booking_id
        and overlaps(booking.start_date, booking.end_date, start, end)
    ]


def is_available(
    storage: InMemoryRentalStorage,
    car_id: str,
    start: DateLike,
    end: DateLike,
    exclude_booking_id: Optional[str] = None,
) -> bool:
    conflicts = conflicting_bookings(storage, car_id, start, end, exclude_booking_id)
    if conflicts:
        logger.debug(
            "Date range unavailable",
            extra={"car_id": car_id, "conflicting_booking_ids": [booking.id for booking in conflicts]},
        )
    return not conflicts
