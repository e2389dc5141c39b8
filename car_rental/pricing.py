from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .errors import ValidationError

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class Quote:
    days: int
    total_price: float


def rental_days(start: datetime, end: datetime) -> int:
    """Whole days between ``start`` and ``end``, any partial day rounded up."""
    whole, remainder = divmod(end - start, ONE_DAY)
    return whole + (1 if remainder else 0)


def quote(start: datetime, end: datetime, price_per_day: float) -> Quote:
    days = rental_days(start, end)
    if days < 1:
        raise ValidationError("end date must be after start date", field="end_date")
    return Quote(days=days, total_price=days * price_per_day)
