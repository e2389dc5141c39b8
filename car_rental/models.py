from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional


class CarStatus(str, Enum):
    AVAILABLE = "Available"
    BOOKED = "Booked"
    MAINTENANCE = "Maintenance"


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ACTIVE})


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    REFUNDED = "Refunded"


class FuelLevel(str, Enum):
    EMPTY = "Empty"
    QUARTER = "Quarter"
    HALF = "Half"
    THREE_QUARTER = "Three-Quarter"
    FULL = "Full"


class Role(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """The verified caller of a booking operation."""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass
class Car:
    id: str
    brand: str
    model: str
    plate_number: str
    price_per_day: float
    availability_status: CarStatus = CarStatus.AVAILABLE
    mileage: int = 0


@dataclass
class Customer:
    id: str
    name: str
    email: str
    role: Role = Role.CUSTOMER
    loyalty_points: int = 0
    total_bookings: int = 0


@dataclass
class DriverLicense:
    number: str
    expiry_date: Optional[date] = None


@dataclass
class Booking:
    id: str
    customer_id: str
    car_id: str
    start_date: datetime
    end_date: datetime
    pickup_time: str
    total_days: int
    price_per_day: float
    total_price: float
    created_at: datetime
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    return_time: str = "10:00 AM"
    purpose: Optional[str] = None
    special_requirements: Optional[str] = None
    pickup_location: str = "Main Office"
    return_location: str = "Main Office"
    driver_license: Optional[DriverLicense] = None
    actual_pickup_date: Optional[datetime] = None
    actual_return_date: Optional[datetime] = None
    mileage_at_pickup: Optional[int] = None
    mileage_at_return: Optional[int] = None
    fuel_level_at_pickup: Optional[FuelLevel] = None
    fuel_level_at_return: Optional[FuelLevel] = None
    pickup_notes: Optional[str] = None
    return_notes: Optional[str] = None
    damage_reported: bool = False
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def holds_car(self) -> bool:
        return self.status in ACTIVE_STATUSES


@dataclass
class Notification:
    user_id: str
    type: str
    title: str
    message: str
    booking_id: Optional[str]
    priority: str
    created_at: datetime


@dataclass
class AuditEntry:
    actor_id: str
    action: str
    details: str
    resource_type: str
    resource_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class BookingDraft:
    """Input of a booking request."""

    customer_id: str
    car_id: str
    start_date: datetime
    end_date: datetime
    pickup_time: str
    purpose: Optional[str] = None
    special_requirements: Optional[str] = None
    pickup_location: Optional[str] = None
    return_location: Optional[str] = None
    driver_license: Optional[DriverLicense] = None


@dataclass(frozen=True)
class PickupReport:
    mileage: Optional[int] = None
    fuel_level: Optional[FuelLevel] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ReturnReport:
    mileage: Optional[int] = None
    fuel_level: Optional[FuelLevel] = None
    notes: Optional[str] = None
    damage_reported: bool = False
