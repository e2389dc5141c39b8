from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import (
    Booking,
    BookingDraft,
    DriverLicense,
    FuelLevel,
    PaymentStatus,
    PickupReport,
    ReturnReport,
)


class DriverLicenseIn(BaseModel):
    number: str = Field(..., min_length=1)
    expiry_date: Optional[date] = None


class BookingCreateRequest(BaseModel):
    customer_id: Optional[str] = Field(default=None, min_length=1)
    car_id: str = Field(..., min_length=1)
    start_date: datetime
    end_date: datetime
    pickup_time: str = Field(..., min_length=1)
    purpose: Optional[str] = None
    special_requirements: Optional[str] = None
    pickup_location: Optional[str] = None
    return_location: Optional[str] = None
    driver_license: Optional[DriverLicenseIn] = None

    def to_draft(self, default_customer_id: str) -> BookingDraft:
        license_ = None
        if self.driver_license:
            license_ = DriverLicense(number=self.driver_license.number, expiry_date=self.driver_license.expiry_date)
        return BookingDraft(
            customer_id=self.customer_id or default_customer_id,
            car_id=self.car_id,
            start_date=self.start_date,
            end_date=self.end_date,
            pickup_time=self.pickup_time,
            purpose=self.purpose,
            special_requirements=self.special_requirements,
            pickup_location=self.pickup_location,
            return_location=self.return_location,
            driver_license=license_,
        )


class AvailabilityQuery(BaseModel):
    car_id: str = Field(..., min_length=1)
    start_date: datetime
    end_date: datetime


class AvailabilityResponse(BaseModel):
    available: bool
    message: str


class PickupRequest(BaseModel):
    mileage_at_pickup: Optional[int] = Field(default=None, ge=0)
    fuel_level_at_pickup: Optional[FuelLevel] = None
    pickup_notes: Optional[str] = None

    def to_report(self) -> PickupReport:
        return PickupReport(
            mileage=self.mileage_at_pickup,
            fuel_level=self.fuel_level_at_pickup,
            notes=self.pickup_notes,
        )


class ReturnRequest(BaseModel):
    mileage_at_return: Optional[int] = Field(default=None, ge=0)
    fuel_level_at_return: Optional[FuelLevel] = None
    return_notes: Optional[str] = None
    damage_reported: bool = False

    def to_report(self) -> ReturnReport:
        return ReturnReport(
            mileage=self.mileage_at_return,
            fuel_level=self.fuel_level_at_return,
            notes=self.return_notes,
            damage_reported=self.damage_reported,
        )


class CancelRequest(BaseModel):
    cancellation_reason: Optional[str] = None


class PaymentUpdateRequest(BaseModel):
    payment_status: PaymentStatus


class BookingResponse(BaseModel):
    id: str
    customer_id: str
    car_id: str
    status: str
    payment_status: str
    start_date: datetime
    end_date: datetime
    pickup_time: str
    return_time: str
    total_days: int
    price_per_day: float
    total_price: float
    purpose: Optional[str] = None
    special_requirements: Optional[str] = None
    pickup_location: str
    return_location: str
    driver_license: Optional[DriverLicenseIn] = None
    actual_pickup_date: Optional[datetime] = None
    actual_return_date: Optional[datetime] = None
    mileage_at_pickup: Optional[int] = None
    mileage_at_return: Optional[int] = None
    fuel_level_at_pickup: Optional[str] = None
    fuel_level_at_return: Optional[str] = None
    pickup_notes: Optional[str] = None
    return_notes: Optional[str] = None
    damage_reported: bool
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingResponse":
        license_ = None
        if booking.driver_license:
            license_ = DriverLicenseIn(
                number=booking.driver_license.number,
                expiry_date=booking.driver_license.expiry_date,
            )
        return cls(
            id=booking.id,
            customer_id=booking.customer_id,
            car_id=booking.car_id,
            status=booking.status.value,
            payment_status=booking.payment_status.value,
            start_date=booking.start_date,
            end_date=booking.end_date,
            pickup_time=booking.pickup_time,
            return_time=booking.return_time,
            total_days=booking.total_days,
            price_per_day=booking.price_per_day,
            total_price=booking.total_price,
            purpose=booking.purpose,
            special_requirements=booking.special_requirements,
            pickup_location=booking.pickup_location,
            return_location=booking.return_location,
            driver_license=license_,
            actual_pickup_date=booking.actual_pickup_date,
            actual_return_date=booking.actual_return_date,
            mileage_at_pickup=booking.mileage_at_pickup,
            mileage_at_return=booking.mileage_at_return,
            fuel_level_at_pickup=booking.fuel_level_at_pickup.value if booking.fuel_level_at_pickup else None,
            fuel_level_at_return=booking.fuel_level_at_return.value if booking.fuel_level_at_return else None,
            pickup_notes=booking.pickup_notes,
            return_notes=booking.return_notes,
            damage_reported=booking.damage_reported,
            cancellation_reason=booking.cancellation_reason,
            cancelled_by=booking.cancelled_by,
            cancelled_at=booking.cancelled_at,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class BookingsListResponse(BaseModel):
    items: List[BookingResponse]
    count: int


class ErrorResponse(BaseModel):
    code: str
    message: str
    field: Optional[str] = None
