from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional
from uuid import uuid4

from .availability import is_available
from .config import settings
from .errors import (
    ConflictError,
    ForbiddenError,
    InfrastructureError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from .events import AuditAction, EventPublisher, NotificationType
from .models import (
    Actor,
    Booking,
    BookingDraft,
    BookingStatus,
    Car,
    CarStatus,
    PaymentStatus,
    PickupReport,
    ReturnReport,
)
from .pricing import quote
from .storage import InMemoryRentalStorage

logger = logging.getLogger(__name__)

TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.ACTIVE, BookingStatus.CANCELLED}),
    BookingStatus.ACTIVE: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

_REJECTIONS = {
    BookingStatus.CONFIRMED: "only pending bookings can be confirmed",
    BookingStatus.ACTIVE: "booking must be confirmed before pickup",
    BookingStatus.COMPLETED: "booking must be active to process return",
    BookingStatus.CANCELLED: "active rentals cannot be cancelled",
}


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def ensure_transition(booking: Booking, target: BookingStatus) -> None:
    if booking.status.is_terminal:
        raise InvalidTransitionError(f"booking is already {booking.status.value.lower()}")
    if target not in TRANSITIONS[booking.status]:
        raise InvalidTransitionError(_REJECTIONS[target])


def _require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise ForbiddenError("admin access required")


class BookingService:
    """Owns the booking state machine and the car/customer state it drives.

    Every operation takes the acting :class:`Actor` explicitly; the service
    keeps no per-caller state. Writes for one car are serialized through the
    storage's per-car lock, so an availability check and the write that
    depends on it cannot interleave with another request for the same car.
    """

    def __init__(
        self,
        storage: InMemoryRentalStorage,
        events: Optional[EventPublisher] = None,
        clock: Optional[Callable[[], datetime]] = None,
        loyalty_points: Optional[int] = None,
    ) -> None:
        self._storage = storage
        self._events = events if events is not None else EventPublisher()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._loyalty_points = (
            loyalty_points if loyalty_points is not None else settings.LOYALTY_POINTS_PER_BOOKING
        )

    @property
    def events(self) -> EventPublisher:
        return self._events

    def check_availability(
        self,
        *,
        car_id: str,
        start_date: datetime,
        end_date: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        start, end = ensure_utc(start_date), ensure_utc(end_date)
        if start > end:
            raise ValidationError("end date cannot be before start date", field="end_date")
        return is_available(self._storage, car_id, start, end, exclude_booking_id)

    def create_booking(self, actor: Actor, draft: BookingDraft) -> Booking:
        start, end = ensure_utc(draft.start_date), ensure_utc(draft.end_date)
        if start >= end:
            raise ValidationError("end date must be after start date", field="end_date")
        now = self._clock()
        if start.date() < ensure_utc(now).date():
            raise ValidationError("start date cannot be in the past", field="start_date")
        if not actor.is_admin and draft.customer_id != actor.user_id:
            raise ForbiddenError("customers can only book for themselves")

        if not self._storage.get_customer(draft.customer_id):
            raise NotFoundError("customer not found")
        if not self._storage.get_car(draft.car_id):
            raise NotFoundError("car not found")

        with self._storage.car_lock(draft.car_id):
            car = self._storage.get_car(draft.car_id)
            if car.availability_status != CarStatus.AVAILABLE:
                raise ConflictError("car is not available for booking")
            if not is_available(self._storage, car.id, start, end):
                raise ConflictError("car is already booked for the selected dates")

            price = quote(start, end, car.price_per_day)
            booking = Booking(
                id=self._generate_booking_id(),
                customer_id=draft.customer_id,
                car_id=car.id,
                start_date=start,
                end_date=end,
                pickup_time=draft.pickup_time,
                return_time=settings.DEFAULT_RETURN_TIME,
                total_days=price.days,
                price_per_day=car.price_per_day,
                total_price=price.total_price,
                purpose=draft.purpose,
                special_requirements=draft.special_requirements,
                pickup_location=draft.pickup_location or settings.DEFAULT_PICKUP_LOCATION,
                return_location=draft.return_location or settings.DEFAULT_PICKUP_LOCATION,
                driver_license=draft.driver_license,
                created_at=now,
                updated_at=now,
            )
            self._commit(bookings=[booking], cars=[replace(car, availability_status=CarStatus.BOOKED)])

        logger.info(
            "Booking created",
            extra={"booking_id": booking.id, "car_id": car.id, "customer_id": booking.customer_id},
        )
        self._events.notify(
            user_id=booking.customer_id,
            type=NotificationType.BOOKING_CONFIRMATION,
            title="Booking Created",
            message=f"Your booking for {car.brand} {car.model} has been created and is pending confirmation.",
            booking_id=booking.id,
        )
        self._events.audit_log(
            actor_id=actor.user_id,
            action=AuditAction.BOOKING_CREATED,
            details=f"Booking created for {car.brand} {car.model}",
            resource_id=booking.id,
        )
        return booking

    def get_booking(self, actor: Actor, booking_id: str) -> Booking:
        booking = self._storage.get_booking(booking_id)
        if not booking:
            raise NotFoundError("booking not found")
        if not actor.is_admin and booking.customer_id != actor.user_id:
            raise ForbiddenError("not authorized to view this booking")
        return booking

    def list_bookings(self, actor: Actor) -> list[Booking]:
        customer_id = None if actor.is_admin else actor.user_id
        bookings = self._storage.list_bookings(customer_id=customer_id)
        bookings.sort(key=lambda b: b.created_at, reverse=True)
        return bookings

    def confirm_booking(self, actor: Actor, booking_id: str) -> Booking:
        _require_admin(actor)
        with self._locked_booking(booking_id) as booking:
            ensure_transition(booking, BookingStatus.CONFIRMED)
            booking = replace(booking, status=BookingStatus.CONFIRMED, updated_at=self._clock())
            self._commit(bookings=[booking])

        logger.info("Booking confirmed", extra={"booking_id": booking.id, "actor_id": actor.user_id})
        self._events.notify(
            user_id=booking.customer_id,
            type=NotificationType.BOOKING_CONFIRMATION,
            title="Booking Confirmed",
            message=f"Your booking has been confirmed! Pickup date: {booking.start_date:%a %b %d %Y}",
            booking_id=booking.id,
            priority="High",
        )
        self._events.audit_log(
            actor_id=actor.user_id,
            action=AuditAction.BOOKING_CONFIRMED,
            details=f"Booking {booking.id} confirmed by admin",
            resource_id=booking.id,
        )
        return booking

    def start_rental(self, actor: Actor, booking_id: str, report: PickupReport) -> Booking:
        _require_admin(actor)
        with self._locked_booking(booking_id) as booking:
            ensure_transition(booking, BookingStatus.ACTIVE)
            now = self._clock()
            booking = replace(
                booking,
                status=BookingStatus.ACTIVE,
                actual_pickup_date=now,
                mileage_at_pickup=report.mileage,
                fuel_level_at_pickup=report.fuel_level,
                pickup_notes=report.notes,
                updated_at=now,
            )
            self._commit(bookings=[booking])

        logger.info("Rental started", extra={"booking_id": booking.id, "car_id": booking.car_id})
        return booking

    def complete_rental(self, actor: Actor, booking_id: str, report: ReturnReport) -> Booking:
        _require_admin(actor)
        with self._locked_booking(booking_id) as booking:
            ensure_transition(booking, BookingStatus.COMPLETED)
            now = self._clock()
            booking = replace(
                booking,
                status=BookingStatus.COMPLETED,
                actual_return_date=now,
                mileage_at_return=report.mileage,
                fuel_level_at_return=report.fuel_level,
                return_notes=report.notes,
                damage_reported=report.damage_reported,
                updated_at=now,
            )

            cars = []
            car = self._storage.get_car(booking.car_id)
            if car:
                if report.damage_reported:
                    status = CarStatus.MAINTENANCE
                else:
                    status = self._released_status(car, booking.id)
                car = replace(car, availability_status=status)
                if report.mileage:
                    car = replace(car, mileage=report.mileage)
                cars.append(car)

            customers = []
            customer = self._storage.get_customer(booking.customer_id)
            if customer:
                customer = replace(
                    customer,
                    total_bookings=customer.total_bookings + 1,
                    loyalty_points=customer.loyalty_points + self._loyalty_points,
                )
                customers.append(customer)
            else:
                logger.warning(
                    "Customer missing on return, no loyalty awarded",
                    extra={"booking_id": booking.id, "customer_id": booking.customer_id},
                )

            self._commit(bookings=[booking], cars=cars, customers=customers)

        logger.info(
            "Rental completed",
            extra={"booking_id": booking.id, "car_id": booking.car_id, "damage_reported": booking.damage_reported},
        )
        if customer:
            self._events.notify(
                user_id=customer.id,
                type=NotificationType.LOYALTY_REWARD,
                title="Loyalty Points Earned!",
                message=(
                    f"You've earned {self._loyalty_points} loyalty points for completing your rental. "
                    f"Total points: {customer.loyalty_points}"
                ),
                booking_id=booking.id,
                priority="Low",
            )
        self._events.notify(
            user_id=booking.customer_id,
            type=NotificationType.BOOKING_CONFIRMATION,
            title="Rental Completed",
            message="Your rental has been completed. Thank you for choosing us!",
            booking_id=booking.id,
        )
        self._events.audit_log(
            actor_id=actor.user_id,
            action=AuditAction.BOOKING_COMPLETED,
            details=f"Booking {booking.id} completed",
            resource_id=booking.id,
        )
        return booking

    def cancel_booking(self, actor: Actor, booking_id: str, reason: Optional[str] = None) -> Booking:
        with self._locked_booking(booking_id) as booking:
            if not actor.is_admin and booking.customer_id != actor.user_id:
                raise ForbiddenError("not authorized to cancel this booking")
            ensure_transition(booking, BookingStatus.CANCELLED)
            now = self._clock()
            booking = replace(
                booking,
                status=BookingStatus.CANCELLED,
                cancellation_reason=reason,
                cancelled_by=actor.user_id,
                cancelled_at=now,
                updated_at=now,
            )

            cars = []
            car = self._storage.get_car(booking.car_id)
            if car and car.availability_status == CarStatus.BOOKED:
                cars.append(replace(car, availability_status=self._released_status(car, booking.id)))
            self._commit(bookings=[booking], cars=cars)

        logger.info(
            "Booking cancelled",
            extra={"booking_id": booking.id, "actor_id": actor.user_id, "car_id": booking.car_id},
        )
        self._events.notify(
            user_id=booking.customer_id,
            type=NotificationType.BOOKING_CANCELLED,
            title="Booking Cancelled",
            message="Your booking has been cancelled." + (f" Reason: {reason}" if reason else ""),
            booking_id=booking.id,
        )
        self._events.audit_log(
            actor_id=actor.user_id,
            action=AuditAction.BOOKING_CANCELLED,
            details=f"Booking {booking.id} cancelled. Reason: {reason or 'Not specified'}",
            resource_id=booking.id,
        )
        return booking

    def update_payment_status(self, actor: Actor, booking_id: str, payment_status: PaymentStatus) -> Booking:
        _require_admin(actor)
        with self._locked_booking(booking_id) as booking:
            if booking.status.is_terminal:
                raise InvalidTransitionError(f"booking is already {booking.status.value.lower()}")
            booking = replace(booking, payment_status=payment_status, updated_at=self._clock())
            self._commit(bookings=[booking])

        logger.info(
            "Payment status updated",
            extra={"booking_id": booking.id, "payment_status": payment_status.value},
        )
        return booking

    @contextmanager
    def _locked_booking(self, booking_id: str) -> Iterator[Booking]:
        booking = self._storage.get_booking(booking_id)
        if not booking:
            raise NotFoundError("booking not found")
        # car_id never changes, so the lock taken here is the one guarding the fresh read below
        with self._storage.car_lock(booking.car_id):
            yield self._storage.get_booking(booking_id)

    def _released_status(self, car: Car, booking_id: str) -> CarStatus:
        others = [b for b in self._storage.list_active_bookings_for_car(car.id) if b.id != booking_id]
        return CarStatus.BOOKED if others else CarStatus.AVAILABLE

    def _commit(self, **records) -> None:
        try:
            self._storage.commit(**records)
        except Exception as exc:
            logger.exception("Storage commit failed")
            raise InfrastructureError() from exc

    def _generate_booking_id(self) -> str:
        return f"bkg_{uuid4().hex[:12]}"
