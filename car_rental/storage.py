from __future__ import annotations

from collections import defaultdict
from threading import RLock
from typing import Dict, Iterable, Optional

from .models import Booking, Car, Customer


class InMemoryRentalStorage:
    """Thread-safe in-memory storage for cars, customers and bookings.

    Writes that span several records go through :meth:`commit`, which swaps
    every record in under a single lock acquisition so readers never observe
    half of a transition.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._cars: Dict[str, Car] = {}
        self._customers: Dict[str, Customer] = {}
        self._bookings: Dict[str, Booking] = {}
        self._car_locks: Dict[str, RLock] = defaultdict(RLock)

    def car_lock(self, car_id: str) -> RLock:
        """Advisory lock serializing booking writes for one car."""
        with self._lock:
            return self._car_locks[car_id]

    def add_car(self, car: Car) -> None:
        with self._lock:
            self._cars[car.id] = car

    def get_car(self, car_id: str) -> Optional[Car]:
        with self._lock:
            return self._cars.get(car_id)

    def add_customer(self, customer: Customer) -> None:
        with self._lock:
            self._customers[customer.id] = customer

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        with self._lock:
            return self._customers.get(customer_id)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            return self._bookings.get(booking_id)

    def list_bookings(self, customer_id: Optional[str] = None) -> list[Booking]:
        with self._lock:
            bookings = list(self._bookings.values())
        if customer_id is not None:
            bookings = [booking for booking in bookings if booking.customer_id == customer_id]
        return bookings

    def list_active_bookings_for_car(self, car_id: str) -> list[Booking]:
        with self._lock:
            return [
                booking
                for booking in self._bookings.values()
                if booking.car_id == car_id and booking.holds_car
            ]

    def commit(
        self,
        *,
        bookings: Iterable[Booking] = (),
        cars: Iterable[Car] = (),
        customers: Iterable[Customer] = (),
    ) -> None:
        bookings, cars, customers = list(bookings), list(cars), list(customers)
        with self._lock:
            for booking in bookings:
                self._bookings[booking.id] = booking
            for car in cars:
                self._cars[car.id] = car
            for customer in customers:
                self._customers[customer.id] = customer
