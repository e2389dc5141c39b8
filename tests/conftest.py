from __future__ import annotations

from datetime import datetime, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from car_rental.auth import create_access_token
from car_rental.main import app, get_service
from car_rental.models import Actor, Car, Customer, Role
from car_rental.service import BookingService
from car_rental.storage import InMemoryRentalStorage

NOW = datetime(2024, 5, 15, 9, 30, tzinfo=timezone.utc)

ADMIN = Actor(user_id="admin-1", role=Role.ADMIN)
ALICE = Actor(user_id="cust-alice", role=Role.CUSTOMER)
BOB = Actor(user_id="cust-bob", role=Role.CUSTOMER)


@pytest.fixture
def storage() -> InMemoryRentalStorage:
    storage = InMemoryRentalStorage()
    storage.add_car(Car(id="car-1", brand="Toyota", model="Corolla", plate_number="KA-01-1234", price_per_day=1000))
    storage.add_car(Car(id="car-2", brand="Honda", model="City", plate_number="KA-01-5678", price_per_day=1500))
    storage.add_customer(Customer(id=ADMIN.user_id, name="Admin", email="admin@example.com", role=Role.ADMIN))
    storage.add_customer(Customer(id=ALICE.user_id, name="Alice", email="alice@example.com"))
    storage.add_customer(Customer(id=BOB.user_id, name="Bob", email="bob@example.com"))
    return storage


@pytest.fixture
def service(storage: InMemoryRentalStorage) -> BookingService:
    return BookingService(storage=storage, clock=lambda: NOW)


@pytest.fixture
def client(service: BookingService) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(actor: Actor) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(actor.user_id, actor.role)}"}
