from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from car_rental.auth import create_access_token
from car_rental.models import CarStatus, Role
from car_rental.storage import InMemoryRentalStorage

from conftest import ADMIN, ALICE, BOB, auth_headers


def _payload(start: str = "2024-06-01T00:00:00Z", end: str = "2024-06-03T00:00:00Z", car_id: str = "car-1") -> dict:
    return {
        "car_id": car_id,
        "start_date": start,
        "end_date": end,
        "pickup_time": "10:00 AM",
        "purpose": "weekend trip",
        "driver_license": {"number": "DL-0420110012345", "expiry_date": "2030-01-01"},
    }


def _create(client: TestClient, **kwargs) -> dict:
    response = client.post("/bookings", json=_payload(**kwargs), headers=auth_headers(ALICE))
    assert response.status_code == 201, response.text
    return response.json()


def test_booking_scenario_end_to_end(client: TestClient, storage: InMemoryRentalStorage) -> None:
    booking = _create(client)
    assert booking["status"] == "Pending"
    assert booking["customer_id"] == ALICE.user_id
    assert booking["total_days"] == 2
    assert booking["total_price"] == 2000
    assert booking["pickup_location"] == "Main Office"
    assert booking["driver_license"]["number"] == "DL-0420110012345"
    assert storage.get_car("car-1").availability_status == CarStatus.BOOKED

    overlap = client.post(
        "/bookings",
        json=_payload("2024-06-02T00:00:00Z", "2024-06-04T00:00:00Z"),
        headers=auth_headers(BOB),
    )
    assert overlap.status_code == 400
    assert overlap.json()["code"] == "CONFLICT"

    booking_id = booking["id"]
    confirmed = client.patch(f"/bookings/{booking_id}/confirm", headers=auth_headers(ADMIN))
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "Confirmed"

    picked_up = client.patch(
        f"/bookings/{booking_id}/pickup",
        json={"mileage_at_pickup": 20000, "fuel_level_at_pickup": "Full"},
        headers=auth_headers(ADMIN),
    )
    assert picked_up.status_code == 200
    assert picked_up.json()["status"] == "Active"
    assert picked_up.json()["fuel_level_at_pickup"] == "Full"

    returned = client.patch(
        f"/bookings/{booking_id}/return",
        json={"mileage_at_return": 20310, "fuel_level_at_return": "Half", "damage_reported": False},
        headers=auth_headers(ADMIN),
    )
    assert returned.status_code == 200
    assert returned.json()["status"] == "Completed"
    assert storage.get_car("car-1").availability_status == CarStatus.AVAILABLE
    assert storage.get_car("car-1").mileage == 20310
    assert storage.get_customer(ALICE.user_id).loyalty_points == 10


def test_cancel_then_cancel_again(client: TestClient, storage: InMemoryRentalStorage) -> None:
    booking = _create(client)
    response = client.patch(
        f"/bookings/{booking['id']}/cancel",
        json={"cancellation_reason": "change of plans"},
        headers=auth_headers(ALICE),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "Cancelled"
    assert body["cancellation_reason"] == "change of plans"
    assert body["cancelled_by"] == ALICE.user_id
    assert body["cancelled_at"] is not None
    assert storage.get_car("car-1").availability_status == CarStatus.AVAILABLE

    again = client.patch(
        f"/bookings/{booking['id']}/cancel",
        json={"cancellation_reason": "again"},
        headers=auth_headers(ALICE),
    )
    assert again.status_code == 400
    assert again.json()["code"] == "INVALID_TRANSITION"


def test_availability_probe(client: TestClient) -> None:
    params = {"car_id": "car-1", "start_date": "2024-06-03T00:00:00Z", "end_date": "2024-06-05T00:00:00Z"}
    assert client.get("/bookings/availability", params=params).json()["available"] is True

    _create(client)
    response = client.get("/bookings/availability", params=params)
    assert response.status_code == 200
    assert response.json()["available"] is False


def test_availability_probe_requires_parameters(client: TestClient) -> None:
    response = client.get("/bookings/availability", params={"car_id": "car-1"})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_validation_errors(client: TestClient) -> None:
    inverted = client.post(
        "/bookings",
        json=_payload("2024-06-03T00:00:00Z", "2024-06-01T00:00:00Z"),
        headers=auth_headers(ALICE),
    )
    assert inverted.status_code == 400
    assert inverted.json() == {
        "code": "VALIDATION_ERROR",
        "message": "end date must be after start date",
        "field": "end_date",
    }

    past = client.post(
        "/bookings",
        json=_payload("2024-05-01T00:00:00Z", "2024-05-03T00:00:00Z"),
        headers=auth_headers(ALICE),
    )
    assert past.status_code == 400
    assert past.json()["field"] == "start_date"

    missing = client.post("/bookings", json={"car_id": "car-1"}, headers=auth_headers(ALICE))
    assert missing.status_code == 400
    assert missing.json()["code"] == "VALIDATION_ERROR"


def test_unknown_car_and_booking(client: TestClient) -> None:
    response = client.post("/bookings", json=_payload(car_id="car-404"), headers=auth_headers(ALICE))
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"

    response = client.patch("/bookings/bkg_unknown/confirm", headers=auth_headers(ADMIN))
    assert response.status_code == 404


def test_admin_actions_require_admin(client: TestClient) -> None:
    booking = _create(client)
    response = client.patch(f"/bookings/{booking['id']}/confirm", headers=auth_headers(ALICE))
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"

    response = client.patch(
        f"/bookings/{booking['id']}/cancel", json={"cancellation_reason": "nope"}, headers=auth_headers(BOB)
    )
    assert response.status_code == 403


def test_pickup_before_confirm_is_rejected(client: TestClient) -> None:
    booking = _create(client)
    response = client.patch(f"/bookings/{booking['id']}/pickup", json={}, headers=auth_headers(ADMIN))
    assert response.status_code == 400
    assert response.json()["message"] == "booking must be confirmed before pickup"

    response = client.patch(f"/bookings/{booking['id']}/return", json={}, headers=auth_headers(ADMIN))
    assert response.status_code == 400


def test_payment_update(client: TestClient) -> None:
    booking = _create(client)
    response = client.patch(
        f"/bookings/{booking['id']}/payment", json={"payment_status": "Paid"}, headers=auth_headers(ADMIN)
    )
    assert response.status_code == 200
    assert response.json()["payment_status"] == "Paid"
    assert response.json()["status"] == "Pending"

    bad = client.patch(
        f"/bookings/{booking['id']}/payment", json={"payment_status": "Lost"}, headers=auth_headers(ADMIN)
    )
    assert bad.status_code == 400


def test_list_and_get_bookings(client: TestClient) -> None:
    booking = _create(client)

    mine = client.get("/bookings", headers=auth_headers(ALICE)).json()
    assert mine["count"] == 1
    assert client.get("/bookings", headers=auth_headers(BOB)).json()["count"] == 0
    assert client.get("/bookings", headers=auth_headers(ADMIN)).json()["count"] == 1

    assert client.get(f"/bookings/{booking['id']}", headers=auth_headers(ALICE)).status_code == 200
    assert client.get(f"/bookings/{booking['id']}", headers=auth_headers(BOB)).status_code == 403


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer not-a-jwt"},
        {"Authorization": f"Bearer {create_access_token('cust-alice', Role.CUSTOMER, timedelta(seconds=-5))}"},
    ],
)
def test_missing_or_bad_credentials(client: TestClient, headers: dict) -> None:
    response = client.post("/bookings", json=_payload(), headers=headers)
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_storage_failure_is_a_generic_server_error(
    client: TestClient, storage: InMemoryRentalStorage, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken_commit(**_: object) -> None:
        raise ConnectionError("mongodb://10.0.0.5 refused")

    monkeypatch.setattr(storage, "commit", broken_commit)
    response = client.post("/bookings", json=_payload(), headers=auth_headers(ALICE))
    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_ERROR"
    assert "mongodb" not in response.json()["message"]


def test_single_day_availability_probe(client: TestClient) -> None:
    params = {"car_id": "car-1", "start_date": "2024-06-05T00:00:00Z", "end_date": "2024-06-05T00:00:00Z"}
    response = client.get("/bookings/availability", params=params)
    assert response.status_code == 200
    assert response.json()["available"] is True

    _create(client, start="2024-06-05T00:00:00Z", end="2024-06-07T00:00:00Z")
    assert client.get("/bookings/availability", params=params).json()["available"] is False

    inverted = dict(params, end_date="2024-06-04T00:00:00Z")
    assert client.get("/bookings/availability", params=inverted).status_code == 400


def test_error_schema_is_published(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()
    assert "ErrorResponse" in schema["components"]["schemas"]
    create_responses = schema["paths"]["/bookings"]["post"]["responses"]
    assert create_responses["404"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
