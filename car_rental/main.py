from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .auth import get_actor
from .config import settings
from .errors import AppError, InfrastructureError, ValidationError
from .models import Actor
from .schemas import (
    AvailabilityQuery,
    AvailabilityResponse,
    BookingCreateRequest,
    BookingResponse,
    BookingsListResponse,
    CancelRequest,
    ErrorResponse,
    PaymentUpdateRequest,
    PickupRequest,
    ReturnRequest,
)
from .service import BookingService
from .storage import InMemoryRentalStorage

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Car Rental Booking API",
    version="1.0.0",
    responses={code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 500)},
)


def get_service() -> BookingService:
    if not hasattr(get_service, "_instance"):
        storage = InMemoryRentalStorage()
        get_service._instance = BookingService(storage=storage)
    return get_service._instance  # type: ignore[attr-defined]


@app.exception_handler(AppError)
async def handle_app_error(_: Request, exc: AppError) -> JSONResponse:
    logger.warning("Request failed", extra={"code": exc.code, "error_message": exc.message})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    error = ValidationError(first.get("msg", "invalid request"), field=".".join(location) or None)
    logger.warning("Request rejected", extra={"code": error.code, "errors": errors})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def handle_unexpected_error(_: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", exc_info=exc)
    error = InfrastructureError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreateRequest,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_service),
) -> BookingResponse:
    booking = service.create_booking(actor, payload.to_draft(default_customer_id=actor.user_id))
    return BookingResponse.from_domain(booking)


@app.get("/bookings/availability", response_model=AvailabilityResponse)
async def check_availability(
    query: AvailabilityQuery = Depends(),
    service: BookingService = Depends(get_service),
) -> AvailabilityResponse:
    available = service.check_availability(
        car_id=query.car_id,
        start_date=query.start_date,
        end_date=query.end_date,
    )
    message = "Car is available for selected dates" if available else "Car is not available for selected dates"
    return AvailabilityResponse(available=available, message=message)


@app.get("/bookings", response_model=BookingsListResponse)
async def list_bookings(
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_service),
) -> BookingsListResponse:
    bookings = service.list_bookings(actor)
    items = [BookingResponse.from_domain(booking) for booking in bookings]
    return BookingsListResponse(items=items, count=len(items))


@app.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_service),
) -> BookingResponse:
    return BookingResponse.from_domain(service.get_booking(actor, booking_id))


@app.patch("/bookings/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_service),
) -> BookingResponse:
    return BookingResponse.from_domain(service.confirm_booking(actor, booking_id))


@app.patch("/bookings/{booking_id}/pickup", response_model=BookingResponse)
async def pickup_booking(
    booking_id: str,
    payload: PickupRequest,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_service),
) -> BookingResponse:
    booking = service.start_rental(actor, booking_id, payload.to_report())
    return BookingResponse.from_domain(booking)


@app.patch("/bookings/{booking_id}/return", response_model=BookingResponse)
async def return_booking(
    booking_id: str,
    payload: ReturnRequest,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_service),
) -> BookingResponse:
    booking = service.complete_rental(actor, booking_id, payload.to_report())
    return BookingResponse.from_domain(booking)


@app.patch("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    payload: CancelRequest,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_service),
) -> BookingResponse:
    booking = service.cancel_booking(actor, booking_id, payload.cancellation_reason)
    return BookingResponse.from_domain(booking)


@app.patch("/bookings/{booking_id}/payment", response_model=BookingResponse)
async def update_payment(
    booking_id: str,
    payload: PaymentUpdateRequest,
    actor: Actor = Depends(get_actor),
    service: BookingService = Depends(get_service),
) -> BookingResponse:
    booking = service.update_payment_status(actor, booking_id, payload.payment_status)
    return BookingResponse.from_domain(booking)
