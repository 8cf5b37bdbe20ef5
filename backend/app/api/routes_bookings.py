from typing import Optional

from fastapi import APIRouter, Depends, status

from app.api import get_current_user_id, get_repository
from app.models.domain import BookingStatus
from app.models.schemas import (
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingSchema,
    CancelBookingRequest,
)
from app.services.booking_service import BookingService
from app.storage.repository import InMemoryRepository

router = APIRouter()


def get_booking_service(
    repository: InMemoryRepository = Depends(get_repository),
) -> BookingService:
    return BookingService(repository=repository)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    return service.create_booking(user_id, payload)


@router.get("/", response_model=BookingListResponse)
def list_my_bookings(
    status: Optional[BookingStatus] = None,
    user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    return service.list_my_bookings(user_id, status)


@router.get("/supplier", response_model=BookingListResponse)
def list_supplier_bookings(
    status: Optional[BookingStatus] = None,
    user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    return service.list_supplier_bookings(user_id, status)


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingSchema:
    return service.get_booking(booking_id, user_id)


@router.post("/{booking_id}/confirm", response_model=BookingSchema)
def confirm_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingSchema:
    return service.confirm_booking(booking_id, user_id)


@router.post("/{booking_id}/cancel", response_model=BookingSchema)
def cancel_booking(
    booking_id: str,
    payload: Optional[CancelBookingRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingSchema:
    return service.cancel_booking(booking_id, user_id, payload)


@router.post("/{booking_id}/complete", response_model=BookingSchema)
def complete_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingSchema:
    return service.complete_booking(booking_id, user_id)
