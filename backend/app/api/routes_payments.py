from typing import List, Optional

from fastapi import APIRouter, Depends, status

from app.api import get_current_user_id, get_repository
from app.models.schemas import PaymentIntentRequest, PaymentSchema, RefundRequest
from app.services.payment_service import PaymentService
from app.storage.repository import InMemoryRepository

router = APIRouter()


def get_payment_service(
    repository: InMemoryRepository = Depends(get_repository),
) -> PaymentService:
    return PaymentService(repository=repository)


@router.post("/intents", response_model=PaymentSchema, status_code=status.HTTP_201_CREATED)
def create_payment_intent(
    payload: PaymentIntentRequest,
    user_id: str = Depends(get_current_user_id),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentSchema:
    return service.create_payment_intent(payload.booking_id, user_id)


@router.post("/{payment_id}/confirm", response_model=PaymentSchema)
def confirm_payment(
    payment_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentSchema:
    return service.confirm_payment(payment_id, user_id)


@router.post("/{payment_id}/refund", response_model=PaymentSchema)
def refund_payment(
    payment_id: str,
    payload: Optional[RefundRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentSchema:
    return service.refund_payment(payment_id, user_id, payload)


@router.get("/booking/{booking_id}", response_model=List[PaymentSchema])
def get_payments_for_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PaymentService = Depends(get_payment_service),
) -> List[PaymentSchema]:
    return service.get_payments_for_booking(booking_id, user_id)
