import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from fastapi import HTTPException

from app.models.domain import BookingStatus, Payment, PaymentStatus, new_id
from app.models.schemas import PaymentSchema, RefundRequest
from app.services.access import is_admin, is_booking_supplier
from app.services.notification_service import NotificationService
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    name: str

    def create_intent(self, amount: float, currency: str, metadata: Dict[str, str]) -> Dict[str, str]:
        ...

    def capture(self, reference: str) -> bool:
        ...

    def refund(self, reference: str, amount: float) -> bool:
        ...


class SimulatedGateway:
    """Stands in for a card processor; every intent captures and refunds successfully."""

    name = "simulated"

    def create_intent(self, amount: float, currency: str, metadata: Dict[str, str]) -> Dict[str, str]:
        reference = f"pi_{uuid.uuid4().hex[:24]}"
        logger.debug("Simulated intent %s for %.2f %s", reference, amount, currency)
        return {"reference": reference, "client_secret": f"{reference}_secret_{uuid.uuid4().hex[:8]}"}

    def capture(self, reference: str) -> bool:
        return True

    def refund(self, reference: str, amount: float) -> bool:
        return True


class PaymentService:
    def __init__(
        self,
        repository: InMemoryRepository,
        gateway: Optional[PaymentGateway] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.repository = repository
        self.gateway = gateway or SimulatedGateway()
        self.notifications = notifications or NotificationService(repository)

    def _get_payment(self, payment_id: str) -> Payment:
        payment = self.repository.get_payment(payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail=f"Payment {payment_id} not found")
        return payment

    def create_payment_intent(self, booking_id: str, user_id: str) -> PaymentSchema:
        booking = self.repository.get_booking(booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail=f"Booking {booking_id} not found")
        if booking.user_id != user_id:
            raise HTTPException(status_code=403, detail="You can only pay for your own bookings")
        if booking.status in (BookingStatus.CANCELLED, BookingStatus.REFUNDED):
            raise HTTPException(status_code=400, detail="Cannot pay for a cancelled booking")
        if any(p.status == PaymentStatus.COMPLETED for p in self.repository.payments_for_booking(booking.id)):
            raise HTTPException(status_code=400, detail="Booking is already paid")

        intent = self.gateway.create_intent(
            booking.total_amount, booking.currency, {"booking_id": booking.id}
        )
        payment = self.repository.save_payment(
            Payment(
                id=new_id(),
                booking_id=booking.id,
                user_id=user_id,
                amount=booking.total_amount,
                currency=booking.currency,
                status=PaymentStatus.PENDING,
                provider=self.gateway.name,
                provider_reference=intent["reference"],
                client_secret=intent["client_secret"],
            )
        )
        logger.info("Created payment intent %s for booking %s", payment.id, booking.reference)
        return PaymentSchema.from_domain(payment)

    def confirm_payment(
        self, payment_id: str, user_id: str, now: Optional[datetime] = None
    ) -> PaymentSchema:
        payment = self._get_payment(payment_id)
        if payment.user_id != user_id:
            raise HTTPException(status_code=403, detail="You can only confirm your own payments")
        if payment.status != PaymentStatus.PENDING:
            raise HTTPException(status_code=400, detail="Payment is not pending")

        now = now or datetime.now()
        if not self.gateway.capture(payment.provider_reference):
            payment.status = PaymentStatus.FAILED
            logger.warning("Payment %s failed at %s", payment.id, self.gateway.name)
            raise HTTPException(status_code=400, detail="Payment failed")

        payment.status = PaymentStatus.COMPLETED
        payment.completed_at = now
        booking = self.repository.get_booking(payment.booking_id)
        if booking.status == BookingStatus.PENDING:
            booking.status = BookingStatus.CONFIRMED
            booking.updated_at = now
        self.notifications.notify_payment_received(booking, payment.amount)
        logger.info("Payment %s completed for booking %s", payment.id, booking.reference)
        return PaymentSchema.from_domain(payment)

    def refund_payment(
        self, payment_id: str, user_id: str, payload: Optional[RefundRequest] = None
    ) -> PaymentSchema:
        payment = self._get_payment(payment_id)
        booking = self.repository.get_booking(payment.booking_id)
        if not (is_admin(self.repository, user_id) or is_booking_supplier(self.repository, booking, user_id)):
            raise HTTPException(status_code=403, detail="Only the supplier or an admin can refund")
        if payment.status != PaymentStatus.COMPLETED:
            raise HTTPException(status_code=400, detail="Only completed payments can be refunded")
        if not self.gateway.refund(payment.provider_reference, payment.amount):
            raise HTTPException(status_code=400, detail="Refund failed")

        payment.status = PaymentStatus.REFUNDED
        payment.refund_reason = payload.reason if payload else None
        booking.status = BookingStatus.REFUNDED
        booking.updated_at = datetime.now()
        logger.info("Refunded payment %s for booking %s", payment.id, booking.reference)
        return PaymentSchema.from_domain(payment)

    def get_payments_for_booking(self, booking_id: str, user_id: str) -> List[PaymentSchema]:
        booking = self.repository.get_booking(booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail=f"Booking {booking_id} not found")
        if not (
            booking.user_id == user_id
            or is_booking_supplier(self.repository, booking, user_id)
            or is_admin(self.repository, user_id)
        ):
            raise HTTPException(status_code=403, detail="You do not have access to this booking")
        return [PaymentSchema.from_domain(p) for p in self.repository.payments_for_booking(booking_id)]
