import logging
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException

from app.models.domain import (
    Booking,
    BookingItem,
    BookingStatus,
    InteractionType,
    JourneyStatus,
    new_id,
)
from app.models.schemas import (
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingSchema,
    CancelBookingRequest,
    InteractionCreate,
)
from app.services.access import is_admin, is_booking_supplier, supplier_for_user
from app.services.catalog_service import CatalogService
from app.services.notification_service import NotificationService
from app.services.recommendation_service import RecommendationService
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


def booking_reference() -> str:
    return f"BK-{uuid.uuid4().hex[:8].upper()}"


def package_id() -> str:
    return f"pkg_{uuid.uuid4().hex[:12]}"


class BookingService:
    def __init__(
        self,
        repository: InMemoryRepository,
        notifications: Optional[NotificationService] = None,
        catalog: Optional[CatalogService] = None,
        recommendations: Optional[RecommendationService] = None,
    ):
        self.repository = repository
        self.notifications = notifications or NotificationService(repository)
        self.catalog = catalog or CatalogService(repository)
        self.recommendations = recommendations or RecommendationService(repository)

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.repository.get_booking(booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail=f"Booking {booking_id} not found")
        return booking

    def create_booking(
        self, user_id: str, payload: BookingCreate, now: Optional[datetime] = None
    ) -> BookingResponse:
        now = now or datetime.now()
        if payload.service_date <= now:
            raise HTTPException(status_code=400, detail="Service date must be in the future")

        services = []
        for item in payload.items:
            service = self.repository.get_service(item.service_id)
            if not service:
                raise HTTPException(status_code=404, detail=f"Service {item.service_id} not found")
            if not service.is_bookable:
                raise HTTPException(status_code=400, detail=f'Service "{service.name}" is not available')
            services.append(service)

        unavailable = [
            check
            for check in (
                self.catalog.check_availability(item.service_id, payload.service_date.date(), item.quantity)
                for item in payload.items
            )
            if not check.available
        ]
        if unavailable:
            reasons = "; ".join(check.reason or check.service_name for check in unavailable)
            raise HTTPException(status_code=400, detail=f"Services not available: {reasons}")

        shared_package = package_id() if len(payload.items) > 1 else None
        bookings: List[Booking] = []
        for item, service in zip(payload.items, services):
            supplier = self.repository.get_supplier(service.supplier_id)
            total = service.price * item.quantity
            booking = self.repository.save_booking(
                Booking(
                    id=new_id(),
                    reference=booking_reference(),
                    user_id=user_id,
                    supplier_id=service.supplier_id,
                    status=BookingStatus.PENDING,
                    total_amount=round(total, 2),
                    commission=round(total * supplier.commission_rate, 2),
                    service_date=payload.service_date,
                    currency=service.currency,
                    items=[
                        BookingItem(
                            service_id=service.id,
                            quantity=item.quantity,
                            unit_price=service.price,
                            total_price=round(total, 2),
                            metadata=dict(item.metadata),
                        )
                    ],
                    package_booking_id=shared_package,
                    notes=payload.notes,
                    created_at=now,
                    updated_at=now,
                )
            )
            self.notifications.notify_supplier_new_booking(booking)
            self.recommendations.track_interaction(
                user_id,
                InteractionCreate(service_id=service.id, interaction_type=InteractionType.book),
                now=now,
            )
            bookings.append(booking)
            logger.info("Created booking %s for service %s", booking.reference, service.id)

        return BookingResponse(bookings=[BookingSchema.from_domain(b) for b in bookings])

    def list_my_bookings(
        self, user_id: str, status: Optional[BookingStatus] = None
    ) -> BookingListResponse:
        bookings = [
            b for b in self.repository.list_bookings()
            if b.user_id == user_id and (status is None or b.status == status)
        ]
        return BookingListResponse(
            bookings=[BookingSchema.from_domain(b) for b in bookings], total=len(bookings)
        )

    def list_supplier_bookings(
        self, user_id: str, status: Optional[BookingStatus] = None
    ) -> BookingListResponse:
        supplier = supplier_for_user(self.repository, user_id)
        if not supplier:
            raise HTTPException(status_code=404, detail="Supplier profile not found")
        bookings = [
            b for b in self.repository.list_bookings()
            if b.supplier_id == supplier.id and (status is None or b.status == status)
        ]
        return BookingListResponse(
            bookings=[BookingSchema.from_domain(b) for b in bookings], total=len(bookings)
        )

    def get_booking(self, booking_id: str, user_id: str) -> BookingSchema:
        booking = self._get_booking(booking_id)
        if not (
            booking.user_id == user_id
            or is_booking_supplier(self.repository, booking, user_id)
            or is_admin(self.repository, user_id)
        ):
            raise HTTPException(status_code=403, detail="You do not have access to this booking")
        return BookingSchema.from_domain(booking)

    def confirm_booking(
        self, booking_id: str, user_id: str, now: Optional[datetime] = None
    ) -> BookingSchema:
        booking = self._get_booking(booking_id)
        if not is_booking_supplier(self.repository, booking, user_id):
            raise HTTPException(status_code=403, detail="Only the supplier can confirm this booking")
        if booking.status != BookingStatus.PENDING:
            raise HTTPException(status_code=400, detail="Only pending bookings can be confirmed")
        booking.status = BookingStatus.CONFIRMED
        booking.updated_at = now or datetime.now()
        self.repository.save_booking(booking)
        self.notifications.notify_booking_confirmed(booking)
        logger.info("Booking %s confirmed", booking.reference)
        return BookingSchema.from_domain(booking)

    def cancel_booking(
        self,
        booking_id: str,
        user_id: str,
        payload: Optional[CancelBookingRequest] = None,
        now: Optional[datetime] = None,
    ) -> BookingSchema:
        now = now or datetime.now()
        reason = payload.cancellation_reason if payload else None
        booking = self._get_booking(booking_id)

        is_owner = booking.user_id == user_id
        by_supplier = is_booking_supplier(self.repository, booking, user_id)
        if not (is_owner or by_supplier or is_admin(self.repository, user_id)):
            raise HTTPException(
                status_code=403, detail="You do not have permission to cancel this booking"
            )
        if booking.status == BookingStatus.CANCELLED:
            raise HTTPException(status_code=400, detail="Booking is already cancelled")
        if booking.status == BookingStatus.COMPLETED:
            raise HTTPException(status_code=400, detail="Cannot cancel completed bookings")

        booking.status = BookingStatus.CANCELLED
        booking.cancellation_reason = reason
        booking.updated_at = now
        self.repository.save_booking(booking)
        self.notifications.notify_booking_cancelled(booking, cancelled_by=user_id)
        logger.info("Booking %s cancelled by %s", booking.reference, user_id)

        self._cascade_to_journeys(booking, reason, by_supplier, now)
        return BookingSchema.from_domain(booking)

    def _cascade_to_journeys(
        self, booking: Booking, reason: Optional[str], by_supplier: bool, now: datetime
    ) -> None:
        linked = self.repository.segments_for_booking(booking.id)
        journeys = {}
        for journey, segment in linked:
            segment.is_cancelled = True
            segment.cancelled_at = now
            segment.cancellation_reason = reason
            segment.metadata["cancelled_by"] = "supplier" if by_supplier else "guest"
            journeys[journey.id] = journey

        for journey in journeys.values():
            booking_ids = {s.booking_id for s in journey.segments if s.booking_id}
            statuses = [
                self.repository.get_booking(bid).status
                for bid in booking_ids
                if self.repository.get_booking(bid)
            ]
            if all(status == BookingStatus.CANCELLED for status in statuses):
                journey.status = JourneyStatus.CANCELLED
            elif by_supplier:
                journey.status = JourneyStatus.PENDING_CHANGES
            elif not any(status in ACTIVE_STATUSES for status in statuses):
                journey.status = JourneyStatus.CANCELLED
            journey.updated_at = now
            self.repository.save_journey(journey)
            logger.info("Journey %s is now %s", journey.id, journey.status.value)

    def complete_booking(
        self, booking_id: str, user_id: str, now: Optional[datetime] = None
    ) -> BookingSchema:
        booking = self._get_booking(booking_id)
        if not (
            is_booking_supplier(self.repository, booking, user_id)
            or is_admin(self.repository, user_id)
        ):
            raise HTTPException(
                status_code=403, detail="Only the supplier or admin can complete this booking"
            )
        if booking.status != BookingStatus.CONFIRMED:
            raise HTTPException(status_code=400, detail="Only confirmed bookings can be completed")
        booking.status = BookingStatus.COMPLETED
        booking.updated_at = now or datetime.now()
        self.repository.save_booking(booking)
        self.notifications.notify_review_request(booking)
        logger.info("Booking %s completed", booking.reference)
        return BookingSchema.from_domain(booking)
