"""In-app notifications for tourists and suppliers."""

import logging
from typing import Dict, Optional

from fastapi import HTTPException

from app.models.domain import Booking, Notification, NotificationType, new_id
from app.models.schemas import NotificationListResponse, NotificationSchema
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, repository: InMemoryRepository):
        self.repository = repository

    def create_notification(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        metadata: Optional[Dict[str, object]] = None,
    ) -> Notification:
        notification = self.repository.save_notification(
            Notification(
                id=new_id(),
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                action_url=action_url,
                metadata=metadata or {},
            )
        )
        logger.debug("Notification %s for user %s: %s", type.value, user_id, title)
        return notification

    def list_notifications(self, user_id: str, unread_only: bool = False) -> NotificationListResponse:
        notifications = self.repository.notifications_for_user(user_id)
        if unread_only:
            notifications = [n for n in notifications if not n.is_read]
        return NotificationListResponse(
            notifications=[NotificationSchema.from_domain(n) for n in notifications],
            unread_count=self.unread_count(user_id),
        )

    def unread_count(self, user_id: str) -> int:
        return sum(1 for n in self.repository.notifications_for_user(user_id) if not n.is_read)

    def mark_as_read(self, notification_id: str, user_id: str) -> NotificationSchema:
        notification = self.repository.get_notification(notification_id)
        if not notification or notification.user_id != user_id:
            raise HTTPException(status_code=404, detail="Notification not found")
        notification.is_read = True
        return NotificationSchema.from_domain(notification)

    def mark_all_as_read(self, user_id: str) -> int:
        updated = 0
        for notification in self.repository.notifications_for_user(user_id):
            if not notification.is_read:
                notification.is_read = True
                updated += 1
        return updated

    # booking side effects

    def _supplier_user_id(self, supplier_id: str) -> Optional[str]:
        supplier = self.repository.get_supplier(supplier_id)
        return supplier.user_id if supplier else None

    def notify_supplier_new_booking(self, booking: Booking) -> Optional[Notification]:
        user_id = self._supplier_user_id(booking.supplier_id)
        if not user_id:
            logger.warning("Booking %s has no supplier user to notify", booking.reference)
            return None
        return self.create_notification(
            user_id,
            NotificationType.BOOKING_CONFIRMATION,
            "New booking received",
            f"Booking {booking.reference} for {booking.service_date:%Y-%m-%d} "
            f"({booking.total_amount:.2f} {booking.currency})",
            action_url=f"/bookings/{booking.id}",
            metadata={"booking_id": booking.id},
        )

    def notify_booking_cancelled(self, booking: Booking, cancelled_by: str) -> Optional[Notification]:
        supplier_user = self._supplier_user_id(booking.supplier_id)
        recipient = booking.user_id if cancelled_by != booking.user_id else supplier_user
        if not recipient:
            return None
        return self.create_notification(
            recipient,
            NotificationType.BOOKING_CANCELLED,
            "Booking cancelled",
            f"Booking {booking.reference} was cancelled"
            + (f": {booking.cancellation_reason}" if booking.cancellation_reason else ""),
            action_url=f"/bookings/{booking.id}",
            metadata={"booking_id": booking.id},
        )

    def notify_booking_confirmed(self, booking: Booking) -> Notification:
        return self.create_notification(
            booking.user_id,
            NotificationType.BOOKING_CONFIRMATION,
            "Booking confirmed",
            f"Your booking {booking.reference} is confirmed",
            action_url=f"/bookings/{booking.id}",
            metadata={"booking_id": booking.id},
        )

    def notify_payment_received(self, booking: Booking, amount: float) -> Notification:
        return self.create_notification(
            booking.user_id,
            NotificationType.PAYMENT_RECEIVED,
            "Payment received",
            f"We received {amount:.2f} {booking.currency} for booking {booking.reference}",
            action_url=f"/bookings/{booking.id}",
            metadata={"booking_id": booking.id},
        )

    def notify_review_request(self, booking: Booking) -> Notification:
        return self.create_notification(
            booking.user_id,
            NotificationType.REVIEW_REQUEST,
            "How was your trip?",
            f"Tell us about booking {booking.reference}",
            action_url=f"/reviews?booking_id={booking.id}",
            metadata={"booking_id": booking.id},
        )
