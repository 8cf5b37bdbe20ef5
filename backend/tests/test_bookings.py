from datetime import timedelta

import pytest
from fastapi import HTTPException

from app.models.domain import BookingStatus, InteractionType, NotificationType
from app.models.schemas import BookingCreate, BookingItemCreate, CancelBookingRequest
from app.services.booking_service import BookingService
from app.storage import seed
from conftest import NOW


def _book(repository, *service_ids, quantity=1, days=5):
    return BookingService(repository).create_booking(
        seed.TOURIST_ID,
        BookingCreate(
            service_date=NOW + timedelta(days=days),
            items=[BookingItemCreate(service_id=sid, quantity=quantity) for sid in service_ids],
        ),
        now=NOW,
    )


def test_single_booking_uses_supplier_commission(repository):
    response = _book(repository, seed.HVAR_APARTMENT, quantity=2)

    booking = response.bookings[0]
    assert booking.reference.startswith("BK-")
    assert len(booking.reference) == 11
    assert booking.status == BookingStatus.PENDING
    assert booking.total_amount == 240
    assert booking.commission == pytest.approx(28.8)
    assert booking.package_booking_id is None
    interactions = repository.interactions_for_user(seed.TOURIST_ID)
    assert interactions[0].interaction_type == InteractionType.book
    supplier_inbox = repository.notifications_for_user(seed.HOST_USER_ID)
    assert supplier_inbox[0].type == NotificationType.BOOKING_CONFIRMATION


def test_multi_item_booking_shares_a_package(repository):
    response = _book(repository, seed.CATAMARAN, seed.PAKLENI_TOUR)

    assert len(response.bookings) == 2
    package_ids = {b.package_booking_id for b in response.bookings}
    assert len(package_ids) == 1
    assert package_ids.pop().startswith("pkg_")
    assert {b.supplier_id for b in response.bookings} == {seed.TRANSPORT_SUPPLIER_ID}


def test_booking_validation(repository):
    service = BookingService(repository)
    with pytest.raises(HTTPException) as exc:
        service.create_booking(
            seed.TOURIST_ID,
            BookingCreate(service_date=NOW - timedelta(days=1), items=[BookingItemCreate(service_id=seed.KAYAK)]),
            now=NOW,
        )
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        _book(repository, "missing")
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        _book(repository, seed.AIRPORT_TAXI, quantity=5)
    assert exc.value.status_code == 400
    assert "only 4 left" in exc.value.detail

    repository.get_service(seed.KAYAK).is_active = False
    with pytest.raises(HTTPException) as exc:
        _book(repository, seed.KAYAK)
    assert exc.value.status_code == 400


def test_confirm_and_complete_lifecycle(repository):
    booking = _book(repository, seed.HVAR_VILLA).bookings[0]
    service = BookingService(repository)

    with pytest.raises(HTTPException) as exc:
        service.confirm_booking(booking.id, seed.TOURIST_ID)
    assert exc.value.status_code == 403
    with pytest.raises(HTTPException) as exc:
        service.complete_booking(booking.id, seed.HOST_USER_ID)
    assert exc.value.status_code == 400

    confirmed = service.confirm_booking(booking.id, seed.HOST_USER_ID, now=NOW)
    assert confirmed.status == BookingStatus.CONFIRMED
    completed = service.complete_booking(booking.id, seed.ADMIN_ID, now=NOW)
    assert completed.status == BookingStatus.COMPLETED

    types = [n.type for n in repository.notifications_for_user(seed.TOURIST_ID)]
    assert NotificationType.REVIEW_REQUEST in types
    with pytest.raises(HTTPException) as exc:
        service.cancel_booking(booking.id, seed.TOURIST_ID)
    assert exc.value.status_code == 400


def test_access_rules_for_reading_bookings(repository):
    booking = _book(repository, seed.HVAR_HOSTEL).bookings[0]
    service = BookingService(repository)

    assert service.get_booking(booking.id, seed.TOURIST_ID).id == booking.id
    assert service.get_booking(booking.id, seed.HOST_USER_ID).id == booking.id
    assert service.get_booking(booking.id, seed.ADMIN_ID).id == booking.id
    with pytest.raises(HTTPException) as exc:
        service.get_booking(booking.id, seed.TRANSPORT_USER_ID)
    assert exc.value.status_code == 403

    assert service.list_my_bookings(seed.TOURIST_ID).total == 1
    assert service.list_supplier_bookings(seed.HOST_USER_ID).total == 1
    assert service.list_supplier_bookings(seed.TRANSPORT_USER_ID).total == 0
    assert service.list_my_bookings(seed.TOURIST_ID, BookingStatus.CANCELLED).total == 0
    with pytest.raises(HTTPException) as exc:
        service.list_supplier_bookings(seed.TOURIST_ID)
    assert exc.value.status_code == 404


def test_cancel_notifies_the_other_party(repository):
    booking = _book(repository, seed.HVAR_HOSTEL).bookings[0]
    service = BookingService(repository)

    with pytest.raises(HTTPException) as exc:
        service.cancel_booking(booking.id, seed.TRANSPORT_USER_ID)
    assert exc.value.status_code == 403

    cancelled = service.cancel_booking(
        booking.id, seed.TOURIST_ID, CancelBookingRequest(cancellation_reason="Plans changed"), now=NOW
    )

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.cancellation_reason == "Plans changed"
    cancellations = [
        n for n in repository.notifications_for_user(seed.HOST_USER_ID)
        if n.type == NotificationType.BOOKING_CANCELLED
    ]
    assert len(cancellations) == 1
    assert "Plans changed" in cancellations[0].message
    with pytest.raises(HTTPException) as exc:
        service.cancel_booking(booking.id, seed.TOURIST_ID)
    assert exc.value.status_code == 400
