from datetime import timedelta

import pytest
from fastapi import HTTPException

from app.models.domain import (
    BookingStatus,
    GuestReviewTag,
    PaymentStatus,
    Review,
    ReviewTag,
    ReviewType,
    new_id,
)
from app.models.schemas import (
    BookingCreate,
    BookingItemCreate,
    GuestReviewCreate,
    RefundRequest,
    ReviewCreate,
)
from app.services.booking_service import BookingService
from app.services.payment_service import PaymentService
from app.services.review_service import ReviewService, trust_quality
from app.storage import seed
from conftest import NOW


def _booking(repository, service_id=seed.HVAR_APARTMENT):
    return BookingService(repository).create_booking(
        seed.TOURIST_ID,
        BookingCreate(service_date=NOW + timedelta(days=2), items=[BookingItemCreate(service_id=service_id)]),
        now=NOW,
    ).bookings[0]


def _completed_booking(repository, service_id=seed.HVAR_APARTMENT):
    booking = _booking(repository, service_id)
    service = BookingService(repository)
    service.confirm_booking(booking.id, seed.HOST_USER_ID, now=NOW)
    service.complete_booking(booking.id, seed.HOST_USER_ID, now=NOW)
    return booking


def test_payment_confirms_the_booking(repository):
    booking = _booking(repository)
    payments = PaymentService(repository)

    intent = payments.create_payment_intent(booking.id, seed.TOURIST_ID)
    assert intent.status == PaymentStatus.PENDING
    assert intent.amount == 120
    assert intent.provider == "simulated"
    assert intent.client_secret.startswith(intent.provider_reference)

    paid = payments.confirm_payment(intent.id, seed.TOURIST_ID, now=NOW)

    assert paid.status == PaymentStatus.COMPLETED
    assert paid.completed_at == NOW
    assert repository.get_booking(booking.id).status == BookingStatus.CONFIRMED
    with pytest.raises(HTTPException) as exc:
        payments.create_payment_intent(booking.id, seed.TOURIST_ID)
    assert exc.value.detail == "Booking is already paid"


def test_payment_access_rules(repository):
    booking = _booking(repository)
    payments = PaymentService(repository)

    with pytest.raises(HTTPException) as exc:
        payments.create_payment_intent(booking.id, seed.HOST_USER_ID)
    assert exc.value.status_code == 403
    with pytest.raises(HTTPException) as exc:
        payments.create_payment_intent("missing", seed.TOURIST_ID)
    assert exc.value.status_code == 404

    intent = payments.create_payment_intent(booking.id, seed.TOURIST_ID)
    with pytest.raises(HTTPException) as exc:
        payments.refund_payment(intent.id, seed.TOURIST_ID)
    assert exc.value.status_code == 403
    with pytest.raises(HTTPException) as exc:
        payments.refund_payment(intent.id, seed.HOST_USER_ID)
    assert exc.value.status_code == 400
    assert len(payments.get_payments_for_booking(booking.id, seed.HOST_USER_ID)) == 1


def test_refund_marks_booking_refunded(repository):
    booking = _booking(repository)
    payments = PaymentService(repository)
    intent = payments.create_payment_intent(booking.id, seed.TOURIST_ID)
    payments.confirm_payment(intent.id, seed.TOURIST_ID, now=NOW)

    refunded = payments.refund_payment(intent.id, seed.ADMIN_ID, RefundRequest(reason="Storm"))

    assert refunded.status == PaymentStatus.REFUNDED
    assert refunded.refund_reason == "Storm"
    assert repository.get_booking(booking.id).status == BookingStatus.REFUNDED


def test_reviews_are_held_back_before_publishing(repository, settings):
    booking = _completed_booking(repository)
    reviews = ReviewService(repository, settings)

    review = reviews.create_review(
        seed.TOURIST_ID,
        ReviewCreate(booking_id=booking.id, would_recommend=True, tag=ReviewTag.GOOD_VALUE),
        now=NOW,
    )

    assert review.publish_at == NOW + timedelta(hours=72)
    assert not review.is_published
    assert reviews.get_trust_score(seed.HOST_SUPPLIER_ID).message == "No reviews yet"
    assert reviews.publish_due_reviews(now=NOW + timedelta(hours=71)) == 0
    assert reviews.publish_due_reviews(now=NOW + timedelta(hours=72)) == 1
    assert len(reviews.list_supplier_reviews(seed.HOST_SUPPLIER_ID)) == 1

    with pytest.raises(HTTPException) as exc:
        reviews.create_review(
            seed.TOURIST_ID,
            ReviewCreate(booking_id=booking.id, would_recommend=False, tag=ReviewTag.TOO_NOISY),
            now=NOW,
        )
    assert exc.value.detail == "You have already reviewed this booking"


def test_review_requires_completed_own_booking(repository, settings):
    pending = _booking(repository)
    reviews = ReviewService(repository, settings)
    payload = ReviewCreate(booking_id=pending.id, would_recommend=True, tag=ReviewTag.GOOD_VALUE)

    with pytest.raises(HTTPException) as exc:
        reviews.create_review(seed.TOURIST_ID, payload, now=NOW)
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException) as exc:
        reviews.create_review(seed.ADMIN_ID, payload, now=NOW)
    assert exc.value.status_code == 403


def test_trust_score(repository, settings):
    reviews = ReviewService(repository, settings)
    verdicts = [
        (True, ReviewTag.GOOD_VALUE),
        (True, ReviewTag.GOOD_VALUE),
        (True, ReviewTag.QUIET_AREA),
        (False, ReviewTag.TOO_NOISY),
    ]
    for would_recommend, tag in verdicts:
        booking = _completed_booking(repository, seed.FORTRESS_TOUR)
        reviews.create_review(
            seed.TOURIST_ID,
            ReviewCreate(booking_id=booking.id, would_recommend=would_recommend, tag=tag),
            now=NOW,
        )
    reviews.publish_due_reviews(now=NOW + timedelta(days=3))

    trust = reviews.get_trust_score(seed.HOST_SUPPLIER_ID)

    assert trust.trust_score == 75
    assert (trust.positive_reviews, trust.negative_reviews) == (3, 1)
    assert trust.top_tags[0].tag == ReviewTag.GOOD_VALUE
    assert trust.top_tags[0].count == 2
    assert trust.quality == "Very good"
    assert len(reviews.list_supplier_reviews(seed.HOST_SUPPLIER_ID, would_recommend=False)) == 1
    with pytest.raises(HTTPException):
        reviews.get_trust_score("sup-unknown")


def test_trust_score_rounds_halves_up(repository, settings):
    for index in range(200):
        repository.save_review(
            Review(
                id=new_id(),
                booking_id=f"booking-{index}",
                user_id=seed.TOURIST_ID,
                supplier_id=seed.HOST_SUPPLIER_ID,
                service_id=seed.HVAR_APARTMENT,
                would_recommend=index < 189,
                tag=ReviewTag.GOOD_VALUE if index < 189 else ReviewTag.TOO_NOISY,
                comment=None,
                publish_at=NOW,
                is_published=True,
                created_at=NOW,
            )
        )

    trust = ReviewService(repository, settings).get_trust_score(seed.HOST_SUPPLIER_ID)

    # 189 / 200 is 94.5 percent
    assert trust.trust_score == 95
    assert trust.quality == "Premium quality"


def test_trust_quality_labels():
    assert trust_quality(100) == "Premium quality"
    assert trust_quality(85) == "Excellent"
    assert trust_quality(50) == "Average"
    assert trust_quality(10) == "Below average"


def test_supplier_reviews_the_guest(repository, settings):
    reviews = ReviewService(repository, settings)
    booking = _completed_booking(repository)
    payload = GuestReviewCreate(
        booking_id=booking.id, would_host_again=True, tag=GuestReviewTag.RESPECTFUL_GUEST
    )

    for user_id in (seed.TOURIST_ID, seed.TRANSPORT_USER_ID):
        with pytest.raises(HTTPException) as exc:
            reviews.create_guest_review(user_id, payload, now=NOW)
        assert exc.value.status_code == 403

    review = reviews.create_guest_review(seed.HOST_USER_ID, payload, now=NOW)
    assert review.review_type == ReviewType.SUPPLIER_TO_GUEST
    assert review.user_id == seed.TOURIST_ID
    assert review.service_id is None
    assert not review.is_published

    with pytest.raises(HTTPException) as exc:
        reviews.create_guest_review(seed.HOST_USER_ID, payload, now=NOW)
    assert exc.value.detail == "You have already reviewed this guest for this booking"

    # the guest can still review the stay
    reviews.create_review(
        seed.TOURIST_ID,
        ReviewCreate(booking_id=booking.id, would_recommend=False, tag=ReviewTag.TOO_NOISY),
        now=NOW,
    )

    pending = _booking(repository, seed.FORTRESS_TOUR)
    with pytest.raises(HTTPException) as exc:
        reviews.create_guest_review(
            seed.HOST_USER_ID,
            GuestReviewCreate(booking_id=pending.id, would_host_again=True, tag=GuestReviewTag.ON_TIME),
            now=NOW,
        )
    assert exc.value.status_code == 400


def test_guest_trust_score(repository, settings):
    reviews = ReviewService(repository, settings)
    verdicts = [
        (True, GuestReviewTag.CLEAN_AND_TIDY),
        (True, GuestReviewTag.CLEAN_AND_TIDY),
        (False, GuestReviewTag.LEFT_MESS),
    ]
    for would_host_again, tag in verdicts:
        booking = _completed_booking(repository, seed.FORTRESS_TOUR)
        reviews.create_guest_review(
            seed.HOST_USER_ID,
            GuestReviewCreate(booking_id=booking.id, would_host_again=would_host_again, tag=tag),
            now=NOW,
        )

    assert reviews.get_guest_trust_score(seed.HOST_USER_ID, seed.TOURIST_ID).message == "No reviews yet"

    reviews.publish_due_reviews(now=NOW + timedelta(days=3))
    trust = reviews.get_guest_trust_score(seed.ADMIN_ID, seed.TOURIST_ID)

    # 2 of 3 is 66.67 percent
    assert trust.trust_score == 67
    assert (trust.positive_reviews, trust.negative_reviews) == (2, 1)
    assert trust.top_tags[0].tag == GuestReviewTag.CLEAN_AND_TIDY
    assert trust.quality == "Good"
    assert reviews.get_trust_score(seed.HOST_SUPPLIER_ID).total_reviews == 0

    with pytest.raises(HTTPException) as exc:
        reviews.get_guest_trust_score(seed.TOURIST_ID, seed.TOURIST_ID)
    assert exc.value.status_code == 403
    with pytest.raises(HTTPException) as exc:
        reviews.get_guest_trust_score(seed.HOST_USER_ID, "user-unknown")
    assert exc.value.status_code == 404


def test_available_tags():
    tags = ReviewService.available_tags()
    assert ReviewTag.SUPER_CLEAN in tags.service_tags
    assert tags.guest_tags[0] == GuestReviewTag.RESPECTFUL_GUEST
    assert len(tags.guest_tags) == 13
