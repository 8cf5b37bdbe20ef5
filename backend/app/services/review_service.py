import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import HTTPException

from app.core.config import Settings, get_settings
from app.core.rounding import round_half_up
from app.models.domain import BookingStatus, GuestReviewTag, Review, ReviewTag, ReviewType, new_id
from app.models.schemas import (
    GuestReviewCreate,
    GuestTagCount,
    GuestTrustScoreSchema,
    ReviewCreate,
    ReviewSchema,
    ReviewTagsSchema,
    TagCount,
    TrustScoreSchema,
)
from app.services.access import is_admin, supplier_for_user
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

QUALITY_LABELS = [
    (95, "Premium quality"),
    (85, "Excellent"),
    (75, "Very good"),
    (60, "Good"),
    (50, "Average"),
]


def trust_quality(score: int) -> str:
    for threshold, label in QUALITY_LABELS:
        if score >= threshold:
            return label
    return "Below average"


class ReviewService:
    def __init__(self, repository: InMemoryRepository, settings: Optional[Settings] = None):
        self.repository = repository
        self.settings = settings or get_settings()

    def create_review(
        self, user_id: str, payload: ReviewCreate, now: Optional[datetime] = None
    ) -> ReviewSchema:
        now = now or datetime.now()
        booking = self.repository.get_booking(payload.booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if booking.user_id != user_id:
            raise HTTPException(status_code=403, detail="You can only review your own bookings")
        if booking.status != BookingStatus.COMPLETED:
            raise HTTPException(status_code=400, detail="Only completed bookings can be reviewed")
        if self.repository.review_for_booking(booking.id):
            raise HTTPException(status_code=400, detail="You have already reviewed this booking")

        review = self.repository.save_review(
            Review(
                id=new_id(),
                booking_id=booking.id,
                user_id=user_id,
                supplier_id=booking.supplier_id,
                service_id=booking.items[0].service_id if booking.items else None,
                would_recommend=payload.would_recommend,
                tag=payload.tag,
                comment=payload.comment,
                publish_at=now + timedelta(hours=self.settings.review_publish_delay_hours),
                created_at=now,
            )
        )
        logger.info("Review %s submitted for booking %s", review.id, booking.reference)
        return ReviewSchema.from_domain(review)

    def create_guest_review(
        self, user_id: str, payload: GuestReviewCreate, now: Optional[datetime] = None
    ) -> ReviewSchema:
        """A supplier rates the guest of one of its completed bookings."""
        now = now or datetime.now()
        booking = self.repository.get_booking(payload.booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        supplier = supplier_for_user(self.repository, user_id)
        if not supplier or supplier.id != booking.supplier_id:
            raise HTTPException(
                status_code=403, detail="You can only review guests from your own bookings"
            )
        if booking.status != BookingStatus.COMPLETED:
            raise HTTPException(status_code=400, detail="Only completed bookings can be reviewed")
        if self.repository.review_for_booking(booking.id, ReviewType.SUPPLIER_TO_GUEST):
            raise HTTPException(
                status_code=400, detail="You have already reviewed this guest for this booking"
            )

        review = self.repository.save_review(
            Review(
                id=new_id(),
                booking_id=booking.id,
                user_id=booking.user_id,
                supplier_id=supplier.id,
                service_id=None,
                would_recommend=payload.would_host_again,
                tag=payload.tag,
                comment=None,
                publish_at=now + timedelta(hours=self.settings.review_publish_delay_hours),
                created_at=now,
                review_type=ReviewType.SUPPLIER_TO_GUEST,
            )
        )
        logger.info("Guest review %s submitted for booking %s", review.id, booking.reference)
        return ReviewSchema.from_domain(review)

    def publish_due_reviews(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now()
        published = 0
        for review in self.repository.list_reviews():
            if not review.is_published and review.publish_at <= now:
                review.is_published = True
                published += 1
        if published:
            logger.info("Published %d reviews", published)
        return published

    def _published_for_supplier(self, supplier_id: str) -> List[Review]:
        return [
            r for r in self.repository.list_reviews()
            if r.supplier_id == supplier_id
            and r.review_type == ReviewType.GUEST_TO_SUPPLIER
            and r.is_published
        ]

    def get_trust_score(self, supplier_id: str) -> TrustScoreSchema:
        if not self.repository.get_supplier(supplier_id):
            raise HTTPException(status_code=404, detail=f"Supplier {supplier_id} not found")
        reviews = self._published_for_supplier(supplier_id)
        if not reviews:
            return TrustScoreSchema(
                supplier_id=supplier_id,
                total_reviews=0,
                positive_reviews=0,
                negative_reviews=0,
                message="No reviews yet",
            )

        positive = sum(1 for r in reviews if r.would_recommend)
        score = round_half_up(positive / len(reviews) * 100)
        tags = Counter(r.tag for r in reviews).most_common(5)
        return TrustScoreSchema(
            supplier_id=supplier_id,
            trust_score=score,
            total_reviews=len(reviews),
            positive_reviews=positive,
            negative_reviews=len(reviews) - positive,
            top_tags=[TagCount(tag=tag, count=count) for tag, count in tags],
            quality=trust_quality(score),
        )

    def list_supplier_reviews(
        self, supplier_id: str, would_recommend: Optional[bool] = None
    ) -> List[ReviewSchema]:
        return [
            ReviewSchema.from_domain(r)
            for r in self._published_for_supplier(supplier_id)
            if would_recommend is None or r.would_recommend == would_recommend
        ]

    def get_guest_trust_score(self, requester_id: str, user_id: str) -> GuestTrustScoreSchema:
        allowed = supplier_for_user(self.repository, requester_id) or is_admin(
            self.repository, requester_id
        )
        if not allowed:
            raise HTTPException(status_code=403, detail="Only suppliers can view guest trust scores")
        if not self.repository.get_user(user_id):
            raise HTTPException(status_code=404, detail=f"User {user_id} not found")
        reviews = [
            r for r in self.repository.list_reviews()
            if r.user_id == user_id
            and r.review_type == ReviewType.SUPPLIER_TO_GUEST
            and r.is_published
        ]
        if not reviews:
            return GuestTrustScoreSchema(user_id=user_id, total_reviews=0, message="No reviews yet")

        positive = sum(1 for r in reviews if r.would_recommend)
        score = round_half_up(positive / len(reviews) * 100)
        tags = Counter(r.tag for r in reviews).most_common(5)
        return GuestTrustScoreSchema(
            user_id=user_id,
            trust_score=score,
            total_reviews=len(reviews),
            positive_reviews=positive,
            negative_reviews=len(reviews) - positive,
            top_tags=[GuestTagCount(tag=tag, count=count) for tag, count in tags],
            quality=trust_quality(score),
        )

    @staticmethod
    def available_tags() -> ReviewTagsSchema:
        return ReviewTagsSchema(service_tags=list(ReviewTag), guest_tags=list(GuestReviewTag))
