from typing import List, Optional

from fastapi import APIRouter, Depends, status

from app.api import get_app_settings, get_current_user_id, get_repository
from app.core.config import Settings
from app.models.schemas import (
    GuestReviewCreate,
    GuestTrustScoreSchema,
    ReviewCreate,
    ReviewSchema,
    ReviewTagsSchema,
    TrustScoreSchema,
)
from app.services.review_service import ReviewService
from app.storage.repository import InMemoryRepository

router = APIRouter()


def get_review_service(
    repository: InMemoryRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> ReviewService:
    return ReviewService(repository=repository, settings=settings)


@router.post("/", response_model=ReviewSchema, status_code=status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreate,
    user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> ReviewSchema:
    return service.create_review(user_id, payload)


@router.get("/suppliers/{supplier_id}/trust-score", response_model=TrustScoreSchema)
def get_trust_score(
    supplier_id: str, service: ReviewService = Depends(get_review_service)
) -> TrustScoreSchema:
    return service.get_trust_score(supplier_id)


@router.get("/suppliers/{supplier_id}", response_model=List[ReviewSchema])
def list_supplier_reviews(
    supplier_id: str,
    would_recommend: Optional[bool] = None,
    service: ReviewService = Depends(get_review_service),
) -> List[ReviewSchema]:
    return service.list_supplier_reviews(supplier_id, would_recommend)


@router.get("/tags", response_model=ReviewTagsSchema)
def list_tags() -> ReviewTagsSchema:
    return ReviewService.available_tags()


@router.post("/guests", response_model=ReviewSchema, status_code=status.HTTP_201_CREATED)
def create_guest_review(
    payload: GuestReviewCreate,
    user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> ReviewSchema:
    return service.create_guest_review(user_id, payload)


@router.get("/guests/{guest_id}/trust-score", response_model=GuestTrustScoreSchema)
def get_guest_trust_score(
    guest_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> GuestTrustScoreSchema:
    return service.get_guest_trust_score(user_id, guest_id)
