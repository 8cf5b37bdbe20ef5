from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.api import get_app_settings, get_current_user_id, get_repository
from app.core.config import Settings
from app.models.schemas import (
    AddSegmentRequest,
    BookJourneyRequest,
    JourneyListResponse,
    JourneySchema,
    PlanJourneyRequest,
    RecalculateAllResponse,
    ReplaceSegmentRequest,
    SegmentSchema,
    ServiceSchema,
    UpdateJourneyRequest,
    UpdateSegmentRequest,
)
from app.services.journey_service import JourneyService
from app.storage.repository import InMemoryRepository

router = APIRouter()


def get_journey_service(
    repository: InMemoryRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> JourneyService:
    return JourneyService(repository=repository, settings=settings)


@router.post("/", response_model=JourneySchema, status_code=status.HTTP_201_CREATED)
def plan_journey(
    payload: PlanJourneyRequest,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneySchema:
    return service.plan_journey(user_id, payload)


@router.get("/", response_model=JourneyListResponse)
def list_journeys(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneyListResponse:
    return service.list_journeys(user_id, page, limit)


@router.post("/recalculate-status", response_model=RecalculateAllResponse)
def recalculate_all(
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> RecalculateAllResponse:
    return service.recalculate_all(user_id)


@router.get("/{journey_id}", response_model=JourneySchema)
def get_journey(
    journey_id: str,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneySchema:
    return service.get_journey(journey_id, user_id)


@router.patch("/{journey_id}", response_model=JourneySchema)
def update_journey(
    journey_id: str,
    payload: UpdateJourneyRequest,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneySchema:
    return service.update_journey(journey_id, user_id, payload)


@router.delete("/{journey_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_journey(
    journey_id: str,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> None:
    service.delete_journey(journey_id, user_id)


@router.post("/{journey_id}/segments", response_model=JourneySchema)
def add_segment(
    journey_id: str,
    payload: AddSegmentRequest,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneySchema:
    return service.add_segment(journey_id, user_id, payload)


@router.patch("/{journey_id}/segments/{segment_id}", response_model=JourneySchema)
def update_segment(
    journey_id: str,
    segment_id: str,
    payload: UpdateSegmentRequest,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneySchema:
    return service.update_segment(journey_id, segment_id, user_id, payload)


@router.delete("/{journey_id}/segments/{segment_id}", response_model=JourneySchema)
def delete_segment(
    journey_id: str,
    segment_id: str,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneySchema:
    return service.delete_segment(journey_id, segment_id, user_id)


@router.post("/{journey_id}/book", response_model=JourneySchema)
def book_journey(
    journey_id: str,
    payload: Optional[BookJourneyRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneySchema:
    return service.book_journey(journey_id, user_id, payload)


@router.post("/{journey_id}/complete", response_model=JourneySchema)
def complete_journey(
    journey_id: str,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneySchema:
    return service.complete_journey(journey_id, user_id)


@router.post("/{journey_id}/recalculate-status", response_model=JourneySchema)
def recalculate_status(
    journey_id: str,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneySchema:
    return service.recalculate_status(journey_id, user_id)


@router.get("/{journey_id}/cancelled-segments", response_model=List[SegmentSchema])
def get_cancelled_segments(
    journey_id: str,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> List[SegmentSchema]:
    return service.get_cancelled_segments(journey_id, user_id)


@router.get(
    "/{journey_id}/segments/{segment_id}/replacements", response_model=List[ServiceSchema]
)
def find_replacement_services(
    journey_id: str,
    segment_id: str,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> List[ServiceSchema]:
    return service.find_replacement_services(journey_id, segment_id, user_id)


@router.post("/{journey_id}/segments/{segment_id}/replace", response_model=JourneySchema)
def replace_segment(
    journey_id: str,
    segment_id: str,
    payload: ReplaceSegmentRequest,
    user_id: str = Depends(get_current_user_id),
    service: JourneyService = Depends(get_journey_service),
) -> JourneySchema:
    return service.replace_segment(journey_id, segment_id, payload.service_id, user_id)
