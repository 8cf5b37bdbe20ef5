from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.api import get_app_settings, get_current_user_id, get_repository
from app.core.config import Settings
from app.models.domain import ServiceType
from app.models.schemas import InteractionCreate, PreferencesSchema, RecommendationSchema
from app.services.recommendation_service import RecommendationService
from app.storage.repository import InMemoryRepository

router = APIRouter()


def get_recommendation_service(
    repository: InMemoryRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> RecommendationService:
    return RecommendationService(repository=repository, settings=settings)


@router.get("/", response_model=List[RecommendationSchema])
def get_recommendations(
    limit: int = Query(default=10, ge=1, le=50),
    type: Optional[ServiceType] = None,
    user_id: str = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service),
) -> List[RecommendationSchema]:
    return service.get_recommendations(user_id, limit=limit, service_type=type)


@router.post("/interactions", status_code=status.HTTP_204_NO_CONTENT)
def track_interaction(
    payload: InteractionCreate,
    user_id: str = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service),
) -> None:
    service.track_interaction(user_id, payload)


@router.get("/preferences", response_model=PreferencesSchema)
def get_preferences(
    user_id: str = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service),
) -> PreferencesSchema:
    return service.get_preferences(user_id)


@router.put("/preferences", response_model=PreferencesSchema)
def update_preferences(
    payload: PreferencesSchema,
    user_id: str = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service),
) -> PreferencesSchema:
    return service.update_preferences(user_id, payload)
