from typing import List

from fastapi import APIRouter, Depends

from app.api import get_current_user_id, get_repository
from app.models.schemas import PricingSuggestionSchema, ServiceSchema
from app.services.pricing_service import DynamicPricingService
from app.storage.repository import InMemoryRepository

router = APIRouter()


def get_pricing_service(
    repository: InMemoryRepository = Depends(get_repository),
) -> DynamicPricingService:
    return DynamicPricingService(repository=repository)


@router.post("/services/{service_id}/suggestions", response_model=PricingSuggestionSchema)
def generate_suggestion(
    service_id: str,
    user_id: str = Depends(get_current_user_id),
    service: DynamicPricingService = Depends(get_pricing_service),
) -> PricingSuggestionSchema:
    return service.generate_suggestion(service_id, user_id)


@router.get("/services/{service_id}/suggestions", response_model=List[PricingSuggestionSchema])
def list_suggestions(
    service_id: str,
    user_id: str = Depends(get_current_user_id),
    service: DynamicPricingService = Depends(get_pricing_service),
) -> List[PricingSuggestionSchema]:
    return service.list_suggestions(service_id, user_id)


@router.post(
    "/services/{service_id}/suggestions/{suggestion_id}/apply", response_model=ServiceSchema
)
def apply_suggestion(
    service_id: str,
    suggestion_id: str,
    user_id: str = Depends(get_current_user_id),
    service: DynamicPricingService = Depends(get_pricing_service),
) -> ServiceSchema:
    return service.apply_suggestion(suggestion_id, service_id, user_id)
