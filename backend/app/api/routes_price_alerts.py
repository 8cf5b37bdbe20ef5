from typing import List

from fastapi import APIRouter, Depends, status

from app.api import get_app_settings, get_current_user_id, get_repository
from app.core.config import Settings
from app.models.schemas import (
    FlexibleDateSearch,
    FlexibleDateSearchResponse,
    PriceAlertCreate,
    PriceAlertSchema,
)
from app.services.price_alert_service import PriceAlertService
from app.storage.repository import InMemoryRepository

router = APIRouter()


def get_price_alert_service(
    repository: InMemoryRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> PriceAlertService:
    return PriceAlertService(repository=repository, settings=settings)


@router.post("/price-alerts", response_model=PriceAlertSchema, status_code=status.HTTP_201_CREATED)
def create_price_alert(
    payload: PriceAlertCreate,
    user_id: str = Depends(get_current_user_id),
    service: PriceAlertService = Depends(get_price_alert_service),
) -> PriceAlertSchema:
    return service.create_alert(user_id, payload)


@router.get("/price-alerts", response_model=List[PriceAlertSchema])
def list_price_alerts(
    user_id: str = Depends(get_current_user_id),
    service: PriceAlertService = Depends(get_price_alert_service),
) -> List[PriceAlertSchema]:
    return service.list_alerts(user_id)


@router.delete("/price-alerts/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_price_alert(
    alert_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PriceAlertService = Depends(get_price_alert_service),
) -> None:
    service.delete_alert(alert_id, user_id)


@router.post("/flexible-search", response_model=FlexibleDateSearchResponse)
def flexible_date_search(
    payload: FlexibleDateSearch,
    service: PriceAlertService = Depends(get_price_alert_service),
) -> FlexibleDateSearchResponse:
    return service.flexible_date_search(payload)
