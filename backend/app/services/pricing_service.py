import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import HTTPException

from app.models.domain import PricingSuggestion, Service, new_id
from app.models.schemas import PricingSuggestionSchema, ServiceSchema
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

DEMAND_WINDOW_DAYS = 90
SUGGESTION_VALID_DAYS = 30
MIN_PRICE_FACTOR = 0.8
MAX_PRICE_FACTOR = 1.5


def demand_multiplier(booking_count: int) -> float:
    if booking_count > 50:
        return 1.3
    if booking_count > 20:
        return 1.15
    if booking_count > 5:
        return 1.0
    return 0.9


def seasonal_multiplier(month: int) -> float:
    if 6 <= month <= 8:
        return 1.3
    if month in (5, 9):
        return 1.1
    return 0.9


def crowd_multiplier(crowd_index: Optional[float]) -> float:
    """1.0 at an average crowd, 0.9 when empty, 1.1 when packed."""
    if crowd_index is None:
        return 1.0
    return 1.0 + (crowd_index - 50) / 500


class DynamicPricingService:
    def __init__(self, repository: InMemoryRepository):
        self.repository = repository

    def _owned_service(self, service_id: str, user_id: str) -> Service:
        service = self.repository.get_service(service_id)
        if not service:
            raise HTTPException(status_code=404, detail=f"Service {service_id} not found")
        supplier = self.repository.get_supplier_by_user(user_id)
        if not supplier or service.supplier_id != supplier.id:
            raise HTTPException(status_code=403, detail="Service not found or access denied")
        return service

    def generate_suggestion(
        self, service_id: str, user_id: str, now: Optional[datetime] = None
    ) -> PricingSuggestionSchema:
        now = now or datetime.now()
        service = self._owned_service(service_id, user_id)
        logger.info("Generating pricing suggestion for service %s", service.id)

        since = now - timedelta(days=DEMAND_WINDOW_DAYS)
        booking_count = sum(
            1
            for booking in self.repository.bookings_for_service(service.id)
            if booking.created_at >= since
            for item in booking.items
            if item.service_id == service.id
        )
        latest = (
            self.repository.latest_crowd_point(service.location_id) if service.location_id else None
        )

        base_price = service.price
        demand = demand_multiplier(booking_count)
        seasonal = seasonal_multiplier(now.month)
        crowd = crowd_multiplier(latest.crowd_index if latest else None)
        min_price = base_price * MIN_PRICE_FACTOR
        max_price = base_price * MAX_PRICE_FACTOR
        suggested = max(min_price, min(max_price, base_price * demand * seasonal * crowd))

        suggestion = self.repository.save_pricing_suggestion(
            PricingSuggestion(
                id=new_id(),
                service_id=service.id,
                start_date=now,
                end_date=now + timedelta(days=SUGGESTION_VALID_DAYS),
                base_price=base_price,
                demand_multiplier=demand,
                seasonal_multiplier=seasonal,
                crowd_multiplier=round(crowd, 4),
                suggested_price=round(suggested, 2),
                min_price=round(min_price, 2),
                max_price=round(max_price, 2),
                confidence=0.8 if booking_count > 10 else 0.5,
                created_at=now,
            )
        )
        return PricingSuggestionSchema.from_domain(suggestion)

    def list_suggestions(
        self, service_id: str, user_id: str, now: Optional[datetime] = None
    ) -> List[PricingSuggestionSchema]:
        now = now or datetime.now()
        self._owned_service(service_id, user_id)
        suggestions = [
            s for s in self.repository.pricing_suggestions_for_service(service_id) if s.end_date > now
        ]
        return [PricingSuggestionSchema.from_domain(s) for s in suggestions[:10]]

    def apply_suggestion(
        self, suggestion_id: str, service_id: str, user_id: str, now: Optional[datetime] = None
    ) -> ServiceSchema:
        service = self._owned_service(service_id, user_id)
        suggestion = self.repository.get_pricing_suggestion(suggestion_id)
        if not suggestion or suggestion.service_id != service.id:
            raise HTTPException(status_code=403, detail="Pricing suggestion not found")

        service.price = suggestion.suggested_price
        suggestion.is_active = True
        suggestion.applied_at = now or datetime.now()
        self.repository.save_service(service)
        self.repository.save_pricing_suggestion(suggestion)
        logger.info("Applied pricing %s to service %s", suggestion.id, service.id)
        return ServiceSchema.from_domain(service)
