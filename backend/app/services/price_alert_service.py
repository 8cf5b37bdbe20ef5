"""Price-drop alerts and flexible-date price search."""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

import numpy as np
from fastapi import HTTPException

from app.core.config import Settings, get_settings
from app.core.rounding import round_half_up
from app.models.domain import CrowdLevel, NotificationType, PriceAlert, Service, ServiceType, new_id
from app.models.schemas import (
    FlexibleDateResult,
    FlexibleDateSearch,
    FlexibleDateSearchResponse,
    PriceAlertCreate,
    PriceAlertSchema,
)
from app.services.catalog_service import CatalogService
from app.services.crowd_index import crowd_level_for
from app.services.notification_service import NotificationService
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

MAX_SEARCH_DAYS = 62
BEST_VALUE_MARGIN = 1.1
BEST_VALUE_LEVELS = (CrowdLevel.EMPTY, CrowdLevel.QUIET)
PER_PERSON_TYPES = (ServiceType.TOUR, ServiceType.ACTIVITY, ServiceType.EVENT_TICKET)


def seasonal_multiplier(day: date) -> float:
    if 6 <= day.month <= 8:
        return 1.3
    if day.month in (5, 9):
        return 1.1
    return 0.9


def to_cents(value: float) -> float:
    return round_half_up(value * 100) / 100


class PriceAlertService:
    def __init__(self, repository: InMemoryRepository, settings: Optional[Settings] = None):
        self.repository = repository
        self.settings = settings or get_settings()
        self.notifications = NotificationService(repository)

    def _get_service(self, service_id: str) -> Service:
        service = self.repository.get_service(service_id)
        if not service:
            raise HTTPException(status_code=404, detail=f"Service {service_id} not found")
        return service

    def create_alert(
        self, user_id: str, payload: PriceAlertCreate, now: Optional[datetime] = None
    ) -> PriceAlertSchema:
        pending = [
            a for a in self.repository.price_alerts_for_user(user_id)
            if a.is_active and not a.is_triggered
        ]
        if len(pending) >= self.settings.price_alert_limit:
            raise HTTPException(
                status_code=403,
                detail=f"You can have up to {self.settings.price_alert_limit} active price alerts",
            )
        service = self._get_service(payload.service_id)
        if payload.target_price is None and payload.percentage is None:
            raise HTTPException(
                status_code=400, detail="Either target price or percentage must be provided"
            )
        if payload.start_date and payload.end_date and payload.end_date < payload.start_date:
            raise HTTPException(status_code=400, detail="End date must be after start date")

        alert = self.repository.save_price_alert(
            PriceAlert(
                id=new_id(),
                user_id=user_id,
                service_id=service.id,
                baseline_price=service.price,
                alert_type=payload.alert_type,
                target_price=payload.target_price,
                percentage=payload.percentage,
                start_date=payload.start_date,
                end_date=payload.end_date,
                guests=payload.guests,
                created_at=now or datetime.now(),
            )
        )
        logger.info("Price alert %s created for user %s on %s", alert.id, user_id, service.name)
        return PriceAlertSchema.from_domain(alert, service)

    def list_alerts(self, user_id: str) -> List[PriceAlertSchema]:
        return [
            PriceAlertSchema.from_domain(alert, self._get_service(alert.service_id))
            for alert in self.repository.price_alerts_for_user(user_id)
        ]

    def delete_alert(self, alert_id: str, user_id: str) -> None:
        alert = self.repository.get_price_alert(alert_id)
        if not alert:
            raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
        if alert.user_id != user_id:
            raise HTTPException(status_code=403, detail="You can only delete your own alerts")
        self.repository.delete_price_alert(alert_id)
        logger.info("Price alert %s deleted", alert_id)

    @staticmethod
    def should_trigger(alert: PriceAlert, current_price: float) -> bool:
        if alert.target_price is not None and current_price <= alert.target_price:
            return True
        if alert.percentage is not None:
            return current_price <= alert.baseline_price * (1 - alert.percentage / 100)
        return False

    def check_price_alerts(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now()
        triggered = 0
        for alert in self.repository.pending_price_alerts():
            try:
                service = self.repository.get_service(alert.service_id)
                if not service or not self.should_trigger(alert, service.price):
                    continue
                self._trigger(alert, service, now)
                triggered += 1
            except Exception:
                logger.exception("Checking price alert %s failed", alert.id)
        logger.info("Price alert check completed, %d triggered", triggered)
        return triggered

    def _trigger(self, alert: PriceAlert, service: Service, now: datetime) -> None:
        alert.is_triggered = True
        alert.triggered_at = now
        self.repository.save_price_alert(alert)
        self.notifications.create_notification(
            alert.user_id,
            NotificationType.PROMOTIONAL,
            "Price Alert: Price Drop!",
            f"{service.name} is now {service.currency} {service.price:.2f}!",
            action_url=f"/services/{service.id}",
            metadata={"alert_id": alert.id, "service_id": service.id, "price": service.price},
        )
        logger.info("Price alert %s triggered for user %s", alert.id, alert.user_id)

    # flexible dates

    def _crowd_level_on(self, location_id: Optional[str], day: date) -> Optional[CrowdLevel]:
        if not location_id:
            return None
        predictions = self.repository.predictions_for_day(location_id, day)
        if not predictions:
            return None
        return crowd_level_for(float(np.mean([p.predicted_index for p in predictions])))

    def flexible_date_search(self, payload: FlexibleDateSearch) -> FlexibleDateSearchResponse:
        service = self._get_service(payload.service_id)
        if payload.end_date < payload.start_date:
            raise HTTPException(status_code=400, detail="End date must be after start date")
        start = payload.start_date - timedelta(days=payload.flex_days)
        end = payload.end_date + timedelta(days=payload.flex_days)
        if (end - start).days + 1 > MAX_SEARCH_DAYS:
            raise HTTPException(
                status_code=400, detail=f"Search range is limited to {MAX_SEARCH_DAYS} days"
            )
        logger.info("Flexible date search for %s from %s to %s", service.name, start, end)

        catalog = CatalogService(self.repository)
        quantity = payload.guests if service.type in PER_PERSON_TYPES else 1
        results = []
        day = start
        while day <= end:
            results.append(
                FlexibleDateResult(
                    date=day,
                    price=to_cents(service.price * seasonal_multiplier(day)),
                    available=catalog.check_availability(service.id, day, quantity).available,
                    crowd_level=self._crowd_level_on(service.location_id, day),
                )
            )
            day += timedelta(days=1)

        prices = [r.price for r in results if r.available]
        cheapest = min(prices) if prices else 0.0
        for result in results:
            result.is_cheapest = result.available and result.price == cheapest
            result.price_difference = to_cents(result.price - cheapest)

        best_value = [
            r.date
            for r in results
            if r.available
            and r.price <= cheapest * BEST_VALUE_MARGIN
            and (r.crowd_level is None or r.crowd_level in BEST_VALUE_LEVELS)
        ]
        return FlexibleDateSearchResponse(
            service_id=service.id,
            service_name=service.name,
            start_date=start,
            end_date=end,
            guests=payload.guests,
            results=results,
            cheapest_price=cheapest,
            highest_price=max(prices) if prices else 0.0,
            average_price=to_cents(float(np.mean(prices))) if prices else 0.0,
            best_value_dates=best_value[:3],
        )
