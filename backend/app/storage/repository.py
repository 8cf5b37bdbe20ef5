from __future__ import annotations

import functools
import threading
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from app.models.domain import (
    Booking,
    CrowdDataPoint,
    CrowdPrediction,
    Event,
    Journey,
    JourneySegment,
    Location,
    Notification,
    Payment,
    PriceAlert,
    PricingSuggestion,
    RecommendationScore,
    Review,
    ReviewType,
    Sensor,
    SensorReading,
    Service,
    SocialTrend,
    Supplier,
    User,
    UserInteraction,
    UserPreferences,
    WeatherSnapshot,
)


def synchronized(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class InMemoryRepository:
    """
    Process-local store shared by request handlers and the scheduler, whose
    jobs run in worker threads. Every public method holds the same re-entrant
    lock, and list queries return fresh lists.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.users: Dict[str, User] = {}
        self.suppliers: Dict[str, Supplier] = {}
        self.locations: Dict[str, Location] = {}
        self.services: Dict[str, Service] = {}
        self.bookings: Dict[str, Booking] = {}
        self.payments: Dict[str, Payment] = {}
        self.reviews: Dict[str, Review] = {}
        self.events: Dict[str, Event] = {}
        self.sensors: Dict[str, Sensor] = {}
        self.sensor_readings: List[SensorReading] = []
        self.crowd_data: List[CrowdDataPoint] = []
        self.predictions: List[CrowdPrediction] = []
        self.social_trends: List[SocialTrend] = []
        self.weather_snapshots: List[WeatherSnapshot] = []
        self.preferences: Dict[str, UserPreferences] = {}
        self.interactions: List[UserInteraction] = []
        self.recommendations: Dict[Tuple[str, str], RecommendationScore] = {}
        self.pricing_suggestions: Dict[str, PricingSuggestion] = {}
        self.journeys: Dict[str, Journey] = {}
        self.notifications: Dict[str, Notification] = {}
        self.price_alerts: Dict[str, PriceAlert] = {}

    # users & suppliers

    @synchronized
    def save_user(self, user: User) -> User:
        self.users[user.id] = user
        return user

    @synchronized
    def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    @synchronized
    def save_supplier(self, supplier: Supplier) -> Supplier:
        self.suppliers[supplier.id] = supplier
        return supplier

    @synchronized
    def get_supplier(self, supplier_id: str) -> Optional[Supplier]:
        return self.suppliers.get(supplier_id)

    @synchronized
    def get_supplier_by_user(self, user_id: str) -> Optional[Supplier]:
        return next((s for s in self.suppliers.values() if s.user_id == user_id), None)

    # locations

    @synchronized
    def save_location(self, location: Location) -> Location:
        self.locations[location.id] = location
        return location

    @synchronized
    def get_location(self, location_id: str) -> Optional[Location]:
        return self.locations.get(location_id)

    @synchronized
    def list_locations(self, active_only: bool = False) -> List[Location]:
        return [loc for loc in self.locations.values() if loc.is_active or not active_only]

    @synchronized
    def children_of(self, location_id: str, active_only: bool = True) -> List[Location]:
        return [
            loc
            for loc in self.locations.values()
            if loc.parent_id == location_id and (loc.is_active or not active_only)
        ]

    # services

    @synchronized
    def save_service(self, service: Service) -> Service:
        self.services[service.id] = service
        return service

    @synchronized
    def get_service(self, service_id: str) -> Optional[Service]:
        return self.services.get(service_id)

    @synchronized
    def list_services(self) -> List[Service]:
        return list(self.services.values())

    # bookings & payments

    @synchronized
    def save_booking(self, booking: Booking) -> Booking:
        self.bookings[booking.id] = booking
        return booking

    @synchronized
    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self.bookings.get(booking_id)

    @synchronized
    def list_bookings(self) -> List[Booking]:
        return sorted(self.bookings.values(), key=lambda b: b.created_at, reverse=True)

    @synchronized
    def bookings_for_service(self, service_id: str) -> List[Booking]:
        return [
            b for b in self.bookings.values() if any(i.service_id == service_id for i in b.items)
        ]

    @synchronized
    def save_payment(self, payment: Payment) -> Payment:
        self.payments[payment.id] = payment
        return payment

    @synchronized
    def get_payment(self, payment_id: str) -> Optional[Payment]:
        return self.payments.get(payment_id)

    @synchronized
    def payments_for_booking(self, booking_id: str) -> List[Payment]:
        return [p for p in self.payments.values() if p.booking_id == booking_id]

    # reviews

    @synchronized
    def save_review(self, review: Review) -> Review:
        self.reviews[review.id] = review
        return review

    @synchronized
    def review_for_booking(
        self, booking_id: str, review_type: ReviewType = ReviewType.GUEST_TO_SUPPLIER
    ) -> Optional[Review]:
        return next(
            (
                r for r in self.reviews.values()
                if r.booking_id == booking_id and r.review_type == review_type
            ),
            None,
        )

    @synchronized
    def list_reviews(self) -> List[Review]:
        return sorted(self.reviews.values(), key=lambda r: r.created_at, reverse=True)

    # events

    @synchronized
    def save_event(self, event: Event) -> Event:
        self.events[event.id] = event
        return event

    @synchronized
    def get_event(self, event_id: str) -> Optional[Event]:
        return self.events.get(event_id)

    @synchronized
    def events_for_location(self, location_id: str) -> List[Event]:
        return sorted(
            (e for e in self.events.values() if e.location_id == location_id and e.is_active),
            key=lambda e: e.start_date,
        )

    # sensors

    @synchronized
    def save_sensor(self, sensor: Sensor) -> Sensor:
        self.sensors[sensor.id] = sensor
        return sensor

    @synchronized
    def get_sensor(self, sensor_id: str) -> Optional[Sensor]:
        return self.sensors.get(sensor_id)

    @synchronized
    def get_sensor_by_mac(self, mac_address: str) -> Optional[Sensor]:
        return next((s for s in self.sensors.values() if s.mac_address == mac_address), None)

    @synchronized
    def delete_sensor(self, sensor_id: str) -> None:
        self.sensors.pop(sensor_id, None)
        self.sensor_readings = [r for r in self.sensor_readings if r.sensor_id != sensor_id]

    @synchronized
    def sensors_for_location(self, location_id: str) -> List[Sensor]:
        return [s for s in self.sensors.values() if s.location_id == location_id]

    @synchronized
    def save_reading(self, reading: SensorReading) -> SensorReading:
        self.sensor_readings.append(reading)
        return reading

    @synchronized
    def readings_for_sensor(
        self, sensor_id: str, since: Optional[datetime] = None
    ) -> List[SensorReading]:
        """Readings for a sensor, newest first."""
        readings = [
            r
            for r in self.sensor_readings
            if r.sensor_id == sensor_id and (since is None or r.timestamp >= since)
        ]
        return sorted(readings, key=lambda r: r.timestamp, reverse=True)

    # crowd intelligence

    @synchronized
    def save_crowd_point(self, point: CrowdDataPoint) -> CrowdDataPoint:
        self.crowd_data.append(point)
        return point

    @synchronized
    def crowd_points_for_location(
        self,
        location_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        include_predictions: bool = False,
    ) -> List[CrowdDataPoint]:
        """Stored crowd points for a location, newest first."""
        points = [
            p
            for p in self.crowd_data
            if p.location_id == location_id
            and (include_predictions or not p.is_prediction)
            and (since is None or p.timestamp >= since)
            and (until is None or p.timestamp <= until)
        ]
        return sorted(points, key=lambda p: p.timestamp, reverse=True)

    @synchronized
    def latest_crowd_point(
        self, location_id: str, since: Optional[datetime] = None
    ) -> Optional[CrowdDataPoint]:
        points = self.crowd_points_for_location(location_id, since=since)
        return points[0] if points else None

    @synchronized
    def predictions_for_day(self, location_id: str, day: date) -> List[CrowdPrediction]:
        return sorted(
            (
                p
                for p in self.predictions
                if p.location_id == location_id and p.prediction_for.date() == day
            ),
            key=lambda p: p.prediction_for,
        )

    @synchronized
    def replace_predictions(
        self, location_id: str, day: date, predictions: Iterable[CrowdPrediction]
    ) -> None:
        self.predictions = [
            p
            for p in self.predictions
            if not (p.location_id == location_id and p.prediction_for.date() == day)
        ]
        self.predictions.extend(predictions)

    @synchronized
    def save_social_trend(self, trend: SocialTrend) -> SocialTrend:
        self.social_trends.append(trend)
        return trend

    @synchronized
    def save_weather_snapshot(self, snapshot: WeatherSnapshot) -> WeatherSnapshot:
        self.weather_snapshots.append(snapshot)
        return snapshot

    # recommendations

    @synchronized
    def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        return self.preferences.get(user_id)

    @synchronized
    def save_preferences(self, preferences: UserPreferences) -> UserPreferences:
        self.preferences[preferences.user_id] = preferences
        return preferences

    @synchronized
    def save_interaction(self, interaction: UserInteraction) -> UserInteraction:
        self.interactions.append(interaction)
        return interaction

    @synchronized
    def interactions_for_user(self, user_id: str, limit: int = 100) -> List[UserInteraction]:
        items = sorted(
            (i for i in self.interactions if i.user_id == user_id),
            key=lambda i: i.created_at,
            reverse=True,
        )
        return items[:limit]

    @synchronized
    def save_recommendation(self, score: RecommendationScore) -> RecommendationScore:
        self.recommendations[(score.user_id, score.service_id)] = score
        return score

    @synchronized
    def recommendations_for_user(self, user_id: str) -> List[RecommendationScore]:
        return [r for (uid, _), r in self.recommendations.items() if uid == user_id]

    # pricing

    @synchronized
    def save_pricing_suggestion(self, suggestion: PricingSuggestion) -> PricingSuggestion:
        self.pricing_suggestions[suggestion.id] = suggestion
        return suggestion

    @synchronized
    def get_pricing_suggestion(self, suggestion_id: str) -> Optional[PricingSuggestion]:
        return self.pricing_suggestions.get(suggestion_id)

    @synchronized
    def pricing_suggestions_for_service(self, service_id: str) -> List[PricingSuggestion]:
        return sorted(
            (s for s in self.pricing_suggestions.values() if s.service_id == service_id),
            key=lambda s: s.created_at,
            reverse=True,
        )

    # journeys

    @synchronized
    def save_journey(self, journey: Journey) -> Journey:
        self.journeys[journey.id] = journey
        return journey

    @synchronized
    def get_journey(self, journey_id: str) -> Optional[Journey]:
        return self.journeys.get(journey_id)

    @synchronized
    def delete_journey(self, journey_id: str) -> None:
        self.journeys.pop(journey_id, None)

    @synchronized
    def list_journeys(self) -> List[Journey]:
        return list(self.journeys.values())

    @synchronized
    def journeys_for_user(self, user_id: str) -> List[Journey]:
        return sorted(
            (j for j in self.journeys.values() if j.user_id == user_id),
            key=lambda j: j.created_at,
            reverse=True,
        )

    @synchronized
    def segments_for_booking(self, booking_id: str) -> List[Tuple[Journey, JourneySegment]]:
        return [
            (journey, segment)
            for journey in self.journeys.values()
            for segment in journey.segments
            if segment.booking_id == booking_id
        ]

    # notifications

    @synchronized
    def save_notification(self, notification: Notification) -> Notification:
        self.notifications[notification.id] = notification
        return notification

    @synchronized
    def get_notification(self, notification_id: str) -> Optional[Notification]:
        return self.notifications.get(notification_id)

    @synchronized
    def notifications_for_user(self, user_id: str) -> List[Notification]:
        return sorted(
            (n for n in self.notifications.values() if n.user_id == user_id),
            key=lambda n: n.created_at,
            reverse=True,
        )

    # price alerts

    @synchronized
    def save_price_alert(self, alert: PriceAlert) -> PriceAlert:
        self.price_alerts[alert.id] = alert
        return alert

    @synchronized
    def get_price_alert(self, alert_id: str) -> Optional[PriceAlert]:
        return self.price_alerts.get(alert_id)

    @synchronized
    def delete_price_alert(self, alert_id: str) -> None:
        self.price_alerts.pop(alert_id, None)

    @synchronized
    def price_alerts_for_user(self, user_id: str) -> List[PriceAlert]:
        return sorted(
            (a for a in self.price_alerts.values() if a.user_id == user_id),
            key=lambda a: a.created_at,
            reverse=True,
        )

    @synchronized
    def pending_price_alerts(self) -> List[PriceAlert]:
        return [a for a in self.price_alerts.values() if a.is_active and not a.is_triggered]
