import logging
import math
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException

from app.core.config import Settings, get_settings
from app.models.domain import (
    InteractionType,
    RecommendationScore,
    Service,
    ServiceType,
    UserInteraction,
    UserPreferences,
    new_id,
)
from app.models.schemas import InteractionCreate, PreferencesSchema, RecommendationSchema
from app.services.geo import haversine_km
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

WEIGHTS: Dict[str, float] = {
    "preference": 0.35,
    "behavior": 0.30,
    "popularity": 0.20,
    "seasonal": 0.10,
    "proximity": 0.05,
}

SERVICE_TYPE_STYLES: Dict[ServiceType, List[str]] = {
    ServiceType.ACCOMMODATION: ["LUXURY", "BUDGET", "FAMILY", "ROMANTIC"],
    ServiceType.ACTIVITY: ["ADVENTURE", "RELAXATION", "FAMILY"],
    ServiceType.TOUR: ["CULTURAL", "ADVENTURE", "GROUP"],
    ServiceType.TRANSPORT: ["LUXURY", "BUDGET"],
}

INTEREST_KEYWORDS: Dict[str, List[str]] = {
    "BEACHES": ["beach", "sea", "coast", "swimming"],
    "NIGHTLIFE": ["bar", "club", "party", "nightlife"],
    "HISTORY": ["history", "museum", "ancient", "heritage"],
    "NATURE": ["nature", "hiking", "mountains", "forest"],
    "FOOD": ["food", "restaurant", "cuisine", "wine"],
    "ADVENTURE_SPORTS": ["adventure", "extreme", "sport", "diving"],
    "WELLNESS": ["spa", "wellness", "massage", "yoga"],
    "CULTURE": ["culture", "art", "festival", "local"],
}

PROXIMITY_RANGE_KM = 200.0


def season_for_month(month: int) -> str:
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "fall"
    return "winter"


def match_travel_style(service: Service, styles: List[str]) -> float:
    relevant = SERVICE_TYPE_STYLES.get(service.type, [])
    return 1.0 if any(style in relevant for style in styles) else 0.3


def match_interests(service: Service, interests: List[str]) -> float:
    tags = [t.lower() for t in service.tags]
    matches = 0
    for interest in interests:
        keywords = INTEREST_KEYWORDS.get(interest, [])
        if any(kw in tag for tag in tags for kw in keywords):
            matches += 1
    return min(matches / len(interests), 1.0) if matches else 0.3


def preference_score(service: Service, preferences: Optional[UserPreferences]) -> float:
    if not preferences:
        return 0.5
    score, factors = 0.0, 0
    if preferences.travel_styles:
        score += match_travel_style(service, preferences.travel_styles)
        factors += 1
    if preferences.interests:
        score += match_interests(service, preferences.interests)
        factors += 1
    if preferences.min_budget or preferences.max_budget:
        low = preferences.min_budget or 0.0
        high = preferences.max_budget if preferences.max_budget is not None else math.inf
        score += 1.0 if low <= service.price <= high else 0.3
        factors += 1
    return score / factors if factors else 0.5


def behavior_score(
    service: Service, interactions: List[UserInteraction], service_types: Dict[str, ServiceType]
) -> float:
    own = {i.interaction_type for i in interactions if i.service_id == service.id}
    if own:
        if InteractionType.book in own:
            return 0.3
        if InteractionType.like in own or InteractionType.save in own:
            return 0.9
        return 0.6
    if any(service_types.get(i.service_id) == service.type for i in interactions):
        return 0.7
    return 0.5


def popularity_score(review_count: int, booking_count: int) -> float:
    review_part = min(math.log10(review_count + 1) / 3, 1.0)
    booking_part = min(math.log10(booking_count + 1) / 3, 1.0)
    return (review_part + booking_part) / 2


def seasonal_score(service: Service, month: int) -> float:
    season = season_for_month(month)
    tags = {t.lower() for t in service.tags}
    if service.type == ServiceType.ACTIVITY and season == "summer":
        if tags & {"beach", "water", "swimming"}:
            return 1.0
    if service.type == ServiceType.TOUR and season in ("spring", "fall"):
        if tags & {"culture", "history", "museum"}:
            return 1.0
    return 0.5


def reasoning_for(preference: float, behavior: float, popularity: float) -> str:
    reasons = []
    if preference > 0.7:
        reasons.append("Matches your preferences")
    if behavior > 0.7:
        reasons.append("Based on your activity")
    if popularity > 0.7:
        reasons.append("Popular with other travelers")
    return ", ".join(reasons) if reasons else "Recommended for you"


class RecommendationService:
    def __init__(self, repository: InMemoryRepository, settings: Optional[Settings] = None):
        self.repository = repository
        self.settings = settings or get_settings()

    def get_recommendations(
        self,
        user_id: str,
        limit: int = 10,
        service_type: Optional[ServiceType] = None,
        now: Optional[datetime] = None,
    ) -> List[RecommendationSchema]:
        now = now or datetime.now()
        logger.info("Getting recommendations for user %s", user_id)
        cached = self._fresh_scores(user_id, now, service_type)
        if len(cached) < limit:
            self.compute_recommendations(user_id, now=now)
            cached = self._fresh_scores(user_id, now, service_type)
        return [self._to_schema(score) for score in cached[:limit]]

    def _fresh_scores(
        self, user_id: str, now: datetime, service_type: Optional[ServiceType]
    ) -> List[RecommendationScore]:
        scores = []
        for score in self.repository.recommendations_for_user(user_id):
            if score.expires_at <= now:
                continue
            service = self.repository.get_service(score.service_id)
            if not service or (service_type and service.type != service_type):
                continue
            scores.append(score)
        return sorted(scores, key=lambda s: s.total_score, reverse=True)

    def compute_recommendations(self, user_id: str, now: Optional[datetime] = None) -> int:
        now = now or datetime.now()
        preferences = self.repository.get_preferences(user_id)
        interactions = self.repository.interactions_for_user(user_id)
        service_types = {s.id: s.type for s in self.repository.list_services()}
        expires_at = now + timedelta(hours=self.settings.recommendation_ttl_hours)
        reviews = self.repository.list_reviews()

        computed = 0
        for service in self.repository.list_services():
            if not service.is_bookable:
                continue
            pref = preference_score(service, preferences)
            behavior = behavior_score(service, interactions, service_types)
            popularity = popularity_score(
                sum(1 for r in reviews if r.service_id == service.id),
                sum(
                    1
                    for b in self.repository.bookings_for_service(service.id)
                    for i in b.items
                    if i.service_id == service.id
                ),
            )
            seasonal = seasonal_score(service, now.month)
            proximity = self.proximity_score(service, preferences)
            total = (
                pref * WEIGHTS["preference"]
                + behavior * WEIGHTS["behavior"]
                + popularity * WEIGHTS["popularity"]
                + seasonal * WEIGHTS["seasonal"]
                + proximity * WEIGHTS["proximity"]
            )
            self.repository.save_recommendation(
                RecommendationScore(
                    user_id=user_id,
                    service_id=service.id,
                    preference_score=pref,
                    behavior_score=behavior,
                    popularity_score=popularity,
                    seasonal_score=seasonal,
                    proximity_score=proximity,
                    total_score=total,
                    reasoning=reasoning_for(pref, behavior, popularity),
                    computed_at=now,
                    expires_at=expires_at,
                )
            )
            computed += 1
        logger.debug("Computed %d recommendation scores for %s", computed, user_id)
        return computed

    def proximity_score(self, service: Service, preferences: Optional[UserPreferences]) -> float:
        home_id = preferences.home_location_id if preferences else None
        home = self.repository.get_location(home_id) if home_id else None
        target = self.repository.get_location(service.location_id) if service.location_id else None
        if not home or not target:
            return 0.5
        distance = haversine_km(home.latitude, home.longitude, target.latitude, target.longitude)
        return max(0.0, 1.0 - distance / PROXIMITY_RANGE_KM)

    def track_interaction(
        self, user_id: str, payload: InteractionCreate, now: Optional[datetime] = None
    ) -> None:
        now = now or datetime.now()
        if not self.repository.get_service(payload.service_id):
            raise HTTPException(status_code=404, detail=f"Service {payload.service_id} not found")
        self.repository.save_interaction(
            UserInteraction(
                id=new_id(),
                user_id=user_id,
                service_id=payload.service_id,
                interaction_type=payload.interaction_type,
                created_at=now,
                search_query=payload.search_query,
                duration=payload.duration,
            )
        )
        logger.info(
            "Tracked %s for service %s by user %s",
            payload.interaction_type.value,
            payload.service_id,
            user_id,
        )
        self.invalidate_cache(user_id, now)

    def invalidate_cache(self, user_id: str, now: Optional[datetime] = None) -> None:
        now = now or datetime.now()
        for score in self.repository.recommendations_for_user(user_id):
            score.expires_at = now

    def get_preferences(self, user_id: str) -> PreferencesSchema:
        preferences = self.repository.get_preferences(user_id)
        if not preferences:
            return PreferencesSchema()
        return PreferencesSchema.from_domain(preferences)

    def update_preferences(self, user_id: str, payload: PreferencesSchema) -> PreferencesSchema:
        if payload.home_location_id and not self.repository.get_location(payload.home_location_id):
            raise HTTPException(
                status_code=404, detail=f"Location {payload.home_location_id} not found"
            )
        if (
            payload.min_budget is not None
            and payload.max_budget is not None
            and payload.min_budget > payload.max_budget
        ):
            raise HTTPException(status_code=400, detail="min_budget must not exceed max_budget")
        preferences = self.repository.save_preferences(
            UserPreferences(user_id=user_id, **payload.model_dump())
        )
        self.invalidate_cache(user_id)
        return PreferencesSchema.from_domain(preferences)

    def _to_schema(self, score: RecommendationScore) -> RecommendationSchema:
        service = self.repository.get_service(score.service_id)
        return RecommendationSchema(
            service_id=service.id,
            service_name=service.name,
            service_type=service.type,
            score=round(score.total_score, 4),
            reasoning=score.reasoning or "Recommended for you",
            price=service.price,
            currency=service.currency,
        )
