from datetime import datetime

import pytest
from fastapi import HTTPException

from app.models.domain import InteractionType, ServiceType, UserInteraction, new_id
from app.models.schemas import InteractionCreate, PreferencesSchema
from app.services.recommendation_service import (
    RecommendationService,
    behavior_score,
    popularity_score,
    preference_score,
    reasoning_for,
    season_for_month,
    seasonal_score,
)
from app.storage import seed
from conftest import NOW


def _interaction(service_id, kind):
    return UserInteraction(
        id=new_id(),
        user_id=seed.TOURIST_ID,
        service_id=service_id,
        interaction_type=kind,
        created_at=NOW,
    )


def test_preference_score_blends_style_interests_and_budget(repository):
    preferences = repository.get_preferences(seed.TOURIST_ID)

    kayak = preference_score(repository.get_service(seed.KAYAK), preferences)
    villa = preference_score(repository.get_service(seed.HVAR_VILLA), preferences)

    assert kayak == pytest.approx((1.0 + 0.5 + 1.0) / 3)
    assert villa == pytest.approx(0.3)
    assert preference_score(repository.get_service(seed.KAYAK), None) == 0.5


def test_behavior_score(repository):
    kayak = repository.get_service(seed.KAYAK)
    types = {s.id: s.type for s in repository.list_services()}

    assert behavior_score(kayak, [], types) == 0.5
    assert behavior_score(kayak, [_interaction(seed.KAYAK, InteractionType.book)], types) == 0.3
    assert behavior_score(kayak, [_interaction(seed.KAYAK, InteractionType.save)], types) == 0.9
    assert behavior_score(kayak, [_interaction(seed.KAYAK, InteractionType.view)], types) == 0.6
    assert behavior_score(kayak, [_interaction("other", InteractionType.view)], types) == 0.5


def test_popularity_and_season():
    assert popularity_score(0, 0) == 0
    assert popularity_score(999, 999) == pytest.approx(1.0)
    assert season_for_month(1) == "winter"
    assert season_for_month(10) == "fall"
    assert reasoning_for(0.1, 0.1, 0.1) == "Recommended for you"
    assert reasoning_for(0.8, 0.8, 0.1) == "Matches your preferences, Based on your activity"


def test_seasonal_score(repository):
    kayak = repository.get_service(seed.KAYAK)
    fortress = repository.get_service(seed.FORTRESS_TOUR)

    assert seasonal_score(kayak, 7) == 1.0
    assert seasonal_score(kayak, 1) == 0.5
    assert seasonal_score(fortress, 4) == 1.0
    assert seasonal_score(fortress, 7) == 0.5


def test_recommendations_are_ranked_and_cached(repository, settings):
    service = RecommendationService(repository, settings)

    recommendations = service.get_recommendations(seed.TOURIST_ID, limit=3, now=NOW)

    assert len(recommendations) == 3
    assert recommendations[0].service_id == seed.KAYAK
    scores = [r.score for r in recommendations]
    assert scores == sorted(scores, reverse=True)
    cached = repository.recommendations_for_user(seed.TOURIST_ID)
    assert all(r.expires_at == datetime(2026, 7, 16, 12, 0) for r in cached)


def test_interaction_invalidates_and_reranks(repository, settings):
    service = RecommendationService(repository, settings)
    service.get_recommendations(seed.TOURIST_ID, now=NOW)

    service.track_interaction(
        seed.TOURIST_ID,
        InteractionCreate(service_id=seed.PAKLENI_TOUR, interaction_type=InteractionType.like),
        now=NOW,
    )
    recommendations = service.get_recommendations(seed.TOURIST_ID, limit=1, now=NOW)

    assert recommendations[0].service_id == seed.PAKLENI_TOUR
    assert "Based on your activity" in recommendations[0].reasoning

    with pytest.raises(HTTPException) as exc:
        service.track_interaction(
            seed.TOURIST_ID,
            InteractionCreate(service_id="missing", interaction_type=InteractionType.view),
        )
    assert exc.value.status_code == 404


def test_filter_by_service_type(repository, settings):
    recommendations = RecommendationService(repository, settings).get_recommendations(
        seed.TOURIST_ID, service_type=ServiceType.ACCOMMODATION, now=NOW
    )
    assert {r.service_type for r in recommendations} == {ServiceType.ACCOMMODATION}
    assert len(recommendations) == 3


def test_proximity_decays_with_distance(repository, settings):
    service = RecommendationService(repository, settings)
    preferences = repository.get_preferences(seed.TOURIST_ID)

    near = service.proximity_score(repository.get_service(seed.AIRPORT_TAXI), preferences)
    far = service.proximity_score(repository.get_service(seed.KAYAK), preferences)

    assert 0.9 < near <= 1.0
    assert far < near
    assert service.proximity_score(repository.get_service(seed.KAYAK), None) == 0.5


def test_update_preferences_validation(repository, settings):
    service = RecommendationService(repository, settings)

    with pytest.raises(HTTPException) as exc:
        service.update_preferences(
            seed.TOURIST_ID, PreferencesSchema(min_budget=200, max_budget=100)
        )
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        service.update_preferences(seed.TOURIST_ID, PreferencesSchema(home_location_id="nowhere"))
    assert exc.value.status_code == 404

    updated = service.update_preferences(
        seed.TOURIST_ID, PreferencesSchema(interests=["NIGHTLIFE"], home_location_id=seed.HVAR)
    )
    assert updated.interests == ["NIGHTLIFE"]
    assert service.get_preferences(seed.TOURIST_ID).home_location_id == seed.HVAR
    assert service.get_preferences("stranger") == PreferencesSchema()
