from datetime import timedelta

import pytest
from fastapi import HTTPException

from app.models.schemas import SensorReadingCreate
from app.services.crowd_service import CrowdIntelligenceService
from app.services.sensor_service import SensorService
from app.storage import seed
from conftest import NOW


def test_aggregate_stores_point_trends_and_weather(repository, settings):
    service = CrowdIntelligenceService(repository, settings)

    data = service.aggregate_crowd_data(seed.HVAR_TOWN, now=NOW)

    assert 0 <= data.crowd_index <= 100
    assert data.location_name == "Hvar Town"
    assert data.active_events == ["Hvar Summer Festival"]
    assert data.data_source_scores.event == 30
    assert data.data_source_scores.sensor is None
    assert len(repository.crowd_data) == 1
    assert {t.platform for t in repository.social_trends} == {"instagram", "tiktok"}
    assert repository.social_trends[0].day_of_week == "wednesday"
    assert len(repository.weather_snapshots) == 1


def test_current_data_is_served_from_cache_window(repository, settings):
    service = CrowdIntelligenceService(repository, settings)
    first = service.get_current_crowd_data(seed.SPLIT, now=NOW)

    cached = service.get_current_crowd_data(seed.SPLIT, now=NOW + timedelta(minutes=10))
    fresh = service.get_current_crowd_data(seed.SPLIT, now=NOW + timedelta(minutes=20))

    assert cached.timestamp == first.timestamp
    assert fresh.timestamp == NOW + timedelta(minutes=20)
    assert len(repository.crowd_points_for_location(seed.SPLIT)) == 2


def test_recent_sensor_readings_drive_the_index(repository, settings):
    SensorService(repository).submit_reading(
        seed.BEACH_SENSOR,
        SensorReadingCreate(count=250, timestamp=NOW - timedelta(minutes=1)),
    )
    service = CrowdIntelligenceService(repository, settings)

    data = service.aggregate_crowd_data(seed.ZLATNI_RAT, now=NOW)

    assert data.data_source_scores.sensor == 50


def test_stale_sensor_readings_are_ignored(repository, settings):
    SensorService(repository).submit_reading(
        seed.BEACH_SENSOR,
        SensorReadingCreate(count=250, timestamp=NOW - timedelta(minutes=30)),
    )
    data = CrowdIntelligenceService(repository, settings).aggregate_crowd_data(
        seed.ZLATNI_RAT, now=NOW
    )
    scores = data.data_source_scores
    assert scores.sensor == 0
    # silent sensors still switch the blend to the sensor weights
    expected = (
        scores.google_live * 0.30
        + scores.instagram * 0.10
        + scores.tiktok * 0.05
        + scores.weather * 0.03
        + scores.event * 0.02
    )
    assert data.crowd_index == pytest.approx(expected, abs=0.05)


def test_heatmap_only_lists_locations_with_recent_data(repository, settings):
    service = CrowdIntelligenceService(repository, settings)
    service.aggregate_crowd_data(seed.HVAR_TOWN, now=NOW)
    service.aggregate_crowd_data(seed.ZLATNI_RAT, now=NOW - timedelta(hours=1))

    heatmap = service.get_heatmap(now=NOW)

    assert heatmap.total_locations == 1
    assert heatmap.points[0].location_id == seed.HVAR_TOWN


def test_history_is_oldest_first(repository, settings):
    service = CrowdIntelligenceService(repository, settings)
    for minutes in (0, 30, 60):
        service.aggregate_crowd_data(seed.HVAR_TOWN, now=NOW + timedelta(minutes=minutes))

    history = service.get_history(seed.HVAR_TOWN, NOW, NOW + timedelta(minutes=45))

    assert [h.timestamp for h in history] == [NOW, NOW + timedelta(minutes=30)]
    with pytest.raises(HTTPException) as exc:
        service.get_history(seed.HVAR_TOWN, NOW, NOW - timedelta(hours=1))
    assert exc.value.status_code == 400


def test_unknown_location_is_404(repository, settings):
    with pytest.raises(HTTPException) as exc:
        CrowdIntelligenceService(repository, settings).get_current_crowd_data("nowhere", now=NOW)
    assert exc.value.status_code == 404


def test_update_all_refreshes_every_active_location(repository, settings):
    refreshed = CrowdIntelligenceService(repository, settings).update_all_crowd_data(now=NOW)
    assert refreshed == len(repository.locations)
