from datetime import date, timedelta

import pytest

from app.models.domain import CrowdDataPoint, CrowdLevel, new_id
from app.services.prediction_service import PredictionService, blend_prediction, trend_score
from app.storage import seed
from conftest import NOW

THURSDAY = date(2026, 7, 16)


def test_trend_and_blend():
    assert trend_score(20, True) == 100
    assert trend_score(12, False) == 60
    assert trend_score(4, False) == 30
    assert blend_prediction(50, 50, 0, 30) == pytest.approx(38)


def test_generates_a_day_of_hourly_predictions(repository, settings):
    service = PredictionService(repository, settings)

    predictions = service.generate_predictions(seed.HVAR_TOWN, THURSDAY, now=NOW)

    assert [p.prediction_for.hour for p in predictions] == list(range(24))
    best = [p for p in predictions if p.is_best_time]
    assert len(best) == 1
    assert best[0].predicted_index == min(p.predicted_index for p in predictions)
    assert all(p.confidence == 0.75 for p in predictions)
    assert len(repository.predictions_for_day(seed.HVAR_TOWN, THURSDAY)) == 24


def test_history_for_same_weekday_and_hour_is_averaged(repository, settings):
    last_thursday = NOW.replace(day=9, hour=9)
    for index in (80, 100):
        repository.save_crowd_point(
            CrowdDataPoint(
                id=new_id(),
                location_id=seed.HVAR_TOWN,
                crowd_index=index,
                crowd_level=CrowdLevel.VERY_BUSY,
                timestamp=last_thursday,
            )
        )

    predictions = PredictionService(repository, settings).generate_predictions(
        seed.HVAR_TOWN, THURSDAY, now=NOW
    )

    assert predictions[9].historical_pattern == 90
    assert predictions[10].historical_pattern == 50


def test_predictions_are_reused_until_stale(repository, settings):
    service = PredictionService(repository, settings)
    first = service.get_predictions(seed.HVAR_TOWN, THURSDAY, now=NOW)
    generated_at = repository.predictions_for_day(seed.HVAR_TOWN, THURSDAY)[0].generated_at

    again = service.get_predictions(seed.HVAR_TOWN, THURSDAY, now=NOW + timedelta(minutes=30))
    assert repository.predictions_for_day(seed.HVAR_TOWN, THURSDAY)[0].generated_at == generated_at
    assert again.best_time_hour == first.best_time_hour

    service.get_predictions(seed.HVAR_TOWN, THURSDAY, now=NOW + timedelta(hours=2))
    regenerated = repository.predictions_for_day(seed.HVAR_TOWN, THURSDAY)
    assert len(regenerated) == 24
    assert regenerated[0].generated_at == NOW + timedelta(hours=2)


def test_response_lists_events_of_the_day(repository, settings):
    response = PredictionService(repository, settings).get_predictions(
        seed.HVAR_TOWN, NOW.date(), now=NOW
    )
    assert response.upcoming_events == ["Hvar Summer Festival at 10:00"]
    assert response.weather_forecast is not None
    assert len(response.hourly_predictions) == 24


def test_daily_job_covers_tomorrow_for_all_locations(repository, settings):
    generated = PredictionService(repository, settings).generate_daily_predictions(now=NOW)
    assert generated == len(repository.locations)
    assert len(repository.predictions_for_day(seed.SPLIT, THURSDAY)) == 24


def test_best_time_uses_unrounded_blend(repository, settings, monkeypatch):
    raw = {5: 40.4, 14: 39.6}
    monkeypatch.setattr(
        PredictionService,
        "_historical_mean",
        staticmethod(lambda history, weekday, hour: raw.get(hour, 60.0)),
    )
    monkeypatch.setattr(
        "app.services.prediction_service.blend_prediction",
        lambda historical, weather, event, trend: historical,
    )

    predictions = PredictionService(repository, settings).generate_predictions(
        seed.HVAR_TOWN, THURSDAY, now=NOW
    )

    assert predictions[5].predicted_index == predictions[14].predicted_index == 40
    assert [p.prediction_for.hour for p in predictions if p.is_best_time] == [14]


def test_predicted_index_rounds_halves_up(repository, settings, monkeypatch):
    monkeypatch.setattr(
        PredictionService, "_historical_mean", staticmethod(lambda history, weekday, hour: 42.5)
    )
    monkeypatch.setattr(
        "app.services.prediction_service.blend_prediction",
        lambda historical, weather, event, trend: historical,
    )

    predictions = PredictionService(repository, settings).generate_predictions(
        seed.HVAR_TOWN, THURSDAY, now=NOW
    )

    assert {p.predicted_index for p in predictions} == {43}
    assert predictions[0].is_best_time
