import logging
import random
from datetime import date, datetime, time, timedelta
from typing import List, Optional

import numpy as np
from fastapi import HTTPException

from app.core.config import Settings, get_settings
from app.core.rounding import round_half_up
from app.integrations.weather import WeatherClient, WeatherData
from app.models.domain import CrowdPrediction, Location, new_id
from app.models.schemas import HourlyPrediction, PredictionResponse, WeatherSummary
from app.services.crowd_index import crowd_level_for
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

HISTORY_DAYS = 30
PREDICTION_CONFIDENCE = 0.75
NEUTRAL_SCORE = 50.0
EVENT_SCORE_PER_EVENT = 30


def trend_score(hour: int, weekend: bool) -> float:
    score = 30.0
    if 19 <= hour <= 23:
        score = 80.0
    elif 11 <= hour <= 14:
        score = 60.0
    if weekend:
        score *= 1.3
    return min(100.0, score)


def blend_prediction(historical: float, weather: float, event: float, trend: float) -> float:
    return historical * 0.5 + weather * 0.2 + event * 0.2 + trend * 0.1


class PredictionService:
    def __init__(
        self,
        repository: InMemoryRepository,
        settings: Optional[Settings] = None,
        weather: Optional[WeatherClient] = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.weather = weather or WeatherClient(
            api_key=self.settings.openweather_api_key,
            base_url=self.settings.openweather_base_url,
            timeout=self.settings.http_timeout,
            rng=random.Random(self.settings.random_seed),
        )

    def _get_location(self, location_id: str) -> Location:
        location = self.repository.get_location(location_id)
        if not location:
            raise HTTPException(status_code=404, detail=f"Location {location_id} not found")
        return location

    def get_predictions(
        self,
        location_id: str,
        target_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> PredictionResponse:
        now = now or datetime.now()
        target_date = target_date or now.date()
        location = self._get_location(location_id)

        stored = self.repository.predictions_for_day(location_id, target_date)
        stale_before = now - timedelta(minutes=self.settings.prediction_stale_minutes)
        if not stored or stored[0].generated_at < stale_before:
            stored = self.generate_predictions(location_id, target_date, now=now)

        best = next((p for p in stored if p.is_best_time), None)
        forecast = self.weather.fetch_forecast(
            location.latitude, location.longitude, location.type.value, at=now
        )
        events = [
            e for e in self.repository.events_for_location(location_id)
            if e.start_date.date() == target_date
        ]
        return PredictionResponse(
            location_id=location.id,
            location_name=location.name,
            date=target_date,
            hourly_predictions=[
                HourlyPrediction(
                    hour=p.prediction_for.hour,
                    predicted_index=p.predicted_index,
                    predicted_level=p.predicted_level,
                    confidence=p.confidence,
                    is_best_time=p.is_best_time,
                )
                for p in stored
            ],
            best_time_hour=best.prediction_for.hour if best else None,
            weather_forecast=(
                WeatherSummary(
                    temperature=forecast[0].temperature, condition=forecast[0].weather_condition
                )
                if forecast
                else None
            ),
            upcoming_events=[
                f"{e.name} at {e.start_date.hour}:{e.start_date.minute:02d}" for e in events
            ],
        )

    def generate_predictions(
        self, location_id: str, target_date: date, now: Optional[datetime] = None
    ) -> List[CrowdPrediction]:
        now = now or datetime.now()
        location = self._get_location(location_id)
        logger.info("Generating crowd predictions for %s on %s", location.name, target_date)

        forecast = self.weather.fetch_forecast(
            location.latitude, location.longitude, location.type.value, at=now
        )
        day_events = [
            e for e in self.repository.events_for_location(location_id)
            if e.start_date.date() == target_date
        ]
        event_impact = float(min(100, EVENT_SCORE_PER_EVENT * len(day_events)))
        history = self.repository.crowd_points_for_location(
            location_id, since=now - timedelta(days=HISTORY_DAYS)
        )
        weekend = target_date.weekday() >= 5

        predictions = []
        lowest = 100.0
        best_hour = 0
        for hour in range(24):
            slot = datetime.combine(target_date, time(hour=hour))
            historical = self._historical_mean(history, target_date.weekday(), hour)
            weather_impact = self._forecast_score(forecast, hour)
            trend_impact = trend_score(hour, weekend)
            raw = blend_prediction(historical, weather_impact, event_impact, trend_impact)
            if raw < lowest:
                lowest = raw
                best_hour = hour
            predicted = round_half_up(raw)
            predictions.append(
                CrowdPrediction(
                    id=new_id(),
                    location_id=location_id,
                    prediction_for=slot,
                    predicted_index=predicted,
                    predicted_level=crowd_level_for(predicted),
                    confidence=PREDICTION_CONFIDENCE,
                    historical_pattern=historical,
                    weather_impact=weather_impact,
                    event_impact=event_impact,
                    trend_impact=trend_impact,
                    generated_at=now,
                )
            )

        predictions[best_hour].is_best_time = True
        self.repository.replace_predictions(location_id, target_date, predictions)
        return predictions

    @staticmethod
    def _historical_mean(history, weekday: int, hour: int) -> float:
        values = [
            p.crowd_index
            for p in history
            if p.timestamp.weekday() == weekday and p.timestamp.hour == hour
        ]
        if not values:
            return NEUTRAL_SCORE
        return float(np.mean(values))

    @staticmethod
    def _forecast_score(forecast: List[WeatherData], hour: int) -> float:
        index = hour // 3
        if index < len(forecast):
            return float(forecast[index].score)
        return NEUTRAL_SCORE

    def generate_daily_predictions(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now()
        tomorrow = (now + timedelta(days=1)).date()
        generated = 0
        for location in self.repository.list_locations(active_only=True):
            try:
                self.generate_predictions(location.id, tomorrow, now=now)
                generated += 1
            except Exception:
                logger.exception("Prediction generation failed for %s", location.id)
        logger.info("Generated predictions for %d locations for %s", generated, tomorrow)
        return generated
