import logging
import random
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import HTTPException

from app.core.config import Settings, get_settings
from app.integrations.popular_times import PopularTimesClient
from app.integrations.social import InstagramClient, TikTokClient, TrendData, suggested_hashtags
from app.integrations.weather import WeatherClient
from app.models.domain import (
    CrowdDataPoint,
    Location,
    LocationType,
    SocialTrend,
    WeatherSnapshot,
    new_id,
)
from app.models.schemas import (
    CrowdDataResponse,
    DataSourceScores,
    HeatmapPoint,
    HeatmapResponse,
)
from app.services.crowd_index import CrowdIndexCalculator, CrowdIndexInput, color_for_level
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

EVENT_SCORE_PER_EVENT = 30
DEFAULT_SENSOR_CAPACITY = 100


def _make_rng(settings: Settings) -> random.Random:
    return random.Random(settings.random_seed)


class CrowdIntelligenceService:
    """
    Collects live signals for a location, turns them into a crowd index and
    keeps the history that predictions and pricing read from.
    """

    def __init__(
        self,
        repository: InMemoryRepository,
        settings: Optional[Settings] = None,
        popular_times: Optional[PopularTimesClient] = None,
        instagram: Optional[InstagramClient] = None,
        tiktok: Optional[TikTokClient] = None,
        weather: Optional[WeatherClient] = None,
        calculator: Optional[CrowdIndexCalculator] = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        rng = _make_rng(self.settings)
        self.popular_times = popular_times or PopularTimesClient(rng=rng)
        self.instagram = instagram or InstagramClient(self.settings.instagram_access_token, rng=rng)
        self.tiktok = tiktok or TikTokClient(self.settings.tiktok_access_token, rng=rng)
        self.weather = weather or WeatherClient(
            api_key=self.settings.openweather_api_key,
            base_url=self.settings.openweather_base_url,
            timeout=self.settings.http_timeout,
            rng=rng,
        )
        self.calculator = calculator or CrowdIndexCalculator()

    def _get_location(self, location_id: str) -> Location:
        location = self.repository.get_location(location_id)
        if not location:
            raise HTTPException(status_code=404, detail=f"Location {location_id} not found")
        return location

    def _cache_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(minutes=self.settings.crowd_cache_minutes)

    def get_current_crowd_data(
        self, location_id: str, now: Optional[datetime] = None
    ) -> CrowdDataResponse:
        now = now or datetime.now()
        location = self._get_location(location_id)
        cached = self.repository.latest_crowd_point(location_id, since=self._cache_cutoff(now))
        if cached:
            logger.debug("Serving cached crowd data for %s", location.name)
            return self._to_response(location, cached)
        return self.aggregate_crowd_data(location_id, now=now)

    def aggregate_crowd_data(
        self, location_id: str, now: Optional[datetime] = None
    ) -> CrowdDataResponse:
        now = now or datetime.now()
        location = self._get_location(location_id)
        logger.info("Aggregating crowd data for %s", location.name)

        popular = self.popular_times.fetch(location.id, location.latitude, location.longitude, at=now)
        hashtags = suggested_hashtags(location.name, location.type.value)
        instagram = self.instagram.fetch_trends(
            location.name, location.latitude, location.longitude, hashtags, at=now
        )
        tiktok = self.tiktok.fetch_trends(
            location.name, location.latitude, location.longitude, hashtags, at=now
        )
        weather = self.weather.fetch_current(
            location.latitude, location.longitude, location.type.value, at=now
        )

        active_events = [
            e for e in self.repository.events_for_location(location.id)
            if e.start_date <= now <= e.end_date
        ]
        event_score = min(100, EVENT_SCORE_PER_EVENT * len(active_events))

        has_sensors, sensor_score = self._sensor_score(location.id, now)

        result = self.calculator.calculate(
            CrowdIndexInput(
                google_live=popular.live_score,
                google_historic=popular.historic_score,
                instagram=instagram.score,
                tiktok=tiktok.score,
                weather=weather.score,
                event=event_score,
                sensor=sensor_score,
                has_sensors=has_sensors,
            )
        )

        point = self.repository.save_crowd_point(
            CrowdDataPoint(
                id=new_id(),
                location_id=location.id,
                crowd_index=result.crowd_index,
                crowd_level=result.crowd_level,
                timestamp=now,
                google_live_score=popular.live_score,
                google_historic_score=popular.historic_score,
                instagram_score=instagram.score,
                tiktok_score=tiktok.score,
                weather_score=weather.score,
                event_score=event_score,
                sensor_score=sensor_score,
                temperature=weather.temperature,
                weather_condition=weather.weather_condition,
                active_events=[e.name for e in active_events],
            )
        )
        self._store_trend(location.id, self.instagram.platform, instagram, now)
        self._store_trend(location.id, self.tiktok.platform, tiktok, now)
        self.repository.save_weather_snapshot(
            WeatherSnapshot(
                id=new_id(),
                location_id=location.id,
                temperature=weather.temperature,
                feels_like=weather.feels_like,
                humidity=weather.humidity,
                uv_index=weather.uv_index,
                wind_speed=weather.wind_speed,
                cloud_cover=weather.cloud_cover,
                precipitation=weather.precipitation,
                weather_condition=weather.weather_condition,
                timestamp=now,
                wave_height=weather.wave_height,
                sea_temperature=weather.sea_temperature,
            )
        )
        return self._to_response(location, point)

    def _sensor_score(self, location_id: str, now: datetime):
        sensors = [s for s in self.repository.sensors_for_location(location_id) if s.is_active]
        if not sensors:
            return False, None
        since = now - timedelta(minutes=self.settings.sensor_window_minutes)
        occupancy = []
        for sensor in sensors:
            readings = self.repository.readings_for_sensor(sensor.id, since=since)
            if not readings:
                continue
            capacity = sensor.capacity or DEFAULT_SENSOR_CAPACITY
            occupancy.append(readings[0].count / capacity * 100)
        if not occupancy:
            return True, 0.0
        return True, min(100.0, sum(occupancy) / len(occupancy))

    def _store_trend(self, location_id: str, platform: str, trend: TrendData, now: datetime) -> None:
        self.repository.save_social_trend(
            SocialTrend(
                id=new_id(),
                location_id=location_id,
                platform=platform,
                post_count=trend.post_count,
                hashtag_velocity=trend.hashtag_velocity,
                engagement=trend.engagement,
                hashtags=trend.hashtags,
                hour_of_day=now.hour,
                day_of_week=now.strftime("%A").lower(),
                story_count=trend.story_count,
                timestamp=now,
            )
        )

    def get_heatmap(
        self,
        location_ids: Optional[List[str]] = None,
        location_type: Optional[LocationType] = None,
        now: Optional[datetime] = None,
    ) -> HeatmapResponse:
        now = now or datetime.now()
        cutoff = self._cache_cutoff(now)
        points = []
        for location in self.repository.list_locations(active_only=True):
            if location_ids and location.id not in location_ids:
                continue
            if location_type and location.type != location_type:
                continue
            latest = self.repository.latest_crowd_point(location.id, since=cutoff)
            if not latest:
                continue
            points.append(
                HeatmapPoint(
                    location_id=location.id,
                    name=location.name,
                    type=location.type,
                    latitude=location.latitude,
                    longitude=location.longitude,
                    crowd_index=latest.crowd_index,
                    crowd_level=latest.crowd_level,
                    color=color_for_level(latest.crowd_level),
                )
            )
        return HeatmapResponse(points=points, timestamp=now, total_locations=len(points))

    def get_history(
        self, location_id: str, start: datetime, end: datetime
    ) -> List[CrowdDataResponse]:
        location = self._get_location(location_id)
        if end < start:
            raise HTTPException(status_code=400, detail="end must not be before start")
        points = self.repository.crowd_points_for_location(location_id, since=start, until=end)
        return [self._to_response(location, p) for p in reversed(points)]

    def update_all_crowd_data(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now()
        refreshed = 0
        for location in self.repository.list_locations(active_only=True):
            try:
                self.aggregate_crowd_data(location.id, now=now)
                refreshed += 1
            except Exception:
                logger.exception("Crowd refresh failed for %s", location.id)
        logger.info("Refreshed crowd data for %d locations", refreshed)
        return refreshed

    @staticmethod
    def _to_response(location: Location, point: CrowdDataPoint) -> CrowdDataResponse:
        return CrowdDataResponse(
            location_id=location.id,
            location_name=location.name,
            crowd_index=round(point.crowd_index, 1),
            crowd_level=point.crowd_level,
            color=color_for_level(point.crowd_level),
            timestamp=point.timestamp,
            data_source_scores=DataSourceScores(
                google_live=point.google_live_score,
                google_historic=point.google_historic_score,
                instagram=point.instagram_score,
                tiktok=point.tiktok_score,
                weather=point.weather_score,
                event=point.event_score,
                sensor=point.sensor_score,
            ),
            temperature=point.temperature,
            weather_condition=point.weather_condition,
            active_events=list(point.active_events),
            is_prediction=point.is_prediction,
            confidence=point.confidence,
        )
