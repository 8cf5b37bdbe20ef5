import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import requests

from app.core.rounding import round_half_up

logger = logging.getLogger(__name__)

FORECAST_SLOTS = 8  # 24 hours in 3-hour steps


@dataclass
class WeatherData:
    score: int  # 0-100, higher means weather that draws crowds
    temperature: float
    feels_like: float
    humidity: float
    wind_speed: float  # km/h
    cloud_cover: float
    precipitation: float  # mm
    weather_condition: str
    uv_index: Optional[float] = None  # the free tier payloads carry no UV or marine data
    wave_height: Optional[float] = None
    sea_temperature: Optional[float] = None


def weather_score(
    temperature: float,
    condition: str,
    cloud_cover: float,
    wind_speed: float,
    precipitation: float,
    location_type: str,
) -> int:
    score = 50.0

    if location_type == "BEACH":
        if 25 <= temperature <= 30:
            score += 30
        elif 20 <= temperature < 25:
            score += 15
        elif temperature < 20 or temperature > 35:
            score -= 20
    else:
        if 18 <= temperature <= 25:
            score += 25
        elif 15 <= temperature < 18:
            score += 10
        elif temperature < 10 or temperature > 30:
            score -= 15

    if condition == "clear":
        score += 20
    elif condition == "clouds":
        score += (100 - cloud_cover) / 10
    elif condition == "rain":
        score -= 30
    elif condition == "thunderstorm":
        score -= 40
    elif condition == "snow":
        score -= 35

    if wind_speed > 30:
        score -= 15
    elif wind_speed > 20:
        score -= 10

    if precipitation > 5:
        score -= 25
    elif precipitation > 0:
        score -= 10

    return round_half_up(max(0.0, min(100.0, score)))


class WeatherClient:
    """
    OpenWeatherMap client. Without an API key, or when the API misbehaves,
    it returns seasonal mock data so crowd scoring keeps working.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openweathermap.org/data/2.5",
        timeout: int = 8,
        rng: Optional[random.Random] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.rng = rng or random.Random()

    def fetch_current(
        self,
        latitude: float,
        longitude: float,
        location_type: str,
        at: Optional[datetime] = None,
    ) -> WeatherData:
        if not self.api_key:
            logger.debug("OpenWeather API key not configured, using mock data")
            return self.mock_weather(location_type, at)
        try:
            resp = requests.get(
                f"{self.base_url}/weather",
                params={"lat": latitude, "lon": longitude, "appid": self.api_key, "units": "metric"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return self._from_payload(resp.json(), location_type, rain_key="1h")
        except (requests.RequestException, ValueError, KeyError, IndexError) as exc:
            logger.warning("OpenWeather current weather failed: %s", exc)
            return self.mock_weather(location_type, at)

    def fetch_forecast(
        self,
        latitude: float,
        longitude: float,
        location_type: str,
        at: Optional[datetime] = None,
    ) -> List[WeatherData]:
        if not self.api_key:
            return [self.mock_weather(location_type, at) for _ in range(FORECAST_SLOTS)]
        try:
            resp = requests.get(
                f"{self.base_url}/forecast",
                params={
                    "lat": latitude,
                    "lon": longitude,
                    "appid": self.api_key,
                    "units": "metric",
                    "cnt": FORECAST_SLOTS,
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return [
                self._from_payload(item, location_type, rain_key="3h")
                for item in resp.json().get("list", [])
            ]
        except (requests.RequestException, ValueError, KeyError, IndexError) as exc:
            logger.warning("OpenWeather forecast failed: %s", exc)
            return [self.mock_weather(location_type, at) for _ in range(FORECAST_SLOTS)]

    @staticmethod
    def _from_payload(payload: dict, location_type: str, rain_key: str) -> WeatherData:
        main = payload["main"]
        condition = payload["weather"][0]["main"].lower()
        cloud_cover = float(payload.get("clouds", {}).get("all", 0))
        wind_kmh = float(payload.get("wind", {}).get("speed", 0)) * 3.6
        precipitation = float((payload.get("rain") or {}).get(rain_key, 0))
        return WeatherData(
            score=weather_score(
                main["temp"], condition, cloud_cover, wind_kmh, precipitation, location_type
            ),
            temperature=main["temp"],
            feels_like=main.get("feels_like", main["temp"]),
            humidity=main.get("humidity", 0),
            wind_speed=wind_kmh,
            cloud_cover=cloud_cover,
            precipitation=precipitation,
            weather_condition=condition,
        )

    def mock_weather(self, location_type: str, at: Optional[datetime] = None) -> WeatherData:
        at = at or datetime.now()
        summer = 6 <= at.month <= 9
        base_temp = (25 if summer else 18) + self.rng.random() * 5
        clear = 8 <= at.hour <= 20 and self.rng.random() > 0.3

        data = WeatherData(
            score=85 if clear and summer else 60,
            temperature=round(base_temp, 1),
            feels_like=round(base_temp + 2, 1),
            humidity=60 + self.rng.random() * 20,
            uv_index=7 + self.rng.random() * 3 if 11 <= at.hour <= 15 else 3,
            wind_speed=10 + self.rng.random() * 15,
            cloud_cover=10 + self.rng.random() * 20 if clear else 60 + self.rng.random() * 30,
            precipitation=0.0 if clear else self.rng.random() * 2,
            weather_condition="clear" if clear else "clouds",
        )
        if location_type == "BEACH":
            data.sea_temperature = (22 if summer else 16) + self.rng.random() * 4
            data.wave_height = 0.3 + self.rng.random()
        return data
