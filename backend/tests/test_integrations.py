import random
from datetime import datetime

import requests

from app.core.rounding import round_half_up
from app.integrations import weather as weather_module
from app.integrations.popular_times import PopularTimesClient
from app.integrations.social import InstagramClient, TikTokClient, suggested_hashtags
from app.integrations.weather import WeatherClient, weather_score

SATURDAY_EVENING = datetime(2026, 7, 18, 20, 0)
WEDNESDAY_NIGHT = datetime(2026, 7, 15, 3, 0)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def test_weather_score_favours_warm_clear_beach_days():
    assert weather_score(27, "clear", 10, 10, 0, "BEACH") == 100
    assert weather_score(20, "rain", 90, 25, 6, "CITY") == 10
    assert weather_score(-30, "snow", 100, 60, 20, "BEACH") == 0


def test_weather_score_rounds_halves_up():
    # 50 base, 25 for a mild city, 7.5 for light cloud
    assert weather_score(20, "clouds", 25, 0, 0, "CITY") == 83
    assert weather_score(20, "clouds", 75, 0, 0, "CITY") == 78


def test_weather_client_parses_openweather_payload(monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params))
        return FakeResponse(
            {
                "main": {"temp": 22, "feels_like": 21, "humidity": 55},
                "weather": [{"main": "Clear"}],
                "clouds": {"all": 5},
                "wind": {"speed": 2},
            }
        )

    monkeypatch.setattr(weather_module.requests, "get", fake_get)
    client = WeatherClient(api_key="key", base_url="https://weather.test/", rng=random.Random(1))

    data = client.fetch_current(43.5, 16.4, "CITY")

    assert calls[0][0] == "https://weather.test/weather"
    assert calls[0][1]["units"] == "metric"
    assert data.weather_condition == "clear"
    assert data.wind_speed == 7.2
    assert data.score == 95
    assert data.sea_temperature is None


def test_weather_client_leaves_missing_marine_and_uv_data_empty(monkeypatch):
    def fake_get(url, params=None, timeout=None):
        return FakeResponse(
            {
                "main": {"temp": 28, "humidity": 40},
                "weather": [{"main": "Clear"}],
                "rain": {"1h": 0.4},
            }
        )

    monkeypatch.setattr(weather_module.requests, "get", fake_get)
    client = WeatherClient(api_key="key", rng=random.Random(1))

    data = client.fetch_current(43.25, 16.63, "BEACH", at=SATURDAY_EVENING)

    assert (data.uv_index, data.sea_temperature, data.wave_height) == (None, None, None)
    assert data.feels_like == 28
    assert data.precipitation == 0.4
    # 50 base, 30 warm beach, 20 clear, -10 light rain
    assert data.score == 90


def test_weather_client_falls_back_to_mock_on_http_error(monkeypatch):
    def failing_get(url, params=None, timeout=None):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(weather_module.requests, "get", failing_get)
    client = WeatherClient(api_key="key", rng=random.Random(1))

    data = client.fetch_current(43.2, 16.6, "BEACH", at=SATURDAY_EVENING)

    assert data.weather_condition in ("clear", "clouds")
    assert data.sea_temperature is not None
    assert len(client.fetch_forecast(43.2, 16.6, "BEACH", at=SATURDAY_EVENING)) == 8


def test_weather_client_without_key_never_calls_http(monkeypatch):
    def unexpected_get(*args, **kwargs):
        raise AssertionError("HTTP should not be used without an API key")

    monkeypatch.setattr(weather_module.requests, "get", unexpected_get)
    data = WeatherClient(rng=random.Random(3)).fetch_current(43.5, 16.4, "CITY")
    assert 0 <= data.score <= 100


def test_popular_times_follows_daily_rhythm():
    client = PopularTimesClient(rng=random.Random(5))
    busy = client.fetch("loc", 43.1, 16.4, at=SATURDAY_EVENING)
    quiet = client.fetch("loc", 43.1, 16.4, at=WEDNESDAY_NIGHT)

    assert busy.live_score > quiet.live_score
    assert busy.historic_score == 90
    assert quiet.historic_score == 30
    assert len(busy.historical_data) == 24


def test_social_trends_are_busier_in_the_evening():
    hashtags = suggested_hashtags("Zlatni Rat", "BEACH")
    assert hashtags[:3] == ["zlatnirat", "zlatniratbeach", "zlatniratcroatia"]

    instagram = InstagramClient(rng=random.Random(2))
    tiktok = TikTokClient(rng=random.Random(2))
    evening = instagram.fetch_trends("Zlatni Rat", 43.2, 16.6, hashtags, at=SATURDAY_EVENING)
    night = instagram.fetch_trends("Zlatni Rat", 43.2, 16.6, hashtags, at=WEDNESDAY_NIGHT)

    assert evening.post_count > night.post_count
    assert evening.story_count == round_half_up(evening.post_count * 0.5)
    assert tiktok.fetch_trends("Zlatni Rat", 43.2, 16.6, hashtags, at=SATURDAY_EVENING).view_count > 0
    assert InstagramClient.score(100, 0.1, 10) == 100
    assert TikTokClient.score(0, 0.0, 0) == 0
