from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False)

    app_name: str = "Adriatic Marketplace"
    environment: str = "local"
    default_user_id: str = "demo-tourist"
    log_level: str = "INFO"
    currency: str = "EUR"
    platform_commission_rate: float = 0.15
    max_planning_journeys: int = 3

    crowd_cache_minutes: int = 15
    sensor_window_minutes: int = 5
    prediction_stale_minutes: int = 60
    recommendation_ttl_hours: int = 24
    review_publish_delay_hours: int = 72

    openweather_api_key: Optional[str] = None
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    instagram_access_token: Optional[str] = None
    tiktok_access_token: Optional[str] = None
    http_timeout: int = 8

    seed_demo_data: bool = True
    scheduler_enabled: bool = False
    crowd_refresh_minutes: int = 10
    random_seed: Optional[int] = None

    price_alert_limit: int = 3
    price_alert_check_minutes: int = 60


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env")
    return Settings()


settings = get_settings()
