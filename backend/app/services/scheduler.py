import asyncio
import logging
from typing import Callable, List, Optional

from app.core.config import Settings, get_settings
from app.services.crowd_service import CrowdIntelligenceService
from app.services.journey_service import JourneyService
from app.services.prediction_service import PredictionService
from app.services.price_alert_service import PriceAlertService
from app.services.review_service import ReviewService
from app.storage.repository import InMemoryRepository

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60


class Scheduler:
    """
    Background jobs run inside the API process: crowd refresh on a short
    interval, hourly price alert checks, then daily predictions, journey
    archiving and review publishing.
    """

    def __init__(self, repository: InMemoryRepository, settings: Optional[Settings] = None):
        self.repository = repository
        self.settings = settings or get_settings()
        self.crowd = CrowdIntelligenceService(repository, self.settings)
        self.predictions = PredictionService(repository, self.settings)
        self.journeys = JourneyService(repository, self.settings)
        self.reviews = ReviewService(repository, self.settings)
        self.price_alerts = PriceAlertService(repository, self.settings)
        self.running = False
        self._tasks: List[asyncio.Task] = []

    def jobs(self):
        return [
            ("crowd-refresh", self.settings.crowd_refresh_minutes * 60, self.crowd.update_all_crowd_data),
            ("daily-predictions", DAY_SECONDS, self.predictions.generate_daily_predictions),
            ("archive-journeys", DAY_SECONDS, self.journeys.auto_archive_past_journeys),
            ("publish-reviews", DAY_SECONDS, self.reviews.publish_due_reviews),
            (
                "price-alerts",
                self.settings.price_alert_check_minutes * 60,
                self.price_alerts.check_price_alerts,
            ),
        ]

    async def start(self) -> None:
        if self.running:
            return
        self.running = True
        for name, interval, job in self.jobs():
            self._tasks.append(asyncio.create_task(self._loop(name, interval, job), name=name))
        logger.info("Scheduler started with %d jobs", len(self._tasks))

    async def stop(self) -> None:
        self.running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Scheduler stopped")

    def run_once(self, name: str) -> int:
        for job_name, _, job in self.jobs():
            if job_name == name:
                return job()
        raise KeyError(name)

    async def _loop(self, name: str, interval: float, job: Callable[[], int]) -> None:
        while self.running:
            try:
                result = await asyncio.to_thread(job)
                logger.debug("Job %s finished: %s", name, result)
            except Exception:
                logger.exception("Job %s failed", name)
            await asyncio.sleep(interval)
