import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from app.core.rounding import round_half_up

logger = logging.getLogger(__name__)

# Typical weekday busyness by hour, 0-23
HISTORIC_PATTERN = [
    10, 10, 10, 10, 10, 15, 25, 40, 50, 55,
    60, 70, 75, 70, 60, 55, 50, 55, 65, 80,
    85, 75, 50, 25,
]


@dataclass
class PopularTimes:
    live_score: float
    historic_score: float
    historical_data: List[int] = field(default_factory=list)


def is_weekend(moment: datetime) -> bool:
    return moment.weekday() >= 5


class PopularTimesClient:
    """
    Simulated "popular times" feed. There is no official API for live place
    busyness, so scores are derived from the hour of day and weekday with a
    little noise on the live value.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def fetch(
        self,
        place_id: str,
        latitude: float,
        longitude: float,
        at: Optional[datetime] = None,
    ) -> PopularTimes:
        at = at or datetime.now()
        logger.debug("Popular times for %s at (%s, %s)", place_id, latitude, longitude)
        weekend = is_weekend(at)
        return PopularTimes(
            live_score=self.live_score(at.hour, weekend),
            historic_score=self.historic_score(at.hour, weekend),
            historical_data=self.historical_pattern(weekend),
        )

    def live_score(self, hour: int, weekend: bool) -> int:
        if 11 <= hour <= 14:
            base = 70
        elif 19 <= hour <= 22:
            base = 80
        elif 8 <= hour <= 10:
            base = 40
        elif 15 <= hour <= 18:
            base = 50
        else:
            base = 20
        multiplier = 1.3 if weekend else 1.0
        return round_half_up(min(100.0, base * multiplier + self.rng.random() * 15))

    @staticmethod
    def historic_score(hour: int, weekend: bool) -> int:
        if 11 <= hour <= 14:
            base = 65
        elif 19 <= hour <= 22:
            base = 75
        elif 8 <= hour <= 10:
            base = 35
        elif 15 <= hour <= 18:
            base = 45
        else:
            base = 30
        return round_half_up(base * (1.2 if weekend else 1.0))

    @staticmethod
    def historical_pattern(weekend: bool) -> List[int]:
        multiplier = 1.2 if weekend else 1.0
        return [round_half_up(v * multiplier) for v in HISTORIC_PATTERN]
