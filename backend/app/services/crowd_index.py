import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from app.models.domain import CrowdLevel

logger = logging.getLogger(__name__)

WEIGHTS_WITH_SENSORS: Dict[str, float] = {
    "sensor": 0.50,
    "google_live": 0.30,
    "instagram": 0.10,
    "tiktok": 0.05,
    "weather": 0.03,
    "event": 0.02,
}

WEIGHTS_WITHOUT_SENSORS: Dict[str, float] = {
    "google_live": 0.55,
    "google_historic": 0.10,
    "instagram": 0.15,
    "tiktok": 0.05,
    "weather": 0.10,
    "event": 0.05,
}

LEVEL_COLORS: Dict[CrowdLevel, str] = {
    CrowdLevel.EMPTY: "#00FF00",
    CrowdLevel.QUIET: "#7FFF00",
    CrowdLevel.MODERATE: "#FFFF00",
    CrowdLevel.BUSY: "#FFA500",
    CrowdLevel.VERY_BUSY: "#FF0000",
}


@dataclass
class CrowdIndexInput:
    google_live: Optional[float] = None
    google_historic: Optional[float] = None
    instagram: Optional[float] = None
    tiktok: Optional[float] = None
    weather: Optional[float] = None
    event: Optional[float] = None
    sensor: Optional[float] = None
    has_sensors: bool = False


@dataclass
class CrowdIndexResult:
    crowd_index: float
    crowd_level: CrowdLevel
    breakdown: Dict[str, float] = field(default_factory=dict)


def crowd_level_for(crowd_index: float) -> CrowdLevel:
    if crowd_index <= 20:
        return CrowdLevel.EMPTY
    if crowd_index <= 40:
        return CrowdLevel.QUIET
    if crowd_index <= 60:
        return CrowdLevel.MODERATE
    if crowd_index <= 80:
        return CrowdLevel.BUSY
    return CrowdLevel.VERY_BUSY


def color_for_level(level: CrowdLevel) -> str:
    return LEVEL_COLORS[level]


def color_for_index(crowd_index: float) -> str:
    return color_for_level(crowd_level_for(crowd_index))


class CrowdIndexCalculator:
    """
    Blends the crowd signals of a location into a 0-100 index.

    A location with live sensors leans on the sensor counts; without them the
    live popular-times score carries most of the weight and the historic
    score stands in as a sanity baseline. Missing signals count as zero.
    """

    def calculate(self, signals: CrowdIndexInput) -> CrowdIndexResult:
        logger.debug("Calculating crowd index for %s", signals)
        if signals.has_sensors and signals.sensor is not None:
            weights = WEIGHTS_WITH_SENSORS
        else:
            weights = WEIGHTS_WITHOUT_SENSORS

        breakdown = {
            name: (getattr(signals, name) or 0.0) * weight for name, weight in weights.items()
        }
        crowd_index = max(0.0, min(100.0, sum(breakdown.values())))
        level = crowd_level_for(crowd_index)
        logger.debug("Crowd index %.1f (%s)", crowd_index, level.value)
        return CrowdIndexResult(crowd_index=crowd_index, crowd_level=level, breakdown=breakdown)
