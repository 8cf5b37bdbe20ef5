import logging
import random
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from app.core.rounding import round_half_up
from app.integrations.popular_times import is_weekend

logger = logging.getLogger(__name__)

TYPE_HASHTAGS: Dict[str, List[str]] = {
    "BEACH": ["beach", "beachlife", "croatia", "adriatic", "summervibes"],
    "RESTAURANT": ["restaurant", "food", "croatianfood", "dining"],
    "NIGHTLIFE": ["party", "nightlife", "clubbing", "nightout"],
    "ATTRACTION": ["travel", "tourism", "sightseeing", "explore"],
}


@dataclass
class TrendData:
    score: int
    post_count: int
    engagement: float
    hashtag_velocity: float
    hashtags: List[str] = field(default_factory=list)
    story_count: Optional[int] = None
    view_count: Optional[int] = None


def suggested_hashtags(location_name: str, location_type: str) -> List[str]:
    compact = re.sub(r"\s+", "", location_name.lower())
    base = [compact, f"{compact}beach", f"{compact}croatia"]
    return base + TYPE_HASHTAGS.get(location_type, [])


def _clamp_score(value: float) -> int:
    return round_half_up(max(0.0, min(100.0, value)))


class InstagramClient:
    """
    Location trend signal from Instagram hashtag activity.

    The Graph API needs a business account and app review, so without an
    access token (the usual case) activity is simulated from the hour of day.
    """

    platform = "instagram"

    def __init__(self, access_token: Optional[str] = None, rng: Optional[random.Random] = None):
        self.access_token = access_token
        self.rng = rng or random.Random()

    @staticmethod
    def score(post_count: int, engagement: float, hashtag_count: int) -> int:
        post_score = min(100.0, post_count / 100 * 100)
        engagement_score = min(100.0, engagement * 1000)
        hashtag_score = min(100.0, hashtag_count / 10 * 100)
        return _clamp_score(post_score * 0.6 + engagement_score * 0.3 + hashtag_score * 0.1)

    def fetch_trends(
        self,
        location_name: str,
        latitude: float,
        longitude: float,
        hashtags: List[str],
        at: Optional[datetime] = None,
    ) -> TrendData:
        at = at or datetime.now()
        if not self.access_token:
            logger.debug("Instagram token not configured, simulating trends for %s", location_name)
        base = 30.0
        if 11 <= at.hour <= 14:
            base = 70.0
        if 19 <= at.hour <= 23:
            base = 85.0
        if is_weekend(at):
            base *= 1.3
        post_count = round_half_up(base + self.rng.random() * 20)
        engagement = 0.05 + self.rng.random() * 0.03
        return TrendData(
            score=self.score(post_count, engagement, len(hashtags)),
            post_count=post_count,
            story_count=round_half_up(post_count * 0.5),
            engagement=engagement,
            hashtag_velocity=post_count / 60,
            hashtags=hashtags,
        )


class TikTokClient:
    platform = "tiktok"

    def __init__(self, access_token: Optional[str] = None, rng: Optional[random.Random] = None):
        self.access_token = access_token
        self.rng = rng or random.Random()

    @staticmethod
    def score(video_count: int, engagement: float, hashtag_count: int) -> int:
        video_score = min(100.0, video_count / 50 * 100)
        engagement_score = min(100.0, engagement * 800)
        hashtag_score = min(100.0, hashtag_count / 10 * 100)
        return _clamp_score(video_score * 0.6 + engagement_score * 0.3 + hashtag_score * 0.1)

    def fetch_trends(
        self,
        location_name: str,
        latitude: float,
        longitude: float,
        hashtags: List[str],
        at: Optional[datetime] = None,
    ) -> TrendData:
        at = at or datetime.now()
        if not self.access_token:
            logger.debug("TikTok token not configured, simulating trends for %s", location_name)
        base = 20.0
        if 18 <= at.hour <= 23:
            base = 80.0
        elif 11 <= at.hour <= 14:
            base = 50.0
        if is_weekend(at):
            base *= 1.4
        video_count = round_half_up(base + self.rng.random() * 15)
        engagement = 0.08 + self.rng.random() * 0.05
        return TrendData(
            score=self.score(video_count, engagement, len(hashtags)),
            post_count=video_count,
            view_count=round_half_up(video_count * (3000 + self.rng.random() * 7000)),
            engagement=engagement,
            hashtag_velocity=video_count / 60,
            hashtags=hashtags,
        )
