import math

from loguru import logger

from connekt.core.security import redact_id
from connekt.models.profile import ProfileStats
from connekt.services.analytics.constants import (
    DAYS_PER_YEAR,
    REPUTATION_MAX_SCORE,
    REPUTATION_TENURE_CAP_YEARS,
    REPUTATION_WEIGHT_PROJECTS,
    REPUTATION_WEIGHT_RATING,
    REPUTATION_WEIGHT_RESPONSE_RATE,
)
from connekt.services.profile.store import ProfileStore, profile_store


class ReputationScorer:
    """
    Multi-factor reputation score (0-100) computed from profile stats.
    """

    def __init__(self, profiles: ProfileStore | None = None):
        self.profiles = profiles or profile_store

    @staticmethod
    def factors(stats: ProfileStats) -> dict[str, float]:
        """Weighted contribution of each stat before summing."""
        return {
            "averageRating": stats.averageRating * REPUTATION_WEIGHT_RATING,
            "projectsCompleted": stats.projectsCompleted * REPUTATION_WEIGHT_PROJECTS,
            "responseRate": stats.responseRate * REPUTATION_WEIGHT_RESPONSE_RATE,
            "tenure": min(REPUTATION_TENURE_CAP_YEARS, stats.timeOnPlatform / DAYS_PER_YEAR),
        }

    @staticmethod
    def reputation_score(stats: ProfileStats) -> int:
        """
        Score a set of stats.

        Args:
            stats: Profile stats; timeOnPlatform is in days

        Returns:
            Sum of the weighted factors rounded half up, capped at 100
        """
        total = sum(ReputationScorer.factors(stats).values())
        return min(REPUTATION_MAX_SCORE, math.floor(total + 0.5))

    async def calculate_reputation_score(self, uid: str) -> int:
        profile = await self.profiles.get_profile(uid)
        if profile is None:
            logger.debug(f"No profile for {redact_id(uid)}, reputation is 0")
            return 0
        return self.reputation_score(profile.stats)


reputation_scorer = ReputationScorer()
