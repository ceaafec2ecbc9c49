"""
Leaderboard service.

Derives the ranking from resolved predictions on every call. Read-only, so
it needs no coordination with resolution passes.
"""

import structlog

from coin_predictions.models.leaderboard import Leaderboard, rank_entries
from coin_predictions.repositories.prediction_repository import PredictionStore

logger = structlog.get_logger(__name__)


class LeaderboardService:
    """Computes the prediction leaderboard."""

    def __init__(self, store: PredictionStore) -> None:
        self.store = store

    async def compute_leaderboard(self, limit: int | None = None) -> Leaderboard:
        """
        Rank users by correct predictions.

        Ties on score go to the user with fewer resolved predictions, then
        to the lower user id.

        Args:
            limit: Maximum number of entries to return (None for all)

        Returns:
            Ordered leaderboard
        """
        if limit is not None and limit < 1:
            raise ValueError("limit must be positive")

        rows = await self.store.aggregate_user_outcomes(limit=limit)
        leaderboard = Leaderboard(entries=rank_entries(rows, limit=limit))

        logger.debug("Leaderboard computed", users=leaderboard.total_users)
        return leaderboard
