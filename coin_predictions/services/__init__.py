"""
Service layer for business logic.

Services orchestrate operations between the prediction store and the price
oracle and implement the resolution and ranking rules.
"""

from coin_predictions.services.leaderboard_service import LeaderboardService
from coin_predictions.services.prediction_service import PredictionService
from coin_predictions.services.resolution_service import (
    ItemResolution,
    ItemStatus,
    ResolutionService,
)

__all__ = [
    "ResolutionService",
    "ItemResolution",
    "ItemStatus",
    "LeaderboardService",
    "PredictionService",
]
