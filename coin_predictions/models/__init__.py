"""
Pydantic models for the coin predictions system.

This module exports all domain models used throughout the application:
- Prediction: prediction documents, submissions and status enums
- Resolution models: per-write results and pass summaries
- Leaderboard models: derived ranking rows
"""

from coin_predictions.models.base import MongoBaseModel, utc_now
from coin_predictions.models.leaderboard import (
    Leaderboard,
    LeaderboardEntry,
    UserOutcomeCounts,
    rank_entries,
)
from coin_predictions.models.prediction import (
    Prediction,
    PredictionCreate,
    PredictionDirection,
    PredictionStatus,
    classify_outcome,
)
from coin_predictions.models.resolution import BatchOutcome, ResolutionSummary, ResolveResult

__all__ = [
    # Base
    "MongoBaseModel",
    "utc_now",
    # Prediction
    "Prediction",
    "PredictionCreate",
    "PredictionDirection",
    "PredictionStatus",
    "classify_outcome",
    # Resolution
    "ResolveResult",
    "ResolutionSummary",
    "BatchOutcome",
    # Leaderboard
    "Leaderboard",
    "LeaderboardEntry",
    "UserOutcomeCounts",
    "rank_entries",
]
