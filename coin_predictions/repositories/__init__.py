"""
Repository layer for data access.

Provides abstraction over MongoDB collections with async operations
using Motor driver.
"""

from coin_predictions.repositories.base import BaseRepository, translate_errors
from coin_predictions.repositories.prediction_repository import (
    PredictionRepository,
    PredictionStore,
)

__all__ = [
    "BaseRepository",
    "PredictionRepository",
    "PredictionStore",
    "translate_errors",
]
