"""
Prediction service for submissions and history.

Feeds the resolution engine: every prediction starts ``pending`` and is
stamped with the submission time.
"""

from datetime import datetime

from coin_predictions.models.prediction import Prediction, PredictionCreate
from coin_predictions.repositories.prediction_repository import PredictionStore
from coin_predictions.validators.custom_types import validate_user_id


class PredictionService:
    """Service layer for prediction submission and lookup."""

    def __init__(self, store: PredictionStore) -> None:
        self.store = store

    async def submit_prediction(
        self,
        data: PredictionCreate,
        now: datetime | None = None,
    ) -> Prediction:
        """
        Record a new prediction.

        Args:
            data: Validated submission
            now: Submission time (defaults to current UTC time)

        Returns:
            Stored pending prediction
        """
        prediction = Prediction.from_create(data, now=now)
        return await self.store.create_prediction(prediction)

    async def get_user_predictions(self, user_id: str, limit: int = 20) -> list[Prediction]:
        """Get a user's predictions, newest first."""
        return await self.store.get_user_predictions(validate_user_id(user_id), limit=limit)
