"""
Prediction repository for database operations on predictions.

Holds the two operations the resolution engine depends on:

- ``list_eligible_pending``: pending predictions past the resolution window
- ``resolve_if_pending``: a single conditional write gated on
  ``status == "pending"``, the only concurrency control in the system
"""

from datetime import datetime, timedelta
from typing import Any, Protocol

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from coin_predictions.db.indexes import PREDICTIONS_COLLECTION
from coin_predictions.models.base import utc_now
from coin_predictions.models.leaderboard import UserOutcomeCounts
from coin_predictions.models.prediction import (
    SCORED_STATUSES,
    Prediction,
    PredictionStatus,
)
from coin_predictions.models.resolution import ResolveResult
from coin_predictions.repositories.base import BaseRepository, translate_errors

logger = structlog.get_logger(__name__)


class PredictionStore(Protocol):
    """Storage contract used by the resolution and leaderboard services."""

    async def list_eligible_pending(
        self,
        window: timedelta,
        *,
        now: datetime,
        limit: int | None = None,
    ) -> list[Prediction]: ...

    async def resolve_if_pending(
        self,
        prediction_id: ObjectId,
        status: PredictionStatus,
        resolution_price: float,
        *,
        resolved_at: datetime,
    ) -> ResolveResult: ...

    async def aggregate_user_outcomes(self, limit: int | None = None) -> list[UserOutcomeCounts]: ...

    async def create_prediction(self, prediction: Prediction) -> Prediction: ...

    async def get_user_predictions(self, user_id: str, limit: int = 20) -> list[Prediction]: ...


class PredictionRepository(BaseRepository[Prediction]):
    """
    MongoDB-backed prediction store.

    All driver failures surface as ``PersistenceError``.
    """

    collection_name = PREDICTIONS_COLLECTION
    model_class = Prediction

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        super().__init__(database)

    async def create_prediction(self, prediction: Prediction) -> Prediction:
        """
        Insert a new pending prediction.

        Args:
            prediction: Prediction built from a validated submission

        Returns:
            The stored prediction
        """
        if prediction.status is not PredictionStatus.PENDING:
            raise ValueError("New predictions must start pending")

        with translate_errors("insert prediction"):
            result = await self.collection.insert_one(prediction.to_document())

        logger.info(
            "Prediction created",
            prediction_id=str(result.inserted_id),
            user_id=prediction.user_id,
            coin_id=prediction.coin_id,
            direction=prediction.predicted_direction.value,
        )
        return prediction

    async def list_eligible_pending(
        self,
        window: timedelta,
        *,
        now: datetime | None = None,
        limit: int | None = None,
    ) -> list[Prediction]:
        """
        Get pending predictions whose resolution window has elapsed.

        Oldest predictions come first so that a capped batch always makes
        progress on the backlog. Documents that fail model validation are
        logged and skipped.

        Args:
            window: Resolution window
            now: Reference time (defaults to current UTC time)
            limit: Maximum number of predictions to return

        Returns:
            List of eligible predictions
        """
        cutoff = (now or utc_now()) - window
        cursor = self.collection.find(
            {
                "status": PredictionStatus.PENDING.value,
                "prediction_timestamp": {"$lte": cutoff},
            }
        ).sort([("prediction_timestamp", 1), ("_id", 1)])

        if limit is not None:
            cursor = cursor.limit(limit)

        with translate_errors("list eligible predictions"):
            docs = await cursor.to_list(length=limit)

        predictions: list[Prediction] = []
        for doc in docs:
            try:
                predictions.append(Prediction.model_validate(doc))
            except ValidationError as e:
                # Stays pending until repaired
                logger.error(
                    "Skipping malformed prediction document",
                    prediction_id=str(doc.get("_id")),
                    error=str(e),
                )
        return predictions

    async def resolve_if_pending(
        self,
        prediction_id: ObjectId,
        status: PredictionStatus,
        resolution_price: float,
        *,
        resolved_at: datetime | None = None,
    ) -> ResolveResult:
        """
        Resolve a prediction only if it is still pending.

        The status precondition is part of the update filter, so the check
        and the write are one atomic server-side operation.

        Args:
            prediction_id: Prediction's ObjectId
            status: Terminal status to record
            resolution_price: Oracle price used for classification
            resolved_at: Resolution time (defaults to current UTC time)

        Returns:
            RESOLVED if this call performed the transition, ALREADY_RESOLVED
            if the prediction was no longer pending
        """
        if not PredictionStatus.PENDING.can_transition_to(status):
            raise ValueError(f"Cannot resolve a prediction to '{status}'")

        with translate_errors("resolve prediction"):
            result = await self.collection.update_one(
                {"_id": prediction_id, "status": PredictionStatus.PENDING.value},
                {
                    "$set": {
                        "status": status.value,
                        "price_at_resolution": resolution_price,
                        "resolved_at": resolved_at or utc_now(),
                    }
                },
            )

        if result.matched_count == 0:
            return ResolveResult.ALREADY_RESOLVED

        return ResolveResult.RESOLVED

    async def get_user_predictions(self, user_id: str, limit: int = 20) -> list[Prediction]:
        """
        Get a user's predictions, newest first.

        Args:
            user_id: User identifier
            limit: Maximum number of predictions to return

        Returns:
            List of predictions
        """
        return await self.find_many(
            {"user_id": user_id},
            limit=limit,
            sort=[("prediction_timestamp", -1)],
        )

    async def count_by_status(self) -> dict[PredictionStatus, int]:
        """
        Count predictions per status.

        Statuses with no rows report 0; unknown stored values are skipped.
        """
        rows = await self.aggregate([{"$group": {"_id": "$status", "count": {"$sum": 1}}}])
        counts = {status: 0 for status in PredictionStatus}
        for row in rows:
            try:
                status = PredictionStatus(row["_id"])
            except ValueError:
                logger.warning(
                    "Unknown prediction status in store",
                    status=row["_id"],
                    count=row["count"],
                )
                continue
            counts[status] = row["count"]
        return counts

    async def aggregate_user_outcomes(self, limit: int | None = None) -> list[UserOutcomeCounts]:
        """
        Group resolved predictions by user.

        Uses a MongoDB aggregation pipeline; ordering matches
        ``leaderboard_sort_key``.

        Args:
            limit: Maximum number of users to return

        Returns:
            Per-user correct and resolved counts
        """
        pipeline: list[dict[str, Any]] = [
            {"$match": {"status": {"$in": [s.value for s in SCORED_STATUSES]}}},
            {
                "$group": {
                    "_id": "$user_id",
                    "score": {
                        "$sum": {
                            "$cond": [
                                {"$eq": ["$status", PredictionStatus.CORRECT.value]},
                                1,
                                0,
                            ]
                        }
                    },
                    "total_predictions": {"$sum": 1},
                }
            },
            {"$sort": {"score": -1, "total_predictions": 1, "_id": 1}},
        ]

        if limit is not None:
            pipeline.append({"$limit": limit})

        pipeline.append(
            {
                "$project": {
                    "_id": 0,
                    "user_id": "$_id",
                    "score": 1,
                    "total_predictions": 1,
                }
            }
        )

        results = await self.aggregate(pipeline)
        return [UserOutcomeCounts.model_validate(row) for row in results]
