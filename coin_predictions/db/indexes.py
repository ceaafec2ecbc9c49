"""
MongoDB index definitions for all collections.

Indexes are applied during application startup or via ``db init``.
"""

from dataclasses import dataclass
from typing import Any

from pymongo import ASCENDING, DESCENDING, IndexModel

PREDICTIONS_COLLECTION = "predictions"


@dataclass(frozen=True)
class IndexDefinition:
    """Index definition for a collection."""

    collection: str
    indexes: tuple[IndexModel, ...]


# =============================================================================
# Predictions Collection Indexes
# =============================================================================

PREDICTIONS_INDEXES = IndexDefinition(
    collection=PREDICTIONS_COLLECTION,
    indexes=(
        # Eligibility scan: pending predictions ordered by age
        IndexModel(
            [("status", ASCENDING), ("prediction_timestamp", ASCENDING)],
            name="idx_predictions_pending_timestamp",
            partialFilterExpression={"status": "pending"},
        ),
        # Leaderboard grouping over resolved predictions
        IndexModel(
            [("user_id", ASCENDING), ("status", ASCENDING)],
            name="idx_predictions_user_status",
        ),
        # User prediction history
        IndexModel(
            [("user_id", ASCENDING), ("prediction_timestamp", DESCENDING)],
            name="idx_predictions_user_history",
        ),
    ),
)

ALL_INDEXES: tuple[IndexDefinition, ...] = (PREDICTIONS_INDEXES,)


def get_index_definitions() -> dict[str, list[IndexModel]]:
    """Get all index definitions keyed by collection name."""
    return {definition.collection: list(definition.indexes) for definition in ALL_INDEXES}


async def ensure_indexes(db: Any) -> dict[str, list[str]]:
    """
    Create all indexes in the database.

    Args:
        db: Motor database instance.

    Returns:
        Dictionary mapping collection names to created index names.
    """
    results: dict[str, list[str]] = {}

    for definition in ALL_INDEXES:
        collection = db[definition.collection]
        created_indexes = await collection.create_indexes(list(definition.indexes))
        results[definition.collection] = created_indexes

    return results
