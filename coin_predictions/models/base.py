"""
Base model classes for MongoDB document integration with Pydantic v2.

Provides foundational classes that handle:
- ObjectId serialization/deserialization
- Timezone-aware UTC timestamps
- Document conversion utilities
"""

from datetime import datetime, timezone
from typing import Any, Self

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from coin_predictions.validators.custom_types import PyObjectId


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes.

    MongoDB stores datetimes as UTC milliseconds; clients created without
    ``tz_aware=True`` hand them back naive.
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class MongoBaseModel(BaseModel):
    """
    Base model for all MongoDB documents.

    Provides:
    - Automatic ObjectId handling with alias '_id'
    - JSON serialization with string IDs
    - Conversion to/from MongoDB documents

    Usage:
        class Prediction(MongoBaseModel):
            user_id: str
            coin_id: str
    """

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Validate on assignment
        validate_assignment=True,
        # Allow arbitrary types (for ObjectId)
        arbitrary_types_allowed=True,
        # Strip whitespace from strings
        str_strip_whitespace=True,
    )

    # MongoDB document ID
    id: PyObjectId = Field(
        default_factory=ObjectId,
        alias="_id",
        description="MongoDB document ID",
    )

    @classmethod
    def from_mongo(cls, document: dict[str, Any] | None) -> Self | None:
        """
        Create model instance from MongoDB document.

        Args:
            document: Raw MongoDB document dict

        Returns:
            Model instance or None if document is None
        """
        if document is None:
            return None
        return cls.model_validate(document)

    @classmethod
    def from_mongo_list(cls, documents: list[dict[str, Any]]) -> list[Self]:
        """Create list of model instances from MongoDB documents."""
        return [cls.model_validate(doc) for doc in documents]

    def to_json_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """
        Convert model to JSON-serializable dictionary.

        ObjectIds are converted to strings for JSON compatibility.

        Args:
            exclude_none: Whether to exclude None values

        Returns:
            JSON-serializable dictionary
        """
        return self.model_dump(
            exclude_none=exclude_none,
            by_alias=False,
            mode="json",
        )
