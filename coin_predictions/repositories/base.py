"""
Base repository pattern implementation for MongoDB with Motor.

Provides common read operations and driver error translation that can be
inherited by specific repository implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo.errors import PyMongoError

from coin_predictions.errors import PersistenceError
from coin_predictions.validators.custom_types import validate_object_id

logger = structlog.get_logger(__name__)

# Type variable for generic repository
ModelType = TypeVar("ModelType", bound=BaseModel)


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """
    Re-raise driver failures as PersistenceError.

    Usage:
        with translate_errors("insert prediction"):
            await collection.insert_one(doc)
    """
    try:
        yield
    except PyMongoError as exc:
        logger.error("MongoDB operation failed", operation=operation, error=str(exc))
        raise PersistenceError(f"{operation} failed: {exc}") from exc


class BaseRepository(Generic[ModelType], ABC):
    """
    Abstract base repository with common read operations.

    Subclasses must provide the collection name and model class.

    Type Parameters:
        ModelType: The Pydantic model representing the document

    Usage:
        class PredictionRepository(BaseRepository[Prediction]):
            collection_name = "predictions"
            model_class = Prediction
    """

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        """
        Initialize repository with database connection.

        Args:
            database: Motor database instance
        """
        self._database = database
        self._collection: AsyncIOMotorCollection = database[self.collection_name]

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Name of the MongoDB collection."""
        ...

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Pydantic model class for this repository."""
        ...

    @property
    def collection(self) -> AsyncIOMotorCollection:
        """Get the Motor collection instance."""
        return self._collection

    async def get_by_id(self, id: str | ObjectId) -> ModelType | None:
        """
        Get a document by its ID.

        Args:
            id: Document ID (string or ObjectId)

        Returns:
            Model instance or None if not found

        Raises:
            ValueError: If id is not a valid ObjectId
        """
        object_id = validate_object_id(id)

        with translate_errors(f"load {self.collection_name} document"):
            document = await self._collection.find_one({"_id": object_id})

        if document is None:
            return None

        return self.model_class.model_validate(document)

    async def find_many(
        self,
        filter: dict[str, Any] | None = None,
        *,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[ModelType]:
        """
        Find multiple documents matching the filter.

        Args:
            filter: MongoDB query filter (default: all documents)
            limit: Maximum number of documents to return
            sort: List of (field, direction) tuples for sorting

        Returns:
            List of model instances
        """
        cursor = self._collection.find(filter or {})

        if sort:
            cursor = cursor.sort(sort)

        cursor = cursor.limit(limit)

        with translate_errors(f"query {self.collection_name}"):
            documents = await cursor.to_list(length=limit)

        return [self.model_class.model_validate(doc) for doc in documents]

    async def aggregate(self, pipeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Execute an aggregation pipeline.

        Args:
            pipeline: List of aggregation stages

        Returns:
            List of aggregation results
        """
        with translate_errors(f"aggregate {self.collection_name}"):
            cursor = self._collection.aggregate(pipeline)
            return await cursor.to_list(length=None)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(collection='{self.collection_name}')>"
