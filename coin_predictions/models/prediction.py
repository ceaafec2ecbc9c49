"""
Prediction model for directional coin price predictions.

A prediction records that a user expects a coin's price to go up or down
from the price captured at submission. It starts ``pending`` and is resolved
exactly once, after the resolution window, to ``correct`` or ``incorrect``.
"""

from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any, Self

from bson import ObjectId
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from coin_predictions.models.base import MongoBaseModel, ensure_utc, utc_now
from coin_predictions.validators.custom_types import validate_coin_id, validate_user_id


class PredictionDirection(StrEnum):
    """Direction a user expects the price to move."""

    UP = "up"
    DOWN = "down"


class PredictionStatus(StrEnum):
    """
    Lifecycle state of a prediction.

    ``pending`` is the only non-terminal state. ``error_resolving`` is
    reserved for predictions that repeatedly fail to resolve; nothing assigns
    it yet.
    """

    PENDING = "pending"
    CORRECT = "correct"
    INCORRECT = "incorrect"
    ERROR_RESOLVING = "error_resolving"

    @property
    def is_terminal(self) -> bool:
        """Whether the status can no longer change."""
        return self is not PredictionStatus.PENDING

    @property
    def is_scored(self) -> bool:
        """Whether the status counts towards the leaderboard."""
        return self in (PredictionStatus.CORRECT, PredictionStatus.INCORRECT)

    def can_transition_to(self, target: "PredictionStatus") -> bool:
        """Only pending predictions move, and only to a terminal state."""
        return self is PredictionStatus.PENDING and target.is_terminal


SCORED_STATUSES: tuple[PredictionStatus, ...] = (
    PredictionStatus.CORRECT,
    PredictionStatus.INCORRECT,
)


def classify_outcome(
    direction: PredictionDirection,
    price_at_prediction: float,
    current_price: float,
) -> PredictionStatus:
    """
    Classify a prediction against the current market price.

    The price must have moved strictly in the predicted direction; an
    unchanged price is a miss.

    Args:
        direction: Predicted direction
        price_at_prediction: Price captured when the prediction was made
        current_price: Price fetched at resolution time

    Returns:
        PredictionStatus.CORRECT or PredictionStatus.INCORRECT
    """
    if direction is PredictionDirection.UP:
        moved = current_price > price_at_prediction
    elif direction is PredictionDirection.DOWN:
        moved = current_price < price_at_prediction
    else:
        raise ValueError(f"Unknown prediction direction: {direction!r}")

    return PredictionStatus.CORRECT if moved else PredictionStatus.INCORRECT


class PredictionCreate(BaseModel):
    """
    Schema for submitting a new prediction.

    Accepts camelCase keys (``userId``, ``coinId``, ``predictedDirection``,
    ``priceAtPrediction``) or their snake_case names. Unknown keys are
    rejected.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "userId": "0x71C7656EC7ab88b098defB751B7401B5f6d8976F",
                "coinId": "bitcoin",
                "predictedDirection": "up",
                "priceAtPrediction": 45230.12,
            }
        },
    )

    user_id: str = Field(..., strict=True, description="Predicting user")
    coin_id: str = Field(..., strict=True, description="Oracle coin identifier")
    predicted_direction: PredictionDirection = Field(..., description="up or down")
    price_at_prediction: float = Field(
        ...,
        strict=True,
        gt=0,
        allow_inf_nan=False,
        description="Market price captured at submission",
    )

    @field_validator("user_id")
    @classmethod
    def check_user_id(cls, v: str) -> str:
        return validate_user_id(v)

    @field_validator("coin_id")
    @classmethod
    def check_coin_id(cls, v: str) -> str:
        return validate_coin_id(v)


class Prediction(MongoBaseModel):
    """
    Full prediction document model.

    Invariants:
    - ``price_at_resolution`` and ``resolved_at`` are set iff the status is
      not ``pending``
    - a resolved prediction never changes status again
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_schema_extra={
            "example": {
                "_id": "507f1f77bcf86cd799439011",
                "user_id": "0x71C7656EC7ab88b098defB751B7401B5f6d8976F",
                "coin_id": "bitcoin",
                "predicted_direction": "up",
                "prediction_timestamp": "2024-03-01T10:00:00Z",
                "price_at_prediction": 45230.12,
                "price_at_resolution": None,
                "status": "pending",
                "resolved_at": None,
                "created_at": "2024-03-01T10:00:00Z",
            }
        },
    )

    user_id: str = Field(..., description="Predicting user")
    coin_id: str = Field(..., description="Oracle coin identifier")
    predicted_direction: PredictionDirection
    prediction_timestamp: datetime = Field(
        ..., description="Submission time; anchors the resolution window"
    )
    price_at_prediction: float = Field(..., gt=0)
    price_at_resolution: float | None = Field(
        default=None,
        ge=0,
        description="Oracle price used for resolution (null while pending)",
    )
    status: PredictionStatus = Field(default=PredictionStatus.PENDING)
    resolved_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("prediction_timestamp", "resolved_at", "created_at")
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_resolution_fields(self) -> Self:
        """Resolution fields are present exactly when the status is terminal."""
        if self.status is PredictionStatus.PENDING:
            if self.price_at_resolution is not None or self.resolved_at is not None:
                raise ValueError("Pending prediction cannot carry resolution data")
        elif self.price_at_resolution is None or self.resolved_at is None:
            raise ValueError(f"Prediction with status '{self.status}' must record its resolution")
        return self

    @computed_field
    @property
    def is_pending(self) -> bool:
        """Whether the prediction still awaits resolution."""
        return self.status is PredictionStatus.PENDING

    def resolves_at(self, window: timedelta) -> datetime:
        """Earliest time the prediction may be resolved."""
        return self.prediction_timestamp + window

    def is_eligible(self, window: timedelta, now: datetime) -> bool:
        """Pending and past the resolution window."""
        return self.is_pending and now >= self.resolves_at(window)

    def classify(self, current_price: float) -> PredictionStatus:
        """Classify this prediction against ``current_price``."""
        return classify_outcome(
            self.predicted_direction,
            self.price_at_prediction,
            current_price,
        )

    def resolve(
        self,
        status: PredictionStatus,
        resolution_price: float,
        resolved_at: datetime | None = None,
    ) -> Self:
        """
        Return a resolved copy of this prediction.

        Raises:
            ValueError: If the transition is not allowed
        """
        if not self.status.can_transition_to(status):
            raise ValueError(f"Cannot move prediction from '{self.status}' to '{status}'")

        return self.model_validate(
            {
                **self.model_dump(by_alias=True, exclude={"is_pending"}),
                "_id": self.id,
                "status": status,
                "price_at_resolution": resolution_price,
                "resolved_at": resolved_at or utc_now(),
            }
        )

    def to_document(self) -> dict[str, Any]:
        """Convert model to MongoDB document."""
        doc = self.model_dump(by_alias=True, exclude={"is_pending"})
        doc["_id"] = ObjectId(doc["_id"]) if isinstance(doc["_id"], str) else doc["_id"]
        doc["predicted_direction"] = self.predicted_direction.value
        doc["status"] = self.status.value
        return doc

    @classmethod
    def from_create(cls, data: PredictionCreate, now: datetime | None = None) -> Self:
        """Build a pending prediction from a validated submission."""
        timestamp = now or utc_now()
        return cls(
            user_id=data.user_id,
            coin_id=data.coin_id,
            predicted_direction=data.predicted_direction,
            prediction_timestamp=timestamp,
            price_at_prediction=data.price_at_prediction,
            created_at=timestamp,
        )
