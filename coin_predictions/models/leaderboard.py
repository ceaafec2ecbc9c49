"""
Leaderboard models.

Leaderboard entries are derived on every query from resolved predictions and
have no persisted identity.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field, computed_field, model_validator

from coin_predictions.models.base import utc_now


class UserOutcomeCounts(BaseModel):
    """Per-user resolved prediction counts as produced by the store."""

    user_id: str
    score: int = Field(ge=0, description="Correct predictions")
    total_predictions: int = Field(ge=0, description="Correct plus incorrect predictions")


class LeaderboardEntry(BaseModel):
    """A single ranked row of the leaderboard."""

    rank: int = Field(ge=1)
    user_id: str
    score: int = Field(ge=0, description="Count of correct predictions")
    total_predictions: int = Field(ge=1, description="Count of resolved predictions")

    @model_validator(mode="after")
    def check_score_bounds(self) -> Self:
        if self.score > self.total_predictions:
            raise ValueError("score cannot exceed total_predictions")
        return self

    @computed_field
    @property
    def accuracy_percent(self) -> float:
        """Share of resolved predictions that were correct."""
        return round(self.score / self.total_predictions * 100, 2)


class Leaderboard(BaseModel):
    """Ordered leaderboard snapshot."""

    entries: list[LeaderboardEntry] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now)

    @computed_field
    @property
    def total_users(self) -> int:
        return len(self.entries)


def leaderboard_sort_key(counts: UserOutcomeCounts) -> tuple[int, int, str]:
    """
    Ordering: most correct first, then fewer resolved predictions, then user id.

    Fewer predictions wins a score tie so that efficiency is rewarded.
    """
    return (-counts.score, counts.total_predictions, counts.user_id)


def rank_entries(
    rows: Iterable[UserOutcomeCounts],
    limit: int | None = None,
) -> list[LeaderboardEntry]:
    """
    Order per-user counts and assign 1-based ranks.

    Users without any resolved prediction are dropped.
    """
    ranked = sorted(
        (row for row in rows if row.total_predictions > 0),
        key=leaderboard_sort_key,
    )
    if limit is not None:
        ranked = ranked[:limit]

    return [
        LeaderboardEntry(
            rank=position,
            user_id=row.user_id,
            score=row.score,
            total_predictions=row.total_predictions,
        )
        for position, row in enumerate(ranked, start=1)
    ]
