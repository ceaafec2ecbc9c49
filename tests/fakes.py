"""
In-memory test doubles for the prediction store and the price oracle.

``InMemoryPredictionStore`` implements the same conditional-write contract
as ``PredictionRepository``: a prediction moves out of ``pending`` at most
once, and the check and the write happen under one lock.
"""

import asyncio
from collections.abc import Iterable
from datetime import datetime, timedelta

from bson import ObjectId

from coin_predictions.errors import OracleUnavailableError, PersistenceError
from coin_predictions.models.base import utc_now
from coin_predictions.models.leaderboard import UserOutcomeCounts, leaderboard_sort_key
from coin_predictions.models.prediction import Prediction, PredictionStatus
from coin_predictions.models.resolution import ResolveResult
from coin_predictions.oracle.client import PriceQuote


class InMemoryPredictionStore:
    """Dict-backed prediction store guarded by a single asyncio.Lock."""

    def __init__(self, predictions: Iterable[Prediction] = ()) -> None:
        self._lock = asyncio.Lock()
        self._rows: dict[ObjectId, Prediction] = {p.id: p for p in predictions}
        self.fail_list = False
        self.fail_writes_for: set[ObjectId] = set()
        self.write_calls = 0

    def get(self, prediction_id: ObjectId) -> Prediction:
        return self._rows[prediction_id]

    def all(self) -> list[Prediction]:
        return list(self._rows.values())

    async def create_prediction(self, prediction: Prediction) -> Prediction:
        async with self._lock:
            self._rows[prediction.id] = prediction
        return prediction

    async def list_eligible_pending(
        self,
        window: timedelta,
        *,
        now: datetime,
        limit: int | None = None,
    ) -> list[Prediction]:
        if self.fail_list:
            raise PersistenceError("list eligible predictions failed: connection refused")
        async with self._lock:
            eligible = sorted(
                (p for p in self._rows.values() if p.is_eligible(window, now)),
                key=lambda p: (p.prediction_timestamp, str(p.id)),
            )
        return eligible[:limit] if limit is not None else eligible

    async def resolve_if_pending(
        self,
        prediction_id: ObjectId,
        status: PredictionStatus,
        resolution_price: float,
        *,
        resolved_at: datetime,
    ) -> ResolveResult:
        if not PredictionStatus.PENDING.can_transition_to(status):
            raise ValueError(f"Cannot resolve a prediction to '{status}'")
        if prediction_id in self.fail_writes_for:
            raise PersistenceError("resolve prediction failed: write concern error")

        async with self._lock:
            self.write_calls += 1
            current = self._rows.get(prediction_id)
            if current is None or not current.is_pending:
                return ResolveResult.ALREADY_RESOLVED
            self._rows[prediction_id] = current.resolve(status, resolution_price, resolved_at)
            return ResolveResult.RESOLVED

    async def aggregate_user_outcomes(self, limit: int | None = None) -> list[UserOutcomeCounts]:
        totals: dict[str, UserOutcomeCounts] = {}
        async with self._lock:
            for p in self._rows.values():
                if not p.status.is_scored:
                    continue
                row = totals.setdefault(
                    p.user_id,
                    UserOutcomeCounts(user_id=p.user_id, score=0, total_predictions=0),
                )
                row.total_predictions += 1
                if p.status is PredictionStatus.CORRECT:
                    row.score += 1
        rows = sorted(totals.values(), key=leaderboard_sort_key)
        return rows[:limit] if limit is not None else rows

    async def get_user_predictions(self, user_id: str, limit: int = 20) -> list[Prediction]:
        async with self._lock:
            rows = [p for p in self._rows.values() if p.user_id == user_id]
        rows.sort(key=lambda p: p.prediction_timestamp, reverse=True)
        return rows[:limit]


class StubOracle:
    """
    Configurable price oracle.

    Args:
        prices: Price to return per coin id
        failing: Coin ids that raise OracleUnavailableError
        hanging: Coin ids whose lookup never completes
        crashing: Coin ids that raise an unexpected RuntimeError
        barrier: Optional barrier every lookup waits on before returning
    """

    def __init__(
        self,
        prices: dict[str, float] | None = None,
        *,
        failing: Iterable[str] = (),
        hanging: Iterable[str] = (),
        crashing: Iterable[str] = (),
        barrier: asyncio.Barrier | None = None,
    ) -> None:
        self.prices = dict(prices or {})
        self.failing = set(failing)
        self.hanging = set(hanging)
        self.crashing = set(crashing)
        self.barrier = barrier
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_current_price(self, coin_id: str) -> PriceQuote:
        self.calls.append(coin_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if coin_id in self.hanging:
                await asyncio.Event().wait()
            if self.barrier is not None:
                await self.barrier.wait()
            else:
                await asyncio.sleep(0)
            if coin_id in self.crashing:
                raise RuntimeError("unexpected client failure")
            if coin_id in self.failing or coin_id not in self.prices:
                raise OracleUnavailableError(coin_id, "stubbed failure")
            return PriceQuote(coin_id=coin_id, price=self.prices[coin_id], fetched_at=utc_now())
        finally:
            self.in_flight -= 1
