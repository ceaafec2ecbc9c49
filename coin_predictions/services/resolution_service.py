"""
Prediction resolution service.

Runs one resolution pass: loads eligible pending predictions, asks the price
oracle for each coin's current price, classifies each prediction and records
the outcome through the store's conditional write.

Failures of a single prediction (oracle unavailable or slow, store write
failed) are recorded in the summary and never abort the pass. Overlapping
passes are safe because every write is gated on the prediction still being
pending.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Protocol

import structlog

from coin_predictions.config.settings import ResolutionSettings
from coin_predictions.errors import OracleUnavailableError, PersistenceError
from coin_predictions.models.base import utc_now
from coin_predictions.models.prediction import Prediction
from coin_predictions.models.resolution import ResolutionSummary, ResolveResult
from coin_predictions.oracle.client import PriceQuote
from coin_predictions.repositories.prediction_repository import PredictionStore

logger = structlog.get_logger(__name__)


class PriceSource(Protocol):
    """Anything that can quote a coin's current price."""

    async def get_current_price(self, coin_id: str) -> PriceQuote: ...


class ItemStatus(StrEnum):
    """What happened to one prediction during a pass."""

    RESOLVED = "resolved"
    ALREADY_RESOLVED = "already_resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemResolution:
    """Result of processing a single prediction."""

    prediction_id: str
    status: ItemStatus
    error: str | None = None


class ResolutionService:
    """
    Resolution worker.

    Oracle lookups run concurrently, capped by ``max_concurrency``, and each
    lookup is bounded by ``oracle_timeout``. When ``deadline`` is set,
    predictions still in flight at the deadline are cancelled and left
    pending for the next pass.
    """

    def __init__(
        self,
        store: PredictionStore,
        oracle: PriceSource,
        *,
        window: timedelta = timedelta(hours=24),
        batch_size: int | None = None,
        max_concurrency: int = 5,
        oracle_timeout: float | None = 10.0,
        deadline: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self.store = store
        self.oracle = oracle
        self.window = window
        self.batch_size = batch_size
        self.max_concurrency = max_concurrency
        self.oracle_timeout = oracle_timeout
        self.deadline = deadline
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        store: PredictionStore,
        oracle: PriceSource,
        settings: ResolutionSettings,
    ) -> "ResolutionService":
        """Build a service configured from ``ResolutionSettings``."""
        return cls(
            store,
            oracle,
            window=settings.window,
            batch_size=settings.batch_size,
            max_concurrency=settings.max_concurrency,
            oracle_timeout=settings.oracle_timeout_seconds,
            deadline=settings.deadline_seconds,
        )

    async def resolve_pending(self) -> ResolutionSummary:
        """
        Run one resolution pass.

        Returns:
            Summary of the pass, also on partial failure

        Raises:
            PersistenceError: If eligible predictions cannot be loaded at all
        """
        now = self._clock()
        predictions = await self.store.list_eligible_pending(
            self.window, now=now, limit=self.batch_size
        )

        summary = ResolutionSummary(total_eligible=len(predictions))

        if not predictions:
            logger.info("No pending predictions to process")
            return summary

        log = logger.bind(total_eligible=len(predictions))
        log.info("Resolution pass started")

        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            asyncio.create_task(self._resolve_one(prediction, semaphore))
            for prediction in predictions
        ]

        done, not_done = await asyncio.wait(tasks, timeout=self.deadline)

        if not_done:
            for task in not_done:
                task.cancel()
            await asyncio.gather(*not_done, return_exceptions=True)
            summary.deferred = len(not_done)
            summary.timed_out = True
            log.warning("Resolution deadline reached", deferred=len(not_done))

        # Walk tasks in batch order so error messages are stable
        for task in tasks:
            if task not in done:
                continue
            item = task.result()
            if item.status is ItemStatus.RESOLVED:
                summary.record_resolved()
            elif item.status is ItemStatus.ALREADY_RESOLVED:
                summary.record_already_resolved()
            else:
                summary.record_error(item.error or f"Failed to resolve {item.prediction_id}")

        log.info(
            "Resolution pass finished",
            resolved=summary.resolved_this_run,
            already_resolved=summary.already_resolved,
            errors=summary.errors_encountered,
            deferred=summary.deferred,
        )
        return summary

    async def _resolve_one(
        self,
        prediction: Prediction,
        semaphore: asyncio.Semaphore,
    ) -> ItemResolution:
        """Resolve a single prediction; never raises for item-level failures."""
        prediction_id = str(prediction.id)
        log = logger.bind(prediction_id=prediction_id, coin_id=prediction.coin_id)

        try:
            return await self._attempt(prediction, semaphore, log)
        except Exception as e:
            log.exception("Unexpected failure resolving prediction")
            return ItemResolution(
                prediction_id,
                ItemStatus.FAILED,
                f"Unexpected error resolving prediction {prediction_id}: {e!r}",
            )

    async def _attempt(
        self,
        prediction: Prediction,
        semaphore: asyncio.Semaphore,
        log: structlog.stdlib.BoundLogger,
    ) -> ItemResolution:
        prediction_id = str(prediction.id)

        async with semaphore:
            try:
                quote = await asyncio.wait_for(
                    self.oracle.get_current_price(prediction.coin_id),
                    timeout=self.oracle_timeout,
                )
            except OracleUnavailableError as e:
                log.warning("Price unavailable, leaving prediction pending", reason=e.reason)
                return ItemResolution(
                    prediction_id,
                    ItemStatus.FAILED,
                    f"Could not fetch price for {prediction.coin_id} "
                    f"(prediction ID: {prediction_id})",
                )
            except asyncio.TimeoutError:
                log.warning("Price lookup timed out, leaving prediction pending")
                return ItemResolution(
                    prediction_id,
                    ItemStatus.FAILED,
                    f"Timed out fetching price for {prediction.coin_id} "
                    f"(prediction ID: {prediction_id})",
                )

        status = prediction.classify(quote.price)

        try:
            result = await self.store.resolve_if_pending(
                prediction.id,
                status,
                quote.price,
                resolved_at=self._clock(),
            )
        except PersistenceError as e:
            log.error("Failed to record resolution", error=str(e))
            return ItemResolution(
                prediction_id,
                ItemStatus.FAILED,
                f"Failed to update prediction {prediction_id}: {e}",
            )

        if result is ResolveResult.ALREADY_RESOLVED:
            log.info("Prediction already resolved by another pass")
            return ItemResolution(prediction_id, ItemStatus.ALREADY_RESOLVED)

        log.info(
            "Prediction resolved",
            status=status.value,
            price_at_prediction=prediction.price_at_prediction,
            price_at_resolution=quote.price,
        )
        return ItemResolution(prediction_id, ItemStatus.RESOLVED)
