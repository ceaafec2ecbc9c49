"""
Tests for the resolution worker.

Runs against the in-memory store so every scenario, including overlapping
passes, is deterministic.
"""

import asyncio
from datetime import timedelta

import pytest

from coin_predictions.config.settings import ResolutionSettings
from coin_predictions.errors import PersistenceError
from coin_predictions.models.prediction import PredictionDirection, PredictionStatus
from coin_predictions.models.resolution import BatchOutcome
from coin_predictions.services.resolution_service import ResolutionService

from tests.conftest import NOW, WINDOW
from tests.fakes import InMemoryPredictionStore, StubOracle


def make_service(store, oracle, **kwargs) -> ResolutionService:
    kwargs.setdefault("window", WINDOW)
    kwargs.setdefault("clock", lambda: NOW)
    return ResolutionService(store, oracle, **kwargs)


class TestResolvePending:
    """Single-pass behavior."""

    async def test_no_eligible_predictions(self, store, oracle):
        summary = await make_service(store, oracle).resolve_pending()

        assert summary.total_eligible == 0
        assert summary.resolved_this_run == 0
        assert summary.outcome is BatchOutcome.EMPTY
        assert summary.message == "No pending predictions to process."
        assert oracle.calls == []

    async def test_prediction_inside_window_is_untouched(self, prediction_factory, oracle):
        young = prediction_factory.create(age=timedelta(hours=23, minutes=59))
        store = InMemoryPredictionStore([young])

        summary = await make_service(store, oracle).resolve_pending()

        assert summary.total_eligible == 0
        assert store.get(young.id) == young
        assert oracle.calls == []

    async def test_correct_and_incorrect_resolution(self, prediction_factory, oracle):
        # bitcoin quotes 110, ethereum 90
        up_btc = prediction_factory.create(coin_id="bitcoin", direction=PredictionDirection.UP)
        up_eth = prediction_factory.create(coin_id="ethereum", direction=PredictionDirection.UP)
        down_eth = prediction_factory.create(
            coin_id="ethereum", direction=PredictionDirection.DOWN
        )
        store = InMemoryPredictionStore([up_btc, up_eth, down_eth])

        summary = await make_service(store, oracle).resolve_pending()

        assert summary.total_eligible == 3
        assert summary.resolved_this_run == 3
        assert summary.errors_encountered == 0
        assert summary.outcome is BatchOutcome.COMPLETE

        assert store.get(up_btc.id).status is PredictionStatus.CORRECT
        assert store.get(up_eth.id).status is PredictionStatus.INCORRECT
        assert store.get(down_eth.id).status is PredictionStatus.CORRECT

        resolved = store.get(up_btc.id)
        assert resolved.price_at_resolution == 110.0
        assert resolved.resolved_at == NOW

    async def test_unchanged_price_is_incorrect(self, prediction_factory):
        prediction = prediction_factory.create(price=100.0)
        store = InMemoryPredictionStore([prediction])

        await make_service(store, StubOracle({"bitcoin": 100.0})).resolve_pending()

        assert store.get(prediction.id).status is PredictionStatus.INCORRECT

    async def test_oracle_failure_leaves_prediction_pending(self, prediction_factory):
        prediction = prediction_factory.create(coin_id="dogecoin")
        store = InMemoryPredictionStore([prediction])
        oracle = StubOracle({}, failing={"dogecoin"})

        summary = await make_service(store, oracle).resolve_pending()

        assert summary.total_eligible == 1
        assert summary.resolved_this_run == 0
        assert summary.errors_encountered == 1
        assert summary.error_messages == [
            f"Could not fetch price for dogecoin (prediction ID: {prediction.id})"
        ]
        current = store.get(prediction.id)
        assert current.is_pending
        assert current.price_at_resolution is None

    async def test_partial_batch(self, prediction_factory):
        ok_1 = prediction_factory.create(coin_id="bitcoin")
        broken = prediction_factory.create(coin_id="dogecoin")
        ok_2 = prediction_factory.create(coin_id="ethereum")
        store = InMemoryPredictionStore([ok_1, broken, ok_2])
        oracle = StubOracle({"bitcoin": 110.0, "ethereum": 90.0}, failing={"dogecoin"})

        summary = await make_service(store, oracle).resolve_pending()

        assert summary.total_eligible == 3
        assert summary.resolved_this_run == 2
        assert summary.errors_encountered == 1
        assert summary.outcome is BatchOutcome.PARTIAL
        assert store.get(broken.id).is_pending

    async def test_second_pass_is_a_no_op(self, prediction_factory, oracle):
        prediction = prediction_factory.create()
        store = InMemoryPredictionStore([prediction])
        service = make_service(store, oracle)

        await service.resolve_pending()
        first = store.get(prediction.id)

        oracle.prices["bitcoin"] = 50.0
        summary = await service.resolve_pending()

        assert summary.total_eligible == 0
        assert store.get(prediction.id) == first

    async def test_failed_item_is_retried_next_pass(self, prediction_factory):
        prediction = prediction_factory.create()
        store = InMemoryPredictionStore([prediction])
        oracle = StubOracle({"bitcoin": 110.0}, failing={"bitcoin"})
        service = make_service(store, oracle)

        await service.resolve_pending()
        oracle.failing.clear()
        summary = await service.resolve_pending()

        assert summary.resolved_this_run == 1
        assert store.get(prediction.id).status is PredictionStatus.CORRECT

    async def test_batch_size_caps_the_pass_oldest_first(self, prediction_factory, oracle):
        oldest = prediction_factory.create(age=timedelta(hours=30))
        middle = prediction_factory.create(age=timedelta(hours=28))
        newest = prediction_factory.create(age=timedelta(hours=26))
        store = InMemoryPredictionStore([newest, middle, oldest])

        summary = await make_service(store, oracle, batch_size=2).resolve_pending()

        assert summary.total_eligible == 2
        assert not store.get(oldest.id).is_pending
        assert not store.get(middle.id).is_pending
        assert store.get(newest.id).is_pending


class TestFailureHandling:
    """Store and oracle failures during a pass."""

    async def test_write_failure_is_a_soft_error(self, prediction_factory, oracle):
        ok = prediction_factory.create()
        broken = prediction_factory.create()
        store = InMemoryPredictionStore([ok, broken])
        store.fail_writes_for.add(broken.id)

        summary = await make_service(store, oracle).resolve_pending()

        assert summary.resolved_this_run == 1
        assert summary.errors_encountered == 1
        assert summary.error_messages[0].startswith(f"Failed to update prediction {broken.id}")
        assert store.get(broken.id).is_pending

    async def test_unexpected_item_error_is_a_soft_error(self, prediction_factory):
        ok = prediction_factory.create(coin_id="bitcoin")
        broken = prediction_factory.create(coin_id="brokencoin")
        store = InMemoryPredictionStore([ok, broken])
        oracle = StubOracle({"bitcoin": 110.0}, crashing={"brokencoin"})

        summary = await make_service(store, oracle).resolve_pending()

        assert summary.total_eligible == 2
        assert summary.resolved_this_run == 1
        assert summary.errors_encountered == 1
        assert summary.error_messages[0].startswith(
            f"Unexpected error resolving prediction {broken.id}"
        )
        assert "unexpected client failure" in summary.error_messages[0]
        assert store.get(ok.id).status is PredictionStatus.CORRECT
        assert store.get(broken.id).is_pending

    async def test_list_failure_fails_the_whole_call(self, store, oracle):
        store.fail_list = True

        with pytest.raises(PersistenceError):
            await make_service(store, oracle).resolve_pending()

        assert oracle.calls == []


class TestConcurrency:
    """Overlapping passes and timing limits."""

    async def test_overlapping_passes_resolve_exactly_once(self, prediction_factory):
        prediction = prediction_factory.create()
        store = InMemoryPredictionStore([prediction])
        # Both passes fetch the price before either writes
        oracle = StubOracle({"bitcoin": 110.0}, barrier=asyncio.Barrier(2))

        first, second = await asyncio.gather(
            make_service(store, oracle).resolve_pending(),
            make_service(store, oracle).resolve_pending(),
        )

        assert first.total_eligible == 1
        assert second.total_eligible == 1
        assert first.resolved_this_run + second.resolved_this_run == 1
        assert first.already_resolved + second.already_resolved == 1
        assert first.errors_encountered == second.errors_encountered == 0
        assert store.write_calls == 2
        assert store.get(prediction.id).status is PredictionStatus.CORRECT

    async def test_concurrency_is_capped(self, prediction_factory):
        predictions = [prediction_factory.create() for _ in range(10)]
        store = InMemoryPredictionStore(predictions)
        oracle = StubOracle({"bitcoin": 110.0})

        summary = await make_service(store, oracle, max_concurrency=3).resolve_pending()

        assert summary.resolved_this_run == 10
        assert 1 <= oracle.max_in_flight <= 3

    async def test_slow_oracle_call_times_out(self, prediction_factory):
        slow = prediction_factory.create(coin_id="slowcoin")
        fast = prediction_factory.create(coin_id="bitcoin")
        store = InMemoryPredictionStore([slow, fast])
        oracle = StubOracle({"bitcoin": 110.0}, hanging={"slowcoin"})

        summary = await make_service(store, oracle, oracle_timeout=0.05).resolve_pending()

        assert summary.resolved_this_run == 1
        assert summary.errors_encountered == 1
        assert summary.error_messages == [
            f"Timed out fetching price for slowcoin (prediction ID: {slow.id})"
        ]
        assert store.get(slow.id).is_pending

    async def test_deadline_defers_unfinished_items(self, prediction_factory):
        slow = prediction_factory.create(coin_id="slowcoin")
        fast = prediction_factory.create(coin_id="bitcoin")
        store = InMemoryPredictionStore([slow, fast])
        oracle = StubOracle({"bitcoin": 110.0}, hanging={"slowcoin"})

        summary = await make_service(
            store, oracle, oracle_timeout=None, deadline=0.05
        ).resolve_pending()

        assert summary.total_eligible == 2
        assert summary.resolved_this_run == 1
        assert summary.deferred == 1
        assert summary.timed_out is True
        assert summary.outcome is BatchOutcome.PARTIAL
        assert store.get(slow.id).is_pending


class TestConfiguration:
    def test_from_settings(self, store, oracle):
        settings = ResolutionSettings(
            window_hours=12,
            batch_size=50,
            max_concurrency=2,
            oracle_timeout_seconds=3,
            deadline_seconds=None,
        )
        service = ResolutionService.from_settings(store, oracle, settings)

        assert service.window == timedelta(hours=12)
        assert service.batch_size == 50
        assert service.max_concurrency == 2
        assert service.oracle_timeout == 3
        assert service.deadline is None

    def test_rejects_zero_concurrency(self, store, oracle):
        with pytest.raises(ValueError):
            ResolutionService(store, oracle, max_concurrency=0)
