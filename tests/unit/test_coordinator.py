"""FetchCoordinator 단위 테스트 (동시 실행 상한, 타임아웃, fallback chain, 장애 격리)"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from ecosnap.core.config import settings
from ecosnap.engine import BudgetConfig, BudgetManager, FetchCoordinator, FetchPath
from ecosnap.schemas.product_schema import ProviderStatus, SourceRole
from tests.fakes import FakeAdapter, make_config, make_registry


def started_budget(config: BudgetConfig | None = None) -> BudgetManager:
    budget = BudgetManager(config)
    budget.start()
    return budget


@pytest.mark.asyncio
async def test_one_result_per_enabled_source(name_query):
    registry = make_registry(
        FakeAdapter("a", score=80),
        FakeAdapter("b", score=60),
        FakeAdapter("c", score=50),
    )
    configs = [make_config("a"), make_config("b"), make_config("c", enabled=False)]

    results = await FetchCoordinator(registry).fetch_all(name_query, configs, started_budget())

    assert [r.source_name for r in results] == ["a", "b"]
    assert all(r.status == ProviderStatus.SUCCESS for r in results)
    assert registry.get("c").calls == 0


@pytest.mark.asyncio
async def test_all_disabled_launches_nothing(name_query):
    adapter = FakeAdapter("a")
    registry = make_registry(adapter)

    results = await FetchCoordinator(registry).fetch_all(name_query, [make_config("a", enabled=False)])

    assert results == []
    assert adapter.calls == 0


@pytest.mark.asyncio
async def test_unregistered_source_is_skipped(name_query):
    registry = make_registry(FakeAdapter("a"))
    configs = [make_config("a"), make_config("ghost")]

    results = await FetchCoordinator(registry).fetch_all(name_query, configs)

    assert [r.source_name for r in results] == ["a"]


@pytest.mark.asyncio
async def test_barcode_only_source_skipped_for_name_query(name_query, barcode_query):
    barcode = FakeAdapter("barcode_lookup", role=SourceRole.METADATA, requires_barcode=True)
    registry = make_registry(barcode, FakeAdapter("a"))
    configs = [make_config("barcode_lookup"), make_config("a")]
    coordinator = FetchCoordinator(registry)

    by_name = await coordinator.fetch_all(name_query, configs)
    by_barcode = await coordinator.fetch_all(barcode_query, configs)

    assert [r.source_name for r in by_name] == ["a"]
    assert {r.source_name for r in by_barcode} == {"barcode_lookup", "a"}


@pytest.mark.asyncio
async def test_category_filter(name_query):
    registry = make_registry(FakeAdapter("food_only"), FakeAdapter("tech_only"))
    configs = [
        make_config("food_only", categories=("beverages", "food")),
        make_config("tech_only", categories=("electronics",)),
    ]

    results = await FetchCoordinator(registry).fetch_all(name_query, configs)

    assert [r.source_name for r in results] == ["food_only"]


@pytest.mark.asyncio
async def test_launch_order_follows_priority(name_query, tracker):
    registry = make_registry(
        *(FakeAdapter(name, tracker=tracker, delay=0.01) for name in ("low", "mid", "high"))
    )
    configs = [make_config("low", priority=1), make_config("mid", priority=5), make_config("high", priority=9)]

    results = await FetchCoordinator(registry, max_concurrency=1).fetch_all(name_query, configs)

    assert tracker.order == ["high", "mid", "low"]
    assert [r.source_name for r in results] == ["high", "mid", "low"]


@pytest.mark.asyncio
async def test_concurrency_cap_is_never_exceeded(name_query, tracker):
    names = [f"s{i}" for i in range(10)]
    registry = make_registry(*(FakeAdapter(n, delay=0.05, tracker=tracker) for n in names))
    configs = [make_config(n) for n in names]
    coordinator = FetchCoordinator(registry, max_concurrency=3)

    results = await coordinator.fetch_all(name_query, configs)

    assert len(results) == 10
    assert tracker.peak <= 3
    assert coordinator.peak_in_flight <= 3
    # 실제로 병렬 실행은 됨
    assert tracker.peak > 1


@pytest.mark.asyncio
async def test_default_cap_from_settings(name_query, tracker):
    names = [f"s{i}" for i in range(settings.max_concurrency * 2)]
    registry = make_registry(*(FakeAdapter(n, delay=0.03, tracker=tracker) for n in names))
    configs = [make_config(n) for n in names]
    coordinator = FetchCoordinator(registry)

    await coordinator.fetch_all(name_query, configs)

    assert coordinator.max_concurrency == settings.max_concurrency
    assert tracker.peak == settings.max_concurrency


@pytest.mark.asyncio
async def test_timeout_produces_fallback_estimate(name_query):
    slow = FakeAdapter("slow", delay=1.0, fallback_score=33)
    registry = make_registry(slow, FakeAdapter("fast", score=90))
    configs = [make_config("slow", timeout_ms=50), make_config("fast")]

    outcomes = await FetchCoordinator(registry).fetch_outcomes(name_query, configs, started_budget())
    by_name = {o.source_name: o for o in outcomes}

    slow_result = by_name["slow"].result
    assert slow_result.status == ProviderStatus.FELL_BACK
    assert slow_result.live_status == ProviderStatus.TIMED_OUT
    assert slow_result.error_code == "PROVIDER_TIMEOUT"
    assert slow_result.partial_score == 33
    assert by_name["slow"].path == FetchPath.ESTIMATE
    assert by_name["fast"].result.status == ProviderStatus.SUCCESS


@pytest.mark.asyncio
async def test_failure_walks_fallback_chain(name_query):
    primary = FakeAdapter("howgood", role=SourceRole.SUPPLY_CHAIN, fail=True)
    alternate = FakeAdapter("climatiq", role=SourceRole.CARBON, score=64)
    registry = make_registry(primary, alternate)
    configs = [
        make_config("howgood", priority=10, fallback_chain=("climatiq",)),
        make_config("climatiq", priority=9),
    ]

    outcomes = await FetchCoordinator(registry).fetch_outcomes(name_query, configs)
    howgood = next(o for o in outcomes if o.source_name == "howgood")

    assert howgood.path == FetchPath.CHAIN
    assert howgood.attempts == ["howgood", "climatiq"]
    assert howgood.result.source_name == "howgood"
    assert howgood.result.role == SourceRole.SUPPLY_CHAIN
    assert howgood.result.status == ProviderStatus.FELL_BACK
    assert howgood.result.live_status == ProviderStatus.FAILED
    assert howgood.result.error_code == "PROVIDER_UNAVAILABLE"
    assert howgood.result.partial_score == 64
    assert howgood.result.metadata["served_by"] == "climatiq"


@pytest.mark.asyncio
async def test_chain_skips_disabled_and_unregistered_alternates(name_query):
    primary = FakeAdapter("howgood", fail=True, fallback_score=41)
    disabled = FakeAdapter("climatiq", score=90)
    registry = make_registry(primary, disabled)
    configs = [
        make_config("howgood", fallback_chain=("climatiq", "ghost")),
        make_config("climatiq", enabled=False),
    ]

    outcomes = await FetchCoordinator(registry).fetch_outcomes(name_query, configs)

    assert len(outcomes) == 1
    assert outcomes[0].path == FetchPath.ESTIMATE
    assert outcomes[0].attempts == ["howgood"]
    assert outcomes[0].result.partial_score == 41
    assert disabled.calls == 0


@pytest.mark.asyncio
async def test_exhausted_chain_uses_own_estimate(name_query):
    registry = make_registry(
        FakeAdapter("howgood", fail=True, fallback_score=52),
        FakeAdapter("climatiq", fail=True, fallback_score=10),
        FakeAdapter("ai_analysis", fail=True, fallback_score=11),
    )
    configs = [
        make_config("howgood", priority=10, fallback_chain=("climatiq", "ai_analysis")),
        make_config("climatiq", priority=9, fallback_chain=("howgood",)),
        make_config("ai_analysis", priority=4),
    ]

    outcomes = await FetchCoordinator(registry).fetch_outcomes(name_query, configs)
    howgood = next(o for o in outcomes if o.source_name == "howgood")

    assert howgood.attempts == ["howgood", "climatiq", "ai_analysis"]
    assert howgood.result.status == ProviderStatus.FELL_BACK
    assert howgood.result.partial_score == 52
    assert all(o.result.status == ProviderStatus.FELL_BACK for o in outcomes)


@pytest.mark.asyncio
async def test_unexpected_exception_is_isolated(name_query):
    registry = make_registry(
        FakeAdapter("broken", error=RuntimeError("boom"), fallback_score=20),
        FakeAdapter("ok", score=75),
    )
    configs = [make_config("broken"), make_config("ok")]

    results = await FetchCoordinator(registry).fetch_all(name_query, configs)
    by_name = {r.source_name: r for r in results}

    assert by_name["ok"].status == ProviderStatus.SUCCESS
    assert by_name["broken"].status == ProviderStatus.FELL_BACK
    assert by_name["broken"].error_code == "ADAPTER_ERROR"


@pytest.mark.asyncio
async def test_failing_estimator_yields_failed(name_query):
    class BrokenEstimator(FakeAdapter):
        def fallback(self, query):
            raise ValueError("table missing")

    registry = make_registry(BrokenEstimator("x", fail=True))

    results = await FetchCoordinator(registry).fetch_all(name_query, [make_config("x")])

    assert results[0].status == ProviderStatus.FAILED
    assert results[0].error_code == "FALLBACK_ERROR"


@pytest.mark.asyncio
async def test_outer_deadline_cancels_in_flight_calls(name_query):
    slow = FakeAdapter("slow", delay=5.0, fallback_score=22)
    fast = FakeAdapter("fast", score=88)
    registry = make_registry(slow, fast)
    configs = [make_config("slow", timeout_ms=10_000), make_config("fast", timeout_ms=10_000)]
    budget = started_budget(BudgetConfig(total_budget=0.3, cache_timeout=0.05, min_remaining=0.05))

    loop = asyncio.get_running_loop()
    started = loop.time()
    # 소스별 타임아웃은 충분히 길게 두고 outer deadline만 걸리게 함
    with patch.object(budget, "get_timeout_for", return_value=10.0):
        outcomes = await FetchCoordinator(registry).fetch_outcomes(name_query, configs, budget)
    elapsed = loop.time() - started
    by_name = {o.source_name: o for o in outcomes}

    assert elapsed < 2.0
    assert by_name["fast"].result.status == ProviderStatus.SUCCESS
    assert by_name["slow"].path == FetchPath.CANCELLED
    assert by_name["slow"].result.status == ProviderStatus.FELL_BACK
    assert by_name["slow"].result.live_status == ProviderStatus.TIMED_OUT
    assert by_name["slow"].result.partial_score == 22
    assert "deadline_exceeded" in budget.get_report()["checkpoints"]


@pytest.mark.asyncio
async def test_circuit_open_goes_straight_to_fallback(name_query):
    adapter = FakeAdapter("flaky", fail=True, fallback_score=30)
    adapter.circuit_breaker.fail_threshold = 2
    registry = make_registry(adapter)
    coordinator = FetchCoordinator(registry)
    configs = [make_config("flaky")]

    for _ in range(2):
        await coordinator.fetch_all(name_query, configs)
    results = await coordinator.fetch_all(name_query, configs)

    assert adapter.calls == 2
    assert results[0].status == ProviderStatus.FELL_BACK
    assert results[0].error_code == "CIRCUIT_OPEN"
    assert adapter.circuit_breaker.metrics.skipped == 1


@pytest.mark.parametrize("cap", [0, -1])
def test_invalid_concurrency_rejected(cap):
    with pytest.raises(ValueError):
        FetchCoordinator(make_registry(), max_concurrency=cap)
