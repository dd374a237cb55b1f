"""Fetch Coordinator - 쿼리 1건의 프로바이더 fan-out

1. enabled + 카테고리/바코드 적용 대상인 소스만 선택
2. priority 내림차순 큐 + worker pool (동시 실행 상한 max_concurrency)
3. 소스별 live 호출을 timeout_ms와 경쟁시키고, 늦으면 버리고 TIMED_OUT 처리
4. FAILED / TIMED_OUT 이면 fallback_chain의 대체 소스를 순서대로 시도
   (시도 안 했고, 등록+활성화된 소스만, outer deadline 안에서)
5. chain까지 실패하면 원래 어댑터의 fallback 추정치
6. outer deadline(BudgetManager.remaining)이 지나면 남은 호출을 취소하고
   TIMED_OUT으로 간주해 추정치로 채움

한 소스의 실패가 다른 소스를 중단시키지 않습니다.
"""

import asyncio
from typing import Optional

from ecosnap.core.config import settings
from ecosnap.core.exceptions import ProviderTimeoutException
from ecosnap.core.logging import logger
from ecosnap.providers.base import SourceAdapter
from ecosnap.providers.registry import AdapterRegistry
from ecosnap.schemas.product_schema import ProductQuery, ProviderResult, ProviderStatus, SourceConfig

from .budget import BudgetManager
from .result import FetchOutcome
from .strategy import ExecutionStrategy, FetchExecutor


class FetchCoordinator:
    """프로바이더 병렬 호출 관리자

    Usage:
        coordinator = FetchCoordinator(registry)
        results = await coordinator.fetch_all(query, configs, budget)
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        max_concurrency: Optional[int] = None,
        strategy: Optional[ExecutionStrategy] = None,
    ):
        """
        Args:
            registry: 어댑터 레지스트리
            max_concurrency: 동시에 진행 중인 어댑터 호출 상한 (기본 settings.max_concurrency)
            strategy: fallback chain 판단 로직
        """
        if registry is None:
            raise ValueError("registry must not be None")
        self.registry = registry
        self.max_concurrency = settings.max_concurrency if max_concurrency is None else max_concurrency
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        self.strategy = strategy or ExecutionStrategy()

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._semaphore: Optional[asyncio.Semaphore] = None
        self.in_flight = 0
        self.peak_in_flight = 0

    def _bind_loop(self) -> asyncio.Semaphore:
        # 세마포어는 이벤트 루프에 묶이므로 루프가 바뀌면 새로 만든다
        loop = asyncio.get_running_loop()
        if self._loop is not loop or self._semaphore is None:
            self._loop = loop
            self._semaphore = asyncio.Semaphore(self.max_concurrency)
            self.in_flight = 0
        return self._semaphore

    # ------------------------------------------------------------------
    # 공개 API
    # ------------------------------------------------------------------

    def select_sources(self, query: ProductQuery, configs: list[SourceConfig]) -> list[SourceConfig]:
        """이 쿼리에 실행할 소스 (priority 내림차순, 같은 priority는 설정 순서)"""
        selected: list[SourceConfig] = []
        for config in configs:
            if not config.enabled:
                continue
            adapter = self.registry.get(config.source_name)
            if adapter is None:
                logger.warning(f"[COORDINATOR] no adapter registered for '{config.source_name}', skipped")
                continue
            if not config.applies_to_category(query.category) or not adapter.applies_to(query):
                logger.debug(f"[COORDINATOR] {config.source_name} not applicable to query")
                continue
            selected.append(config)
        return sorted(selected, key=lambda c: c.priority, reverse=True)

    async def fetch_all(
        self,
        query: ProductQuery,
        configs: list[SourceConfig],
        budget: Optional[BudgetManager] = None,
    ) -> list[ProviderResult]:
        """실행한 소스마다 결과 1개 (priority 순)"""
        outcomes = await self.fetch_outcomes(query, configs, budget)
        return [o.result for o in outcomes]

    async def fetch_outcomes(
        self,
        query: ProductQuery,
        configs: list[SourceConfig],
        budget: Optional[BudgetManager] = None,
    ) -> list[FetchOutcome]:
        """fetch_all + 경로/시도 기록"""
        if budget is None:
            budget = BudgetManager()
            budget.start()

        selected = self.select_sources(query, configs)
        if not selected:
            logger.info("[COORDINATOR] no applicable sources, nothing launched")
            return []

        semaphore = self._bind_loop()
        config_by_name = {c.source_name: c for c in configs}
        available = [c.source_name for c in configs if c.enabled and c.source_name in self.registry]

        queue: asyncio.Queue = asyncio.Queue()
        for config in selected:
            queue.put_nowait(config)
        outcomes: dict[str, FetchOutcome] = {}

        async def worker() -> None:
            while True:
                try:
                    config = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                outcomes[config.source_name] = await self._fetch_source(
                    query, config, config_by_name, available, budget, semaphore
                )

        worker_count = min(self.max_concurrency, len(selected))
        workers = [asyncio.create_task(worker()) for _ in range(worker_count)]
        logger.info(
            f"[COORDINATOR] fan-out {len(selected)} sources with {worker_count} workers, "
            f"deadline={budget.remaining():.2f}s"
        )

        try:
            _, pending = await asyncio.wait(workers, timeout=budget.remaining())
        except asyncio.CancelledError:
            for task in workers:
                task.cancel()
            raise

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            budget.checkpoint("deadline_exceeded")
            logger.warning(f"[COORDINATOR] outer deadline exceeded, {len(pending)} workers cancelled")

        results: list[FetchOutcome] = []
        for config in selected:
            outcome = outcomes.get(config.source_name)
            if outcome is None:
                # 취소됐거나 시작도 못한 소스
                adapter = self.registry.get(config.source_name)
                assert adapter is not None
                estimate = adapter.fallback_result(query, ProviderStatus.TIMED_OUT, "DEADLINE_EXCEEDED")
                outcome = FetchOutcome.from_estimate(
                    config.source_name, estimate, [config.source_name], budget.elapsed() * 1000, cancelled=True
                )
            results.append(outcome)
            logger.debug(f"[COORDINATOR] {outcome.as_log_line()}")

        live = sum(1 for o in results if o.is_success)
        logger.info(
            f"[COORDINATOR] fan-in: {live}/{len(results)} live, peak_in_flight={self.peak_in_flight}"
        )
        return results

    # ------------------------------------------------------------------
    # 내부
    # ------------------------------------------------------------------

    async def _fetch_source(
        self,
        query: ProductQuery,
        config: SourceConfig,
        config_by_name: dict[str, SourceConfig],
        available: list[str],
        budget: BudgetManager,
        semaphore: asyncio.Semaphore,
    ) -> FetchOutcome:
        adapter = self.registry.get(config.source_name)
        assert adapter is not None
        started = budget.elapsed()
        attempts = [config.source_name]

        result = await self._call_live(adapter, query, config, budget, semaphore)
        if result.status == ProviderStatus.SUCCESS:
            return FetchOutcome.from_live(result, attempts, (budget.elapsed() - started) * 1000)

        live_status, error_code = result.status, result.error_code
        if self.strategy.should_walk_fallback_chain(live_status):
            for alt_name in self.strategy.chain_candidates(config, attempts, available):
                if not budget.can_walk_fallback():
                    logger.info(f"[COORDINATOR] {config.source_name}: budget low, fallback chain stopped")
                    break
                alt = self.registry.get(alt_name)
                if alt is None or not alt.applies_to(query):
                    continue
                attempts.append(alt_name)
                alt_result = await self._call_live(alt, query, config_by_name[alt_name], budget, semaphore)
                if alt_result.status == ProviderStatus.SUCCESS:
                    served = self._served_by(adapter, alt_result, live_status, error_code)
                    logger.info(f"[COORDINATOR] {config.source_name} served by {alt_name}")
                    return FetchOutcome.from_chain(
                        config.source_name, served, attempts, (budget.elapsed() - started) * 1000
                    )

        estimate = adapter.fallback_result(query, live_status, error_code)
        return FetchOutcome.from_estimate(
            config.source_name, estimate, attempts, (budget.elapsed() - started) * 1000
        )

    async def _call_live(
        self,
        adapter: FetchExecutor,
        query: ProductQuery,
        config: SourceConfig,
        budget: BudgetManager,
        semaphore: asyncio.Semaphore,
    ) -> ProviderResult:
        """live 호출 1회 (세마포어 + 타임아웃). 예외를 던지지 않음"""
        timeout = budget.get_timeout_for("source", config.timeout_ms / 1000)
        if timeout <= 0:
            return ProviderResult.failed(
                adapter.source_name, adapter.role, "PROVIDER_TIMEOUT", status=ProviderStatus.TIMED_OUT
            )

        async with semaphore:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                return await asyncio.wait_for(adapter.fetch_live(query), timeout=timeout)
            except asyncio.TimeoutError:
                error = ProviderTimeoutException(adapter.source_name, timeout * 1000)
                logger.info(f"[COORDINATOR] {error}, call abandoned")
                return ProviderResult.failed(
                    adapter.source_name, adapter.role, error.error_code, status=ProviderStatus.TIMED_OUT
                )
            except Exception as e:
                logger.error(
                    f"[COORDINATOR] {adapter.source_name} raised {type(e).__name__}: {e}", exc_info=True
                )
                return ProviderResult.failed(adapter.source_name, adapter.role, "ADAPTER_ERROR")
            finally:
                self.in_flight -= 1

    @staticmethod
    def _served_by(
        original: SourceAdapter,
        alt_result: ProviderResult,
        live_status: ProviderStatus,
        error_code: Optional[str],
    ) -> ProviderResult:
        """대체 소스의 live 결과를 원래 소스 이름/역할로 기록 (status는 FELL_BACK)"""
        return alt_result.model_copy(
            update={
                "source_name": original.source_name,
                "role": original.role,
                "status": ProviderStatus.FELL_BACK,
                "live_status": live_status,
                "error_code": error_code,
                "metadata": {**alt_result.metadata, "served_by": alt_result.source_name},
            }
        )
