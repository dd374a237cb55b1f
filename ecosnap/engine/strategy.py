"""Execution Strategy - fallback chain 판단 로직

live 호출 결과 상태에 따라 fallback chain을 걸을지, 다음 후보를 시도할지 결정합니다.
"""

from typing import Iterable, Optional, Protocol

from ecosnap.schemas.product_schema import ProductQuery, ProviderResult, ProviderStatus, SourceConfig, SourceRole


class FetchExecutor(Protocol):
    """live 호출 실행자 인터페이스 (SourceAdapter가 구현)"""

    source_name: str
    role: SourceRole

    def applies_to(self, query: ProductQuery) -> bool:
        ...

    async def fetch_live(self, query: ProductQuery) -> ProviderResult:
        """live 호출. 실패는 FAILED 결과로 반환 (예외 없음)"""
        ...

    def fallback_result(
        self,
        query: ProductQuery,
        live_status: Optional[ProviderStatus] = None,
        error_code: Optional[str] = None,
    ) -> ProviderResult:
        ...


class ExecutionStrategy:
    """실행 전략 결정

    Usage:
        strategy = ExecutionStrategy()
        if strategy.should_walk_fallback_chain(result.status):
            for name in strategy.chain_candidates(config, tried, available):
                ...
    """

    @staticmethod
    def should_walk_fallback_chain(status: ProviderStatus) -> bool:
        """live 호출이 실패/타임아웃이면 fallback chain으로 넘어감"""
        return status in (ProviderStatus.FAILED, ProviderStatus.TIMED_OUT)

    @staticmethod
    def chain_candidates(
        config: SourceConfig,
        tried: Iterable[str],
        available: Iterable[str],
    ) -> list[str]:
        """아직 시도하지 않았고, 등록+활성화된 대체 소스 (chain 순서 유지)

        Args:
            config: 원래 소스 설정
            tried: 이 소스에 대해 이미 시도한 소스 이름
            available: 등록되어 있고 enabled인 소스 이름
        """
        tried_set = set(tried)
        available_set = set(available)
        out: list[str] = []
        for name in config.fallback_chain:
            if name in tried_set or name not in available_set or name in out:
                continue
            out.append(name)
        return out
