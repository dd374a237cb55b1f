"""Analysis Orchestrator - 분석 파이프라인 진입점

1. Cache 조회 (hit이면 외부 호출 없이 반환)
2. Fetch Coordinator fan-out (대체 상품 discover와 동시에 실행)
3. Score Synthesizer
4. Alternatives select
5. 상품 정보 정리 (바코드/리테일/이미지 메타데이터)
6. Cache 저장 (실패해도 무시)
"""

import asyncio
from typing import Any, Optional

from ecosnap.alternatives.engine import AlternativesEngine
from ecosnap.core.config import settings
from ecosnap.core.exceptions import InvalidQueryException
from ecosnap.core.logging import logger, sanitize_for_log
from ecosnap.providers.image_search import select_best_image
from ecosnap.providers.registry import AdapterRegistry
from ecosnap.schemas.product_schema import (
    AlternativeCandidate,
    AnalysisResult,
    ProductQuery,
    ProviderResult,
    SourceConfig,
    SourceRole,
)
from ecosnap.utils.resource_loader import load_source_configs

from .budget import BudgetConfig, BudgetManager
from .cache_adapter import CacheAdapter
from .coordinator import FetchCoordinator
from .synthesizer import ScoreSynthesizer


class AnalysisOrchestrator:
    """지속가능성 분석 오케스트레이터

    Usage:
        orchestrator = AnalysisOrchestrator(registry, configs, cache=CacheAdapter())
        result = await orchestrator.analyze(ProductQuery.from_input(barcode="0123456789012"))
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        configs: Optional[list[SourceConfig]] = None,
        cache: Optional[CacheAdapter] = None,
        synthesizer: Optional[ScoreSynthesizer] = None,
        alternatives: Optional[AlternativesEngine] = None,
        budget_config: Optional[BudgetConfig] = None,
        max_concurrency: Optional[int] = None,
    ):
        """
        Args:
            registry: 어댑터 레지스트리
            configs: 소스 설정 (기본 resources/sources.yaml)
            cache: 캐시 어댑터 (기본 메모리 캐시)
            synthesizer: 점수 합성기
            alternatives: 대체 상품 엔진
            budget_config: 쿼리당 시간 예산
            max_concurrency: 동시 어댑터 호출 상한
        """
        if registry is None:
            raise ValueError("registry must not be None")

        self.registry = registry
        self.configs = list(configs) if configs is not None else load_source_configs()
        self.cache = cache or CacheAdapter()
        self.synthesizer = synthesizer or ScoreSynthesizer()
        self.alternatives = alternatives or AlternativesEngine()
        self.budget_config = budget_config
        self.coordinator = FetchCoordinator(registry, max_concurrency=max_concurrency)

    def cache_ttl_hours(self) -> float:
        """활성 소스 중 가장 짧은 TTL (없으면 기본값)"""
        ttls = [c.cache_ttl_hours for c in self.configs if c.enabled]
        return min(ttls) if ttls else settings.default_cache_ttl_hours

    async def analyze(self, query: ProductQuery) -> AnalysisResult:
        """통합 분석 실행

        Raises:
            InvalidQueryException: query가 ProductQuery가 아닌 경우
        """
        if not isinstance(query, ProductQuery):
            raise InvalidQueryException(f"ProductQuery expected, got {type(query).__name__}")

        # 쿼리마다 새 예산 (동시 요청끼리 공유하지 않음)
        budget = BudgetManager(self.budget_config)
        budget.start()
        fingerprint = query.fingerprint()
        logger.info(f"Analysis started: query='{sanitize_for_log(query.canonical_id)}'")

        # 1. Cache
        cached = await self.cache.get(fingerprint, timeout=budget.get_timeout_for("cache"))
        if cached is not None:
            budget.checkpoint("cache_hit")
            logger.info(f"Analysis completed from cache: query='{sanitize_for_log(query.canonical_id)}'")
            return cached.model_copy(
                update={
                    "from_cache": True,
                    "elapsed_ms": budget.elapsed() * 1000,
                    "budget_report": budget.get_report(),
                }
            )
        budget.checkpoint("cache_miss")

        # 2. Fan-out + 대체 상품 탐색 동시 실행
        discovery = asyncio.create_task(self.alternatives.discover(query))
        try:
            outcomes = await self.coordinator.fetch_outcomes(query, self.configs, budget)
        except BaseException:
            discovery.cancel()
            raise
        budget.checkpoint("fan_in")
        results = [o.result for o in outcomes]

        # 3. 점수 합성
        score = self.synthesizer.synthesize(results, self.configs)
        budget.checkpoint("synthesized")

        # 4. 대체 상품
        candidates = await self._await_discovery(discovery, budget)
        alternatives = self.alternatives.select(candidates, query, score.overall_score)
        budget.checkpoint("alternatives")

        result = AnalysisResult(
            query=query,
            score=score,
            alternatives=alternatives,
            product=build_product_info(query, results),
            results=results,
            from_cache=False,
            elapsed_ms=budget.elapsed() * 1000,
            budget_report=budget.get_report(),
        )

        # 5. Cache 저장 (best-effort)
        await self.cache.set(fingerprint, result, self.cache_ttl_hours())

        logger.info(
            f"Analysis completed: query='{sanitize_for_log(query.canonical_id)}', "
            f"score={score.overall_score} ({score.grade}), confidence={score.confidence}, "
            f"alternatives={len(alternatives)}, elapsed={budget.elapsed():.2f}s"
        )
        return result

    async def _await_discovery(
        self,
        discovery: "asyncio.Task[list[AlternativeCandidate]]",
        budget: BudgetManager,
    ) -> list[AlternativeCandidate]:
        """남은 예산 안에서 discover 결과 대기. 늦거나 실패하면 빈 목록 (합성 후보로 패딩)"""
        try:
            return await asyncio.wait_for(discovery, timeout=max(budget.remaining(), 0.01))
        except asyncio.TimeoutError:
            logger.warning("[ALTERNATIVES] discovery exceeded budget, using synthetic candidates")
        except Exception as e:
            logger.warning(f"[ALTERNATIVES] discovery failed: {type(e).__name__}: {e}")
        return []


def build_product_info(query: ProductQuery, results: list[ProviderResult]) -> dict[str, Any]:
    """메타데이터 소스 결과를 상품 정보 하나로 정리

    이름/브랜드/카테고리: 바코드 DB → 리테일 → 쿼리 순
    가격: 리테일 중 최저가
    이미지: 이미지 검색 → 바코드 DB 이미지 → 리테일 이미지
    """
    metadata = {r.source_name: r.metadata for r in results if r.role == SourceRole.METADATA and r.metadata}
    barcode = metadata.get("barcode_lookup", {})
    retail = [metadata[name] for name in ("walmart", "amazon") if name in metadata]

    def first(field: str) -> Optional[str]:
        for source in [barcode, *retail]:
            value = source.get(field)
            if value and not source.get("estimated"):
                return value
        return None

    offers = [
        {
            "retailer": r.get("retailer"),
            "price": r.get("price"),
            "currency": r.get("currency"),
            "product_url": r.get("product_url"),
            "estimated": bool(r.get("estimated")),
        }
        for r in retail
        if r.get("price") is not None
    ]
    lowest = min(offers, key=lambda o: o["price"]) if offers else None

    images = list((metadata.get("image_search") or {}).get("images") or [])
    images += list(barcode.get("images") or [])
    images += [{"url": r["image_url"], "quality": "medium"} for r in retail if r.get("image_url")]
    best_image = select_best_image(images)

    return {
        "name": first("product_name") or query.display_name,
        "brand": first("brand") or query.brand or "",
        "category": first("category") or query.category or "",
        "barcode": query.canonical_id if query.is_barcode else None,
        "description": barcode.get("description") or "",
        "image_url": best_image["url"] if best_image else None,
        "lowest_price": lowest,
        "offers": offers,
    }
