"""Alternatives Engine - 대체 상품 탐색/선정

discover(query): 네트워크 단계. 4개 전략을 동시에 실행 (점수 fan-out과 겹쳐서 실행 가능)
select(candidates, query, original): 순수 단계. 필터 → 중복 제거 → 랭킹 → 자르기 → 패딩
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Iterable, Optional

from ecosnap.core.exceptions import NoCandidatesFoundException
from ecosnap.core.logging import logger, sanitize_for_log
from ecosnap.providers.ai_analysis import GeminiClient
from ecosnap.providers.open_food_facts import OpenFoodFactsClient
from ecosnap.schemas.product_schema import AlternativeCandidate, ProductQuery
from ecosnap.utils.resource_loader import load_alternatives_catalog
from ecosnap.utils.text import fuzzy_score, same_name

from .strategies import (
    AISuggester,
    ProductSearch,
    search_ai_suggestions,
    search_by_category,
    search_eco_brands,
    search_similar_names,
    synthetic_candidates,
)


class AlternativesEngine:
    """대체 상품 엔진

    Usage:
        engine = AlternativesEngine()
        candidates = await engine.discover(query)
        alternatives = engine.select(candidates, query, original=score.overall_score)
    """

    def __init__(
        self,
        search: Optional[ProductSearch] = None,
        suggester: Optional[AISuggester] = None,
        catalog: Optional[dict[str, Any]] = None,
        use_default_suggester: bool = True,
    ):
        """
        Args:
            search: 상품 검색 함수 (기본 Open Food Facts)
            suggester: AI 추천 함수 (기본: Gemini 키가 있으면 GeminiClient)
            catalog: alternatives.yaml 내용
        """
        self.search: ProductSearch = search or OpenFoodFactsClient().search
        if suggester is None and use_default_suggester:
            gemini = GeminiClient()
            if gemini.is_configured:
                suggester = gemini.suggest_alternatives
        self.suggester = suggester
        self.catalog = catalog or load_alternatives_catalog()

    async def discover(self, query: ProductQuery) -> list[AlternativeCandidate]:
        """4개 전략 동시 실행. 결과는 category → similar → ai → brand 순으로 이어 붙임"""
        batches = await asyncio.gather(
            self._run("category", search_by_category(query, self.search, self.catalog)),
            self._run("similar", search_similar_names(query, self.search, self.catalog)),
            self._run("ai", search_ai_suggestions(query, self.search, self.suggester, self.catalog)),
            self._run("brand", search_eco_brands(query, self.search, self.catalog)),
        )
        candidates = [c for batch in batches for c in batch]
        logger.info(
            f"[ALTERNATIVES] discovered {len(candidates)} candidates for "
            f"'{sanitize_for_log(query.display_name)}' ({', '.join(str(len(b)) for b in batches)})"
        )
        return candidates

    async def _run(self, name: str, coro: Awaitable[list[AlternativeCandidate]]) -> list[AlternativeCandidate]:
        try:
            return await coro
        except NoCandidatesFoundException as e:
            logger.debug(f"[ALTERNATIVES] {name}: {e}")
        except Exception as e:
            logger.warning(f"[ALTERNATIVES] strategy {name} failed: {type(e).__name__}: {e}")
        return []

    def select(
        self,
        candidates: Iterable[AlternativeCandidate],
        query: ProductQuery,
        original: float,
    ) -> list[AlternativeCandidate]:
        """원본보다 좋은 후보만 → (name, brand) 중복 제거 → rank_score 정렬 → 최대 5개 → 최소 3개 패딩"""
        max_results = self.catalog["max_results"]
        min_results = self.catalog["min_results"]

        seen: set[tuple[str, str]] = set()
        unique: list[AlternativeCandidate] = []
        for candidate in candidates:
            if candidate.eco_score <= original:
                continue
            if same_name(candidate.name, query.display_name):
                continue
            key = candidate.dedupe_key()
            if key in seen:
                continue
            seen.add(key)
            unique.append(candidate.model_copy(update={"rank_score": self.rank_score(candidate, original)}))

        ranked = self.rank(unique, query)[:max_results]
        if len(ranked) < min_results:
            padding = self.pad(query, original, seen, min_results - len(ranked))
            logger.info(f"[ALTERNATIVES] {len(ranked)} real candidates, padded with {len(padding)} synthetic")
            ranked.extend(padding)
        return ranked

    def pad(
        self,
        query: ProductQuery,
        original: float,
        seen: set[tuple[str, str]],
        needed: int,
    ) -> list[AlternativeCandidate]:
        out: list[AlternativeCandidate] = []
        for candidate in synthetic_candidates(query, original, self.catalog):
            if len(out) >= needed:
                break
            key = candidate.dedupe_key()
            if key in seen or same_name(candidate.name, query.display_name):
                continue
            seen.add(key)
            out.append(candidate.model_copy(update={"rank_score": self.rank_score(candidate, original)}))
        return self.rank(out, query)

    @staticmethod
    def rank(candidates: list[AlternativeCandidate], query: ProductQuery) -> list[AlternativeCandidate]:
        """rank_score 내림차순, 동점이면 원본 이름과 더 비슷한 후보 먼저"""
        return sorted(
            candidates,
            key=lambda c: (c.rank_score, fuzzy_score(query.display_name, c.name)),
            reverse=True,
        )

    def rank_score(self, candidate: AlternativeCandidate, original: float) -> float:
        """real_data 보너스 + eco_score + 큰 개선 보너스"""
        score = candidate.eco_score
        if candidate.real_data:
            score += self.catalog["real_data_bonus"]
        if candidate.eco_score - original > self.catalog["significant_improvement"]:
            score += self.catalog["improvement_bonus"]
        return score

    async def find_alternatives(self, query: ProductQuery, original: float) -> list[AlternativeCandidate]:
        return self.select(await self.discover(query), query, original)
