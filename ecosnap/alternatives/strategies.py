"""대체 상품 탐색 전략 4종 + 합성 후보

각 전략은 상품 검색 함수(search)를 받아 AlternativeCandidate 목록을 돌려줍니다.
찾은 것이 없으면 NoCandidatesFoundException을 던지고, 엔진이 이를 빈 결과로 처리합니다.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from ecosnap.core.exceptions import NoCandidatesFoundException
from ecosnap.providers.open_food_facts import ProductSummary
from ecosnap.schemas.product_schema import AlternativeCandidate, ProductQuery
from ecosnap.utils.hash_utils import generate_candidate_id
from ecosnap.utils.text import contains_any, significant_words


ProductSearch = Callable[[str, int], Awaitable[list[ProductSummary]]]
AISuggester = Callable[[ProductQuery, int], Awaitable[list[dict[str, Any]]]]


def category_group(text: str, catalog: dict[str, Any]) -> str:
    """카테고리 문자열 → technology / food / beauty / clothing / default"""
    for rule in catalog["category_groups"]:
        if contains_any(text, rule["keywords"]):
            return rule["group"]
    return "default"


def eco_brand_key(text: str, catalog: dict[str, Any]) -> str:
    """eco_brands 테이블 키 (직접 매칭 → 그룹 → default)"""
    brands = catalog["eco_brands"]
    lowered = (text or "").lower()
    for key in brands:
        if key != "default" and key in lowered:
            return key
    group = category_group(text, catalog)
    if group == "technology":
        return "electronics"
    return group if group in brands else "default"


def summary_to_candidate(
    summary: ProductSummary,
    strategy: str,
    original: Optional[float] = None,
) -> Optional[AlternativeCandidate]:
    """검색 결과 → 후보 (eco score가 없으면 None)"""
    if summary.eco_score is None:
        return None
    why = [f"Eco score {summary.eco_score:.0f}" + (f" vs {original:.0f}" if original is not None else "")]
    if summary.certifications:
        why.append("Certified: " + ", ".join(summary.certifications[:3]))
    return AlternativeCandidate(
        id=generate_candidate_id(strategy, summary.name, summary.brand),
        name=summary.name,
        brand=summary.brand,
        category=summary.category,
        eco_score=summary.eco_score,
        co2_impact=summary.co2_impact,
        certifications=summary.certifications,
        real_data=True,
        strategy=strategy,
        image_url=summary.image_url,
        why_better=why,
    )


async def _search_many(
    search: ProductSearch,
    terms: list[str],
    page_size: int,
    strategy: str,
) -> list[AlternativeCandidate]:
    batches = await asyncio.gather(*(search(term, page_size) for term in terms))
    out: list[AlternativeCandidate] = []
    for batch in batches:
        for summary in batch[:page_size]:
            candidate = summary_to_candidate(summary, strategy)
            if candidate is not None:
                out.append(candidate)
    return out


async def search_by_category(
    query: ProductQuery,
    search: ProductSearch,
    catalog: dict[str, Any],
) -> list[AlternativeCandidate]:
    """전략 1: 카테고리 친환경 키워드 검색"""
    group = category_group(query.category or query.display_name, catalog)
    terms = catalog["category_terms"].get(group) or catalog["category_terms"]["default"]
    found = await _search_many(
        search, terms[: catalog["category_terms_limit"]], catalog["category_results_per_term"], "category"
    )
    if not found:
        raise NoCandidatesFoundException(f"category:{group}")
    return found


async def search_similar_names(
    query: ProductQuery,
    search: ProductSearch,
    catalog: dict[str, Any],
) -> list[AlternativeCandidate]:
    """전략 2: eco 키워드 × 상품명 주요 단어"""
    words = significant_words(query.display_name, limit=catalog["similar_words_limit"])
    keywords = catalog["eco_keywords"][: catalog["similar_keywords_limit"]]
    terms = [f"{k} {w}" for k in keywords for w in words][: catalog["similar_queries_limit"]]
    if not terms:
        raise NoCandidatesFoundException(query.display_name)
    found = await _search_many(search, terms, catalog["similar_results_per_query"], "similar")
    if not found:
        raise NoCandidatesFoundException(query.display_name)
    return found


async def search_ai_suggestions(
    query: ProductQuery,
    search: ProductSearch,
    suggester: Optional[AISuggester],
    catalog: dict[str, Any],
) -> list[AlternativeCandidate]:
    """전략 3: AI 추천 → 실제 검색으로 검증

    검증되면 real_data=True, 안 되면 AI가 준 eco_score로 real_data=False (점수 없으면 버림)
    """
    if suggester is None:
        raise NoCandidatesFoundException(f"ai:{query.display_name}")

    suggestions = await suggester(query, catalog["ai_suggestion_count"])

    async def verify(suggestion: dict[str, Any]) -> Optional[AlternativeCandidate]:
        name = str(suggestion.get("product_name") or "").strip()
        brand = str(suggestion.get("brand") or "").strip()
        if not name:
            return None
        ai_score = suggestion.get("eco_score")
        ai_score = float(ai_score) if isinstance(ai_score, (int, float)) else None

        matches = await search(f"{brand} {name}".strip(), 1)
        if matches:
            summary = matches[0]
            if summary.eco_score is None and ai_score is not None:
                summary.eco_score = max(0.0, min(100.0, ai_score))
            candidate = summary_to_candidate(summary, "ai")
            if candidate is not None and suggestion.get("reasoning"):
                candidate.why_better.insert(0, str(suggestion["reasoning"]))
            return candidate

        if ai_score is None:
            return None
        return AlternativeCandidate(
            id=generate_candidate_id("ai", name, brand),
            name=name,
            brand=brand,
            category=query.category or "",
            eco_score=max(0.0, min(100.0, ai_score)),
            certifications=[str(c) for c in suggestion.get("certifications") or [] if c],
            real_data=False,
            strategy="ai",
            why_better=[str(suggestion["reasoning"])] if suggestion.get("reasoning") else [],
        )

    verified = await asyncio.gather(*(verify(s) for s in suggestions))
    found = [c for c in verified if c is not None]
    if not found:
        raise NoCandidatesFoundException(f"ai:{query.display_name}")
    return found


async def search_eco_brands(
    query: ProductQuery,
    search: ProductSearch,
    catalog: dict[str, Any],
) -> list[AlternativeCandidate]:
    """전략 4: 카테고리별 알려진 친환경 브랜드"""
    key = eco_brand_key(query.category or query.display_name, catalog)
    brands = catalog["eco_brands"][key][: catalog["eco_brands_limit"]]
    suffix = f" {query.category}" if query.category else ""
    found = await _search_many(search, [f"{b}{suffix}" for b in brands], 1, "brand")
    if not found:
        raise NoCandidatesFoundException(f"brand:{key}")
    return found


def synthetic_candidates(
    query: ProductQuery,
    original: float,
    catalog: dict[str, Any],
) -> list[AlternativeCandidate]:
    """카테고리별 합성 후보 (real_data=False)

    템플릿 점수가 원본 이하이면 원본과 100 사이로 올림. 원본이 100이면 100으로 둠
    """
    group = category_group(query.category or query.display_name, catalog)
    templates = list(catalog["synthetic"].get(group) or [])
    if group != "default":
        templates += catalog["synthetic"]["default"]

    out: list[AlternativeCandidate] = []
    for template in templates:
        eco = float(template["eco_score"])
        if "relative_bonus" in template:
            eco = min(float(template["max_score"]), original + float(template["relative_bonus"]))
        if eco <= original:
            # 원본이 100이면 "원본보다 높음"을 포기하고 최소 개수를 지킴 (100 동점 후보)
            eco = min(100.0, original + max(1, (100 - int(original)) // 2))
        out.append(
            AlternativeCandidate(
                id=generate_candidate_id("synthetic", template["name"], template["brand"]),
                name=template["name"],
                brand=template["brand"],
                category=template.get("category") or query.category or "",
                eco_score=eco,
                co2_impact=template.get("co2_impact"),
                certifications=list(template.get("certifications") or []),
                real_data=False,
                strategy="synthetic",
                why_better=list(template.get("why_better") or []),
            )
        )
    return out
