"""대체 상품 엔진/전략 단위 테스트 (검색은 FakeSearch)"""

from unittest.mock import AsyncMock

import pytest

from ecosnap.alternatives.strategies import (
    category_group,
    eco_brand_key,
    search_ai_suggestions,
    search_by_category,
    search_eco_brands,
    search_similar_names,
    summary_to_candidate,
    synthetic_candidates,
)
from ecosnap.core.exceptions import NoCandidatesFoundException
from ecosnap.providers.open_food_facts import ProductSummary
from ecosnap.schemas.product_schema import AlternativeCandidate, ProductQuery
from ecosnap.utils.resource_loader import load_alternatives_catalog
from tests.fakes import FakeSearch, make_alternatives


@pytest.fixture
def catalog():
    return load_alternatives_catalog()


def summary(name, brand="EcoBrand", eco=85.0, certifications=None):
    return ProductSummary(
        name=name, brand=brand, category="Beverages", eco_score=eco, certifications=certifications or []
    )


def cand(name, eco, brand="EcoBrand", real=True, strategy="category"):
    return AlternativeCandidate(
        id=f"{strategy}-{name}", name=name, brand=brand, eco_score=eco, real_data=real, strategy=strategy
    )


# ============================================================================
# 분류 헬퍼
# ============================================================================

@pytest.mark.parametrize(
    "text,group",
    [("Smartphone", "technology"), ("Beverages", "food"), ("Shampoo", "beauty"), ("Shoes", "clothing"), ("Widget", "default")],
)
def test_category_group(catalog, text, group):
    assert category_group(text, catalog) == group


@pytest.mark.parametrize(
    "text,key",
    [("Smartphone", "smartphone"), ("Electronics", "electronics"), ("Mobile", "electronics"), ("Beverages", "food"), ("Widget", "default")],
)
def test_eco_brand_key(catalog, text, key):
    assert eco_brand_key(text, catalog) == key


def test_summary_to_candidate():
    candidate = summary_to_candidate(summary("Oat Drink", certifications=["organic"]), "category", original=60)

    assert candidate.real_data
    assert candidate.eco_score == 85
    assert candidate.why_better == ["Eco score 85 vs 60", "Certified: organic"]
    assert summary_to_candidate(summary("No Score", eco=None), "category") is None


# ============================================================================
# 전략
# ============================================================================

@pytest.mark.asyncio
async def test_category_strategy_uses_group_terms(name_query, catalog):
    search = FakeSearch({"organic": [summary("Oat Drink")]})

    found = await search_by_category(name_query, search, catalog)

    assert search.calls == ["organic", "eco-friendly"]
    assert [c.name for c in found] == ["Oat Drink"]
    assert found[0].strategy == "category"


@pytest.mark.asyncio
async def test_category_strategy_raises_when_empty(name_query, catalog, fake_search):
    with pytest.raises(NoCandidatesFoundException):
        await search_by_category(name_query, fake_search, catalog)
    assert len(fake_search.calls) == 2


@pytest.mark.asyncio
async def test_similar_names_terms(name_query, catalog):
    search = FakeSearch(default=[summary("Eco Oat Drink")])

    found = await search_similar_names(name_query, search, catalog)

    assert search.calls == ["eco organic", "eco oat", "organic organic", "organic oat"]
    assert all(c.strategy == "similar" for c in found)


@pytest.mark.asyncio
async def test_ai_suggestions_verified_and_unverified(name_query, catalog):
    suggester = AsyncMock(
        return_value=[
            {"product_name": "Oat Drink", "brand": "Oatly", "eco_score": 85, "reasoning": "Less water"},
            {"product_name": "Fake Thing", "brand": "X"},
            {"product_name": "Soy Milk", "brand": "Alpro", "eco_score": 77},
        ]
    )
    search = FakeSearch({"Oatly Oat Drink": [summary("Oat Drink", brand="Oatly", eco=None)]})

    found = await search_ai_suggestions(name_query, search, suggester, catalog)
    by_name = {c.name: c for c in found}

    suggester.assert_awaited_once_with(name_query, 3)
    assert set(by_name) == {"Oat Drink", "Soy Milk"}
    assert by_name["Oat Drink"].real_data is True
    assert by_name["Oat Drink"].eco_score == 85
    assert by_name["Oat Drink"].why_better[0] == "Less water"
    assert by_name["Soy Milk"].real_data is False
    assert by_name["Soy Milk"].eco_score == 77


@pytest.mark.asyncio
async def test_ai_strategy_without_suggester(name_query, catalog):
    with pytest.raises(NoCandidatesFoundException):
        await search_ai_suggestions(name_query, FakeSearch(), None, catalog)


@pytest.mark.asyncio
async def test_eco_brand_terms(name_query, catalog):
    search = FakeSearch({"Organic Valley Beverages": [summary("Organic Valley Oat", brand="Organic Valley")]})

    found = await search_eco_brands(name_query, search, catalog)

    assert search.calls == ["Organic Valley Beverages", "Whole Foods Beverages"]
    assert [c.strategy for c in found] == ["brand"]


def test_synthetic_scores_lifted_above_original(catalog):
    query = ProductQuery.from_input(product_name="Widget")

    at_80 = synthetic_candidates(query, 80, catalog)
    at_90 = synthetic_candidates(query, 90, catalog)

    assert [c.eco_score for c in at_80] == [95, 84, 82]
    assert [c.eco_score for c in at_90] == [95, 95, 95]
    assert all(not c.real_data and c.strategy == "synthetic" for c in at_80)


def test_synthetic_group_templates_then_default(catalog):
    query = ProductQuery.from_input(product_name="Galaxy S24", category="Smartphone")

    names = [c.name for c in synthetic_candidates(query, 40, catalog)]

    assert names[:3] == ["Fairphone 5", "Refurbished iPhone", "Teracube 2e"]
    assert "Eco-Friendly Alternative" in names


# ============================================================================
# 선정 (select)
# ============================================================================

def test_only_strictly_better_and_padded(name_query):
    engine = make_alternatives()

    result = engine.select([cand("Same Score", 70), cand("Better", 75), cand("Best", 90)], name_query, original=70)

    assert [c.name for c in result[:2]] == ["Best", "Better"]
    assert len(result) == 3
    assert result[2].real_data is False
    assert all(c.eco_score > 70 for c in result)


def test_truncates_to_five_by_rank(name_query):
    engine = make_alternatives()
    candidates = [cand(f"Alternative {chr(65 + i)}", 71 + i) for i in range(8)]

    result = engine.select(candidates, name_query, original=70)

    assert len(result) == 5
    assert [c.eco_score for c in result] == [78, 77, 76, 75, 74]
    assert all(c.real_data for c in result)


def test_dedupes_first_seen_wins(name_query):
    engine = make_alternatives()
    candidates = [
        cand("Oat Drink", 80, brand="Oatly", strategy="category"),
        cand("  oat drink ", 85, brand="OATLY", strategy="brand"),
        cand("Soy Drink", 81),
        cand("Rice Drink", 82),
    ]

    result = engine.select(candidates, name_query, original=70)
    oat = [c for c in result if c.dedupe_key() == ("oat drink", "oatly")]

    assert len(oat) == 1
    assert oat[0].strategy == "category"


def test_excludes_original_product(name_query):
    engine = make_alternatives()

    result = engine.select([cand("organic oat milk", 95, brand="Other")], name_query, original=50)

    assert all(c.name.lower() != "organic oat milk" for c in result)
    assert len(result) == 3


def test_dedupe_keeps_names_differing_by_size_or_punctuation(name_query):
    engine = make_alternatives()
    candidates = [
        cand("Oat Milk (1L)", 90, brand="Oatly"),
        cand("Oat Milk (2L)", 88, brand="Oatly"),
        cand("Castile Soap", 86, brand="Dr. Bronner's"),
        cand("Castile Soap", 84, brand="Dr Bronners"),
    ]

    result = engine.select(candidates, name_query, original=40)

    assert [c.name for c in result if c.real_data] == [
        "Oat Milk (1L)",
        "Oat Milk (2L)",
        "Castile Soap",
        "Castile Soap",
    ]


def test_keeps_better_product_containing_original_name():
    engine = make_alternatives()
    query = ProductQuery.from_input(product_name="Bamboo Toothbrush")

    result = engine.select([cand("Bamboo Toothbrush Kit", 90)], query, original=40)

    assert [c.name for c in result if c.real_data] == ["Bamboo Toothbrush Kit"]


def test_equal_rank_prefers_closer_name(name_query):
    engine = make_alternatives()
    candidates = [cand("Bamboo Straws", 80), cand("Organic Oat Milk Barista", 80), cand("Soy Drink", 80)]

    result = engine.select(candidates, name_query, original=70)

    assert result[0].name == "Organic Oat Milk Barista"


def test_rank_score(name_query):
    engine = make_alternatives()

    assert engine.rank_score(cand("A", 80), 70) == 110
    assert engine.rank_score(cand("B", 95, real=False), 70) == 115
    assert engine.rank_score(cand("C", 90, real=False), 70) == 90


def test_perfect_original_pads_at_100(name_query):
    engine = make_alternatives()

    result = engine.select([], name_query, original=100)

    assert len(result) == 3
    assert all(c.eco_score == 100 for c in result)


@pytest.mark.asyncio
async def test_discover_swallows_strategy_errors(name_query):
    async def broken(term, page_size):
        raise RuntimeError("search down")

    engine = make_alternatives(search=broken)

    assert await engine.discover(name_query) == []


@pytest.mark.asyncio
async def test_find_alternatives_end_to_end(name_query):
    search = FakeSearch(default=[summary("Oat Drink", brand="Oatly", eco=82)])
    engine = make_alternatives(search)

    result = await engine.find_alternatives(name_query, original=60)

    assert result[0].name == "Oat Drink"
    assert result[0].real_data
    assert 3 <= len(result) <= 5
    # 같은 상품이 여러 전략에서 나와도 한 번만
    assert sum(1 for c in result if c.name == "Oat Drink") == 1
