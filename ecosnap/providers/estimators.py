"""Fallback 추정기 모음 (순수 함수)

외부 API를 쓸 수 없을 때 어댑터가 사용하는 결정적 추정 로직입니다.
입력은 ProductQuery와 estimators.yaml 테이블뿐이며 네트워크/시간/난수에 의존하지 않습니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from ecosnap.schemas.product_schema import ProductQuery
from ecosnap.utils.resource_loader import load_estimator_tables
from ecosnap.utils.text import contains_any


def _tables(section: str, tables: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    return (tables or load_estimator_tables()).get(section, {})


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def detect_certifications(text: str, keyword_map: dict[str, str]) -> list[str]:
    """키워드 → 인증명 매핑으로 텍스트에서 인증 추출 (중복 제거, 순서 유지)"""
    lowered = (text or "").lower()
    found: list[str] = []
    for keyword, certification in keyword_map.items():
        if keyword.lower() in lowered and certification not in found:
            found.append(certification)
    return found


def match_first(text: str, keyword_groups: dict[str, Iterable[str]], default: str) -> str:
    """keyword_groups 순서대로 첫 번째로 매칭되는 그룹 이름"""
    for name, keywords in keyword_groups.items():
        if contains_any(text, keywords):
            return name
    return default


# ----------------------------------------------------------------------------
# 공급망 (HowGood)
# ----------------------------------------------------------------------------

@dataclass
class SupplyChainEstimate:
    sustainability_score: float
    carbon_footprint: float
    breakdown: dict[str, float]
    certifications: list[str]
    profile: str


def estimate_supply_chain(query: ProductQuery, tables: Optional[dict[str, Any]] = None) -> SupplyChainEstimate:
    """카테고리 프로파일 기반 공급망 지속가능성 추정

    organic 라벨이 있으면 점수 +15, 탄소 ×0.8, 생물다양성 +10
    """
    t = _tables("supply_chain", tables)
    text = query.search_text
    # 프로파일은 카테고리 우선, 없으면 상품명으로 판별
    profile_text = (query.category or query.display_name).lower()
    profile_name = match_first(profile_text, t["profile_keywords"], t["default_profile"])
    profile = dict(t["profiles"][profile_name])

    score = float(profile["sustainability_score"])
    carbon = float(profile["carbon_footprint"])
    biodiversity = float(profile["biodiversity_score"])

    # 예: category=dairy, name="Organic Whole Milk" → dairy 프로파일 + organic boost
    if "organic" in text and profile_name != "organic":
        boost = t["organic_boost"]
        score = _clamp(score + boost["sustainability_score"])
        carbon = carbon * boost["carbon_multiplier"]
        biodiversity = _clamp(biodiversity + boost["biodiversity_score"])

    return SupplyChainEstimate(
        sustainability_score=score,
        carbon_footprint=round(carbon, 2),
        breakdown={
            "biodiversity": biodiversity,
            "transparency": float(profile["transparency_score"]),
            "labor": float(profile["labor_score"]),
        },
        certifications=detect_certifications(text, t["certification_keywords"]),
        profile=profile_name,
    )


# ----------------------------------------------------------------------------
# 탄소 (Climatiq)
# ----------------------------------------------------------------------------

@dataclass
class CarbonEstimate:
    carbon_footprint: float
    sustainability_score: float
    emission_category: str
    modifiers: dict[str, float] = field(default_factory=dict)


def carbon_category(query: ProductQuery, tables: Optional[dict[str, Any]] = None) -> str:
    t = _tables("carbon", tables)
    return match_first(query.search_text, t["category_keywords"], "default")


def estimate_carbon(query: ProductQuery, tables: Optional[dict[str, Any]] = None) -> CarbonEstimate:
    """카테고리 배출계수 × 보정계수(organic, local, packaging)"""
    t = _tables("carbon", tables)
    text = query.search_text
    category = carbon_category(query, tables)
    factor = float(t["emission_factors"].get(category, t["emission_factors"]["default"]))

    modifiers: dict[str, float] = {}
    mods = t["modifiers"]
    if "organic" in text:
        modifiers["organic"] = mods["organic"]
    if contains_any(text, t["local_keywords"]):
        modifiers["local"] = mods["local"]

    intensity_table = t["packaging_intensity"]
    intensity = intensity_table["default"]
    for material, value in intensity_table.items():
        if material != "default" and material in text:
            intensity = value
            break
    modifiers["packaging"] = 1 + intensity * mods["packaging_factor"]

    footprint = factor
    for value in modifiers.values():
        footprint *= value
    footprint = round(footprint, 2)

    score = carbon_score(footprint, category, text, tables)
    return CarbonEstimate(
        carbon_footprint=footprint,
        sustainability_score=score,
        emission_category=category,
        modifiers=modifiers,
    )


def carbon_score(
    footprint: float,
    category: str,
    text: str = "",
    tables: Optional[dict[str, Any]] = None,
) -> float:
    """탄소 발자국 → 0~100 점수 (카테고리 최선값 대비)

    score = 100 - (max(0, cf - best) / max(avg - best, 1)) * 100 + 보너스
    """
    t = _tables("carbon", tables)
    averages = t["category_averages"]
    best_values = t["category_best"]
    avg = float(averages.get(category, averages["default"]))
    best = float(best_values.get(category, best_values["default"]))

    score = 100 - (max(0.0, footprint - best) / max(avg - best, 1.0)) * 100
    lowered = (text or "").lower()
    for keyword, bonus in t["bonuses"].items():
        if keyword in lowered:
            score += bonus
    return round(_clamp(score), 1)


# ----------------------------------------------------------------------------
# 인증 (Fair Trade)
# ----------------------------------------------------------------------------

@dataclass
class CertificationEstimate:
    score: float
    certified: bool
    certifications: list[str]
    matched_keywords: list[str]


def estimate_certification(
    query: ProductQuery,
    tables: Optional[dict[str, Any]] = None,
    certified: Optional[bool] = None,
) -> CertificationEstimate:
    """키워드/알려진 브랜드 기반 공정무역 인증 추정

    certified가 주어지면 (live 인증 조회 결과) 키워드 탐지 대신 그 값을 사용
    """
    t = _tables("certification", tables)
    text = query.search_text
    brand = (query.brand or "").lower()

    matched = [k for k in t["keywords"] if k in text]
    known_brand = any(b in brand or b in text for b in t["known_brands"])
    if certified is None:
        certified = bool(matched) or known_brand

    score = float(t["base_score"])
    certifications: list[str] = []
    if certified:
        score += t["certified_bonus"]
        certifications.append("Fair Trade")
    if "rainforest alliance" in matched:
        certifications.append("Rainforest Alliance")
    if "utz certified" in matched:
        certifications.append("UTZ Certified")
    if "organic" in text:
        score += t["organic_bonus"]
    if contains_any(text, t["fair_trade_categories"]):
        score += t["category_bonus"]

    return CertificationEstimate(
        score=_clamp(score),
        certified=certified,
        certifications=certifications,
        matched_keywords=matched,
    )


# ----------------------------------------------------------------------------
# 바코드 카테고리 추론
# ----------------------------------------------------------------------------

def infer_category(name: str, tables: Optional[dict[str, Any]] = None) -> str:
    """상품명 키워드로 카테고리 추론"""
    t = _tables("barcode", tables)
    for rule in t["category_keywords"]:
        if contains_any(name, rule["keywords"]):
            return rule["category"]
    return t["unknown_category"]


# ----------------------------------------------------------------------------
# 휴리스틱 5요소 eco score (AI 분석 fallback)
# ----------------------------------------------------------------------------

@dataclass
class HeuristicEstimate:
    overall_score: float
    breakdown: dict[str, float]
    certifications: list[str]
    insights: list[str]


def heuristic_eco_score(query: ProductQuery, tables: Optional[dict[str, Any]] = None) -> HeuristicEstimate:
    """탄소/자원/포장/공급망/수명 5요소 키워드 가감 + 가중 평균"""
    t = _tables("heuristic", tables)
    text = query.search_text
    base = float(t["base_score"])

    breakdown: dict[str, float] = {}
    for factor, adjustments in t["adjustments"].items():
        score = base
        for keyword, delta in adjustments.items():
            if keyword in text:
                score += delta
        breakdown[factor] = _clamp(score)

    weights = t["weights"]
    overall = sum(breakdown[f] * w for f, w in weights.items())
    overall = round(_clamp(overall))

    strongest = max(breakdown, key=lambda k: breakdown[k])
    weakest = min(breakdown, key=lambda k: breakdown[k])
    insights = []
    if breakdown[strongest] != breakdown[weakest]:
        insights.append(f"Strongest area: {strongest.replace('_', ' ')}")
        insights.append(f"Needs improvement: {weakest.replace('_', ' ')}")

    return HeuristicEstimate(
        overall_score=float(overall),
        breakdown=breakdown,
        certifications=detect_certifications(text, t["certification_keywords"]),
        insights=insights,
    )


# ----------------------------------------------------------------------------
# 리테일
# ----------------------------------------------------------------------------

def detect_climate_pledge(features: Iterable[str], tables: Optional[dict[str, Any]] = None) -> bool:
    """Amazon Climate Pledge Friendly 키워드 탐지"""
    keywords = _tables("retail", tables)["climate_pledge_keywords"]
    return any(contains_any(f, keywords) for f in features if f)
