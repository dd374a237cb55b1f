"""Open Food Facts 상품 검색 클라이언트 (대체 상품 탐색용)

검색 실패는 빈 목록으로 처리합니다 (대체 상품은 합성 후보로 보충됨).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from ecosnap.core.config import settings
from ecosnap.core.logging import logger, sanitize_for_log
from ecosnap.providers.http_client import SharedHttpClient, get_shared_http_client


# eco-score 등급만 있을 때의 대표 점수
GRADE_SCORES = {"a": 90.0, "b": 75.0, "c": 55.0, "d": 35.0, "e": 20.0}


@dataclass
class ProductSummary:
    """검색 결과 1건"""

    name: str
    brand: str
    category: str
    eco_score: Optional[float]
    co2_impact: Optional[float] = None
    certifications: list[str] = field(default_factory=list)
    image_url: Optional[str] = None
    code: Optional[str] = None


def map_off_product(raw: dict[str, Any]) -> Optional[ProductSummary]:
    """OFF 상품 JSON → ProductSummary (이름이 없으면 None)"""
    name = (raw.get("product_name") or "").strip()
    if not name:
        return None

    eco_score: Optional[float] = None
    if isinstance(raw.get("ecoscore_score"), (int, float)):
        eco_score = max(0.0, min(100.0, float(raw["ecoscore_score"])))
    elif isinstance(raw.get("ecoscore_grade"), str):
        eco_score = GRADE_SCORES.get(raw["ecoscore_grade"].lower())

    co2: Optional[float] = None
    agribalyse = (raw.get("ecoscore_data") or {}).get("agribalyse") or {}
    if isinstance(agribalyse.get("co2_total"), (int, float)):
        co2 = float(agribalyse["co2_total"])

    labels = [t.split(":", 1)[-1].replace("-", " ") for t in raw.get("labels_tags") or [] if isinstance(t, str)]
    categories = (raw.get("categories") or "").split(",")
    return ProductSummary(
        name=name,
        brand=(raw.get("brands") or "").split(",")[0].strip(),
        category=categories[0].strip() if categories else "",
        eco_score=eco_score,
        co2_impact=co2,
        certifications=labels[:5],
        image_url=raw.get("image_front_url") or raw.get("image_url"),
        code=raw.get("code"),
    )


class OpenFoodFactsClient:
    """상품명 검색"""

    def __init__(self, http_client: Optional[SharedHttpClient] = None, timeout_s: float = 5.0):
        self.http = http_client or get_shared_http_client()
        self.timeout_s = timeout_s

    async def search(self, term: str, page_size: int = 5) -> list[ProductSummary]:
        response = await self.http.get_text(
            f"{settings.openfoodfacts_api_url}/cgi/search.pl",
            timeout_s=self.timeout_s,
            params={
                "search_terms": term,
                "search_simple": 1,
                "action": "process",
                "json": 1,
                "page_size": page_size,
            },
        )
        if response is None:
            return []
        status, text = response
        if status != 200:
            logger.info(f"[OFF] search '{sanitize_for_log(term)}' returned HTTP {status}")
            return []
        try:
            products = json.loads(text).get("products") or []
        except (json.JSONDecodeError, AttributeError) as e:
            logger.info(f"[OFF] malformed search response: {type(e).__name__}")
            return []

        results = []
        for raw in products:
            if isinstance(raw, dict):
                summary = map_off_product(raw)
                if summary is not None:
                    results.append(summary)
        return results
