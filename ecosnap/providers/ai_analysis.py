"""AI 분석 어댑터 (role: secondary) + Gemini REST 클라이언트

분석기는 주입받는 비동기 함수입니다:
    async def analyzer(query: ProductQuery) -> dict
        {"overall_score": 0~100, "breakdown": {...}, "certifications": [...], "insights": [...]}

기본 분석기는 GeminiClient.analyze_product (API 키가 있을 때만).
"""

from __future__ import annotations

import json
import re
from typing import Any, Awaitable, Callable, Optional

from ecosnap.core.config import settings
from ecosnap.core.exceptions import MalformedResponseException, ProviderUnavailableException
from ecosnap.core.logging import logger
from ecosnap.providers.base import SourceAdapter
from ecosnap.providers.estimators import heuristic_eco_score
from ecosnap.providers.http_client import SharedHttpClient, get_shared_http_client
from ecosnap.schemas.product_schema import ProductQuery, ProviderResult, SourceRole


Analyzer = Callable[[ProductQuery], Awaitable[dict[str, Any]]]

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


ECO_SCORE_PROMPT = """You are an expert environmental scientist and sustainability analyst.
Analyze the given product and provide a comprehensive eco-score between 0-100,
where 100 is the most environmentally friendly.

PRODUCT DATA:
- Name: {name}
- Category: {category}
- Brand: {brand}

Weigh carbon footprint (30%), resource consumption (25%), packaging (20%),
supply chain ethics (15%) and lifecycle impact (10%).

Respond with JSON only:
{{"overall_score": 75,
  "breakdown": {{"carbon_footprint": 0, "resource_consumption": 0, "packaging": 0, "supply_chain": 0, "lifecycle": 0}},
  "certifications": ["organic"],
  "insights": ["..."]}}"""


ALTERNATIVES_PROMPT = """Find {count} real, specific eco-friendly alternatives to "{name}"{brand_clause}.
Category: {category}

Respond with JSON only:
{{"alternatives": [
  {{"product_name": "exact product name", "brand": "real brand", "eco_score": 85,
    "reasoning": "why it's more eco-friendly", "certifications": ["real certifications if any"]}}
]}}

Only suggest real, existing products with actual brand names. No fictional products."""


class GeminiClient:
    """Gemini generateContent REST 클라이언트

    기본 모델이 HTTP 400을 반환하면 fallback 모델로 한 번 재시도합니다.
    """

    source_name = "ai_analysis"

    def __init__(self, http_client: Optional[SharedHttpClient] = None, timeout_s: float = 10.0):
        self.http = http_client or get_shared_http_client()
        self.timeout_s = timeout_s

    @property
    def is_configured(self) -> bool:
        return bool(settings.gemini_api_key)

    def _url(self, model: str) -> str:
        return f"{settings.gemini_api_url}/models/{model}:generateContent?key={settings.gemini_api_key}"

    async def generate_json(self, prompt: str) -> Any:
        """프롬프트 → JSON 응답

        Raises:
            ProviderUnavailableException: 키 없음 / 네트워크 / non-2xx
            MalformedResponseException: 응답 구조/JSON 파싱 실패
        """
        if not self.is_configured:
            raise ProviderUnavailableException(self.source_name, "gemini api key missing")

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.2, "responseMimeType": "application/json"},
        }
        response = await self.http.post_json(self._url(settings.gemini_model), payload, timeout_s=self.timeout_s)
        if response is not None and response[0] == 400 and settings.gemini_fallback_model:
            logger.info(f"[GEMINI] {settings.gemini_model} rejected request, retrying with {settings.gemini_fallback_model}")
            response = await self.http.post_json(
                self._url(settings.gemini_fallback_model), payload, timeout_s=self.timeout_s
            )

        if response is None:
            raise ProviderUnavailableException(self.source_name, "network error")
        status, text = response
        if status < 200 or status >= 300:
            raise ProviderUnavailableException(self.source_name, f"HTTP {status}", {"status": status})
        return self._extract_json(text)

    def _extract_json(self, text: str) -> Any:
        try:
            body = json.loads(text)
            content = body["candidates"][0]["content"]["parts"][0]["text"]
            return json.loads(_FENCE_RE.sub("", content).strip())
        except (json.JSONDecodeError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponseException(self.source_name, f"{type(e).__name__}: {e}") from e

    async def analyze_product(self, query: ProductQuery) -> dict[str, Any]:
        prompt = ECO_SCORE_PROMPT.format(
            name=query.display_name,
            category=query.category or "Unknown",
            brand=query.brand or "Unknown",
        )
        data = await self.generate_json(prompt)
        if not isinstance(data, dict):
            raise MalformedResponseException(self.source_name, "object expected")
        return data

    async def suggest_alternatives(self, query: ProductQuery, count: int = 3) -> list[dict[str, Any]]:
        prompt = ALTERNATIVES_PROMPT.format(
            count=count,
            name=query.display_name,
            brand_clause=f" by {query.brand}" if query.brand else "",
            category=query.category or "General",
        )
        data = await self.generate_json(prompt)
        suggestions = data.get("alternatives") if isinstance(data, dict) else None
        if not isinstance(suggestions, list):
            raise MalformedResponseException(self.source_name, "alternatives list expected")
        return [s for s in suggestions if isinstance(s, dict)]


class AIAnalysisAdapter(SourceAdapter):
    """주입된 analyzer 래퍼. 분석기가 없거나 실패하면 휴리스틱 5요소 점수"""

    source_name = "ai_analysis"
    role = SourceRole.SECONDARY
    request_timeout_s = 15.0

    def __init__(self, analyzer: Optional[Analyzer] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.analyzer = analyzer

    def is_configured(self) -> bool:
        return self.analyzer is not None

    async def _fetch_live(self, query: ProductQuery) -> ProviderResult:
        assert self.analyzer is not None
        data = await self.analyzer(query)
        score = data.get("overall_score") if isinstance(data, dict) else None
        if not isinstance(score, (int, float)):
            raise MalformedResponseException(self.source_name, "overall_score missing")

        breakdown = {
            k: float(v) for k, v in (data.get("breakdown") or {}).items() if isinstance(v, (int, float))
        }
        return self._success(
            partial_score=float(score),
            breakdown=breakdown,
            certifications=[str(c) for c in data.get("certifications") or [] if c],
            metadata={"insights": data.get("insights") or [], "analysis": "ai"},
        )

    def fallback(self, query: ProductQuery) -> ProviderResult:
        estimate = heuristic_eco_score(query)
        return self._estimate(
            partial_score=estimate.overall_score,
            breakdown=estimate.breakdown,
            certifications=estimate.certifications,
            metadata={"insights": estimate.insights, "analysis": "heuristic", "estimated": True},
        )
