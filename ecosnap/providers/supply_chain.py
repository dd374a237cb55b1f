"""HowGood 공급망 지속가능성 어댑터 (role: supply_chain)"""

from __future__ import annotations

from typing import Any

from ecosnap.core.config import settings
from ecosnap.core.exceptions import MalformedResponseException
from ecosnap.providers.base import SourceAdapter
from ecosnap.providers.estimators import estimate_supply_chain
from ecosnap.schemas.product_schema import ProductQuery, ProviderResult, SourceRole


class HowGoodAdapter(SourceAdapter):
    """공급망 투명성/생물다양성/노동 조건 기반 지속가능성 점수"""

    source_name = "howgood"
    role = SourceRole.SUPPLY_CHAIN

    def is_configured(self) -> bool:
        return bool(settings.howgood_api_key)

    async def _fetch_live(self, query: ProductQuery) -> ProviderResult:
        payload = {
            "product_name": query.display_name,
            "brand": query.brand,
            "category": query.category,
            "barcode": query.canonical_id if query.is_barcode else None,
        }
        response = await self.http.post_json(
            f"{settings.howgood_api_url}/products/analyze",
            payload,
            timeout_s=self.request_timeout_s,
            headers={"Authorization": f"Bearer {settings.howgood_api_key}"},
        )
        data = self._check_response(response)
        return self._map_response(data)

    def _map_response(self, data: Any) -> ProviderResult:
        if not isinstance(data, dict) or not isinstance(data.get("overall_score"), (int, float)):
            raise MalformedResponseException(self.source_name, "overall_score missing")

        breakdown = {}
        for key, name in (
            ("biodiversity_impact", "biodiversity"),
            ("supply_chain_transparency", "transparency"),
            ("labor_conditions", "labor"),
        ):
            value = data.get(key)
            if isinstance(value, (int, float)):
                breakdown[name] = float(value)

        certifications = [str(c) for c in data.get("certifications") or [] if c]
        return self._success(
            partial_score=float(data["overall_score"]),
            certifications=certifications,
            breakdown=breakdown,
            metadata={"carbon_footprint_kg": data.get("carbon_footprint_kg")},
        )

    def fallback(self, query: ProductQuery) -> ProviderResult:
        estimate = estimate_supply_chain(query)
        return self._estimate(
            partial_score=estimate.sustainability_score,
            certifications=estimate.certifications,
            breakdown=estimate.breakdown,
            metadata={
                "carbon_footprint_kg": estimate.carbon_footprint,
                "profile": estimate.profile,
                "estimated": True,
            },
        )
