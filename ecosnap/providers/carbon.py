"""Climatiq 탄소 발자국 어댑터 (role: carbon)"""

from __future__ import annotations

from typing import Any

from ecosnap.core.config import settings
from ecosnap.core.exceptions import MalformedResponseException
from ecosnap.providers.base import SourceAdapter
from ecosnap.providers.estimators import carbon_category, carbon_score, estimate_carbon
from ecosnap.schemas.product_schema import ProductQuery, ProviderResult, SourceRole


# Climatiq activity id (카테고리 → 배출계수 식별자)
ACTIVITY_IDS = {
    "meat": "consumer_goods-type_meat_products_beef",
    "poultry": "consumer_goods-type_meat_products_poultry",
    "dairy": "consumer_goods-type_dairy_products",
    "fish": "consumer_goods-type_fish_products",
    "vegetables": "consumer_goods-type_vegetables",
    "fruits": "consumer_goods-type_fruits",
    "beverages": "consumer_goods-type_beverages",
    "electronics": "consumer_goods-type_electrical_equipment",
    "clothing": "consumer_goods-type_clothing",
    "default": "consumer_goods-type_food_products_not_elsewhere_specified",
}


class ClimatiqAdapter(SourceAdapter):
    """카테고리 배출계수로 kg CO2e를 산출하고 카테고리 최선값 대비 점수화"""

    source_name = "climatiq"
    role = SourceRole.CARBON

    def is_configured(self) -> bool:
        return bool(settings.climatiq_api_key)

    async def _fetch_live(self, query: ProductQuery) -> ProviderResult:
        category = carbon_category(query)
        payload = {
            "emission_factor": {
                "activity_id": ACTIVITY_IDS.get(category, ACTIVITY_IDS["default"]),
                "data_version": "^5",
            },
            "parameters": {"weight": 1, "weight_unit": "kg"},
        }
        response = await self.http.post_json(
            f"{settings.climatiq_api_url}/estimate",
            payload,
            timeout_s=self.request_timeout_s,
            headers={"Authorization": f"Bearer {settings.climatiq_api_key}"},
        )
        data = self._check_response(response)
        return self._map_response(data, query, category)

    def _map_response(self, data: Any, query: ProductQuery, category: str) -> ProviderResult:
        if not isinstance(data, dict):
            raise MalformedResponseException(self.source_name, "object expected")
        co2e = data.get("co2e")
        if not isinstance(co2e, (int, float)) or co2e < 0:
            raise MalformedResponseException(self.source_name, "co2e missing")

        score = carbon_score(float(co2e), category, query.search_text)
        return self._success(
            partial_score=score,
            breakdown={"carbon_footprint_kg": float(co2e)},
            metadata={
                "carbon_footprint_kg": float(co2e),
                "co2e_unit": data.get("co2e_unit", "kg"),
                "emission_category": category,
            },
        )

    def fallback(self, query: ProductQuery) -> ProviderResult:
        estimate = estimate_carbon(query)
        return self._estimate(
            partial_score=estimate.sustainability_score,
            breakdown={"carbon_footprint_kg": estimate.carbon_footprint},
            metadata={
                "carbon_footprint_kg": estimate.carbon_footprint,
                "emission_category": estimate.emission_category,
                "modifiers": estimate.modifiers,
                "estimated": True,
            },
        )
