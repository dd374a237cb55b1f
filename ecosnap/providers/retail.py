"""리테일 가격 어댑터 (Walmart / Amazon, role: metadata)

가격 정보는 metadata에 정규화해서 담습니다:
price, list_price, savings, currency, retailer, product_url, image_url
"""

from __future__ import annotations

from typing import Any, Optional

from ecosnap.core.config import settings
from ecosnap.core.exceptions import MalformedResponseException, ProviderUnavailableException
from ecosnap.providers.base import SourceAdapter
from ecosnap.providers.estimators import detect_climate_pledge
from ecosnap.schemas.product_schema import ProductQuery, ProviderResult, SourceRole
from ecosnap.utils.resource_loader import load_estimator_tables


def price_summary(price: Optional[float], list_price: Optional[float], currency: str = "USD") -> dict[str, Any]:
    """가격/정가/할인액 정리"""
    savings = None
    if price is not None and list_price is not None and list_price > price:
        savings = round(list_price - price, 2)
    return {"price": price, "list_price": list_price, "savings": savings, "currency": currency}


def _to_price(value: Any) -> Optional[float]:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if price > 0 else None


class WalmartAdapter(SourceAdapter):
    """Walmart 상품 검색 (바코드면 UPC 조회)"""

    source_name = "walmart"
    role = SourceRole.METADATA

    def is_configured(self) -> bool:
        return bool(settings.walmart_api_key)

    async def _fetch_live(self, query: ProductQuery) -> ProviderResult:
        headers = {"WM_SEC.ACCESS_TOKEN": settings.walmart_api_key}
        if query.is_barcode:
            url, params = f"{settings.walmart_api_url}/items", {"upc": query.canonical_id, "format": "json"}
        else:
            url, params = f"{settings.walmart_api_url}/search", {"query": query.display_name, "format": "json"}

        response = await self.http.get_text(url, timeout_s=self.request_timeout_s, headers=headers, params=params)
        data = self._check_response(response)
        items = data.get("items") if isinstance(data, dict) else None
        if items is None:
            raise MalformedResponseException(self.source_name, "items missing")
        if not items:
            raise ProviderUnavailableException(self.source_name, "no items")

        item = items[0]
        price = _to_price(item.get("salePrice"))
        list_price = _to_price(item.get("msrp"))
        return self._success(
            metadata={
                "retailer": "walmart",
                "product_name": item.get("name") or query.display_name,
                "brand": item.get("brandName") or "",
                "product_url": item.get("productUrl"),
                "image_url": item.get("largeImage") or item.get("thumbnailImage"),
                "in_stock": item.get("stock") == "Available",
                **price_summary(price, list_price),
            },
        )

    def fallback(self, query: ProductQuery) -> ProviderResult:
        mock = load_estimator_tables()["retail"]["walmart"]
        return self._estimate(
            metadata={
                "retailer": "walmart",
                "product_name": query.display_name,
                "brand": query.brand or "",
                "product_url": None,
                "image_url": None,
                "in_stock": True,
                "estimated": True,
                **price_summary(float(mock["price"]), None, mock["currency"]),
            },
        )


class AmazonAdapter(SourceAdapter):
    """Amazon SP-API 카탈로그 검색 + Climate Pledge Friendly 탐지"""

    source_name = "amazon"
    role = SourceRole.METADATA

    def is_configured(self) -> bool:
        return bool(settings.amazon_client_id and settings.amazon_client_secret and settings.amazon_refresh_token)

    async def _access_token(self) -> str:
        response = await self.http.post_form(
            settings.amazon_token_url,
            {
                "grant_type": "refresh_token",
                "refresh_token": settings.amazon_refresh_token,
                "client_id": settings.amazon_client_id,
                "client_secret": settings.amazon_client_secret,
            },
            timeout_s=self.request_timeout_s,
        )
        data = self._check_response(response)
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise MalformedResponseException(self.source_name, "access_token missing")
        return token

    async def _fetch_live(self, query: ProductQuery) -> ProviderResult:
        token = await self._access_token()
        params = {
            "marketplaceIds": settings.amazon_marketplace_id,
            "includedData": "summaries,images,attributes",
        }
        if query.is_barcode:
            params.update({"identifiers": query.canonical_id, "identifiersType": "UPC"})
        else:
            params["keywords"] = query.display_name

        response = await self.http.get_text(
            f"{settings.amazon_api_url}/catalog/2022-04-01/items",
            timeout_s=self.request_timeout_s,
            headers={"x-amz-access-token": token},
            params=params,
        )
        data = self._check_response(response)
        items = data.get("items") if isinstance(data, dict) else None
        if items is None:
            raise MalformedResponseException(self.source_name, "items missing")
        if not items:
            raise ProviderUnavailableException(self.source_name, "no items")
        return self._map_item(items[0], query)

    def _map_item(self, item: dict[str, Any], query: ProductQuery) -> ProviderResult:
        summaries = item.get("summaries") or [{}]
        summary = summaries[0]
        attributes = item.get("attributes") or {}
        features = [b.get("value", "") for b in attributes.get("bullet_point", []) if isinstance(b, dict)]
        list_prices = attributes.get("list_price") or []
        list_price = _to_price(list_prices[0].get("value")) if list_prices and isinstance(list_prices[0], dict) else None

        image_url = None
        for group in item.get("images") or []:
            for image in group.get("images", []):
                if image.get("variant") == "MAIN":
                    image_url = image.get("link")
                    break
            if image_url:
                break

        climate_pledge = detect_climate_pledge(features)
        return self._success(
            metadata={
                "retailer": "amazon",
                "asin": item.get("asin"),
                "product_name": summary.get("itemName") or query.display_name,
                "brand": summary.get("brand") or "",
                "product_url": f"https://www.amazon.com/dp/{item['asin']}" if item.get("asin") else None,
                "image_url": image_url,
                "climate_pledge_friendly": climate_pledge,
                "sustainability_features": [f for f in features if detect_climate_pledge([f])],
                **price_summary(None, list_price),
            },
            certifications=["Climate Pledge Friendly"] if climate_pledge else [],
        )

    def fallback(self, query: ProductQuery) -> ProviderResult:
        mock = load_estimator_tables()["retail"]["amazon"]
        rng = self.rng(query)
        # 같은 쿼리면 항상 같은 값
        climate_pledge = rng.random() < mock["climate_pledge_probability"]
        features = ["Recyclable packaging"] if rng.random() < 0.5 else []
        return self._estimate(
            metadata={
                "retailer": "amazon",
                "asin": None,
                "product_name": query.display_name,
                "brand": query.brand or "",
                "product_url": None,
                "image_url": None,
                "climate_pledge_friendly": climate_pledge,
                "sustainability_features": features,
                "estimated": True,
                **price_summary(float(mock["price"]), float(mock["list_price"]), mock["currency"]),
            },
            certifications=["Climate Pledge Friendly"] if climate_pledge else [],
        )
