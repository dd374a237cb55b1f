"""바코드 DB 어댑터 (role: metadata, 바코드 쿼리 전용)

1차: Barcode Lookup v3 (API 키 필요)
2차: UPCItemDB trial (키 불필요)
"""

from __future__ import annotations

from typing import Any, Optional

from ecosnap.core.config import settings
from ecosnap.core.exceptions import ProviderException, ProviderUnavailableException
from ecosnap.core.logging import logger
from ecosnap.providers.base import SourceAdapter
from ecosnap.providers.estimators import infer_category
from ecosnap.schemas.product_schema import ProductQuery, ProviderResult, SourceRole


class BarcodeLookupAdapter(SourceAdapter):
    """바코드 → 상품명/브랜드/카테고리/이미지/가격대"""

    source_name = "barcode_lookup"
    role = SourceRole.METADATA
    requires_barcode = True

    async def _fetch_live(self, query: ProductQuery) -> ProviderResult:
        product: Optional[dict[str, Any]] = None
        if settings.barcode_api_key:
            try:
                product = await self._primary_lookup(query.canonical_id)
            except ProviderException as e:
                # 2차 조회로 넘어감
                logger.info(f"[BARCODE] primary lookup failed: {e}")

        if product is None:
            product = await self._secondary_lookup(query.canonical_id)

        if product is None:
            raise ProviderUnavailableException(self.source_name, "product not found")
        return self._success(metadata=product)

    async def _primary_lookup(self, barcode: str) -> Optional[dict[str, Any]]:
        response = await self.http.get_text(
            f"{settings.barcode_api_url}/products",
            timeout_s=self.request_timeout_s,
            params={"barcode": barcode, "key": settings.barcode_api_key},
        )
        data = self._check_response(response)
        products = data.get("products") if isinstance(data, dict) else None
        if not products:
            return None
        return self._map_primary(products[0], barcode)

    async def _secondary_lookup(self, barcode: str) -> Optional[dict[str, Any]]:
        response = await self.http.get_text(
            f"{settings.upcitemdb_api_url}/lookup",
            timeout_s=self.request_timeout_s,
            params={"upc": barcode},
        )
        data = self._check_response(response)
        items = data.get("items") if isinstance(data, dict) else None
        if not items:
            return None
        return self._map_upc(items[0], barcode)

    @staticmethod
    def _map_primary(item: dict[str, Any], barcode: str) -> dict[str, Any]:
        title = item.get("title") or item.get("product_name") or ""
        stores = item.get("stores") or []
        prices = [float(s["price"]) for s in stores if isinstance(s, dict) and _is_number(s.get("price"))]
        return {
            "product_name": title,
            "brand": item.get("brand") or item.get("manufacturer") or "",
            "category": item.get("category") or infer_category(title),
            "description": item.get("description") or "",
            "barcode": item.get("barcode_number") or barcode,
            "images": [{"url": url, "quality": "medium"} for url in item.get("images") or [] if url],
            "price_range": {"min": min(prices), "max": max(prices)} if prices else None,
            "currency": "USD",
            "lookup_source": "barcodelookup",
        }

    @staticmethod
    def _map_upc(item: dict[str, Any], barcode: str) -> dict[str, Any]:
        title = item.get("title") or ""
        low, high = item.get("lowest_recorded_price"), item.get("highest_recorded_price")
        return {
            "product_name": title,
            "brand": item.get("brand") or "",
            "category": item.get("category") or infer_category(title),
            "description": item.get("description") or "",
            "barcode": item.get("upc") or barcode,
            "images": [{"url": url, "quality": "medium"} for url in item.get("images") or [] if url],
            "price_range": {"min": float(low), "max": float(high)} if _is_number(low) and _is_number(high) else None,
            "currency": "USD",
            "lookup_source": "upcitemdb",
        }

    def fallback(self, query: ProductQuery) -> ProviderResult:
        name = query.display_name if query.display_name != query.canonical_id else "Unknown Product"
        return self._estimate(
            metadata={
                "product_name": name,
                "brand": query.brand or "Unknown Brand",
                "category": query.category or infer_category(name),
                "description": f"Product information for {name}",
                "barcode": query.canonical_id,
                "images": [],
                "price_range": None,
                "currency": "USD",
                "estimated": True,
            },
        )


def _is_number(value: Any) -> bool:
    if isinstance(value, (int, float)):
        return True
    try:
        float(value)
        return True
    except (TypeError, ValueError):
        return False
