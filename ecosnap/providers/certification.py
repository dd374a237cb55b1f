"""Fair Trade 인증 어댑터 (role: certification)"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

from ecosnap.core.config import settings
from ecosnap.core.exceptions import MalformedResponseException, ProviderUnavailableException
from ecosnap.providers.base import SourceAdapter
from ecosnap.providers.estimators import estimate_certification
from ecosnap.schemas.product_schema import ProductQuery, ProviderResult, SourceRole


class FairTradeAdapter(SourceAdapter):
    """상품 인증서 조회 → 없으면 브랜드 단위 인증 조회"""

    source_name = "fairtrade"
    role = SourceRole.CERTIFICATION

    def is_configured(self) -> bool:
        return bool(settings.fairtrade_api_key)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {settings.fairtrade_api_key}"}

    async def _fetch_live(self, query: ProductQuery) -> ProviderResult:
        data = await self._lookup_certificates(query)
        if data is None and query.brand:
            data = await self._lookup_brand(query.brand)
        if data is None:
            raise ProviderUnavailableException(self.source_name, "no certification data found")
        return self._map_response(data, query)

    async def _lookup_certificates(self, query: ProductQuery) -> Optional[dict[str, Any]]:
        response = await self.http.get_text(
            f"{settings.fairtrade_api_url}/certificates/search",
            timeout_s=self.request_timeout_s,
            headers=self._headers(),
            params={"q": query.display_name},
        )
        data = self._check_response(response)
        if isinstance(data, dict) and data.get("certificates"):
            return data
        return None

    async def _lookup_brand(self, brand: str) -> Optional[dict[str, Any]]:
        response = await self.http.get_text(
            f"{settings.fairtrade_api_url}/brands/{quote(brand)}/certificates",
            timeout_s=self.request_timeout_s,
            headers=self._headers(),
        )
        data = self._check_response(response)
        if isinstance(data, dict) and data.get("certificates"):
            return data
        return None

    def _map_response(self, data: dict[str, Any], query: ProductQuery) -> ProviderResult:
        certificates = data.get("certificates")
        if not isinstance(certificates, list):
            raise MalformedResponseException(self.source_name, "certificates must be a list")

        names: list[str] = []
        for cert in certificates:
            name = cert.get("name") if isinstance(cert, dict) else cert
            if name and str(name) not in names:
                names.append(str(name))

        # 점수 규칙은 추정기와 같고 인증 여부만 live 결과를 따름
        estimate = estimate_certification(query, certified=bool(names))
        return self._success(
            partial_score=estimate.score,
            certifications=names,
            metadata={"certified": bool(names), "certificate_count": len(names)},
        )

    def fallback(self, query: ProductQuery) -> ProviderResult:
        estimate = estimate_certification(query)
        return self._estimate(
            partial_score=estimate.score,
            certifications=estimate.certifications,
            metadata={
                "certified": estimate.certified,
                "matched_keywords": estimate.matched_keywords,
                "estimated": True,
            },
        )
