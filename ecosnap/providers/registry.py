"""Adapter Registry - source_name → SourceAdapter

어댑터는 기동 시 한 번 생성되어 여기에 등록되고, coordinator가 이름으로 찾아 씁니다.
"""

from __future__ import annotations

from typing import Iterator, Optional

from ecosnap.core.logging import logger
from ecosnap.providers.ai_analysis import AIAnalysisAdapter, Analyzer, GeminiClient
from ecosnap.providers.barcode import BarcodeLookupAdapter
from ecosnap.providers.base import SourceAdapter
from ecosnap.providers.carbon import ClimatiqAdapter
from ecosnap.providers.certification import FairTradeAdapter
from ecosnap.providers.http_client import SharedHttpClient, get_shared_http_client
from ecosnap.providers.image_search import ImageFinder, ImageSearchAdapter
from ecosnap.providers.retail import AmazonAdapter, WalmartAdapter
from ecosnap.providers.supply_chain import HowGoodAdapter


class AdapterRegistry:
    """등록된 어댑터 목록"""

    def __init__(self, adapters: Optional[list[SourceAdapter]] = None):
        self._adapters: dict[str, SourceAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: SourceAdapter) -> None:
        """같은 이름으로 다시 등록하면 교체"""
        if not adapter.source_name:
            raise ValueError(f"adapter without source_name: {adapter!r}")
        if adapter.source_name in self._adapters:
            logger.info(f"[REGISTRY] replacing adapter {adapter.source_name}")
        self._adapters[adapter.source_name] = adapter

    def get(self, source_name: str) -> Optional[SourceAdapter]:
        return self._adapters.get(source_name)

    def names(self) -> list[str]:
        return list(self._adapters)

    def __contains__(self, source_name: object) -> bool:
        return source_name in self._adapters

    def __iter__(self) -> Iterator[SourceAdapter]:
        return iter(self._adapters.values())

    def __len__(self) -> int:
        return len(self._adapters)


def build_default_registry(
    http_client: Optional[SharedHttpClient] = None,
    image_finder: Optional[ImageFinder] = None,
    analyzer: Optional[Analyzer] = None,
) -> AdapterRegistry:
    """기본 프로바이더 8종 등록

    analyzer를 주지 않으면 Gemini 키가 있을 때만 GeminiClient.analyze_product를 사용합니다.
    """
    http = http_client or get_shared_http_client()
    if analyzer is None:
        gemini = GeminiClient(http)
        if gemini.is_configured:
            analyzer = gemini.analyze_product

    registry = AdapterRegistry([
        HowGoodAdapter(http_client=http),
        ClimatiqAdapter(http_client=http),
        BarcodeLookupAdapter(http_client=http),
        FairTradeAdapter(http_client=http),
        WalmartAdapter(http_client=http),
        AmazonAdapter(http_client=http),
        ImageSearchAdapter(image_finder=image_finder, http_client=http),
        AIAnalysisAdapter(analyzer=analyzer, http_client=http),
    ])
    logger.info(f"[REGISTRY] {len(registry)} adapters registered: {', '.join(registry.names())}")
    return registry
