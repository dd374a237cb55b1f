"""이미지 검색 어댑터 (role: metadata)

이미지 검색기는 주입받는 비동기 함수입니다:
    async def image_finder(query: ProductQuery) -> list[dict]  # [{"url": ..., "quality": "high|medium|low"}]
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from ecosnap.core.exceptions import MalformedResponseException
from ecosnap.providers.base import SourceAdapter
from ecosnap.schemas.product_schema import ProductQuery, ProviderResult, SourceRole


ImageFinder = Callable[[ProductQuery], Awaitable[list[dict[str, Any]]]]

QUALITY_ORDER = ("high", "medium")


def select_best_image(images: list[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """high → medium → 첫 번째 순으로 대표 이미지 선택"""
    candidates = [img for img in images if isinstance(img, dict) and img.get("url")]
    for quality in QUALITY_ORDER:
        for image in candidates:
            if image.get("quality") == quality:
                return image
    return candidates[0] if candidates else None


class ImageSearchAdapter(SourceAdapter):
    """주입된 image_finder 래퍼"""

    source_name = "image_search"
    role = SourceRole.METADATA

    def __init__(self, image_finder: Optional[ImageFinder] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.image_finder = image_finder

    def is_configured(self) -> bool:
        return self.image_finder is not None

    async def _fetch_live(self, query: ProductQuery) -> ProviderResult:
        assert self.image_finder is not None
        images = await self.image_finder(query)
        if not isinstance(images, list):
            raise MalformedResponseException(self.source_name, "image list expected")

        best = select_best_image(images)
        return self._success(
            metadata={
                "image_url": best["url"] if best else None,
                "image_quality": best.get("quality") if best else None,
                "images": images,
            },
        )

    def fallback(self, query: ProductQuery) -> ProviderResult:
        return self._estimate(
            metadata={"image_url": None, "image_quality": None, "images": [], "estimated": True},
        )
