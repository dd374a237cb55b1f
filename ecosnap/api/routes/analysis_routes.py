"""Analysis Routes - AnalysisOrchestrator로 위임하는 얇은 HTTP 레이어"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends

from ecosnap.core.config import settings
from ecosnap.core.exceptions import EcoSnapException
from ecosnap.core.logging import logger, sanitize_for_log
from ecosnap.engine import AnalysisOrchestrator, CacheAdapter
from ecosnap.providers import build_default_registry
from ecosnap.schemas.product_schema import AnalyzeRequest, AnalyzeResponse
from ecosnap.services.cache_service import CacheService, create_cache_service

router = APIRouter(prefix="/api/v1", tags=["analysis"])

# 싱글톤 서비스
_cache_service: Optional[CacheService] = None
_orchestrator: Optional[AnalysisOrchestrator] = None


def get_cache_service() -> CacheService:
    """CacheService 싱글톤 (settings.cache_backend)"""
    global _cache_service
    if _cache_service is None:
        _cache_service = create_cache_service()
    return _cache_service


def get_orchestrator(
    cache_service: CacheService = Depends(get_cache_service),
) -> AnalysisOrchestrator:
    """AnalysisOrchestrator 싱글톤

    어댑터 레지스트리와 소스 설정은 여기서 한 번만 만들어집니다.
    """
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AnalysisOrchestrator(
            registry=build_default_registry(),
            cache=CacheAdapter(cache_service),
        )
    return _orchestrator


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_product(
    request: AnalyzeRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """상품 지속가능성 분석 API

    Flow:
        1. 요청 검증 (바코드 또는 상품명)
        2. ProductQuery 생성
        3. Engine에 위임 (Cache → fan-out → 합성 → 대체 상품)
        4. 결과를 HTTP Response로 변환
    """
    try:
        query = request.to_query()
    except ValueError as e:
        logger.warning(f"[API] Query construction failed: {e}")
        return AnalyzeResponse(
            status="error",
            data=None,
            message=f"입력 검증 실패: {str(e)}",
            error_code="VALIDATION_ERROR",
        )

    logger.info(f"[API] Analyze request: query='{sanitize_for_log(query.canonical_id)}'")

    try:
        result = await asyncio.wait_for(
            orchestrator.analyze(query),
            timeout=settings.api_analyze_timeout_s,
        )
    except asyncio.TimeoutError:
        logger.error(f"[API] Timeout: query='{sanitize_for_log(query.canonical_id)}'")
        return AnalyzeResponse(
            status="error",
            data=None,
            message="분석 시간이 초과되었습니다. 잠시 후 다시 시도해주세요.",
            error_code="TIMEOUT",
        )
    except EcoSnapException as e:
        logger.warning(f"[API] Analysis rejected: {e}")
        return AnalyzeResponse(status="error", data=None, message=e.message, error_code=e.error_code)
    except Exception as e:
        logger.error(f"[API] Analysis failed: query='{sanitize_for_log(query.canonical_id)}'", exc_info=True)
        return AnalyzeResponse(
            status="error",
            data=None,
            message=f"분석 중 오류가 발생했습니다: {str(e)}",
            error_code="INTERNAL_ERROR",
        )

    return AnalyzeResponse(
        status="success",
        data=result,
        message="캐시된 분석 결과입니다." if result.from_cache else "분석을 완료했습니다.",
        error_code=None,
    )
