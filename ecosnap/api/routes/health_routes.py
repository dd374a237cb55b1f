"""헬스 체크 엔드포인트"""
from datetime import datetime

from fastapi import APIRouter, Depends

from ecosnap import __version__
from ecosnap.api.routes.analysis_routes import get_cache_service
from ecosnap.core.exceptions import CacheConnectionException
from ecosnap.core.logging import logger
from ecosnap.schemas.product_schema import HealthResponse
from ecosnap.services.cache_service import CacheService

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(cache_service: CacheService = Depends(get_cache_service)):
    """
    헬스 체크 엔드포인트

    - 서버 상태
    - 캐시 백엔드 연결 상태 (캐시가 죽어도 분석은 가능하므로 degraded)
    """
    try:
        cache_ok = cache_service.health_check()
    except CacheConnectionException as e:
        logger.warning(f"Cache connection failed: {e.error_code}")
        cache_ok = False
    except Exception as e:
        logger.error(f"Unexpected cache error: {e}")
        cache_ok = False

    return HealthResponse(
        status="ok" if cache_ok else "degraded",
        timestamp=datetime.now(),
        version=__version__,
        cache_backend=cache_service.backend_name,
    )


@router.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "service": "지속가능성 분석 서비스",
        "version": __version__,
        "docs": "/docs",
    }
