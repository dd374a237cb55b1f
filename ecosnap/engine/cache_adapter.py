"""Cache Adapter - CacheService를 오케스트레이터용 비동기 인터페이스로 변환"""

import asyncio
from typing import Optional

from ecosnap.core.exceptions import CacheException
from ecosnap.core.logging import logger
from ecosnap.schemas.product_schema import AnalysisResult
from ecosnap.services.cache_service import CacheService
from ecosnap.utils.hash_utils import generate_cache_key


class CacheAdapter:
    """Cache 서비스 어댑터

    캐시는 best-effort이므로 모든 메서드는 예외를 던지지 않습니다.
    """

    def __init__(self, cache_service: Optional[CacheService] = None):
        """
        Args:
            cache_service: CacheService 인스턴스 (없으면 메모리 캐시 생성)
        """
        if cache_service is None:
            self.cache_service = CacheService()
        else:
            self.cache_service = cache_service

    @staticmethod
    def key_for(fingerprint: str) -> str:
        return generate_cache_key(fingerprint)

    async def get(self, fingerprint: str, timeout: float = 0.5) -> Optional[AnalysisResult]:
        """캐시 조회

        Returns:
            AnalysisResult or None (미스/만료/오류)
        """
        if not fingerprint or not isinstance(fingerprint, str):
            logger.warning(f"Invalid fingerprint for cache.get: {fingerprint!r}")
            return None
        try:
            # redis 백엔드는 블로킹이므로 스레드에서 실행
            return await asyncio.wait_for(
                asyncio.to_thread(self.cache_service.get, self.key_for(fingerprint)),
                timeout=max(timeout, 0.01),
            )
        except asyncio.TimeoutError:
            logger.warning(f"Cache get timeout: {fingerprint}")
            return None
        except CacheException as e:
            logger.warning(f"Cache get failed: {e}")
            return None
        except Exception as e:
            logger.warning(f"Cache get failed: {type(e).__name__}: {e}")
            return None

    async def set(self, fingerprint: str, value: AnalysisResult, ttl_hours: float) -> bool:
        """캐시 저장

        Returns:
            bool: 저장 성공 여부 (실패는 로깅만)
        """
        if not fingerprint or not isinstance(fingerprint, str):
            logger.warning(f"Invalid fingerprint for cache.set: {fingerprint!r}")
            return False
        try:
            await asyncio.to_thread(self.cache_service.put, self.key_for(fingerprint), value, ttl_hours)
            return True
        except CacheException as e:
            logger.warning(f"Cache set failed: {e}")
        except Exception as e:
            logger.warning(f"Cache set failed: {type(e).__name__}: {e}")
        return False
