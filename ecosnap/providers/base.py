"""Source Adapter 기본 클래스

프로바이더 1개 = 어댑터 1개. 기동 시 한 번 생성되어 레지스트리에 보관됩니다.

계약:
- fetch(query): 절대 예외를 던지지 않음. live 성공이면 SUCCESS,
  아니면 같은 모양의 FELL_BACK 결과(결정적 추정치)를 반환
- fetch_live(query): live 호출만 수행. 실패는 FAILED(+error_code)로 변환
- fallback(query): 네트워크 없이 쿼리와 정적 테이블만으로 계산하는 순수 함수
- 캐시에는 쓰지 않음 (캐시는 오케스트레이터 담당)
"""

from __future__ import annotations

import asyncio
import json
import random
from abc import ABC, abstractmethod
from typing import Any, Optional

from ecosnap.core.config import settings
from ecosnap.core.exceptions import (
    MalformedResponseException,
    ProviderException,
    ProviderTimeoutException,
    ProviderUnavailableException,
)
from ecosnap.core.logging import logger
from ecosnap.providers.circuit_breaker import CircuitBreaker
from ecosnap.providers.http_client import SharedHttpClient, get_shared_http_client
from ecosnap.schemas.product_schema import (
    ProductQuery,
    ProviderResult,
    ProviderStatus,
    SourceRole,
)


class SourceAdapter(ABC):
    """외부 데이터 소스 어댑터"""

    source_name: str = ""
    role: SourceRole = SourceRole.METADATA
    # 바코드 쿼리에만 적용되는 소스
    requires_barcode: bool = False
    # live 호출 1회 HTTP 타임아웃 상한 (초). 실제 경쟁 타임아웃은 coordinator가 건다
    request_timeout_s: float = 10.0

    def __init__(
        self,
        http_client: Optional[SharedHttpClient] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.http = http_client or get_shared_http_client()
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            fail_threshold=settings.provider_fail_threshold,
            open_duration_sec=settings.provider_open_seconds,
            name=self.source_name,
        )

    # ------------------------------------------------------------------
    # 공개 API
    # ------------------------------------------------------------------

    def applies_to(self, query: ProductQuery) -> bool:
        """이 쿼리에 적용 가능한 소스인지"""
        if self.requires_barcode and not query.is_barcode:
            return False
        return True

    def is_configured(self) -> bool:
        """live 호출에 필요한 자격 증명이 있는지"""
        return True

    async def fetch(self, query: ProductQuery, timeout_s: Optional[float] = None) -> ProviderResult:
        """live 호출 → 실패 시 fallback 추정치 (예외 없음)"""
        try:
            if timeout_s is not None:
                live = await asyncio.wait_for(self.fetch_live(query), timeout=timeout_s)
            else:
                live = await self.fetch_live(query)
        except asyncio.TimeoutError:
            error = ProviderTimeoutException(self.source_name, (timeout_s or 0) * 1000)
            logger.info(f"[ADAPTER] {error}")
            return self.fallback_result(query, ProviderStatus.TIMED_OUT, error.error_code)

        if live.status == ProviderStatus.SUCCESS:
            return live
        return self.fallback_result(query, live.status, live.error_code)

    async def fetch_live(self, query: ProductQuery) -> ProviderResult:
        """live 호출만 수행. 모든 오류는 FAILED로 변환"""
        if not self.is_configured():
            logger.debug(f"[ADAPTER] {self.source_name} credentials missing, live call skipped")
            return ProviderResult.failed(self.source_name, self.role, "PROVIDER_UNAVAILABLE")

        if self.circuit_breaker.is_open():
            self.circuit_breaker.metrics.record_skip()
            logger.debug(
                f"[ADAPTER] {self.source_name} circuit open "
                f"({self.circuit_breaker.get_remaining_open_time():.1f}s left)"
            )
            return ProviderResult.failed(self.source_name, self.role, "CIRCUIT_OPEN")

        try:
            result = await self._fetch_live(query)
        except ProviderException as e:
            self.circuit_breaker.record_failure()
            logger.info(f"[ADAPTER] {self.source_name} live call failed: {e}")
            return ProviderResult.failed(self.source_name, self.role, e.error_code)
        except (ValueError, KeyError, TypeError) as e:
            self.circuit_breaker.record_failure()
            logger.info(f"[ADAPTER] {self.source_name} malformed payload: {type(e).__name__}: {e}")
            return ProviderResult.failed(self.source_name, self.role, "MALFORMED_RESPONSE")

        self.circuit_breaker.record_success()
        return result

    def fallback_result(
        self,
        query: ProductQuery,
        live_status: Optional[ProviderStatus] = None,
        error_code: Optional[str] = None,
    ) -> ProviderResult:
        """fallback 추정치 + live 호출 결과 기록. 추정기 자체가 실패하면 FAILED"""
        try:
            result = self.fallback(query)
        except Exception as e:
            logger.error(
                f"[ADAPTER] {self.source_name} fallback estimator failed: {type(e).__name__}: {e}",
                exc_info=True,
            )
            return ProviderResult.failed(self.source_name, self.role, "FALLBACK_ERROR")

        result.status = ProviderStatus.FELL_BACK
        result.live_status = live_status
        result.error_code = error_code
        return result

    @abstractmethod
    def fallback(self, query: ProductQuery) -> ProviderResult:
        """결정적 fallback 추정기 (네트워크 없음)"""

    @abstractmethod
    async def _fetch_live(self, query: ProductQuery) -> ProviderResult:
        """실제 외부 호출. ProviderException 계열로 실패를 알린다"""

    # ------------------------------------------------------------------
    # 하위 클래스 헬퍼
    # ------------------------------------------------------------------

    def rng(self, query: ProductQuery) -> random.Random:
        """쿼리+소스별 시드 PRNG (같은 쿼리면 같은 값)"""
        return random.Random(query.seed(self.source_name))

    def _success(self, **kwargs: Any) -> ProviderResult:
        return ProviderResult.success(self.source_name, self.role, **kwargs)

    def _estimate(self, **kwargs: Any) -> ProviderResult:
        return ProviderResult.fell_back(self.source_name, self.role, **kwargs)

    def _check_response(self, response: Optional[tuple[int, str]]) -> Any:
        """HTTP 응답 검증 후 JSON 파싱

        Raises:
            ProviderUnavailableException: 네트워크 오류 / non-2xx
            MalformedResponseException: JSON 파싱 실패
        """
        if response is None:
            raise ProviderUnavailableException(self.source_name, "network error")
        status, text = response
        if status < 200 or status >= 300:
            raise ProviderUnavailableException(self.source_name, f"HTTP {status}", {"status": status})
        try:
            return json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            raise MalformedResponseException(self.source_name, f"invalid JSON: {e}") from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.source_name}, role={self.role.value})"
