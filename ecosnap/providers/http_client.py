"""공유 HTTP 클라이언트 (curl_cffi)

- 어댑터마다 AsyncSession을 만들면 TLS/커넥션 오버헤드가 커서
  프로세스 단위로 세션을 재사용합니다.
- 동시에 나가는 외부 요청 수는 http_max_in_flight로 제한합니다.
- 앱 종료 시 close()로 정리합니다.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from curl_cffi.requests import AsyncSession

from ecosnap.core.config import settings
from ecosnap.core.logging import logger, sanitize_for_log


class SharedHttpClient:
    def __init__(self, max_in_flight: Optional[int] = None) -> None:
        self._max_in_flight = max_in_flight or settings.http_max_in_flight
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock: Optional[asyncio.Lock] = None
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._session: Optional[AsyncSession] = None

    def _bind_loop(self) -> None:
        # 락/세마포어/세션은 이벤트 루프에 묶이므로 루프가 바뀌면 새로 만든다
        loop = asyncio.get_running_loop()
        if self._loop is loop:
            return
        self._loop = loop
        self._lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(self._max_in_flight)
        self._session = None

    async def _ensure_session(self) -> AsyncSession:
        self._bind_loop()
        assert self._lock is not None
        async with self._lock:
            if self._session is not None:
                return self._session
            self._session = AsyncSession(
                impersonate=settings.http_impersonate,
                headers=self.default_headers(),
                allow_redirects=True,
                max_clients=settings.http_max_clients,
                trust_env=False,
            )
            return self._session

    def default_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": settings.http_user_agent,
            "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def get_text(
        self,
        url: str,
        *,
        timeout_s: float,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[tuple[int, str]]:
        """GET 요청. 네트워크 오류면 None"""
        sess = await self._ensure_session()
        assert self._semaphore is not None
        async with self._semaphore:
            try:
                resp = await sess.get(url, headers=headers, params=params, timeout=timeout_s)
                status = getattr(resp, "status_code", 0) or 0
                text = getattr(resp, "text", "") or ""
                return status, text
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.info(f"[HTTP_CLIENT] GET {sanitize_for_log(url)} failed: {type(e).__name__}: {e!r}")
                return None

    async def post_json(
        self,
        url: str,
        payload: Any,
        *,
        timeout_s: float,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[tuple[int, str]]:
        """JSON POST 요청. 네트워크 오류면 None"""
        sess = await self._ensure_session()
        assert self._semaphore is not None
        async with self._semaphore:
            try:
                resp = await sess.post(url, json=payload, headers=headers, timeout=timeout_s)
                status = getattr(resp, "status_code", 0) or 0
                text = getattr(resp, "text", "") or ""
                return status, text
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.info(f"[HTTP_CLIENT] POST {sanitize_for_log(url)} failed: {type(e).__name__}: {e!r}")
                return None

    async def post_form(
        self,
        url: str,
        data: Dict[str, str],
        *,
        timeout_s: float,
    ) -> Optional[tuple[int, str]]:
        """form-urlencoded POST (OAuth 토큰 교환용). 네트워크 오류면 None"""
        sess = await self._ensure_session()
        assert self._semaphore is not None
        async with self._semaphore:
            try:
                resp = await sess.post(url, data=data, timeout=timeout_s)
                return (getattr(resp, "status_code", 0) or 0), (getattr(resp, "text", "") or "")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.info(f"[HTTP_CLIENT] POST form failed: {type(e).__name__}")
                return None

    async def close(self) -> None:
        if self._session is None:
            return
        try:
            await self._session.close()
        except Exception as e:
            logger.debug(f"[HTTP_CLIENT] close failed: {type(e).__name__}")
        self._session = None


_shared_http_client = SharedHttpClient()


def get_shared_http_client() -> SharedHttpClient:
    return _shared_http_client


async def shutdown_shared_http_client() -> None:
    await _shared_http_client.close()
