"""결과 캐시 서비스 - TTL 기반 key/value 저장소

- 키: ProductQuery 지문 (analysis:{md5})
- 값: pydantic 모델(JSON 직렬화)
- 만료: 조회 시점에 now - created_at > ttl_hours 이면 miss 처리 후 즉시 삭제
- 같은 키에 다시 put 하면 덮어씀 (last writer wins)
"""
import json
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError
from redis import Redis

from ecosnap.core.config import settings
from ecosnap.core.exceptions import (
    CacheConnectionException,
    CacheSerializationException,
)
from ecosnap.core.logging import logger
from ecosnap.schemas.product_schema import AnalysisResult


ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class CacheEntry:
    """캐시 엔트리 (직렬화된 값 + 생성 시각 + TTL)"""

    key: str
    value: str
    created_at: float
    ttl_hours: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl_hours * 3600

    def to_json(self) -> str:
        return json.dumps(
            {"value": self.value, "created_at": self.created_at, "ttl_hours": self.ttl_hours},
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, key: str, raw: str) -> "CacheEntry":
        data = json.loads(raw)
        return cls(
            key=key,
            value=data["value"],
            created_at=float(data["created_at"]),
            ttl_hours=float(data["ttl_hours"]),
        )


class TTLStore(Protocol):
    """엔트리 저장소 인터페이스"""

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        ...

    def put_entry(self, entry: CacheEntry) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def health_check(self) -> bool:
        ...


class InMemoryTTLStore:
    """프로세스 메모리 저장소 (기본값)"""

    backend_name = "memory"

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def put_entry(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._entries)


class RedisTTLStore:
    """Redis 저장소

    만료 판정은 CacheService가 created_at 기준으로 하고,
    Redis 자체 TTL은 정리용으로만 TTL보다 조금 길게 걸어 둡니다.
    """

    backend_name = "redis"

    def __init__(self, redis_url: str = "", client: Optional[Redis] = None):
        if client is not None:
            self.redis_client = client
            return
        try:
            self.redis_client = Redis.from_url(
                redis_url or settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            # 연결 테스트
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise CacheConnectionException(str(e)) from e

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        try:
            raw = self.redis_client.get(key)
        except Exception as e:
            logger.error(f"Cache read error: {e}")
            raise CacheConnectionException(f"read failed: {e}") from e

        if not raw:
            return None
        try:
            return CacheEntry.from_json(key, raw)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise CacheSerializationException("deserialize", str(e), {"key": key}) from e

    def put_entry(self, entry: CacheEntry) -> None:
        expire_seconds = max(1, math.ceil(entry.ttl_hours * 3600) + 60)
        try:
            self.redis_client.setex(entry.key, expire_seconds, entry.to_json())
        except Exception as e:
            logger.error(f"Cache write error: {e}")
            raise CacheConnectionException(f"write failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.redis_client.delete(key)
        except Exception as e:
            raise CacheConnectionException(f"delete failed: {e}") from e

    def health_check(self) -> bool:
        """Redis 연결 상태 확인"""
        try:
            return bool(self.redis_client.ping())
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return False


class CacheService(Generic[ModelT]):
    """TTL 캐시 서비스 (프로세스 공유, 단일 락)

    Usage:
        cache = CacheService(InMemoryTTLStore(), AnalysisResult)
        cache.put(key, result, ttl_hours=6)
        cached = cache.get(key)
    """

    def __init__(
        self,
        store: Optional[TTLStore] = None,
        model: Optional[Type[ModelT]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            store: 저장소 (없으면 메모리)
            model: 값 타입 (pydantic 모델)
            clock: 현재 시각 (초). 테스트에서 주입
        """
        self.store: TTLStore = store or InMemoryTTLStore()
        self.model = model or AnalysisResult
        self.clock = clock
        self._lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return getattr(self.store, "backend_name", type(self.store).__name__)

    def get(self, key: str) -> Optional[ModelT]:
        """
        캐시 조회

        Returns:
            저장된 값 또는 None (없거나 만료)

        Raises:
            CacheConnectionException: 저장소 접근 실패
            CacheSerializationException: 저장된 값 역직렬화 실패
        """
        with self._lock:
            entry = self.store.get_entry(key)
            if entry is None:
                logger.debug(f"[CACHE] miss: {key}")
                return None

            if entry.is_expired(self.clock()):
                self.store.delete(key)
                logger.info(f"[CACHE] expired, evicted: {key}")
                return None

        try:
            value = self.model.model_validate_json(entry.value)
        except ValidationError as e:
            raise CacheSerializationException("deserialize", str(e), {"key": key}) from e

        logger.info(f"[CACHE] hit: {key}")
        return value

    def put(self, key: str, value: ModelT, ttl_hours: float) -> None:
        """
        캐시 저장 (덮어쓰기)

        Raises:
            ValueError: ttl_hours가 0 이하
            CacheConnectionException / CacheSerializationException
        """
        if ttl_hours <= 0:
            raise ValueError("ttl_hours must be positive")
        try:
            payload = value.model_dump_json()
        except (TypeError, ValueError) as e:
            raise CacheSerializationException("serialize", str(e), {"key": key}) from e

        entry = CacheEntry(key=key, value=payload, created_at=self.clock(), ttl_hours=ttl_hours)
        with self._lock:
            self.store.put_entry(entry)
        logger.info(f"[CACHE] set: {key}, TTL: {ttl_hours}h")

    def health_check(self) -> bool:
        return self.store.health_check()


def create_cache_service() -> CacheService:
    """설정(cache_backend)에 맞는 캐시 서비스 생성"""
    if settings.cache_backend == "redis":
        return CacheService(RedisTTLStore(settings.redis_url))
    return CacheService(InMemoryTTLStore())
