"""Circuit Breaker + Metrics tracking for provider live calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from ecosnap.core.logging import logger


@dataclass
class CircuitBreakerMetrics:
    """live 호출 / fallback 메트릭 추적."""

    live_hits: int = 0
    live_misses: int = 0
    skipped: int = 0

    def record_live_hit(self) -> None:
        self.live_hits += 1

    def record_live_miss(self) -> None:
        self.live_misses += 1

    def record_skip(self) -> None:
        self.skipped += 1

    @property
    def live_success_rate(self) -> float:
        """live 호출 성공률 (0.0~1.0)."""
        total = self.live_hits + self.live_misses
        return self.live_hits / total if total > 0 else 0.0

    def __repr__(self) -> str:
        return (
            f"Metrics(live: {self.live_hits}H/{self.live_misses}M={self.live_success_rate:.1%}, "
            f"skipped: {self.skipped})"
        )


class CircuitBreaker:
    """프로바이더 Circuit Breaker (fail-open/fail-close).

    - 연속 실패 시 회로 개방 (live 호출 스킵, 바로 fallback)
    - 개방 후 일정 시간 후 자동 복구
    - 성공 시 즉시 회로 닫기 (복구)
    """

    def __init__(
        self,
        fail_threshold: int = 5,
        open_duration_sec: float = 60.0,
        name: str = "provider",
    ) -> None:
        """초기화.

        Args:
            fail_threshold: 회로 개방 임계값 (연속 실패 횟수)
            open_duration_sec: 개방 상태 유지 시간 (초)
            name: 로그용 프로바이더 이름
        """
        self.fail_threshold = fail_threshold
        self.open_duration_sec = open_duration_sec
        self.name = name

        self._fail_count = 0
        self._open_until: float = 0.0
        self.metrics = CircuitBreakerMetrics()

    def record_success(self) -> None:
        """성공 기록 → 회로 닫기."""
        self._fail_count = 0
        self._open_until = 0.0
        self.metrics.record_live_hit()

    def record_failure(self) -> None:
        """실패 기록 → 임계값 도달 시 회로 개방."""
        self._fail_count += 1
        self.metrics.record_live_miss()

        if self._fail_count >= self.fail_threshold:
            loop = asyncio.get_running_loop()
            self._open_until = loop.time() + self.open_duration_sec
            logger.warning(
                f"[CIRCUIT_BREAKER] {self.name} OPEN (fail_count={self._fail_count} >= {self.fail_threshold}). "
                f"Live calls skipped for {self.open_duration_sec}s"
            )

    def is_open(self) -> bool:
        """회로가 개방되었는가?"""
        if self._open_until <= 0.0:
            return False

        loop = asyncio.get_running_loop()
        if loop.time() >= self._open_until:
            # 자동 복구
            self._fail_count = 0
            self._open_until = 0.0
            logger.info(f"[CIRCUIT_BREAKER] {self.name} CLOSED (auto-recovery)")
            return False

        return True

    def get_remaining_open_time(self) -> float:
        """회로 개방 남은 시간 (초)."""
        if self._open_until <= 0.0:
            return 0.0

        loop = asyncio.get_running_loop()
        remaining = self._open_until - loop.time()
        return max(0.0, remaining)

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker({self.name}, fail_count={self._fail_count}/{self.fail_threshold}, "
            f"open_until={self._open_until:.1f})"
        )
