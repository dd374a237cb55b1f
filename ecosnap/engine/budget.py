"""Budget Manager - 쿼리 1건의 시간 예산 관리

예산 할당 구조 (기본값, settings로 조정):
- 전체: 12초 (outer deadline)
- Cache: 0.5초
- Fan-out: 남은 예산 전부 (소스별 timeout_ms는 coordinator가 개별 적용)
- 최소 여유: 0.2초 미만이면 fallback chain을 더 걷지 않음
"""

from dataclasses import dataclass, field
from time import monotonic
from typing import Callable, Optional

from ecosnap.core.config import settings


@dataclass
class BudgetConfig:
    """예산 설정 (초)"""

    total_budget: float = field(default_factory=lambda: settings.total_budget_ms / 1000)
    cache_timeout: float = 0.5
    min_remaining: float = field(default_factory=lambda: settings.min_remaining_ms / 1000)

    def __post_init__(self):
        """설정 검증"""
        if self.total_budget <= 0:
            raise ValueError(f"total_budget must be positive, got {self.total_budget}s")
        if self.cache_timeout + self.min_remaining > self.total_budget:
            raise ValueError(
                f"cache_timeout + min_remaining ({self.cache_timeout + self.min_remaining}s) "
                f"exceeds total budget ({self.total_budget}s)"
            )


class BudgetManager:
    """시간 예산 관리자

    쿼리마다 새로 만들어 씁니다 (동시 요청끼리 예산을 공유하지 않음).

    Usage:
        manager = BudgetManager()
        manager.start()

        cache_timeout = manager.get_timeout_for("cache")
        manager.checkpoint("cache_miss")

        if manager.can_walk_fallback():
            ...

        report = manager.get_report()
    """

    def __init__(self, config: Optional[BudgetConfig] = None, clock: Callable[[], float] = monotonic):
        self.config = config or BudgetConfig()
        self.clock = clock
        self.start_time: Optional[float] = None
        self._checkpoints: dict[str, float] = {}

    def start(self) -> None:
        """예산 측정 시작"""
        self.start_time = self.clock()
        self._checkpoints.clear()

    def checkpoint(self, name: str) -> None:
        """체크포인트 기록

        Raises:
            RuntimeError: start()가 호출되지 않은 경우
        """
        if self.start_time is None:
            raise RuntimeError("Budget not started. Call start() first.")
        self._checkpoints[name] = self.clock() - self.start_time

    def elapsed(self) -> float:
        """경과 시간 (초). start() 전에는 0.0"""
        if self.start_time is None:
            return 0.0
        return self.clock() - self.start_time

    def remaining(self) -> float:
        """남은 예산 (초, 음수 없음)"""
        return max(0.0, self.config.total_budget - self.elapsed())

    def is_exhausted(self) -> bool:
        return self.remaining() < self.config.min_remaining

    def can_walk_fallback(self) -> bool:
        """fallback chain의 다음 소스를 시도할 예산이 남았는지"""
        return not self.is_exhausted()

    def get_timeout_for(self, stage: str, requested: Optional[float] = None) -> float:
        """단계별 타임아웃 = min(단계 설정값, 남은 예산)

        Args:
            stage: "cache" 또는 "source"
            requested: source 단계에서 소스별 timeout (초)
        """
        remaining = self.remaining()
        if stage == "cache":
            return min(self.config.cache_timeout, remaining)
        if stage == "source" and requested is not None:
            return min(requested, remaining)
        return remaining

    def get_report(self) -> dict:
        """예산 사용 리포트"""
        return {
            "total_budget": self.config.total_budget,
            "elapsed": self.elapsed(),
            "remaining": self.remaining(),
            "checkpoints": self._checkpoints.copy(),
            "is_exhausted": self.is_exhausted(),
        }
