"""Fetch Outcome - coordinator 내부 결과 기록

소스 1개에 대해 최종 ProviderResult와 함께 어떤 경로(live / chain / fallback)로
얻었는지, 몇 번 시도했는지를 남깁니다.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ecosnap.schemas.product_schema import ProviderResult, ProviderStatus


class FetchPath(str, Enum):
    """결과를 얻은 경로"""

    LIVE = "live"  # 원래 소스 live 성공
    CHAIN = "chain"  # fallback chain의 대체 소스가 live 성공
    ESTIMATE = "estimate"  # 원래 소스의 fallback 추정기
    CANCELLED = "cancelled"  # outer deadline으로 취소 후 추정기
    FAILED = "failed"  # 추정기까지 실패


@dataclass
class FetchOutcome:
    """소스 1개의 최종 결과"""

    source_name: str
    result: ProviderResult
    path: FetchPath
    attempts: list[str] = field(default_factory=list)
    elapsed_ms: Optional[float] = None

    @property
    def is_success(self) -> bool:
        return self.path == FetchPath.LIVE

    @classmethod
    def from_live(cls, result: ProviderResult, attempts: list[str], elapsed_ms: float) -> "FetchOutcome":
        return cls(result.source_name, result, FetchPath.LIVE, attempts, elapsed_ms)

    @classmethod
    def from_chain(
        cls,
        source_name: str,
        result: ProviderResult,
        attempts: list[str],
        elapsed_ms: float,
    ) -> "FetchOutcome":
        return cls(source_name, result, FetchPath.CHAIN, attempts, elapsed_ms)

    @classmethod
    def from_estimate(
        cls,
        source_name: str,
        result: ProviderResult,
        attempts: list[str],
        elapsed_ms: float,
        cancelled: bool = False,
    ) -> "FetchOutcome":
        if result.status == ProviderStatus.FAILED:
            path = FetchPath.FAILED
        else:
            path = FetchPath.CANCELLED if cancelled else FetchPath.ESTIMATE
        return cls(source_name, result, path, attempts, elapsed_ms)

    def as_log_line(self) -> str:
        chain = " → ".join(self.attempts) or "-"
        ms = f"{self.elapsed_ms:.0f}ms" if self.elapsed_ms is not None else "?"
        return f"{self.source_name}: {self.path.value} ({self.result.status.value}) via [{chain}] in {ms}"
