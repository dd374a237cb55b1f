"""Engine Layer - 분석 파이프라인

- AnalysisOrchestrator: 분석 진입점 (cache → fan-out → 합성 → 대체 상품 → cache)
- FetchCoordinator: 프로바이더 병렬 호출 (동시 실행 상한, 타임아웃, fallback chain)
- ScoreSynthesizer: 종합 점수/신뢰도/등급
- BudgetManager: 쿼리당 시간 예산
- ExecutionStrategy: fallback chain 판단
- CacheAdapter: 캐시 서비스 어댑터
"""

from .budget import BudgetConfig, BudgetManager
from .cache_adapter import CacheAdapter
from .coordinator import FetchCoordinator
from .orchestrator import AnalysisOrchestrator, build_product_info
from .result import FetchOutcome, FetchPath
from .strategy import ExecutionStrategy, FetchExecutor
from .synthesizer import ScoreSynthesizer

__all__ = [
    "AnalysisOrchestrator",
    "FetchCoordinator",
    "ScoreSynthesizer",
    "BudgetManager",
    "BudgetConfig",
    "CacheAdapter",
    "FetchOutcome",
    "FetchPath",
    "ExecutionStrategy",
    "FetchExecutor",
    "build_product_info",
]
