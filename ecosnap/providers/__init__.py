"""외부 데이터 소스 어댑터"""

from .base import SourceAdapter
from .circuit_breaker import CircuitBreaker, CircuitBreakerMetrics
from .registry import AdapterRegistry, build_default_registry

__all__ = [
    "SourceAdapter",
    "CircuitBreaker",
    "CircuitBreakerMetrics",
    "AdapterRegistry",
    "build_default_registry",
]
