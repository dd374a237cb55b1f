"""대체 상품 탐색"""

from .engine import AlternativesEngine

__all__ = ["AlternativesEngine"]
