"""Schemas package"""
from ecosnap.schemas.product_schema import (
    AlternativeCandidate,
    AnalysisResult,
    AnalyzeRequest,
    AnalyzeResponse,
    CompositeScore,
    Grade,
    HealthResponse,
    ProductQuery,
    ProviderResult,
    ProviderStatus,
    SourceConfig,
    SourceRole,
)

__all__ = [
    "AlternativeCandidate",
    "AnalysisResult",
    "AnalyzeRequest",
    "AnalyzeResponse",
    "CompositeScore",
    "Grade",
    "HealthResponse",
    "ProductQuery",
    "ProviderResult",
    "ProviderStatus",
    "SourceConfig",
    "SourceRole",
]
