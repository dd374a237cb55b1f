"""API 엔드포인트 패키지 - export only."""

from .routes import analysis_router, get_cache_service, get_orchestrator, health_router

__all__ = ["health_router", "analysis_router", "get_cache_service", "get_orchestrator"]
