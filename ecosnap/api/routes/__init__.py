"""API routes package."""

from .analysis_routes import get_cache_service, get_orchestrator, router as analysis_router
from .health_routes import router as health_router

__all__ = ["health_router", "analysis_router", "get_cache_service", "get_orchestrator"]
