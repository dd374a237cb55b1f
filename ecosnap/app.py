"""FastAPI 앱 팩토리"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ecosnap.api import analysis_router, health_router
from ecosnap.core.config import settings
from ecosnap.core.logging import logger
from ecosnap.providers.http_client import shutdown_shared_http_client
from ecosnap.schemas.product_schema import AnalyzeResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 생명주기"""
    logger.info("Starting application...")
    logger.info(f"Application started (env={settings.environment}, cache={settings.cache_backend})")
    yield
    logger.info("Shutting down application...")
    try:
        await shutdown_shared_http_client()
    except Exception as e:
        # 종료 훅에서의 예외는 앱 종료를 막지 않음
        logger.debug(f"HTTP client shutdown failed: {type(e).__name__}")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """요청 검증 실패 → AnalyzeResponse 형태의 오류 본문"""
    errors = exc.errors()
    message = errors[0].get("msg", "invalid request") if errors else "invalid request"
    logger.warning(f"[API] Input validation failed: {message}")
    body = AnalyzeResponse(
        status="error",
        data=None,
        message=f"입력 검증 실패: {message}",
        error_code="VALIDATION_ERROR",
    )
    return JSONResponse(status_code=422, content=body.model_dump(mode="json"))


def create_app() -> FastAPI:
    """
    FastAPI 앱 생성 (Factory Pattern)

    Returns:
        FastAPI 앱 인스턴스
    """
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(analysis_router)

    return app

# 앱 인스턴스 생성 (uvicorn이 로드할 수 있도록)
app = create_app()
