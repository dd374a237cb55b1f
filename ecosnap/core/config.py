"""설정 관리 - 환경 변수 로드 및 검증"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 설정"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # 실행 환경
    environment: str = "development"

    # 오케스트레이션
    # - max_concurrency: 동시에 실행되는 어댑터 수 상한 (외부 API rate limit 보호)
    # - total_budget_ms: 쿼리 1건 전체 예산. 초과 시 남은 호출은 취소되고 fallback 추정치 사용
    max_concurrency: int = 6
    total_budget_ms: int = 12000
    default_timeout_ms: int = 5000
    min_remaining_ms: int = 200
    default_cache_ttl_hours: float = 24.0

    # 캐시 (memory | redis)
    cache_backend: str = "memory"
    redis_url: str = ""

    # 공급망 / 탄소 / 인증
    howgood_api_key: str = ""
    howgood_api_url: str = "https://api.howgood.com/v1"
    climatiq_api_key: str = ""
    climatiq_api_url: str = "https://api.climatiq.io/v1"
    fairtrade_api_key: str = ""
    fairtrade_api_url: str = "https://api.fairtrade.net/v1"

    # 바코드 DB
    barcode_api_key: str = ""
    barcode_api_url: str = "https://api.barcodelookup.com/v3"
    upcitemdb_api_url: str = "https://api.upcitemdb.com/prod/trial"

    # 리테일 가격
    walmart_api_key: str = ""
    walmart_api_url: str = "https://api.walmart.com/v1"
    amazon_client_id: str = ""
    amazon_client_secret: str = ""
    amazon_refresh_token: str = ""
    amazon_api_url: str = "https://sellingpartnerapi-na.amazon.com"
    amazon_token_url: str = "https://api.amazon.com/auth/o2/token"
    amazon_marketplace_id: str = "ATVPDKIKX0DER"

    # 상품 검색 (대체 상품 탐색용)
    openfoodfacts_api_url: str = "https://world.openfoodfacts.org"

    # AI 분석 (Gemini)
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_fallback_model: str = "gemini-2.0-flash"
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # HTTP 클라이언트
    http_user_agent: str = "EcoSnap/1.0 (+https://ecosnap.app)"
    http_impersonate: str = "chrome110"
    http_max_clients: int = 20
    # 프로세스 전체에서 동시에 나가는 외부 요청 상한
    http_max_in_flight: int = 6

    # 어댑터별 회로차단(CB): 연속 실패 시 잠깐 live 호출 스킵
    provider_fail_threshold: int = 5
    provider_open_seconds: float = 60.0

    # 정적 리소스 (ecosnap/resources 기준 상대 경로)
    sources_file: str = "sources.yaml"
    scoring_file: str = "scoring.yaml"

    # API
    api_title: str = "EcoSnap Sustainability Orchestrator"
    api_version: str = "1.0.0"
    api_description: str = "여러 지속가능성 데이터 소스를 병렬 조회해 종합 점수와 대체 상품을 반환합니다."
    api_analyze_timeout_s: float = 20.0

    # 로깅
    log_level: str = "INFO"

    @field_validator("max_concurrency", "http_max_in_flight", "http_max_clients")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("concurrency limits must be positive")
        return v

    @field_validator("total_budget_ms", "default_timeout_ms")
    @classmethod
    def validate_budgets(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("budgets must be positive")
        return v

    @field_validator("default_cache_ttl_hours")
    @classmethod
    def validate_cache_ttl(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("default_cache_ttl_hours must be positive")
        return v

    @field_validator("cache_backend")
    @classmethod
    def validate_cache_backend(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in {"memory", "redis"}:
            raise ValueError("cache_backend must be 'memory' or 'redis'")
        return v


settings = Settings()
