"""커스텀 예외 정의 (Structured Exception Hierarchy)

어댑터 내부에서만 발생하고 어댑터 경계에서 ProviderStatus로 변환됩니다.
호출자(analyze)까지 전파되는 예외는 InvalidQueryException 뿐입니다.
"""
from typing import Any, Optional


class EcoSnapException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# 프로바이더 관련 예외
class ProviderException(EcoSnapException):
    """외부 데이터 소스 관련 예외의 기본 클래스"""
    def __init__(self, source: str, message: str, error_code: str = "PROVIDER_ERROR", details: Optional[dict[str, Any]] = None):
        self.source = source
        super().__init__(message, error_code or "PROVIDER_ERROR", details or {"source": source})


class ProviderUnavailableException(ProviderException):
    """자격 증명 누락, 네트워크 장애, non-2xx 응답"""
    def __init__(self, source: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Provider '{source}' unavailable: {reason}"
        super().__init__(source, message, "PROVIDER_UNAVAILABLE",
                         details or {"source": source, "reason": reason})


class ProviderTimeoutException(ProviderException):
    """프로바이더 타임아웃"""
    def __init__(self, source: str, timeout_ms: float, details: Optional[dict[str, Any]] = None):
        message = f"Provider '{source}' timed out after {timeout_ms:.0f}ms"
        super().__init__(source, message, "PROVIDER_TIMEOUT",
                         details or {"source": source, "timeout_ms": timeout_ms})


class MalformedResponseException(ProviderException):
    """파싱 불가능한 응답 (ProviderUnavailable과 동일하게 취급)"""
    def __init__(self, source: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Malformed response from '{source}': {reason}"
        super().__init__(source, message, "MALFORMED_RESPONSE",
                         details or {"source": source, "reason": reason})


# 대체 상품 관련 예외
class AlternativesException(EcoSnapException):
    """대체 상품 탐색 관련 예외"""
    def __init__(self, message: str, error_code: str = "ALTERNATIVES_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "ALTERNATIVES_ERROR", details)


class NoCandidatesFoundException(AlternativesException):
    """실제 후보를 하나도 찾지 못함 (합성 후보로 보충)"""
    def __init__(self, query: str, details: Optional[dict[str, Any]] = None):
        message = f"No alternative candidates found for: {query}"
        super().__init__(message, "NO_CANDIDATES_FOUND", details or {"query": query})


# 캐시 관련 예외
class CacheException(EcoSnapException):
    """캐시 관련 예외"""
    def __init__(self, message: str, error_code: str = "CACHE_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CACHE_ERROR", details)


class CacheConnectionException(CacheException):
    """캐시 연결 실패"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Failed to connect to cache: {reason}"
        super().__init__(message, "CACHE_CONNECTION_ERROR", details or {"reason": reason})


class CacheSerializationException(CacheException):
    """캐시 직렬화/역직렬화 오류"""
    def __init__(self, operation: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Cache {operation} failed: {reason}"
        super().__init__(message, "CACHE_SERIALIZATION_ERROR",
                         details or {"operation": operation, "reason": reason})


# 유효성 검증 관련 예외
class ValidationException(EcoSnapException):
    """유효성 검증 예외"""
    def __init__(self, field: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Validation failed for '{field}': {reason}"
        super().__init__(message, "VALIDATION_ERROR",
                         details or {"field": field, "reason": reason})


class InvalidQueryException(ValidationException):
    """유효하지 않은 상품 쿼리 (빈 canonical id 등)"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__("query", reason, details)


# 설정 관련 예외
class ConfigurationException(EcoSnapException):
    """정적 설정(YAML) 로드/검증 실패"""
    def __init__(self, resource: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Invalid configuration '{resource}': {reason}"
        super().__init__(message, "CONFIGURATION_ERROR",
                         details or {"resource": resource, "reason": reason})
