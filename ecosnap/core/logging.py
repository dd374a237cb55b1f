"""로깅 설정

- 패키지 공용 로거 "ecosnap" (stdout, 환경별 포맷)
- 외부 라이브러리 로거 소음 억제
- sanitize_for_log: URL/헤더에 섞인 자격 증명 값만 마스킹
"""
import logging
import os
import re
import sys
from typing import Optional

from ecosnap.core.config import settings


IS_PRODUCTION = os.getenv("ENVIRONMENT", settings.environment) == "production"

_PROD_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
_DEV_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"

# 요청 로그가 많은 서드파티 로거
_NOISY_LOGGERS = ("curl_cffi", "httpx", "httpcore", "asyncio")

# key=..., api_key: ..., "token": "..." 형태의 값 부분만 치환
_SECRET_PARAM_RE = re.compile(
    r"(?P<name>\b(?:api[_-]?key|key|access[_-]?token|token|secret|password|app[_-]?key)\b"
    r"[\"']?\s*[=:]\s*[\"']?)"
    r"(?P<value>[^\s&\"',;]+)",
    re.IGNORECASE,
)
_BEARER_RE = re.compile(r"(?P<name>\bBearer\s+)(?P<value>[A-Za-z0-9\-._~+/]+=*)", re.IGNORECASE)

MASK = "***"


def setup_logging(level: Optional[str] = None, production: bool = IS_PRODUCTION) -> logging.Logger:
    """ecosnap 로거 초기화 (중복 핸들러 방지)"""
    logger = logging.getLogger("ecosnap")

    log_level = (level or settings.log_level).upper()
    if production and log_level == "DEBUG":
        log_level = "INFO"
    numeric = getattr(logging, log_level, logging.INFO)
    logger.setLevel(numeric)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(fmt=_PROD_FORMAT if production else _DEV_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(numeric)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))

    return logger


logger = setup_logging()


def sanitize_for_log(value: str, max_length: int = 100) -> str:
    """자격 증명 값을 가린 로깅용 문자열

    예시:
    - "https://api/x?q=milk&key=abc" -> "https://api/x?q=milk&key=***"
    - "Secret Deodorant" -> "Secret Deodorant"

    Args:
        value: 로깅할 문자열
        max_length: 최대 길이 (넘으면 "..." 붙여 자름)
    """
    if not value:
        return "[empty]"

    result = _SECRET_PARAM_RE.sub(lambda m: m.group("name") + MASK, value)
    result = _BEARER_RE.sub(lambda m: m.group("name") + MASK, result)

    if len(result) > max_length:
        result = result[:max_length] + "..."
    return result
