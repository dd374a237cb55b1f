"""리소스 파일(YAML) 로더 유틸리티

정적 테이블(소스 설정, 점수 가중치, 추정 테이블, 대체 상품 카탈로그)은
ecosnap/resources/*.yaml에 두고 기동 시 한 번 읽어 캐싱합니다.
"""
import os
from functools import lru_cache
from typing import Any, Dict

import yaml

from ecosnap.core.config import settings
from ecosnap.core.exceptions import ConfigurationException
from ecosnap.core.logging import logger
from ecosnap.schemas.product_schema import SourceConfig


def get_resource_path(relative_path: str) -> str:
    """패키지 기준 리소스 절대 경로 반환"""
    # ecosnap/utils/resource_loader.py -> ecosnap/utils -> ecosnap
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(base_dir, "resources", relative_path)


@lru_cache(maxsize=32)
def load_yaml_resource(relative_path: str) -> Dict[str, Any]:
    """YAML 리소스 로드 및 캐싱

    Raises:
        ConfigurationException: 파일이 없거나 파싱할 수 없는 경우
    """
    path = get_resource_path(relative_path)
    if not os.path.exists(path):
        raise ConfigurationException(relative_path, f"resource not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to load YAML resource {path}: {e}")
        raise ConfigurationException(relative_path, str(e)) from e

    if not isinstance(data, dict):
        raise ConfigurationException(relative_path, "top-level mapping expected")
    return data


def load_source_configs(relative_path: str = "") -> list[SourceConfig]:
    """SourceConfig 목록 로드 (기동 시 1회)"""
    name = relative_path or settings.sources_file
    data = load_yaml_resource(name)
    raw = data.get("sources") or []
    try:
        configs = [SourceConfig(**item) for item in raw]
    except (TypeError, ValueError) as e:
        raise ConfigurationException(name, str(e)) from e

    names = [c.source_name for c in configs]
    if len(names) != len(set(names)):
        raise ConfigurationException(name, "duplicate source_name")
    return configs


def load_scoring_rules(relative_path: str = "") -> Dict[str, Any]:
    """점수 가중치/인증 보너스/신뢰도/등급표 로드"""
    return load_yaml_resource(relative_path or settings.scoring_file)


def load_estimator_tables() -> Dict[str, Any]:
    """프로바이더 fallback 추정 테이블 로드"""
    return load_yaml_resource("estimators.yaml")


def load_alternatives_catalog() -> Dict[str, Any]:
    """대체 상품 탐색용 키워드/브랜드/합성 템플릿 로드"""
    return load_yaml_resource("alternatives.yaml")
