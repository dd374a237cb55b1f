"""전역 테스트 설정

역할:
- 테스트 환경 구성
- 공통 Fake 주입 (구현은 tests/fakes.py)

금지:
- 실제 외부 API 호출
- Stress 시나리오 데이터 (stress/ 에서 직접 구성)
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest


# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ecosnap.engine import BudgetConfig  # noqa: E402
from ecosnap.schemas.product_schema import ProductQuery  # noqa: E402
from tests.fakes import FakeClock, FakeSearch, InFlightTracker  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def test_env() -> None:
    """테스트 환경 변수 설정 (세션 전역)"""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "INFO"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker() -> InFlightTracker:
    return InFlightTracker()


@pytest.fixture
def name_query() -> ProductQuery:
    return ProductQuery.from_input(product_name="Organic Oat Milk", category="Beverages", brand="Oatly")


@pytest.fixture
def barcode_query() -> ProductQuery:
    return ProductQuery.from_input(barcode="0123456789012", product_name="Organic Whole Milk", category="Dairy")


@pytest.fixture
def fast_budget() -> BudgetConfig:
    """짧은 예산 (타임아웃/취소 테스트용)"""
    return BudgetConfig(total_budget=2.0, cache_timeout=0.1, min_remaining=0.05)


@pytest.fixture
def fake_search() -> FakeSearch:
    return FakeSearch()


@pytest.fixture
def fake_http() -> MagicMock:
    """SharedHttpClient 대역 (get_text/post_json/post_form은 AsyncMock)"""
    http = MagicMock()
    http.get_text = AsyncMock(return_value=None)
    http.post_json = AsyncMock(return_value=None)
    http.post_form = AsyncMock(return_value=None)
    return http
