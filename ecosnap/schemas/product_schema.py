"""Pydantic 스키마 정의 (도메인 모델 + API 요청/응답)"""
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ecosnap.utils.hash_utils import hash_string, seed_from_text
from ecosnap.utils.text import fold_name, is_barcode, normalize_name


Grade = Literal["A+", "A", "B", "C", "D", "F"]


class SourceRole(str, Enum):
    """어댑터가 종합 점수에서 맡는 역할"""

    SUPPLY_CHAIN = "supply_chain"
    CARBON = "carbon"
    CERTIFICATION = "certification"
    SECONDARY = "secondary"
    # 점수에는 기여하지 않고 상품 정보(이름/이미지/가격)만 제공
    METADATA = "metadata"


class ProviderStatus(str, Enum):
    """프로바이더 호출 결과 상태"""

    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    FELL_BACK = "fell_back"


class ProductQuery(BaseModel):
    """요청 1건당 한 번 생성되는 상품 식별자

    canonical_id는 바코드(8~14자리 숫자) 또는 정규화된 상품명이며
    캐시 키와 fallback PRNG 시드로 그대로 사용됩니다.
    """

    model_config = ConfigDict(frozen=True)

    canonical_id: str = Field(..., min_length=1, max_length=500, description="바코드 또는 정규화된 상품명")
    display_name: str = Field(..., min_length=1, max_length=500, description="표시용 상품명")
    category: Optional[str] = Field(None, max_length=100, description="카테고리 (선택)")
    brand: Optional[str] = Field(None, max_length=100, description="브랜드 (선택)")

    @field_validator("canonical_id")
    @classmethod
    def validate_canonical_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("canonical_id must not be blank")
        return v.strip()

    @field_validator("category", "brand")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @classmethod
    def from_input(
        cls,
        barcode: Optional[str] = None,
        product_name: Optional[str] = None,
        category: Optional[str] = None,
        brand: Optional[str] = None,
    ) -> "ProductQuery":
        """스캔 결과(바코드) 또는 상품명으로 쿼리 생성

        바코드가 유효하면 바코드가 canonical_id가 되고, 아니면 상품명을 정규화해 사용합니다.

        Raises:
            pydantic.ValidationError: 둘 다 비어 있는 경우
        """
        code = (barcode or "").strip()
        name = (product_name or "").strip()

        if is_barcode(code):
            canonical_id = code
            display_name = name or code
        else:
            canonical_id = normalize_name(name)
            display_name = name

        return cls(
            canonical_id=canonical_id,
            display_name=display_name,
            category=category,
            brand=brand,
        )

    @property
    def is_barcode(self) -> bool:
        return is_barcode(self.canonical_id)

    @property
    def search_text(self) -> str:
        """키워드 매칭용 소문자 텍스트 (이름 + 브랜드 + 카테고리)"""
        parts = [self.display_name, self.brand or "", self.category or ""]
        return " ".join(p for p in parts if p).lower()

    def fingerprint(self) -> str:
        """캐시 키용 지문 (canonical_id + 카테고리)"""
        return hash_string(f"{self.canonical_id}|{(self.category or '').lower()}")

    def seed(self, salt: str = "") -> int:
        """fallback 추정기용 결정적 PRNG 시드"""
        return seed_from_text(f"{self.canonical_id}|{salt}")


class SourceConfig(BaseModel):
    """데이터 소스 정적 설정 (기동 시 1회 로드)"""

    model_config = ConfigDict(frozen=True)

    source_name: str = Field(..., min_length=1)
    enabled: bool = True
    priority: int = Field(..., ge=1, le=10, description="높을수록 먼저 실행")
    timeout_ms: int = Field(..., gt=0)
    cache_ttl_hours: float = Field(..., gt=0)
    fallback_chain: tuple[str, ...] = Field(default_factory=tuple)
    categories: tuple[str, ...] = Field(default_factory=tuple, description="적용 카테고리 (비어 있으면 전체)")

    @field_validator("categories")
    @classmethod
    def lower_categories(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(c.strip().lower() for c in v if c and c.strip())

    def applies_to_category(self, category: Optional[str]) -> bool:
        """카테고리 필터. 쿼리 카테고리를 모르면 적용 대상으로 간주"""
        if not self.categories or not category:
            return True
        lowered = category.lower()
        return any(c in lowered for c in self.categories)


class ProviderResult(BaseModel):
    """어댑터 1회 호출 결과 (live 또는 fallback)"""

    source_name: str
    status: ProviderStatus
    role: SourceRole = SourceRole.METADATA
    partial_score: Optional[float] = Field(None, ge=0, le=100)
    certifications: list[str] = Field(default_factory=list)
    breakdown: dict[str, float] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    fetched_at: datetime = Field(default_factory=datetime.now)

    # fallback 결과일 때 live 호출이 어떻게 끝났는지
    live_status: Optional[ProviderStatus] = None
    error_code: Optional[str] = None

    @property
    def is_live(self) -> bool:
        return self.status == ProviderStatus.SUCCESS

    @property
    def is_fallback(self) -> bool:
        return self.status == ProviderStatus.FELL_BACK

    @classmethod
    def success(
        cls,
        source_name: str,
        role: SourceRole,
        partial_score: Optional[float] = None,
        certifications: Optional[list[str]] = None,
        breakdown: Optional[dict[str, float]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "ProviderResult":
        return cls(
            source_name=source_name,
            status=ProviderStatus.SUCCESS,
            role=role,
            partial_score=_clamp_optional(partial_score),
            certifications=certifications or [],
            breakdown=breakdown or {},
            metadata=metadata or {},
        )

    @classmethod
    def fell_back(
        cls,
        source_name: str,
        role: SourceRole,
        partial_score: Optional[float] = None,
        certifications: Optional[list[str]] = None,
        breakdown: Optional[dict[str, float]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "ProviderResult":
        return cls(
            source_name=source_name,
            status=ProviderStatus.FELL_BACK,
            role=role,
            partial_score=_clamp_optional(partial_score),
            certifications=certifications or [],
            breakdown=breakdown or {},
            metadata=metadata or {},
        )

    @classmethod
    def failed(
        cls,
        source_name: str,
        role: SourceRole,
        error_code: str,
        status: ProviderStatus = ProviderStatus.FAILED,
    ) -> "ProviderResult":
        return cls(source_name=source_name, status=status, role=role, error_code=error_code)


class CompositeScore(BaseModel):
    """종합 지속가능성 점수"""

    overall_score: int = Field(..., ge=0, le=100)
    confidence: int = Field(..., ge=0, le=100)
    breakdown: dict[str, float] = Field(default_factory=dict, description="역할별 부분 점수")
    certifications: set[str] = Field(default_factory=set)
    grade: Grade
    sources_used: set[str] = Field(default_factory=set)
    sources_fallback: set[str] = Field(default_factory=set)


class AlternativeCandidate(BaseModel):
    """대체 상품 후보"""

    id: str
    name: str
    brand: str = ""
    category: str = ""
    eco_score: float = Field(..., ge=0, le=100)
    co2_impact: Optional[float] = Field(None, ge=0, description="kg CO2e")
    certifications: list[str] = Field(default_factory=list)
    real_data: bool = False
    rank_score: float = 0.0
    strategy: str = ""
    image_url: Optional[str] = None
    price: Optional[float] = None
    why_better: list[str] = Field(default_factory=list)

    def dedupe_key(self) -> tuple[str, str]:
        """(name, brand) 공백 정리 + casefold 키 (구두점/괄호는 구분)"""
        return fold_name(self.name), fold_name(self.brand)


class AnalysisResult(BaseModel):
    """analyze() 반환값이자 캐시에 저장되는 값"""

    query: ProductQuery
    score: CompositeScore
    alternatives: list[AlternativeCandidate] = Field(default_factory=list)
    product: dict[str, Any] = Field(default_factory=dict, description="메타데이터 소스에서 모은 상품 정보")
    results: list[ProviderResult] = Field(default_factory=list)
    from_cache: bool = False
    elapsed_ms: float = 0.0
    budget_report: Optional[dict[str, Any]] = None


# ----------------------------------------------------------------------------
# API 요청/응답
# ----------------------------------------------------------------------------

class AnalyzeRequest(BaseModel):
    """지속가능성 분석 요청"""

    barcode: Optional[str] = Field(None, max_length=32, description="스캔된 바코드 (8~14자리)")
    product_name: Optional[str] = Field(None, max_length=500, description="상품명")
    category: Optional[str] = Field(None, max_length=100, description="카테고리")
    brand: Optional[str] = Field(None, max_length=100, description="브랜드")

    @field_validator("product_name")
    @classmethod
    def validate_product_name(cls, v: Optional[str]) -> Optional[str]:
        """제품명 검증: 특수문자 제한"""
        if v is None:
            return None
        dangerous_chars = ['<', '>', '\\', '\0', '\n', '\r']
        for char in dangerous_chars:
            if char in v:
                raise ValueError(f'상품명에 허용되지 않는 문자가 포함되어 있습니다: {char!r}')
        return v.strip()

    @field_validator("barcode")
    @classmethod
    def validate_barcode(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not is_barcode(v):
            raise ValueError('바코드는 8~14자리 숫자여야 합니다')
        return v

    @model_validator(mode="after")
    def require_identifier(self) -> "AnalyzeRequest":
        if not self.barcode and not (self.product_name and self.product_name.strip()):
            raise ValueError('barcode 또는 product_name 중 하나는 필요합니다')
        return self

    def to_query(self) -> ProductQuery:
        return ProductQuery.from_input(
            barcode=self.barcode,
            product_name=self.product_name,
            category=self.category,
            brand=self.brand,
        )


class AnalyzeResponse(BaseModel):
    """분석 응답"""

    status: Literal["success", "error"]
    data: Optional[AnalysisResult] = None
    message: str
    error_code: Optional[str] = None


class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = Field(..., description="서비스 상태 (ok/degraded/error)")
    timestamp: datetime = Field(..., description="체크 시간")
    version: str = Field(..., description="API 버전")
    cache_backend: Optional[str] = Field(None, description="사용 중인 캐시 백엔드")


def _clamp_optional(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return max(0.0, min(100.0, float(value)))
