"""스키마 단위 테스트"""

import pytest
from pydantic import ValidationError

from ecosnap.schemas.product_schema import (
    AlternativeCandidate,
    AnalyzeRequest,
    ProductQuery,
    ProviderResult,
    ProviderStatus,
    SourceConfig,
    SourceRole,
)
from tests.fixtures import PRODUCTS


class TestProductQuery:
    def test_barcode_becomes_canonical_id(self):
        query = ProductQuery.from_input(barcode=" 0123456789012 ", product_name="Organic Whole Milk")

        assert query.canonical_id == "0123456789012"
        assert query.display_name == "Organic Whole Milk"
        assert query.is_barcode

    def test_name_is_normalized(self):
        query = ProductQuery.from_input(product_name="  Organic  Oat Milk (1L) ", brand=" ")

        assert query.canonical_id == "organic oat milk"
        assert query.brand is None
        assert not query.is_barcode

    def test_invalid_barcode_uses_name(self):
        query = ProductQuery.from_input(barcode="12ab", product_name="Oat Milk")
        assert query.canonical_id == "oat milk"

    def test_empty_input_rejected(self):
        with pytest.raises(ValidationError):
            ProductQuery.from_input()

    def test_fingerprint_includes_category(self):
        a = ProductQuery.from_input(product_name="Oat Milk", category="Beverages")
        b = ProductQuery.from_input(product_name="oat  milk", category="beverages")
        c = ProductQuery.from_input(product_name="Oat Milk", category="Dairy")

        assert a.fingerprint() == b.fingerprint()
        assert a.fingerprint() != c.fingerprint()

    def test_frozen(self, name_query):
        with pytest.raises(ValidationError):
            name_query.canonical_id = "x"

    def test_seed_is_salted(self, name_query):
        assert name_query.seed("amazon") == name_query.seed("amazon")
        assert name_query.seed("amazon") != name_query.seed("walmart")


class TestSourceConfig:
    def test_priority_bounds(self):
        with pytest.raises(ValidationError):
            SourceConfig(source_name="x", priority=11, timeout_ms=100, cache_ttl_hours=1)
        with pytest.raises(ValidationError):
            SourceConfig(source_name="x", priority=5, timeout_ms=0, cache_ttl_hours=1)

    def test_category_filter(self):
        config = SourceConfig(
            source_name="x", priority=5, timeout_ms=100, cache_ttl_hours=1, categories=(" Food ", "")
        )

        assert config.categories == ("food",)
        assert config.applies_to_category("Organic Food")
        assert config.applies_to_category(None)
        assert not config.applies_to_category("Electronics")


def test_provider_result_scores_are_clamped():
    result = ProviderResult.success("x", SourceRole.CARBON, partial_score=120)
    assert result.partial_score == 100
    assert result.is_live

    estimate = ProviderResult.fell_back("x", SourceRole.CARBON, partial_score=-5)
    assert estimate.partial_score == 0
    assert estimate.is_fallback


def test_failed_result():
    result = ProviderResult.failed("x", SourceRole.CARBON, "PROVIDER_TIMEOUT", status=ProviderStatus.TIMED_OUT)
    assert result.status == ProviderStatus.TIMED_OUT
    assert result.partial_score is None


def test_candidate_dedupe_key():
    candidate = AlternativeCandidate(id="1", name=" Oat  Drink ", brand="OATLY", eco_score=80)
    assert candidate.dedupe_key() == ("oat drink", "oatly")


class TestAnalyzeRequest:
    def test_requires_identifier(self):
        with pytest.raises(ValidationError):
            AnalyzeRequest()

    def test_rejects_dangerous_characters(self):
        with pytest.raises(ValidationError):
            AnalyzeRequest(product_name="<b>milk</b>")

    def test_barcode_validation(self):
        with pytest.raises(ValidationError):
            AnalyzeRequest(barcode="12345")
        assert AnalyzeRequest(barcode=" ", product_name="Milk").barcode is None

    def test_to_query(self):
        query = AnalyzeRequest(barcode="0123456789012", category="Dairy").to_query()
        assert query.canonical_id == "0123456789012"
        assert query.display_name == "0123456789012"
        assert query.category == "Dairy"


@pytest.mark.parametrize("name", sorted(PRODUCTS))
def test_fixture_products_build_queries(name):
    query = AnalyzeRequest(**PRODUCTS[name]).to_query()

    assert query.canonical_id
    assert query.is_barcode == ("barcode" in PRODUCTS[name])


def test_candidate_dedupe_key_keeps_size_and_punctuation():
    one = AlternativeCandidate(id="1", name="Oat Milk (1L)", brand="Dr. Bronner's", eco_score=80)
    two = AlternativeCandidate(id="2", name="Oat Milk (2L)", brand="Dr Bronners", eco_score=80)
    assert one.dedupe_key() == ("oat milk (1l)", "dr. bronner's")
    assert one.dedupe_key() != two.dedupe_key()
