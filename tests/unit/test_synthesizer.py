"""ScoreSynthesizer 단위 테스트"""

from __future__ import annotations

import pytest

from ecosnap.engine.synthesizer import ScoreSynthesizer
from ecosnap.schemas.product_schema import ProviderResult, ProviderStatus, SourceRole
from tests.fakes import make_config


@pytest.fixture
def synthesizer() -> ScoreSynthesizer:
    return ScoreSynthesizer()


@pytest.fixture
def configs():
    return [
        make_config("howgood", priority=10),
        make_config("climatiq", priority=9),
        make_config("fairtrade", priority=7),
        make_config("ai_analysis", priority=4),
        make_config("walmart", priority=6),
    ]


def live(name: str, role: SourceRole, score=None, certifications=None) -> ProviderResult:
    return ProviderResult.success(name, role, partial_score=score, certifications=certifications)


def estimated(name: str, role: SourceRole, score=None, certifications=None) -> ProviderResult:
    return ProviderResult.fell_back(name, role, partial_score=score, certifications=certifications)


def test_weighted_average_of_present_roles(synthesizer, configs):
    """supply_chain 80 + carbon 70만 있으면 (0.4*80 + 0.3*70) / 0.7 ≈ 75.7 → 76"""
    results = [
        live("howgood", SourceRole.SUPPLY_CHAIN, 80),
        live("climatiq", SourceRole.CARBON, 70),
    ]
    score = synthesizer.synthesize(results, configs)

    assert score.overall_score == 76
    assert score.grade == "B"
    assert score.breakdown == {"supply_chain": 80.0, "carbon": 70.0}
    assert score.sources_used == {"howgood", "climatiq"}
    assert score.sources_fallback == set()
    # floor 10 + 10*4 + 9*4
    assert score.confidence == 86


def test_no_contributing_results_is_neutral(synthesizer, configs):
    score = synthesizer.synthesize([], configs)

    assert score.overall_score == 50
    assert score.confidence == 10
    assert score.grade == "D"
    assert score.sources_used == set()
    assert score.sources_fallback == set()


def test_failed_results_do_not_contribute(synthesizer, configs):
    results = [ProviderResult.failed("howgood", SourceRole.SUPPLY_CHAIN, "FALLBACK_ERROR")]
    score = synthesizer.synthesize(results, configs)

    assert score.overall_score == 50
    assert score.confidence == 10
    assert score.sources_used == set()
    assert score.sources_fallback == set()


def test_fallback_results_contribute_with_small_confidence(synthesizer, configs):
    results = [
        estimated("howgood", SourceRole.SUPPLY_CHAIN, 60),
        estimated("climatiq", SourceRole.CARBON, 60),
    ]
    score = synthesizer.synthesize(results, configs)

    assert score.overall_score == 60
    assert score.confidence == 10 + 3 + 3
    assert score.sources_fallback == {"howgood", "climatiq"}


def test_metadata_results_do_not_affect_score(synthesizer, configs):
    results = [
        live("howgood", SourceRole.SUPPLY_CHAIN, 40),
        live("walmart", SourceRole.METADATA),
    ]
    score = synthesizer.synthesize(results, configs)

    assert score.overall_score == 40
    assert "metadata" not in score.breakdown
    # live metadata 소스도 신뢰도에는 기여
    assert score.confidence == 10 + 40 + 24


def test_same_role_scores_are_averaged(synthesizer, configs):
    results = [
        live("howgood", SourceRole.SUPPLY_CHAIN, 90),
        estimated("climatiq", SourceRole.SUPPLY_CHAIN, 70),
    ]
    score = synthesizer.synthesize(results, configs)

    assert score.breakdown == {"supply_chain": 80.0}
    assert score.overall_score == 80


def test_certification_bonuses_are_additive_and_applied_once(synthesizer, configs):
    results = [
        live("howgood", SourceRole.SUPPLY_CHAIN, 50, ["Fair Trade", "USDA Organic"]),
        live("fairtrade", SourceRole.CERTIFICATION, 50, ["Fairtrade International"]),
    ]
    score = synthesizer.synthesize(results, configs)

    # fair trade +10 (한 번만), organic +5
    assert score.overall_score == 65
    assert score.certifications == {"Fair Trade", "USDA Organic", "Fairtrade International"}


def test_bonus_result_is_capped_at_100(synthesizer, configs):
    results = [live("howgood", SourceRole.SUPPLY_CHAIN, 95, ["Fair Trade", "Carbon Neutral", "Organic"])]
    score = synthesizer.synthesize(results, configs)

    assert score.overall_score == 100
    assert score.grade == "A+"


def test_confidence_is_capped(synthesizer):
    configs = [make_config(f"s{i}", priority=10) for i in range(5)]
    results = [live(f"s{i}", SourceRole.SECONDARY, 50) for i in range(5)]
    score = synthesizer.synthesize(results, configs)

    assert score.confidence == 100


@pytest.mark.parametrize(
    "value, grade",
    [(100, "A+"), (95, "A+"), (94, "A"), (85, "A"), (84, "B"), (70, "B"), (69, "C"),
     (55, "C"), (54, "D"), (40, "D"), (39, "F"), (0, "F")],
)
def test_grade_table(synthesizer, value, grade):
    assert synthesizer.grade_for(value) == grade


def test_grade_is_monotonic(synthesizer):
    order = ["F", "D", "C", "B", "A", "A+"]
    ranks = [order.index(synthesizer.grade_for(s)) for s in range(0, 101)]
    assert ranks == sorted(ranks)


def test_custom_rules():
    rules = {
        "weights": {"supply_chain": 1.0, "carbon": 0.0001, "certification": 0.0001, "secondary": 0.0001},
        "neutral_score": 42,
        "certification_bonuses": [],
        "confidence": {"floor": 0, "live_factor": 1, "fallback_increment": 0, "cap": 50},
        "grades": [{"min_score": 50, "grade": "A"}, {"min_score": 0, "grade": "F"}],
    }
    synthesizer = ScoreSynthesizer(rules)

    score = synthesizer.synthesize([], [])
    assert score.overall_score == 42
    assert score.grade == "F"
    assert score.confidence == 0


def test_scores_always_within_bounds(synthesizer, configs):
    results = [
        live("howgood", SourceRole.SUPPLY_CHAIN, 100, ["Fair Trade", "Carbon Neutral", "Organic"]),
        live("climatiq", SourceRole.CARBON, 100),
        live("fairtrade", SourceRole.CERTIFICATION, 100),
        live("ai_analysis", SourceRole.SECONDARY, 100),
    ]
    score = synthesizer.synthesize(results, configs)
    assert 0 <= score.overall_score <= 100
    assert 0 <= score.confidence <= 100
    assert ProviderStatus.SUCCESS == results[0].status
