"""Score Synthesizer - 부분 점수들을 종합 점수 + 신뢰도 + 등급으로 합성

규칙은 resources/scoring.yaml에서 읽습니다. 합성은 실패하지 않습니다.
"""

from statistics import mean
from typing import Any, Iterable, Optional

from ecosnap.core.logging import logger
from ecosnap.schemas.product_schema import (
    CompositeScore,
    ProviderResult,
    ProviderStatus,
    SourceConfig,
    SourceRole,
)
from ecosnap.utils.resource_loader import load_scoring_rules
from ecosnap.utils.text import normalize_name


class ScoreSynthesizer:
    """종합 점수 합성기

    - 역할별 고정 가중치 가중 평균 (존재하는 역할의 가중치 합으로 나눔)
    - 점수를 낸 결과가 없으면 neutral_score
    - 인증 보너스는 가산 후 100 상한
    - 신뢰도 = floor + live priority × factor + fallback × increment (cap)
    """

    def __init__(self, rules: Optional[dict[str, Any]] = None):
        rules = rules or load_scoring_rules()
        self.weights: dict[SourceRole, float] = {
            SourceRole(role): float(weight) for role, weight in rules["weights"].items()
        }
        self.neutral_score = float(rules["neutral_score"])
        self.bonuses: list[tuple[list[str], float]] = [
            ([normalize_name(k) for k in item["keywords"]], float(item["bonus"]))
            for item in rules.get("certification_bonuses", [])
        ]
        confidence = rules["confidence"]
        self.confidence_floor = int(confidence["floor"])
        self.live_factor = float(confidence["live_factor"])
        self.fallback_increment = float(confidence["fallback_increment"])
        self.confidence_cap = int(confidence["cap"])
        self.grades: list[tuple[float, str]] = sorted(
            ((float(g["min_score"]), g["grade"]) for g in rules["grades"]),
            reverse=True,
        )

    def synthesize(self, results: Iterable[ProviderResult], configs: Iterable[SourceConfig]) -> CompositeScore:
        results = list(results)
        priorities = {c.source_name: c.priority for c in configs}
        usable = [r for r in results if r.status in (ProviderStatus.SUCCESS, ProviderStatus.FELL_BACK)]

        breakdown = self.role_breakdown(usable)
        if breakdown:
            weight_sum = sum(self.weights[SourceRole(role)] for role in breakdown)
            base = sum(score * self.weights[SourceRole(role)] for role, score in breakdown.items()) / weight_sum
        else:
            base = self.neutral_score

        certifications = {c for r in usable for c in r.certifications if c}
        bonus = self.certification_bonus(certifications)
        overall = int(round(_clamp(base + bonus)))

        score = CompositeScore(
            overall_score=overall,
            confidence=self.confidence(results, priorities),
            breakdown=breakdown,
            certifications=certifications,
            grade=self.grade_for(overall),
            sources_used={r.source_name for r in results if r.status == ProviderStatus.SUCCESS},
            sources_fallback={r.source_name for r in results if r.status == ProviderStatus.FELL_BACK},
        )
        logger.info(
            f"[SYNTHESIZER] overall={score.overall_score} ({score.grade}) confidence={score.confidence} "
            f"base={base:.1f} bonus={bonus:.0f} live={len(score.sources_used)} fallback={len(score.sources_fallback)}"
        )
        return score

    def role_breakdown(self, results: Iterable[ProviderResult]) -> dict[str, float]:
        """역할별 평균 부분 점수 (가중치가 있는 역할만)"""
        by_role: dict[SourceRole, list[float]] = {}
        for result in results:
            if result.partial_score is None or result.role not in self.weights:
                continue
            by_role.setdefault(result.role, []).append(result.partial_score)
        return {role.value: round(mean(scores), 2) for role, scores in by_role.items()}

    def certification_bonus(self, certifications: Iterable[str]) -> float:
        """보너스 항목마다 최대 1회"""
        names = [normalize_name(c) for c in certifications]
        total = 0.0
        for keywords, bonus in self.bonuses:
            if any(k in name for name in names for k in keywords):
                total += bonus
        return total

    def confidence(self, results: Iterable[ProviderResult], priorities: dict[str, int]) -> int:
        value = float(self.confidence_floor)
        for result in results:
            if result.status == ProviderStatus.SUCCESS:
                value += priorities.get(result.source_name, 1) * self.live_factor
            elif result.status == ProviderStatus.FELL_BACK:
                value += self.fallback_increment
        return int(round(min(value, self.confidence_cap)))

    def grade_for(self, score: float) -> str:
        for min_score, grade in self.grades:
            if score >= min_score:
                return grade
        return self.grades[-1][1]


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))
