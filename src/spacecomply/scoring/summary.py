"""
Cross-regime compliance summary.

Combines the overall scores of several regime assessments into one weighted
score, a letter grade and a per-regime status.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from spacecomply.core.rules import Rule, RuleOutcome, evaluate_rules
from spacecomply.scoring.maturity_calculator import round_half_up

GRADE_RULES = [
    Rule(lambda s: s >= 90, "A", "Score of 90 or above"),
    Rule(lambda s: s >= 80, "B", "Score of 80 or above"),
    Rule(lambda s: s >= 70, "C", "Score of 70 or above"),
    Rule(lambda s: s >= 60, "D", "Score of 60 or above"),
]

MODULE_STATUS_RULES = [
    Rule(lambda s: s >= 80, "compliant", "Score of 80 or above"),
    Rule(lambda s: s >= 50, "partial", "Score of 50 or above"),
    Rule(lambda s: s > 0, "non_compliant", "Score above zero"),
]


def letter_grade(score: int) -> str:
    """Letter grade (A-F) for a score."""
    return evaluate_rules(
        GRADE_RULES, score, RuleOutcome("F", "Score below 60")
    ).result


def module_status(score: int | None) -> str:
    """Status label for one regime's score; None means not started."""
    if score is None:
        return "not_started"
    return evaluate_rules(
        MODULE_STATUS_RULES, score, RuleOutcome("not_started", "No progress recorded")
    ).result


@dataclass
class ComplianceSummary:
    """
    Weighted summary across regimes.

    Attributes:
        timestamp: When the summary was calculated.
        overall_score: Weighted overall score (0 - 100).
        grade: Letter grade for the overall score.
        regime_scores: Score per regime included.
        regime_status: Status per regime included.
        weights: Weight applied per regime.
    """

    timestamp: datetime
    overall_score: int
    grade: str
    regime_scores: dict[str, int]
    regime_status: dict[str, str]
    weights: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "overall_score": self.overall_score,
            "grade": self.grade,
            "regime_scores": dict(self.regime_scores),
            "regime_status": dict(self.regime_status),
            "weights": dict(self.weights),
        }


def summarize(
    regime_scores: Mapping[str, int | None],
    weights: Mapping[str, float] | None = None,
    empty_score: int = 100,
) -> ComplianceSummary:
    """
    Combine regime scores into a weighted summary.

    Regimes whose score is None are reported as not started and left out of
    the weighted average. Regimes without an explicit weight get 1.0.

    Args:
        regime_scores: Regime key to overall score.
        weights: Optional regime key to weight.
        empty_score: Score reported when no regime carries weight.

    Returns:
        ComplianceSummary for the regimes given.
    """
    weights = dict(weights or {})
    scored = {k: v for k, v in regime_scores.items() if v is not None}

    applied = {k: float(weights.get(k, 1.0)) for k in scored}
    total_weight = sum(applied.values())
    if total_weight > 0:
        overall = round_half_up(
            sum(scored[k] * w for k, w in applied.items()) / total_weight
        )
    else:
        overall = empty_score

    return ComplianceSummary(
        timestamp=datetime.now(UTC),
        overall_score=overall,
        grade=letter_grade(overall),
        regime_scores=dict(scored),
        regime_status={k: module_status(v) for k, v in regime_scores.items()},
        weights=applied,
    )
