"""
Weighted compliance scoring.

This module turns a set of applicable requirements and a status map into
0-100 integer scores, maturity labels and category breakdowns. All scoring
is deterministic and auditable.

Scoring Algorithm:
    1. Each requirement carries a severity weight (critical=3, major=2, minor=1).
    2. A compliant requirement earns its full weight, a partial one earns
       ``partial_credit`` of it, anything else (including a missing status)
       earns nothing.
    3. score = round_half_up(100 * achieved / total).
    4. Categories and any further groupings are scored the same way,
       independently of each other.

Zero Denominator:
    A group with no weight to score (no applicable requirements, or only
    not_applicable ones in a regime that excludes them) scores
    ``empty_score``, 100 by default.

Maturity Levels (inclusive upper bounds):
    - initial: 0-20
    - developing: 21-40
    - defined: 41-60
    - managed: 61-80
    - optimizing: 81-100

All weights and thresholds are configurable via the ScoringConfig class.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from spacecomply.catalog.models import (
    SEVERITY_WEIGHTS,
    ComplianceStatus,
    Requirement,
    Severity,
)
from spacecomply.core.rules import band

logger = logging.getLogger(__name__)


class MaturityLevel(str, Enum):
    """Maturity label derived from a score."""

    INITIAL = "initial"
    DEVELOPING = "developing"
    DEFINED = "defined"
    MANAGED = "managed"
    OPTIMIZING = "optimizing"


MATURITY_DESCRIPTIONS: dict[MaturityLevel, str] = {
    MaturityLevel.INITIAL: "Ad-hoc security practices with minimal formal processes",
    MaturityLevel.DEVELOPING: "Some processes defined but inconsistently applied",
    MaturityLevel.DEFINED: "Documented procedures consistently followed",
    MaturityLevel.MANAGED: "Measured and controlled processes",
    MaturityLevel.OPTIMIZING: "Continuous improvement",
}

# A grouping maps a requirement to one key, several keys, or None to skip it
Grouping = Callable[[Requirement], str | list[str] | None]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def coerce_status(value: Any) -> ComplianceStatus | None:
    """
    Interpret a stored status value.

    Returns:
        The matching ComplianceStatus, or None for missing or unknown values.
    """
    if value is None:
        return None
    if isinstance(value, ComplianceStatus):
        return value
    try:
        return ComplianceStatus(str(value))
    except ValueError:
        return None


@dataclass
class ScoringConfig:
    """
    Configuration for compliance scoring.

    Attributes:
        severity_weights: Weight per severity.
        partial_credit: Fraction of the weight earned by a partial status.
        empty_score: Score reported for a group with zero total weight.
        exclude_not_applicable: Remove not_applicable requirements from the
            denominator instead of counting them as zero credit.
        level_bounds: Inclusive upper bound per maturity level, ascending.
            Scores above the last bound are optimizing.
    """

    severity_weights: dict[Severity, int] = field(
        default_factory=lambda: dict(SEVERITY_WEIGHTS)
    )
    partial_credit: float = 0.5
    empty_score: int = 100
    exclude_not_applicable: bool = False
    level_bounds: list[tuple[int, MaturityLevel]] = field(
        default_factory=lambda: [
            (20, MaturityLevel.INITIAL),
            (40, MaturityLevel.DEVELOPING),
            (60, MaturityLevel.DEFINED),
            (80, MaturityLevel.MANAGED),
        ]
    )

    def score_to_level(self, score: int) -> MaturityLevel:
        """
        Convert a numeric score to a maturity level.

        Args:
            score: Score (0 - 100).

        Returns:
            Maturity level for the score.
        """
        return band(score, self.level_bounds, MaturityLevel.OPTIMIZING)

    def weight_of(self, requirement: Requirement) -> int:
        return self.severity_weights.get(requirement.severity, requirement.weight)


@dataclass
class ComplianceScore:
    """
    Score for one group of requirements.

    Attributes:
        group_id: Group identifier ("overall", a category, an agency, ...).
        group_type: Kind of group ("overall", "category", or a grouping name).
        score: Integer score (0 - 100).
        level: Maturity level for the score.
        achieved_weight: Weight earned by the group's statuses.
        total_weight: Weight counted in the denominator.
        requirement_count: Number of requirements in the group.
        status_counts: Number of requirements per status.
        explanation: Human-readable explanation of the score.
        delta: Change from the previous score (if available).
    """

    group_id: str
    group_type: str
    score: int
    level: MaturityLevel
    achieved_weight: float
    total_weight: float
    requirement_count: int
    status_counts: dict[str, int] = field(default_factory=dict)
    explanation: str = ""
    delta: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "group_id": self.group_id,
            "group_type": self.group_type,
            "score": self.score,
            "level": self.level.value,
            "achieved_weight": round(self.achieved_weight, 2),
            "total_weight": round(self.total_weight, 2),
            "requirement_count": self.requirement_count,
            "status_counts": dict(self.status_counts),
            "explanation": self.explanation,
            "delta": self.delta,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComplianceScore:
        """Create from dictionary."""
        return cls(
            group_id=data["group_id"],
            group_type=data["group_type"],
            score=int(data["score"]),
            level=MaturityLevel(data["level"]),
            achieved_weight=float(data.get("achieved_weight", 0.0)),
            total_weight=float(data.get("total_weight", 0.0)),
            requirement_count=int(data.get("requirement_count", 0)),
            status_counts=dict(data.get("status_counts") or {}),
            explanation=data.get("explanation", ""),
            delta=data.get("delta"),
        )


@dataclass
class ScoreBreakdown:
    """
    Complete score breakdown for one assessment.

    Attributes:
        timestamp: When the breakdown was calculated.
        regime: Regime key.
        overall: Overall score.
        by_category: Scores by requirement category.
        by_group: Further groupings (e.g., "regulation" -> {"ITAR": ...}).
        statistics: Summary statistics.
    """

    timestamp: datetime
    regime: str
    overall: ComplianceScore
    by_category: dict[str, ComplianceScore]
    by_group: dict[str, dict[str, ComplianceScore]] = field(default_factory=dict)
    statistics: dict[str, Any] = field(default_factory=dict)

    @property
    def score(self) -> int:
        return self.overall.score

    @property
    def level(self) -> MaturityLevel:
        return self.overall.level

    def group_score(self, grouping: str, key: str, default: int | None = None) -> int | None:
        """Score of one group, or ``default`` when the group is empty."""
        group = self.by_group.get(grouping, {}).get(key)
        return group.score if group is not None else default

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "regime": self.regime,
            "overall": self.overall.to_dict(),
            "by_category": {k: v.to_dict() for k, v in self.by_category.items()},
            "by_group": {
                name: {k: v.to_dict() for k, v in groups.items()}
                for name, groups in self.by_group.items()
            },
            "statistics": self.statistics,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScoreBreakdown:
        """Create from dictionary."""
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            timestamp=timestamp,
            regime=data.get("regime", ""),
            overall=ComplianceScore.from_dict(data["overall"]),
            by_category={
                k: ComplianceScore.from_dict(v)
                for k, v in (data.get("by_category") or {}).items()
            },
            by_group={
                name: {k: ComplianceScore.from_dict(v) for k, v in groups.items()}
                for name, groups in (data.get("by_group") or {}).items()
            },
            statistics=dict(data.get("statistics") or {}),
        )


class MaturityCalculator:
    """
    Calculator for weighted compliance scores.

    Scores the applicable requirements of an assessment against its status
    map. The calculator never raises on unknown or missing statuses; they
    simply earn no credit.

    Example:
        calculator = MaturityCalculator()

        breakdown = calculator.calculate(
            requirements,
            {"nis2-001": "compliant", "nis2-002": "partial"},
            regime="nis2",
        )
        print(breakdown.score, breakdown.level.value)

        # Compare to a stored snapshot
        comparison = calculator.compare_breakdowns(breakdown, previous)

    Attributes:
        config: ScoringConfig with weights and thresholds.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        """
        Initialize the calculator.

        Args:
            config: ScoringConfig with weights and thresholds.
                Defaults to standard weights.
        """
        self.config = config or ScoringConfig()

    def calculate_score(
        self,
        requirements: Iterable[Requirement],
        statuses: Mapping[str, Any],
        group_id: str = "overall",
        group_type: str = "overall",
        previous: ComplianceScore | None = None,
    ) -> ComplianceScore:
        """
        Score one group of requirements.

        Args:
            requirements: Requirements in the group.
            statuses: Requirement ID to status (enum or string).
            group_id: Identifier reported on the score.
            group_type: Kind of group reported on the score.
            previous: Previous score for delta calculation.

        Returns:
            ComplianceScore for the group.
        """
        achieved = 0.0
        total = 0.0
        count = 0
        status_counts = {s.value: 0 for s in ComplianceStatus}

        for requirement in requirements:
            count += 1
            status = coerce_status(statuses.get(requirement.id))
            status_counts[(status or ComplianceStatus.NOT_ASSESSED).value] += 1

            weight = self.config.weight_of(requirement)
            if (
                status == ComplianceStatus.NOT_APPLICABLE
                and self.config.exclude_not_applicable
            ):
                continue

            total += weight
            if status == ComplianceStatus.COMPLIANT:
                achieved += weight
            elif status == ComplianceStatus.PARTIAL:
                achieved += weight * self.config.partial_credit

        if total > 0:
            score = round_half_up(100 * achieved / total)
            explanation = (
                f"{achieved:g} of {total:g} weighted points achieved "
                f"across {count} requirement(s)."
            )
        else:
            score = self.config.empty_score
            explanation = (
                f"No weighted requirements to score; reporting the default "
                f"score of {score}."
            )

        level = self.config.score_to_level(score)
        explanation_parts = [explanation, f"Maturity: {level.value}."]
        if status_counts[ComplianceStatus.NOT_ASSESSED.value]:
            explanation_parts.append(
                f"{status_counts[ComplianceStatus.NOT_ASSESSED.value]} "
                "requirement(s) not yet assessed."
            )

        return ComplianceScore(
            group_id=group_id,
            group_type=group_type,
            score=score,
            level=level,
            achieved_weight=achieved,
            total_weight=total,
            requirement_count=count,
            status_counts=status_counts,
            explanation=" ".join(explanation_parts),
            delta=self._calculate_delta(score, previous),
        )

    def calculate(
        self,
        requirements: Iterable[Requirement],
        statuses: Mapping[str, Any],
        regime: str = "",
        groupings: Mapping[str, Grouping] | None = None,
        previous: ScoreBreakdown | None = None,
    ) -> ScoreBreakdown:
        """
        Calculate the overall score and every breakdown.

        Args:
            requirements: Applicable requirements.
            statuses: Requirement ID to status (enum or string).
            regime: Regime key recorded on the breakdown.
            groupings: Extra groupings by name, each mapping a requirement
                to its group key(s).
            previous: Previous breakdown for delta calculation.

        Returns:
            ScoreBreakdown with overall, per-category and grouped scores.
        """
        requirements = list(requirements)

        overall = self.calculate_score(
            requirements,
            statuses,
            previous=previous.overall if previous else None,
        )

        by_category: dict[str, ComplianceScore] = {}
        for category, members in _group_by(requirements, lambda r: r.category).items():
            prev = previous.by_category.get(category) if previous else None
            by_category[category] = self.calculate_score(
                members, statuses, category, "category", prev
            )

        by_group: dict[str, dict[str, ComplianceScore]] = {}
        for name, key_func in (groupings or {}).items():
            prev_groups = previous.by_group.get(name, {}) if previous else {}
            by_group[name] = {
                key: self.calculate_score(
                    members, statuses, key, name, prev_groups.get(key)
                )
                for key, members in _group_by(requirements, key_func).items()
            }

        level_counts = {level.value: 0 for level in MaturityLevel}
        for score in by_category.values():
            level_counts[score.level.value] += 1

        statistics = {
            "total_requirements": len(requirements),
            "total_categories": len(by_category),
            "status_counts": dict(overall.status_counts),
            "category_level_distribution": level_counts,
        }

        logger.debug(
            "Scored %d requirements for %s: %d (%s)",
            len(requirements),
            regime or "assessment",
            overall.score,
            overall.level.value,
        )

        return ScoreBreakdown(
            timestamp=datetime.now(UTC),
            regime=regime,
            overall=overall,
            by_category=by_category,
            by_group=by_group,
            statistics=statistics,
        )

    def _calculate_delta(
        self,
        current_score: int,
        previous: ComplianceScore | None,
    ) -> int | None:
        """Calculate score change from previous."""
        if previous is None:
            return None
        return current_score - previous.score

    def compare_breakdowns(
        self,
        current: ScoreBreakdown,
        previous: ScoreBreakdown,
    ) -> dict[str, Any]:
        """
        Compare two score breakdowns for trend analysis.

        Args:
            current: Current score breakdown.
            previous: Previous score breakdown.

        Returns:
            Dictionary with comparison results.
        """
        overall_delta = current.overall.score - previous.overall.score

        category_deltas = {}
        improved = 0
        regressed = 0
        unchanged = 0

        for category, current_score in current.by_category.items():
            if category not in previous.by_category:
                continue
            delta = current_score.score - previous.by_category[category].score
            category_deltas[category] = delta
            if delta > 0:
                improved += 1
            elif delta < 0:
                regressed += 1
            else:
                unchanged += 1

        return {
            "overall_delta": overall_delta,
            "overall_direction": (
                "improved" if overall_delta > 0
                else "regressed" if overall_delta < 0
                else "unchanged"
            ),
            "previous_level": previous.overall.level.value,
            "current_level": current.overall.level.value,
            "category_deltas": category_deltas,
            "categories_improved": improved,
            "categories_regressed": regressed,
            "categories_unchanged": unchanged,
            "time_between": str(current.timestamp - previous.timestamp),
        }


def _group_by(
    requirements: Iterable[Requirement], key_func: Grouping
) -> dict[str, list[Requirement]]:
    """Group requirements by key, preserving first-appearance order."""
    groups: dict[str, list[Requirement]] = {}
    for requirement in requirements:
        keys = key_func(requirement)
        if keys is None:
            continue
        if isinstance(keys, str):
            keys = [keys]
        for key in keys:
            groups.setdefault(str(key), []).append(requirement)
    return groups
